import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SHOPIFY_API_KEY", "test-api-key")
os.environ.setdefault("SHOPIFY_API_SECRET", "test-api-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bolt_reviews.database import Base, get_db
from bolt_reviews.dependencies import AdminSession, authenticate_admin, get_catalog_client
from bolt_reviews.main import app
from bolt_reviews.models import Product, Review, Settings

SHOP = "demo.myshopify.com"
OTHER_SHOP = "other.myshopify.com"


class FakeCatalog:
    """Stands in for ShopifyCatalogClient; serves pre-built pages in order."""

    def __init__(self, pages=None):
        self.pages = list(pages or [])
        self.calls = []

    def fetch_products_page(self, cursor=None, first=50):
        self.calls.append({"cursor": cursor, "first": first})
        page = self.pages[len(self.calls) - 1]
        if isinstance(page, Exception):
            raise page
        return page


def product_node(number, title=None, handle=None, image=None):
    return {
        "id": f"gid://shopify/Product/{number}",
        "title": title or f"Product {number}",
        "handle": handle or f"product-{number}",
        "status": "ACTIVE",
        "featuredImage": {"url": image} if image else None,
    }


def catalog_pages(nodes, page_size=50):
    """Split nodes into GraphQL `products` connections."""
    pages = []
    chunks = [nodes[i:i + page_size] for i in range(0, len(nodes), page_size)] or [[]]
    for index, chunk in enumerate(chunks):
        pages.append(
            {
                "edges": [
                    {"cursor": f"cursor-{node['id'].rsplit('/', 1)[-1]}", "node": node}
                    for node in chunk
                ],
                "pageInfo": {"hasNextPage": index < len(chunks) - 1},
            }
        )
    return pages


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def catalog():
    return FakeCatalog()


@pytest.fixture()
def client(session_factory, catalog):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[authenticate_admin] = lambda: AdminSession(shop=SHOP, access_token="shpat_test")
    app.dependency_overrides[get_catalog_client] = lambda: catalog

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture()
def make_product(db):
    counter = {"n": 0}

    def _make(shop=SHOP, handle=None, title=None, external_id=None):
        counter["n"] += 1
        n = counter["n"]
        product = Product(
            shopify_product_id=external_id or f"gid://shopify/Product/{1000 + n}",
            shop_id=shop,
            title=title or f"Test Product {n}",
            handle=handle or f"test-product-{n}",
            review_count=0,
            average_rating=0,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture()
def make_review(db):
    def _make(product, rating=5, status="published", **overrides):
        fields = {
            "product_id": product.id,
            "shop_id": product.shop_id,
            "customer_name": "Alex Buyer",
            "rating": rating,
            "title": "Great",
            "content": "Works as described.",
            "status": status,
        }
        fields.update(overrides)
        review = Review(**fields)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    return _make


@pytest.fixture()
def shop_settings(db):
    def _make(shop=SHOP, **overrides):
        settings = Settings(shop_id=shop, **overrides)
        db.add(settings)
        db.commit()
        db.refresh(settings)
        return settings

    return _make
