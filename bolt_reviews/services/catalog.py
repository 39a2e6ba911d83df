import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from bolt_reviews.errors import UpstreamFailure
from bolt_reviews.models import Product, Review, Settings, ShopSession, DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    total: int = 0

    def as_dict(self) -> dict:
        return {"created": self.created, "updated": self.updated, "total": self.total}


@dataclass
class InstallResult:
    """Outcome of the first-install hook. A failed sync never fails the install."""

    settings_created: bool
    sync: Optional[SyncResult] = None
    sync_error: Optional[str] = None

    @property
    def synced(self) -> bool:
        return self.sync is not None and self.sync_error is None


# =====================================================
# UPSERT / DELETE
# =====================================================

def node_to_product_fields(node: dict) -> dict:
    image = node.get("featuredImage") or {}
    return {
        "external_id": node["id"],
        "title": node.get("title") or "",
        "handle": node.get("handle") or "",
        "image_url": image.get("url") or None,
    }


def upsert_product(
    db: Session,
    shop: str,
    external_id: str,
    title: str,
    handle: str,
    image_url: Optional[str],
) -> bool:
    """Returns True when a new row was created. Caller commits."""
    product = (
        db.query(Product)
        .filter(Product.shop_id == shop, Product.shopify_product_id == external_id)
        .first()
    )

    if product:
        product.title = title
        product.handle = handle
        product.image_url = image_url
        return False

    db.add(
        Product(
            shopify_product_id=external_id,
            shop_id=shop,
            title=title,
            handle=handle,
            image_url=image_url,
            review_count=0,
            average_rating=0,
        )
    )
    db.flush()
    return True


def delete_product(db: Session, shop: str, external_id: str) -> bool:
    """Deletes the product and all of its reviews. False if it was never synced."""
    product = (
        db.query(Product)
        .filter(Product.shop_id == shop, Product.shopify_product_id == external_id)
        .first()
    )
    if not product:
        return False

    removed = (
        db.query(Review)
        .filter(Review.product_id == product.id)
        .delete(synchronize_session=False)
    )
    db.delete(product)
    db.commit()

    logger.info(
        "Product deleted | shop=%s | product=%s | reviews_removed=%s",
        shop,
        external_id,
        removed,
    )
    return True


# =====================================================
# SYNC
# =====================================================

def _fetch_page(catalog, cursor):
    try:
        products = catalog.fetch_products_page(cursor=cursor, first=PAGE_SIZE)
    except httpx.HTTPError as e:
        raise UpstreamFailure("Failed to fetch products from Shopify", str(e))

    if not products:
        raise UpstreamFailure("Failed to fetch products from Shopify")
    return products


def sync_products(db: Session, shop: str, catalog) -> SyncResult:
    """
    Pulls the whole catalog page by page and upserts every product.
    Each page is committed before the next one is requested, so a failure
    part-way keeps what was already stored.
    """
    result = SyncResult()
    cursor = None
    has_next_page = True

    while has_next_page:
        page = _fetch_page(catalog, cursor)
        edges = page.get("edges") or []

        for edge in edges:
            fields = node_to_product_fields(edge["node"])
            if upsert_product(db, shop, **fields):
                result.created += 1
            else:
                result.updated += 1
            result.total += 1

        db.commit()

        has_next_page = bool((page.get("pageInfo") or {}).get("hasNextPage"))
        cursor = edges[-1]["cursor"] if edges else None
        if has_next_page and cursor is None:
            break

    logger.info(
        "Product sync finished | shop=%s | created=%s | updated=%s | total=%s",
        shop,
        result.created,
        result.updated,
        result.total,
    )
    return result


# =====================================================
# SETUP / INSTALL
# =====================================================

def ensure_settings(db: Session, shop: str) -> tuple[Settings, bool]:
    settings = db.query(Settings).filter(Settings.shop_id == shop).first()
    if settings:
        return settings, False

    settings = Settings(shop_id=shop, **DEFAULT_SETTINGS)
    db.add(settings)
    db.commit()
    db.refresh(settings)

    logger.info("Default settings created | shop=%s", shop)
    return settings, True


def run_setup(db: Session, shop: str, catalog) -> tuple[bool, SyncResult]:
    """Idempotent: settings are created once, products are upserted."""
    logger.info("Running setup | shop=%s", shop)
    _, created = ensure_settings(db, shop)
    return created, sync_products(db, shop, catalog)


def after_install(db: Session, shop: str, catalog) -> InstallResult:
    """
    First-installation hook. Settings creation errors propagate;
    catalog sync errors are logged and reported in the result.
    """
    _, created = ensure_settings(db, shop)

    try:
        sync = sync_products(db, shop, catalog)
    except Exception as e:
        db.rollback()
        logger.exception("Initial product sync failed | shop=%s", shop)
        return InstallResult(settings_created=created, sync_error=str(e))

    return InstallResult(settings_created=created, sync=sync)


def install_shop(db: Session, shop: str, access_token: str, scope: Optional[str], catalog) -> InstallResult:
    """
    Entry point for the OAuth callback: stores the offline token,
    then runs the first-install hook.
    """
    stored = db.query(ShopSession).filter(ShopSession.shop == shop).first()
    if stored:
        stored.access_token = access_token
        stored.scope = scope
    else:
        db.add(ShopSession(shop=shop, access_token=access_token, scope=scope))
    db.commit()

    logger.info("App installed | shop=%s", shop)
    return after_install(db, shop, catalog)
