import json

from bolt_reviews.models import Product, Review
from bolt_reviews.security import webhook_signature
from conftest import OTHER_SHOP, SHOP


def _post(client, path, payload, shop=SHOP, topic=None, signature=None):
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": signature or webhook_signature(body),
        "X-Shopify-Topic": topic or "products/" + path.rsplit("/", 1)[-1],
    }
    if shop:
        headers["X-Shopify-Shop-Domain"] = shop
    return client.post(path, content=body, headers=headers)


def _shopify_product(number, title="Webhook Product", handle="webhook-product", image=None):
    return {
        "id": number,
        "admin_graphql_api_id": f"gid://shopify/Product/{number}",
        "title": title,
        "handle": handle,
        "image": {"src": image} if image else None,
    }


class TestProductUpdate:
    def test_creates_unknown_product(self, client, db):
        response = _post(
            client,
            "/webhooks/products/update",
            _shopify_product(42, image="https://cdn.example.com/42.png"),
        )

        assert response.status_code == 200
        assert response.text == "Webhook processed"
        product = db.query(Product).one()
        assert product.shopify_product_id == "gid://shopify/Product/42"
        assert product.image_url == "https://cdn.example.com/42.png"
        assert product.shop_id == SHOP

    def test_updates_existing_product(self, client, db, make_product):
        existing = make_product(external_id="gid://shopify/Product/42", title="Old", handle="old")

        _post(client, "/webhooks/products/update", _shopify_product(42, title="Renamed", handle="renamed"))

        db.expire_all()
        refreshed = db.query(Product).filter(Product.id == existing.id).one()
        assert (refreshed.title, refreshed.handle, refreshed.image_url) == ("Renamed", "renamed", None)
        assert db.query(Product).count() == 1

    def test_same_external_id_in_another_shop_is_separate(self, client, db, make_product):
        make_product(shop=OTHER_SHOP, external_id="gid://shopify/Product/42")

        _post(client, "/webhooks/products/update", _shopify_product(42))

        assert db.query(Product).count() == 2

    def test_bad_signature_rejected(self, client, db):
        response = _post(
            client,
            "/webhooks/products/update",
            _shopify_product(42),
            signature="bm90LXRoZS1yaWdodC1zaWduYXR1cmU=",
        )

        assert response.status_code == 401
        assert db.query(Product).count() == 0

    def test_missing_signature_rejected(self, client):
        response = client.post(
            "/webhooks/products/update",
            content=b"{}",
            headers={"X-Shopify-Shop-Domain": SHOP},
        )
        assert response.status_code == 401

    def test_missing_shop_is_bad_request(self, client):
        response = _post(client, "/webhooks/products/update", _shopify_product(42), shop=None)

        assert response.status_code == 400
        assert response.text == "Missing shop or payload"


class TestProductDelete:
    def test_removes_product_and_its_reviews(self, client, db, make_product, make_review):
        product = make_product(external_id="gid://shopify/Product/42")
        product_id = product.id
        make_review(product)
        make_review(product, status="pending")
        other = make_product()
        make_review(other)

        response = _post(client, "/webhooks/products/delete", {"id": 42, "admin_graphql_api_id": "gid://shopify/Product/42"})

        assert response.status_code == 200
        db.expire_all()
        assert db.query(Product).filter(Product.id == product_id).count() == 0
        assert db.query(Review).filter(Review.product_id == product_id).count() == 0
        assert db.query(Review).count() == 1

    def test_unknown_product_is_acknowledged(self, client, db):
        response = _post(
            client,
            "/webhooks/products/delete",
            {"id": 99, "admin_graphql_api_id": "gid://shopify/Product/99"},
        )

        assert response.status_code == 200
        assert response.text == "Webhook processed"

    def test_only_the_sending_shop_is_touched(self, client, db, make_product):
        make_product(shop=OTHER_SHOP, external_id="gid://shopify/Product/42")

        _post(
            client,
            "/webhooks/products/delete",
            {"id": 42, "admin_graphql_api_id": "gid://shopify/Product/42"},
        )

        assert db.query(Product).count() == 1
