from fastapi.testclient import TestClient

from bolt_reviews.dependencies import authenticate_admin
from bolt_reviews.main import app
from bolt_reviews.models import Settings, ShopSession
from bolt_reviews.security import (
    create_session_token,
    decode_session_token,
    shop_from_payload,
    verify_webhook_signature,
    webhook_signature,
)
from conftest import SHOP


def _real_auth_client(client):
    app.dependency_overrides.pop(authenticate_admin, None)
    return client


# =====================================================
# TOKENS & SIGNATURES
# =====================================================

def test_session_token_round_trip():
    payload = decode_session_token(create_session_token(SHOP))
    assert shop_from_payload(payload) == SHOP


def test_expired_token_is_rejected():
    assert decode_session_token(create_session_token(SHOP, expires_in=-30)) is None


def test_garbage_token_is_rejected():
    assert decode_session_token("not.a.token") is None


def test_shop_from_bare_dest():
    assert shop_from_payload({"dest": SHOP}) == SHOP
    assert shop_from_payload({}) is None


def test_webhook_signature_verification():
    body = b'{"id": 1}'
    assert verify_webhook_signature(body, webhook_signature(body))
    assert not verify_webhook_signature(body + b" ", webhook_signature(body))
    assert not verify_webhook_signature(body, None)


# =====================================================
# ADMIN AUTHENTICATION
# =====================================================

class TestAdminAuthentication:
    def test_valid_token_for_installed_shop(self, client, db):
        db.add(ShopSession(shop=SHOP, access_token="shpat_live", scope="read_products"))
        db.commit()
        client = _real_auth_client(client)

        response = client.get(
            "/api/reviews",
            headers={"Authorization": f"Bearer {create_session_token(SHOP)}"},
        )

        assert response.status_code == 200

    def test_missing_token(self, client):
        response = _real_auth_client(client).get("/api/reviews")

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_invalid_token(self, client):
        response = _real_auth_client(client).get(
            "/api/reviews",
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401

    def test_shop_not_installed(self, client):
        response = _real_auth_client(client).get(
            "/api/reviews",
            headers={"Authorization": f"Bearer {create_session_token(SHOP)}"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Shop is not installed"

    def test_template_is_public(self, client):
        response = _real_auth_client(client).get("/api/reviews/template")
        assert response.status_code == 200


# =====================================================
# HEALTH & SETTINGS
# =====================================================

class TestHealth:
    def test_health_reports_counts(self, client, make_product, make_review):
        make_review(make_product())

        body = client.get("/api/health").json()

        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["counts"] == {"products": 1, "reviews": 1, "settings": 0}

    def test_ping(self):
        assert TestClient(app).get("/api/ping").json() == {"ping": "pong"}


class TestSettings:
    def test_get_returns_defaults_without_storing(self, client, db):
        body = client.get("/api/settings").json()

        assert body["settings"]["autoPublish"] is False
        assert body["settings"]["minRatingToPublish"] == 1
        assert body["settings"]["notificationEmail"] is None
        assert db.query(Settings).count() == 0

    def test_patch_updates_given_fields(self, client, shop_settings):
        shop_settings()

        response = client.patch(
            "/api/settings",
            json={"autoPublish": True, "minRatingToPublish": 4, "notificationEmail": "me@example.com"},
        )

        assert response.status_code == 200
        settings = response.json()["settings"]
        assert settings["autoPublish"] is True
        assert settings["minRatingToPublish"] == 4
        assert settings["notificationEmail"] == "me@example.com"
        assert settings["emailNotifications"] is True

    def test_patch_rejects_out_of_range_min_rating(self, client):
        response = client.patch("/api/settings", json={"minRatingToPublish": 9})
        assert response.status_code == 400
