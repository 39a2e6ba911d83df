import os
import hmac
import base64
import hashlib
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse
from jose import jwt, JWTError


# =====================================================
# SECURITY CONFIG (ENV ONLY)
# =====================================================

SHOPIFY_API_KEY = os.getenv("SHOPIFY_API_KEY", "")
SHOPIFY_API_SECRET = os.getenv("SHOPIFY_API_SECRET")
if not SHOPIFY_API_SECRET:
    raise RuntimeError("SHOPIFY_API_SECRET must be set in environment variables")

ALGORITHM = "HS256"


# =====================================================
# SESSION TOKENS (embedded admin)
# =====================================================

def decode_session_token(token: str):
    """
    Verify a Shopify App Bridge session token.
    Returns the payload dict, or None if invalid / expired.
    """
    try:
        return jwt.decode(
            token,
            SHOPIFY_API_SECRET,
            algorithms=[ALGORITHM],
            audience=SHOPIFY_API_KEY,
            options={"verify_aud": bool(SHOPIFY_API_KEY)},
        )
    except JWTError:
        return None


def shop_from_payload(payload: dict):
    """`dest` is the shop origin, e.g. https://demo.myshopify.com"""
    dest = payload.get("dest") or ""
    shop = urlparse(dest).netloc or dest
    return shop or None


def create_session_token(shop: str, expires_in: int = 60) -> str:
    """Mint a token the same way App Bridge does. Used by local tooling and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": SHOPIFY_API_KEY,
        "sub": "1",
        "iat": now,
        "nbf": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, SHOPIFY_API_SECRET, algorithm=ALGORITHM)


# =====================================================
# WEBHOOK SIGNATURES
# =====================================================

def webhook_signature(body: bytes) -> str:
    digest = hmac.new(SHOPIFY_API_SECRET.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_webhook_signature(body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(webhook_signature(body), signature)
