import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.models import ShopSession
from bolt_reviews.security import (
    decode_session_token,
    shop_from_payload,
    verify_webhook_signature,
)
from bolt_reviews.shopify_client import ShopifyCatalogClient

logger = logging.getLogger(__name__)


@dataclass
class AdminSession:
    shop: str
    access_token: str


@dataclass
class WebhookEvent:
    topic: Optional[str]
    shop: Optional[str]
    payload: Optional[Any]


# =========================
# ADMIN SESSION (APP BRIDGE BEARER TOKEN)
# =========================
def authenticate_admin(
    request: Request,
    db: Session = Depends(get_db),
) -> AdminSession:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")

    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = decode_session_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        )

    shop = shop_from_payload(payload)
    if not shop:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token payload",
        )

    stored = db.query(ShopSession).filter(ShopSession.shop == shop).first()
    if not stored:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Shop is not installed",
        )

    return AdminSession(shop=shop, access_token=stored.access_token)


# =========================
# SHOPIFY CATALOG CLIENT
# =========================
def get_catalog_client(
    session: AdminSession = Depends(authenticate_admin),
) -> ShopifyCatalogClient:
    return ShopifyCatalogClient(shop=session.shop, access_token=session.access_token)


# =========================
# WEBHOOK VERIFICATION
# =========================
async def verify_webhook(request: Request) -> WebhookEvent:
    body = await request.body()

    if not verify_webhook_signature(body, request.headers.get("x-shopify-hmac-sha256")):
        logger.warning(
            "Webhook signature rejected | topic=%s | shop=%s",
            request.headers.get("x-shopify-topic"),
            request.headers.get("x-shopify-shop-domain"),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )

    try:
        payload = json.loads(body) if body else None
    except ValueError:
        payload = None

    return WebhookEvent(
        topic=request.headers.get("x-shopify-topic"),
        shop=request.headers.get("x-shopify-shop-domain"),
        payload=payload,
    )
