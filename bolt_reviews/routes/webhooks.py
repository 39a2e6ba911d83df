import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.dependencies import WebhookEvent, verify_webhook
from bolt_reviews.services.catalog import delete_product, upsert_product

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

logger = logging.getLogger(__name__)


def _missing_shop_or_payload(event: WebhookEvent):
    if not event.shop or not isinstance(event.payload, dict):
        return PlainTextResponse("Missing shop or payload", status_code=400)
    return None


# =====================================================
# products/update
# =====================================================
@router.post("/products/update")
def product_updated(
    event: WebhookEvent = Depends(verify_webhook),
    db: Session = Depends(get_db),
):
    rejected = _missing_shop_or_payload(event)
    if rejected:
        return rejected

    logger.info("Received %s webhook | shop=%s", event.topic, event.shop)
    product = event.payload

    try:
        upsert_product(
            db,
            event.shop,
            external_id=product["admin_graphql_api_id"],
            title=product.get("title") or "",
            handle=product.get("handle") or "",
            image_url=(product.get("image") or {}).get("src") or None,
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Product update webhook failed | shop=%s", event.shop)
        return PlainTextResponse("Webhook processing failed", status_code=500)

    logger.info("Product updated | shop=%s | title=%s", event.shop, product.get("title"))
    return PlainTextResponse("Webhook processed", status_code=200)


# =====================================================
# products/delete
# =====================================================
@router.post("/products/delete")
def product_deleted(
    event: WebhookEvent = Depends(verify_webhook),
    db: Session = Depends(get_db),
):
    rejected = _missing_shop_or_payload(event)
    if rejected:
        return rejected

    logger.info("Received %s webhook | shop=%s", event.topic, event.shop)
    product = event.payload

    try:
        removed = delete_product(db, event.shop, product["admin_graphql_api_id"])
    except Exception:
        db.rollback()
        logger.exception("Product delete webhook failed | shop=%s", event.shop)
        return PlainTextResponse("Webhook processing failed", status_code=500)

    if not removed:
        logger.warning(
            "Deleted product was never synced | shop=%s | title=%s",
            event.shop,
            product.get("title"),
        )

    return PlainTextResponse("Webhook processed", status_code=200)
