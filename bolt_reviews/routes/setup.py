import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.dependencies import AdminSession, authenticate_admin, get_catalog_client
from bolt_reviews.errors import PersistenceFailure, UpstreamFailure, ValidationError
from bolt_reviews.models import DEFAULT_SETTINGS, Settings
from bolt_reviews.services.catalog import ensure_settings, run_setup

router = APIRouter(tags=["setup"])

logger = logging.getLogger(__name__)


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auto_publish: Optional[bool] = Field(None, alias="autoPublish")
    require_moderation: Optional[bool] = Field(None, alias="requireModeration")
    allow_guest_reviews: Optional[bool] = Field(None, alias="allowGuestReviews")
    require_verified_purchase: Optional[bool] = Field(None, alias="requireVerifiedPurchase")
    min_rating_to_publish: Optional[int] = Field(None, alias="minRatingToPublish")
    enable_review_images: Optional[bool] = Field(None, alias="enableReviewImages")
    email_notifications: Optional[bool] = Field(None, alias="emailNotifications")
    notification_email: Optional[str] = Field(None, alias="notificationEmail")


def serialize_settings(settings: Settings) -> dict:
    return {
        "shopId": settings.shop_id,
        "autoPublish": settings.auto_publish,
        "requireModeration": settings.require_moderation,
        "allowGuestReviews": settings.allow_guest_reviews,
        "requireVerifiedPurchase": settings.require_verified_purchase,
        "minRatingToPublish": settings.min_rating_to_publish,
        "enableReviewImages": settings.enable_review_images,
        "emailNotifications": settings.email_notifications,
        "notificationEmail": settings.notification_email,
    }


# =====================================================
# ADMIN: ONE-TIME SETUP (idempotent)
# =====================================================
@router.post("/setup")
def setup_shop(
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
    catalog=Depends(get_catalog_client),
):
    try:
        settings_created, result = run_setup(db, session.shop, catalog)
    except UpstreamFailure as e:
        db.rollback()
        raise UpstreamFailure("Setup failed", e.details or e.message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Setup failed | shop=%s", session.shop)
        raise PersistenceFailure("Setup failed", str(e))

    logger.info("Setup complete | shop=%s", session.shop)
    return {
        "success": True,
        "message": (
            f"Setup complete! Synced {result.created} new products "
            f"and updated {result.updated} existing products."
        ),
        "settings": "created" if settings_created else "already exists",
        "products": result.as_dict(),
    }


# =====================================================
# ADMIN: SETTINGS
# =====================================================
@router.get("/settings")
def get_settings(
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    # read-only: an unconfigured shop sees the defaults, nothing is stored
    settings = db.query(Settings).filter(Settings.shop_id == session.shop).first()
    if settings is None:
        settings = Settings(shop_id=session.shop, **DEFAULT_SETTINGS)
    return {"success": True, "settings": serialize_settings(settings)}


@router.patch("/settings")
def update_settings(
    payload: SettingsUpdate,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    changes = payload.model_dump(exclude_unset=True)

    if "min_rating_to_publish" in changes:
        value = changes["min_rating_to_publish"]
        if value is None or not 1 <= value <= 5:
            raise ValidationError("minRatingToPublish must be between 1 and 5")

    for field, value in changes.items():
        if value is None and field != "notification_email":
            raise ValidationError(f"{field} cannot be null")

    settings, _ = ensure_settings(db, session.shop)
    for field, value in changes.items():
        setattr(settings, field, value)

    db.commit()
    db.refresh(settings)
    return {"success": True, "settings": serialize_settings(settings)}
