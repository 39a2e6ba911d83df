import uuid
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.dependencies import AdminSession, authenticate_admin
from bolt_reviews.errors import PersistenceFailure
from bolt_reviews.services import reviews as review_service
from bolt_reviews.services.reviews import ReviewFilter, serialize_review

router = APIRouter(prefix="/reviews", tags=["reviews"])

logger = logging.getLogger(__name__)


# =====================================================
# Pydantic Schemas
# =====================================================

class ReviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[uuid.UUID] = Field(None, alias="productId")
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    rating: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_verified: Optional[bool] = Field(None, alias="isVerified")


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    rating: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    status: Optional[str] = None
    is_verified: Optional[bool] = Field(None, alias="isVerified")
    image_url: Optional[str] = Field(None, alias="imageUrl")


class PublishPayload(BaseModel):
    action: Optional[str] = None


class BulkPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    review_ids: List[uuid.UUID] = Field(default_factory=list, alias="reviewIds")
    action: Optional[str] = None


def _persistence_failure(db: Session, message: str, error: SQLAlchemyError):
    db.rollback()
    logger.exception("%s | error=%s", message, error)
    return PersistenceFailure(message, str(error))


# =====================================================
# ADMIN: LIST REVIEWS
# =====================================================
@router.get("")
def list_reviews(
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
    status_filter: str = Query("all", alias="status"),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    rating: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=250),
    offset: int = Query(0, ge=0),
):
    filters = ReviewFilter(
        status=status_filter,
        product_id=product_id,
        rating=rating,
        search=search,
    )
    return review_service.list_reviews(db, session.shop, filters, limit=limit, offset=offset)


# =====================================================
# ADMIN: CREATE REVIEW
# =====================================================
@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    try:
        review = review_service.create_review(db, session.shop, payload.model_dump())
    except SQLAlchemyError as e:
        raise _persistence_failure(db, "Failed to create review", e)

    published = review.status == "published"
    return {
        "success": True,
        "review": serialize_review(review),
        "message": (
            "Review created and published successfully"
            if published
            else "Review created and pending moderation"
        ),
    }


# =====================================================
# ADMIN: BULK ACTION
# =====================================================
@router.post("/bulk")
def bulk_action(
    payload: BulkPayload,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    try:
        affected = review_service.bulk_action(db, session.shop, payload.review_ids, payload.action)
    except SQLAlchemyError as e:
        raise _persistence_failure(db, "Failed to perform bulk operation", e)

    return {
        "success": True,
        "affected": affected,
        "message": f"Successfully {review_service.BULK_PAST_TENSE[payload.action]} {affected} review(s)",
    }


# =====================================================
# ADMIN: REVIEWS FOR ONE PRODUCT
# =====================================================
@router.get("/product/{product_id}")
def list_product_reviews(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
    status_filter: str = Query("published", alias="status"),
    limit: int = Query(50, ge=1, le=250),
    offset: int = Query(0, ge=0),
):
    return review_service.list_product_reviews(
        db,
        session.shop,
        product_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )


# =====================================================
# ADMIN: UPDATE REVIEW
# =====================================================
@router.api_route("/{review_id}/update", methods=["PATCH", "PUT"])
def update_review(
    review_id: uuid.UUID,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    try:
        review = review_service.update_review(
            db,
            session.shop,
            review_id,
            payload.model_dump(exclude_unset=True),
        )
    except SQLAlchemyError as e:
        raise _persistence_failure(db, "Failed to update review", e)

    return {
        "success": True,
        "review": serialize_review(review),
        "message": "Review updated successfully",
    }


# =====================================================
# ADMIN: PUBLISH / UNPUBLISH
# =====================================================
@router.api_route("/{review_id}/publish", methods=["PATCH", "POST"])
def publish_review(
    review_id: uuid.UUID,
    payload: PublishPayload,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    try:
        review = review_service.set_publication(db, session.shop, review_id, payload.action)
    except SQLAlchemyError as e:
        raise _persistence_failure(db, "Failed to update review status", e)

    verb = "published" if payload.action == "publish" else "unpublished"
    return {
        "success": True,
        "review": serialize_review(review),
        "message": f"Review {verb} successfully",
    }


# =====================================================
# ADMIN: DELETE REVIEW
# =====================================================
@router.delete("/{review_id}/delete")
def delete_review(
    review_id: uuid.UUID,
    db: Session = Depends(get_db),
    session: AdminSession = Depends(authenticate_admin),
):
    try:
        review_service.delete_review(db, session.shop, review_id)
    except SQLAlchemyError as e:
        raise _persistence_failure(db, "Failed to delete review", e)

    return {"success": True, "message": "Review deleted successfully"}
