import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, StrictBool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bolt_reviews.database import get_db
from bolt_reviews.errors import PersistenceFailure, ValidationError
from bolt_reviews.services import storefront
from bolt_reviews.services.reviews import record_vote, serialize_review
from bolt_reviews.uploads.service import encode_image_upload, first_photo

# Shopify app proxy path: /apps/bolt-reviews/* on the storefront domain
router = APIRouter(prefix="/apps/bolt-reviews/api/reviews", tags=["storefront"])

logger = logging.getLogger(__name__)


class HelpfulVote(BaseModel):
    helpful: StrictBool


def _require_product_id(product_id: Optional[uuid.UUID]) -> uuid.UUID:
    if product_id is None:
        raise ValidationError("Product ID is required")
    return product_id


# =====================================================
# PUBLIC: LIST PUBLISHED REVIEWS
# =====================================================
@router.get("")
def list_reviews(
    db: Session = Depends(get_db),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    rating: Optional[int] = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return storefront.list_published(
        db,
        _require_product_id(product_id),
        rating=rating,
        page=page,
        limit=limit,
    )


# =====================================================
# PUBLIC: RATING SUMMARY
# =====================================================
@router.get("/summary")
def review_summary(
    db: Session = Depends(get_db),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
):
    return storefront.rating_summary(db, _require_product_id(product_id))


# =====================================================
# PUBLIC: SUBMIT REVIEW (multipart)
# =====================================================
@router.post("")
async def submit_review(request: Request, db: Session = Depends(get_db)):
    form = await request.form()

    data = {
        "product_id": form.get("productId"),
        "shop_id": form.get("shopId"),
        "rating": form.get("rating"),
        "title": form.get("title"),
        "content": form.get("content"),
        "customer_name": form.get("customerName"),
        "customer_email": form.get("customerEmail"),
        "is_verified": form.get("verified") == "true",
    }

    photo = first_photo(form)
    image_url = await encode_image_upload(photo) if photo else None

    try:
        review = storefront.submit_review(db, data, image_url=image_url)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Storefront review submit failed")
        raise PersistenceFailure("Failed to submit review", str(e))

    return {
        "success": True,
        "review": serialize_review(review, include_product=False),
        "message": "Review submitted successfully and is pending approval",
    }


# =====================================================
# PUBLIC: HELPFUL / NOT HELPFUL
# =====================================================
@router.post("/{review_id}/helpful")
def mark_helpful(
    review_id: uuid.UUID,
    payload: HelpfulVote,
    db: Session = Depends(get_db),
):
    try:
        review = record_vote(db, review_id, payload.helpful)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Helpful vote failed | review_id=%s", review_id)
        raise PersistenceFailure("Failed to update review", str(e))

    return {
        "success": True,
        "helpfulCount": review.helpful,
        "notHelpfulCount": review.not_helpful,
    }
