import math
import uuid
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from bolt_reviews.errors import NotFoundError, ValidationError
from bolt_reviews.models import Product, Review, ReviewStatus
from bolt_reviews.services.reviews import get_settings, iso
from bolt_reviews.utils.email import send_new_review_notification

logger = logging.getLogger(__name__)

REQUIRED_SUBMIT_FIELDS = ("product_id", "shop_id", "rating", "title", "content", "customer_name")


def public_review(review: Review) -> dict:
    """Storefront projection: no shop-internal or contact fields."""
    return {
        "id": str(review.id),
        "rating": review.rating,
        "title": review.title,
        "content": review.content,
        "customerName": review.customer_name,
        "isVerified": review.is_verified,
        "imageUrl": review.image_url,
        "helpful": review.helpful,
        "notHelpful": review.not_helpful,
        "createdAt": iso(review.created_at),
        "updatedAt": iso(review.updated_at),
    }


def _published(db: Session, product_id):
    return db.query(Review).filter(
        Review.product_id == product_id,
        Review.status == ReviewStatus.published.value,
    )


# =====================================================
# LIST
# =====================================================

def list_published(
    db: Session,
    product_id,
    rating: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    page = max(page, 1)
    limit = max(limit, 1)

    query = _published(db, product_id)
    if rating is not None:
        query = query.filter(Review.rating == rating)

    total = query.count()
    reviews = (
        query.order_by(Review.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "reviews": [public_review(r) for r in reviews],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


# =====================================================
# SUMMARY
# =====================================================

def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def rating_summary(db: Session, product_id) -> dict:
    rows = (
        db.query(Review.rating, func.count(Review.id))
        .filter(
            Review.product_id == product_id,
            Review.status == ReviewStatus.published.value,
        )
        .group_by(Review.rating)
        .all()
    )

    distribution = {star: 0 for star in range(1, 6)}
    for rating, count in rows:
        distribution[rating] = count

    total = sum(distribution.values())
    if not total:
        return {"totalReviews": 0, "averageRating": 0, "distribution": distribution}

    average = sum(star * count for star, count in distribution.items()) / total
    return {
        "totalReviews": total,
        "averageRating": round_half_up(average),
        "distribution": distribution,
    }


# =====================================================
# SUBMIT
# =====================================================

def parse_submitted_rating(value) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def submit_review(db: Session, data: dict, image_url: Optional[str] = None) -> Review:
    """
    Storefront submissions always start as pending.
    The product is resolved inside the submitted shop.
    """
    if any(not data.get(field) for field in REQUIRED_SUBMIT_FIELDS):
        raise ValidationError("Missing required fields")

    rating = parse_submitted_rating(data["rating"])
    shop = data["shop_id"]

    try:
        product_id = uuid.UUID(str(data["product_id"]))
    except ValueError:
        raise NotFoundError("Product not found")

    product = (
        db.query(Product)
        .filter(Product.id == product_id, Product.shop_id == shop)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")

    review = Review(
        product_id=product.id,
        shop_id=shop,
        rating=rating,
        title=data["title"],
        content=data["content"],
        customer_name=data["customer_name"],
        customer_email=data.get("customer_email") or None,
        is_verified=bool(data.get("is_verified")),
        image_url=image_url,
        status=ReviewStatus.pending.value,
        helpful=0,
        not_helpful=0,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info("Storefront review submitted | shop=%s | review_id=%s", shop, review.id)

    notify_merchant(db, shop, product, review)
    return review


def notify_merchant(db: Session, shop: str, product: Product, review: Review) -> None:
    settings = get_settings(db, shop)
    if not settings or not settings.email_notifications or not settings.notification_email:
        return

    sent = send_new_review_notification(
        to_email=settings.notification_email,
        shop=shop,
        product_title=product.title,
        review=review,
    )
    if not sent:
        logger.warning(
            "New review notification not sent | shop=%s | review_id=%s",
            shop,
            review.id,
        )
