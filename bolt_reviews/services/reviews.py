import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from bolt_reviews.errors import NotFoundError, ValidationError
from bolt_reviews.models import (
    Product,
    Review,
    ReviewStatus,
    REVIEW_STATUSES,
    Settings,
)
from bolt_reviews.services.stats import recompute_stats

logger = logging.getLogger(__name__)

BULK_ACTIONS = {
    "publish": ReviewStatus.published.value,
    "unpublish": ReviewStatus.pending.value,
    "reject": ReviewStatus.rejected.value,
    "delete": None,
}

BULK_PAST_TENSE = {
    "publish": "published",
    "unpublish": "unpublished",
    "reject": "rejected",
    "delete": "deleted",
}

UPDATABLE_FIELDS = (
    "customer_name",
    "customer_email",
    "rating",
    "title",
    "content",
    "status",
    "is_verified",
    "image_url",
)

NON_NULLABLE_FIELDS = ("customer_name", "title", "content", "is_verified")


# =====================================================
# HELPERS
# =====================================================

def iso(value):
    return value.isoformat() if value else None


def serialize_product_summary(product: Product) -> dict:
    return {
        "id": str(product.id),
        "title": product.title,
        "handle": product.handle,
        "imageUrl": product.image_url,
        "shopifyProductId": product.shopify_product_id,
    }


def serialize_review(review: Review, include_product: bool = True) -> dict:
    data = {
        "id": str(review.id),
        "productId": str(review.product_id),
        "shopId": review.shop_id,
        "customerName": review.customer_name,
        "customerEmail": review.customer_email,
        "rating": review.rating,
        "title": review.title,
        "content": review.content,
        "status": review.status,
        "isVerified": review.is_verified,
        "imageUrl": review.image_url,
        "helpful": review.helpful,
        "notHelpful": review.not_helpful,
        "createdAt": iso(review.created_at),
        "updatedAt": iso(review.updated_at),
    }
    if include_product and review.product is not None:
        data["product"] = serialize_product_summary(review.product)
    return data


def validate_rating(rating) -> int:
    # bool is an int subclass; True must not pass as a rating of 1
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def validate_status(value: str) -> str:
    if value not in REVIEW_STATUSES:
        raise ValidationError("Status must be 'pending', 'published', or 'rejected'")
    return value


def escape_like(value: str) -> str:
    """Literal substring for LIKE: backslash, % and _ lose their wildcard meaning."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_settings(db: Session, shop: str) -> Optional[Settings]:
    return db.query(Settings).filter(Settings.shop_id == shop).first()


def initial_status(settings: Optional[Settings], rating: int) -> str:
    """Settings-driven status for a newly created review."""
    if settings and settings.auto_publish:
        if rating >= (settings.min_rating_to_publish or 1):
            return ReviewStatus.published.value
    return ReviewStatus.pending.value


def get_owned_review(db: Session, shop: str, review_id) -> Review:
    review = (
        db.query(Review)
        .filter(Review.id == review_id, Review.shop_id == shop)
        .first()
    )
    if not review:
        raise NotFoundError("Review not found or does not belong to this shop")
    return review


# =====================================================
# LIST / FILTER
# =====================================================

@dataclass
class ReviewFilter:
    status: Optional[str] = None
    product_id: Optional[object] = None
    rating: Optional[str] = None
    search: Optional[str] = None

    def apply(self, query):
        if self.status and self.status != "all":
            query = query.filter(Review.status == self.status)

        if self.product_id:
            query = query.filter(Review.product_id == self.product_id)

        if self.rating:
            if self.rating == "low":
                query = query.filter(Review.rating <= 2)
            else:
                try:
                    query = query.filter(Review.rating == int(self.rating))
                except ValueError:
                    raise ValidationError("Rating filter must be 'low' or an integer")

        if self.search:
            pattern = f"%{escape_like(self.search)}%"
            query = query.filter(
                or_(
                    Review.customer_name.ilike(pattern, escape="\\"),
                    Review.title.ilike(pattern, escape="\\"),
                    Review.content.ilike(pattern, escape="\\"),
                )
            )

        return query


def status_counts(db: Session, shop: str) -> dict:
    rows = (
        db.query(Review.status, func.count(Review.id))
        .filter(Review.shop_id == shop)
        .group_by(Review.status)
        .all()
    )

    counts = {status: 0 for status in REVIEW_STATUSES}
    for status, count in rows:
        if status in counts:
            counts[status] = count

    return {"all": sum(counts.values()), **counts}


def list_reviews(
    db: Session,
    shop: str,
    filters: ReviewFilter,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    query = filters.apply(db.query(Review).filter(Review.shop_id == shop))

    total = query.count()
    reviews = (
        query.options(joinedload(Review.product))
        .order_by(Review.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "reviews": [serialize_review(r) for r in reviews],
        "counts": status_counts(db, shop),
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    }


def list_product_reviews(
    db: Session,
    shop: str,
    product_id,
    status: str = "published",
    limit: int = 50,
    offset: int = 0,
) -> dict:
    query = ReviewFilter(status=status, product_id=product_id).apply(
        db.query(Review).filter(Review.shop_id == shop)
    )

    total = query.count()
    reviews = (
        query.options(joinedload(Review.product))
        .order_by(Review.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "reviews": [serialize_review(r) for r in reviews],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    }


# =====================================================
# CREATE / UPDATE / STATUS / DELETE
# =====================================================

def create_review(db: Session, shop: str, data: dict) -> Review:
    required = ("product_id", "customer_name", "rating", "title", "content")
    if any(not data.get(field) for field in required):
        raise ValidationError(
            "Missing required fields: productId, customerName, rating, title, content"
        )

    rating = validate_rating(data["rating"])

    product = (
        db.query(Product)
        .filter(Product.id == data["product_id"], Product.shop_id == shop)
        .first()
    )
    if not product:
        raise NotFoundError("Product not found or does not belong to this shop")

    status = initial_status(get_settings(db, shop), rating)

    review = Review(
        product_id=product.id,
        shop_id=shop,
        customer_name=data["customer_name"],
        customer_email=data.get("customer_email") or None,
        rating=rating,
        title=data["title"],
        content=data["content"],
        status=status,
        is_verified=bool(data.get("is_verified")),
        image_url=data.get("image_url") or None,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    if status == ReviewStatus.published.value:
        recompute_stats(db, product.id)
        db.refresh(review)

    logger.info("Review created | shop=%s | review_id=%s | status=%s", shop, review.id, status)
    return review


def update_review(db: Session, shop: str, review_id, changes: dict) -> Review:
    review = get_owned_review(db, shop, review_id)

    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if not changes:
        raise ValidationError("No fields to update")

    if "rating" in changes:
        validate_rating(changes["rating"])
    if "status" in changes:
        validate_status(changes["status"])
    for field in NON_NULLABLE_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")

    for field, value in changes.items():
        setattr(review, field, value)

    db.commit()

    if "rating" in changes or "status" in changes:
        recompute_stats(db, review.product_id)

    db.refresh(review)
    return review


def set_publication(db: Session, shop: str, review_id, action: str) -> Review:
    if action == "publish":
        new_status = ReviewStatus.published.value
    elif action == "unpublish":
        new_status = ReviewStatus.pending.value
    else:
        raise ValidationError("Invalid action. Must be 'publish' or 'unpublish'")

    review = get_owned_review(db, shop, review_id)
    review.status = new_status
    db.commit()

    recompute_stats(db, review.product_id)
    db.refresh(review)
    return review


def delete_review(db: Session, shop: str, review_id) -> None:
    review = get_owned_review(db, shop, review_id)
    product_id = review.product_id

    db.delete(review)
    db.commit()

    recompute_stats(db, product_id)
    logger.info("Review deleted | shop=%s | review_id=%s", shop, review_id)


# =====================================================
# BULK
# =====================================================

def bulk_action(db: Session, shop: str, review_ids, action: str) -> int:
    if not review_ids:
        raise ValidationError("reviewIds array is required and must not be empty")

    if action not in BULK_ACTIONS:
        raise ValidationError(
            "Invalid action. Must be 'publish', 'unpublish', 'delete', or 'reject'"
        )

    ids = list(dict.fromkeys(review_ids))

    owned = (
        db.query(Review.id, Review.product_id)
        .filter(Review.id.in_(ids), Review.shop_id == shop)
        .all()
    )
    if len(owned) != len(ids):
        raise NotFoundError("Some reviews not found or do not belong to this shop")

    affected_products = list(dict.fromkeys(product_id for _, product_id in owned))

    query = db.query(Review).filter(Review.id.in_(ids))
    if action == "delete":
        affected = query.delete(synchronize_session=False)
    else:
        affected = query.update(
            {Review.status: BULK_ACTIONS[action]},
            synchronize_session=False,
        )
    db.commit()

    # reject is included: a rejected review may have been published before
    for product_id in affected_products:
        recompute_stats(db, product_id)

    logger.info(
        "Bulk review action | shop=%s | action=%s | affected=%s | products=%s",
        shop,
        action,
        affected,
        len(affected_products),
    )
    return affected


# =====================================================
# HELPFUL VOTES (storefront)
# =====================================================

def record_vote(db: Session, review_id, helpful: bool) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise NotFoundError("Review not found")

    if helpful:
        review.helpful = Review.helpful + 1
    else:
        review.not_helpful = Review.not_helpful + 1

    db.commit()
    db.refresh(review)
    return review
