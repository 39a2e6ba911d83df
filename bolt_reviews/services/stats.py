from sqlalchemy import func
from sqlalchemy.orm import Session

from bolt_reviews.models import Product, Review, ReviewStatus


def recompute_stats(db: Session, product_id) -> None:
    """
    Full recomputation of a product's published review count and mean rating.
    Must run after the triggering write has been flushed.
    """
    db.flush()

    count, average = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(
            Review.product_id == product_id,
            Review.status == ReviewStatus.published.value,
        )
        .one()
    )

    db.query(Product).filter(Product.id == product_id).update(
        {
            Product.review_count: count or 0,
            Product.average_rating: float(average) if average else 0.0,
        },
        synchronize_session="fetch",
    )
    db.commit()
