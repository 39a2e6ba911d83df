"""
CSV import / export of reviews.

Import format
-------------
Required headers:
  - Product Handle: the product URL handle (e.g. "my-product-name")
  - Customer Name
  - Rating: integer 1-5
  - Review Title
  - Review Content

Optional headers:
  - Customer Email
  - Status: "pending", "published" or "rejected" (default: from shop settings)
  - Verified Purchase: "Yes"/"True" (default: No)
  - Helpful Votes, Not Helpful Votes: non-negative integers (default: 0)
  - Image URL

Products must already be synced before their reviews can be imported.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session, joinedload

from bolt_reviews.errors import ValidationError
from bolt_reviews.models import Product, Review, ReviewStatus, REVIEW_STATUSES
from bolt_reviews.services.reviews import get_settings, initial_status, iso
from bolt_reviews.services.stats import recompute_stats
from bolt_reviews.utils.csv_codec import parse_row, quote, split_lines, write_csv

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = [
    "Product Handle",
    "Customer Name",
    "Rating",
    "Review Title",
    "Review Content",
]

IMPORT_HEADERS = [
    "Product Handle",
    "Customer Name",
    "Customer Email",
    "Rating",
    "Review Title",
    "Review Content",
    "Status",
    "Verified Purchase",
    "Helpful Votes",
    "Not Helpful Votes",
    "Image URL",
]

EXPORT_HEADERS = [
    "Review ID",
    "Product Title",
    "Product Handle",
    "Customer Name",
    "Customer Email",
    "Rating",
    "Review Title",
    "Review Content",
    "Status",
    "Verified Purchase",
    "Helpful Votes",
    "Not Helpful Votes",
    "Image URL",
    "Created At",
    "Updated At",
]

TEMPLATE_ROWS = [
    [
        "product-handle-1",
        "John Doe",
        "john@example.com",
        "5",
        "Amazing product!",
        "This product exceeded my expectations. Highly recommend it to everyone!",
        "published",
        "Yes",
        "0",
        "0",
        "",
    ],
    [
        "product-handle-2",
        "Jane Smith",
        "jane@example.com",
        "4",
        "Pretty good",
        "Good quality product. Delivery was fast and packaging was secure.",
        "pending",
        "No",
        "0",
        "0",
        "",
    ],
    [
        "product-handle-1",
        "Mike Johnson",
        "",
        "3",
        "It's okay",
        "Average product. Does the job but nothing special.",
        "published",
        "Yes",
        "0",
        "0",
        "",
    ],
]

MAX_REPORTED_ERRORS = 10


class RowSkipped(Exception):
    pass


def _vote_count(value) -> int:
    """Non-negative vote counter; anything else counts as 0."""
    try:
        return max(0, int(value or 0))
    except ValueError:
        return 0


def _parse_rating(value: str) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise RowSkipped("Invalid rating (must be 1-5)")
    if not 1 <= rating <= 5:
        raise RowSkipped("Invalid rating (must be 1-5)")
    return rating


# =====================================================
# IMPORT
# =====================================================

def import_reviews(db: Session, shop: str, content: str) -> dict:
    lines = split_lines(content)
    if len(lines) < 2:
        raise ValidationError("CSV file is empty or invalid")

    headers = parse_row(lines[0])
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise ValidationError(f"Missing required headers: {', '.join(missing)}")

    settings = get_settings(db, shop)

    imported = 0
    skipped = 0
    errors = []

    for line_number, line in enumerate(lines[1:], start=2):
        try:
            values = parse_row(line)
            if len(values) != len(headers):
                raise RowSkipped("Column count mismatch")

            row = dict(zip(headers, values))
            rating = _parse_rating(row["Rating"])

            handle = row["Product Handle"]
            product = (
                db.query(Product)
                .filter(Product.handle == handle, Product.shop_id == shop)
                .first()
            )
            if not product:
                raise RowSkipped(f'Product with handle "{handle}" not found')

            status = initial_status(settings, rating)
            csv_status = (row.get("Status") or "").lower()
            if csv_status in REVIEW_STATUSES:
                status = csv_status

            verified = (row.get("Verified Purchase") or "").lower()

            db.add(
                Review(
                    product_id=product.id,
                    shop_id=shop,
                    customer_name=row["Customer Name"],
                    customer_email=row.get("Customer Email") or None,
                    rating=rating,
                    title=row["Review Title"],
                    content=row["Review Content"],
                    status=status,
                    is_verified=verified in ("yes", "true"),
                    helpful=_vote_count(row.get("Helpful Votes")),
                    not_helpful=_vote_count(row.get("Not Helpful Votes")),
                    image_url=row.get("Image URL") or None,
                )
            )
            db.commit()

            if status == ReviewStatus.published.value:
                recompute_stats(db, product.id)

            imported += 1

        except RowSkipped as e:
            skipped += 1
            errors.append(f"Row {line_number}: {e}")
        except Exception as e:
            db.rollback()
            skipped += 1
            errors.append(f"Row {line_number}: {e}")
            logger.warning("Review import row failed | shop=%s | row=%s | error=%s", shop, line_number, e)

    logger.info(
        "Review import finished | shop=%s | imported=%s | skipped=%s",
        shop,
        imported,
        skipped,
    )

    return {
        "imported": imported,
        "skipped": skipped,
        "errors": errors[:MAX_REPORTED_ERRORS],
        "totalErrors": len(errors),
    }


# =====================================================
# EXPORT
# =====================================================

def export_row(review: Review) -> list:
    return [
        str(review.id),
        quote(review.product.title),
        review.product.handle,
        quote(review.customer_name),
        quote(review.customer_email) if review.customer_email else "",
        review.rating,
        quote(review.title),
        quote(review.content),
        review.status,
        "Yes" if review.is_verified else "No",
        review.helpful,
        review.not_helpful,
        quote(review.image_url) if review.image_url else "",
        iso(review.created_at),
        iso(review.updated_at),
    ]


def export_reviews(db: Session, shop: str, product_id=None) -> tuple[str, str]:
    """Returns (csv_content, filename)."""
    query = (
        db.query(Review)
        .options(joinedload(Review.product))
        .filter(Review.shop_id == shop)
    )
    if product_id:
        query = query.filter(Review.product_id == product_id)

    reviews = query.order_by(Review.created_at.desc()).all()
    content = write_csv(EXPORT_HEADERS, [export_row(r) for r in reviews])

    today = datetime.now(timezone.utc).date().isoformat()
    scope = "product" if product_id else "all"
    return content, f"reviews-{scope}-{today}.csv"


def template_csv() -> str:
    return write_csv(
        IMPORT_HEADERS,
        [[quote(cell) for cell in row] for row in TEMPLATE_ROWS],
    )
