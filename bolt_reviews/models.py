import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from bolt_reviews.database import Base


def utcnow():
    return datetime.now(timezone.utc)


# =========================
# ENUMS
# =========================

class ReviewStatus(str, enum.Enum):
    pending = "pending"
    published = "published"
    rejected = "rejected"


REVIEW_STATUSES = tuple(s.value for s in ReviewStatus)


# =========================
# PRODUCT (local mirror of the Shopify catalog)
# =========================

class Product(Base):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    shopify_product_id = Column(String, nullable=False)
    shop_id = Column(String, nullable=False, index=True)

    title = Column(String, nullable=False)
    handle = Column(String, nullable=False)
    image_url = Column(String)

    review_count = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    reviews = relationship(
        "Review",
        back_populates="product",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_product_id", name="uq_products_shop_external_id"),
        Index("idx_products_shop_handle", "shop_id", "handle"),
    )


# =========================
# REVIEW
# =========================

class Review(Base):
    __tablename__ = "reviews"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    product_id = Column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shop_id = Column(String, nullable=False, index=True)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String)

    rating = Column(Integer, nullable=False)  # 1-5
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)

    status = Column(String, nullable=False, default=ReviewStatus.pending.value, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    image_url = Column(Text)

    helpful = Column(Integer, nullable=False, default=0)
    not_helpful = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product = relationship("Product", back_populates="reviews")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_shop_created", "shop_id", "created_at"),
    )


# =========================
# SETTINGS (one row per shop)
# =========================

class Settings(Base):
    __tablename__ = "settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(String, nullable=False, unique=True)

    auto_publish = Column(Boolean, nullable=False, default=False)
    require_moderation = Column(Boolean, nullable=False, default=True)
    allow_guest_reviews = Column(Boolean, nullable=False, default=True)
    require_verified_purchase = Column(Boolean, nullable=False, default=False)
    min_rating_to_publish = Column(Integer, nullable=False, default=1)
    enable_review_images = Column(Boolean, nullable=False, default=True)
    email_notifications = Column(Boolean, nullable=False, default=True)
    notification_email = Column(String)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


DEFAULT_SETTINGS = {
    "auto_publish": False,
    "require_moderation": True,
    "allow_guest_reviews": True,
    "require_verified_purchase": False,
    "min_rating_to_publish": 1,
    "enable_review_images": True,
    "email_notifications": True,
}


# =========================
# SHOP SESSION (offline access tokens)
# =========================

class ShopSession(Base):
    __tablename__ = "shop_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop = Column(String, nullable=False, unique=True, index=True)
    access_token = Column(String, nullable=False)
    scope = Column(String)

    created_at = Column(DateTime(timezone=True), default=utcnow)
