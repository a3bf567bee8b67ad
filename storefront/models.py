"""
SQLAlchemy table definitions for the storefront.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class MediaRow(Base):
    __tablename__ = "media"

    id = Column(String(36), primary_key=True, default=new_id)
    path = Column(String, nullable=False)
    mime = Column(String, nullable=True)
    size_bytes = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    alt = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    sort_order = Column(Integer, nullable=False, default=0)
    image_id = Column(
        String(36), ForeignKey("media.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=False)
    subtitle = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    brand = Column(String, nullable=True)
    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    published = Column(Boolean, nullable=False, default=False)
    publish_at = Column(DateTime, nullable=True)
    unpublish_at = Column(DateTime, nullable=True)
    search_text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class VariantRow(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    compare_at_price_cents = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="INR")
    stock_quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class ProductImageRow(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    media_id = Column(
        String(36), ForeignKey("media.id", ondelete="CASCADE"), nullable=False
    )
    sort_order = Column(Integer, nullable=False, default=0)


class BannerRow(Base):
    __tablename__ = "banners"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    desktop_image_url = Column(String, nullable=False)
    laptop_image_url = Column(String, nullable=True)
    mobile_image_url = Column(String, nullable=True)
    link_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class OfferRow(Base):
    __tablename__ = "offers"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String, nullable=False)
    discount_value = Column(Float, nullable=False, default=0.0)
    applies_to = Column(String, nullable=False, default="all")
    applies_to_ids = Column(Text, nullable=True)
    min_order_amount = Column(Float, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class SettingRow(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False, default="string")
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class RoleRow(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)


class UserRoleRow(Base):
    __tablename__ = "user_roles"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id = Column(
        Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )


class RefreshTokenRow(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash = Column(String(64), nullable=False, unique=True)
    remember_me = Column(Boolean, nullable=False, default=False)
    ip = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String, nullable=False, unique=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status = Column(String, nullable=False, default="pending")
    currency = Column(String(3), nullable=False, default="INR")
    subtotal = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    shipping_amount = Column(Float, nullable=False, default=0.0)
    discount_amount = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    shipping_address = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class OrderLineItemRow(Base):
    __tablename__ = "order_line_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(String(36), nullable=False)
    variant_id = Column(Integer, nullable=True)
    title = Column(String, nullable=False, default="")
    sku = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)


class CartItemRow(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String, nullable=False, index=True)
    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    variant_id = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price_cents = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class WishlistItemRow(Base):
    __tablename__ = "wishlist_items"
    __table_args__ = (UniqueConstraint("session_id", "product_id"),)

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String, nullable=False, index=True)
    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)


class NewsletterSubscriberRow(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class StockNotificationRow(Base):
    __tablename__ = "stock_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(36), nullable=False, index=True)
    product_slug = Column(String, nullable=False)
    email = Column(String, nullable=True)
    mobile_number = Column(String, nullable=True)
    notification_type = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_notified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class AuditLogRow(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_user_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)
    object_type = Column(String, nullable=False, index=True)
    object_id = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
