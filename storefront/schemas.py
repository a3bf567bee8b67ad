"""
Pydantic request schemas for the storefront API.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class PartialModel(BaseModel):
    """Base for PUT bodies where only the provided fields are applied.

    Fields listed in `not_null` back NOT NULL columns: they may be omitted
    but not sent as an explicit null.
    """

    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = sorted(
            name
            for name in self.not_null
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} may not be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Products


class VariantPayload(BaseModel):
    sku: str = Field(..., min_length=1, max_length=64)
    title: Optional[str] = None
    price_cents: int = Field(default=0, ge=0)
    compare_at_price_cents: Optional[int] = Field(default=None, ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    stock_quantity: int = Field(default=0, ge=0)


class ProductImagePayload(BaseModel):
    media_id: str
    sort_order: Optional[int] = None


class ProductCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1, max_length=300)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    category_id: Optional[str] = None
    published: bool = False
    publish_at: Optional[datetime] = None
    unpublish_at: Optional[datetime] = None
    variants: list[VariantPayload] = Field(default_factory=list)
    images: list[ProductImagePayload] = Field(default_factory=list)


class ProductUpdate(PartialModel):
    not_null = ("slug", "title", "published", "variants", "images")

    slug: Optional[str] = Field(default=None, min_length=1, max_length=200)
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    category_id: Optional[str] = None
    published: Optional[bool] = None
    publish_at: Optional[datetime] = None
    unpublish_at: Optional[datetime] = None
    variants: Optional[list[VariantPayload]] = None
    images: Optional[list[ProductImagePayload]] = None


class ProductSearchRequest(BaseModel):
    query: str = Field(..., min_length=1)


class VariantStockUpdate(BaseModel):
    stock_quantity: int = Field(..., ge=0)


# Media


class PresignRequest(BaseModel):
    filename: str
    content_type: str
    kind: Literal["product", "banner", "category"] = "product"


# Categories


class CategoryCreate(BaseModel):
    slug: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0
    image_id: Optional[str] = None


class CategoryUpdate(PartialModel):
    not_null = ("slug", "name", "sort_order")

    slug: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None
    image_id: Optional[str] = None


# Banners


class BannerCreate(BaseModel):
    title: str = Field(..., min_length=1)
    desktop_image_url: str = Field(..., min_length=1)
    laptop_image_url: Optional[str] = None
    mobile_image_url: Optional[str] = None
    link_url: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


class BannerUpdate(PartialModel):
    not_null = ("title", "desktop_image_url", "is_active", "sort_order")

    title: Optional[str] = Field(default=None, min_length=1)
    desktop_image_url: Optional[str] = Field(default=None, min_length=1)
    laptop_image_url: Optional[str] = None
    mobile_image_url: Optional[str] = None
    link_url: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


class NewsletterSubscribe(BaseModel):
    email: EmailStr


# Offers

DiscountType = Literal["percentage", "fixed"]
AppliesTo = Literal["all", "products", "categories", "collections"]


class OfferCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    applies_to: AppliesTo = "all"
    applies_to_ids: list[str] = Field(default_factory=list)
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


class OfferUpdate(PartialModel):
    not_null = ("title", "discount_type", "discount_value", "applies_to", "is_active")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(default=None, ge=0)
    applies_to: Optional[AppliesTo] = None
    applies_to_ids: Optional[list[str]] = None
    min_order_amount: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


# Settings

SettingType = Literal["string", "number", "boolean", "json"]


class SettingCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=200)
    value: str = ""
    type: SettingType = "string"
    description: Optional[str] = None


class SettingUpdate(PartialModel):
    not_null = ("value", "type")

    value: Optional[str] = None
    type: Optional[SettingType] = None
    description: Optional[str] = None


# Users


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool = True
    roles: list[str] = Field(default_factory=list)


class UserUpdate(PartialModel):
    not_null = ("email", "is_active")

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: Optional[bool] = None
    roles: Optional[list[str]] = None


# Orders


class Address(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pin_code: Optional[str] = None


class OrderLineItemPayload(BaseModel):
    product_id: str
    variant_id: Optional[int] = None
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class OrderCreate(BaseModel):
    user_id: Optional[int] = None
    currency: str = Field(default="INR", min_length=3, max_length=3)
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    line_items: list[OrderLineItemPayload] = Field(..., min_length=1)
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    notes: Optional[str] = None


class OrderUpdate(PartialModel):
    not_null = ("status",)

    status: Optional[
        Literal["pending", "processing", "shipped", "delivered", "cancelled"]
    ] = None
    shipping_address: Optional[Address] = None
    billing_address: Optional[Address] = None
    notes: Optional[str] = None


# Auth


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: Optional[str] = None
    remember_me: bool = Field(default=False, alias="rememberMe")


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken")


class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    new_password: str = Field(..., min_length=8, alias="newPassword")


# Cart, wishlist and stock notifications


class CartAddRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class WishlistToggleRequest(BaseModel):
    product_id: str


class StockNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(default=None, alias="productId")
    product_slug: str = Field(..., min_length=1, alias="productSlug")
    notification_type: Literal["email", "mobile"] = Field(
        ..., alias="notificationType"
    )
    email: Optional[EmailStr] = None
    mobile_number: Optional[str] = Field(default=None, alias="mobileNumber")
