"""
Database access for the storefront.

`DbClient` accepts any SQLAlchemy URL: Postgres in production, SQLite for
local runs and tests. Methods return plain dicts so routes can shape the
JSON responses without touching ORM rows.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import case, create_engine, delete, func, or_, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.models import (
    AuditLogRow,
    BannerRow,
    Base,
    CartItemRow,
    CategoryRow,
    MediaRow,
    NewsletterSubscriberRow,
    OfferRow,
    OrderLineItemRow,
    OrderRow,
    ProductImageRow,
    ProductRow,
    RefreshTokenRow,
    RoleRow,
    SettingRow,
    StockNotificationRow,
    UserRoleRow,
    UserRow,
    VariantRow,
    WishlistItemRow,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)

STAFF_ROLES = ("SuperAdmin", "Admin", "Editor", "Support")
DEFAULT_ROLES = {
    "SuperAdmin": "Full system access",
    "Admin": "Administrative access",
    "Editor": "Catalog and content editing",
    "Support": "Customer support access",
    "customer": "Storefront customer",
}
PUBLIC_SETTING_KEYS = ("store_name", "store_description", "currency", "contact_email")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


class ConflictError(Exception):
    """Raised when a write violates a unique constraint."""


def iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to the naive UTC form stored in the DB."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_cursor_time(cursor: Optional[str]) -> Optional[datetime]:
    if not cursor:
        return None
    try:
        parsed = datetime.fromisoformat(cursor.replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_utc(parsed)


def is_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def build_search_text(*parts: Optional[str]) -> str:
    return " ".join(p.strip().lower() for p in parts if p and p.strip())


def active_window(starts_col, ends_col, now: datetime):
    return (
        or_(starts_col.is_(None), starts_col <= now),
        or_(ends_col.is_(None), ends_col >= now),
    )


class DbClient:
    """
    SQLAlchemy-backed store. Accepts any SQLAlchemy URL (Postgres, or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for DbClient")
        self.in_memory = database_url.startswith("sqlite") and ":memory:" in database_url
        if self.in_memory:
            # A single shared connection keeps the in-memory schema alive
            # across the threadpool FastAPI runs sync handlers on.
            self.engine = create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)
        self._seed_roles()

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def _seed_roles(self) -> None:
        with self.Session() as session:
            existing = set(session.execute(select(RoleRow.name)).scalars().all())
            for name, description in DEFAULT_ROLES.items():
                if name not in existing:
                    session.add(RoleRow(name=name, description=description))
            session.commit()

    def reset(self) -> None:
        """Drop and recreate all tables (useful in tests)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)
        self._seed_roles()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False

    def has_extension(self, name: str) -> bool:
        if self.dialect_name != "postgresql":
            return False
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    text("SELECT 1 FROM pg_extension WHERE extname = :name"),
                    {"name": name},
                ).first()
            return row is not None
        except SQLAlchemyError:
            logger.warning("Extension check for %s failed", name, exc_info=True)
            return False

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("a record with the same unique value already exists") from exc

    def _flush(self, session: Session) -> None:
        try:
            session.flush()
        except IntegrityError as exc:
            session.rollback()
            raise ConflictError("a record with the same unique value already exists") from exc

    # ------------------------------------------------------------------
    # Media

    def create_media(
        self,
        path: str,
        *,
        mime: Optional[str] = None,
        size_bytes: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        alt: Optional[str] = None,
    ) -> dict:
        with self.Session() as session:
            row = MediaRow(
                id=new_id(),
                path=path,
                mime=mime,
                size_bytes=size_bytes,
                width=width,
                height=height,
                alt=alt,
                created_at=utcnow(),
            )
            session.add(row)
            self._commit(session)
            return _media_dict(row)

    def get_media(self, media_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(MediaRow, media_id)
            return _media_dict(row) if row else None

    def list_media(self, limit: int = 100) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(MediaRow).order_by(MediaRow.created_at.desc()).limit(limit)
            ).scalars()
            return [_media_dict(row) for row in rows]

    def delete_media(self, media_id: str) -> Optional[str]:
        """Delete a media row and return its storage path."""
        with self.Session() as session:
            row = session.get(MediaRow, media_id)
            if not row:
                return None
            path = row.path
            session.execute(
                delete(ProductImageRow).where(ProductImageRow.media_id == media_id)
            )
            for category in session.execute(
                select(CategoryRow).where(CategoryRow.image_id == media_id)
            ).scalars():
                category.image_id = None
            session.delete(row)
            session.commit()
            return path

    # ------------------------------------------------------------------
    # Products

    def _first_image_paths(
        self, session: Session, product_ids: Iterable[str]
    ) -> dict[str, str]:
        ids = list(product_ids)
        if not ids:
            return {}
        rows = session.execute(
            select(ProductImageRow.product_id, MediaRow.path)
            .join(MediaRow, MediaRow.id == ProductImageRow.media_id)
            .where(ProductImageRow.product_id.in_(ids))
            .order_by(ProductImageRow.sort_order, ProductImageRow.id)
        ).all()
        paths: dict[str, str] = {}
        for product_id, path in rows:
            paths.setdefault(product_id, path)
        return paths

    def _variant_stats(self):
        return (
            select(
                VariantRow.product_id.label("product_id"),
                func.min(VariantRow.price_cents).label("price_cents"),
                func.min(VariantRow.currency).label("currency"),
                func.coalesce(func.sum(VariantRow.stock_quantity), 0).label("stock"),
            )
            .group_by(VariantRow.product_id)
            .subquery()
        )

    def _write_variants(
        self, session: Session, product_id: str, variants: list[dict]
    ) -> None:
        now = utcnow()
        for variant in variants:
            session.add(
                VariantRow(
                    product_id=product_id,
                    sku=variant["sku"],
                    title=variant.get("title"),
                    price_cents=variant.get("price_cents") or 0,
                    compare_at_price_cents=variant.get("compare_at_price_cents"),
                    currency=variant.get("currency") or "INR",
                    stock_quantity=variant.get("stock_quantity") or 0,
                    created_at=now,
                    updated_at=now,
                )
            )

    def _write_images(
        self, session: Session, product_id: str, images: list[dict]
    ) -> None:
        for index, image in enumerate(images):
            sort_order = image.get("sort_order")
            session.add(
                ProductImageRow(
                    product_id=product_id,
                    media_id=image["media_id"],
                    sort_order=index if sort_order is None else sort_order,
                )
            )

    def create_product(self, data: dict) -> str:
        now = utcnow()
        product_id = new_id()
        with self.Session() as session:
            row = ProductRow(
                id=product_id,
                slug=data["slug"],
                title=data["title"],
                subtitle=data.get("subtitle"),
                description=data.get("description"),
                brand=data.get("brand"),
                category_id=data.get("category_id"),
                published=bool(data.get("published")),
                publish_at=to_utc(data.get("publish_at")),
                unpublish_at=to_utc(data.get("unpublish_at")),
                created_at=now,
                updated_at=now,
            )
            row.search_text = build_search_text(
                row.title, row.subtitle, row.brand, row.description
            )
            session.add(row)
            self._flush(session)
            self._write_variants(session, product_id, data.get("variants") or [])
            self._write_images(session, product_id, data.get("images") or [])
            self._commit(session)
        return product_id

    def list_products_admin(self, limit: int = 200) -> list[dict]:
        stats = self._variant_stats()
        with self.Session() as session:
            rows = session.execute(
                select(ProductRow, stats.c.price_cents, stats.c.stock)
                .outerjoin(stats, stats.c.product_id == ProductRow.id)
                .order_by(ProductRow.created_at.desc())
                .limit(limit)
            ).all()
            images = self._first_image_paths(session, [r[0].id for r in rows])
            items = []
            for product, price_cents, stock in rows:
                item = _product_dict(product)
                item["price_cents"] = price_cents or 0
                item["stock_quantity"] = int(stock or 0)
                item["image_path"] = images.get(product.id)
                items.append(item)
            return items

    def get_product(self, product_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            if not row:
                return None
            variants = session.execute(
                select(VariantRow)
                .where(VariantRow.product_id == product_id)
                .order_by(VariantRow.id)
            ).scalars()
            images = session.execute(
                select(ProductImageRow, MediaRow.path)
                .join(MediaRow, MediaRow.id == ProductImageRow.media_id)
                .where(ProductImageRow.product_id == product_id)
                .order_by(ProductImageRow.sort_order, ProductImageRow.id)
            ).all()
            return {
                "product": _product_dict(row),
                "variants": [_variant_dict(v) for v in variants],
                "images": [
                    {
                        "id": image.id,
                        "media_id": image.media_id,
                        "sort_order": image.sort_order,
                        "path": path,
                    }
                    for image, path in images
                ],
            }

    def update_product(self, product_id: str, data: dict) -> bool:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            if not row:
                return False
            # Clear children before the row changes so autoflush sees no pending update.
            if data.get("variants") is not None:
                session.execute(
                    delete(VariantRow).where(VariantRow.product_id == product_id)
                )
            if data.get("images") is not None:
                session.execute(
                    delete(ProductImageRow).where(
                        ProductImageRow.product_id == product_id
                    )
                )
            for field_name in (
                "slug",
                "title",
                "subtitle",
                "description",
                "brand",
                "category_id",
                "published",
            ):
                if field_name in data:
                    setattr(row, field_name, data[field_name])
            for field_name in ("publish_at", "unpublish_at"):
                if field_name in data:
                    setattr(row, field_name, to_utc(data[field_name]))
            row.search_text = build_search_text(
                row.title, row.subtitle, row.brand, row.description
            )
            row.updated_at = utcnow()
            if data.get("variants") is not None:
                self._write_variants(session, product_id, data["variants"])
            if data.get("images") is not None:
                self._write_images(session, product_id, data["images"])
            self._commit(session)
            return True

    def delete_product(self, product_id: str) -> Optional[list[str]]:
        """Delete a product and its children, returning its image paths."""
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            if not row:
                return None
            paths = session.execute(
                select(MediaRow.path)
                .join(ProductImageRow, ProductImageRow.media_id == MediaRow.id)
                .where(ProductImageRow.product_id == product_id)
            ).scalars().all()
            for model in (
                ProductImageRow,
                VariantRow,
                CartItemRow,
                WishlistItemRow,
            ):
                session.execute(delete(model).where(model.product_id == product_id))
            session.delete(row)
            session.commit()
            return list(paths)

    def _published_filter(self, now: datetime):
        return (
            ProductRow.published.is_(True),
            or_(ProductRow.publish_at.is_(None), ProductRow.publish_at <= now),
        )

    def list_public_products(
        self,
        *,
        limit: int = 12,
        page: int = 1,
        search: str = "",
        sort: str = "",
        min_price_cents: Optional[int] = None,
        max_price_cents: Optional[int] = None,
        in_stock: bool = False,
        category_id: Optional[str] = None,
        category_slug: Optional[str] = None,
    ) -> tuple[list[dict], int]:
        stats = self._variant_stats()
        stmt = (
            select(
                ProductRow,
                stats.c.price_cents,
                stats.c.currency,
                stats.c.stock,
            )
            .outerjoin(stats, stats.c.product_id == ProductRow.id)
            .where(*self._published_filter(utcnow()))
        )
        if search:
            stmt = stmt.where(
                ProductRow.search_text.contains(search.lower(), autoescape=True)
            )
        if min_price_cents is not None:
            stmt = stmt.where(stats.c.price_cents >= min_price_cents)
        if max_price_cents is not None:
            stmt = stmt.where(stats.c.price_cents <= max_price_cents)
        if in_stock:
            stmt = stmt.where(stats.c.stock > 0)
        if category_id:
            stmt = stmt.where(ProductRow.category_id == category_id)
        elif category_slug:
            stmt = stmt.join(CategoryRow, CategoryRow.id == ProductRow.category_id).where(
                CategoryRow.slug == category_slug
            )

        order_by = {
            "price_asc": (stats.c.price_cents.asc(), ProductRow.created_at.desc()),
            "price_desc": (stats.c.price_cents.desc(), ProductRow.created_at.desc()),
            "name_asc": (ProductRow.title.asc(),),
            "name_desc": (ProductRow.title.desc(),),
        }.get(sort, (ProductRow.created_at.desc(),))

        with self.Session() as session:
            total = session.execute(
                select(func.count()).select_from(stmt.subquery())
            ).scalar_one()
            rows = session.execute(
                stmt.order_by(*order_by).limit(limit).offset((page - 1) * limit)
            ).all()
            images = self._first_image_paths(session, [r[0].id for r in rows])
            items = []
            for product, price_cents, currency, stock in rows:
                items.append(
                    {
                        "id": product.id,
                        "slug": product.slug,
                        "title": product.title,
                        "description": product.description,
                        "category_id": product.category_id,
                        "price_cents": price_cents or 0,
                        "currency": currency or "INR",
                        "image_path": images.get(product.id),
                        "stock_quantity": int(stock or 0),
                        "created_at": iso(product.created_at),
                    }
                )
            return items, total

    def get_public_product(self, slug: str) -> Optional[dict]:
        stats = self._variant_stats()
        with self.Session() as session:
            found = session.execute(
                select(ProductRow, stats.c.price_cents, stats.c.currency, stats.c.stock)
                .outerjoin(stats, stats.c.product_id == ProductRow.id)
                .where(ProductRow.slug == slug, *self._published_filter(utcnow()))
            ).first()
            if not found:
                return None
            product, price_cents, currency, stock = found
            images = session.execute(
                select(MediaRow.path, ProductImageRow.sort_order)
                .join(ProductImageRow, ProductImageRow.media_id == MediaRow.id)
                .where(ProductImageRow.product_id == product.id)
                .order_by(ProductImageRow.sort_order, ProductImageRow.id)
            ).all()
            result = _product_dict(product)
            result.update(
                {
                    "price_cents": price_cents or 0,
                    "currency": currency or "INR",
                    "stock_quantity": int(stock or 0),
                    "images": [
                        {"path": path, "sort_order": sort_order}
                        for path, sort_order in images
                    ],
                }
            )
            return result

    def related_products(self, slug: str, limit: int = 8) -> Optional[list[dict]]:
        stats = self._variant_stats()
        with self.Session() as session:
            product = session.execute(
                select(ProductRow).where(ProductRow.slug == slug)
            ).scalar_one_or_none()
            if not product:
                return None
            base = (
                select(ProductRow, stats.c.price_cents, stats.c.currency)
                .outerjoin(stats, stats.c.product_id == ProductRow.id)
                .where(ProductRow.id != product.id, *self._published_filter(utcnow()))
                .order_by(ProductRow.created_at.desc())
                .limit(limit)
            )
            rows = []
            if product.category_id:
                rows = session.execute(
                    base.where(ProductRow.category_id == product.category_id)
                ).all()
            if not rows:
                rows = session.execute(base).all()
            images = self._first_image_paths(session, [r[0].id for r in rows])
            return [
                {
                    "uuid_id": row.id,
                    "slug": row.slug,
                    "title": row.title,
                    "price_cents": price_cents or 0,
                    "currency": currency or "INR",
                    "image_path": images.get(row.id),
                }
                for row, price_cents, currency in rows
            ]

    def simple_search_products(self, query: str, limit: int = 50) -> list[dict]:
        pattern = f"%{query.lower()}%"
        with self.Session() as session:
            rows = session.execute(
                select(ProductRow)
                .where(
                    *self._published_filter(utcnow()),
                    or_(
                        func.lower(ProductRow.title).like(pattern),
                        func.lower(func.coalesce(ProductRow.description, "")).like(
                            pattern
                        ),
                    ),
                )
                .order_by(ProductRow.created_at.desc())
                .limit(limit)
            ).scalars().all()
            return [
                {
                    "uuid_id": row.id,
                    "slug": row.slug,
                    "title": row.title,
                    "description": row.description,
                }
                for row in rows
            ]

    def out_of_stock_products(self) -> list[dict]:
        in_stock = (
            select(VariantRow.id)
            .where(
                VariantRow.product_id == ProductRow.id,
                VariantRow.stock_quantity > 0,
            )
            .exists()
        )
        with self.Session() as session:
            rows = session.execute(
                select(ProductRow)
                .where(ProductRow.published.is_(True), ~in_stock)
                .order_by(ProductRow.updated_at.desc())
            ).scalars().all()
            images = self._first_image_paths(session, [r.id for r in rows])
            items = []
            for row in rows:
                variants = session.execute(
                    select(VariantRow)
                    .where(VariantRow.product_id == row.id)
                    .order_by(VariantRow.id)
                ).scalars().all()
                item = _product_dict(row)
                item["total_stock"] = sum(v.stock_quantity for v in variants)
                item["image_path"] = images.get(row.id)
                item["variants"] = [_variant_dict(v) for v in variants]
                items.append(item)
            return items

    def update_variant_stock(
        self, product_id: str, variant_id: int, stock_quantity: int
    ) -> Optional[tuple[int, int]]:
        """Set a variant's stock. Returns (previous_total, new_total) for the product."""
        with self.Session() as session:
            variant = session.get(VariantRow, variant_id)
            if not variant or variant.product_id != product_id:
                return None
            previous = session.execute(
                select(func.coalesce(func.sum(VariantRow.stock_quantity), 0)).where(
                    VariantRow.product_id == product_id
                )
            ).scalar_one()
            new_total = previous - variant.stock_quantity + stock_quantity
            variant.stock_quantity = stock_quantity
            variant.updated_at = utcnow()
            session.commit()
            return int(previous), int(new_total)

    def reindex_products(self) -> int:
        with self.Session() as session:
            rows = session.execute(select(ProductRow)).scalars().all()
            for row in rows:
                row.search_text = build_search_text(
                    row.title, row.subtitle, row.brand, row.description
                )
            session.commit()
            return len(rows)

    def sitemap_entries(self) -> tuple[list[dict], list[dict]]:
        with self.Session() as session:
            products = session.execute(
                select(ProductRow.slug, ProductRow.updated_at)
                .where(*self._published_filter(utcnow()))
                .order_by(ProductRow.updated_at.desc())
            ).all()
            categories = session.execute(
                select(CategoryRow.slug, CategoryRow.updated_at).order_by(
                    CategoryRow.sort_order, CategoryRow.name
                )
            ).all()
            return (
                [{"slug": s, "updated_at": u} for s, u in products],
                [{"slug": s, "updated_at": u} for s, u in categories],
            )

    # ------------------------------------------------------------------
    # Categories

    def list_categories(self) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(CategoryRow, MediaRow.path)
                .outerjoin(MediaRow, MediaRow.id == CategoryRow.image_id)
                .order_by(
                    case((CategoryRow.parent_id.is_(None), 0), else_=1),
                    CategoryRow.sort_order,
                    CategoryRow.name,
                )
            ).all()
            return [_category_dict(row, path) for row, path in rows]

    def get_category(self, category_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            if not row:
                return None
            media = session.get(MediaRow, row.image_id) if row.image_id else None
            return _category_dict(row, media.path if media else None)

    def create_category(self, data: dict) -> str:
        now = utcnow()
        with self.Session() as session:
            row = CategoryRow(
                id=new_id(),
                slug=data["slug"],
                name=data["name"],
                description=data.get("description"),
                parent_id=data.get("parent_id"),
                sort_order=data.get("sort_order") or 0,
                image_id=data.get("image_id"),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session)
            return row.id

    def update_category(self, category_id: str, fields: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            if not row:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            self._commit(session)
        return self.get_category(category_id)

    def delete_category(self, category_id: str) -> Optional[dict]:
        """Delete a category, returning what was removed (including its image path)."""
        found = self.get_category(category_id)
        if not found:
            return None
        with self.Session() as session:
            for model, column in (
                (ProductRow, ProductRow.category_id),
                (CategoryRow, CategoryRow.parent_id),
            ):
                for row in session.execute(
                    select(model).where(column == category_id)
                ).scalars():
                    setattr(row, column.key, None)
            session.execute(delete(CategoryRow).where(CategoryRow.id == category_id))
            session.commit()
        return found

    def category_facets(self, query: str, limit: int = 10) -> list[dict]:
        stmt = (
            select(
                CategoryRow.id,
                CategoryRow.name,
                CategoryRow.slug,
                func.count(ProductRow.id).label("count"),
            )
            .join(ProductRow, ProductRow.category_id == CategoryRow.id)
            .where(*self._published_filter(utcnow()))
            .group_by(CategoryRow.id, CategoryRow.name, CategoryRow.slug)
            .order_by(func.count(ProductRow.id).desc())
            .limit(limit)
        )
        if query:
            stmt = stmt.where(
                ProductRow.search_text.contains(query.lower(), autoescape=True)
            )
        with self.Session() as session:
            return [
                {"id": id_, "name": name, "slug": slug, "count": count}
                for id_, name, slug, count in session.execute(stmt).all()
            ]

    def price_range(self, query: str) -> Optional[tuple[int, int]]:
        stmt = (
            select(func.min(VariantRow.price_cents), func.max(VariantRow.price_cents))
            .join(ProductRow, ProductRow.id == VariantRow.product_id)
            .where(*self._published_filter(utcnow()))
        )
        if query:
            stmt = stmt.where(
                ProductRow.search_text.contains(query.lower(), autoescape=True)
            )
        with self.Session() as session:
            low, high = session.execute(stmt).one()
            if low is None or high is None:
                return None
            return int(low), int(high)

    # ------------------------------------------------------------------
    # Banners

    def list_public_banners(self, limit: int = 3) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(BannerRow)
                .where(
                    BannerRow.is_active.is_(True),
                    *active_window(BannerRow.starts_at, BannerRow.ends_at, utcnow()),
                )
                .order_by(BannerRow.sort_order.asc(), BannerRow.created_at.desc())
                .limit(limit)
            ).scalars()
            return [_banner_dict(row) for row in rows]

    def list_banners(self) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(BannerRow).order_by(
                    BannerRow.sort_order.asc(), BannerRow.created_at.desc()
                )
            ).scalars()
            return [_banner_dict(row) for row in rows]

    def get_banner(self, banner_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(BannerRow, banner_id)
            return _banner_dict(row) if row else None

    def create_banner(self, data: dict) -> dict:
        now = utcnow()
        with self.Session() as session:
            row = BannerRow(
                id=new_id(),
                title=data["title"],
                desktop_image_url=data["desktop_image_url"],
                laptop_image_url=data.get("laptop_image_url"),
                mobile_image_url=data.get("mobile_image_url"),
                link_url=data.get("link_url"),
                is_active=data.get("is_active", True),
                sort_order=data.get("sort_order") or 0,
                starts_at=to_utc(data.get("starts_at")),
                ends_at=to_utc(data.get("ends_at")),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session)
            return _banner_dict(row)

    def update_banner(self, banner_id: str, fields: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(BannerRow, banner_id)
            if not row:
                return None
            for key, value in fields.items():
                if isinstance(value, datetime):
                    value = to_utc(value)
                setattr(row, key, value)
            row.updated_at = utcnow()
            self._commit(session)
            return _banner_dict(row)

    def delete_banner(self, banner_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(BannerRow, banner_id)
            if not row:
                return None
            found = _banner_dict(row)
            session.delete(row)
            session.commit()
            return found

    # ------------------------------------------------------------------
    # Newsletter

    def subscribe_newsletter(self, email: str) -> bool:
        """Return True for a new subscriber, False when already subscribed."""
        email = email.strip().lower()
        with self.Session() as session:
            existing = session.execute(
                select(NewsletterSubscriberRow).where(
                    NewsletterSubscriberRow.email == email
                )
            ).scalar_one_or_none()
            if existing:
                if existing.is_active:
                    return False
                existing.is_active = True
                session.commit()
                return True
            session.add(
                NewsletterSubscriberRow(email=email, is_active=True, created_at=utcnow())
            )
            session.commit()
            return True

    # ------------------------------------------------------------------
    # Offers

    def list_active_offers(self, limit: int = 50) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(OfferRow)
                .where(
                    OfferRow.is_active.is_(True),
                    *active_window(OfferRow.starts_at, OfferRow.ends_at, utcnow()),
                )
                .order_by(OfferRow.created_at.desc())
                .limit(limit)
            ).scalars()
            return [_offer_dict(row) for row in rows]

    def get_offer(self, offer_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(OfferRow, offer_id)
            return _offer_dict(row) if row else None

    def create_offer(self, data: dict) -> dict:
        now = utcnow()
        with self.Session() as session:
            row = OfferRow(
                id=new_id(),
                title=data["title"],
                description=data.get("description"),
                discount_type=data["discount_type"],
                discount_value=data["discount_value"],
                applies_to=data.get("applies_to") or "all",
                applies_to_ids=",".join(data.get("applies_to_ids") or []) or None,
                min_order_amount=data.get("min_order_amount"),
                usage_limit=data.get("usage_limit"),
                usage_count=0,
                is_active=data.get("is_active", True),
                starts_at=to_utc(data.get("starts_at")),
                ends_at=to_utc(data.get("ends_at")),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            self._commit(session)
            return _offer_dict(row)

    def update_offer(self, offer_id: str, fields: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(OfferRow, offer_id)
            if not row:
                return None
            for key, value in fields.items():
                if key == "applies_to_ids":
                    value = ",".join(value or []) or None
                elif isinstance(value, datetime):
                    value = to_utc(value)
                setattr(row, key, value)
            row.updated_at = utcnow()
            self._commit(session)
            return _offer_dict(row)

    def delete_offer(self, offer_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(OfferRow).where(OfferRow.id == offer_id))
            session.commit()
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Settings

    def list_settings(self) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(select(SettingRow).order_by(SettingRow.key)).scalars()
            return [_setting_dict(row) for row in rows]

    def get_setting(self, key: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(SettingRow, key)
            return _setting_dict(row) if row else None

    def create_setting(self, data: dict) -> dict:
        with self.Session() as session:
            if session.get(SettingRow, data["key"]):
                raise ConflictError(f"setting {data['key']} already exists")
            row = SettingRow(
                key=data["key"],
                value=data.get("value") or "",
                type=data.get("type") or "string",
                description=data.get("description"),
                updated_at=utcnow(),
            )
            session.add(row)
            self._commit(session)
            return _setting_dict(row)

    def update_setting(self, key: str, fields: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(SettingRow, key)
            if not row:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            row.updated_at = utcnow()
            session.commit()
            return _setting_dict(row)

    def delete_setting(self, key: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(SettingRow).where(SettingRow.key == key))
            session.commit()
            return bool(result.rowcount)

    def public_settings(self) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(SettingRow).where(
                    or_(
                        SettingRow.key.like("public.%"),
                        SettingRow.key.in_(PUBLIC_SETTING_KEYS),
                    )
                )
            ).scalars()
            return [_setting_dict(row) for row in rows]

    # ------------------------------------------------------------------
    # Users, roles and refresh tokens

    def _role_names(self, session: Session, user_id: int) -> list[str]:
        return list(
            session.execute(
                select(RoleRow.name)
                .join(UserRoleRow, UserRoleRow.role_id == RoleRow.id)
                .where(UserRoleRow.user_id == user_id)
                .order_by(RoleRow.name)
            ).scalars()
        )

    def _set_roles(self, session: Session, user_id: int, roles: list[str]) -> None:
        session.execute(delete(UserRoleRow).where(UserRoleRow.user_id == user_id))
        if not roles:
            return
        role_ids = session.execute(
            select(RoleRow.id).where(RoleRow.name.in_(roles))
        ).scalars()
        for role_id in role_ids:
            session.add(UserRoleRow(user_id=user_id, role_id=role_id))

    def _user_dict(self, session: Session, row: UserRow) -> dict:
        data = _user_dict(row)
        data["roles"] = self._role_names(session, row.id)
        return data

    def list_users(
        self, limit: int = 50, cursor: Optional[datetime] = None
    ) -> list[dict]:
        stmt = select(UserRow).order_by(UserRow.updated_at.desc(), UserRow.id.desc())
        if cursor:
            stmt = stmt.where(UserRow.updated_at < cursor)
        with self.Session() as session:
            rows = session.execute(stmt.limit(limit)).scalars().all()
            return [self._user_dict(session, row) for row in rows]

    def get_user(self, user_id: int) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._user_dict(session, row) if row else None

    def get_user_credentials(self, email: str) -> Optional[dict]:
        """User record including the password hash, looked up by email."""
        with self.Session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email.strip().lower())
            ).scalar_one_or_none()
            if not row:
                return None
            data = self._user_dict(session, row)
            data["password_hash"] = row.password_hash
            return data

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        full_name: Optional[str] = None,
        is_active: bool = True,
        roles: Optional[list[str]] = None,
    ) -> dict:
        now = utcnow()
        with self.Session() as session:
            if full_name is None:
                full_name = " ".join(p for p in (first_name, last_name) if p) or None
            row = UserRow(
                email=email.strip().lower(),
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                full_name=full_name,
                is_active=is_active,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("user already exists") from exc
            self._set_roles(session, row.id, roles or [])
            self._commit(session)
            return self._user_dict(session, row)

    def update_user(
        self,
        user_id: int,
        fields: dict,
        roles: Optional[list[str]] = None,
    ) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            for key, value in fields.items():
                if key == "email":
                    value = value.strip().lower()
                setattr(row, key, value)
            if "first_name" in fields or "last_name" in fields:
                row.full_name = (
                    " ".join(p for p in (row.first_name, row.last_name) if p) or None
                )
            if roles is not None:
                self._set_roles(session, user_id, roles)
            row.updated_at = utcnow()
            self._commit(session)
            return self._user_dict(session, row)

    def delete_user(self, user_id: int) -> bool:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return False
            session.execute(delete(UserRoleRow).where(UserRoleRow.user_id == user_id))
            session.execute(
                delete(RefreshTokenRow).where(RefreshTokenRow.user_id == user_id)
            )
            for order in session.execute(
                select(OrderRow).where(OrderRow.user_id == user_id)
            ).scalars():
                order.user_id = None
            session.delete(row)
            session.commit()
            return True

    def list_roles(self) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(select(RoleRow).order_by(RoleRow.id)).scalars()
            return [
                {"id": row.id, "name": row.name, "description": row.description}
                for row in rows
            ]

    def store_refresh_token(
        self,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        *,
        remember_me: bool = False,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        with self.Session() as session:
            session.add(
                RefreshTokenRow(
                    user_id=user_id,
                    token_hash=token_hash,
                    remember_me=remember_me,
                    ip=ip,
                    user_agent=user_agent,
                    expires_at=expires_at,
                    created_at=utcnow(),
                )
            )
            session.commit()

    def refresh_token_valid(self, token_hash: str) -> bool:
        with self.Session() as session:
            row = session.execute(
                select(RefreshTokenRow).where(RefreshTokenRow.token_hash == token_hash)
            ).scalar_one_or_none()
            return bool(row and row.expires_at > utcnow())

    def delete_refresh_token(self, token_hash: str) -> None:
        with self.Session() as session:
            session.execute(
                delete(RefreshTokenRow).where(RefreshTokenRow.token_hash == token_hash)
            )
            session.commit()

    # ------------------------------------------------------------------
    # Customers and orders

    def list_customers(
        self, limit: int = 50, cursor: Optional[datetime] = None
    ) -> list[dict]:
        staff_user_ids = (
            select(UserRoleRow.user_id)
            .join(RoleRow, RoleRow.id == UserRoleRow.role_id)
            .where(RoleRow.name.in_(STAFF_ROLES))
        )
        order_counts = (
            select(OrderRow.user_id, func.count(OrderRow.id).label("order_count"))
            .group_by(OrderRow.user_id)
            .subquery()
        )
        stmt = (
            select(UserRow, order_counts.c.order_count)
            .outerjoin(order_counts, order_counts.c.user_id == UserRow.id)
            .where(UserRow.id.not_in(staff_user_ids))
            .order_by(UserRow.updated_at.desc(), UserRow.id.desc())
            .limit(limit)
        )
        if cursor:
            stmt = stmt.where(UserRow.updated_at < cursor)
        with self.Session() as session:
            customers = []
            for row, order_count in session.execute(stmt).all():
                data = _user_dict(row)
                data["full_name"] = row.full_name or ""
                data["order_count"] = order_count or 0
                customers.append(data)
            return customers

    def list_orders(
        self,
        limit: int = 50,
        cursor: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> list[dict]:
        stmt = select(OrderRow).order_by(OrderRow.created_at.desc(), OrderRow.id)
        if cursor:
            stmt = stmt.where(OrderRow.created_at < cursor)
        if user_id is not None:
            stmt = stmt.where(OrderRow.user_id == user_id)
        with self.Session() as session:
            rows = session.execute(stmt.limit(limit)).scalars().all()
            return [_order_dict(row) for row in rows]

    def get_order(self, order_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            data = _order_dict(row)
            items = session.execute(
                select(OrderLineItemRow).where(OrderLineItemRow.order_id == order_id)
            ).scalars()
            data["line_items"] = [_line_item_dict(item) for item in items]
            return data

    def create_order(self, data: dict) -> str:
        now = utcnow()
        order_id = new_id()
        line_items = data["line_items"]
        subtotal = sum(item["price"] * item["quantity"] for item in line_items)
        with self.Session() as session:
            session.add(
                OrderRow(
                    id=order_id,
                    order_number=generate_order_number(now),
                    user_id=data.get("user_id"),
                    status="pending",
                    currency=data.get("currency") or "INR",
                    subtotal=subtotal,
                    total_price=subtotal,
                    customer_name=data.get("customer_name"),
                    customer_email=data.get("customer_email"),
                    customer_phone=data.get("customer_phone"),
                    shipping_address=data.get("shipping_address"),
                    billing_address=data.get("billing_address"),
                    notes=data.get("notes"),
                    created_at=now,
                    updated_at=now,
                )
            )
            self._flush(session)
            for item in line_items:
                product = session.get(ProductRow, item["product_id"])
                variant = (
                    session.get(VariantRow, item["variant_id"])
                    if item.get("variant_id")
                    else None
                )
                session.add(
                    OrderLineItemRow(
                        id=new_id(),
                        order_id=order_id,
                        product_id=item["product_id"],
                        variant_id=item.get("variant_id"),
                        title=product.title if product else "",
                        sku=variant.sku if variant else "",
                        quantity=item["quantity"],
                        price=item["price"],
                        total=item["price"] * item["quantity"],
                    )
                )
            self._commit(session)
        return order_id

    def update_order(self, order_id: str, fields: dict) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
        return self.get_order(order_id)

    def delete_order(self, order_id: str) -> bool:
        with self.Session() as session:
            session.execute(
                delete(OrderLineItemRow).where(OrderLineItemRow.order_id == order_id)
            )
            result = session.execute(delete(OrderRow).where(OrderRow.id == order_id))
            session.commit()
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Cart

    def add_to_cart(self, session_id: str, product_id: str, quantity: int) -> bool:
        """Add a product to the cart. Returns False when the product is unknown."""
        with self.Session() as session:
            product = session.get(ProductRow, product_id)
            if not product:
                return False
            variant = session.execute(
                select(VariantRow)
                .where(VariantRow.product_id == product_id)
                .order_by(VariantRow.id)
                .limit(1)
            ).scalar_one_or_none()
            existing = session.execute(
                select(CartItemRow).where(
                    CartItemRow.session_id == session_id,
                    CartItemRow.product_id == product_id,
                )
            ).scalar_one_or_none()
            if existing:
                existing.quantity += quantity
            else:
                session.add(
                    CartItemRow(
                        id=new_id(),
                        session_id=session_id,
                        product_id=product_id,
                        variant_id=variant.id if variant else None,
                        quantity=quantity,
                        price_cents=variant.price_cents if variant else 0,
                        created_at=utcnow(),
                    )
                )
            session.commit()
            return True

    def get_cart(self, session_id: str) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(CartItemRow, ProductRow.title)
                .join(ProductRow, ProductRow.id == CartItemRow.product_id)
                .where(CartItemRow.session_id == session_id)
                .order_by(CartItemRow.created_at)
            ).all()
            images = self._first_image_paths(session, {r[0].product_id for r in rows})
            return [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "title": title,
                    "price_cents": item.price_cents,
                    "quantity": item.quantity,
                    "image_path": images.get(item.product_id),
                }
                for item, title in rows
            ]

    def remove_cart_item(self, session_id: str, item_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(CartItemRow).where(
                    CartItemRow.id == item_id, CartItemRow.session_id == session_id
                )
            )
            session.commit()
            return bool(result.rowcount)

    def clear_cart(self, session_id: str) -> int:
        with self.Session() as session:
            result = session.execute(
                delete(CartItemRow).where(CartItemRow.session_id == session_id)
            )
            session.commit()
            return result.rowcount or 0

    # ------------------------------------------------------------------
    # Wishlist

    def toggle_wishlist(self, session_id: str, product_id: str) -> Optional[bool]:
        """Flip wishlist membership. Returns the new state, or None for an unknown product."""
        with self.Session() as session:
            if not session.get(ProductRow, product_id):
                return None
            existing = session.execute(
                select(WishlistItemRow).where(
                    WishlistItemRow.session_id == session_id,
                    WishlistItemRow.product_id == product_id,
                )
            ).scalar_one_or_none()
            if existing:
                session.delete(existing)
                session.commit()
                return False
            session.add(
                WishlistItemRow(
                    id=new_id(),
                    session_id=session_id,
                    product_id=product_id,
                    created_at=utcnow(),
                )
            )
            session.commit()
            return True

    def get_wishlist(self, session_id: str) -> list[dict]:
        stats = self._variant_stats()
        with self.Session() as session:
            rows = session.execute(
                select(WishlistItemRow, ProductRow.title, stats.c.price_cents)
                .join(ProductRow, ProductRow.id == WishlistItemRow.product_id)
                .outerjoin(stats, stats.c.product_id == ProductRow.id)
                .where(WishlistItemRow.session_id == session_id)
                .order_by(WishlistItemRow.created_at.desc())
            ).all()
            images = self._first_image_paths(session, {r[0].product_id for r in rows})
            return [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "title": title,
                    "price_cents": price_cents or 0,
                    "image_path": images.get(item.product_id),
                    "added_at": iso(item.created_at),
                }
                for item, title, price_cents in rows
            ]

    def remove_wishlist_item(self, session_id: str, product_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(WishlistItemRow).where(
                    WishlistItemRow.session_id == session_id,
                    WishlistItemRow.product_id == product_id,
                )
            )
            session.commit()
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Stock notifications

    def product_id_for_slug(self, slug: str) -> Optional[str]:
        with self.Session() as session:
            return session.execute(
                select(ProductRow.id).where(ProductRow.slug == slug)
            ).scalar_one_or_none()

    def create_stock_notification(
        self,
        *,
        product_id: str,
        product_slug: str,
        notification_type: str,
        email: Optional[str] = None,
        mobile_number: Optional[str] = None,
    ) -> int:
        contact = (
            StockNotificationRow.email == email
            if notification_type == "email"
            else StockNotificationRow.mobile_number == mobile_number
        )
        with self.Session() as session:
            duplicate = session.execute(
                select(StockNotificationRow.id).where(
                    StockNotificationRow.product_id == product_id,
                    contact,
                    StockNotificationRow.is_active.is_(True),
                    StockNotificationRow.is_notified.is_(False),
                )
            ).first()
            if duplicate:
                raise ConflictError(
                    "You have already requested to be notified when this product is back in stock"
                )
            now = utcnow()
            row = StockNotificationRow(
                product_id=product_id,
                product_slug=product_slug,
                email=email if notification_type == "email" else None,
                mobile_number=mobile_number if notification_type == "mobile" else None,
                notification_type=notification_type,
                is_active=True,
                is_notified=False,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            return row.id

    def pending_stock_notifications(self, product_id: str) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(StockNotificationRow)
                .where(
                    StockNotificationRow.product_id == product_id,
                    StockNotificationRow.is_active.is_(True),
                    StockNotificationRow.is_notified.is_(False),
                )
                .order_by(StockNotificationRow.id)
            ).scalars()
            return [
                {
                    "id": row.id,
                    "email": row.email,
                    "mobile_number": row.mobile_number,
                    "notification_type": row.notification_type,
                    "product_slug": row.product_slug,
                }
                for row in rows
            ]

    def mark_stock_notifications_sent(self, product_id: str) -> int:
        with self.Session() as session:
            rows = session.execute(
                select(StockNotificationRow).where(
                    StockNotificationRow.product_id == product_id,
                    StockNotificationRow.is_active.is_(True),
                    StockNotificationRow.is_notified.is_(False),
                )
            ).scalars().all()
            now = utcnow()
            for row in rows:
                row.is_notified = True
                row.updated_at = now
            session.commit()
            return len(rows)

    def product_notification_details(self, product_id: str) -> Optional[dict]:
        stats = self._variant_stats()
        with self.Session() as session:
            found = session.execute(
                select(ProductRow, stats.c.price_cents)
                .outerjoin(stats, stats.c.product_id == ProductRow.id)
                .where(ProductRow.id == product_id)
            ).first()
            if not found:
                return None
            product, price_cents = found
            images = self._first_image_paths(session, [product.id])
            return {
                "id": product.id,
                "slug": product.slug,
                "title": product.title,
                "price_cents": price_cents or 0,
                "image_path": images.get(product.id),
            }

    # ------------------------------------------------------------------
    # Audit log

    def record_audit(
        self,
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        *,
        actor_user_id: Optional[int] = None,
        data: Optional[dict] = None,
    ) -> None:
        with self.Session() as session:
            session.add(
                AuditLogRow(
                    actor_user_id=actor_user_id,
                    action=action,
                    object_type=object_type,
                    object_id=str(object_id) if object_id is not None else None,
                    data=data,
                    created_at=utcnow(),
                )
            )
            session.commit()

    def list_audit_logs(
        self,
        *,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[dict]:
        stmt = select(AuditLogRow).order_by(
            AuditLogRow.created_at.desc(), AuditLogRow.id.desc()
        )
        if object_type and object_id:
            stmt = stmt.where(
                AuditLogRow.object_type == object_type,
                AuditLogRow.object_id == object_id,
            )
        with self.Session() as session:
            rows = session.execute(stmt.limit(limit)).scalars()
            return [
                {
                    "id": row.id,
                    "actor_user_id": row.actor_user_id,
                    "action": row.action,
                    "object_type": row.object_type,
                    "object_id": row.object_id,
                    "data": row.data,
                    "created_at": iso(row.created_at),
                }
                for row in rows
            ]


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:4].upper()}"


def _media_dict(row: MediaRow) -> dict:
    return {
        "id": row.id,
        "path": row.path,
        "mime": row.mime,
        "size_bytes": row.size_bytes,
        "width": row.width,
        "height": row.height,
        "alt": row.alt,
        "created_at": iso(row.created_at),
    }


def _product_dict(row: ProductRow) -> dict:
    return {
        "id": row.id,
        "slug": row.slug,
        "title": row.title,
        "subtitle": row.subtitle,
        "description": row.description,
        "brand": row.brand,
        "category_id": row.category_id,
        "published": row.published,
        "publish_at": iso(row.publish_at),
        "unpublish_at": iso(row.unpublish_at),
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _variant_dict(row: VariantRow) -> dict:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "sku": row.sku,
        "title": row.title,
        "price_cents": row.price_cents,
        "compare_at_price_cents": row.compare_at_price_cents,
        "currency": row.currency,
        "stock_quantity": row.stock_quantity,
    }


def _category_dict(row: CategoryRow, image_path: Optional[str]) -> dict:
    return {
        "uuid_id": row.id,
        "slug": row.slug,
        "name": row.name,
        "description": row.description,
        "parent_id": row.parent_id,
        "sort_order": row.sort_order,
        "image_id": row.image_id,
        "image_path": image_path,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _banner_dict(row: BannerRow) -> dict:
    return {
        "id": row.id,
        "title": row.title,
        "desktop_image_url": row.desktop_image_url,
        "laptop_image_url": row.laptop_image_url,
        "mobile_image_url": row.mobile_image_url,
        "link_url": row.link_url,
        "is_active": row.is_active,
        "sort_order": row.sort_order,
        "starts_at": iso(row.starts_at),
        "ends_at": iso(row.ends_at),
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _offer_dict(row: OfferRow) -> dict:
    return {
        "id": row.id,
        "title": row.title,
        "description": row.description,
        "discount_type": row.discount_type,
        "discount_value": row.discount_value,
        "applies_to": row.applies_to,
        "applies_to_ids": [i for i in (row.applies_to_ids or "").split(",") if i],
        "min_order_amount": row.min_order_amount,
        "usage_limit": row.usage_limit,
        "usage_count": row.usage_count,
        "is_active": row.is_active,
        "starts_at": iso(row.starts_at),
        "ends_at": iso(row.ends_at),
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _setting_dict(row: SettingRow) -> dict:
    return {
        "key": row.key,
        "value": row.value,
        "type": row.type,
        "description": row.description,
        "updated_at": iso(row.updated_at),
    }


def _user_dict(row: UserRow) -> dict:
    return {
        "id": row.id,
        "email": row.email,
        "first_name": row.first_name,
        "last_name": row.last_name,
        "full_name": row.full_name,
        "is_active": row.is_active,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _order_dict(row: OrderRow) -> dict:
    return {
        "id": row.id,
        "order_number": row.order_number,
        "user_id": row.user_id,
        "status": row.status,
        "currency": row.currency,
        "subtotal": row.subtotal,
        "tax_amount": row.tax_amount,
        "shipping_amount": row.shipping_amount,
        "discount_amount": row.discount_amount,
        "total_price": row.total_price,
        "customer_name": row.customer_name or "Guest Customer",
        "customer_email": row.customer_email,
        "customer_phone": row.customer_phone,
        "shipping_address": row.shipping_address,
        "billing_address": row.billing_address,
        "notes": row.notes,
        "created_at": iso(row.created_at),
        "updated_at": iso(row.updated_at),
    }


def _line_item_dict(row: OrderLineItemRow) -> dict:
    return {
        "id": row.id,
        "order_id": row.order_id,
        "product_id": row.product_id,
        "variant_id": row.variant_id,
        "title": row.title,
        "sku": row.sku,
        "quantity": row.quantity,
        "price": row.price,
        "total": row.total,
    }
