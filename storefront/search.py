"""
Storefront search: the per-IP rate limiter and the layered fallback search.

A query is tried against products first, then categories, offers and
banners; the first non-empty layer wins. When every layer comes back empty
the caller gets a few suggested products instead of an empty page.
"""

from __future__ import annotations

import base64
import json
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from storefront.db import DbClient, active_window
from storefront.images import ImageURLHelper
from storefront.models import (
    BannerRow,
    CategoryRow,
    MediaRow,
    OfferRow,
    ProductImageRow,
    ProductRow,
    VariantRow,
    utcnow,
)

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
DEFAULT_SEARCH_LIMIT = 12
DEFAULT_SUGGEST_LIMIT = 8
MAX_LIMIT = 100
FALLBACK_SIZE = 3
CATEGORY_SIMILARITY_THRESHOLD = 0.15
EXCERPT_LENGTH = 160

_LETTER_RE = re.compile(r"[A-Za-z]")


class TokenBucket:
    """Classic token bucket; tokens are fractional so slow trickles still refill."""

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self._clock = clock
        self.last = clock()

    def allow(self) -> bool:
        now = self._clock()
        elapsed = max(0.0, now - self.last)
        self.last = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False

    def is_idle_and_full(self, now: float) -> bool:
        if self.refill_rate <= 0:
            return False
        refilled = self.tokens + max(0.0, now - self.last) * self.refill_rate
        return refilled >= self.capacity


@dataclass
class RateLimiter:
    """One token bucket per client key (IP), guarded by a single lock."""

    capacity: int = 60
    refill_rate: float = 1.0
    clock: Callable[[], float] = time.monotonic
    buckets: dict[str, TokenBucket] = field(default_factory=dict)
    prune_interval: float = 60.0

    def __post_init__(self):
        self._lock = threading.Lock()
        self._last_prune = self.clock()

    def allow(self, key: str) -> bool:
        with self._lock:
            self._prune()
            bucket = self.buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.capacity, self.refill_rate, self.clock)
                self.buckets[key] = bucket
            return bucket.allow()

    def _prune(self) -> None:
        # A bucket that has refilled completely behaves like a new one.
        now = self.clock()
        if now - self._last_prune < self.prune_interval:
            return
        self._last_prune = now
        for key in [k for k, b in self.buckets.items() if b.is_idle_and_full(now)]:
            del self.buckets[key]

    def reset(self) -> None:
        with self._lock:
            self.buckets.clear()


def parse_limit(raw: Optional[str], default: int, maximum: int = MAX_LIMIT) -> int:
    """Accept `raw` only when it is an integer in 1..maximum, else use `default`."""
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if 0 < value <= maximum:
        return value
    return default


def is_valid_query(q: str) -> bool:
    return len(q) >= MIN_QUERY_LENGTH and bool(_LETTER_RE.search(q))


def encode_cursor(item_id: str, score: float) -> str:
    payload = json.dumps({"id": item_id, "score": score}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str) -> tuple[str, float]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        return str(payload["id"]), float(payload["score"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ValueError("invalid cursor") from exc


def _excerpt(text: Optional[str]) -> str:
    text = (text or "").strip()
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH].rsplit(" ", 1)[0] + "..."


@dataclass
class SearchOutcome:
    source: str
    results: list[dict]


class SearchService:
    """Runs the fallback chain against the catalog tables."""

    def __init__(self, db: DbClient, images: ImageURLHelper):
        self.db = db
        self.images = images

    def _product_results(self, session, rows, note: Optional[str] = None) -> list[dict]:
        ids = [row.id for row, _ in rows]
        image_rows = session.execute(
            select(ProductImageRow.product_id, MediaRow.path)
            .join(MediaRow, MediaRow.id == ProductImageRow.media_id)
            .where(ProductImageRow.product_id.in_(ids))
            .order_by(ProductImageRow.sort_order, ProductImageRow.id)
        ).all()
        first_image: dict[str, str] = {}
        for product_id, path in image_rows:
            first_image.setdefault(product_id, path)
        results = []
        for row, price in rows:
            result = {
                "type": "product",
                "id": row.id,
                "title": row.title,
                "slug": row.slug,
                "image": self.images.format_image_url(first_image.get(row.id)) or "",
                "price": float(price or 0),
                "excerpt": _excerpt(row.description),
                "link": f"/product/{row.slug}",
            }
            if note:
                result["note"] = note
            results.append(result)
        return results

    def _product_query(self):
        lowest_price = (
            select(func.min(VariantRow.price_cents))
            .where(VariantRow.product_id == ProductRow.id)
            .scalar_subquery()
        )
        now = utcnow()
        return select(ProductRow, lowest_price).where(
            ProductRow.published.is_(True),
            or_(ProductRow.publish_at.is_(None), ProductRow.publish_at <= now),
        )

    def search_products(self, q: str, limit: int) -> list[dict]:
        stmt = (
            self._product_query()
            .where(ProductRow.search_text.contains(q.lower(), autoescape=True))
            .order_by(ProductRow.title)
            .limit(limit)
        )
        with self.db.Session() as session:
            return self._product_results(session, session.execute(stmt).all())

    def search_categories(self, q: str, limit: int) -> list[dict]:
        if self.db.dialect_name == "postgresql":
            score = func.similarity(func.lower(CategoryRow.name), q.lower())
            stmt = (
                select(CategoryRow)
                .where(score > CATEGORY_SIMILARITY_THRESHOLD)
                .order_by(score.desc())
            )
        else:
            stmt = (
                select(CategoryRow)
                .where(CategoryRow.name.icontains(q, autoescape=True))
                .order_by(CategoryRow.name)
            )
        with self.db.Session() as session:
            rows = session.execute(stmt.limit(limit)).scalars().all()
            return [
                {
                    "type": "category",
                    "id": row.id,
                    "title": row.name,
                    "slug": row.slug,
                    "link": f"/category/{row.slug}",
                }
                for row in rows
            ]

    def search_offers(self, q: str, limit: int) -> list[dict]:
        stmt = (
            select(OfferRow)
            .where(
                OfferRow.is_active.is_(True),
                *active_window(OfferRow.starts_at, OfferRow.ends_at, utcnow()),
                or_(
                    OfferRow.title.icontains(q, autoescape=True),
                    OfferRow.description.icontains(q, autoescape=True),
                ),
            )
            .order_by(OfferRow.created_at.desc())
            .limit(limit)
        )
        with self.db.Session() as session:
            return [
                {
                    "type": "offer",
                    "id": row.id,
                    "title": row.title,
                    "link": f"/offer/{row.id}",
                }
                for row in session.execute(stmt).scalars()
            ]

    def search_banners(self, q: str, limit: int) -> list[dict]:
        stmt = (
            select(BannerRow)
            .where(
                BannerRow.is_active.is_(True),
                *active_window(BannerRow.starts_at, BannerRow.ends_at, utcnow()),
                BannerRow.title.icontains(q, autoescape=True),
            )
            .order_by(BannerRow.sort_order, BannerRow.created_at.desc())
            .limit(limit)
        )
        with self.db.Session() as session:
            return [
                {
                    "type": "banner",
                    "id": row.id,
                    "title": row.title,
                    "link": row.link_url or "",
                }
                for row in session.execute(stmt).scalars()
            ]

    def suggested_products(self, count: int = FALLBACK_SIZE) -> list[dict]:
        stmt = self._product_query().order_by(ProductRow.title).limit(count)
        with self.db.Session() as session:
            return self._product_results(
                session, session.execute(stmt).all(), note="suggested"
            )

    def _run(self, steps, q: str, limit: int) -> SearchOutcome:
        for source, step in steps:
            try:
                results = step(q, limit)
            except SQLAlchemyError:
                logger.warning("Search step %s failed for %r", source, q, exc_info=True)
                continue
            if results:
                return SearchOutcome(source=source, results=results)
        try:
            fallback = self.suggested_products()
        except SQLAlchemyError:
            logger.warning("Fallback search failed for %r", q, exc_info=True)
            fallback = []
        return SearchOutcome(source="fallback", results=fallback)

    def search(self, q: str, limit: int) -> SearchOutcome:
        steps = (
            ("products", self.search_products),
            ("categories", self.search_categories),
            ("offers", self.search_offers),
            ("banners", self.search_banners),
        )
        return self._run(steps, q, limit)

    def suggest(self, q: str, limit: int) -> SearchOutcome:
        steps = (
            ("products", self.search_products),
            ("categories", self.search_categories),
        )
        return self._run(steps, q, limit)

    def facets(self, q: str) -> dict:
        price = self.db.price_range(q)
        return {
            "categories": self.db.category_facets(q),
            "price_range": {
                "min": price[0] if price else 0,
                "max": price[1] if price else 100000,
            },
        }
