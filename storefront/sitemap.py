"""
sitemap.xml generation for the storefront.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import quote

from storefront.db import DbClient
from storefront.mailer import templates

STATIC_PAGES = (
    ("/", "daily", "1.0"),
    ("/shop", "daily", "0.9"),
    ("/categories", "weekly", "0.8"),
    ("/about", "monthly", "0.7"),
    ("/contact", "monthly", "0.7"),
    ("/bestsellers", "weekly", "0.8"),
)


def _lastmod(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None


def build_entries(db: DbClient, site_url: str) -> list[dict]:
    base = site_url.rstrip("/")
    entries = [
        {"loc": base + path, "lastmod": None, "changefreq": freq, "priority": priority}
        for path, freq, priority in STATIC_PAGES
    ]
    products, categories = db.sitemap_entries()
    for product in products:
        entries.append(
            {
                "loc": f"{base}/product/{quote(product['slug'])}",
                "lastmod": _lastmod(product["updated_at"]),
                "changefreq": "weekly",
                "priority": "0.8",
            }
        )
    for category in categories:
        entries.append(
            {
                "loc": f"{base}/shop/{quote(category['slug'])}",
                "lastmod": _lastmod(category["updated_at"]),
                "changefreq": "weekly",
                "priority": "0.7",
            }
        )
    return entries


def render_sitemap(db: DbClient, site_url: str) -> str:
    return templates.get_template("sitemap.xml").render(
        entries=build_entries(db, site_url)
    )
