"""
Seed data for a fresh database: an initial super admin and the starter categories.
"""

from __future__ import annotations

import logging

from storefront.auth import hash_password
from storefront.db import DbClient

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    ("hand-bags", "Hand Bags", "Premium leather and crafted hand bags"),
    ("laptop-bags", "Laptop Bags", "Professional and stylish laptop bags"),
    ("tote-bags", "Tote Bags", "Spacious and eco-friendly tote bags"),
    ("crochet-throws", "Crochet Throws", "Handmade crochet throws for home decor"),
    (
        "embroidered-clutches",
        "Embroidered Clutches",
        "Elegant embroidered clutches for special occasions",
    ),
    ("baby-throw", "Baby Throw", "Soft and safe throws for babies"),
    ("everyday-bags", "Everyday Bags", "Durable bags for daily use"),
)


def seed_admin(
    db: DbClient, email: str, password: str, name: str = "Initial Admin"
) -> dict:
    """Create the super admin, or reset its password and role if it already exists."""
    existing = db.get_user_credentials(email)
    if existing:
        roles = sorted(set(existing["roles"]) | {"SuperAdmin"})
        user = db.update_user(
            existing["id"],
            {"password_hash": hash_password(password), "is_active": True},
            roles=roles,
        )
        logger.info("Updated admin %s", email)
        return user
    user = db.create_user(
        email=email,
        password_hash=hash_password(password),
        full_name=name,
        roles=["SuperAdmin"],
    )
    logger.info("Created admin %s", email)
    return user


def seed_categories(db: DbClient) -> int:
    """Insert the starter categories that are missing. Returns how many were added."""
    existing = {category["slug"] for category in db.list_categories()}
    added = 0
    for sort_order, (slug, name, description) in enumerate(DEFAULT_CATEGORIES, start=1):
        if slug in existing:
            continue
        db.create_category(
            {
                "slug": slug,
                "name": name,
                "description": description,
                "sort_order": sort_order,
            }
        )
        added += 1
    logger.info("Added %d categories", added)
    return added
