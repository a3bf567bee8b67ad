"""
Seed a fresh storefront database.

Creates (or resets) the initial super admin and inserts the starter
categories. The admin password comes from --password or
ADMIN_INITIAL_PASSWORD.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storefront.dependencies import get_db_client
from storefront.seed import seed_admin, seed_categories

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--email",
        default="admin@example.com",
        help="Email of the initial super admin",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("ADMIN_INITIAL_PASSWORD"),
        help="Password for the initial super admin",
    )
    parser.add_argument(
        "--skip-categories",
        action="store_true",
        help="Only seed the admin user",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    if not args.password or len(args.password) < 8:
        logger.error("An admin password of at least 8 characters is required")
        return 1

    db = get_db_client()
    seed_admin(db, args.email, args.password)
    if not args.skip_categories:
        seed_categories(db)
    logger.info("Seed completed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
