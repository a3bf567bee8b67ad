"""
Rebuild the denormalised product search text.

Run after bulk imports or direct SQL edits that bypass the API.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storefront.dependencies import get_db_client

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    started = time.perf_counter()
    updated = get_db_client().reindex_products()
    logger.info(
        "Reindexed %d products in %.1fs", updated, time.perf_counter() - started
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
