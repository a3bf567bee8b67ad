"""
Helpers shared by the route modules.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from storefront.auth import Principal
from storefront.db import DbClient, is_uuid, iso, parse_cursor_time

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def now_rfc3339() -> str:
    return iso(datetime.now(timezone.utc))


def require_uuid(value: str, label: str) -> str:
    if not is_uuid(value):
        raise HTTPException(status_code=400, detail=f"invalid {label} id")
    return value


def require_changes(changes: dict) -> dict:
    if not changes:
        raise HTTPException(status_code=400, detail="no fields to update")
    return changes


def next_cursor(items: list[dict], limit: int, field: str) -> Optional[str]:
    if len(items) < limit or not items:
        return None
    return items[-1][field]


def cursor_param(raw: Optional[str]) -> Optional[datetime]:
    if raw and parse_cursor_time(raw) is None:
        raise HTTPException(status_code=400, detail="invalid cursor")
    return parse_cursor_time(raw)


def audit(
    db: DbClient,
    user: Principal,
    action: str,
    object_type: str,
    object_id=None,
    data: Optional[dict] = None,
) -> None:
    """Record an admin mutation; a failed write never fails the request."""
    try:
        db.record_audit(
            action, object_type, object_id, actor_user_id=user.user_id, data=data
        )
    except SQLAlchemyError:
        logger.warning(
            "Failed to write audit log for %s %s", action, object_type, exc_info=True
        )
