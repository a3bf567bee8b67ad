"""
Store settings endpoints.
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Response

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client
from storefront.routes.common import audit, require_changes
from storefront.schemas import SettingCreate, SettingUpdate

router = APIRouter()
admin_router = APIRouter()


def parse_setting_value(value: str, kind: str):
    """Decode a stored setting by its type, keeping the raw string if it does not parse."""
    if kind == "string":
        return value
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    if kind == "number" and (isinstance(parsed, bool) or not isinstance(parsed, (int, float))):
        return value
    if kind == "boolean" and not isinstance(parsed, bool):
        return value
    return parsed


@router.get("/public/settings")
def public_settings(db: DbClient = Depends(get_db_client)):
    return {
        row["key"]: parse_setting_value(row["value"], row["type"])
        for row in db.public_settings()
    }


@admin_router.get("/settings")
def list_settings(
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    return {"data": db.list_settings()}


@admin_router.get("/settings/{key}")
def get_setting(
    key: str,
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    setting = db.get_setting(key)
    if not setting:
        raise HTTPException(status_code=404, detail="setting not found")
    return setting


@admin_router.post("/settings", status_code=201)
def create_setting(
    payload: SettingCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    setting = db.create_setting(payload.model_dump())
    audit(db, user, "create", "setting", payload.key)
    return setting


@admin_router.put("/settings/{key}")
def update_setting(
    key: str,
    payload: SettingUpdate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    changes = require_changes(payload.changes())
    setting = db.update_setting(key, changes)
    if not setting:
        raise HTTPException(status_code=404, detail="setting not found")
    audit(db, user, "update", "setting", key, {"fields": sorted(changes)})
    return setting


@admin_router.delete("/settings/{key}", status_code=204)
def delete_setting(
    key: str,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    if not db.delete_setting(key):
        raise HTTPException(status_code=404, detail="setting not found")
    audit(db, user, "delete", "setting", key)
    return Response(status_code=204)
