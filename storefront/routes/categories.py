"""
Category endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_image_helper, get_storage_client
from storefront.images import ImageURLHelper
from storefront.routes.common import audit, require_changes, require_uuid
from storefront.schemas import CategoryCreate, CategoryUpdate
from storefront.storage import StorageClient, delete_objects_quietly

router = APIRouter()
admin_router = APIRouter()


def _with_image(images: ImageURLHelper, category: dict) -> dict:
    path = category.pop("image_path")
    category["image_key"], _ = images.get_image_key_and_url(path)
    category["image_url"] = images.format_with_fallback(path, "category")
    return category


@admin_router.get("/categories")
def list_categories(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    return {"items": [_with_image(images, c) for c in db.list_categories()]}


@admin_router.post("/categories", status_code=201)
def create_category(
    payload: CategoryCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    category_id = db.create_category(payload.model_dump())
    audit(db, user, "create", "category", category_id, {"slug": payload.slug})
    return {"uuid_id": category_id}


@admin_router.get("/categories/{category_id}")
def get_category(
    category_id: str,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    require_uuid(category_id, "category")
    found = db.get_category(category_id)
    if not found:
        raise HTTPException(status_code=404, detail="category not found")
    return _with_image(images, found)


@admin_router.put("/categories/{category_id}")
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(category_id, "category")
    changes = require_changes(payload.changes())
    updated = db.update_category(category_id, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="category not found")
    audit(db, user, "update", "category", category_id, {"fields": sorted(changes)})
    return _with_image(images, updated)


@admin_router.delete("/categories/{category_id}", status_code=204)
def delete_category(
    category_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(category_id, "category")
    removed = db.delete_category(category_id)
    if not removed:
        raise HTTPException(status_code=404, detail="category not found")
    key = images.storage_key(removed["image_path"])
    if key:
        delete_objects_quietly(storage, [key])
    audit(db, user, "delete", "category", category_id)
    return Response(status_code=204)


@router.get("/public/categories")
def public_categories(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    return {"items": [_with_image(images, c) for c in db.list_categories()]}
