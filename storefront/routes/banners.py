"""
Banner endpoints and the newsletter signup that sits beside them on the storefront.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_image_helper, get_storage_client
from storefront.images import ImageURLHelper
from storefront.routes.common import audit, require_changes, require_uuid
from storefront.schemas import BannerCreate, BannerUpdate, NewsletterSubscribe
from storefront.storage import StorageClient, delete_objects_quietly

router = APIRouter()
admin_router = APIRouter()

IMAGE_FIELDS = ("desktop_image_url", "laptop_image_url", "mobile_image_url")


def _format_banner(images: ImageURLHelper, banner: dict) -> dict:
    desktop = images.format_with_fallback(banner["desktop_image_url"], "banner")
    banner["desktop_image_url"] = desktop
    banner["laptop_image_url"] = (
        images.format_image_url(banner["laptop_image_url"]) or desktop
    )
    banner["mobile_image_url"] = (
        images.format_image_url(banner["mobile_image_url"]) or desktop
    )
    return banner


def _banner_or_404(db: DbClient, banner_id: str) -> dict:
    require_uuid(banner_id, "banner")
    found = db.get_banner(banner_id)
    if not found:
        raise HTTPException(status_code=404, detail="banner not found")
    return found


@router.get("/public/banners")
def public_banners(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    return {"items": [_format_banner(images, b) for b in db.list_public_banners()]}


@router.post("/public/newsletter/subscribe", status_code=201)
def subscribe(payload: NewsletterSubscribe, db: DbClient = Depends(get_db_client)):
    if db.subscribe_newsletter(payload.email):
        return {"message": "Successfully subscribed to newsletter!", "subscribed": True}
    return {"message": "Email already subscribed!", "subscribed": False}


@admin_router.get("/banners")
def list_banners(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    return {"data": [_format_banner(images, b) for b in db.list_banners()]}


@admin_router.post("/banners", status_code=201)
def create_banner(
    payload: BannerCreate,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    banner = db.create_banner(payload.model_dump())
    audit(db, user, "create", "banner", banner["id"], {"title": payload.title})
    return _format_banner(images, banner)


@admin_router.get("/banners/{banner_id}")
def get_banner(
    banner_id: str,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    return _format_banner(images, _banner_or_404(db, banner_id))


@admin_router.put("/banners/{banner_id}")
def update_banner(
    banner_id: str,
    payload: BannerUpdate,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    _banner_or_404(db, banner_id)
    changes = require_changes(payload.changes())
    updated = db.update_banner(banner_id, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="banner not found")
    audit(db, user, "update", "banner", banner_id, {"fields": sorted(changes)})
    return _format_banner(images, updated)


@admin_router.delete("/banners/{banner_id}", status_code=204)
def delete_banner(
    banner_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(banner_id, "banner")
    removed = db.delete_banner(banner_id)
    if not removed:
        raise HTTPException(status_code=404, detail="banner not found")
    keys = {images.storage_key(removed[name]) for name in IMAGE_FIELDS}
    delete_objects_quietly(storage, sorted(key for key in keys if key))
    audit(db, user, "delete", "banner", banner_id)
    return Response(status_code=204)
