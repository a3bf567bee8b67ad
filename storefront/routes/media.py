"""
Media library: uploads to object storage, presigned uploads and the public image proxy.
"""

from __future__ import annotations

import io
import logging

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from PIL import Image, UnidentifiedImageError
from sqlalchemy.exc import SQLAlchemyError

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_image_helper, get_storage_client
from storefront.images import IMAGE_KINDS, ImageURLHelper, generate_key
from storefront.routes.common import audit, require_uuid
from storefront.schemas import PresignRequest
from storefront.storage import StorageClient, delete_objects_quietly

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/avif")


def _image_size(data: bytes) -> tuple[int | None, int | None]:
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.width, image.height
    except (UnidentifiedImageError, OSError):
        return None, None


@admin_router.post("/media/upload", status_code=201)
async def upload_media(
    file: UploadFile = File(...),
    kind: str = Form("product"),
    alt: str | None = Form(None),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    user: Principal = Depends(require_staff),
):
    if kind not in IMAGE_KINDS:
        raise HTTPException(
            status_code=400, detail="kind must be one of product, banner, category"
        )
    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="file size exceeds 5MB limit")
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail="invalid file type. Only JPEG, PNG, WebP, and AVIF are allowed",
        )

    key = generate_key(kind, file.filename)
    try:
        storage.put_object(key, data, content_type)
    except ClientError:
        logger.exception("Upload of %s to object storage failed", key)
        raise HTTPException(status_code=500, detail="failed to upload to storage")

    width, height = _image_size(data)
    try:
        media = db.create_media(
            key,
            mime=content_type,
            size_bytes=len(data),
            width=width,
            height=height,
            alt=alt,
        )
    except SQLAlchemyError:
        logger.exception("Failed to store media record for %s", key)
        delete_objects_quietly(storage, [key])
        raise HTTPException(status_code=500, detail="failed to store media record")

    audit(db, user, "upload", "media", media["id"], {"key": key})
    return {
        "id": media["id"],
        "key": key,
        "url": storage.public_url(key),
        "width": width,
        "height": height,
        "mime": content_type,
        "size_bytes": len(data),
    }


@admin_router.post("/media/presign")
def presign_upload(
    payload: PresignRequest,
    storage: StorageClient = Depends(get_storage_client),
    _: Principal = Depends(require_staff),
):
    key = generate_key(payload.kind, payload.filename)
    return {
        "key": key,
        "upload_url": storage.presign_put(key, payload.content_type),
        "public_url": storage.public_url(key),
    }


@admin_router.get("/media")
def list_media(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    items = db.list_media()
    for item in items:
        item["url"] = images.format_image_url(item["path"])
    return {"items": items}


@admin_router.delete("/media/{media_id}", status_code=204)
def delete_media(
    media_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(media_id, "media")
    path = db.delete_media(media_id)
    if path is None:
        raise HTTPException(status_code=404, detail="media not found")
    key = images.storage_key(path)
    if key:
        delete_objects_quietly(storage, [key])
    audit(db, user, "delete", "media", media_id)
    return Response(status_code=204)


@router.get("/public/media/{key:path}")
def serve_media(key: str, storage: StorageClient = Depends(get_storage_client)):
    """Proxy an object from storage; `_` in the key stands for `/`."""
    key = key.replace("_", "/")
    try:
        body, content_type = storage.get_object(key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(
        content=body,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=31536000"},
    )
