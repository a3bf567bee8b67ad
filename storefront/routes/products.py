"""
Product endpoints: admin CRUD and stock, public catalog listing and detail.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from storefront.auth import Principal, require_staff
from storefront.db import DbClient, is_uuid
from storefront.dependencies import (
    get_db_client,
    get_image_helper,
    get_mailer,
    get_storage_client,
)
from storefront.images import ImageURLHelper
from storefront.mailer import Mailer
from storefront.notifications import send_stock_notifications
from storefront.routes.common import audit, require_uuid
from storefront.schemas import (
    ProductCreate,
    ProductSearchRequest,
    ProductUpdate,
    VariantStockUpdate,
)
from storefront.search import DEFAULT_SEARCH_LIMIT, parse_limit
from storefront.storage import StorageClient, delete_objects_quietly

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


def _parse_rupees(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(round(value * 100))


# Admin


@admin_router.get("/products")
def list_products(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    items = db.list_products_admin()
    for item in items:
        item["image_url"] = images.format_image_url(item.pop("image_path"))
    return {"items": items}


@admin_router.post("/products", status_code=201)
def create_product(
    payload: ProductCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    product_id = db.create_product(payload.model_dump())
    audit(db, user, "create", "product", product_id, {"slug": payload.slug})
    return {"uuid_id": product_id}


@admin_router.get("/products/out-of-stock")
def out_of_stock_products(
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    products = db.out_of_stock_products()
    for product in products:
        product["image_url"] = images.format_image_url(product.pop("image_path"))
    return {"products": products}


@admin_router.get("/products/{product_id}")
def get_product(
    product_id: str,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
    _: Principal = Depends(require_staff),
):
    require_uuid(product_id, "product")
    found = db.get_product(product_id)
    if not found:
        raise HTTPException(status_code=404, detail="product not found")
    for image in found["images"]:
        image["url"] = images.format_image_url(image["path"])
    return found


@admin_router.put("/products/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    require_uuid(product_id, "product")
    changes = payload.changes()
    if not db.update_product(product_id, changes):
        raise HTTPException(status_code=404, detail="product not found")
    audit(db, user, "update", "product", product_id, {"fields": sorted(changes)})
    return {"uuid_id": product_id}


@admin_router.delete("/products/{product_id}", status_code=204)
def delete_product(
    product_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    require_uuid(product_id, "product")
    paths = db.delete_product(product_id)
    if paths is None:
        raise HTTPException(status_code=404, detail="product not found")
    keys = [key for key in map(images.storage_key, paths) if key]
    delete_objects_quietly(storage, keys)
    audit(db, user, "delete", "product", product_id)
    return Response(status_code=204)


@admin_router.patch("/products/{product_id}/variants/{variant_id}/stock")
def update_variant_stock(
    product_id: str,
    variant_id: str,
    payload: VariantStockUpdate,
    db: DbClient = Depends(get_db_client),
    mailer: Mailer = Depends(get_mailer),
    images: ImageURLHelper = Depends(get_image_helper),
    user: Principal = Depends(require_staff),
):
    try:
        variant = int(variant_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid variant ID")
    totals = db.update_variant_stock(product_id, variant, payload.stock_quantity)
    if totals is None:
        raise HTTPException(status_code=404, detail="variant not found")
    previous, current = totals
    audit(
        db,
        user,
        "update_stock",
        "product_variant",
        variant,
        {"stock_quantity": payload.stock_quantity},
    )
    if previous == 0 and current > 0:
        send_stock_notifications(db, mailer, images, product_id)
    return {
        "message": "stock updated successfully",
        "stock_quantity": payload.stock_quantity,
    }


# Public


@router.get("/products")
def list_public_products(
    limit: Optional[str] = Query(default=None),
    page: Optional[str] = Query(default=None),
    search: str = Query(default=""),
    sort: str = Query(default=""),
    min_price: Optional[str] = Query(default=None),
    max_price: Optional[str] = Query(default=None),
    in_stock: Optional[str] = Query(default=None),
    category_id: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    size = parse_limit(limit, DEFAULT_SEARCH_LIMIT)
    page_number = parse_limit(page, 1, maximum=10**6)
    if category_id and not is_uuid(category_id):
        raise HTTPException(status_code=400, detail="invalid category_id")
    items, total = db.list_public_products(
        limit=size,
        page=page_number,
        search=search.strip(),
        sort=sort,
        min_price_cents=_parse_rupees(min_price),
        max_price_cents=_parse_rupees(max_price),
        in_stock=in_stock in ("1", "true"),
        category_id=category_id or None,
        category_slug=category or None,
    )
    for item in items:
        key, _ = images.get_image_key_and_url(item.get("image_path"))
        item["image_key"] = key
        item["image_url"] = images.format_with_fallback(
            item.pop("image_path"), "product"
        )
    return {"items": items, "total": total, "page": page_number, "limit": size}


@router.post("/products/search")
def simple_search(
    payload: ProductSearchRequest,
    db: DbClient = Depends(get_db_client),
):
    return {"items": db.simple_search_products(payload.query.strip())}


@router.get("/products/{slug}")
def get_public_product(
    slug: str,
    fields: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    product = db.get_public_product(slug)
    if not product:
        raise HTTPException(status_code=404, detail="product not found")
    gallery = [
        {"url": images.format_image_url(image["path"]), "sort_order": image["sort_order"]}
        for image in product["images"]
    ]
    body = {
        "id": product["id"],
        "slug": product["slug"],
        "title": product["title"],
        "description": product["description"],
        "price_cents": product["price_cents"],
        "currency": product["currency"],
        "availability": "InStock" if product["stock_quantity"] > 0 else "OutOfStock",
        "hero_image": {"url": gallery[0]["url"] if gallery else None},
        "images": gallery,
    }
    if fields:
        requested = {f.strip() for f in fields.split(",") if f.strip()}
        body = {key: value for key, value in body.items() if key in requested}
    return body


@router.get("/products/{slug}/related")
def related_products(
    slug: str,
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    items = db.related_products(slug)
    if items is None:
        raise HTTPException(status_code=404, detail="product not found")
    for item in items:
        item["image_url"] = images.format_with_fallback(
            item.pop("image_path"), "product"
        )
    return {"items": items}
