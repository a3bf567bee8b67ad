"""
Offer endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client
from storefront.routes.common import audit, require_changes, require_uuid
from storefront.schemas import OfferCreate, OfferUpdate

router = APIRouter()
admin_router = APIRouter()

OFFER_PAGE_SIZE = 50


def _active_offers(db: DbClient) -> dict:
    items = db.list_active_offers(limit=OFFER_PAGE_SIZE)
    return {
        "items": items,
        "total": len(items),
        "page": 1,
        "limit": OFFER_PAGE_SIZE,
        "next_cursor": None,
    }


@router.get("/public/offers")
def public_offers(db: DbClient = Depends(get_db_client)):
    return _active_offers(db)


@admin_router.get("/offers")
def list_offers(
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    return _active_offers(db)


@admin_router.post("/offers", status_code=201)
def create_offer(
    payload: OfferCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    offer = db.create_offer(payload.model_dump())
    audit(db, user, "create", "offer", offer["id"], {"title": payload.title})
    return offer


@admin_router.get("/offers/{offer_id}")
def get_offer(
    offer_id: str,
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    require_uuid(offer_id, "offer")
    offer = db.get_offer(offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="offer not found")
    return offer


@admin_router.put("/offers/{offer_id}")
def update_offer(
    offer_id: str,
    payload: OfferUpdate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    require_uuid(offer_id, "offer")
    changes = require_changes(payload.changes())
    offer = db.update_offer(offer_id, changes)
    if not offer:
        raise HTTPException(status_code=404, detail="offer not found")
    audit(db, user, "update", "offer", offer_id, {"fields": sorted(changes)})
    return offer


@admin_router.delete("/offers/{offer_id}", status_code=204)
def delete_offer(
    offer_id: str,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    require_uuid(offer_id, "offer")
    if not db.delete_offer(offer_id):
        raise HTTPException(status_code=404, detail="offer not found")
    audit(db, user, "delete", "offer", offer_id)
    return Response(status_code=204)
