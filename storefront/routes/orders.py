"""
Order endpoints for the back office and the signed-in customer.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from storefront.auth import Principal, get_current_user, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client
from storefront.routes.common import (
    audit,
    cursor_param,
    next_cursor,
    require_changes,
    require_uuid,
)
from storefront.schemas import OrderCreate, OrderUpdate
from storefront.search import parse_limit

router = APIRouter()
admin_router = APIRouter()


@router.get("/orders/my")
def my_orders(
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(get_current_user),
):
    return {"data": db.list_orders(limit=100, user_id=user.user_id)}


@admin_router.get("/orders")
def list_orders(
    limit: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    size = parse_limit(limit, 50, maximum=200)
    orders = db.list_orders(limit=size, cursor=cursor_param(cursor))
    return {"data": orders, "next_cursor": next_cursor(orders, size, "created_at")}


@admin_router.post("/orders", status_code=201)
def create_order(
    payload: OrderCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    order_id = db.create_order(payload.model_dump())
    order = db.get_order(order_id)
    audit(db, user, "create", "order", order_id, {"order_number": order["order_number"]})
    return order


@admin_router.get("/orders/{order_id}")
def get_order(
    order_id: str,
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    require_uuid(order_id, "order")
    order = db.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="order not found")
    return order


@admin_router.put("/orders/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    require_uuid(order_id, "order")
    changes = require_changes(payload.changes())
    order = db.update_order(order_id, changes)
    if not order:
        raise HTTPException(status_code=404, detail="order not found")
    audit(db, user, "update", "order", order_id, {"fields": sorted(changes)})
    return order


@admin_router.delete("/orders/{order_id}", status_code=204)
def delete_order(
    order_id: str,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    require_uuid(order_id, "order")
    if not db.delete_order(order_id):
        raise HTTPException(status_code=404, detail="order not found")
    audit(db, user, "delete", "order", order_id)
    return Response(status_code=204)
