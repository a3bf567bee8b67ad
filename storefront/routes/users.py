"""
Back-office accounts: users, roles, customers and the audit trail.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from storefront.auth import Principal, hash_password, require_staff, require_user_admin
from storefront.db import DbClient
from storefront.dependencies import get_db_client
from storefront.routes.common import audit, cursor_param, next_cursor, require_changes
from storefront.schemas import UserCreate, UserUpdate
from storefront.search import parse_limit

admin_router = APIRouter()


@admin_router.get("/users")
def list_users(
    limit: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_user_admin),
):
    size = parse_limit(limit, 50, maximum=200)
    users = db.list_users(limit=size, cursor=cursor_param(cursor))
    return {"data": users, "next_cursor": next_cursor(users, size, "updated_at")}


@admin_router.post("/users", status_code=201)
def create_user(
    payload: UserCreate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_user_admin),
):
    created = db.create_user(
        email=payload.email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        is_active=payload.is_active,
        roles=payload.roles,
    )
    audit(db, user, "create", "user", created["id"], {"roles": created["roles"]})
    return created


@admin_router.get("/users/{user_id}")
def get_user(
    user_id: int,
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_user_admin),
):
    found = db.get_user(user_id)
    if not found:
        raise HTTPException(status_code=404, detail="user not found")
    return found


@admin_router.put("/users/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_user_admin),
):
    changes = require_changes(payload.changes())
    roles = changes.pop("roles", None)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    updated = db.update_user(user_id, changes, roles=roles)
    if not updated:
        raise HTTPException(status_code=404, detail="user not found")
    fields = sorted(k for k in changes if k != "password_hash")
    audit(db, user, "update", "user", user_id, {"fields": fields, "roles": roles})
    return updated


@admin_router.delete("/users/{user_id}", status_code=204)
def delete_user(
    user_id: int,
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_user_admin),
):
    if user_id == user.user_id:
        raise HTTPException(status_code=403, detail="cannot delete your own account")
    if not db.delete_user(user_id):
        raise HTTPException(status_code=404, detail="user not found")
    audit(db, user, "delete", "user", user_id)
    return Response(status_code=204)


@admin_router.get("/roles")
def list_roles(
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    return {"data": db.list_roles()}


@admin_router.get("/customers")
def list_customers(
    limit: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    size = parse_limit(limit, 50, maximum=200)
    customers = db.list_customers(limit=size, cursor=cursor_param(cursor))
    return {"data": customers, "next_cursor": next_cursor(customers, size, "updated_at")}


@admin_router.get("/customers/{customer_id}/orders")
def customer_orders(
    customer_id: int,
    limit: Optional[str] = Query(default=None),
    cursor: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    size = parse_limit(limit, 20)
    orders = db.list_orders(limit=size, cursor=cursor_param(cursor), user_id=customer_id)
    return {"data": orders, "next_cursor": next_cursor(orders, size, "created_at")}


@admin_router.get("/audit-logs")
def list_audit_logs(
    object_type: Optional[str] = Query(default=None),
    object_id: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    db: DbClient = Depends(get_db_client),
    _: Principal = Depends(require_staff),
):
    items = db.list_audit_logs(
        object_type=object_type,
        object_id=object_id,
        limit=parse_limit(limit, 50, maximum=200),
    )
    return {"items": items}
