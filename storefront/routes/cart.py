"""
Cart and wishlist endpoints, keyed by an anonymous `session_id` cookie.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response

from storefront.config import get_settings
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_image_helper
from storefront.images import ImageURLHelper
from storefront.schemas import CartAddRequest, WishlistToggleRequest

router = APIRouter()

SESSION_COOKIE = "session_id"
SESSION_MAX_AGE = 30 * 24 * 60 * 60


def new_session_id() -> str:
    return f"session_{uuid.uuid4()}"


def set_session_cookie(request: Request, response: Response, session_id: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=SESSION_MAX_AGE,
        path="/",
        domain=get_settings().cookie_domain or None,
        secure=request.url.scheme == "https",
        httponly=True,
        samesite="lax",
    )


def _require_session(session_id: Optional[str]) -> str:
    if not session_id:
        raise HTTPException(status_code=401, detail="No session found")
    return session_id


def _ensure_session(
    request: Request, response: Response, session_id: Optional[str]
) -> str:
    if session_id:
        return session_id
    session_id = new_session_id()
    set_session_cookie(request, response, session_id)
    return session_id


# Cart


@router.post("/cart/add")
def add_to_cart(
    payload: CartAddRequest,
    request: Request,
    response: Response,
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
):
    session_id = _ensure_session(request, response, session_id)
    if not db.add_to_cart(session_id, payload.product_id, payload.quantity):
        raise HTTPException(status_code=404, detail="product not found")
    return {"message": "Item added to cart", "session_id": session_id}


@router.get("/cart")
def get_cart(
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    if not session_id:
        return {"items": [], "total": 0, "count": 0}
    items = []
    total = 0.0
    count = 0
    for row in db.get_cart(session_id):
        price = row["price_cents"] / 100
        items.append(
            {
                "id": row["id"],
                "product_id": row["product_id"],
                "title": row["title"],
                "price": price,
                "quantity": row["quantity"],
                "image_url": images.format_with_fallback(row["image_path"], "product"),
            }
        )
        total += price * row["quantity"]
        count += row["quantity"]
    return {"items": items, "total": round(total, 2), "count": count}


@router.post("/cart/clear")
def clear_cart(
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
):
    db.clear_cart(_require_session(session_id))
    return {"message": "Cart cleared successfully"}


@router.delete("/cart/{item_id}")
def remove_cart_item(
    item_id: str,
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
):
    if not db.remove_cart_item(_require_session(session_id), item_id):
        raise HTTPException(status_code=404, detail="cart item not found")
    return {"message": "Item removed from cart successfully", "item_id": item_id}


# Wishlist


@router.post("/wishlist/toggle")
def toggle_wishlist(
    payload: WishlistToggleRequest,
    request: Request,
    response: Response,
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
):
    session_id = _ensure_session(request, response, session_id)
    in_wishlist = db.toggle_wishlist(session_id, payload.product_id)
    if in_wishlist is None:
        raise HTTPException(status_code=404, detail="product not found")
    message = (
        "Product added to wishlist successfully"
        if in_wishlist
        else "Product removed from wishlist successfully"
    )
    return {
        "message": message,
        "product_id": payload.product_id,
        "in_wishlist": in_wishlist,
    }


@router.get("/wishlist")
def get_wishlist(
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
    images: ImageURLHelper = Depends(get_image_helper),
):
    if not session_id:
        return {"items": [], "count": 0}
    items = [
        {
            "id": row["id"],
            "product_id": row["product_id"],
            "title": row["title"],
            "price": row["price_cents"] / 100,
            "image_url": images.format_with_fallback(row["image_path"], "product"),
            "added_at": row["added_at"],
        }
        for row in db.get_wishlist(session_id)
    ]
    return {"items": items, "count": len(items)}


@router.delete("/wishlist/{product_id}")
def remove_wishlist_item(
    product_id: str,
    session_id: Optional[str] = Cookie(default=None),
    db: DbClient = Depends(get_db_client),
):
    if not db.remove_wishlist_item(_require_session(session_id), product_id):
        raise HTTPException(status_code=404, detail="wishlist item not found")
    return {
        "message": "Product removed from wishlist successfully",
        "product_id": product_id,
    }
