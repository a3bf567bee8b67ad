"""
HTTP routes for the storefront API.
"""

from __future__ import annotations

from fastapi import APIRouter

from storefront.routes import (
    auth,
    banners,
    cart,
    categories,
    media,
    offers,
    orders,
    products,
    search,
    settings,
    stock_notifications,
    users,
)
from storefront.routes.sitemap import router as sitemap_router

router = APIRouter()

# Storefront
router.include_router(auth.router, prefix="/auth")
router.include_router(auth.public_router, prefix="/public")
for module in (
    search,
    products,
    media,
    categories,
    banners,
    offers,
    settings,
    orders,
    cart,
    stock_notifications,
):
    router.include_router(module.router)

# Back office
router.include_router(auth.admin_router, prefix="/admin/auth")
router.include_router(auth.admin_me_router, prefix="/admin")
for module in (
    search,
    products,
    media,
    categories,
    banners,
    offers,
    settings,
    users,
    orders,
    stock_notifications,
):
    router.include_router(module.admin_router, prefix="/admin")

__all__ = ["router", "sitemap_router"]
