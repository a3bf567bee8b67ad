"""
Root-level sitemap endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from storefront.config import get_settings
from storefront.db import DbClient
from storefront.dependencies import get_db_client
from storefront.sitemap import render_sitemap

router = APIRouter()


@router.get("/sitemap.xml")
def sitemap(db: DbClient = Depends(get_db_client)):
    return Response(
        content=render_sitemap(db, get_settings().site_url),
        media_type="application/xml",
        headers={"Cache-Control": "public, max-age=3600, s-maxage=3600"},
    )
