"""
Search endpoints: fallback search, suggestions, facets, health and reindex.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from storefront.auth import Principal, require_staff
from storefront.db import DbClient
from storefront.dependencies import get_db_client, get_rate_limiter, get_search_service
from storefront.routes.common import audit, client_ip, elapsed_ms, now_rfc3339
from storefront.search import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SUGGEST_LIMIT,
    RateLimiter,
    SearchService,
    is_valid_query,
    parse_limit,
)

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter()


def _check_request(request: Request, limiter: RateLimiter, q: str) -> str:
    if not limiter.allow(client_ip(request)):
        raise HTTPException(status_code=429, detail="rate limit exceeded")
    q = q.strip()
    if not is_valid_query(q):
        raise HTTPException(status_code=400, detail="query too short")
    return q


@router.get("/search")
def search(
    request: Request,
    response: Response,
    q: str = Query(default=""),
    limit: Optional[str] = Query(default=None),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: SearchService = Depends(get_search_service),
):
    started = time.perf_counter()
    q = _check_request(request, limiter, q)
    outcome = service.search(q, parse_limit(limit, DEFAULT_SEARCH_LIMIT))
    response.headers["Cache-Control"] = "public, max-age=30, stale-while-revalidate=60"
    return {
        "q": q,
        "results": outcome.results,
        "source": outcome.source,
        "took_ms": elapsed_ms(started),
    }


@router.get("/search/suggest")
def suggest(
    request: Request,
    response: Response,
    q: str = Query(default=""),
    limit: Optional[str] = Query(default=None),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: SearchService = Depends(get_search_service),
):
    started = time.perf_counter()
    q = _check_request(request, limiter, q)
    outcome = service.suggest(q, parse_limit(limit, DEFAULT_SUGGEST_LIMIT))
    response.headers["Cache-Control"] = "public, max-age=30"
    return {"q": q, "results": outcome.results, "took_ms": elapsed_ms(started)}


@router.get("/search/facets")
def facets(
    response: Response,
    q: str = Query(default=""),
    service: SearchService = Depends(get_search_service),
):
    started = time.perf_counter()
    q = q.strip()
    result = service.facets(q)
    response.headers["Cache-Control"] = "public, max-age=600"
    return {"q": q, "facets": result, "took_ms": elapsed_ms(started)}


@router.get("/search/health")
def health(db: DbClient = Depends(get_db_client)):
    started = time.perf_counter()
    if not db.ping():
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "pg_trgm": "unknown",
                "unaccent": "unknown",
                "took_ms": elapsed_ms(started),
                "timestamp": now_rfc3339(),
            },
        )
    return {
        "status": "healthy",
        "pg_trgm": db.has_extension("pg_trgm"),
        "unaccent": db.has_extension("unaccent"),
        "took_ms": elapsed_ms(started),
        "timestamp": now_rfc3339(),
    }


@admin_router.post("/search/reindex")
def reindex(
    db: DbClient = Depends(get_db_client),
    user: Principal = Depends(require_staff),
):
    started = time.perf_counter()
    updated = db.reindex_products()
    logger.info("Rebuilt search text for %d products", updated)
    audit(db, user, "reindex", "search", data={"updated": updated})
    return {
        "message": "search index rebuilt successfully",
        "updatedCount": updated,
        "durationMs": elapsed_ms(started),
        "timestamp": now_rfc3339(),
    }
