"""
FastAPI application entry point for the storefront backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config import get_settings
from storefront.db import ConflictError
from storefront.routes import router, sitemap_router

logger = logging.getLogger(__name__)


async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "invalid payload", "details": jsonable_encoder(exc.errors())},
    )


async def conflict_error(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": str(exc)})


async def database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "database error"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Storefront API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(ConflictError, conflict_error)
    app.add_exception_handler(SQLAlchemyError, database_error)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(sitemap_router)
    return app


app = create_app()
