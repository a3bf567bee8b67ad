"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from storefront.cache import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from storefront.config import get_settings
from storefront.db import DbClient
from storefront.images import ImageURLHelper
from storefront.mailer import Mailer
from storefront.search import RateLimiter, SearchService
from storefront.storage import InMemoryStorageClient, R2StorageClient, StorageClient

IN_MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_kv_store: KeyValueStore | None = None
_mailer: Mailer | None = None
_rate_limiter: RateLimiter | None = None
_image_helper: ImageURLHelper | None = None
_search_service: SearchService | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so the engine and its pool are shared across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = DbClient(IN_MEMORY_DATABASE_URL)
    else:
        _db_client = DbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.r2_bucket_name:
        _storage_client = InMemoryStorageClient(base_url=settings.r2_public_base_url)
    else:
        _storage_client = R2StorageClient(
            bucket=settings.r2_bucket_name,
            endpoint=settings.r2_endpoint or "",
            access_key_id=settings.r2_access_key_id or "",
            secret_access_key=settings.r2_secret_access_key or "",
            public_base_url=settings.r2_public_base_url,
        )
    return _storage_client


def get_kv_store() -> KeyValueStore:
    """
    Return a singleton key/value store for OTPs and login throttling.
    """
    global _kv_store
    if _kv_store:
        return _kv_store

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _kv_store = RedisKeyValueStore(url=settings.redis_url)
    else:
        _kv_store = InMemoryKeyValueStore()
    return _kv_store


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer
    settings = get_settings()
    _mailer = Mailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_email,
        password=settings.smtp_password,
        from_name=settings.smtp_from_name,
        site_url=settings.site_url,
    )
    return _mailer


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter:
        return _rate_limiter
    settings = get_settings()
    _rate_limiter = RateLimiter(
        capacity=settings.search_rate_capacity,
        refill_rate=settings.search_rate_per_second,
    )
    return _rate_limiter


def get_image_helper() -> ImageURLHelper:
    global _image_helper
    if _image_helper:
        return _image_helper
    _image_helper = ImageURLHelper(get_settings().r2_public_base_url)
    return _image_helper


def get_search_service() -> SearchService:
    global _search_service
    if _search_service:
        return _search_service
    _search_service = SearchService(get_db_client(), get_image_helper())
    return _search_service


def reset_backends() -> None:
    """Clear state held by the in-memory backends (used by tests)."""
    db = get_db_client()
    if db.in_memory:
        db.reset()
    storage = get_storage_client()
    if isinstance(storage, InMemoryStorageClient):
        storage.reset()
    kv = get_kv_store()
    if isinstance(kv, InMemoryKeyValueStore):
        kv.reset()
    get_rate_limiter().reset()
