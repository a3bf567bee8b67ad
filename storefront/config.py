"""
Configuration and settings for the storefront backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected, SQLite in memory when unset)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Auth
    jwt_secret: str = Field(default="dev-jwt-secret", alias="JWT_SECRET")
    refresh_secret: str = Field(
        default="dev-refresh-secret", alias="REFRESH_SECRET"
    )

    # Object storage (Cloudflare R2, S3-compatible)
    r2_account_id: Optional[str] = Field(default=None, alias="R2_ACCOUNT_ID")
    r2_access_key_id: Optional[str] = Field(default=None, alias="R2_ACCESS_KEY_ID")
    r2_secret_access_key: Optional[str] = Field(
        default=None, alias="R2_SECRET_ACCESS_KEY"
    )
    r2_bucket_name: Optional[str] = Field(default=None, alias="R2_BUCKET_NAME")
    r2_s3_endpoint: Optional[str] = Field(default=None, alias="R2_S3_ENDPOINT")
    r2_public_base_url: str = Field(
        default="https://example.test/media", alias="R2_PUBLIC_BASE_URL"
    )

    # Key/value store (Redis) for OTPs and login throttling
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    # Cookies and CORS
    cookie_domain: Optional[str] = Field(default=None, alias="COOKIE_DOMAIN")
    admin_frontend_url: Optional[str] = Field(
        default=None, alias="ADMIN_FRONTEND_URL"
    )
    web_frontend_url: Optional[str] = Field(default=None, alias="WEB_FRONTEND_URL")
    site_url: str = Field(default="http://localhost:4321", alias="SITE_URL")
    dev: bool = Field(default=False, alias="DEV")

    # SMTP
    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_email: Optional[str] = Field(default=None, alias="SMTP_EMAIL")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD")
    smtp_from_name: str = Field(default="eTreasure", alias="SMTP_FROM_NAME")

    # Search rate limiting (per client IP)
    search_rate_capacity: int = Field(default=60, alias="SEARCH_RATE_CAPACITY")
    search_rate_per_second: float = Field(
        default=1.0, alias="SEARCH_RATE_PER_SECOND"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="STOREFRONT_USE_IN_MEMORY_BACKENDS"
    )

    @property
    def r2_endpoint(self) -> Optional[str]:
        if self.r2_s3_endpoint:
            return self.r2_s3_endpoint
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None

    @property
    def cors_origins(self) -> list[str]:
        origins = [
            url.rstrip("/")
            for url in (self.web_frontend_url, self.admin_frontend_url)
            if url
        ]
        if self.dev:
            origins += [
                "http://localhost:4321",
                "http://localhost:5173",
                "http://127.0.0.1:4321",
                "http://127.0.0.1:5173",
            ]
        return origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
