"""
Storage abstraction for Cloudflare R2 (S3-compatible) and in-memory testing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        ...

    def get_object(self, key: str) -> tuple[bytes, str]:
        ...

    def delete_object(self, key: str) -> None:
        ...

    def presign_put(
        self, key: str, content_type: str, expires_in: int = 900
    ) -> str:
        ...

    def public_url(self, key: str) -> str:
        ...


def build_public_url(base_url: str, key: str) -> str:
    """Join a public base URL and an object key, encoding unsafe characters."""
    key = key.strip("/")
    return f"{base_url.rstrip('/')}/{quote(key, safe='/')}"


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/media"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        self.stored_objects[key] = (bytes(body), content_type)

    def get_object(self, key: str) -> tuple[bytes, str]:
        stored = self.stored_objects.get(key)
        if stored is None:
            raise FileNotFoundError(key)
        return stored

    def delete_object(self, key: str) -> None:
        self.stored_objects.pop(key, None)

    def presign_put(
        self, key: str, content_type: str, expires_in: int = 900
    ) -> str:
        return f"{self.base_url}/{key}?op=put&expires={expires_in}"

    def public_url(self, key: str) -> str:
        return build_public_url(self.base_url, key)

    def reset(self) -> None:
        self.stored_objects.clear()


@dataclass
class R2StorageClient:
    """
    S3-compatible storage client for Cloudflare R2.
    """

    bucket: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str
    region: str = "auto"

    def __post_init__(self):
        # R2 expects path-style addressing and s3v4 signatures in the "auto" region.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    def get_object(self, key: str) -> tuple[bytes, str]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise FileNotFoundError(key) from exc
            raise
        content_type = response.get("ContentType") or "application/octet-stream"
        return response["Body"].read(), content_type

    def delete_object(self, key: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=key)

    def presign_put(
        self, key: str, content_type: str, expires_in: int = 900
    ) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ContentType": content_type,
            },
            ExpiresIn=expires_in,
        )

    def public_url(self, key: str) -> str:
        return build_public_url(self.public_base_url, key)


def delete_objects_quietly(storage: StorageClient, keys: list[str]) -> None:
    """Best-effort removal of storage objects left behind by a deleted record."""
    for key in keys:
        try:
            storage.delete_object(key)
        except (ClientError, OSError):
            logger.warning("Failed to delete storage object %s", key, exc_info=True)
