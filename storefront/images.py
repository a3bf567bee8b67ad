"""
Image path and URL formatting.

Image references in the database come in three shapes: R2 object keys
(``product/<uuid>.webp``), legacy local upload paths (``/uploads/...``)
and absolute URLs. The helper turns any of them into something a browser
can load.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import Optional

from storefront.storage import build_public_url

R2_KEY_PREFIXES = ("product/", "banner/", "category/")
IMAGE_KINDS = ("product", "banner", "category")

_FALLBACK_FILES = {
    "product": "product-placeholder.webp",
    "banner": "banner-placeholder.webp",
    "category": "category-placeholder.webp",
}


def generate_key(kind: str, filename: Optional[str] = None) -> str:
    """Return a fresh object key such as ``product/<uuid>.webp``."""
    ext = os.path.splitext(filename or "")[1].lower() or ".webp"
    return f"{kind}/{uuid.uuid4()}{ext}"


def _is_absolute_url(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")


@dataclass
class ImageURLHelper:
    public_base_url: str

    def public_url(self, key: str) -> str:
        return build_public_url(self.public_base_url, key)

    def is_r2_key(self, path: Optional[str]) -> bool:
        if not path:
            return False
        if path.startswith(R2_KEY_PREFIXES):
            return True
        return not path.startswith("/uploads/") and not _is_absolute_url(path)

    def format_image_url(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        if path.startswith("/uploads/") or _is_absolute_url(path):
            return path
        return self.public_url(path)

    def get_image_key_and_url(
        self, path: Optional[str]
    ) -> tuple[Optional[str], Optional[str]]:
        if not path:
            return None, None
        if path.startswith("/uploads/"):
            return path, None
        if _is_absolute_url(path):
            return None, path
        return path, self.public_url(path)

    def get_fallback_image_url(self, kind: str) -> str:
        filename = _FALLBACK_FILES.get(kind, "placeholder.webp")
        return f"{self.public_base_url.rstrip('/')}/{filename}"

    def format_with_fallback(self, path: Optional[str], kind: str) -> str:
        return self.format_image_url(path) or self.get_fallback_image_url(kind)

    def storage_key(self, reference: Optional[str]) -> Optional[str]:
        """
        Map an image reference back to the object key it was uploaded under.

        Absolute URLs under our public base resolve to their key; anything
        outside our bucket (``/uploads/`` paths, foreign URLs) has none.
        """
        if not reference:
            return None
        base = self.public_base_url.rstrip("/") + "/"
        if reference.startswith(base):
            reference = reference[len(base):]
        if reference.startswith(R2_KEY_PREFIXES):
            return reference
        return None
