"""
Logo blob storage.

Blobs are written under ``UPLOAD_DIR`` and become publicly readable at
``{PUBLIC_BASE_URL}/blobs/{key}`` as soon as ``upload`` returns.
"""
from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path

from app.config import settings
from app.errors import LogoUploadError

logger = logging.getLogger(__name__)

BLOB_ROUTE = "/blobs"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class LogoUpload:
    """A logo file chosen in a form, kept in memory until submit."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


def safe_filename(filename: str) -> str:
    name = os.path.basename(filename.replace("\\", "/")) or "logo"
    name = _UNSAFE_CHARS.sub("_", name).strip("._") or "logo"
    return name[:120]


def logo_key(owner_id: str, filename: str) -> str:
    """``logos/{owner}/{epoch_ms}_{filename}``; the timestamp keeps keys unique."""
    return f"logos/{safe_filename(owner_id)}/{int(time.time() * 1000)}_{safe_filename(filename)}"


class LocalBlobStorage:
    """Filesystem-backed blob store."""

    def __init__(self, root: str | os.PathLike, base_url: str = ""):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}{BLOB_ROUTE}/{key}"

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Blob key escapes storage root: {key}")
        return path

    def upload(self, key: str, content: bytes) -> str:
        """Store ``content`` under ``key`` and return its public URL."""
        try:
            path = self.path_for(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except (OSError, ValueError) as e:
            logger.error("Blob upload failed for %s: %s", key, e)
            raise LogoUploadError(f"Could not store logo {key}") from e
        logger.info("Stored blob %s (%d bytes)", key, len(content))
        return self.url_for(key)

    def key_from_url(self, url: str) -> str | None:
        prefix = f"{self.base_url}{BLOB_ROUTE}/"
        if url.startswith(prefix):
            return url[len(prefix):]
        return None

    def read(self, url: str) -> bytes:
        """Bytes behind a URL this store handed out."""
        key = self.key_from_url(url)
        if key is None:
            raise FileNotFoundError(url)
        return self.path_for(key).read_bytes()


def get_blob_storage() -> LocalBlobStorage:
    """Blob storage dependency"""
    return LocalBlobStorage(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
