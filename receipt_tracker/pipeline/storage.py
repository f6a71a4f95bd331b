"""
Blob storage and the uploader that sits in front of it.

The uploader validates an image, stores it under a fresh key and returns
both a permanent URL and a short-lived signed URL the analysis service can
fetch.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable
from urllib.parse import quote, urlencode

from receipt_tracker.pipeline.errors import (
    InvalidUpload,
    StorageUnavailable,
    UnsupportedImageType,
)
from receipt_tracker.schemas import UploadedImage

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}
MAX_SIGNED_URL_TTL = 15 * 60

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


# ---------------------------------------------------------------------------
# Storage collaborator
# ---------------------------------------------------------------------------

class BlobStore:
    """Object-storage boundary. Keys are opaque to callers."""

    def put(self, key: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError

    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        raise NotImplementedError

    def permanent_url(self, key: str) -> str:
        raise NotImplementedError

    def open(self, key: str) -> bytes:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Filesystem-backed store serving blobs through ``/api/blobs/{key}``.

    File I/O is blocking; async callers run it in a worker thread.
    """

    def __init__(
        self,
        root: str | Path,
        base_url: str,
        signing_key: str,
        clock: Callable[[], float] = time.time,
    ):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self._signing_key = signing_key.encode("utf-8")
        self._clock = clock

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise KeyError(key)
        return self.root / key

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._path(key).write_bytes(data)
        except OSError as exc:
            raise StorageUnavailable(f"could not write blob: {exc}", key=key) from exc

    def open(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise KeyError(key)
        return path.read_bytes()

    def permanent_url(self, key: str) -> str:
        return f"{self.base_url}/api/blobs/{quote(key)}"

    def sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        expires = int(self._clock()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self.sign(key, expires)})
        return f"{self.permanent_url(key)}?{query}"

    def verify(self, key: str, expires: int, signature: str) -> bool:
        if expires < self._clock():
            return False
        return hmac.compare_digest(self.sign(key, expires), signature)


# ---------------------------------------------------------------------------
# Uploader
# ---------------------------------------------------------------------------

def make_storage_key(filename_hint: str, content_type: str, now: datetime | None = None) -> str:
    """``{utc ms timestamp}-{sanitized filename}``.

    Unique enough for one user uploading by hand; two uploads of the same
    filename in the same millisecond would collide.
    """
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)
    hint = Path(filename_hint or "")
    stem = _UNSAFE_CHARS.sub("_", hint.stem).strip("._") or "receipt"
    suffix = hint.suffix.lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,5}", suffix):
        suffix = ALLOWED_CONTENT_TYPES.get(content_type, "")
    return f"{stamp}-{stem}{suffix}"


class BlobUploader:
    def __init__(
        self,
        store: BlobStore,
        ttl_seconds: int = MAX_SIGNED_URL_TTL,
        max_bytes: int | None = None,
    ):
        if not 0 < ttl_seconds <= MAX_SIGNED_URL_TTL:
            raise ValueError(f"ttl_seconds must be within 1..{MAX_SIGNED_URL_TTL}")
        self.blobs = store
        self.ttl_seconds = ttl_seconds
        self.max_bytes = max_bytes

    def store(self, image_bytes: bytes, content_type: str, filename_hint: str = "") -> UploadedImage:
        if not image_bytes:
            raise InvalidUpload("image is empty")
        if self.max_bytes is not None and len(image_bytes) > self.max_bytes:
            raise InvalidUpload(f"image exceeds {self.max_bytes} bytes", size=len(image_bytes))
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedImageType(
                f"content type {content_type or '(none)'} is not allowed",
                allowed=sorted(ALLOWED_CONTENT_TYPES),
            )

        key = make_storage_key(filename_hint, content_type)
        self.blobs.put(key, image_bytes, content_type)
        logger.info("Stored image %s (%d bytes, %s)", key, len(image_bytes), content_type)

        return UploadedImage(
            key=key,
            permanent_url=self.blobs.permanent_url(key),
            readable_url=self.blobs.signed_read_url(key, self.ttl_seconds),
        )
