"""Object storage collaborator kept in the relational store.

Objects are addressed by ``(bucket, path)`` and served back through the
``/api/v1/storage`` route, which makes ``public_url`` stable across instances.
"""

from __future__ import annotations

import mimetypes
import time

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import ConflictException
from .metrics import UPLOADS_TOTAL
from .models import StoredObject

logger = structlog.get_logger(__name__)

MEDIA_BUCKET = "media"
AVATARS_PREFIX = "avatars"
TEAM_PHOTOS_PREFIX = "team-photos"

_ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


def timestamped_path(prefix: str, entity_id, content_type: str, now: float | None = None) -> str:
    """``<prefix>/<entity id>-<epoch millis>.<ext>`` so repeated uploads never collide."""
    ext = mimetypes.guess_extension(content_type) or ".bin"
    if ext == ".jpe":
        ext = ".jpg"
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{prefix}/{entity_id}-{millis}{ext}"


def validate_image_upload(raw: bytes, content_type: str | None, max_bytes: int) -> str:
    if not raw:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty body")
    if len(raw) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds {max_bytes} bytes",
        )
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in _ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type: {content_type or 'unknown'}",
        )
    return content_type


class ObjectStorage:
    def __init__(self, db: AsyncSession, public_base_url: str) -> None:
        self.db = db
        self.public_base_url = public_base_url.rstrip("/")

    async def get(self, bucket: str, path: str) -> StoredObject | None:
        return await self.db.scalar(
            select(StoredObject).where(StoredObject.bucket == bucket, StoredObject.path == path)
        )

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        *,
        overwrite: bool = False,
    ) -> StoredObject:
        """Stage the object in the caller's transaction; the caller commits."""
        existing = await self.get(bucket, path)
        if existing is not None:
            if not overwrite:
                raise ConflictException(f"Object {bucket}/{path} already exists")
            existing.data = data
            existing.content_type = content_type
            obj = existing
        else:
            obj = StoredObject(bucket=bucket, path=path, data=data, content_type=content_type)
            self.db.add(obj)
        await self.db.flush()
        UPLOADS_TOTAL.labels(bucket=bucket).inc()
        logger.info("storage_object_staged", bucket=bucket, path=path, size=len(data), overwrite=overwrite)
        return obj

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/api/v1/storage/{bucket}/{path}"
