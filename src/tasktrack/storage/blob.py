"""Blob store — where uploaded task images go.

Learn: The rest of the app only knows the BlobStore protocol: hand over
bytes plus a folder hint, get back a BlobInfo whose url ends up in
Task.image. Nothing else ever looks inside the file.

LocalBlobStore writes under Settings.upload_dir and the app serves that
directory at /uploads. A cloud-backed store only has to implement put().
"""

import mimetypes
import re
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Protocol

import structlog
from starlette.concurrency import run_in_threadpool

from tasktrack.errors import ValidationError

logger = structlog.get_logger()

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


class BlobStoreError(Exception):
    """Raised when a blob could not be stored."""


@dataclass(frozen=True)
class BlobInfo:
    url: str
    public_id: str
    width: Optional[int]
    height: Optional[int]
    format: str
    size_bytes: int

    def to_dict(self) -> dict:
        return asdict(self)


class BlobStore(Protocol):
    async def put(
        self, data: bytes, *, folder: str, filename: str, content_type: str
    ) -> BlobInfo: ...


def validate_image(content_type: Optional[str], size: int, max_bytes: int) -> str:
    """Check an upload is an accepted image within the size limit.

    Returns the normalized file extension. Raises ValidationError (400).
    """
    if not content_type or content_type.lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            [{"field": "image", "message": "Only images are allowed (jpeg, jpg, png, gif, webp)"}],
            message="Invalid file type",
        )
    if size == 0:
        raise ValidationError(
            [{"field": "image", "message": "No image was sent"}],
            message="Empty file",
        )
    if size > max_bytes:
        raise ValidationError(
            [{"field": "image", "message": f"Maximum size is {max_bytes // (1024 * 1024)} MB"}],
            message="File too large",
        )
    return ALLOWED_IMAGE_TYPES[content_type.lower()]


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class LocalBlobStore:
    """Stores blobs on the local filesystem, served at {base_url}/uploads."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        # the /uploads static mount needs the directory to exist before any GET
        self.root.mkdir(parents=True, exist_ok=True)

    async def put(
        self, data: bytes, *, folder: str, filename: str, content_type: str
    ) -> BlobInfo:
        ext = ALLOWED_IMAGE_TYPES.get(content_type.lower()) or (
            (mimetypes.guess_extension(content_type) or "").lstrip(".") or "bin"
        )
        stem = _UNSAFE.sub("-", Path(filename or "upload").stem)[:60] or "upload"
        public_id = f"{folder}/{uuid.uuid4().hex}-{stem}"
        target = self.root / f"{public_id}.{ext}"
        try:
            await run_in_threadpool(_write, target, data)
        except OSError as e:
            logger.error("tasktrack.blob.write_failed", path=str(target), error=str(e))
            raise BlobStoreError(f"Could not store file: {e}") from e

        logger.info("tasktrack.blob.stored", public_id=public_id, size=len(data))
        return BlobInfo(
            url=f"{self.base_url}/uploads/{public_id}.{ext}",
            public_id=public_id,
            width=None,
            height=None,
            format=ext,
            size_bytes=len(data),
        )


def _write(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
