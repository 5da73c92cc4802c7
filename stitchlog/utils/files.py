"""Blob storage for uploaded photos."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote, urlparse

from stitchlog.config import config
from stitchlog.errors import StorageUnavailableError, ValidationError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Minimal object store used for photos."""

    def put(self, path: str, content: bytes) -> str:
        """Store ``content`` under ``path`` and return its public URL."""
        ...

    def delete(self, path: str) -> None:
        """Remove the blob at ``path``. Missing blobs are not an error."""
        ...

    def exists(self, path: str) -> bool: ...

    def path_from_url(self, url: str) -> str:
        """Recover the storage path from a URL returned by :meth:`put`."""
        ...


def generate_blob_path(entity_id: int, original_filename: str) -> str:
    """Build a collision-free blob path like ``12/20250117_101500_ab12cd34.jpg``.

    Args:
        entity_id: Owning project id, used as directory
        original_filename: Filename from the upload, only its extension is kept

    Returns:
        Relative blob path
    """
    ext = Path(original_filename).suffix.lower()
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    short_uuid = uuid.uuid4().hex[:8]
    return f"{entity_id}/{timestamp}_{short_uuid}{ext}"


def _clean_path(path: str) -> PurePosixPath:
    candidate = PurePosixPath(path)
    if (
        not path
        or candidate.is_absolute()
        or any(part in {"", ".", ".."} for part in candidate.parts)
    ):
        raise ValidationError(f"Invalid blob path {path!r}", entity="blob")
    return candidate


class LocalBlobStore:
    """Blob store backed by a directory below ``MEDIA_ROOT``."""

    def __init__(self, root: Path, bucket: str, base_url: str) -> None:
        self.root = root
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")

    @property
    def bucket_dir(self) -> Path:
        return self.root / self.bucket

    def _file(self, path: str) -> Path:
        return self.bucket_dir.joinpath(*_clean_path(path).parts)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{self.bucket}/{_clean_path(path)}"

    def put(self, path: str, content: bytes) -> str:
        target = self._file(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Could not write blob {path}: {exc}",
                entity="blob",
                operation="put",
                entity_id=path,
            ) from exc
        logger.debug("Stored blob %s (%d bytes)", path, len(content))
        return self.url_for(path)

    def delete(self, path: str) -> None:
        target = self._file(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Could not delete blob {path}: {exc}",
                entity="blob",
                operation="delete",
                entity_id=path,
            ) from exc

        # Drop the per-project directory once it is empty.
        parent = target.parent
        if parent == self.bucket_dir or not parent.exists():
            return
        if not any(parent.iterdir()):
            parent.rmdir()

    def exists(self, path: str) -> bool:
        return self._file(path).is_file()

    def path_from_url(self, url: str) -> str:
        parts = [unquote(part) for part in urlparse(url).path.split("/") if part]
        if self.bucket not in parts:
            raise ValidationError(
                f"URL {url!r} does not point into bucket {self.bucket!r}",
                entity="blob",
                operation="resolve",
            )
        index = parts.index(self.bucket)
        return str(_clean_path("/".join(parts[index + 1 :])))


_default_store: LocalBlobStore | None = None


def get_blob_store() -> BlobStore:
    """Return the configured blob store (FastAPI dependency)."""
    global _default_store
    if _default_store is None:
        _default_store = LocalBlobStore(
            config.MEDIA_ROOT, config.PHOTO_BUCKET, config.MEDIA_URL
        )
    return _default_store
