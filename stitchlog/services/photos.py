"""Project photos: blob and record are created and removed together."""

from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from pathlib import Path

from PIL import Image as PilImage
from PIL import UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.config import config
from stitchlog.database import translate_db_error
from stitchlog.errors import (
    NotFoundError,
    PartialWriteError,
    StorageUnavailableError,
    ValidationError,
)
from stitchlog.models import Photo, PhotoType, Project
from stitchlog.utils.files import BlobStore, generate_blob_path

logger = logging.getLogger(__name__)

MAX_PHOTO_BYTES = config.MAX_UPLOAD_MB * 1024 * 1024


def _validated_filename(filename: str, content: bytes) -> str:
    """Check that ``content`` is an image and return a filename with extension."""
    if not content:
        raise ValidationError(
            "Uploaded file is empty", entity="photo", operation="upload"
        )
    if len(content) > MAX_PHOTO_BYTES:
        raise ValidationError(
            f"Uploaded file exceeds {MAX_PHOTO_BYTES} bytes",
            entity="photo",
            operation="upload",
        )
    try:
        with PilImage.open(io.BytesIO(content)) as img:
            image_format = (img.format or "").lower()
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError(
            f"{filename or 'upload'} is not a readable image",
            entity="photo",
            operation="upload",
        ) from exc

    if Path(filename).suffix:
        return filename
    extension = "jpg" if image_format == "jpeg" else image_format or "bin"
    return f"{filename or 'photo'}.{extension}"


async def _require_project(db: AsyncSession, project_id: int, operation: str) -> None:
    if await db.get(Project, project_id) is None:
        raise NotFoundError(
            f"Project {project_id} not found",
            entity="project",
            operation=operation,
            entity_id=project_id,
        )


async def list_photos(db: AsyncSession, project_id: int) -> Sequence[Photo]:
    """Return a project's photos, most recent upload first."""
    result = await db.execute(
        select(Photo)
        .where(Photo.project_id == project_id)
        .order_by(Photo.uploaded_at.desc(), Photo.id.desc())
    )
    return result.scalars().all()


async def upload_photo(
    db: AsyncSession,
    blob_store: BlobStore,
    *,
    project_id: int,
    filename: str,
    content: bytes,
    photo_type: str = PhotoType.PROGRESS.value,
) -> Photo:
    """Store an image blob and record it as a project photo.

    If the record cannot be written the blob is removed again. Should that
    removal fail too, a :class:`PartialWriteError` names the orphaned path.
    """
    try:
        kind = PhotoType(photo_type).value
    except ValueError as exc:
        raise ValidationError(
            f"Unknown photo type {photo_type!r}",
            entity="photo",
            operation="upload",
        ) from exc

    await _require_project(db, project_id, "upload_photo")
    path = generate_blob_path(project_id, _validated_filename(filename, content))
    url = blob_store.put(path, content)

    photo = Photo(project_id=project_id, storage_path=url, photo_type=kind)
    db.add(photo)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Recording photo %s failed, removing blob: %s", path, exc)
        try:
            blob_store.delete(path)
        except StorageUnavailableError as cleanup_exc:
            raise PartialWriteError(
                f"Photo record not saved and blob {path} could not be removed",
                stage="photo_record",
                rolled_back=False,
                entity="photo",
                operation="upload",
                entity_id=path,
            ) from cleanup_exc
        raise translate_db_error(
            exc, entity="photo", operation="upload", entity_id=project_id
        ) from exc

    await db.refresh(photo)
    logger.info("Uploaded %s photo %s for project %s", kind, photo.id, project_id)
    return photo


async def store_note_image(
    db: AsyncSession,
    blob_store: BlobStore,
    *,
    project_id: int,
    filename: str,
    content: bytes,
) -> str:
    """Store an image for inline use in a note and return its URL.

    No photo record is created, the URL lives inside the note.
    """
    await _require_project(db, project_id, "store_note_image")
    path = generate_blob_path(project_id, _validated_filename(filename, content))
    return blob_store.put(path, content)


async def delete_photo(db: AsyncSession, blob_store: BlobStore, photo_id: int) -> None:
    """Delete a photo's blob, then its record.

    A blob store failure leaves the record in place (retry later). A record
    failure after the blob is gone raises :class:`PartialWriteError` so the
    stale record can be cleaned up.
    """
    photo = await db.get(Photo, photo_id)
    if photo is None:
        raise NotFoundError(
            f"Photo {photo_id} not found",
            entity="photo",
            operation="delete",
            entity_id=photo_id,
        )

    try:
        path: str | None = blob_store.path_from_url(photo.storage_path)
    except ValidationError:
        logger.warning(
            "Photo %s points outside the blob store (%s), removing record only",
            photo_id,
            photo.storage_path,
        )
        path = None

    if path is not None:
        blob_store.delete(path)

    await db.delete(photo)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Blob %s removed but photo %s record remains", path, photo_id)
        raise PartialWriteError(
            f"Blob {path} was deleted but photo record {photo_id} could not be",
            stage="photo_record",
            rolled_back=False,
            entity="photo",
            operation="delete",
            entity_id=photo_id,
        ) from exc
    logger.info("Deleted photo %s (%s)", photo_id, path)
