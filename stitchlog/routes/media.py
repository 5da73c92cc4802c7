"""Photo, note and loose upload routes addressed by their own id."""

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from stitchlog.database import get_db
from stitchlog.errors import ValidationError
from stitchlog.schemas import NoteUpdate
from stitchlog.services import notes as note_service
from stitchlog.services import photos as photo_service
from stitchlog.services.presentation import serialize_note
from stitchlog.utils.files import BlobStore, get_blob_store

router = APIRouter(tags=["media"])


@router.delete("/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Response:
    await photo_service.delete_photo(db, blob_store, photo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/storage/upload", status_code=status.HTTP_201_CREATED)
async def upload_note_image(
    file: UploadFile = File(...),
    project_id: int = Form(..., alias="projectId"),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> dict[str, str]:
    """Store an image for a note and return its URL, without a photo record."""
    if not file.filename:
        raise ValidationError(
            "No filename provided", entity="blob", operation="upload"
        )
    url = await photo_service.store_note_image(
        db,
        blob_store,
        project_id=project_id,
        filename=file.filename,
        content=await file.read(),
    )
    return {"url": url}


@router.patch("/notes/{note_id}")
async def update_note(
    note_id: int,
    payload: NoteUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    note = await note_service.update_note(db, note_id, payload)
    return serialize_note(note)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    await note_service.delete_note(db, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
