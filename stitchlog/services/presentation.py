"""Turn aggregates into plain dicts for the JSON API and the CLI."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from stitchlog.models import (
    Needle,
    NeedleInventory,
    Note,
    Pattern,
    Photo,
    Project,
    Tag,
    Yarn,
)
from stitchlog.services.status import StatusWorkflow, get_workflow
from stitchlog.services.timeline import TimelineEntry, project_timeline
from stitchlog.utils.markdown import render_markdown


def _iso(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.isoformat()


def serialize_tag(tag: Tag) -> dict[str, Any]:
    return {"id": tag.id, "name": tag.name}


def serialize_pattern(pattern: Pattern) -> dict[str, Any]:
    return {
        "id": pattern.id,
        "project_id": pattern.project_id,
        "name": pattern.name,
        "designer": pattern.designer,
        "source_url": pattern.source_url,
        "scraped_data": pattern.scraped_data,
    }


def serialize_yarn(yarn: Yarn) -> dict[str, Any]:
    return {
        "id": yarn.id,
        "project_id": yarn.project_id,
        "brand": yarn.brand,
        "colorway": yarn.colorway,
        "weight": yarn.weight,
        "fiber_content": yarn.fiber_content,
        "yardage": yarn.yardage,
        "notes": yarn.notes,
    }


def serialize_needle(needle: Needle | NeedleInventory) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": needle.id,
        "size": needle.size,
        "type": needle.type,
        "length": needle.length,
    }
    if isinstance(needle, Needle):
        data["project_id"] = needle.project_id
    return data


def serialize_photo(photo: Photo) -> dict[str, Any]:
    return {
        "id": photo.id,
        "project_id": photo.project_id,
        "storage_path": photo.storage_path,
        "photo_type": photo.photo_type,
        "uploaded_at": _iso(photo.uploaded_at),
    }


def serialize_note(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "project_id": note.project_id,
        "content": note.content,
        "content_html": render_markdown(note.content, note_id=note.id),
        "photo_urls": list(note.photo_urls or []),
        "created_at": _iso(note.created_at),
        "updated_at": _iso(note.updated_at),
    }


def serialize_project(
    project: Project, *, workflow: StatusWorkflow | None = None
) -> dict[str, Any]:
    """Serialize a fully loaded project aggregate."""
    workflow = workflow or get_workflow()
    status_label = (
        workflow.option(project.status).label
        if project.status in workflow
        else project.status
    )
    pattern = project.pattern
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "status": project.status,
        "status_label": status_label,
        "created_at": _iso(project.created_at),
        "updated_at": _iso(project.updated_at),
        "pattern": serialize_pattern(pattern) if pattern else None,
        "yarns": [serialize_yarn(yarn) for yarn in project.yarns],
        "needles": [serialize_needle(needle) for needle in project.needles],
        "tags": [serialize_tag(tag) for tag in project.tags],
        "photos": [serialize_photo(photo) for photo in project.photos],
        "notes": [serialize_note(note) for note in project.notes],
    }


def serialize_timeline(entries: Iterable[TimelineEntry]) -> list[dict[str, Any]]:
    payload: list[dict[str, Any]] = []
    for entry in entries:
        if isinstance(entry.item, Photo):
            body = serialize_photo(entry.item)
        else:
            body = serialize_note(entry.item)
        payload.append(
            {"kind": entry.kind, "timestamp": _iso(entry.timestamp), **body}
        )
    return payload


def serialize_project_timeline(project: Project) -> list[dict[str, Any]]:
    return serialize_timeline(project_timeline(project))


def serialize_board(
    projects: Sequence[Project], *, workflow: StatusWorkflow | None = None
) -> list[dict[str, Any]]:
    """One column per configured status, in configured order."""
    workflow = workflow or get_workflow()
    return [
        {
            "status": option.key,
            "label": option.label,
            "color": option.color,
            "projects": [
                serialize_project(project, workflow=workflow) for project in members
            ],
        }
        for option, members in workflow.columns(projects)
    ]
