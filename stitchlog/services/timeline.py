"""Timeline view of a project: photos and notes, newest first."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from stitchlog.models import Note, Photo, Project

TimelineKind = Literal["photo", "note"]


def _comparable(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@dataclass(frozen=True)
class TimelineEntry:
    """A photo or a note placed on the timeline. Never persisted."""

    kind: TimelineKind
    timestamp: datetime
    item: Photo | Note

    @classmethod
    def from_photo(cls, photo: Photo) -> TimelineEntry:
        return cls("photo", _comparable(photo.uploaded_at), photo)

    @classmethod
    def from_note(cls, note: Note) -> TimelineEntry:
        return cls("note", _comparable(note.created_at), note)


def compose(photos: Iterable[Photo], notes: Iterable[Note]) -> list[TimelineEntry]:
    """Merge photos (by upload time) and notes (by creation time).

    The result is ordered most recent first. Entries sharing a timestamp keep
    the order they were given in, photos before notes. Inputs are not touched.
    """
    entries = [TimelineEntry.from_photo(photo) for photo in photos]
    entries.extend(TimelineEntry.from_note(note) for note in notes)
    # sorted() is stable, also with reverse=True.
    return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)


def project_timeline(project: Project) -> list[TimelineEntry]:
    """Compose the timeline of an already loaded project."""
    return compose(project.photos, project.notes)
