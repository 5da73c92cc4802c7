"""Project aggregate models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stitchlog.models.base import Base

if TYPE_CHECKING:
    from stitchlog.models.tag import ProjectTag, Tag


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Project(Base):
    """Project model, the root of the aggregate."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(32), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    patterns: Mapped[list[Pattern]] = relationship(
        "Pattern",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Pattern.id",
    )
    yarns: Mapped[list[Yarn]] = relationship(
        "Yarn",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Yarn.id",
    )
    needles: Mapped[list[Needle]] = relationship(
        "Needle",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Needle.id",
    )
    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Photo.id",
    )
    notes: Mapped[list[Note]] = relationship(
        "Note",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Note.id",
    )
    project_tags: Mapped[list[ProjectTag]] = relationship(
        "ProjectTag",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def pattern(self) -> Pattern | None:
        """Return the project's pattern, if any."""
        return self.patterns[0] if self.patterns else None

    @property
    def tags(self) -> list[Tag]:
        """Return the tags with the association rows collapsed away."""
        tags = [link.tag for link in self.project_tags if link.tag is not None]
        return sorted(tags, key=lambda tag: tag.name)


class Pattern(Base):
    """Pattern the project is knitted from."""

    __tablename__ = "patterns"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    designer: Mapped[str] = mapped_column(String(255), default="")
    source_url: Mapped[str] = mapped_column(String(2048), default="")
    # Opaque catalog metadata (difficulty, yardage, gauge, sizes, photos...).
    scraped_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="patterns")


class Yarn(Base):
    """Yarn used by a project."""

    __tablename__ = "yarns"
    __table_args__ = (
        CheckConstraint("yardage >= 0", name="yardage"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    brand: Mapped[str] = mapped_column(String(120), default="")
    colorway: Mapped[str] = mapped_column(String(120), default="")
    weight: Mapped[str] = mapped_column(String(40), default="")
    fiber_content: Mapped[str] = mapped_column(String(255), default="")
    yardage: Mapped[float] = mapped_column(Float, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="yarns")


class Needle(Base):
    """Needle used by a project."""

    __tablename__ = "needles"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    length: Mapped[str | None] = mapped_column(String(50), nullable=True)

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="needles")


class Photo(Base):
    """Photo documenting a project. Never edited, only deleted."""

    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    storage_path: Mapped[str] = mapped_column(String(2048), nullable=False)
    photo_type: Mapped[str] = mapped_column(String(20), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, index=True
    )

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="photos")


class Note(Base):
    """Markdown progress note."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    photo_urls: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="notes")
