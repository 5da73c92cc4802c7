"""Tag and project/tag association models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stitchlog.models.base import Base

if TYPE_CHECKING:
    from stitchlog.models.project import Project


class Tag(Base):
    """Global tag, shared between projects."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("name", name="uq_tags_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Always stored lower-cased and trimmed.
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    project_links: Mapped[list[ProjectTag]] = relationship(
        "ProjectTag", back_populates="tag", passive_deletes=True
    )


class ProjectTag(Base):
    """Association row linking a project to a tag."""

    __tablename__ = "project_tags"

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )

    project: Mapped[Project] = relationship("Project", back_populates="project_tags")
    tag: Mapped[Tag] = relationship("Tag", back_populates="project_links")
