"""Needle inventory model."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stitchlog.models.base import Base


class NeedleInventory(Base):
    """A needle the user owns, independent of any project."""

    __tablename__ = "needle_inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    length: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC)
    )
