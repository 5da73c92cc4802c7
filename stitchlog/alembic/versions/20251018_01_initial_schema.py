"""Initial schema: projects and their children, tags, needle inventory.

Revision ID: 20251018_01
Revises:
Create Date: 2025-10-18 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20251018_01"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _project_fk() -> sa.Column:
    return sa.Column(
        "project_id",
        sa.Integer(),
        sa.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "patterns",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("designer", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "source_url", sa.String(length=2048), nullable=False, server_default=""
        ),
        sa.Column("scraped_data", sa.JSON(), nullable=True),
        _project_fk(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "yarns",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("brand", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("colorway", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("weight", sa.String(length=40), nullable=False, server_default=""),
        sa.Column(
            "fiber_content", sa.String(length=255), nullable=False, server_default=""
        ),
        sa.Column("yardage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        _project_fk(),
        sa.CheckConstraint("yardage >= 0", name="ck_yarns_yardage"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "needles",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("size", sa.String(length=50), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("length", sa.String(length=50), nullable=True),
        _project_fk(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "photos",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("storage_path", sa.String(length=2048), nullable=False),
        sa.Column("photo_type", sa.String(length=20), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, index=True),
        _project_fk(),
    )

    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("photo_urls", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        _project_fk(),
    )

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )

    op.create_table(
        "project_tags",
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer(),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "needle_inventory",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("size", sa.String(length=50), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("length", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("needle_inventory")
    op.drop_table("project_tags")
    op.drop_table("tags")
    op.drop_table("notes")
    op.drop_table("photos")
    op.drop_table("needles")
    op.drop_table("yarns")
    op.drop_table("patterns")
    op.drop_table("projects")
