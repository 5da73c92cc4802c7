"""Alembic environment for the Stitch Log schema."""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import Connection, engine_from_config, pool

from alembic import context
from stitchlog.config import config as app_config
from stitchlog.database import _to_sync_url
from stitchlog.models import Base

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _database_url() -> str:
    # init_db() passes the URL explicitly; the alembic CLI falls back to .env.
    configured = alembic_config.get_main_option("sqlalchemy.url")
    return configured or _to_sync_url(app_config.DATABASE_URL)


def _configure(connection: Connection) -> None:
    # SQLite cannot ALTER most things in place, batch mode rebuilds tables.
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    url = context.get_x_argument(as_dictionary=True).get("url", _database_url())
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run the migrations against a live database."""
    connection = alembic_config.attributes.get("connection")
    if connection is not None:
        _configure(connection)
        return

    section = alembic_config.get_section(alembic_config.config_ini_section) or {}
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(
        section, prefix="sqlalchemy.", poolclass=pool.NullPool
    )
    with connectable.connect() as live_connection:
        _configure(live_connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
