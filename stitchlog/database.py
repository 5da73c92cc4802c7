"""Database engine, sessions and schema migrations."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stitchlog.config import config
from stitchlog.errors import ConflictError, StitchLogError, StorageUnavailableError

logger = logging.getLogger(__name__)

# (sync scheme, async scheme) pairs.
_DRIVERS: tuple[tuple[str, str], ...] = (
    ("sqlite:", "sqlite+aiosqlite:"),
    ("postgresql:", "postgresql+asyncpg:"),
)

_PACKAGE_DIR = Path(__file__).resolve().parent
_MIGRATION_LOCK = config.MEDIA_ROOT / ".migrations.lock"
_LOCK_TIMEOUT_SECONDS = 30.0
_LOCK_RETRY_INTERVAL = 0.1


def _to_async_url(url: str) -> str:
    for sync_scheme, async_scheme in _DRIVERS:
        if url.startswith(sync_scheme):
            return async_scheme + url[len(sync_scheme) :]
    return url


def _to_sync_url(url: str) -> str:
    """Return a URL for the blocking drivers Alembic runs on.

    Relative SQLite paths are made absolute so migrations and the app agree
    on the file regardless of the working directory.
    """
    for sync_scheme, async_scheme in _DRIVERS:
        if url.startswith(async_scheme):
            url = sync_scheme + url[len(async_scheme) :]
            break

    prefix = "sqlite:///"
    if url.startswith(prefix) and ":memory:" not in url:
        db_path = Path(url[len(prefix) :]).expanduser().resolve()
        return f"{prefix}{db_path}"
    return url


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    """Make SQLite honour ``ON DELETE CASCADE`` like PostgreSQL does."""
    module = type(dbapi_connection).__module__
    if "sqlite" not in module:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


database_url = _to_async_url(config.DATABASE_URL)

engine = create_async_engine(database_url, echo=config.DEBUG)
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Get database session."""
    async with AsyncSessionLocal() as session:
        yield session


def translate_db_error(
    exc: SQLAlchemyError,
    *,
    entity: str,
    operation: str,
    entity_id: int | str | None = None,
) -> StitchLogError:
    """Map a SQLAlchemy failure onto the service error hierarchy."""
    if isinstance(exc, IntegrityError):
        return ConflictError(
            f"Constraint violated while trying to {operation} {entity}: {exc.orig}",
            entity=entity,
            operation=operation,
            entity_id=entity_id,
        )
    if isinstance(exc, (OperationalError, InterfaceError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return StorageUnavailableError(
            f"Database unavailable while trying to {operation} {entity}",
            entity=entity,
            operation=operation,
            entity_id=entity_id,
        )
    return StitchLogError(
        f"Database error while trying to {operation} {entity}: {exc}",
        entity=entity,
        operation=operation,
        entity_id=entity_id,
    )


@contextmanager
def _migration_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive lock file so only one process migrates at a time."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
            break
        except FileExistsError:
            if time.monotonic() > deadline:  # pragma: no cover - lock contention
                logger.error("Failed to acquire migration lock %s", lock_path)
                raise TimeoutError(f"Timed out waiting for {lock_path}") from None
            time.sleep(_LOCK_RETRY_INTERVAL)

    try:
        yield
    finally:
        os.close(fd)
        lock_path.unlink(missing_ok=True)


def _alembic_config(sync_url: str) -> AlembicConfig:
    # alembic.ini (logging setup) only exists in a source checkout.
    ini_path = _PACKAGE_DIR.parent / "alembic.ini"
    alembic_cfg = AlembicConfig(str(ini_path) if ini_path.is_file() else None)
    alembic_cfg.set_main_option("script_location", str(_PACKAGE_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", sync_url)
    return alembic_cfg


def _is_unversioned(sync_url: str) -> bool:
    """True for a database that has tables but was never migrated."""
    sync_engine = create_engine(sync_url)
    try:
        with sync_engine.connect() as connection:
            inspector = inspect(connection)
            if inspector.has_table("alembic_version"):
                return False
            return bool(inspector.get_table_names())
    finally:
        sync_engine.dispose()


def _migrate() -> None:
    sync_url = _to_sync_url(config.DATABASE_URL)
    alembic_cfg = _alembic_config(sync_url)

    with _migration_lock(_MIGRATION_LOCK):
        if _is_unversioned(sync_url):
            logger.info("Stamping existing database with current head")
            command.stamp(alembic_cfg, "head")
        else:
            command.upgrade(alembic_cfg, "head")


async def init_db() -> None:
    """Bring the schema up to date, stamping databases created before Alembic."""
    await asyncio.to_thread(_migrate)
