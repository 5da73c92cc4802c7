"""Logging setup for Stitch Log."""

from __future__ import annotations

import logging
import os
from typing import Final


_APP_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_ACCESS_FORMAT: Final[str] = "%(asctime)s access: %(message)s"
_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level_name: str | None, fallback: int) -> int:
    """Turn ``LOG_LEVEL`` style values (names or numbers) into a level."""

    if not level_name:
        return fallback

    value = level_name.strip()
    if value.isdigit():
        return int(value)

    numeric = getattr(logging, value.upper(), None)
    if isinstance(numeric, int):
        return numeric

    return fallback


def _attach_console(logger: logging.Logger, fmt: str, level: int) -> None:
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt, _DATEFMT))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def configure_logging(*, debug: bool = False) -> None:
    """Stream application, request and (optionally) SQL logs to the console.

    ``LOG_LEVEL`` overrides the application level, ``SQL_LOG_LEVEL`` turns on
    SQLAlchemy statement logging without flipping the engine ``echo`` flag.
    """

    level = _resolve_level(
        os.getenv("LOG_LEVEL"), logging.DEBUG if debug else logging.INFO
    )
    _attach_console(logging.getLogger("stitchlog"), _APP_FORMAT, level)

    # Request lines are INFO records, DEBUG adds nothing there.
    _attach_console(
        logging.getLogger("stitchlog.access"),
        _ACCESS_FORMAT,
        max(level, logging.INFO),
    )

    sql_level = os.getenv("SQL_LOG_LEVEL")
    if sql_level:
        _attach_console(
            logging.getLogger("sqlalchemy.engine"),
            _APP_FORMAT,
            _resolve_level(sql_level, logging.WARNING),
        )
