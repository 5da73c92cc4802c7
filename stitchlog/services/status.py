"""Project status workflow.

The set of statuses is configuration, not code: two presets exist (the short
planning list and the board list) and ``STATUS_SET`` may also spell out a
custom list as ``key:Label:color,...``. Any status can move to any other
status directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from stitchlog.config import config
from stitchlog.errors import InvalidStatusError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusOption:
    """One recognised status and how to display it."""

    key: str
    label: str
    color: str


STATUS_PRESETS: dict[str, tuple[StatusOption, ...]] = {
    "planning": (
        StatusOption("idea", "Idea", "purple"),
        StatusOption("planned", "Planned", "blue"),
        StatusOption("queued", "Queued", "yellow"),
        StatusOption("completed", "Completed", "green"),
    ),
    "board": (
        StatusOption("idea", "Idea", "purple"),
        StatusOption("queue", "Queue", "blue"),
        StatusOption("in-progress", "In Progress", "yellow"),
        StatusOption("on-hold", "On Hold", "gray"),
        StatusOption("completed", "Completed", "green"),
    ),
}


class StatusWorkflow:
    """Ordered, configurable enumeration of project statuses."""

    def __init__(self, options: Iterable[StatusOption]) -> None:
        self._options: tuple[StatusOption, ...] = tuple(options)
        if not self._options:
            raise ValidationError("A status workflow needs at least one status")
        keys = [option.key for option in self._options]
        if len(set(keys)) != len(keys):
            raise ValidationError(f"Duplicate status keys in {keys}")
        self._by_key = {option.key: option for option in self._options}

    @property
    def options(self) -> tuple[StatusOption, ...]:
        return self._options

    @property
    def keys(self) -> list[str]:
        return [option.key for option in self._options]

    @property
    def default(self) -> str:
        """The status new projects start in."""
        return self._options[0].key

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def option(self, key: str) -> StatusOption:
        return self._by_key[self.validate(key)]

    def validate(self, key: str) -> str:
        """Return the status key or raise InvalidStatusError."""
        if key not in self._by_key:
            raise InvalidStatusError(key, self.keys)
        return key

    def transition(self, current: str | None, target: str) -> str:
        """Validate a move from ``current`` to ``target``.

        There is no workflow graph: every recognised target is reachable from
        every state, including from values that are no longer configured.
        """
        target = self.validate(target)
        if current != target:
            logger.debug("Status transition %s -> %s", current, target)
        return target

    def columns(
        self, items: Sequence[Any], key: str = "status"
    ) -> list[tuple[StatusOption, list[Any]]]:
        """Group items into one ordered column per status."""
        grouped: dict[str, list[Any]] = {option.key: [] for option in self._options}
        for item in items:
            value = getattr(item, key, None)
            if value in grouped:
                grouped[value].append(item)
            else:
                logger.warning("Item has unrecognised status %r, not shown", value)
        return [(option, grouped[option.key]) for option in self._options]


def parse_status_set(raw: str) -> tuple[StatusOption, ...]:
    """Resolve a preset name or a ``key:Label:color`` list into options."""
    value = raw.strip()
    preset = STATUS_PRESETS.get(value.lower())
    if preset is not None:
        return preset

    options: list[StatusOption] = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = [part.strip() for part in chunk.split(":")]
        key = parts[0].lower()
        if not key:
            raise ValidationError(f"Empty status key in STATUS_SET {raw!r}")
        label = parts[1] if len(parts) > 1 and parts[1] else ""
        label = label or key.replace("-", " ").title()
        color = parts[2] if len(parts) > 2 and parts[2] else "gray"
        options.append(StatusOption(key, label, color))

    if not options:
        raise ValidationError(f"STATUS_SET {raw!r} does not name any status")
    return tuple(options)


@lru_cache(maxsize=1)
def get_workflow() -> StatusWorkflow:
    """Return the workflow configured through ``STATUS_SET``."""
    return StatusWorkflow(parse_status_set(config.STATUS_SET))
