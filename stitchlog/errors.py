"""Typed errors raised by the Stitch Log services."""

from __future__ import annotations


class StitchLogError(Exception):
    """Base error carrying enough context for a retry/abort decision."""

    retryable: bool = False

    def __init__(
        self,
        detail: str,
        *,
        entity: str | None = None,
        operation: str | None = None,
        entity_id: int | str | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.entity = entity
        self.operation = operation
        self.entity_id = entity_id

    def to_dict(self) -> dict[str, object]:
        """Serialize the error for API responses and CLI output."""
        return {
            "error": self.detail,
            "kind": type(self).__name__,
            "entity": self.entity,
            "operation": self.operation,
            "id": self.entity_id,
            "retryable": self.retryable,
        }


class NotFoundError(StitchLogError):
    """The referenced row does not exist."""


class ValidationError(StitchLogError):
    """A command was rejected before anything was written."""


class InvalidStatusError(ValidationError):
    """The target status is not part of the configured status set."""

    def __init__(self, status: str, allowed: list[str]) -> None:
        super().__init__(
            f"Unknown status {status!r}, expected one of: {', '.join(allowed)}",
            entity="project",
            operation="change_status",
        )
        self.status = status
        self.allowed = allowed


class CreationError(StitchLogError):
    """The root row of an aggregate could not be inserted."""


class PartialWriteError(StitchLogError):
    """A later stage of a multi-step write failed.

    ``stage`` names the step that failed (``"yarns"``, ``"tags"``,
    ``"blob"``...). When ``rolled_back`` is true nothing from the command was
    persisted; otherwise the caller must re-read the aggregate before retrying.
    """

    retryable = True

    def __init__(
        self,
        detail: str,
        *,
        stage: str,
        rolled_back: bool,
        entity: str | None = None,
        operation: str | None = None,
        entity_id: int | str | None = None,
    ) -> None:
        super().__init__(
            detail, entity=entity, operation=operation, entity_id=entity_id
        )
        self.stage = stage
        self.rolled_back = rolled_back

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data["stage"] = self.stage
        data["rolled_back"] = self.rolled_back
        return data


class ConflictError(StitchLogError):
    """A uniqueness constraint was violated outside of an upsert."""


class StorageUnavailableError(StitchLogError):
    """The database or the blob store could not be reached."""

    retryable = True


class CatalogError(StitchLogError):
    """The external pattern catalog rejected or failed a lookup."""


class CatalogNotConfiguredError(CatalogError):
    """No catalog credentials are configured."""


class CatalogUnavailableError(CatalogError):
    """The pattern catalog could not be reached."""

    retryable = True
