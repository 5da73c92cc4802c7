"""Command shapes accepted by the services and the JSON API.

Update commands rely on pydantic's ``model_fields_set``: a field that was sent
(even as an empty list) replaces the stored collection, a field that was left
out keeps it unchanged.
"""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from stitchlog.errors import ValidationError
from stitchlog.models.enums import NeedleType

CommandT = TypeVar("CommandT", bound=BaseModel)


def _strip(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _needle_length(value: str | None, info: ValidationInfo) -> str | None:
    # Only needles with a cable have a length.
    needle_type = info.data.get("type")
    if isinstance(needle_type, NeedleType) and not needle_type.has_length:
        return None
    return value or None


def parse_command(
    model: type[CommandT],
    data: dict[str, Any],
    *,
    operation: str,
    entity: str = "project",
) -> CommandT:
    """Validate raw input into a command, raising the service ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(
            f"Invalid {model.__name__}: {problems}",
            entity=entity,
            operation=operation,
        ) from exc


class PatternInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    designer: str = ""
    source_url: str = ""
    scraped_data: dict[str, Any] | None = None

    @field_validator("name", "designer", "source_url", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return _strip(value)


class YarnInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    brand: str = ""
    colorway: str = ""
    weight: str = ""
    fiber_content: str = ""
    yardage: float = Field(default=0, ge=0)
    notes: str | None = None

    @field_validator("yardage", mode="before")
    @classmethod
    def default_yardage(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value

    @field_validator("weight", mode="before")
    @classmethod
    def normalize_weight(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip().lower()
        return value


class NeedleInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: str = Field(min_length=1)
    type: NeedleType
    length: str | None = None

    @field_validator("size", "length", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("length")
    @classmethod
    def blank_length(cls, value: str | None, info: ValidationInfo) -> str | None:
        return _needle_length(value, info)


class ProjectCreate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    # None means "first configured status".
    status: str | None = None
    pattern: PatternInput | None = None
    yarns: list[YarnInput] = Field(default_factory=list)
    needles: list[NeedleInput] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: str | None = None
    pattern: PatternInput | None = None
    yarns: list[YarnInput] | None = None
    needles: list[NeedleInput] | None = None
    tags: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)

    def provides(self, field: str) -> bool:
        """Return True when ``field`` was explicitly part of the command."""
        return field in self.model_fields_set


class StatusChange(BaseModel):
    status: str


class NoteCreate(BaseModel):
    content: str = Field(min_length=1)
    photo_urls: list[str] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value: Any) -> Any:
        return _strip(value)


class NoteUpdate(BaseModel):
    content: str | None = Field(default=None, min_length=1)
    photo_urls: list[str] | None = None

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value: Any) -> Any:
        return _strip(value)


class NeedleInventoryInput(BaseModel):
    size: str = Field(min_length=1)
    type: NeedleType
    length: str | None = None

    @field_validator("size", "length", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("length")
    @classmethod
    def blank_length(cls, value: str | None, info: ValidationInfo) -> str | None:
        return _needle_length(value, info)


class PatternLookup(BaseModel):
    url: str = Field(min_length=1)


class InventoryCopy(BaseModel):
    ids: list[int] = Field(min_length=1)
