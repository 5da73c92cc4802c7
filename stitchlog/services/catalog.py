"""Pattern metadata lookup against the Ravelry API."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from stitchlog.config import config
from stitchlog.errors import (
    CatalogError,
    CatalogNotConfiguredError,
    CatalogUnavailableError,
    NotFoundError,
    ValidationError,
)
from stitchlog.schemas import PatternInput

logger = logging.getLogger(__name__)

_PATTERN_SLUG_RE = re.compile(r"/patterns/library/([^/?#]+)")


def extract_pattern_slug(url: str) -> str:
    """Return the slug of a ``.../patterns/library/<slug>`` URL."""
    match = _PATTERN_SLUG_RE.search(url)
    if not match:
        raise ValidationError(
            f"Not a Ravelry pattern URL: {url}",
            entity="pattern",
            operation="lookup",
        )
    return match.group(1)


def _photo_urls(raw_photos: Any) -> list[dict[str, Any]]:
    if not isinstance(raw_photos, list):
        return []
    return [
        {
            "small_url": photo.get("small_url"),
            "medium_url": photo.get("medium_url"),
            "thumbnail_url": photo.get("thumbnail_url"),
        }
        for photo in raw_photos
        if isinstance(photo, dict)
    ]


def _name_of(value: Any) -> Any:
    if isinstance(value, dict):
        return value.get("name")
    return None


def pattern_from_ravelry(data: dict[str, Any], source_url: str) -> PatternInput:
    """Map a Ravelry ``pattern`` object onto a :class:`PatternInput`.

    The metadata blob is stored as-is, nothing in it is validated.
    """
    designer = _name_of(data.get("designer")) or _name_of(data.get("pattern_author"))
    categories = [
        category.get("name")
        for category in data.get("pattern_categories") or []
        if isinstance(category, dict)
    ]
    return PatternInput(
        name=data.get("name") or "",
        designer=designer or "",
        source_url=source_url,
        scraped_data={
            "ravelry_id": data.get("id"),
            "permalink": data.get("permalink"),
            "craft": _name_of(data.get("craft")),
            "categories": categories,
            "difficulty": data.get("difficulty_average"),
            "yardage": data.get("yardage"),
            "yardage_max": data.get("yardage_max"),
            "gauge": data.get("gauge"),
            "gauge_divisor": data.get("gauge_divisor"),
            "gauge_pattern": data.get("gauge_pattern"),
            "sizes_available": data.get("sizes_available"),
            "notes": data.get("notes_html"),
            "pattern_type": _name_of(data.get("pattern_type")),
            "free": data.get("free"),
            "price": data.get("price"),
            "currency": data.get("currency"),
            "downloadable": data.get("downloadable"),
            "photos": _photo_urls(data.get("photos")),
        },
    )


class RavelryCatalog:
    """Search-then-fetch client for Ravelry pattern metadata."""

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.username = config.RAVELRY_API_USERNAME if username is None else username
        self.password = config.RAVELRY_API_PASSWORD if password is None else password
        self.base_url = (base_url or config.RAVELRY_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.CATALOG_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    async def _get_json(
        self, client: httpx.AsyncClient, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await client.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as exc:
            logger.warning("Ravelry request %s failed: %s", path, exc)
            raise CatalogUnavailableError(
                f"Could not reach Ravelry: {exc}",
                entity="pattern",
                operation="lookup",
            ) from exc

        logger.debug("Ravelry %s -> %s", path, response.status_code)
        if response.status_code == 401:
            raise CatalogError(
                "Invalid Ravelry API credentials",
                entity="pattern",
                operation="lookup",
            )
        if response.status_code == 404:
            raise NotFoundError(
                "Pattern not found on Ravelry", entity="pattern", operation="lookup"
            )
        if response.status_code >= 500:
            raise CatalogUnavailableError(
                f"Ravelry returned {response.status_code}",
                entity="pattern",
                operation="lookup",
            )
        if response.status_code >= 400:
            raise CatalogError(
                f"Ravelry returned {response.status_code}: {response.text}",
                entity="pattern",
                operation="lookup",
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogError(
                "Unexpected Ravelry response", entity="pattern", operation="lookup"
            ) from exc
        if not isinstance(payload, dict):
            raise CatalogError(
                "Unexpected Ravelry response", entity="pattern", operation="lookup"
            )
        return payload

    async def lookup(self, url: str) -> PatternInput:
        """Resolve a public pattern URL into pattern name, designer and metadata."""
        if not self.configured:
            raise CatalogNotConfiguredError(
                "Ravelry API credentials not configured, set RAVELRY_API_USERNAME "
                "and RAVELRY_API_PASSWORD",
                entity="pattern",
                operation="lookup",
            )
        slug = extract_pattern_slug(url)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            auth=httpx.BasicAuth(self.username or "", self.password or ""),
            headers={"Accept": "application/json"},
        ) as client:
            search = await self._get_json(
                client, "/patterns/search.json", {"query": slug, "page_size": 1}
            )
            hits = search.get("patterns") or []
            if not hits:
                raise NotFoundError(
                    f"No Ravelry pattern matches {slug!r}",
                    entity="pattern",
                    operation="lookup",
                )

            pattern_id = hits[0].get("id")
            details = await self._get_json(client, f"/patterns/{pattern_id}.json")

        pattern = details.get("pattern")
        if not isinstance(pattern, dict):
            raise NotFoundError(
                f"Ravelry pattern {pattern_id} has no details",
                entity="pattern",
                operation="lookup",
                entity_id=pattern_id,
            )
        logger.info("Imported pattern %s from Ravelry (%s)", pattern_id, slug)
        return pattern_from_ravelry(pattern, url)


def get_catalog() -> RavelryCatalog:
    """FastAPI dependency returning a catalog built from the configuration."""
    return RavelryCatalog()
