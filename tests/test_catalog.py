from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from stitchlog.errors import (
    CatalogError,
    CatalogNotConfiguredError,
    CatalogUnavailableError,
    NotFoundError,
    ValidationError,
)
from stitchlog.services.catalog import (
    RavelryCatalog,
    extract_pattern_slug,
    pattern_from_ravelry,
)

PATTERN_URL = "https://www.ravelry.com/patterns/library/flax-light"

PATTERN_DETAILS = {
    "pattern": {
        "id": 987,
        "name": "Flax Light",
        "permalink": "flax-light",
        "designer": {"name": "Tin Can Knits"},
        "craft": {"name": "Knitting"},
        "pattern_categories": [{"name": "Pullover"}],
        "difficulty_average": 2.1,
        "yardage": 400,
        "yardage_max": 1500,
        "gauge": 26,
        "gauge_divisor": 4,
        "gauge_pattern": "stockinette",
        "sizes_available": "0-6m to 4XL",
        "notes_html": "<p>Top-down</p>",
        "pattern_type": {"name": "Pullover"},
        "free": True,
        "photos": [{"small_url": "https://img/s.jpg", "medium_url": None}],
    }
}


def _response(status_code: int, payload: Any = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = text
    return response


def _catalog() -> RavelryCatalog:
    return RavelryCatalog(
        "reader", "secret", base_url="https://api.example.test", timeout=1.0
    )


def test_extract_pattern_slug() -> None:
    assert extract_pattern_slug(PATTERN_URL) == "flax-light"
    assert extract_pattern_slug(PATTERN_URL + "?ref=search") == "flax-light"
    with pytest.raises(ValidationError):
        extract_pattern_slug("https://www.ravelry.com/yarns/library/foo")


def test_pattern_from_ravelry_maps_metadata() -> None:
    pattern = pattern_from_ravelry(PATTERN_DETAILS["pattern"], PATTERN_URL)

    assert pattern.name == "Flax Light"
    assert pattern.designer == "Tin Can Knits"
    assert pattern.source_url == PATTERN_URL
    assert pattern.scraped_data is not None
    assert pattern.scraped_data["ravelry_id"] == 987
    assert pattern.scraped_data["categories"] == ["Pullover"]
    assert pattern.scraped_data["free"] is True
    assert pattern.scraped_data["photos"][0]["small_url"] == "https://img/s.jpg"


@pytest.mark.asyncio
async def test_lookup_searches_then_fetches() -> None:
    calls: list[tuple[str, Any]] = []

    async def _mock_get(url: str, **kwargs: Any) -> MagicMock:
        calls.append((url, kwargs.get("params")))
        if url.endswith("/patterns/search.json"):
            return _response(200, {"patterns": [{"id": 987}]})
        return _response(200, PATTERN_DETAILS)

    with patch("httpx.AsyncClient.get", side_effect=_mock_get):
        pattern = await _catalog().lookup(PATTERN_URL)

    assert pattern.name == "Flax Light"
    assert calls == [
        (
            "https://api.example.test/patterns/search.json",
            {"query": "flax-light", "page_size": 1},
        ),
        ("https://api.example.test/patterns/987.json", None),
    ]


@pytest.mark.asyncio
async def test_lookup_without_credentials() -> None:
    catalog = RavelryCatalog("", "", base_url="https://api.example.test")

    with patch("httpx.AsyncClient.get") as mock_get:
        with pytest.raises(CatalogNotConfiguredError):
            await catalog.lookup(PATTERN_URL)
        mock_get.assert_not_called()


@pytest.mark.asyncio
async def test_lookup_no_search_hits() -> None:
    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = _response(200, {"patterns": []})
        with pytest.raises(NotFoundError):
            await _catalog().lookup(PATTERN_URL)


@pytest.mark.asyncio
async def test_lookup_rejects_non_json_body() -> None:
    response = _response(200, text="<html>maintenance</html>")
    response.json.side_effect = ValueError("Expecting value")

    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = response
        with pytest.raises(CatalogError, match="Unexpected Ravelry response"):
            await _catalog().lookup(PATTERN_URL)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "error"),
    [
        (401, CatalogError),
        (404, NotFoundError),
        (429, CatalogError),
        (503, CatalogUnavailableError),
    ],
)
async def test_lookup_http_errors(status_code: int, error: type[Exception]) -> None:
    with patch("httpx.AsyncClient.get") as mock_get:
        mock_get.return_value = _response(status_code, text="nope")
        with pytest.raises(error):
            await _catalog().lookup(PATTERN_URL)


@pytest.mark.asyncio
async def test_lookup_network_failure_is_retryable() -> None:
    with patch(
        "httpx.AsyncClient.get", side_effect=httpx.ConnectError("connection refused")
    ):
        with pytest.raises(CatalogUnavailableError) as excinfo:
            await _catalog().lookup(PATTERN_URL)

    assert excinfo.value.retryable is True
