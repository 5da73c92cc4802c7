from typing import Any

import pytest


@pytest.mark.asyncio
async def test_healthz(test_client: Any) -> None:
    """Verify that the health check endpoint responds with 200 OK."""
    client, *_ = test_client
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_unknown_route_is_404(test_client: Any) -> None:
    client, *_ = test_client
    response = await client.get("/nowhere")
    assert response.status_code == 404
