from typing import Any
from unittest.mock import patch

import pytest

from stitchlog.errors import CatalogUnavailableError
from stitchlog.schemas import PatternInput


@pytest.mark.asyncio
async def test_create_update_and_fetch_project(test_client: Any) -> None:
    client, *_ = test_client

    response = await client.post(
        "/projects/",
        json={
            "name": "Sweater",
            "status": "idea",
            "yarns": [
                {
                    "brand": "Malabrigo",
                    "colorway": "Teal",
                    "weight": "worsted",
                    "fiber_content": "100% wool",
                    "yardage": 400,
                }
            ],
            "tags": ["Winter"],
        },
    )
    assert response.status_code == 201
    created = response.json()
    assert created["status_label"] == "Idea"
    assert created["tags"][0]["name"] == "winter"

    response = await client.patch(
        f"/projects/{created['id']}", json={"description": "Raglan, top-down"}
    )
    assert response.status_code == 200
    assert response.json()["yarns"] == created["yarns"]

    response = await client.patch(f"/projects/{created['id']}", json={"yarns": []})
    assert response.json()["yarns"] == []

    response = await client.get(f"/projects/{created['id']}")
    assert response.status_code == 200
    assert response.json()["description"] == "Raglan, top-down"


@pytest.mark.asyncio
async def test_missing_project_is_404(test_client: Any) -> None:
    client, *_ = test_client

    response = await client.get("/projects/9999")

    assert response.status_code == 404
    body = response.json()
    assert body["kind"] == "NotFoundError"
    assert body["entity"] == "project"
    assert body["retryable"] is False


@pytest.mark.asyncio
async def test_status_change_and_board(test_client: Any) -> None:
    client, _, _, project_id = test_client

    response = await client.put(
        f"/projects/{project_id}/status", json={"status": "in-progress"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in-progress"

    response = await client.put(
        f"/projects/{project_id}/status", json={"status": "frogged"}
    )
    assert response.status_code == 422
    assert response.json()["kind"] == "InvalidStatusError"

    response = await client.get("/projects/board")
    columns = {column["status"]: column for column in response.json()}
    assert [p["id"] for p in columns["in-progress"]["projects"]] == [project_id]
    assert columns["idea"]["projects"] == []


@pytest.mark.asyncio
async def test_list_filters(test_client: Any) -> None:
    client, _, _, project_id = test_client
    await client.post("/projects/", json={"name": "Socks", "tags": ["socks"]})

    response = await client.get("/projects/", params={"tag": "socks"})
    assert [p["name"] for p in response.json()] == ["Socks"]

    response = await client.get("/projects/", params={"status": "idea"})
    assert {p["name"] for p in response.json()} == {"Sample Project", "Socks"}

    response = await client.get("/projects/", params={"status": "nope"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_photo_upload_timeline_and_delete(
    test_client: Any, png_bytes: bytes
) -> None:
    client, _, blob_store, project_id = test_client

    response = await client.post(
        f"/projects/{project_id}/photos",
        files={"file": ("row-10.png", png_bytes, "image/png")},
        data={"photo_type": "progress"},
    )
    assert response.status_code == 201
    photo = response.json()

    response = await client.post(
        f"/projects/{project_id}/notes", json={"content": "Blocked it"}
    )
    assert response.status_code == 201

    response = await client.get(f"/projects/{project_id}/timeline")
    assert response.status_code == 200
    assert {entry["kind"] for entry in response.json()} == {"photo", "note"}

    path = blob_store.path_from_url(photo["storage_path"])
    response = await client.delete(f"/photos/{photo['id']}")
    assert response.status_code == 204
    assert not blob_store.exists(path)

    response = await client.get(f"/projects/{project_id}/photos")
    assert response.json() == []


@pytest.mark.asyncio
async def test_note_image_upload(test_client: Any, png_bytes: bytes) -> None:
    client, _, blob_store, project_id = test_client

    response = await client.post(
        "/storage/upload",
        files={"file": ("chart.png", png_bytes, "image/png")},
        data={"projectId": str(project_id)},
    )

    assert response.status_code == 201
    assert blob_store.exists(blob_store.path_from_url(response.json()["url"]))


@pytest.mark.asyncio
async def test_invalid_upload_is_422(test_client: Any) -> None:
    client, _, _, project_id = test_client

    response = await client.post(
        f"/projects/{project_id}/photos",
        files={"file": ("fake.png", b"not an image", "image/png")},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_project(test_client: Any) -> None:
    client, _, _, project_id = test_client

    response = await client.delete(f"/projects/{project_id}")
    assert response.status_code == 204

    response = await client.get(f"/projects/{project_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_tags_statuses_and_inventory(test_client: Any) -> None:
    client, *_ = test_client
    await client.post("/projects/", json={"name": "Hat", "tags": ["b", "a"]})

    response = await client.get("/tags")
    assert [tag["name"] for tag in response.json()] == ["a", "b"]

    response = await client.get("/statuses")
    assert response.json()[0] == {"key": "idea", "label": "Idea", "color": "purple"}

    response = await client.get("/yarn-weights")
    weights = {weight["key"]: weight["label"] for weight in response.json()}
    assert weights["super-bulky"] == "Super bulky"

    response = await client.post(
        "/needle-inventory", json={"size": "4mm", "type": "circular", "length": "60cm"}
    )
    assert response.status_code == 201
    needle_id = response.json()["id"]

    response = await client.get("/needle-inventory")
    assert [n["size"] for n in response.json()] == ["4mm"]

    response = await client.delete(f"/needle-inventory/{needle_id}")
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_pattern_lookup(test_client: Any) -> None:
    client, *_ = test_client
    pattern = PatternInput(name="Flax", designer="Tin Can Knits")

    with patch(
        "stitchlog.services.catalog.RavelryCatalog.lookup", return_value=pattern
    ):
        response = await client.post(
            "/patterns/lookup",
            json={"url": "https://www.ravelry.com/patterns/library/flax"},
        )
    assert response.status_code == 200
    assert response.json()["designer"] == "Tin Can Knits"

    with patch(
        "stitchlog.services.catalog.RavelryCatalog.lookup",
        side_effect=CatalogUnavailableError("down"),
    ):
        response = await client.post(
            "/patterns/lookup",
            json={"url": "https://www.ravelry.com/patterns/library/flax"},
        )
    assert response.status_code == 503
    assert response.json()["retryable"] is True


@pytest.mark.asyncio
async def test_copy_inventory_needles_into_project(test_client: Any) -> None:
    client, _, _, project_id = test_client

    response = await client.post(
        "/needle-inventory", json={"size": "4mm", "type": "circular", "length": "80cm"}
    )
    needle_id = response.json()["id"]

    response = await client.post(
        f"/projects/{project_id}/needles/from-inventory", json={"ids": [needle_id]}
    )
    assert response.status_code == 200
    assert [(n["size"], n["length"]) for n in response.json()["needles"]] == [
        ("4mm", "80cm")
    ]

    response = await client.post(
        f"/projects/{project_id}/needles/from-inventory", json={"ids": [9999]}
    )
    assert response.status_code == 404
    assert response.json()["entity"] == "needle_inventory"

    response = await client.post(
        f"/projects/{project_id}/needles/from-inventory", json={"ids": []}
    )
    assert response.status_code == 422
