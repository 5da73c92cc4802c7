"""Tests for the project aggregate store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from stitchlog.errors import (
    InvalidStatusError,
    NotFoundError,
    PartialWriteError,
    StorageUnavailableError,
)
from stitchlog.models import Needle, Pattern, Photo, Project, ProjectTag, Tag, Yarn
from stitchlog.schemas import (
    NeedleInput,
    PatternInput,
    ProjectCreate,
    ProjectUpdate,
    YarnInput,
)
from stitchlog.services import projects as project_service
from stitchlog.services.photos import upload_photo
from stitchlog.services.presentation import serialize_yarn


def _sweater() -> ProjectCreate:
    return ProjectCreate.model_validate(
        {
            "name": "Sweater",
            "description": "",
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
        }
    )


async def _count(db: Any, model: Any, project_id: int | None = None) -> int:
    query = select(func.count()).select_from(model)
    if project_id is not None:
        query = query.where(model.project_id == project_id)
    return await db.scalar(query)


@pytest.mark.asyncio
async def test_create_round_trips_yarns(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(db, _sweater())

        assert len(project.yarns) == 1
        assert project.yarns[0].yardage == 400
        created = [serialize_yarn(yarn) for yarn in project.yarns]
        project_id = project.id

    async with session_factory() as db:
        fetched = await project_service.get_project(db, project_id)
        assert fetched is not None
        assert [serialize_yarn(yarn) for yarn in fetched.yarns] == created


@pytest.mark.asyncio
async def test_create_with_all_children(session_factory: Any) -> None:
    command = ProjectCreate(
        name="Baby Blanket",
        description="Garter stitch",
        pattern=PatternInput(
            name="Simple Blanket",
            designer="Jane Doe",
            source_url="https://www.ravelry.com/patterns/library/simple-blanket",
            scraped_data={"difficulty": 1.5, "free": True},
        ),
        needles=[NeedleInput(size="4mm", type="circular", length="80cm")],
        tags=["Baby", "gift", "baby"],
    )
    async with session_factory() as db:
        project = await project_service.create_project(db, command)

    assert project.status == "idea"
    assert project.pattern is not None
    assert project.pattern.scraped_data == {"difficulty": 1.5, "free": True}
    assert [(n.size, n.type, n.length) for n in project.needles] == [
        ("4mm", "circular", "80cm")
    ]
    assert [tag.name for tag in project.tags] == ["baby", "gift"]
    assert all(isinstance(tag, Tag) for tag in project.tags)


@pytest.mark.asyncio
async def test_create_skips_pattern_without_name(session_factory: Any) -> None:
    command = ProjectCreate(name="Scarf", pattern=PatternInput(designer="Someone"))
    async with session_factory() as db:
        project = await project_service.create_project(db, command)
        assert project.pattern is None
        assert await _count(db, Pattern, project.id) == 0


@pytest.mark.asyncio
async def test_create_rejects_unknown_status(session_factory: Any) -> None:
    async with session_factory() as db:
        with pytest.raises(InvalidStatusError):
            await project_service.create_project(
                db, ProjectCreate(name="Cowl", status="someday")
            )
        assert await _count(db, Project) == 0


@pytest.mark.asyncio
async def test_failed_child_stage_leaves_no_project(
    session_factory: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_tags(*_args: Any, **_kwargs: Any) -> None:
        raise OperationalError("INSERT INTO project_tags", {}, Exception("gone"))

    monkeypatch.setattr(project_service, "replace_project_tags", broken_tags)

    command = ProjectCreate(
        name="Vest", yarns=[YarnInput(brand="Drops")], tags=["cables"]
    )
    async with session_factory() as db:
        with pytest.raises(PartialWriteError) as excinfo:
            await project_service.create_project(db, command)

    assert excinfo.value.stage == "tags"
    assert excinfo.value.rolled_back is True
    assert excinfo.value.operation == "create"

    async with session_factory() as db:
        assert await _count(db, Project) == 0
        assert await _count(db, Yarn) == 0


@pytest.mark.asyncio
async def test_storage_error_during_create_is_typed_and_rolled_back(
    session_factory: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_replace(*_args: Any, **_kwargs: Any) -> None:
        raise OperationalError("DELETE FROM yarns", {}, Exception("gone"))

    monkeypatch.setattr(project_service, "replace_collection", broken_replace)

    command = ProjectCreate(name="Vest", yarns=[YarnInput(brand="Drops")])
    async with session_factory() as db:
        with pytest.raises(StorageUnavailableError) as excinfo:
            await project_service.create_project(db, command)

    assert excinfo.value.operation == "create"
    assert excinfo.value.retryable is True

    async with session_factory() as db:
        assert await _count(db, Project) == 0
        assert await _count(db, Yarn) == 0


@pytest.mark.asyncio
async def test_failed_update_keeps_previous_children(
    session_factory: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(
            db, ProjectCreate(name="Vest", yarns=[YarnInput(brand="old")])
        )

    async def broken_tags(*_args: Any, **_kwargs: Any) -> None:
        raise OperationalError("INSERT INTO project_tags", {}, Exception("gone"))

    monkeypatch.setattr(project_service, "replace_project_tags", broken_tags)

    command = ProjectUpdate(name="Vest v2", yarns=[YarnInput(brand="new")], tags=["x"])
    async with session_factory() as db:
        with pytest.raises(PartialWriteError) as excinfo:
            await project_service.update_project(db, project.id, command)

    assert excinfo.value.stage == "tags"
    assert excinfo.value.rolled_back is True
    assert excinfo.value.operation == "update"

    async with session_factory() as db:
        stored = await project_service.require_project(db, project.id)
        assert stored.name == "Vest"
        assert [yarn.brand for yarn in stored.yarns] == ["old"]


@pytest.mark.asyncio
async def test_update_without_yarns_keeps_them(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(db, _sweater())
        before = [serialize_yarn(yarn) for yarn in project.yarns]

        updated = await project_service.update_project(
            db, project.id, ProjectUpdate(name="Sweater v2", tags=["raglan"])
        )

    assert updated.name == "Sweater v2"
    assert [serialize_yarn(yarn) for yarn in updated.yarns] == before
    assert [tag.name for tag in updated.tags] == ["raglan"]


@pytest.mark.asyncio
async def test_update_with_empty_yarns_clears_them(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(db, _sweater())
        updated = await project_service.update_project(
            db, project.id, ProjectUpdate(yarns=[])
        )

        assert updated.yarns == []
        assert await _count(db, Yarn, project.id) == 0


@pytest.mark.asyncio
async def test_update_replaces_needles_and_tags(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(
            db,
            ProjectCreate(
                name="Socks",
                needles=[NeedleInput(size="2.5mm", type="dpn")],
                tags=["socks", "summer"],
            ),
        )
        updated = await project_service.update_project(
            db,
            project.id,
            ProjectUpdate(
                needles=[
                    NeedleInput(size="2.5mm", type="dpn"),
                    NeedleInput(size="2.25mm", type="circular", length="23cm"),
                ],
                tags=["Socks"],
            ),
        )

    assert [n.size for n in updated.needles] == ["2.5mm", "2.25mm"]
    assert [tag.name for tag in updated.tags] == ["socks"]


@pytest.mark.asyncio
async def test_update_pattern_semantics(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(
            db,
            ProjectCreate(name="Hat", pattern=PatternInput(name="Barley")),
        )

        replaced = await project_service.update_project(
            db,
            project.id,
            ProjectUpdate(pattern=PatternInput(name="Turn a Square", designer="Jared")),
        )
        assert replaced.pattern is not None
        assert replaced.pattern.name == "Turn a Square"
        assert await _count(db, Pattern, project.id) == 1

        # Present but without a name: delete, do not recreate.
        cleared = await project_service.update_project(
            db, project.id, ProjectUpdate(pattern=PatternInput(name=""))
        )
        assert cleared.pattern is None

        await project_service.update_project(
            db, project.id, ProjectUpdate(pattern=PatternInput(name="Barley"))
        )
        nulled = await project_service.update_project(
            db, project.id, ProjectUpdate.model_validate({"pattern": None})
        )
        assert nulled.pattern is None
        assert await _count(db, Pattern, project.id) == 0


@pytest.mark.asyncio
async def test_update_missing_project(session_factory: Any) -> None:
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await project_service.update_project(db, 999, ProjectUpdate(name="x"))


@pytest.mark.asyncio
async def test_invalid_status_update_changes_nothing(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(db, _sweater())
        with pytest.raises(InvalidStatusError):
            await project_service.update_project(
                db,
                project.id,
                ProjectUpdate(name="Renamed", status="abandoned", yarns=[]),
            )

    async with session_factory() as db:
        fetched = await project_service.get_project(db, project.id)
        assert fetched is not None
        assert fetched.name == "Sweater"
        assert len(fetched.yarns) == 1


@pytest.mark.asyncio
async def test_status_can_jump_backwards(session_factory: Any) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(
            db, ProjectCreate(name="Shawl", status="completed")
        )
        await project_service.change_status(db, project.id, "idea")

    async with session_factory() as db:
        fetched = await project_service.get_project(db, project.id)
        assert fetched is not None
        assert fetched.status == "idea"


@pytest.mark.asyncio
async def test_get_missing_project_returns_none(session_factory: Any) -> None:
    async with session_factory() as db:
        assert await project_service.get_project(db, 12345) is None
        with pytest.raises(NotFoundError):
            await project_service.require_project(db, 12345)


@pytest.mark.asyncio
async def test_list_is_newest_first_and_filterable(session_factory: Any) -> None:
    now = datetime.now(UTC)
    async with session_factory() as db:
        for offset, name, status in [
            (3, "Oldest", "idea"),
            (2, "Middle", "completed"),
            (1, "Newest", "idea"),
        ]:
            project = await project_service.create_project(
                db, ProjectCreate(name=name, status=status, tags=[name])
            )
            project.created_at = now - timedelta(days=offset)
        await db.commit()

        projects = await project_service.list_projects(db)
        assert [p.name for p in projects] == ["Newest", "Middle", "Oldest"]

        ideas = await project_service.list_projects(db, status="idea")
        assert [p.name for p in ideas] == ["Newest", "Oldest"]

        tagged = await project_service.list_projects(db, tag="MIDDLE")
        assert [p.name for p in tagged] == ["Middle"]


@pytest.mark.asyncio
async def test_delete_cascades_but_keeps_tags(
    session_factory: Any, blob_store: Any, png_bytes: bytes
) -> None:
    async with session_factory() as db:
        project = await project_service.create_project(
            db,
            ProjectCreate(
                name="Pullover",
                pattern=PatternInput(name="Flax"),
                yarns=[YarnInput(brand="Drops"), YarnInput(brand="Rowan")],
                tags=["pullover", "cozy"],
            ),
        )
        other = await project_service.create_project(
            db, ProjectCreate(name="Other", tags=["cozy"])
        )
        photo_paths = []
        for index in range(3):
            photo = await upload_photo(
                db,
                blob_store,
                project_id=project.id,
                filename=f"progress-{index}.png",
                content=png_bytes,
            )
            photo_paths.append(blob_store.path_from_url(photo.storage_path))
        project_id = project.id

    async with session_factory() as db:
        await project_service.delete_project(db, project_id, blob_store)

    async with session_factory() as db:
        assert await project_service.get_project(db, project_id) is None
        assert await _count(db, Yarn, project_id) == 0
        assert await _count(db, Pattern, project_id) == 0
        assert await _count(db, Photo, project_id) == 0
        assert await _count(db, Needle, project_id) == 0
        assert await _count(db, ProjectTag, project_id) == 0

        names = set((await db.execute(select(Tag.name))).scalars())
        assert names == {"pullover", "cozy"}

        survivor = await project_service.get_project(db, other.id)
        assert survivor is not None
        assert [tag.name for tag in survivor.tags] == ["cozy"]

    assert not any(blob_store.exists(path) for path in photo_paths)


@pytest.mark.asyncio
async def test_delete_missing_project(session_factory: Any, blob_store: Any) -> None:
    async with session_factory() as db:
        with pytest.raises(NotFoundError):
            await project_service.delete_project(db, 4242, blob_store)
