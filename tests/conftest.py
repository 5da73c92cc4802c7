import io

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image as PilImage
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stitchlog.database import get_db
from stitchlog.main import app
from stitchlog.models import Base, Project
from stitchlog.utils.files import LocalBlobStore, get_blob_store


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    with PilImage.new("RGB", (32, 24), color=(0, 128, 128)) as img:
        img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "media", "project-photos", "/media")


@pytest.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def test_client(
    session_factory: async_sessionmaker[AsyncSession],
    blob_store: LocalBlobStore,
) -> tuple[AsyncClient, async_sessionmaker[AsyncSession], LocalBlobStore, int]:
    async with session_factory() as session:
        project = Project(name="Sample Project", description="", status="idea")
        session.add(project)
        await session.commit()
        await session.refresh(project)
        project_id = project.id

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, session_factory, blob_store, project_id

    app.dependency_overrides.clear()
