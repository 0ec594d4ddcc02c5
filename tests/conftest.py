"""
Feed API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any feed_api import, then
       each test gets a fresh in-memory SQLite database and storage directory.

Fixture Hierarchy (all function-scoped):
    ├── engine / session_factory: in-memory sqlite+aiosqlite with the schema
    ├── db_session: one AsyncSession for service-level tests
    ├── storage: temporary storage root patched into the file service
    ├── png_bytes / image_upload: fake image content for upload tests
    ├── stored_image: an image file already on disk (imageUrl string)
    └── test_client: HTTPX AsyncClient against the app, DB dependency overridden
"""

import os
import tempfile

# Must run before feed_api.config builds its settings singleton
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="feed_api_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from feed_api.config import settings
from feed_api.database import Base, get_db_session
from feed_api.models.post import Post  # noqa: F401
from feed_api.schemas.post import ImageUpload
from feed_api.services.file_service import file_service


@pytest_asyncio.fixture
async def engine():
    """
    In-memory SQLite engine with the posts table created.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path, monkeypatch):
    """
    Provides a temporary storage root for the shared file service.

    Returns the resolved root; images land in <root>/images/...
    """
    root = (tmp_path / "storage").resolve()
    root.mkdir()
    monkeypatch.setattr(file_service, "storage_root", root)
    return root


@pytest.fixture
def png_bytes():
    """A complete 1x1 PNG, recognised by libmagic as image/png."""
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
        b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N"
        b"\x00\x00\x00\x00IEND\xaeB`\x82"
    )


@pytest.fixture
def jpeg_bytes():
    """JFIF header and end marker, recognised by libmagic as image/jpeg."""
    return (
        b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
        + b"\x00" * 16
        + b"\xff\xd9"
    )


@pytest.fixture
def image_upload(png_bytes):
    return ImageUpload(filename="photo.png", content=png_bytes)


@pytest.fixture
def stored_image(storage, png_bytes):
    """Writes an image under the storage root and returns its imageUrl."""
    image_url = f"{settings.image_dir}/2024/01/15/existing.png"
    path = storage / image_url
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(png_bytes)
    return image_url


@pytest.fixture
def stored_files(storage):
    """Callable listing every file currently under the storage root."""
    def _list():
        return sorted(p for p in storage.rglob("*") if p.is_file())
    return _list


@pytest_asyncio.fixture
async def test_client(session_factory, storage):
    """
    Provides an async HTTP test client for endpoint testing.

    The session dependency is replaced with one bound to the test engine,
    keeping the commit-on-success / rollback-on-error behaviour.
    """
    from feed_api.main import app

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
