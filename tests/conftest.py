"""
Archives Transfer Service — Test Configuration (conftest.py)
==============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own upload root and SQLite reference store under
       tmp_path, and its own app built by create_app(settings).

Fixture Hierarchy:
    Function-scoped:
    ├── upload_root: Temporary upload directory
    ├── upload_service: UploadService over upload_root
    ├── settings: Settings pointing at upload_root and a SQLite file
    ├── app: FastAPI app built from settings
    ├── test_client: HTTPX AsyncClient for API endpoint testing
    └── seeded_store: Creates genres/versions tables with sample rows
"""

import io
import os
import tempfile
from datetime import datetime

# Override settings for testing BEFORE any app imports
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="transfer_test_")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="transfer_db_"), "test.db"
)
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import UploadFile

from transfer_service.config import Settings
from transfer_service.database import Base
from transfer_service.main import create_app
from transfer_service.models.reference import Genre, Version
from transfer_service.services.upload_service import UploadService


def make_upload(content: bytes, filename: str = "part.bin") -> UploadFile:
    """Wrap bytes the way Starlette hands a multipart file part to a route."""
    return UploadFile(file=io.BytesIO(content), filename=filename)


@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def upload_service(upload_root):
    # Small buffer so multi-block copies are exercised
    return UploadService(str(upload_root), copy_buffer=4)


@pytest.fixture
def settings(tmp_path, upload_root):
    return Settings(
        upload_dir=str(upload_root),
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'reference.db'}",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest_asyncio.fixture
async def test_client(app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_version(test_client):
            response = await test_client.get("/version")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.context.database.dispose()


@pytest_asyncio.fixture
async def seeded_store(app):
    """Create the reference tables and insert sample genres and a version row."""
    database = app.state.context.database
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with database.session_factory() as session:
        session.add_all(
            [
                Genre(id=1, name="Manuscripts"),
                Genre(id=2, name="Photographs"),
                Version(version="1.0.0", created_at=datetime(2024, 1, 15, 12, 0, 0)),
                Version(version="1.1.0", created_at=datetime(2024, 6, 1, 9, 30, 0)),
            ]
        )
        await session.commit()
    return database
