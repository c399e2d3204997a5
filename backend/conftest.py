"""
Pytest configuration and fixtures for backend tests.

This module provides the core testing infrastructure including:
- A throwaway SQLite store per test
- Session fixtures for database access
- Test client for API integration tests
"""

import os
from collections.abc import AsyncGenerator

# Settings require a signing key; set one before the app is imported.
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from gantt.core.config import sqlite_url_for_path  # noqa: E402
from gantt.db.session import create_session_factory, create_store_engine, get_session  # noqa: E402
from gantt.main import app  # noqa: E402


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of an empty file store that lives only for the current test."""
    return sqlite_url_for_path(str(tmp_path / "gantt.db"))


@pytest.fixture(scope="function")
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a test database engine.

    The store starts empty; tests that need the current schema request the
    `schema` fixture, migration tests build their own legacy tables.
    """
    test_engine = create_store_engine(database_url)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def schema(engine: AsyncEngine) -> None:
    """Create every table of the current schema."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@pytest.fixture(scope="function")
async def session(engine: AsyncEngine, schema: None) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Every test gets its own store file, so no cleanup is needed afterwards.
    """
    async_session = create_session_factory(engine)

    async with async_session() as test_session:
        yield test_session

        # Expire all objects to detach them from the session
        test_session.expire_all()


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing API endpoints.

    This fixture:
    - Overrides the database session dependency to use the test session
    - Provides an AsyncClient configured with the FastAPI app
    - Skips the startup hook, the `session` fixture has already built the schema

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/api/v1/version")
            assert response.status_code == 200
    """

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
