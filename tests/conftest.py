from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

# Settings are read at import time; point the app at SQLite before it loads.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ["GROQ_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from blogpress.auth.dependencies import get_current_user
from blogpress.core.database import Base, get_db_session
from blogpress.main import app
from blogpress.services.api_keys import Caller

# Register every table on Base.metadata
import blogpress.models.api_key  # noqa: F401
import blogpress.models.page_view  # noqa: F401
import blogpress.models.visitor  # noqa: F401
import blogpress.models.visitor_session  # noqa: F401

ADMIN = Caller(user_id="admin-1", role="admin")
EDITOR = Caller(user_id="editor-1", role="editor")


def _make_engine(path: Path) -> AsyncEngine:
    # File DB + NullPool: every session gets its own connection, so
    # concurrent tasks really do contend for the write lock.
    return create_async_engine(
        f"sqlite+aiosqlite:///{path}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )


async def _create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture()
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = _make_engine(tmp_path / "test.db")
    await _create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


# ── HTTP fixtures (sync; TestClient runs the app on its own loop) ──
@pytest.fixture()
def api_session_factory(tmp_path: Path) -> Generator[async_sessionmaker[AsyncSession], None, None]:
    engine = _make_engine(tmp_path / "api.db")
    asyncio.run(_create_schema(engine))
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture()
def client(
    api_session_factory: async_sessionmaker[AsyncSession],
) -> Generator[TestClient, None, None]:
    async def override_db() -> AsyncGenerator[AsyncSession, None]:
        async with api_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def as_user(client: TestClient):
    """Log the TestClient in as a given admin-area user."""

    def login(caller: Caller) -> TestClient:
        app.dependency_overrides[get_current_user] = lambda: caller
        return client

    return login


@pytest.fixture()
def admin_client(as_user) -> TestClient:
    return as_user(ADMIN)
