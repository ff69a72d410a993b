"""Pytest configuration and shared fixtures.

This module provides:
- In-memory SQLite (aiosqlite + StaticPool) engine and sessions
- FastAPI app and httpx clients wired to the test engine
- Auth fixtures that attach a caller identity without a session cookie
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("REQUIRE_HTTPS", "false")
os.environ.setdefault("SESSION_SECRET_KEY", "test_session_secret_key_for_testing")

from collections.abc import AsyncGenerator, Generator
from typing import Any
from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.auth import ContextUser
from core.config import clear_settings_cache
from core.database import Base
from core.wide_event import init_wide_event

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_USER_ID = "user_test_123456789"

ARTICLE_PERMISSIONS = frozenset(
    {"create_article", "update_article", "delete_article", "publish_article"}
)


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Services record fields on the wide event; middleware normally creates it."""
    init_wide_event()
    yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting so route handlers can be called freely."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine]:
    """Create a fresh in-memory database engine for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide a database session for each test."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_maker() as session:
        yield session


# =============================================================================
# Auth Fixtures
# =============================================================================


class StaticAuthBackend:
    """Authenticates every request as the same user."""

    def __init__(self, user: ContextUser):
        self.user = user

    def authenticate(self, request: Request) -> ContextUser | None:
        return self.user


@pytest.fixture
def test_user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def editor(test_user_id: str) -> ContextUser:
    """Signed-in user holding every article permission."""
    return ContextUser(user_id=test_user_id, permissions=ARTICLE_PERMISSIONS)


@pytest.fixture
def reader() -> ContextUser:
    """Signed-in user without any permission."""
    return ContextUser(user_id="user_reader")


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def app(test_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """FastAPI app bound to the test engine (lifespan is not run by ASGITransport)."""
    from main import create_app

    fastapi_app = create_app()
    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    fastapi_app.state.init_done = True
    fastapi_app.state.init_error = None

    yield fastapi_app


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Anonymous HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def authenticated_client(
    app: FastAPI, editor: ContextUser
) -> AsyncGenerator[AsyncClient]:
    """HTTP client whose requests are authenticated as ``editor``."""
    app.state.auth_backends = [StaticAuthBackend(editor)]
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"
