"""
VersaBlog Test Fixtures
=======================

Pytest fixtures for testing the VersaBlog content backend.
Provides fixtures for the database, services, loaders and the FastAPI client.

Every test gets its own in-memory SQLite database with foreign keys
enforced, so committed data never leaks between tests.

Example:
    async def test_create_category(async_client):
        response = await async_client.post("/api/v1/categories", json={"name": "Tech"})
        assert response.status_code == 201
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

# Set testing environment variables before any application imports
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from versablog.core.loaders import Loaders  # noqa: E402
from versablog.database import build_engine, build_session_factory, get_session  # noqa: E402
from versablog.main import create_application  # noqa: E402
from versablog.models import Base  # noqa: E402
from versablog.services import CategoryService, PostService, TagService  # noqa: E402

from tests.factories import (  # noqa: E402
    CategoryFactory,
    PostFactory,
    TagFactory,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create an in-memory database with the full schema.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see an empty database.
    """
    engine = build_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session on the test database."""
    async with build_session_factory(async_engine)() as session:
        yield session


@pytest.fixture
def loaders(db_session) -> Loaders:
    """Provide a fresh set of request-scoped loaders."""
    return Loaders(db_session)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def category_service(db_session) -> CategoryService:
    return CategoryService(db_session)


@pytest.fixture
def tag_service(db_session) -> TagService:
    return TagService(db_session)


@pytest.fixture
def post_service(db_session) -> PostService:
    return PostService(db_session)


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app(async_engine) -> FastAPI:
    """
    Create a FastAPI application instance for testing.

    The session dependency is overridden so requests hit the test database.
    """
    test_app = create_application()
    session_factory = build_session_factory(async_engine)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_session] = override_get_session
    return test_app


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client bound to the test application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Content-Type": "application/json"},
    ) as client:
        yield client

    app.dependency_overrides.clear()


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def make_category(db_session):
    """
    Insert categories directly, bypassing service validation.

    Usage:
        root = await make_category(name="Root")
        child = await make_category(name="Child", parent_id=root.id)
    """
    async def _make(**kwargs):
        category = CategoryFactory.build(**kwargs)
        db_session.add(category)
        await db_session.commit()
        return category

    return _make


@pytest_asyncio.fixture
async def make_tag(db_session):
    async def _make(**kwargs):
        tag = TagFactory.build(**kwargs)
        db_session.add(tag)
        await db_session.commit()
        return tag

    return _make


@pytest_asyncio.fixture
async def make_post(db_session):
    """Insert a post, optionally linked to categories and tags."""
    from versablog.models import PostCategory, PostTag

    async def _make(categories=(), tags=(), **kwargs):
        post = PostFactory.build(**kwargs)
        db_session.add(post)
        await db_session.flush()
        db_session.add_all(
            PostCategory(post_id=post.id, category_id=category.id) for category in categories
        )
        db_session.add_all(PostTag(post_id=post.id, tag_id=tag.id) for tag in tags)
        await db_session.commit()
        return post

    return _make


@pytest.fixture
def capture_logs(caplog):
    """
    Capture log messages during tests.

    Usage:
        def test_something(capture_logs):
            # ... do something that logs ...
            assert "Expected message" in capture_logs.text
    """
    import logging
    caplog.set_level(logging.DEBUG)
    return caplog
