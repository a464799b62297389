"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) built from the
ORM metadata and a dict-backed Redis stand-in, so no services are needed.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

os.environ["LEARNHUB_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LEARNHUB_LOG_FORMAT"] = "console"
os.environ["LEARNHUB_JWT_SECRET"] = "test-secret"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.jwt import create_access_token
from learnhub.config import get_settings
from learnhub.database import close_db, get_engine, init_db
from learnhub.db.base import Base
from learnhub.db.models import Course, Lesson, Quiz, User
from learnhub.dependencies import get_redis_dep
from learnhub.main import create_app
from learnhub.users.service import create_user

get_settings.cache_clear()


def make_fake_redis() -> AsyncMock:
    """AsyncMock Redis backed by a plain dict (`.store`) for get/set/delete."""
    store: dict[str, str] = {}
    redis = AsyncMock()

    async def _get(key):
        return store.get(key)

    async def _set(key, value, ex=None):
        store[key] = value
        return True

    async def _delete(*keys):
        return sum(1 for k in keys if store.pop(k, None) is not None)

    redis.get.side_effect = _get
    redis.set.side_effect = _set
    redis.delete.side_effect = _delete
    redis.ping.return_value = True
    redis.publish.return_value = 1
    redis.store = store
    return redis


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema per test."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service-level tests."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest.fixture
def session_scope(database):
    """Open short-lived sessions around HTTP calls (SQLite shares one connection)."""

    @asynccontextmanager
    async def _scope() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(get_engine(), expire_on_commit=False) as session:
            yield session

    return _scope


@pytest.fixture
def redis_mock() -> AsyncMock:
    return make_fake_redis()


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    """A learner with zeroed counters."""
    learner = await create_user(db_session, "learner@example.com", "Ada")
    await db_session.commit()
    return learner


@pytest_asyncio.fixture
async def lesson(db_session: AsyncSession) -> Lesson:
    course = Course(title="Intro to Python")
    db_session.add(course)
    await db_session.flush()
    first = Lesson(course_id=course.id, title="Variables", order=1)
    db_session.add(first)
    await db_session.commit()
    return first


@pytest_asyncio.fixture
async def client(database, redis_mock) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with Redis swapped for the in-memory stand-in."""
    app = create_app()
    app.dependency_overrides[get_redis_dep] = lambda: redis_mock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def seeded(session_scope) -> dict:
    """A learner, a course with two lessons and a quiz, committed and detached."""
    async with session_scope() as db:
        learner = await create_user(db, "api-learner@example.com", "Grace")
        course = Course(title="Data Structures")
        quiz = Quiz(title="Lists and Dicts")
        db.add_all([course, quiz])
        await db.flush()
        lessons = [
            Lesson(course_id=course.id, title="Lists", order=1),
            Lesson(course_id=course.id, title="Dicts", order=2),
        ]
        db.add_all(lessons)
        await db.commit()
        return {
            "user_id": learner.id,
            "email": learner.email,
            "course_id": course.id,
            "lesson_ids": [lesson.id for lesson in lessons],
            "quiz_id": quiz.id,
        }


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, seeded: dict) -> AsyncClient:
    """Client carrying a bearer token for the seeded learner."""
    token = create_access_token(seeded["user_id"], seeded["email"])
    client.headers["Authorization"] = f"Bearer {token}"
    return client
