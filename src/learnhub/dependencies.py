"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from learnhub.redis_client import get_redis as _get_redis


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client as a FastAPI dependency."""
    yield _get_redis()
