"""Redis connection pool and best-effort cache helpers."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client (FastAPI dependency)."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


# ---------------------------------------------------------------------------
# Cache helpers: a cache miss and a Redis failure look the same to callers.
# ---------------------------------------------------------------------------


async def cache_get_json(client: object, key: str) -> Any | None:
    """Return the decoded JSON value at key, or None on miss/error."""
    if client is None:
        return None
    try:
        raw = await client.get(key)  # type: ignore[union-attr]
    except Exception:
        logger.warning("Cache read failed for %s", key, exc_info=True)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding undecodable cache entry %s", key)
        return None


async def cache_set_json(client: object, key: str, value: Any, ttl_seconds: int) -> None:
    """Store value as JSON with a fixed TTL."""
    if client is None:
        return
    try:
        await client.set(key, json.dumps(value, default=str), ex=ttl_seconds)  # type: ignore[union-attr]
    except Exception:
        logger.warning("Cache write failed for %s", key, exc_info=True)


async def cache_delete(client: object, *keys: str) -> None:
    """Invalidate one or more cache keys."""
    if client is None or not keys:
        return
    try:
        await client.delete(*keys)  # type: ignore[union-attr]
    except Exception:
        logger.warning("Cache invalidation failed for %s", keys, exc_info=True)


async def publish_event(client: object, channel: str, payload: dict[str, Any]) -> None:
    """Broadcast a JSON payload on a pub/sub channel."""
    if client is None:
        return
    try:
        await client.publish(channel, json.dumps(payload))  # type: ignore[union-attr]
    except Exception:
        logger.warning("Failed to publish %s broadcast", channel, exc_info=True)


async def publish_or_defer(
    client: object,
    channel: str,
    payload: dict[str, Any],
    deferred: list[tuple[str, dict[str, Any]]] | None = None,
) -> None:
    """Publish now, or queue on `deferred` until the caller's transaction has settled."""
    if deferred is not None:
        deferred.append((channel, payload))
        return
    await publish_event(client, channel, payload)


async def publish_deferred(client: object, deferred: list[tuple[str, dict[str, Any]]]) -> None:
    """Publish queued events in the order they were raised."""
    for channel, payload in deferred:
        await publish_event(client, channel, payload)
    deferred.clear()
