"""Aggregated gamification stats with a Redis read-through cache."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.config import get_settings
from learnhub.db.models import Progress, QuizAttempt, User
from learnhub.gamification.levels import level_progress
from learnhub.redis_client import cache_delete, cache_get_json, cache_set_json


def stats_cache_key(user_id: int) -> str:
    return f"gamification:stats:{user_id}:v1"


async def invalidate_user_stats(redis: object, user_id: int) -> None:
    """Drop the cached stats so the next read reflects the latest mutation."""
    await cache_delete(redis, stats_cache_key(user_id))


async def count_completed_lessons(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Progress)
        .where(Progress.user_id == user_id, Progress.percent >= 100)
    )
    return result.scalar_one()


async def count_completed_quizzes(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(QuizAttempt)
        .where(QuizAttempt.user_id == user_id, QuizAttempt.completed.is_(True))
    )
    return result.scalar_one()


async def get_user_stats(db: AsyncSession, redis: object, user_id: int) -> dict | None:
    """Return the stats panel for a user, or None if the user does not exist."""
    key = stats_cache_key(user_id)
    cached = await cache_get_json(redis, key)
    if cached is not None:
        return cached

    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.achievements))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        return None

    stats = {
        "total_points": user.total_points,
        "level": user.level,
        "current_streak": user.current_streak,
        "longest_streak": user.longest_streak,
        "achievements": [
            {
                "type": a.type,
                "title": a.title,
                "description": a.description,
                "points": a.points,
                "icon": a.icon,
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in user.achievements
        ],
        "completed_lessons": await count_completed_lessons(db, user_id),
        "completed_quizzes": await count_completed_quizzes(db, user_id),
        **level_progress(user.total_points, user.level),
    }

    await cache_set_json(redis, key, stats, get_settings().stats_cache_ttl_seconds)
    return stats
