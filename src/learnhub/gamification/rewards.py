"""Rewards for learning events.

Gamification runs after the primary action (saving progress, recording a
quiz attempt) and must never make that action fail. Each reward runs inside
a savepoint: on any error the savepoint is rolled back so no half-applied
points or streak changes remain, the error is logged, and a fallback result
is returned. Level-up and achievement broadcasts are held back until the
savepoint has been released, so a rolled-back reward announces nothing.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.gamification.achievement_service import check_and_award_achievements
from learnhub.gamification.points_service import (
    LESSON_COMPLETION_POINTS,
    QUIZ_COMPLETION_POINTS,
    award_points,
)
from learnhub.gamification.streak_service import update_streak
from learnhub.redis_client import publish_deferred

logger = logging.getLogger(__name__)


async def reward_lesson_completion(
    db: AsyncSession,
    redis: object,
    user_id: int,
    lesson_title: str,
) -> dict:
    """Award lesson points, extend the streak and check achievements."""
    events: list = []
    try:
        async with db.begin_nested():
            await award_points(
                db, redis, user_id, LESSON_COMPLETION_POINTS, f"Lesson completion: {lesson_title}", events
            )
            await update_streak(db, redis, user_id, deferred=events)
            new_achievements = await check_and_award_achievements(db, redis, user_id, deferred=events)
    except Exception:
        logger.exception("Gamification error (non-blocking) for lesson completion by user %s", user_id)
        return {"points_earned": 0, "new_achievements": []}

    await publish_deferred(redis, events)
    return {"points_earned": LESSON_COMPLETION_POINTS, "new_achievements": new_achievements}


async def reward_quiz_completion(
    db: AsyncSession,
    redis: object,
    user_id: int,
    quiz_id: int,
    quiz_title: str,
    score: int,
    total_points: int,
) -> dict:
    """Award quiz points (base + score), extend the streak and check achievements.

    On failure the user is still credited with their score as points_earned
    in the response; nothing is persisted for it.
    """
    points = QUIZ_COMPLETION_POINTS + score
    events: list = []
    try:
        async with db.begin_nested():
            await award_points(db, redis, user_id, points, f"Quiz completion: {quiz_title}", events)
            await update_streak(db, redis, user_id, deferred=events)
            new_achievements = await check_and_award_achievements(
                db, redis, user_id,
                {"score": score, "total_points": total_points, "quiz_id": quiz_id},
                deferred=events,
            )
    except Exception:
        logger.exception("Gamification error (non-blocking) for quiz %s by user %s", quiz_id, user_id)
        return {"points_earned": score, "new_achievements": []}

    await publish_deferred(redis, events)
    return {"points_earned": points, "new_achievements": new_achievements}
