"""Points ledger: atomic increments with level-up detection."""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.models import User
from learnhub.gamification.exceptions import InvalidPointsError, UserNotFoundError
from learnhub.gamification.levels import calculate_level
from learnhub.gamification.stats_service import invalidate_user_stats
from learnhub.redis_client import publish_or_defer

logger = logging.getLogger(__name__)

# Point values awarded by the learning-event handlers
LESSON_COMPLETION_POINTS = 50
QUIZ_COMPLETION_POINTS = 30
STREAK_BONUS_POINTS = 20


def _validate_points(points: object) -> int:
    if isinstance(points, bool) or not isinstance(points, int):
        msg = f"Point delta must be an integer, got {type(points).__name__}"
        raise InvalidPointsError(msg)
    if points < 0:
        msg = f"Point delta must be non-negative, got {points}"
        raise InvalidPointsError(msg)
    return points


async def award_points(
    db: AsyncSession,
    redis: object,
    user_id: int,
    points: int,
    reason: str,
    deferred: list | None = None,
) -> dict:
    """Add points to a user's total and raise their level if it moved.

    The increment is a single UPDATE ... SET total_points = total_points + :n,
    so concurrent awards never lose updates. The level is only ever raised,
    guarded by WHERE level < :new_level.

    Pass `deferred` to queue the level-up broadcast instead of sending it
    before the caller commits.

    Returns {"points": <delta applied>, "new_level": <level for the new total>}.
    Raises InvalidPointsError or UserNotFoundError. The caller owns the commit.
    """
    points = _validate_points(points)

    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_points=User.total_points + points)
        .returning(User.total_points, User.level)
    )
    row = result.one_or_none()
    if row is None:
        raise UserNotFoundError(user_id)

    total_points, old_level = row
    new_level = calculate_level(total_points)

    if new_level > old_level:
        await db.execute(
            update(User)
            .where(User.id == user_id, User.level < new_level)
            .values(level=new_level)
        )
        await publish_or_defer(
            redis,
            "pubsub:level_up",
            {"user_id": user_id, "old_level": old_level, "new_level": new_level},
            deferred,
        )

    await db.flush()
    logger.info(
        "Awarded %d points to user %s (%s): total=%d level=%d",
        points, user_id, reason, total_points, new_level,
    )

    await invalidate_user_stats(redis, user_id)
    return {"points": points, "new_level": new_level}
