"""Achievement evaluation and at-most-once grants."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.models import Achievement, User
from learnhub.gamification.achievements import ACHIEVEMENT_RULES, evaluate_rule, normalize_context
from learnhub.gamification.exceptions import UserNotFoundError
from learnhub.gamification.points_service import award_points
from learnhub.gamification.stats_service import count_completed_lessons, count_completed_quizzes
from learnhub.redis_client import publish_or_defer

logger = logging.getLogger(__name__)


async def get_granted_types(db: AsyncSession, user_id: int) -> set[str]:
    """Rule ids already granted to the user."""
    result = await db.execute(
        select(Achievement.type).where(Achievement.user_id == user_id)
    )
    return set(result.scalars())


async def load_activity_snapshot(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Aggregate the user's history into the counters rules are evaluated against."""
    result = await db.execute(
        select(User.current_streak, User.level).where(User.id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        raise UserNotFoundError(user_id)

    return {
        "completed_lessons": await count_completed_lessons(db, user_id),
        "completed_quizzes": await count_completed_quizzes(db, user_id),
        "current_streak": row.current_streak,
        "level": row.level,
    }


async def _insert_grant(db: AsyncSession, user_id: int, rule: dict) -> Achievement | None:
    """Insert a grant row. Returns None if the unique constraint says it already exists."""
    grant = Achievement(
        user_id=user_id,
        type=rule["id"],
        title=rule["title"],
        description=rule["description"],
        points=rule["points"],
        icon=rule.get("icon"),
    )
    try:
        async with db.begin_nested():
            db.add(grant)
    except IntegrityError:
        # Race condition: granted concurrently
        logger.info("Achievement %s already granted to user %s", rule["id"], user_id)
        return None
    return grant


async def check_and_award_achievements(
    db: AsyncSession,
    redis: object,
    user_id: int,
    context: Any = None,
    deferred: list | None = None,
) -> list[Achievement]:
    """Grant every rule the user now satisfies and has not been granted yet.

    Rules are evaluated in table order against one snapshot taken up front;
    a grant never stops later rules from being checked. Each grant awards
    the rule's points.

    Broadcasts go to `deferred` when given, see award_points.

    Returns the newly created grants (possibly empty).
    """
    event = normalize_context(context)
    snapshot = await load_activity_snapshot(db, user_id)
    granted = await get_granted_types(db, user_id)

    awarded: list[Achievement] = []
    for rule in ACHIEVEMENT_RULES:
        if rule["id"] in granted or not evaluate_rule(rule, snapshot, event):
            continue

        grant = await _insert_grant(db, user_id, rule)
        if grant is None:
            continue

        await award_points(db, redis, user_id, rule["points"], f"Achievement: {rule['title']}", deferred)
        await publish_or_defer(
            redis,
            "pubsub:achievement_earned",
            {"user_id": user_id, "type": rule["id"], "title": rule["title"], "points": rule["points"]},
            deferred,
        )
        awarded.append(grant)

    return awarded
