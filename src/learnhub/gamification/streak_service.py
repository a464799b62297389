"""Daily learning streaks."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.config import get_settings
from learnhub.db.models import User
from learnhub.gamification.exceptions import UserNotFoundError
from learnhub.gamification.points_service import STREAK_BONUS_POINTS, award_points
from learnhub.gamification.stats_service import invalidate_user_stats

logger = logging.getLogger(__name__)


def activity_day(moment: datetime, tz: ZoneInfo) -> date:
    """Calendar day of a timestamp in the activity timezone.

    Naive timestamps (SQLite drops tzinfo) are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def next_streak(current_streak: int, last_day: date | None, today: date) -> int:
    """Streak length after an activity on `today`.

    Same day keeps the streak, the day after extends it, and anything
    else (a gap of two or more days, or no prior activity) starts over at 1.
    """
    if last_day == today:
        return current_streak
    if last_day == today - timedelta(days=1):
        return current_streak + 1
    return 1


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: int,
    now: datetime | None = None,
    deferred: list | None = None,
) -> dict:
    """Record a qualifying activity and update the user's streak.

    A second call on the same calendar day is a no-op. Extending a streak
    past one day awards STREAK_BONUS_POINTS.

    Returns {"current_streak": int, "longest_streak": int}.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    tz = ZoneInfo(get_settings().activity_timezone)

    result = await db.execute(
        select(User).where(User.id == user_id).with_for_update()
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)

    today = activity_day(now, tz)
    last_day = activity_day(user.last_activity_date, tz) if user.last_activity_date else None

    if last_day == today:
        return {"current_streak": user.current_streak, "longest_streak": user.longest_streak}

    new_streak = next_streak(user.current_streak, last_day, today)
    user.current_streak = new_streak
    user.longest_streak = max(user.longest_streak, new_streak)
    user.last_activity_date = now
    await db.flush()

    if new_streak > 1:
        await award_points(db, redis, user_id, STREAK_BONUS_POINTS, f"{new_streak}-day streak bonus", deferred)
    else:
        await invalidate_user_stats(redis, user_id)

    logger.debug("User %s streak now %d (longest %d)", user_id, new_streak, user.longest_streak)
    return {"current_streak": new_streak, "longest_streak": user.longest_streak}
