"""Gamification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.database import get_session
from learnhub.db.models import Achievement, User
from learnhub.dependencies import get_redis_dep
from learnhub.gamification.achievement_service import check_and_award_achievements
from learnhub.gamification.achievements import ACHIEVEMENT_RULES
from learnhub.gamification.points_service import award_points
from learnhub.gamification.schemas import (
    AchievementResponse,
    AchievementRuleResponse,
    AllAchievementRulesResponse,
    GamificationActionRequest,
    GamificationActionResponse,
    GamificationStatsResponse,
    PointsAwardResponse,
    StreakResponse,
    UserAchievementsResponse,
)
from learnhub.gamification.stats_service import get_user_stats
from learnhub.gamification.streak_service import update_streak
from learnhub.redis_client import publish_deferred

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/achievements", response_model=AllAchievementRulesResponse)
async def list_achievements():
    """Get all achievement definitions."""
    return AllAchievementRulesResponse(
        achievements=[
            AchievementRuleResponse(
                id=rule["id"],
                title=rule["title"],
                description=rule["description"],
                points=rule["points"],
                icon=rule.get("icon"),
                condition=rule["condition"].value,
                threshold=rule["threshold"],
            )
            for rule in ACHIEVEMENT_RULES
        ]
    )


# ── Authenticated endpoints ──


@router.get("/gamification/stats", response_model=GamificationStatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Points, level, streaks, achievements and progress to the next level."""
    stats = await get_user_stats(db, redis, user.id)
    if stats is None:
        raise HTTPException(status_code=404, detail="User not found")
    return stats


@router.post("/gamification/actions", response_model=GamificationActionResponse)
async def run_action(
    body: GamificationActionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Apply a gamification action for the current user.

    Domain errors propagate to the global handlers (404 unknown user, 400
    invalid points or context); the session closes without committing.
    """
    context = body.context or {}
    events: list = []

    if body.action == "award_points":
        award = await award_points(
            db, redis, user.id, body.points, context.get("reason") or "Manual points award", events
        )
        data = PointsAwardResponse(**award)
    elif body.action == "update_streak":
        streak = await update_streak(db, redis, user.id, deferred=events)
        data = StreakResponse(**streak)
    elif body.action == "check_achievements":
        grants = await check_and_award_achievements(db, redis, user.id, body.context, deferred=events)
        data = [AchievementResponse.model_validate(g) for g in grants]
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    await db.commit()
    await publish_deferred(redis, events)
    return GamificationActionResponse(data=data)


@router.get("/users/me/achievements", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get the current user's granted achievements, newest first."""
    result = await db.execute(
        select(Achievement)
        .where(Achievement.user_id == user.id)
        .order_by(Achievement.created_at.desc(), Achievement.id.desc())
    )
    earned = result.scalars().all()

    return UserAchievementsResponse(
        earned=[AchievementResponse.model_validate(a) for a in earned],
        total_available=len(ACHIEVEMENT_RULES),
        total_earned=len(earned),
    )
