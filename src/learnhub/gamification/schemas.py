"""Pydantic request/response models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


# --- Achievements ---


class AchievementRuleResponse(BaseModel):
    id: str
    title: str
    description: str
    points: int
    icon: str | None = None
    condition: str
    threshold: int


class AllAchievementRulesResponse(BaseModel):
    achievements: list[AchievementRuleResponse]


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    title: str
    description: str
    points: int
    icon: str | None = None
    created_at: datetime | None = None


class UserAchievementsResponse(BaseModel):
    earned: list[AchievementResponse]
    total_available: int
    total_earned: int


# --- Stats ---


class GamificationStatsResponse(BaseModel):
    total_points: int
    level: int
    current_streak: int
    longest_streak: int
    achievements: list[AchievementResponse]
    completed_lessons: int
    completed_quizzes: int
    points_for_next_level: int
    points_in_current_level: int
    progress_to_next_level: float


# --- Actions ---


class GamificationActionRequest(BaseModel):
    action: str
    points: Any = None
    context: dict[str, Any] | None = None


class PointsAwardResponse(BaseModel):
    points: int
    new_level: int


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int


class GamificationActionResponse(BaseModel):
    success: Literal[True] = True
    data: PointsAwardResponse | StreakResponse | list[AchievementResponse]
