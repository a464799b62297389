"""Pydantic models for lesson progress and quiz attempts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from learnhub.gamification.schemas import AchievementResponse


# --- Progress ---


class ProgressUpsertRequest(BaseModel):
    lesson_id: int
    percent: int = Field(ge=0, le=100)
    completed_at: datetime | None = None


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: int
    percent: int
    completed_at: datetime | None = None


class ProgressUpsertResponse(ProgressResponse):
    points_earned: int = 0
    new_achievements: list[AchievementResponse] = []


class LessonProgressEntry(BaseModel):
    lesson_id: int
    order: int
    progress: ProgressResponse | None = None


# --- Quiz attempts ---


class QuizAttemptRequest(BaseModel):
    score: int = Field(ge=0)
    total_points: int = Field(ge=0)
    answers: dict[str, Any] = {}
    time_spent: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _score_within_total(self) -> QuizAttemptRequest:
        if self.score > self.total_points:
            msg = "score cannot exceed total_points"
            raise ValueError(msg)
        return self


class QuizAttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    score: int
    total_points: int
    time_spent: int | None = None
    created_at: datetime | None = None


class QuizAttemptResultResponse(BaseModel):
    success: bool = True
    attempt: QuizAttemptResponse
    points_earned: int
    new_achievements: list[AchievementResponse]
