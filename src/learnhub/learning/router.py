"""Lesson progress and quiz attempt endpoints: the events that feed gamification."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.config import get_settings
from learnhub.database import get_session
from learnhub.db.models import Lesson, Progress, Quiz, QuizAttempt, User
from learnhub.dependencies import get_redis_dep
from learnhub.gamification.rewards import reward_lesson_completion, reward_quiz_completion
from learnhub.gamification.schemas import AchievementResponse
from learnhub.learning.schemas import (
    LessonProgressEntry,
    ProgressResponse,
    ProgressUpsertRequest,
    ProgressUpsertResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
    QuizAttemptResultResponse,
)
from learnhub.redis_client import cache_delete, cache_get_json, cache_set_json

router = APIRouter(prefix="/api/v1", tags=["Learning"])


def progress_cache_key(user_id: int, course_id: int) -> str:
    return f"progress:{user_id}:{course_id}:v1"


# ── Lesson progress ──


@router.get("/progress", response_model=list[LessonProgressEntry])
async def list_course_progress(
    course_id: int = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Lessons of a course in order, each with the user's progress (or null)."""
    key = progress_cache_key(user.id, course_id)
    cached = await cache_get_json(redis, key)
    if cached is not None:
        return cached

    lessons_result = await db.execute(
        select(Lesson).where(Lesson.course_id == course_id).order_by(Lesson.order, Lesson.id)
    )
    lessons = lessons_result.scalars().all()

    progress_result = await db.execute(
        select(Progress).where(
            Progress.user_id == user.id,
            Progress.lesson_id.in_([lesson.id for lesson in lessons]),
        )
    )
    by_lesson = {p.lesson_id: p for p in progress_result.scalars()}

    entries = [
        LessonProgressEntry(
            lesson_id=lesson.id,
            order=lesson.order,
            progress=ProgressResponse.model_validate(by_lesson[lesson.id]) if lesson.id in by_lesson else None,
        )
        for lesson in lessons
    ]

    await cache_set_json(
        redis, key, [e.model_dump(mode="json") for e in entries], get_settings().progress_cache_ttl_seconds
    )
    return entries


@router.post("/progress", response_model=ProgressUpsertResponse)
async def upsert_progress(
    body: ProgressUpsertRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Save lesson progress. The first time a lesson reaches 100% it is rewarded."""
    lesson = await db.get(Lesson, body.lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")

    result = await db.execute(
        select(Progress).where(Progress.user_id == user.id, Progress.lesson_id == lesson.id)
    )
    progress = result.scalar_one_or_none()
    # completed_at is sticky: a lesson is rewarded once, whatever percent it drops back to
    already_completed = progress is not None and progress.completed_at is not None

    if already_completed:
        completed_at = progress.completed_at
    elif body.percent >= 100:
        completed_at = body.completed_at or datetime.now(timezone.utc)
    else:
        completed_at = None

    if progress is None:
        progress = Progress(user_id=user.id, lesson_id=lesson.id)
        db.add(progress)
    progress.percent = body.percent
    progress.completed_at = completed_at
    await db.flush()

    saved = ProgressResponse.model_validate(progress)
    await cache_delete(redis, progress_cache_key(user.id, lesson.course_id))

    reward = {"points_earned": 0, "new_achievements": []}
    if body.percent >= 100 and not already_completed:
        reward = await reward_lesson_completion(db, redis, user.id, lesson.title)
    new_achievements = [AchievementResponse.model_validate(a) for a in reward["new_achievements"]]

    await db.commit()
    return ProgressUpsertResponse(
        **saved.model_dump(),
        points_earned=reward["points_earned"],
        new_achievements=new_achievements,
    )


# ── Quiz attempts ──


@router.post("/quizzes/{quiz_id}/attempts", response_model=QuizAttemptResultResponse)
async def submit_quiz_attempt(
    quiz_id: int,
    body: QuizAttemptRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Record a completed quiz attempt and reward it (best effort)."""
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")

    attempt = QuizAttempt(
        user_id=user.id,
        quiz_id=quiz.id,
        score=body.score,
        total_points=body.total_points,
        answers=body.answers,
        time_spent=body.time_spent,
        completed=True,
    )
    db.add(attempt)
    await db.flush()
    saved = QuizAttemptResponse.model_validate(attempt)

    reward = await reward_quiz_completion(
        db, redis, user.id, quiz.id, quiz.title, body.score, body.total_points
    )
    new_achievements = [AchievementResponse.model_validate(a) for a in reward["new_achievements"]]

    await db.commit()
    return QuizAttemptResultResponse(
        attempt=saved,
        points_earned=reward["points_earned"],
        new_achievements=new_achievements,
    )


@router.get("/quizzes/{quiz_id}/attempts", response_model=list[QuizAttemptResponse])
async def list_quiz_attempts(
    quiz_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The current user's 10 most recent attempts at a quiz."""
    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.user_id == user.id, QuizAttempt.quiz_id == quiz_id)
        .order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc())
        .limit(10)
    )
    return [QuizAttemptResponse.model_validate(a) for a in result.scalars()]
