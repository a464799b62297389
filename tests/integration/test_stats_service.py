"""Stats aggregation and caching tests."""

import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import update

from learnhub.db.models import Progress, User
from learnhub.gamification.achievement_service import check_and_award_achievements
from learnhub.gamification.points_service import award_points
from learnhub.gamification.stats_service import get_user_stats, stats_cache_key


class TestGetUserStats:

    @pytest.mark.asyncio
    async def test_fresh_user(self, db_session, redis_mock, user):
        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats == {
            "total_points": 0,
            "level": 1,
            "current_streak": 0,
            "longest_streak": 0,
            "achievements": [],
            "completed_lessons": 0,
            "completed_quizzes": 0,
            "points_for_next_level": 100,
            "points_in_current_level": 0,
            "progress_to_next_level": 0.0,
        }

    @pytest.mark.asyncio
    async def test_progress_within_level(self, db_session, redis_mock, user):
        await award_points(db_session, redis_mock, user.id, 250, "boost")

        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats["level"] == 2
        assert stats["points_for_next_level"] == 400
        assert stats["points_in_current_level"] == 150
        assert stats["progress_to_next_level"] == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_lists_granted_achievements(self, db_session, redis_mock, user, lesson):
        db_session.add(
            Progress(user_id=user.id, lesson_id=lesson.id, percent=100, completed_at=datetime.now(timezone.utc))
        )
        await db_session.flush()
        await check_and_award_achievements(db_session, redis_mock, user.id)

        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats["completed_lessons"] == 1
        assert [a["type"] for a in stats["achievements"]] == ["first_lesson"]
        assert isinstance(stats["achievements"][0]["created_at"], str)
        assert stats["total_points"] == 100

    @pytest.mark.asyncio
    async def test_result_is_cached(self, db_session, redis_mock, user):
        await get_user_stats(db_session, redis_mock, user.id)

        cached = json.loads(redis_mock.store[stats_cache_key(user.id)])
        assert cached["total_points"] == 0
        assert redis_mock.set.call_args.kwargs["ex"] == 60

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, db_session, redis_mock, user):
        await get_user_stats(db_session, redis_mock, user.id)
        # Direct write that bypasses invalidation
        await db_session.execute(update(User).where(User.id == user.id).values(total_points=999))

        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats["total_points"] == 0

    @pytest.mark.asyncio
    async def test_award_invalidates_cache(self, db_session, redis_mock, user):
        await get_user_stats(db_session, redis_mock, user.id)
        await award_points(db_session, redis_mock, user.id, 120, "fresh")

        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats["total_points"] == 120
        assert stats["level"] == 2

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, redis_mock):
        assert await get_user_stats(db_session, redis_mock, 5150) is None
        assert stats_cache_key(5150) not in redis_mock.store

    @pytest.mark.asyncio
    async def test_redis_outage_falls_through(self, db_session, redis_mock, user):
        redis_mock.get.side_effect = ConnectionError("redis down")
        redis_mock.set.side_effect = ConnectionError("redis down")

        stats = await get_user_stats(db_session, redis_mock, user.id)

        assert stats["level"] == 1

    @pytest.mark.asyncio
    async def test_works_without_redis(self, db_session, user):
        stats = await get_user_stats(db_session, None, user.id)
        assert stats["total_points"] == 0
