"""Gamification endpoint tests."""

import pytest
from sqlalchemy import select

from learnhub.auth.jwt import create_access_token
from learnhub.db.models import User


async def _stored_points(session_scope, user_id):
    async with session_scope() as db:
        return await db.scalar(select(User.total_points).where(User.id == user_id))


class TestAchievementCatalogue:

    @pytest.mark.asyncio
    async def test_lists_all_rules(self, client):
        response = await client.get("/api/v1/achievements")

        assert response.status_code == 200
        rules = response.json()["achievements"]
        assert [r["id"] for r in rules] == ["first_lesson", "week_streak", "quiz_master", "perfect_score", "level_up_5"]
        assert rules[0]["condition"] == "completed_lessons"
        assert rules[0]["threshold"] == 1

    @pytest.mark.asyncio
    async def test_no_auth_required(self, client):
        response = await client.get("/api/v1/achievements")
        assert response.status_code == 200


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/gamification/stats")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        client.headers["Authorization"] = "Bearer not-a-jwt"
        response = await client.get("/api/v1/gamification/stats")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_missing_user(self, client, seeded):
        client.headers["Authorization"] = f"Bearer {create_access_token(90210, 'ghost@example.com')}"
        response = await client.get("/api/v1/gamification/stats")
        assert response.status_code == 401


class TestStatsEndpoint:

    @pytest.mark.asyncio
    async def test_fresh_learner(self, authed_client):
        response = await authed_client.get("/api/v1/gamification/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["total_points"] == 0
        assert body["level"] == 1
        assert body["achievements"] == []
        assert body["points_for_next_level"] == 100


class TestActionsEndpoint:

    @pytest.mark.asyncio
    async def test_award_points(self, authed_client, seeded, session_scope):
        response = await authed_client.post(
            "/api/v1/gamification/actions",
            json={"action": "award_points", "points": 150, "context": {"reason": "Bonus"}},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"points": 150, "new_level": 2}}
        assert await _stored_points(session_scope, seeded["user_id"]) == 150

        stats = (await authed_client.get("/api/v1/gamification/stats")).json()
        assert (stats["total_points"], stats["level"]) == (150, 2)

    @pytest.mark.asyncio
    async def test_award_broadcasts_after_commit(self, authed_client, redis_mock):
        await authed_client.post("/api/v1/gamification/actions", json={"action": "award_points", "points": 100})

        assert [c.args[0] for c in redis_mock.publish.call_args_list] == ["pubsub:level_up"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("points", [-10, "10", None, 2.5])
    async def test_award_rejects_bad_points(self, authed_client, seeded, session_scope, redis_mock, points):
        response = await authed_client.post(
            "/api/v1/gamification/actions", json={"action": "award_points", "points": points}
        )

        assert response.status_code == 400
        assert await _stored_points(session_scope, seeded["user_id"]) == 0
        redis_mock.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_streak(self, authed_client):
        response = await authed_client.post("/api/v1/gamification/actions", json={"action": "update_streak"})

        assert response.status_code == 200
        assert response.json()["data"] == {"current_streak": 1, "longest_streak": 1}

    @pytest.mark.asyncio
    async def test_check_achievements_with_quiz_context(self, authed_client, seeded, session_scope):
        response = await authed_client.post(
            "/api/v1/gamification/actions",
            json={"action": "check_achievements", "context": {"score": 20, "totalPoints": 20}},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [a["type"] for a in data] == ["perfect_score"]
        assert await _stored_points(session_scope, seeded["user_id"]) == 150

    @pytest.mark.asyncio
    async def test_check_achievements_bad_context(self, authed_client):
        response = await authed_client.post(
            "/api/v1/gamification/actions",
            json={"action": "check_achievements", "context": {"score": "full marks"}},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_action(self, authed_client):
        response = await authed_client.post("/api/v1/gamification/actions", json={"action": "reset_everything"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid action"


class TestMyAchievements:

    @pytest.mark.asyncio
    async def test_empty(self, authed_client):
        response = await authed_client.get("/api/v1/users/me/achievements")

        assert response.status_code == 200
        assert response.json() == {"earned": [], "total_available": 5, "total_earned": 0}

    @pytest.mark.asyncio
    async def test_after_grant(self, authed_client):
        await authed_client.post(
            "/api/v1/gamification/actions",
            json={"action": "check_achievements", "context": {"score": 5, "total_points": 5}},
        )

        body = (await authed_client.get("/api/v1/users/me/achievements")).json()

        assert body["total_earned"] == 1
        assert body["earned"][0]["type"] == "perfect_score"
        assert body["earned"][0]["points"] == 150
