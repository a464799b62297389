"""Achievement rule table and condition interpreter.

Rules are plain data: a condition kind plus a numeric threshold. Adding an
achievement means adding a row to ACHIEVEMENT_RULES; only a new kind of
condition needs code in evaluate_rule().
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from learnhub.gamification.exceptions import InvalidContextError


class ConditionKind(str, Enum):
    COMPLETED_LESSONS = "completed_lessons"
    CURRENT_STREAK = "current_streak"
    COMPLETED_QUIZZES = "completed_quizzes"
    PERFECT_QUIZ_SCORE = "perfect_quiz_score"
    LEVEL = "level"


ACHIEVEMENT_RULES: list[dict] = [
    {
        "id": "first_lesson",
        "title": "First Steps",
        "description": "Complete your first lesson",
        "points": 100,
        "icon": "\U0001f3af",
        "condition": ConditionKind.COMPLETED_LESSONS,
        "threshold": 1,
    },
    {
        "id": "week_streak",
        "title": "Week Warrior",
        "description": "Maintain a 7-day learning streak",
        "points": 200,
        "icon": "\U0001f525",
        "condition": ConditionKind.CURRENT_STREAK,
        "threshold": 7,
    },
    {
        "id": "quiz_master",
        "title": "Quiz Master",
        "description": "Complete 10 quizzes",
        "points": 300,
        "icon": "\U0001f9e0",
        "condition": ConditionKind.COMPLETED_QUIZZES,
        "threshold": 10,
    },
    {
        "id": "perfect_score",
        "title": "Perfectionist",
        "description": "Get 100% on a quiz",
        "points": 150,
        "icon": "\u2b50",
        "condition": ConditionKind.PERFECT_QUIZ_SCORE,
        "threshold": 0,
    },
    {
        "id": "level_up_5",
        "title": "Rising Star",
        "description": "Reach level 5",
        "points": 250,
        "icon": "\U0001f31f",
        "condition": ConditionKind.LEVEL,
        "threshold": 5,
    },
]

RULES_BY_ID: dict[str, dict] = {rule["id"]: rule for rule in ACHIEVEMENT_RULES}

# Snapshot counters compared against a rule's threshold
_THRESHOLD_FIELDS = {
    ConditionKind.COMPLETED_LESSONS: "completed_lessons",
    ConditionKind.CURRENT_STREAK: "current_streak",
    ConditionKind.COMPLETED_QUIZZES: "completed_quizzes",
    ConditionKind.LEVEL: "level",
}


def normalize_context(context: Any) -> dict[str, Any]:
    """Validate an event context and map its keys to snake_case.

    Accepts the camelCase keys the web client sends (totalPoints, quizId)
    as well as snake_case. Scores must be numbers when present.
    """
    if context is None:
        return {}
    if not isinstance(context, Mapping):
        msg = f"Achievement context must be a mapping, got {type(context).__name__}"
        raise InvalidContextError(msg)

    normalized = dict(context)
    for camel, snake in (("totalPoints", "total_points"), ("quizId", "quiz_id")):
        if camel in normalized and snake not in normalized:
            normalized[snake] = normalized.pop(camel)

    for key in ("score", "total_points"):
        value = normalized.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            msg = f"Achievement context '{key}' must be a number, got {value!r}"
            raise InvalidContextError(msg)

    return normalized


def evaluate_rule(rule: Mapping[str, Any], snapshot: Mapping[str, int], context: Mapping[str, Any]) -> bool:
    """Return True if the user's snapshot and the event context satisfy the rule."""
    kind = ConditionKind(rule["condition"])

    if kind is ConditionKind.PERFECT_QUIZ_SCORE:
        score = context.get("score")
        total = context.get("total_points")
        return score is not None and total is not None and total > 0 and score == total

    return snapshot[_THRESHOLD_FIELDS[kind]] >= rule["threshold"]
