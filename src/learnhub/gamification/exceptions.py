"""Gamification error types."""

from __future__ import annotations


class GamificationError(Exception):
    """Base class for gamification failures."""


class UserNotFoundError(GamificationError):
    """The target user does not exist."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InvalidPointsError(GamificationError, ValueError):
    """Point delta is negative or not an integer."""


class InvalidContextError(GamificationError, ValueError):
    """Achievement event context is not a mapping or carries non-numeric scores."""
