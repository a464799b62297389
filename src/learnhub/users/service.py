"""User lookups."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.models import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, name: str | None = None) -> User:
    """Create a learner with zeroed gamification counters."""
    user = User(email=email.lower(), name=name)
    db.add(user)
    await db.flush()
    return user
