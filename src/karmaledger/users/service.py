"""User queries used by the pipelines and the auth dependency."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password_hash: str = "",
    joined_at: datetime | None = None,
) -> User:
    """Insert a user row. Registration and credential hashing live in the auth service."""
    user = User(
        username=username,
        email=email.lower(),
        password_hash=password_hash,
        joined_at=joined_at or datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    return user
