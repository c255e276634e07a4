"""Badge queries and idempotent badge awarding."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import Badge, UserBadge

logger = logging.getLogger(__name__)

BADGE_EARNED_CHANNEL = "pubsub:badge_earned"


async def get_badge_by_code(db: AsyncSession, code: str) -> Badge | None:
    """Fetch a badge definition by code."""
    result = await db.execute(select(Badge).where(Badge.code == code))
    return result.scalar_one_or_none()


async def has_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    """Check if user already has a specific badge."""
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def list_badges(db: AsyncSession) -> list[Badge]:
    """All active badges in catalog order."""
    result = await db.execute(
        select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.sort_order, Badge.id)
    )
    return list(result.scalars())


async def list_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Badges a user holds, restricted to active badges, oldest award first."""
    result = await db.execute(
        select(UserBadge)
        .join(Badge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user_id, Badge.is_active.is_(True))
        .order_by(UserBadge.awarded_at, UserBadge.id)
    )
    return list(result.unique().scalars())


def _insert_for(db: AsyncSession):
    """Dialect-specific insert so ON CONFLICT DO NOTHING is available."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def award_badge(db: AsyncSession, user_id: int, code: str) -> Badge | None:
    """Award a badge to a user.

    Returns the badge when a new award row was written, None when the user
    already had it or the badge is unknown/inactive. The insert relies on the
    UNIQUE(user_id, badge_id) constraint, so concurrent duplicate awards
    collapse into one row without raising. The caller commits.
    """
    badge = await get_badge_by_code(db, code)
    if badge is None or not badge.is_active:
        logger.warning("Badge not found or inactive: %s", code)
        return None

    insert = _insert_for(db)
    stmt = (
        insert(UserBadge)
        .values(user_id=user_id, badge_id=badge.id, awarded_at=datetime.now(timezone.utc))
        .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        return None
    return badge


async def publish_badge_earned(redis: object, user_id: int, badge: Badge) -> None:
    """Push a badge-earned notification over Redis pub/sub (best effort)."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[attr-defined]
            BADGE_EARNED_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "badge_code": badge.code,
                "badge_name": badge.name,
                "icon": badge.icon,
            }),
        )
    except Exception:
        logger.warning("Failed to publish badge_earned notification", exc_info=True)
