"""Badge engine: turns milestone signals into badge awards."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from karmaledger.gamification.badge_service import award_badge, publish_badge_earned
from karmaledger.gamification.signals import MilestoneBus, MilestoneSignal, MilestoneType

logger = logging.getLogger(__name__)

BADGE_FOR_MILESTONE: dict[MilestoneType, str] = {
    MilestoneType.FIRST_EVENT: "first_event",
    MilestoneType.MILESTONE_10: "karma_10",
    MilestoneType.MILESTONE_50: "karma_50",
    MilestoneType.MILESTONE_100: "karma_100",
    MilestoneType.FIRST_SUGGESTION: "first_suggestion",
    MilestoneType.TOP10_RANKED: "top10_weekly",
}


class BadgeEngine:
    """Subscribes to every milestone type and awards the matching badge once."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], redis: object = None) -> None:
        self.session_factory = session_factory
        self.redis = redis

    def register(self, bus: MilestoneBus) -> None:
        bus.subscribe(self.handle, BADGE_FOR_MILESTONE.keys())

    async def handle(self, signal: MilestoneSignal) -> bool:
        """Award the badge for ``signal``. Returns True if a new award was made."""
        code = BADGE_FOR_MILESTONE.get(signal.type)
        if code is None:
            return False

        async with self.session_factory() as db:
            badge = await award_badge(db, signal.user_id, code)
            await db.commit()

        if badge is None:
            return False

        logger.info("Awarded badge %s to user %s (signal=%s)", code, signal.user_id, signal.type.value)
        await publish_badge_earned(self.redis, signal.user_id, badge)
        return True
