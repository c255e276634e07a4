"""Badge seed data: one badge per milestone signal."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import Badge

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    {
        "code": "first_event",
        "name": "First Step",
        "description": "Log your very first karma event",
        "icon": "sprout",
        "sort_order": 1,
    },
    {
        "code": "karma_10",
        "name": "Kindness Habit",
        "description": "Log 10 karma events",
        "icon": "leaf",
        "sort_order": 2,
    },
    {
        "code": "karma_50",
        "name": "Good Neighbor",
        "description": "Log 50 karma events",
        "icon": "tree",
        "sort_order": 3,
    },
    {
        "code": "karma_100",
        "name": "Karma Centurion",
        "description": "Log 100 karma events. Kindness is who you are.",
        "icon": "forest",
        "sort_order": 4,
    },
    {
        "code": "first_suggestion",
        "name": "Open Mind",
        "description": "Receive your first batch of weekly suggestions",
        "icon": "lightbulb",
        "sort_order": 5,
    },
    {
        "code": "top10_weekly",
        "name": "Weekly Top 10",
        "description": "Rank in the top 10 of the weekly karma leaderboard",
        "icon": "trophy",
        "sort_order": 6,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Insert missing badges and refresh text of existing ones. Returns the number inserted."""
    result = await db.execute(select(Badge))
    existing = {b.code: b for b in result.scalars()}

    inserted = 0
    for data in BADGE_SEED_DATA:
        badge = existing.get(data["code"])
        if badge is None:
            db.add(Badge(is_active=True, **data))
            inserted += 1
        else:
            badge.name = data["name"]
            badge.description = data["description"]
            badge.icon = data["icon"]
            badge.sort_order = data["sort_order"]

    await db.commit()
    if inserted:
        logger.info("Seeded %d badges", inserted)
    return inserted
