"""Karma score aggregation and the weekly leaderboard.

Intensities live on [-1, 10] and are rescaled linearly to a 0-100 score.
Only scored events (intensity set) take part in any average.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import KarmaEvent, User
from karmaledger.errors import NotFound
from karmaledger.gamification.signals import MilestoneBus, MilestoneSignal, MilestoneType
from karmaledger.users.service import get_user_by_id
from karmaledger.week_utils import current_calendar_week, week_upper_bound, weeks_between

logger = logging.getLogger(__name__)

MIN_INTENSITY = -1
MAX_INTENSITY = 10
INTENSITY_SPAN = MAX_INTENSITY - MIN_INTENSITY
TOP_RANKED_CUTOFF = 10


def normalized_score(avg_intensity: float) -> int:
    """Map an average intensity on [-1, 10] to an integer score on [0, 100]."""
    score = round(((avg_intensity - MIN_INTENSITY) / INTENSITY_SPAN) * 100)
    return max(0, min(100, score))


def format_percentage(score: int) -> str:
    return f"{score}%"


async def weekly_karma_scores(db: AsyncSession, user_id: int) -> list[dict]:
    """Per personal week (weeks since join) normalized scores, oldest week first.

    One query loads every scored event; bucketing happens in memory.
    """
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("user", user_id)

    result = await db.execute(
        select(KarmaEvent.intensity, KarmaEvent.occurred_at)
        .where(KarmaEvent.user_id == user_id, KarmaEvent.intensity.is_not(None))
        .order_by(KarmaEvent.occurred_at.asc())
    )

    buckets: dict[int, list[int]] = defaultdict(list)
    for intensity, occurred_at in result:
        buckets[weeks_between(user.joined_at, occurred_at)].append(intensity)

    scores = []
    for week in sorted(buckets):
        intensities = buckets[week]
        avg = sum(intensities) / len(intensities)
        scores.append({"week": week, "score": format_percentage(normalized_score(avg))})
    return scores


async def karma_score_summary(db: AsyncSession, user_id: int) -> dict:
    """Overall normalized score across every scored event of the user."""
    result = await db.execute(
        select(func.avg(KarmaEvent.intensity), func.count(KarmaEvent.id))
        .where(KarmaEvent.user_id == user_id, KarmaEvent.intensity.is_not(None))
    )
    avg, count = result.one()
    score = normalized_score(float(avg)) if count else 0
    return {"total_percentage": format_percentage(score), "scored_events": int(count)}


async def weekly_leaderboard(
    db: AsyncSession,
    bus: MilestoneBus | None = None,
    *,
    size: int = 10,
    now: datetime | None = None,
) -> list[dict]:
    """Top users by normalized average intensity for the current calendar week.

    Users without scored events this week are left out. Ties go to the lower
    user id. Every entry ranked 10th or better emits a top-10 milestone
    on each computation; the badge award absorbs the repeats.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    week_start, _ = current_calendar_week(now)

    result = await db.execute(
        select(
            KarmaEvent.user_id,
            User.username,
            func.avg(KarmaEvent.intensity).label("avg_intensity"),
            func.count(KarmaEvent.id).label("event_count"),
        )
        .join(User, User.id == KarmaEvent.user_id)
        .where(
            KarmaEvent.occurred_at >= week_start,
            KarmaEvent.occurred_at < week_upper_bound(week_start),
            KarmaEvent.intensity.is_not(None),
        )
        .group_by(KarmaEvent.user_id, User.username)
    )

    entries = [
        {
            "user_id": row.user_id,
            "username": row.username,
            "score": normalized_score(float(row.avg_intensity)),
            "event_count": int(row.event_count),
        }
        for row in result
    ]
    entries.sort(key=lambda e: (-e["score"], e["user_id"]))
    top = entries[:size]
    for rank, entry in enumerate(top, start=1):
        entry["rank"] = rank

    if bus is not None and top:
        await bus.publish_many(
            MilestoneSignal(type=MilestoneType.TOP10_RANKED, user_id=e["user_id"], data={"rank": e["rank"]})
            for e in top
            if e["rank"] <= TOP_RANKED_CUTOFF
        )
    logger.debug("Weekly leaderboard computed: %d ranked of %d active", len(top), len(entries))
    return top
