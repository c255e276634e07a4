"""Karma event persistence.

Events are inserted unscored and updated exactly once by the feedback job.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import KarmaEvent
from karmaledger.errors import ValidationFailed
from karmaledger.oracle.base import EventScore
from karmaledger.week_utils import ensure_utc

MAX_ACTION_LENGTH = 500


def validate_action(action: str | None) -> str:
    """Return the trimmed action, rejecting empty or oversized input."""
    cleaned = (action or "").strip()
    if not cleaned:
        raise ValidationFailed("action must not be empty")
    if len(cleaned) > MAX_ACTION_LENGTH:
        raise ValidationFailed(f"action must be at most {MAX_ACTION_LENGTH} characters")
    return cleaned


async def insert_event(
    db: AsyncSession,
    user_id: int,
    action: str,
    reflection: str | None = None,
    occurred_at: datetime | None = None,
) -> KarmaEvent:
    """Persist a new event in the pending state."""
    now = datetime.now(timezone.utc)
    event = KarmaEvent(
        user_id=user_id,
        action=action,
        reflection=reflection or None,
        intensity=None,
        feedback=None,
        feedback_generated=False,
        feedback_attempts=0,
        feedback_failed=False,
        occurred_at=ensure_utc(occurred_at) if occurred_at else now,
        created_at=now,
    )
    db.add(event)
    await db.flush()
    return event


async def get_event(db: AsyncSession, event_id: int) -> KarmaEvent | None:
    result = await db.execute(select(KarmaEvent).where(KarmaEvent.id == event_id))
    return result.scalar_one_or_none()


async def list_user_events(db: AsyncSession, user_id: int) -> list[KarmaEvent]:
    """All of a user's events, newest first."""
    result = await db.execute(
        select(KarmaEvent)
        .where(KarmaEvent.user_id == user_id)
        .order_by(KarmaEvent.occurred_at.desc(), KarmaEvent.id.desc())
    )
    return list(result.scalars())


async def count_user_events(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(KarmaEvent.id)).where(KarmaEvent.user_id == user_id))
    return int(result.scalar_one())


async def record_attempt(db: AsyncSession, event: KarmaEvent) -> int:
    """Bump the attempt counter and return the attempt number now running."""
    event.feedback_attempts = (event.feedback_attempts or 0) + 1
    await db.flush()
    return event.feedback_attempts


async def apply_feedback(db: AsyncSession, event_id: int, score: EventScore) -> bool:
    """Store the oracle's score. Only a pending event can be scored, so the
    pending -> scored transition happens at most once."""
    result = await db.execute(
        update(KarmaEvent)
        .where(KarmaEvent.id == event_id, KarmaEvent.feedback_generated.is_(False))
        .values(
            intensity=score.intensity,
            feedback=score.feedback,
            feedback_generated=True,
            feedback_failed=False,
        )
    )
    return result.rowcount == 1


async def mark_feedback_failed(db: AsyncSession, event_id: int) -> bool:
    result = await db.execute(
        update(KarmaEvent)
        .where(KarmaEvent.id == event_id, KarmaEvent.feedback_generated.is_(False))
        .values(feedback_failed=True)
    )
    return result.rowcount == 1


async def find_stale_pending(
    db: AsyncSession,
    created_before: datetime,
    max_attempts: int,
    limit: int = 500,
) -> list[int]:
    """Ids of events stuck in pending that still have attempts left."""
    result = await db.execute(
        select(KarmaEvent.id)
        .where(
            KarmaEvent.feedback_generated.is_(False),
            KarmaEvent.feedback_failed.is_(False),
            KarmaEvent.feedback_attempts < max_attempts,
            KarmaEvent.created_at < created_before,
        )
        .order_by(KarmaEvent.id)
        .limit(limit)
    )
    return list(result.scalars())
