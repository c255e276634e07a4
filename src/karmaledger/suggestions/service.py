"""Suggestion persistence and the event queries that feed suggestion generation."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.db.models import KarmaEvent, Suggestion
from karmaledger.errors import NotFound, ValidationFailed
from karmaledger.week_utils import current_calendar_week, week_upper_bound


async def list_suggestions(db: AsyncSession, user_id: int) -> list[Suggestion]:
    """All suggestions for a user, most recent first."""
    result = await db.execute(
        select(Suggestion)
        .where(Suggestion.user_id == user_id)
        .order_by(Suggestion.created_at.desc(), Suggestion.id)
    )
    return list(result.scalars())


async def count_suggestions(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(Suggestion.id)).where(Suggestion.user_id == user_id))
    return int(result.scalar_one())


async def mark_suggestion_used(db: AsyncSession, user_id: int, suggestion_id: int) -> Suggestion:
    """Flag a suggestion as used. Once used it stays used."""
    result = await db.execute(
        select(Suggestion).where(Suggestion.id == suggestion_id, Suggestion.user_id == user_id)
    )
    suggestion = result.scalar_one_or_none()
    if suggestion is None:
        raise NotFound("suggestion", suggestion_id)
    suggestion.used = True
    await db.flush()
    return suggestion


async def create_suggestion(db: AsyncSession, user_id: int, text: str, week: int = 1) -> Suggestion:
    """Add a single suggestion by hand (outside the generation cycle)."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationFailed("suggestion text must not be empty")
    suggestion = Suggestion(
        user_id=user_id,
        suggestion_text=cleaned,
        week=week,
        used=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(suggestion)
    await db.flush()
    return suggestion


async def replace_suggestions(
    db: AsyncSession,
    user_id: int,
    texts: Sequence[str],
    week: int,
    created_at: datetime | None = None,
) -> list[Suggestion]:
    """Delete every existing suggestion for the user and insert the new batch.

    Runs inside the caller's transaction so the delete and insert commit together.
    """
    if created_at is None:
        created_at = datetime.now(timezone.utc)

    await db.execute(delete(Suggestion).where(Suggestion.user_id == user_id))
    batch = [
        Suggestion(user_id=user_id, suggestion_text=text, week=week, used=False, created_at=created_at)
        for text in texts
    ]
    db.add_all(batch)
    await db.flush()
    return batch


async def events_in_window(
    db: AsyncSession,
    user_id: int,
    start: datetime,
    end: datetime,
    limit: int | None = None,
) -> list[KarmaEvent]:
    """User's events with occurred_at in [start, end), newest first."""
    stmt = (
        select(KarmaEvent)
        .where(
            KarmaEvent.user_id == user_id,
            KarmaEvent.occurred_at >= start,
            KarmaEvent.occurred_at < end,
        )
        .order_by(KarmaEvent.occurred_at.desc(), KarmaEvent.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars())


async def gather_recent_events(
    db: AsyncSession,
    user_id: int,
    *,
    lookback_days: int = 21,
    limit: int = 20,
    now: datetime | None = None,
) -> tuple[list[KarmaEvent], bool]:
    """Events to base suggestions on.

    Current calendar week first; when that is empty, the last ``lookback_days``
    days. Both capped at ``limit`` most recent. Returns (events, used_fallback).
    """
    if now is None:
        now = datetime.now(timezone.utc)
    start, _ = current_calendar_week(now)
    events = await events_in_window(db, user_id, start, week_upper_bound(start), limit=limit)
    if events:
        return events, False

    since = now - timedelta(days=lookback_days)
    return await events_in_window(db, user_id, since, now, limit=limit), True
