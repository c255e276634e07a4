"""Weekly suggestion pipeline.

``trigger`` queues one generation job per user (de-duplicated by job id);
``process`` gathers recent events, asks the oracle for suggestions and
replaces the user's previous set in a single transaction. Runs for the
same user are serialized by a per-user lock.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from karmaledger.config import Settings
from karmaledger.errors import NotFound, OracleError
from karmaledger.gamification.signals import MilestoneBus, MilestoneSignal, MilestoneType
from karmaledger.oracle.base import EventSummary, KarmaOracle, call_with_timeout
from karmaledger.suggestions import service
from karmaledger.suggestions.locks import LocalUserLocks, UserLocks
from karmaledger.users.service import get_user_by_id
from karmaledger.week_utils import weeks_since_join
from karmaledger.workers.queues import PROCESS_SUGGESTIONS, SUGGESTION_QUEUE, JobQueue, suggestion_job_id

logger = logging.getLogger(__name__)


class SuggestionOutcome(str, Enum):
    GENERATED = "generated"
    RETRY = "retry"
    FAILED = "failed"
    MISSING = "missing"


class SuggestionPipeline:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: JobQueue,
        bus: MilestoneBus,
        oracle: KarmaOracle,
        settings: Settings,
        locks: UserLocks | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.queue = queue
        self.bus = bus
        self.oracle = oracle
        self.settings = settings
        self.locks = locks or LocalUserLocks()

    async def trigger(self, user_id: int) -> dict:
        """Queue suggestion generation for the user's current personal week."""
        async with self.session_factory() as db:
            user = await get_user_by_id(db, user_id)
            if user is None:
                raise NotFound("user", user_id)
            week = weeks_since_join(user.joined_at)

        queued = await self.queue.enqueue(
            PROCESS_SUGGESTIONS, user_id, week,
            queue=SUGGESTION_QUEUE,
            job_id=suggestion_job_id(user_id),
        )
        return {"user_id": user_id, "week": week, "queued": queued}

    async def process(self, user_id: int, week: int, attempt: int = 1, now: datetime | None = None) -> SuggestionOutcome:
        """Generate and store a fresh suggestion batch for one user."""
        async with self.locks.hold(user_id):
            return await self._process_locked(user_id, week, attempt, now or datetime.now(timezone.utc))

    async def _process_locked(self, user_id: int, week: int, attempt: int, now: datetime) -> SuggestionOutcome:
        logger.info("Generating suggestions for user %s, week %s (attempt %d)", user_id, week, attempt)

        async with self.session_factory() as db:
            if await get_user_by_id(db, user_id) is None:
                logger.error("User %s not found, abandoning suggestion job", user_id)
                return SuggestionOutcome.MISSING
            events, used_fallback = await service.gather_recent_events(
                db, user_id,
                lookback_days=self.settings.suggestion_lookback_days,
                limit=self.settings.suggestion_event_limit,
                now=now,
            )
            summaries = [EventSummary.from_event(e) for e in events]

        if used_fallback:
            logger.info(
                "No events this week for user %s, using %d events from the last %d days",
                user_id, len(summaries), self.settings.suggestion_lookback_days,
            )

        try:
            texts = await call_with_timeout(
                self.oracle.generate_suggestions(user_id, summaries),
                self.settings.oracle_timeout_seconds,
            )
        except OracleError as exc:
            if attempt < self.settings.suggestion_max_attempts:
                logger.warning("Oracle failed for user %s suggestions (attempt %d): %s", user_id, attempt, exc)
                return SuggestionOutcome.RETRY
            logger.error("Suggestion generation for user %s failed after %d attempts: %s", user_id, attempt, exc)
            return SuggestionOutcome.FAILED

        async with self.session_factory() as db:
            async with db.begin():
                had_none = await service.count_suggestions(db, user_id) == 0
                created = await service.replace_suggestions(db, user_id, texts, week, created_at=now)

        logger.info("Saved %d suggestions for user %s (week %s)", len(created), user_id, week)
        if had_none and created:
            await self.bus.publish(MilestoneSignal(type=MilestoneType.FIRST_SUGGESTION, user_id=user_id))
        return SuggestionOutcome.GENERATED
