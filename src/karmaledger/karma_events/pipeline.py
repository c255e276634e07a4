"""Event intake and the asynchronous feedback pipeline.

``create_event`` persists the event as pending and queues a scoring job;
``process_feedback`` is that job. An event moves pending -> scored exactly
once; after ``feedback_max_attempts`` failed oracle calls it is marked
failed so clients can stop polling.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from karmaledger.config import Settings
from karmaledger.db.models import KarmaEvent
from karmaledger.errors import NotFound, OracleError
from karmaledger.gamification.signals import MilestoneBus, MilestoneSignal, milestones_reached
from karmaledger.karma_events import service
from karmaledger.oracle.base import KarmaOracle, call_with_timeout
from karmaledger.users.service import get_user_by_id
from karmaledger.workers.queues import FEEDBACK_QUEUE, PROCESS_FEEDBACK, JobQueue, feedback_job_id

logger = logging.getLogger(__name__)


class FeedbackOutcome(str, Enum):
    SCORED = "scored"
    ALREADY_DONE = "already_done"
    RETRY = "retry"
    FAILED = "failed"
    MISSING = "missing"


class FeedbackPipeline:
    """Intake plus the per-event scoring job."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: JobQueue,
        bus: MilestoneBus,
        oracle: KarmaOracle,
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.queue = queue
        self.bus = bus
        self.oracle = oracle
        self.settings = settings

    async def create_event(
        self,
        user_id: int,
        action: str,
        reflection: str | None = None,
        occurred_at: datetime | None = None,
    ) -> KarmaEvent:
        """Validate and persist a new event, then queue it for scoring.

        Returns immediately with the pending row; scoring happens in the worker.
        """
        cleaned = service.validate_action(action)

        async with self.session_factory() as db:
            if await get_user_by_id(db, user_id) is None:
                raise NotFound("user", user_id)
            event = await service.insert_event(db, user_id, cleaned, reflection, occurred_at)
            await db.commit()

        try:
            await self.queue.enqueue(PROCESS_FEEDBACK, event.id, queue=FEEDBACK_QUEUE, job_id=feedback_job_id(event.id))
        except Exception:
            # The row is committed; the stale-feedback sweep will queue it again.
            logger.exception("Failed to enqueue feedback job for event %s", event.id)
        return event

    async def process_feedback(self, event_id: int) -> FeedbackOutcome:
        """Score one event through the oracle and store the result."""
        async with self.session_factory() as db:
            event = await service.get_event(db, event_id)
            if event is None:
                logger.error("Karma event %s not found, abandoning feedback job", event_id)
                return FeedbackOutcome.MISSING
            if event.feedback_generated or event.feedback_failed:
                return FeedbackOutcome.ALREADY_DONE

            attempt = await service.record_attempt(db, event)
            await db.commit()
            user_id, action, reflection = event.user_id, event.action, event.reflection

        logger.info("Scoring karma event %s (attempt %d/%d)", event_id, attempt, self.settings.feedback_max_attempts)
        try:
            score = await call_with_timeout(
                self.oracle.score_event(action, reflection),
                self.settings.oracle_timeout_seconds,
            )
        except OracleError as exc:
            if attempt < self.settings.feedback_max_attempts:
                logger.warning("Oracle failed for event %s (attempt %d): %s", event_id, attempt, exc)
                return FeedbackOutcome.RETRY
            async with self.session_factory() as db:
                await service.mark_feedback_failed(db, event_id)
                await db.commit()
            logger.error("Feedback for event %s failed permanently after %d attempts: %s", event_id, attempt, exc)
            return FeedbackOutcome.FAILED

        async with self.session_factory() as db:
            updated = await service.apply_feedback(db, event_id, score)
            event_count = await service.count_user_events(db, user_id)
            await db.commit()

        if not updated:
            return FeedbackOutcome.ALREADY_DONE

        logger.info("Karma event %s scored (intensity=%d)", event_id, score.intensity)
        await self.bus.publish_many(
            MilestoneSignal(type=m, user_id=user_id, data={"event_count": event_count})
            for m in milestones_reached(event_count)
        )
        return FeedbackOutcome.SCORED

    async def requeue_stale(self, now: datetime | None = None) -> int:
        """Queue pending events that have sat unscored for too long. Returns the number queued."""
        if now is None:
            now = datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=self.settings.feedback_stale_after_minutes)

        async with self.session_factory() as db:
            event_ids = await service.find_stale_pending(db, cutoff, self.settings.feedback_max_attempts)

        queued = 0
        for event_id in event_ids:
            if await self.queue.enqueue(
                PROCESS_FEEDBACK, event_id, queue=FEEDBACK_QUEUE, job_id=feedback_job_id(event_id)
            ):
                queued += 1
        if queued:
            logger.info("Re-queued %d stale feedback jobs", queued)
        return queued
