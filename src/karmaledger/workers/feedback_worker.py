"""Feedback arq worker: scores karma events through the oracle.

Jobs:
- process_feedback: one event id, queued by the API on intake
- sweep_stale_feedback: every 10 minutes, re-queues events left pending
"""

from __future__ import annotations

import logging

from arq import Retry, cron
from arq.connections import RedisSettings

from karmaledger.config import get_settings
from karmaledger.karma_events.pipeline import FeedbackOutcome
from karmaledger.workers.queues import FEEDBACK_QUEUE
from karmaledger.workers.runtime import get_services, worker_shutdown, worker_startup

logger = logging.getLogger(__name__)

_settings = get_settings()


async def process_feedback(ctx: dict, event_id: int) -> str:
    """Score one event. Oracle failures are retried with linear backoff."""
    services = get_services(ctx)
    try:
        outcome = await services.feedback.process_feedback(event_id)
    except Exception:
        logger.exception("Feedback job for event %s crashed", event_id)
        return "error"

    if outcome is FeedbackOutcome.RETRY:
        raise Retry(defer=ctx.get("job_try", 1) * services.settings.feedback_retry_backoff_seconds)
    return outcome.value


async def sweep_stale_feedback(ctx: dict) -> int:
    """Re-queue events whose feedback job was lost. Runs every 10 minutes."""
    services = get_services(ctx)
    return await services.feedback.requeue_stale()


class FeedbackWorkerSettings:
    """arq worker settings for the feedback queue."""

    queue_name = FEEDBACK_QUEUE
    functions = [process_feedback]
    cron_jobs = [
        cron(sweep_stale_feedback, minute=set(range(0, 60, 10)), run_at_startup=True),
    ]
    on_startup = worker_startup
    on_shutdown = worker_shutdown
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    max_jobs = 10
    # The pipeline stops retrying itself; the extra try leaves room for that final attempt.
    max_tries = _settings.feedback_max_attempts + 1
    job_timeout = int(_settings.oracle_timeout_seconds) + 30
    keep_result = 0
