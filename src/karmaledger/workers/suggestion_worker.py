"""Suggestion arq worker: generates weekly suggestion batches."""

from __future__ import annotations

import logging

from arq import Retry
from arq.connections import RedisSettings

from karmaledger.config import get_settings
from karmaledger.suggestions.pipeline import SuggestionOutcome
from karmaledger.workers.queues import SUGGESTION_QUEUE
from karmaledger.workers.runtime import get_services, worker_shutdown, worker_startup

logger = logging.getLogger(__name__)

_settings = get_settings()


async def process_suggestions(ctx: dict, user_id: int, week: int) -> str:
    """Generate and store suggestions for one user."""
    services = get_services(ctx)
    attempt = ctx.get("job_try", 1)
    try:
        outcome = await services.suggestions.process(user_id, week, attempt=attempt)
    except Exception:
        logger.exception("Suggestion job for user %s crashed", user_id)
        return "error"

    if outcome is SuggestionOutcome.RETRY:
        raise Retry(defer=attempt * services.settings.suggestion_retry_backoff_seconds)
    return outcome.value


class SuggestionWorkerSettings:
    """arq worker settings for the suggestion queue."""

    queue_name = SUGGESTION_QUEUE
    functions = [process_suggestions]
    on_startup = worker_startup
    on_shutdown = worker_shutdown
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    max_jobs = 4
    max_tries = _settings.suggestion_max_attempts + 1
    job_timeout = int(_settings.oracle_timeout_seconds + _settings.suggestion_lock_timeout_seconds)
    keep_result = 0
