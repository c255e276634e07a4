"""Job queue handle shared by the request path and the pipelines.

Two named arq queues carry small payloads: ``karma_feedback`` takes an
event id, ``karma_suggestion`` takes a user id and week number.
"""

from __future__ import annotations

import logging
from typing import Protocol

from arq.connections import ArqRedis

logger = logging.getLogger(__name__)

FEEDBACK_QUEUE = "karma_feedback"
SUGGESTION_QUEUE = "karma_suggestion"

PROCESS_FEEDBACK = "process_feedback"
PROCESS_SUGGESTIONS = "process_suggestions"


def feedback_job_id(event_id: int) -> str:
    return f"feedback:{event_id}"


def suggestion_job_id(user_id: int) -> str:
    return f"suggestions:{user_id}"


class JobQueue(Protocol):
    async def enqueue(self, function: str, *args: object, queue: str, job_id: str | None = None) -> bool:
        """Queue a job. Returns False when a job with the same id is already queued or running."""
        ...


class ArqJobQueue:
    """JobQueue backed by an arq Redis pool."""

    def __init__(self, redis: ArqRedis) -> None:
        self.redis = redis

    async def enqueue(self, function: str, *args: object, queue: str, job_id: str | None = None) -> bool:
        job = await self.redis.enqueue_job(function, *args, _queue_name=queue, _job_id=job_id)
        if job is None:
            logger.info("Job %s already queued on %s, skipping", job_id, queue)
            return False
        logger.debug("Enqueued %s%s on %s (job=%s)", function, args, queue, job.job_id)
        return True
