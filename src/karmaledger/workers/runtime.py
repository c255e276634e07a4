"""Shared startup/shutdown for the arq worker processes."""

from __future__ import annotations

import logging

from karmaledger.config import get_settings
from karmaledger.container import KarmaServices, build_services
from karmaledger.database import close_db, get_session_factory, init_db
from karmaledger.middleware.logging import setup_logging
from karmaledger.oracle.gemini import GeminiOracle
from karmaledger.suggestions.locks import RedisUserLocks
from karmaledger.workers.queues import ArqJobQueue

logger = logging.getLogger(__name__)


async def worker_startup(ctx: dict) -> None:
    """Initialize DB connections and build the pipelines on worker startup.

    arq puts its own ``ArqRedis`` pool in ``ctx["redis"]``; it is reused for
    enqueueing retries, badge notifications and per-user locks.
    """
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    redis = ctx["redis"]
    ctx["oracle"] = oracle = GeminiOracle(settings)
    ctx["services"] = build_services(
        settings,
        get_session_factory(),
        ArqJobQueue(redis),
        oracle,
        redis=redis,
        locks=RedisUserLocks(redis, timeout=settings.suggestion_lock_timeout_seconds),
    )
    logger.info("Karma worker started")


async def worker_shutdown(ctx: dict) -> None:
    """Clean up on worker shutdown."""
    oracle: GeminiOracle | None = ctx.get("oracle")
    if oracle is not None:
        await oracle.aclose()
    await close_db()
    logger.info("Karma worker shut down")


def get_services(ctx: dict) -> KarmaServices:
    services = ctx.get("services")
    if services is None:
        msg = "Worker services not initialized. worker_startup has not run."
        raise RuntimeError(msg)
    return services
