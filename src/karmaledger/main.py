"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from karmaledger.config import get_settings
from karmaledger.container import build_services
from karmaledger.dashboard.router import router as dashboard_router
from karmaledger.database import close_db, get_session, get_session_factory, init_db
from karmaledger.gamification.seed import seed_badges
from karmaledger.health.router import router as health_router
from karmaledger.karma_events.router import router as karma_events_router
from karmaledger.middleware import setup_middleware
from karmaledger.oracle.gemini import GeminiOracle
from karmaledger.redis_client import close_redis, get_redis, init_redis
from karmaledger.workers.queues import ArqJobQueue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed badge definitions (idempotent)
    try:
        async for db in get_session():
            await seed_badges(db)
            break
    except Exception:
        logger.warning("Badge seeding failed (tables may not exist yet)", exc_info=True)

    redis = get_redis()
    oracle = GeminiOracle(settings)
    app.state.services = build_services(
        settings,
        get_session_factory(),
        ArqJobQueue(redis),
        oracle,
        redis=redis,
    )

    yield

    await oracle.aclose()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Karma Ledger API",
        description="Backend API for Karma Ledger: logged good deeds, AI feedback, weekly scores and badges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(karma_events_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
