"""Explicit wiring of the pipelines and their collaborators.

The API process and each worker process build one ``KarmaServices`` at
startup; tests build one around in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from karmaledger.config import Settings
from karmaledger.gamification.badge_engine import BadgeEngine
from karmaledger.gamification.signals import MilestoneBus
from karmaledger.karma_events.pipeline import FeedbackPipeline
from karmaledger.oracle.base import KarmaOracle
from karmaledger.suggestions.locks import UserLocks
from karmaledger.suggestions.pipeline import SuggestionPipeline
from karmaledger.workers.queues import JobQueue


@dataclass
class KarmaServices:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    queue: JobQueue
    oracle: KarmaOracle
    bus: MilestoneBus
    badge_engine: BadgeEngine
    feedback: FeedbackPipeline
    suggestions: SuggestionPipeline


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    queue: JobQueue,
    oracle: KarmaOracle,
    *,
    redis: object = None,
    locks: UserLocks | None = None,
) -> KarmaServices:
    """Create the bus, subscribe the badge engine and construct both pipelines."""
    bus = MilestoneBus()
    badge_engine = BadgeEngine(session_factory, redis)
    badge_engine.register(bus)

    return KarmaServices(
        settings=settings,
        session_factory=session_factory,
        queue=queue,
        oracle=oracle,
        bus=bus,
        badge_engine=badge_engine,
        feedback=FeedbackPipeline(session_factory, queue, bus, oracle, settings),
        suggestions=SuggestionPipeline(session_factory, queue, bus, oracle, settings, locks=locks),
    )
