"""Milestone signals and the in-process bus that delivers them.

Pipelines publish a ``MilestoneSignal`` when a user crosses a threshold;
subscribers (the badge engine) react. Subscribers are registered
explicitly, there is no global emitter.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class MilestoneType(str, Enum):
    FIRST_EVENT = "first_event"
    MILESTONE_10 = "milestone_10"
    MILESTONE_50 = "milestone_50"
    MILESTONE_100 = "milestone_100"
    FIRST_SUGGESTION = "first_suggestion"
    TOP10_RANKED = "top10_ranked"


# (total event count, signal) pairs checked after every scored event
EVENT_COUNT_MILESTONES: tuple[tuple[int, MilestoneType], ...] = (
    (1, MilestoneType.FIRST_EVENT),
    (10, MilestoneType.MILESTONE_10),
    (50, MilestoneType.MILESTONE_50),
    (100, MilestoneType.MILESTONE_100),
)


@dataclass(frozen=True)
class MilestoneSignal:
    type: MilestoneType
    user_id: int
    data: Mapping[str, Any] = field(default_factory=dict)


MilestoneHandler = Callable[[MilestoneSignal], Awaitable[None]]


def milestones_reached(event_count: int) -> list[MilestoneType]:
    """Event-count milestones a user with ``event_count`` events has reached."""
    return [m for threshold, m in EVENT_COUNT_MILESTONES if event_count >= threshold]


class MilestoneBus:
    """Publish/subscribe dispatcher for milestone signals."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[frozenset[MilestoneType] | None, MilestoneHandler]] = []

    def subscribe(self, handler: MilestoneHandler, types: Iterable[MilestoneType] | None = None) -> None:
        """Register a handler for the given types (all types when None)."""
        self._subscribers.append((frozenset(types) if types is not None else None, handler))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, signal: MilestoneSignal) -> None:
        """Deliver a signal to every matching subscriber.

        A failing subscriber is logged and skipped; it never fails the publisher.
        """
        for types, handler in list(self._subscribers):
            if types is not None and signal.type not in types:
                continue
            try:
                await handler(signal)
            except Exception:
                logger.exception("Milestone handler failed (type=%s, user=%s)", signal.type.value, signal.user_id)

    async def publish_many(self, signals: Iterable[MilestoneSignal]) -> None:
        for signal in signals:
            await self.publish(signal)
