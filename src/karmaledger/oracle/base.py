"""AI oracle interface consumed by the feedback and suggestion pipelines."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, TypeVar

from pydantic import BaseModel, Field, field_validator

from karmaledger.errors import OracleError

if TYPE_CHECKING:
    from karmaledger.db.models import KarmaEvent

T = TypeVar("T")


class EventScore(BaseModel):
    """Result of scoring one karma event."""

    intensity: int = Field(ge=-1, le=10)
    feedback: str = Field(min_length=1)


class SuggestionBatch(BaseModel):
    """Result of one weekly suggestion request. May be empty."""

    suggestions: list[str] = Field(default_factory=list)

    @field_validator("suggestions")
    @classmethod
    def _drop_blank(cls, value: list[str]) -> list[str]:
        return [s.strip() for s in value if s and s.strip()]


@dataclass(frozen=True)
class EventSummary:
    """Detached view of a karma event handed to the oracle."""

    action: str
    reflection: str | None
    intensity: int | None
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: KarmaEvent) -> EventSummary:
        return cls(
            action=event.action,
            reflection=event.reflection,
            intensity=event.intensity,
            occurred_at=event.occurred_at,
        )


class KarmaOracle(Protocol):
    """Scoring and text-generation capability backed by a generative model."""

    async def score_event(self, action: str, reflection: str | None) -> EventScore: ...

    async def generate_suggestions(self, user_id: int, events: Sequence[EventSummary]) -> list[str]: ...


async def call_with_timeout(call: Awaitable[T], timeout: float) -> T:
    """Await an oracle call, converting a timeout into OracleError."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise OracleError(f"oracle call timed out after {timeout:g}s") from exc
