"""AI oracle: event scoring and weekly suggestion generation."""

from karmaledger.oracle.base import (
    EventScore,
    EventSummary,
    KarmaOracle,
    SuggestionBatch,
    call_with_timeout,
)
from karmaledger.oracle.gemini import GeminiOracle

__all__ = [
    "EventScore",
    "EventSummary",
    "GeminiOracle",
    "KarmaOracle",
    "SuggestionBatch",
    "call_with_timeout",
]
