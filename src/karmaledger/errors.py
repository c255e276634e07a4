"""Domain exceptions shared by the request path and the background jobs."""

from __future__ import annotations


class KarmaError(Exception):
    """Base class for all karma ledger domain errors."""


class ValidationFailed(KarmaError, ValueError):
    """Malformed input rejected before anything is persisted or queued."""


class NotFound(KarmaError, LookupError):
    """A referenced user, event or suggestion does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class OracleError(KarmaError):
    """The AI oracle timed out, failed in transport, or returned a malformed response."""
