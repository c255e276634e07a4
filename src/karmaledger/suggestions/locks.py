"""Per-user locks that serialize suggestion regeneration."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol


class UserLocks(Protocol):
    def hold(self, user_id: int) -> AbstractAsyncContextManager[None]:
        """Async context manager held for the whole regeneration of one user."""
        ...


class LocalUserLocks:
    """In-process locks, one asyncio.Lock per user.

    A user's lock is dropped once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._holders: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[user_id] -= 1
            if not self._holders[user_id]:
                del self._holders[user_id]
                del self._locks[user_id]


class RedisUserLocks:
    """Redis locks, shared by every worker process."""

    def __init__(self, redis: object, timeout: float = 120.0, prefix: str = "lock:suggestions") -> None:
        self.redis = redis
        self.timeout = timeout
        self.prefix = prefix

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        lock = self.redis.lock(  # type: ignore[attr-defined]
            f"{self.prefix}:{user_id}",
            timeout=self.timeout,
            blocking_timeout=self.timeout,
        )
        async with lock:
            yield
