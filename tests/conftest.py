"""Shared test fixtures.

Tests run against a throwaway SQLite file through aiosqlite. The schema is
created from ``Base.metadata``; BigInteger primary keys are compiled as
INTEGER so SQLite autoincrements them.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from datetime import datetime, timezone
from itertools import count

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import BigInteger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles

from karmaledger.auth.jwt import create_access_token
from karmaledger.config import Settings
from karmaledger.container import KarmaServices, build_services
from karmaledger.database import close_db, get_engine, get_session_factory, init_db
from karmaledger.db.base import Base
from karmaledger.db.models import User
from karmaledger.errors import OracleError
from karmaledger.gamification.seed import seed_badges
from karmaledger.oracle.base import EventScore, EventSummary
from karmaledger.suggestions.locks import LocalUserLocks
from karmaledger.users.service import create_user


@compiles(BigInteger, "sqlite")
def _compile_bigint_as_integer(type_, compiler, **kw):
    return "INTEGER"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeOracle:
    """Scripted oracle. Fails the first ``fail_times`` calls of each kind."""

    def __init__(self) -> None:
        self.score = EventScore(intensity=5, feedback="Nice work")
        self.scores_by_action: dict[str, EventScore] = {}
        self.suggestions: list[str] = ["Call an old friend", "Volunteer for an hour"]
        self.fail_times = 0
        self.score_calls: list[tuple[str, str | None]] = []
        self.suggestion_calls: list[tuple[int, list[EventSummary]]] = []

    def _maybe_fail(self) -> None:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise OracleError("oracle unavailable")

    async def score_event(self, action: str, reflection: str | None) -> EventScore:
        self.score_calls.append((action, reflection))
        self._maybe_fail()
        return self.scores_by_action.get(action, self.score)

    async def generate_suggestions(self, user_id: int, events: Sequence[EventSummary]) -> list[str]:
        self.suggestion_calls.append((user_id, list(events)))
        self._maybe_fail()
        return list(self.suggestions)


class RecordingQueue:
    """In-memory JobQueue. Refuses a job id it has already seen, like arq."""

    def __init__(self) -> None:
        self.jobs: list[tuple[str, tuple, str, str | None]] = []
        self._ids: set[str] = set()

    async def enqueue(self, function: str, *args: object, queue: str, job_id: str | None = None) -> bool:
        if job_id is not None:
            if job_id in self._ids:
                return False
            self._ids.add(job_id)
        self.jobs.append((function, args, queue, job_id))
        return True

    def release(self, job_id: str) -> None:
        """Forget a job id, as arq does once a job finishes with keep_result=0."""
        self._ids.discard(job_id)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'karma.db'}",
        log_format="console",
        oracle_timeout_seconds=2.0,
        feedback_max_attempts=3,
        suggestion_max_attempts=3,
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema with the badge catalog seeded."""
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = get_session_factory()
    async with factory() as db:
        await seed_badges(db)
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def services(settings, session_factory, queue, oracle) -> KarmaServices:
    return build_services(settings, session_factory, queue, oracle, locks=LocalUserLocks())


_usernames = count(1)


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users."""

    async def _make(username: str | None = None, joined_at: datetime | None = None) -> User:
        name = username or f"user{next(_usernames)}"
        async with session_factory() as db:
            user = await create_user(db, name, f"{name}@example.com", joined_at=joined_at or datetime.now(timezone.utc))
            await db.commit()
        return user

    return _make


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username)}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers


@pytest_asyncio.fixture
async def client(services: KarmaServices) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client around the app with test services injected (lifespan not run)."""
    from karmaledger.main import create_app

    app = create_app()
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
