"""Weekly leaderboard and per-week score integration tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from karmaledger.dashboard.service import karma_score_summary, weekly_karma_scores, weekly_leaderboard
from karmaledger.db.models import UserBadge
from karmaledger.errors import NotFound
from karmaledger.gamification.signals import MilestoneSignal, MilestoneType
from karmaledger.karma_events.service import apply_feedback, insert_event
from karmaledger.oracle.base import EventScore

# Wednesday
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)
THIS_WEEK = datetime(2026, 10, 13, 9, 0, tzinfo=timezone.utc)
LAST_WEEK = datetime(2026, 10, 8, 9, 0, tzinfo=timezone.utc)


async def add_event(db, user_id: int, intensity: int | None, occurred_at: datetime = THIS_WEEK) -> None:
    event = await insert_event(db, user_id, "Good deed", occurred_at=occurred_at)
    if intensity is not None:
        await apply_feedback(db, event.id, EventScore(intensity=intensity, feedback="ok"))
    await db.commit()


class TestWeeklyLeaderboard:
    @pytest.mark.asyncio
    async def test_ranks_by_normalized_average(self, db_session, make_user):
        a = await make_user("alice")
        b = await make_user("bob")
        c = await make_user("carol")
        await add_event(db_session, a.id, 10)
        await add_event(db_session, b.id, -1)
        await add_event(db_session, c.id, 10, occurred_at=LAST_WEEK)

        board = await weekly_leaderboard(db_session, now=NOW)

        assert [(e["username"], e["score"], e["rank"]) for e in board] == [("alice", 100, 1), ("bob", 0, 2)]
        assert c.id not in {e["user_id"] for e in board}

    @pytest.mark.asyncio
    async def test_unscored_events_do_not_count(self, db_session, make_user):
        user = await make_user()
        pending_only = await make_user()
        await add_event(db_session, user.id, 4)
        await add_event(db_session, user.id, 6)
        await add_event(db_session, user.id, None)
        await add_event(db_session, pending_only.id, None)

        board = await weekly_leaderboard(db_session, now=NOW)

        assert len(board) == 1
        assert board[0]["event_count"] == 2
        assert board[0]["score"] == 55  # avg 5 -> 6/11

    @pytest.mark.asyncio
    async def test_at_most_ten_entries(self, db_session, make_user):
        for i in range(12):
            user = await make_user()
            await add_event(db_session, user.id, i % 11 - 1)

        board = await weekly_leaderboard(db_session, now=NOW)

        assert len(board) == 10
        assert [e["rank"] for e in board] == list(range(1, 11))
        scores = [e["score"] for e in board]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_ties_broken_by_user_id(self, db_session, make_user):
        first = await make_user()
        second = await make_user()
        await add_event(db_session, second.id, 7)
        await add_event(db_session, first.id, 7)

        board = await weekly_leaderboard(db_session, now=NOW)
        assert [e["user_id"] for e in board] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_sunday_night_counts_toward_week(self, db_session, make_user):
        user = await make_user()
        await add_event(db_session, user.id, 9, occurred_at=datetime(2026, 10, 18, 23, 59, 59, tzinfo=timezone.utc))

        board = await weekly_leaderboard(db_session, now=NOW)
        assert [e["user_id"] for e in board] == [user.id]

    @pytest.mark.asyncio
    async def test_last_millisecond_of_sunday_counts_toward_week(self, db_session, make_user):
        user = await make_user()
        await add_event(db_session, user.id, 10, occurred_at=datetime(2026, 10, 18, 23, 59, 59, 999500, tzinfo=timezone.utc))
        await add_event(db_session, user.id, -1, occurred_at=datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc))

        board = await weekly_leaderboard(db_session, now=NOW)
        assert [(e["user_id"], e["event_count"]) for e in board] == [(user.id, 1)]

    @pytest.mark.asyncio
    async def test_empty_week(self, db_session):
        assert await weekly_leaderboard(db_session, now=NOW) == []


class TestTopTenBadge:
    @pytest.mark.asyncio
    async def test_signal_emitted_for_each_ranked_user(self, db_session, services, make_user):
        a = await make_user()
        b = await make_user()
        await add_event(db_session, a.id, 8)
        await add_event(db_session, b.id, 2)
        published: list[MilestoneSignal] = []

        async def record(signal: MilestoneSignal) -> None:
            published.append(signal)

        services.bus.subscribe(record, [MilestoneType.TOP10_RANKED])

        await weekly_leaderboard(db_session, services.bus, now=NOW)
        await weekly_leaderboard(db_session, services.bus, now=NOW)

        # Fires on every computation
        assert [(s.user_id, s.data["rank"]) for s in published] == [(a.id, 1), (b.id, 2)] * 2

        result = await db_session.execute(select(func.count(UserBadge.id)))
        assert result.scalar_one() == 2

    @pytest.mark.asyncio
    async def test_larger_board_only_rewards_top_ten(self, db_session, services, make_user):
        users = []
        for i in range(12):
            user = await make_user()
            users.append(user)
            await add_event(db_session, user.id, 10 - i)

        board = await weekly_leaderboard(db_session, services.bus, size=12, now=NOW)

        assert len(board) == 12
        result = await db_session.execute(select(UserBadge.user_id))
        assert set(result.scalars()) == {u.id for u in users[:10]}


class TestWeeklyKarmaScores:
    @pytest.mark.asyncio
    async def test_buckets_by_weeks_since_join(self, db_session, make_user):
        joined = datetime(2026, 9, 1, 8, 0, tzinfo=timezone.utc)
        user = await make_user(joined_at=joined)
        await add_event(db_session, user.id, 10, occurred_at=joined + timedelta(days=2))
        await add_event(db_session, user.id, -1, occurred_at=joined + timedelta(days=3))
        await add_event(db_session, user.id, None, occurred_at=joined + timedelta(days=4))
        await add_event(db_session, user.id, 10, occurred_at=joined + timedelta(days=10))

        scores = await weekly_karma_scores(db_session, user.id)

        assert scores == [{"week": 1, "score": "50%"}, {"week": 2, "score": "100%"}]

    @pytest.mark.asyncio
    async def test_weeks_without_events_are_omitted(self, db_session, make_user):
        joined = datetime(2026, 9, 1, 8, 0, tzinfo=timezone.utc)
        user = await make_user(joined_at=joined)
        await add_event(db_session, user.id, 4, occurred_at=joined + timedelta(days=1))
        await add_event(db_session, user.id, 4, occurred_at=joined + timedelta(days=30))

        scores = await weekly_karma_scores(db_session, user.id)
        assert [s["week"] for s in scores] == [1, 5]

    @pytest.mark.asyncio
    async def test_no_events(self, db_session, make_user):
        user = await make_user()
        assert await weekly_karma_scores(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFound):
            await weekly_karma_scores(db_session, 31337)


class TestScoreSummary:
    @pytest.mark.asyncio
    async def test_overall_percentage(self, db_session, make_user):
        user = await make_user()
        await add_event(db_session, user.id, 10)
        await add_event(db_session, user.id, -1)
        await add_event(db_session, user.id, None)

        assert await karma_score_summary(db_session, user.id) == {"total_percentage": "50%", "scored_events": 2}

    @pytest.mark.asyncio
    async def test_no_scored_events(self, db_session, make_user):
        user = await make_user()
        assert await karma_score_summary(db_session, user.id) == {"total_percentage": "0%", "scored_events": 0}
