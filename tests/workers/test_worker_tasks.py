"""Tests for the arq task wrappers around the pipelines."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from arq import Retry

from karmaledger.workers import feedback_worker, suggestion_worker
from karmaledger.workers.queues import FEEDBACK_QUEUE, SUGGESTION_QUEUE
from karmaledger.workers.runtime import get_services


def _ctx(services, job_try: int = 1) -> dict:
    return {"services": services, "job_try": job_try}


class TestProcessFeedbackTask:
    @pytest.mark.asyncio
    async def test_scores_event(self, services, make_user):
        user = await make_user()
        event = await services.feedback.create_event(user.id, "Helped a neighbor")
        assert await feedback_worker.process_feedback(_ctx(services), event.id) == "scored"

    @pytest.mark.asyncio
    async def test_oracle_failure_raises_retry_with_linear_backoff(self, services, oracle, make_user):
        user = await make_user()
        oracle.fail_times = 5
        event = await services.feedback.create_event(user.id, "Helped a neighbor")

        with pytest.raises(Retry) as first:
            await feedback_worker.process_feedback(_ctx(services, job_try=1), event.id)
        with pytest.raises(Retry) as second:
            await feedback_worker.process_feedback(_ctx(services, job_try=2), event.id)

        assert first.value.defer_score == 10_000
        assert second.value.defer_score == 20_000
        assert await feedback_worker.process_feedback(_ctx(services, job_try=3), event.id) == "failed"

    @pytest.mark.asyncio
    async def test_missing_event(self, services):
        assert await feedback_worker.process_feedback(_ctx(services), 404) == "missing"

    @pytest.mark.asyncio
    async def test_crash_is_contained(self):
        async def explode(event_id: int):
            raise RuntimeError("db down")

        services = SimpleNamespace(feedback=SimpleNamespace(process_feedback=explode))
        assert await feedback_worker.process_feedback({"services": services}, 1) == "error"

    @pytest.mark.asyncio
    async def test_sweep_task(self, services):
        assert await feedback_worker.sweep_stale_feedback(_ctx(services)) == 0


class TestProcessSuggestionsTask:
    @pytest.mark.asyncio
    async def test_generates(self, services, make_user):
        user = await make_user()
        assert await suggestion_worker.process_suggestions(_ctx(services), user.id, 1) == "generated"

    @pytest.mark.asyncio
    async def test_retry_uses_job_try_as_attempt(self, services, oracle, make_user):
        user = await make_user()
        oracle.fail_times = 5

        with pytest.raises(Retry) as exc:
            await suggestion_worker.process_suggestions(_ctx(services, job_try=2), user.id, 1)
        assert exc.value.defer_score == 20_000
        assert await suggestion_worker.process_suggestions(_ctx(services, job_try=3), user.id, 1) == "failed"

    @pytest.mark.asyncio
    async def test_crash_is_contained(self):
        async def explode(user_id: int, week: int, attempt: int = 1):
            raise RuntimeError("lock timeout")

        services = SimpleNamespace(suggestions=SimpleNamespace(process=explode))
        assert await suggestion_worker.process_suggestions({"services": services}, 1, 1) == "error"


class TestWorkerSettings:
    def test_queues(self):
        assert feedback_worker.FeedbackWorkerSettings.queue_name == FEEDBACK_QUEUE
        assert suggestion_worker.SuggestionWorkerSettings.queue_name == SUGGESTION_QUEUE

    def test_max_tries_covers_final_attempt(self):
        assert feedback_worker.FeedbackWorkerSettings.max_tries == 4
        assert suggestion_worker.SuggestionWorkerSettings.max_tries == 4

    def test_services_required(self):
        with pytest.raises(RuntimeError):
            get_services({})
