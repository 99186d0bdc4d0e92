"""
Tests for near-duplicate alert matching and thread routing.
"""

import math
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from alertcluster.dedup.matcher import (
    LOOKBACK_WINDOW,
    SIMILARITY_THRESHOLD,
    AlertMatchError,
    AlertThreadRouter,
    DuplicateMatcher,
)
from alertcluster.models.alert import AlertThread
from alertcluster.storage.repository import InMemoryAlertRepository, RepositoryError
from tests.factories import BASE_TIME, make_alert


def vector_with_similarity(similarity: float) -> list[float]:
    """2-D unit vector whose cosine similarity to [1, 0] is `similarity`."""
    return [similarity, math.sqrt(1.0 - similarity**2)]


NOW = BASE_TIME + timedelta(hours=1)


class TestDuplicateMatcher:
    """Test suite for DuplicateMatcher."""

    def test_policy_constants(self):
        assert SIMILARITY_THRESHOLD == 0.99
        assert LOOKBACK_WINDOW == timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_match_above_threshold(self):
        existing = make_alert("old", vector_with_similarity(0.995), minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([existing, incoming]))

        match = await matcher.find_similar_alert(incoming, now=NOW)

        assert match is not None
        assert match.id == "old"

    @pytest.mark.asyncio
    async def test_no_match_below_threshold(self):
        existing = make_alert("old", vector_with_similarity(0.98), minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([existing, incoming]))

        assert await matcher.find_similar_alert(incoming, now=NOW) is None

    @pytest.mark.asyncio
    async def test_highest_similarity_wins(self):
        close = make_alert("close", vector_with_similarity(0.992), minutes=0)
        closer = make_alert("closer", vector_with_similarity(0.999), minutes=5)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([close, closer, incoming]))

        match = await matcher.find_similar_alert(incoming, now=NOW)

        assert match.id == "closer"

    @pytest.mark.asyncio
    async def test_tie_keeps_earliest(self):
        first = make_alert("first", [1.0, 0.0], minutes=0)
        second = make_alert("second", [2.0, 0.0], minutes=5)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([second, first, incoming]))

        match = await matcher.find_similar_alert(incoming, now=NOW)

        assert match.id == "first"

    @pytest.mark.asyncio
    async def test_bound_alerts_are_not_candidates(self):
        bound = make_alert("bound", [1.0, 0.0], minutes=0, ticket_id="TICKET-1")
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([bound, incoming]))

        assert await matcher.find_similar_alert(incoming, now=NOW) is None

    @pytest.mark.asyncio
    async def test_empty_ticket_id_counts_as_unbound(self):
        unbound = make_alert("unbound", [1.0, 0.0], minutes=0, ticket_id="")
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([unbound, incoming]))

        match = await matcher.find_similar_alert(incoming, now=NOW)

        assert match.id == "unbound"

    @pytest.mark.asyncio
    async def test_alert_never_matches_itself(self):
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([incoming]))

        assert await matcher.find_similar_alert(incoming, now=NOW) is None

    @pytest.mark.asyncio
    async def test_candidates_without_embedding_skipped(self):
        pending = make_alert("pending", [], minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(InMemoryAlertRepository([pending, incoming]))

        assert await matcher.find_similar_alert(incoming, now=NOW) is None

    @pytest.mark.asyncio
    async def test_incoming_without_embedding_never_matches(self):
        repository = AsyncMock()
        matcher = DuplicateMatcher(repository)

        result = await matcher.find_similar_alert(make_alert("new", []), now=NOW)

        assert result is None
        repository.get_alerts_by_span.assert_not_called()

    @pytest.mark.asyncio
    async def test_alerts_outside_window_ignored(self):
        stale = make_alert("stale", [1.0, 0.0], minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=0)
        matcher = DuplicateMatcher(InMemoryAlertRepository([stale, incoming]))

        later = BASE_TIME + LOOKBACK_WINDOW + timedelta(minutes=1)
        assert await matcher.find_similar_alert(incoming, now=later) is None

    @pytest.mark.asyncio
    async def test_window_uses_clock(self):
        existing = make_alert("old", [1.0, 0.0], minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        matcher = DuplicateMatcher(
            InMemoryAlertRepository([existing, incoming]),
            clock=lambda: NOW,
        )

        match = await matcher.find_similar_alert(incoming)

        assert match.id == "old"

    @pytest.mark.asyncio
    async def test_repository_failure_wrapped(self):
        repository = AsyncMock()
        repository.get_alerts_by_span.side_effect = RepositoryError("connection refused")
        matcher = DuplicateMatcher(repository)

        with pytest.raises(AlertMatchError, match="new") as exc_info:
            await matcher.find_similar_alert(make_alert("new", [1.0, 0.0]), now=NOW)

        assert isinstance(exc_info.value.__cause__, RepositoryError)


class TestAlertThreadRouter:
    """Test suite for AlertThreadRouter."""

    @pytest.fixture
    def thread_service(self):
        service = AsyncMock()
        service.post_alert.return_value = AlertThread(channel_id="C1", thread_id="new-thread")
        service.post_alert_to_thread.side_effect = lambda thread, alert: thread
        return service

    @pytest.mark.asyncio
    async def test_duplicate_posts_into_existing_thread(self, thread_service):
        thread = AlertThread(channel_id="C1", thread_id="1700000000.000100")
        existing = make_alert("old", [1.0, 0.0], minutes=0, slack_thread=thread)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        router = AlertThreadRouter(
            DuplicateMatcher(InMemoryAlertRepository([existing, incoming])),
            thread_service,
        )

        decision = await router.route(incoming, now=NOW)

        assert decision.merged
        assert decision.merged_into == "old"
        assert decision.thread == thread
        thread_service.post_alert_to_thread.assert_awaited_once_with(thread, incoming)
        thread_service.post_alert.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_alert_gets_new_thread(self, thread_service):
        existing = make_alert("old", [0.0, 1.0], minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        router = AlertThreadRouter(
            DuplicateMatcher(InMemoryAlertRepository([existing, incoming])),
            thread_service,
        )

        decision = await router.route(incoming, now=NOW)

        assert not decision.merged
        assert decision.thread.thread_id == "new-thread"
        thread_service.post_alert.assert_awaited_once_with(incoming)

    @pytest.mark.asyncio
    async def test_duplicate_without_thread_gets_new_thread(self, thread_service):
        existing = make_alert("old", [1.0, 0.0], minutes=0)
        incoming = make_alert("new", [1.0, 0.0], minutes=30)
        router = AlertThreadRouter(
            DuplicateMatcher(InMemoryAlertRepository([existing, incoming])),
            thread_service,
        )

        decision = await router.route(incoming, now=NOW)

        assert decision.merged_into is None
        thread_service.post_alert.assert_awaited_once_with(incoming)
