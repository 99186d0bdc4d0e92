"""
Near-duplicate detection for newly ingested alerts.

A new alert whose embedding is almost identical to a recent, still unbound
alert is treated as a repeat of it: ingestion posts the new alert into the
existing chat thread instead of opening a new one.

Policy (fixed, not per-call configurable):
- Lookback window: 24 hours before "now"
- Similarity threshold: cosine similarity >= 0.99
- Candidates: unbound alerts with an embedding, excluding the alert itself
- Winner: strictly highest similarity; ties keep the earliest candidate
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from alertcluster.models.alert import Alert, AlertThread
from alertcluster.observability.metrics import track_duplicate_check
from alertcluster.storage.repository import AlertRepository, RepositoryError
from alertcluster.utils.vectors import cosine_similarity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.99
LOOKBACK_WINDOW = timedelta(hours=24)


class AlertMatchError(Exception):
    """Duplicate lookup failed because a collaborator failed."""

    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DuplicateMatcher:
    """Finds the most similar recent unbound alert for an incoming alert."""

    def __init__(
        self,
        repository: AlertRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.clock = clock

    async def find_similar_alert(
        self,
        alert: Alert,
        now: Optional[datetime] = None,
    ) -> Optional[Alert]:
        """
        Find a recent unbound alert that the given alert duplicates.

        Args:
            alert: Newly ingested alert
            now: End of the lookback window (defaults to the clock)

        Returns:
            Best matching alert, or None if no candidate reaches the threshold
            (always None for an alert without an embedding)

        Raises:
            AlertMatchError: If the repository fails
        """
        if not alert.has_embedding:
            logger.debug(f"Alert {alert.id} has no embedding, skipping duplicate check")
            return None

        end = now or self.clock()
        begin = end - LOOKBACK_WINDOW

        try:
            recent = await self.repository.get_alerts_by_span(begin, end)
        except RepositoryError as e:
            raise AlertMatchError(
                f"failed to fetch alerts for duplicate check of {alert.id} "
                f"(span {begin.isoformat()} .. {end.isoformat()}): {e}"
            ) from e

        best_match: Optional[Alert] = None
        best_similarity = 0.0

        for candidate in sorted(recent, key=Alert.sort_key):
            if candidate.id == alert.id:
                continue
            if not candidate.is_unbound or not candidate.has_embedding:
                continue

            similarity = cosine_similarity(alert.embedding, candidate.embedding)
            if similarity >= SIMILARITY_THRESHOLD and similarity > best_similarity:
                best_similarity = similarity
                best_match = candidate

        if best_match is None:
            logger.debug(
                f"No duplicate for alert {alert.id} among {len(recent)} recent alerts"
            )
            return None

        logger.info(
            f"Alert {alert.id} duplicates {best_match.id} "
            f"(similarity: {best_similarity:.4f})"
        )
        return best_match


class ThreadService(Protocol):
    """Chat delivery of alerts (external collaborator)."""

    async def post_alert(self, alert: Alert) -> AlertThread:
        ...

    async def post_alert_to_thread(self, thread: AlertThread, alert: Alert) -> AlertThread:
        ...


@dataclass(frozen=True)
class ThreadDecision:
    """Where an ingested alert was posted."""

    thread: AlertThread
    merged_into: Optional[str] = None

    @property
    def merged(self) -> bool:
        return self.merged_into is not None


class AlertThreadRouter:
    """Posts an ingested alert into a duplicate's thread, or opens a new one."""

    def __init__(self, matcher: DuplicateMatcher, thread_service: ThreadService):
        self.matcher = matcher
        self.thread_service = thread_service

    async def route(self, alert: Alert, now: Optional[datetime] = None) -> ThreadDecision:
        similar = await self.matcher.find_similar_alert(alert, now=now)

        if similar is not None and similar.slack_thread is not None:
            thread = await self.thread_service.post_alert_to_thread(similar.slack_thread, alert)
            track_duplicate_check(merged=True)
            return ThreadDecision(thread=thread, merged_into=similar.id)

        if similar is not None:
            logger.warning(
                f"Duplicate {similar.id} of alert {alert.id} has no thread, posting new thread"
            )

        thread = await self.thread_service.post_alert(alert)
        track_duplicate_check(merged=False)
        return ThreadDecision(thread=thread)
