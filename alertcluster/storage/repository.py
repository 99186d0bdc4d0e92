"""
Alert repository boundary.

The persistence layer is an external collaborator: the clustering engine
only depends on the AlertRepository protocol. InMemoryAlertRepository is a
thread-safe in-process implementation for local runs, batch jobs and tests.
"""

import logging
import threading
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from alertcluster.models.alert import Alert

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for alert repository errors."""

    pass


class AlertNotFoundError(RepositoryError):
    """Requested alert does not exist."""

    pass


class AlertRepository(Protocol):
    """Read access to alerts required by matching, clustering and browsing."""

    async def get_alert(self, alert_id: str) -> Alert:
        ...

    async def get_alerts_by_span(self, begin: datetime, end: datetime) -> list[Alert]:
        ...

    async def get_alerts_without_ticket(self, offset: int, limit: int) -> list[Alert]:
        ...

    async def batch_get_alerts(self, alert_ids: Sequence[str]) -> list[Alert]:
        ...

    async def put_alert(self, alert: Alert) -> None:
        ...


class InMemoryAlertRepository:
    """
    Process-local alert store.

    Ordering:
    - All list operations return alerts sorted by (created_at, id)

    Thread Safety:
    - Single lock around the backing dict
    """

    def __init__(self, alerts: Sequence[Alert] | None = None):
        self._alerts: dict[str, Alert] = {}
        self._lock = threading.Lock()

        for alert in alerts or []:
            self._alerts[alert.id] = alert

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def _sorted(self) -> list[Alert]:
        with self._lock:
            alerts = list(self._alerts.values())
        return sorted(alerts, key=Alert.sort_key)

    async def get_alert(self, alert_id: str) -> Alert:
        with self._lock:
            alert = self._alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(f"alert not found: {alert_id}")
        return alert

    async def get_alerts_by_span(self, begin: datetime, end: datetime) -> list[Alert]:
        """Alerts with begin <= created_at <= end."""
        return [a for a in self._sorted() if begin <= a.created_at <= end]

    async def get_alerts_without_ticket(self, offset: int, limit: int) -> list[Alert]:
        """
        Unbound alerts, paginated.

        Args:
            offset: Number of unbound alerts to skip
            limit: Maximum alerts to return (0 = no limit)
        """
        unbound = [a for a in self._sorted() if a.is_unbound]
        if limit > 0:
            return unbound[offset:offset + limit]
        return unbound[offset:]

    async def batch_get_alerts(self, alert_ids: Sequence[str]) -> list[Alert]:
        """Alerts for the given IDs; unknown IDs are skipped."""
        with self._lock:
            found = [self._alerts[i] for i in alert_ids if i in self._alerts]

        if len(found) != len(alert_ids):
            logger.debug(
                f"batch_get_alerts: {len(alert_ids) - len(found)} of "
                f"{len(alert_ids)} alerts not found"
            )
        return found

    async def put_alert(self, alert: Alert) -> None:
        with self._lock:
            self._alerts[alert.id] = alert
