"""
Storage boundary for alerts.

The production repository lives outside this service; the in-memory
implementation backs local runs and tests.
"""

from alertcluster.storage.repository import (
    AlertNotFoundError,
    AlertRepository,
    InMemoryAlertRepository,
    RepositoryError,
)

__all__ = [
    "AlertNotFoundError",
    "AlertRepository",
    "InMemoryAlertRepository",
    "RepositoryError",
]
