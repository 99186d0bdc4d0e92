"""
Pytest configuration and shared fixtures.

Provides:
- Alert factory with deterministic timestamps
- In-memory alert repository
- Clusterer, cache (with controllable clock) and query service
"""

from datetime import datetime

import pytest

from alertcluster.clustering.cache import ClusteringCache
from alertcluster.clustering.engine import AlertClusterer
from alertcluster.clustering.query import ClusterQueryService
from alertcluster.models.alert import Alert
from alertcluster.models.clustering import DBSCANParams
from alertcluster.storage.repository import InMemoryAlertRepository
from tests.factories import BASE_TIME, FakeClock, make_alert


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def phishing_alerts() -> list[Alert]:
    """Two near-identical phishing alerts and an unrelated malware alert."""
    return [
        make_alert(
            "alert-a",
            [1.0, 0.0, 0.0],
            minutes=0,
            title="Phishing email reported",
            data={"sender": "billing@evil.example", "rule": "phishing-domain"},
        ),
        make_alert(
            "alert-b",
            [0.99, 0.01, 0.0],
            minutes=1,
            title="Phishing email reported",
            data={"sender": "billing@evil.example", "rule": "phishing-domain"},
        ),
        make_alert(
            "alert-c",
            [0.0, 1.0, 0.0],
            minutes=2,
            title="Malware beacon detected",
            data={"host": "build-agent-7", "rule": "c2-beacon"},
        ),
    ]


@pytest.fixture
def tight_params() -> DBSCANParams:
    return DBSCANParams(eps=0.15, min_samples=2)


@pytest.fixture
def repository(phishing_alerts) -> InMemoryAlertRepository:
    return InMemoryAlertRepository(phishing_alerts)


@pytest.fixture
def clusterer() -> AlertClusterer:
    return AlertClusterer()


@pytest.fixture
def cache(fake_clock) -> ClusteringCache:
    return ClusteringCache(ttl_seconds=3600, cleanup_interval_seconds=600, clock=fake_clock)


@pytest.fixture
def query_service(repository, clusterer, cache, tight_params) -> ClusterQueryService:
    return ClusterQueryService(
        repository=repository,
        clusterer=clusterer,
        cache=cache,
        default_params=tight_params,
    )
