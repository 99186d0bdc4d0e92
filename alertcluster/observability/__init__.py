"""
Observability infrastructure for production monitoring.

Components:
- metrics.py: Prometheus metrics (counters, histograms, gauges)
- logging.py: Structured JSON logging with request context
- logging_middleware.py: Request logging for the HTTP surface
"""

from alertcluster.observability.metrics import (
    track_cache_eviction,
    track_cache_hit,
    track_cache_miss,
    track_clustering_run,
    track_duplicate_check,
    track_error,
    track_request,
)

__all__ = [
    "track_request",
    "track_error",
    "track_clustering_run",
    "track_cache_hit",
    "track_cache_miss",
    "track_cache_eviction",
    "track_duplicate_check",
]
