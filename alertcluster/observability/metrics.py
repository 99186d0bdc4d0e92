"""
Prometheus metrics for the alert clustering service.

Metrics tracked:
- Request latency (histogram) and count (counter) per endpoint
- Clustering run latency (histogram) and last-run shape (gauges)
- Clustering cache hits, misses and evictions (counters)
- Duplicate matcher outcomes (counter)
- Error rates (counter) by error type

Integration:
- Exposed via /metrics endpoint (Prometheus scraping)
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# ============================================================================
# REQUEST METRICS
# ============================================================================

http_request_duration_seconds = Histogram(
    "alert_clustering_http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=["method", "endpoint", "status_code"],
    buckets=(
        0.005,  # 5ms
        0.010,  # 10ms
        0.025,  # 25ms
        0.050,  # 50ms
        0.100,  # 100ms
        0.250,  # 250ms
        0.500,  # 500ms
        1.000,  # 1s
        2.500,  # 2.5s
        5.000,  # 5s
    ),
)

http_requests_total = Counter(
    "alert_clustering_http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status_code"],
)

errors_total = Counter(
    "alert_clustering_errors_total",
    "Total errors by type",
    labelnames=["error_type", "endpoint"],
)

# ============================================================================
# CLUSTERING METRICS
# ============================================================================

# O(n^2) neighbour computation: tens of ms expected at hundreds of alerts
clustering_duration_seconds = Histogram(
    "alert_clustering_dbscan_duration_seconds",
    "DBSCAN clustering run latency",
    buckets=(
        0.001,  # 1ms
        0.005,  # 5ms
        0.010,  # 10ms
        0.025,  # 25ms
        0.050,  # 50ms
        0.100,  # 100ms
        0.500,  # 500ms
        1.000,  # 1s
        5.000,  # 5s
    ),
)

clustering_runs_total = Counter(
    "alert_clustering_dbscan_runs_total",
    "Total DBSCAN clustering runs",
)

clustering_last_cluster_count = Gauge(
    "alert_clustering_last_cluster_count",
    "Number of clusters produced by the most recent run",
)

clustering_last_noise_count = Gauge(
    "alert_clustering_last_noise_count",
    "Number of noise alerts produced by the most recent run",
)

clustering_last_input_size = Gauge(
    "alert_clustering_last_input_size",
    "Number of embedded alerts clustered by the most recent run",
)

# ============================================================================
# CACHE METRICS
# ============================================================================

cache_hits_total = Counter(
    "alert_clustering_cache_hits_total",
    "Total clustering cache hits",
)

cache_misses_total = Counter(
    "alert_clustering_cache_misses_total",
    "Total clustering cache misses (absent or expired)",
)

cache_evictions_total = Counter(
    "alert_clustering_cache_evictions_total",
    "Total expired clustering summaries removed",
    labelnames=["trigger"],  # read, sweep
)

cache_entries = Gauge(
    "alert_clustering_cache_entries",
    "Clustering summaries currently cached",
)

# ============================================================================
# DUPLICATE MATCHER METRICS
# ============================================================================

duplicate_checks_total = Counter(
    "alert_clustering_duplicate_checks_total",
    "Duplicate checks performed on ingested alerts",
    labelnames=["outcome"],  # merged, new_thread
)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def track_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Track HTTP request metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: API endpoint path
        status_code: HTTP status code
        duration_seconds: Request duration in seconds
    """
    http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint,
        status_code=status_code,
    ).observe(duration_seconds)

    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status_code=status_code,
    ).inc()


def track_error(error_type: str, endpoint: str) -> None:
    """Track an error by type and endpoint."""
    errors_total.labels(error_type=error_type, endpoint=endpoint).inc()


def track_clustering_run(
    duration_seconds: float,
    input_size: int,
    cluster_count: int,
    noise_count: int,
) -> None:
    """
    Track a completed clustering run.

    Args:
        duration_seconds: Wall time of the DBSCAN pass
        input_size: Embedded alerts clustered
        cluster_count: Clusters produced
        noise_count: Alerts left as noise
    """
    clustering_duration_seconds.observe(duration_seconds)
    clustering_runs_total.inc()
    clustering_last_input_size.set(input_size)
    clustering_last_cluster_count.set(cluster_count)
    clustering_last_noise_count.set(noise_count)


def track_cache_hit() -> None:
    cache_hits_total.inc()


def track_cache_miss() -> None:
    cache_misses_total.inc()


def track_cache_eviction(trigger: str, count: int = 1) -> None:
    """Track expired entries removed by a read ("read") or the cleanup loop ("sweep")."""
    if count > 0:
        cache_evictions_total.labels(trigger=trigger).inc(count)


def set_cache_entries(count: int) -> None:
    cache_entries.set(count)


def track_duplicate_check(merged: bool) -> None:
    """Track duplicate matcher outcome for an ingested alert."""
    duplicate_checks_total.labels(
        outcome="merged" if merged else "new_thread",
    ).inc()


# ============================================================================
# METRICS ENDPOINT
# ============================================================================


def generate_metrics() -> tuple[bytes, str]:
    """
    Generate Prometheus metrics in exposition format (bytes).

    Returns:
        tuple: (metrics_bytes, content_type)
    """
    metrics_data = generate_latest(REGISTRY)
    return metrics_data, CONTENT_TYPE_LATEST
