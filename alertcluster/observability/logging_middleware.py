"""
FastAPI middleware for structured logging and request metrics.

Automatically:
- Generates request_id for each request
- Extracts trace_id from X-Trace-ID header (distributed tracing)
- Logs request/response with latency
- Records Prometheus request metrics
- Propagates context to all log calls
"""

import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from alertcluster.observability.logging import RequestContext, get_logger
from alertcluster.observability.metrics import track_error, track_request

logger = get_logger(__name__)

EXCLUDED_PATHS = {
    "/health/liveness",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
}


def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path for metric cardinality.

    Examples:
        /api/v1/clusters/swift-eagle-1a2b3c4d/alerts -> /api/v1/clusters/{cluster_id}/alerts
        /api/v1/clusters -> /api/v1/clusters (unchanged)
    """
    return re.sub(r"/clusters/[^/]+/alerts", "/clusters/{cluster_id}/alerts", path)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for automatic request logging with structured context.

    Headers:
    - X-Request-ID: Client-provided request ID (optional, auto-generated if missing)
    - X-Trace-ID: Distributed trace ID (optional, auto-generated if missing)
    - Returns X-Request-ID and X-Trace-ID in response headers
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:16]}"
        trace_id = request.headers.get("x-trace-id") or f"trace_{uuid.uuid4().hex[:16]}"

        endpoint = normalize_endpoint(request.url.path)
        should_log = request.url.path not in EXCLUDED_PATHS

        with RequestContext(request_id=request_id, trace_id=trace_id):
            start_time = time.perf_counter()

            if should_log:
                logger.info(
                    "HTTP request started",
                    method=request.method,
                    path=request.url.path,
                    query_params=str(request.query_params) if request.query_params else None,
                )

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_seconds = time.perf_counter() - start_time

                logger.error(
                    "HTTP request failed",
                    method=request.method,
                    path=request.url.path,
                    latency_ms=round(duration_seconds * 1000, 2),
                    exception_type=type(exc).__name__,
                    exc_info=True,
                )
                track_error(error_type=type(exc).__name__, endpoint=endpoint)
                track_request(request.method, endpoint, 500, duration_seconds)

                # Re-raise for FastAPI exception handlers
                raise

            duration_seconds = time.perf_counter() - start_time
            track_request(request.method, endpoint, response.status_code, duration_seconds)

            if should_log:
                logger.info(
                    "HTTP request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    latency_ms=round(duration_seconds * 1000, 2),
                )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Trace-ID"] = trace_id

            return response


class SlowRequestLogger(BaseHTTPMiddleware):
    """
    Middleware for logging slow requests.

    Cluster browsing on a cache miss runs a full clustering pass, so these
    thresholds are looser than for plain lookups.
    """

    def __init__(
        self,
        app: ASGIApp,
        warning_threshold_ms: float = 250.0,
        error_threshold_ms: float = 1000.0,
    ):
        super().__init__(app)
        self.warning_threshold_ms = warning_threshold_ms
        self.error_threshold_ms = error_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        latency_ms = (time.perf_counter() - start_time) * 1000

        if latency_ms > self.error_threshold_ms:
            logger.error(
                "Slow request detected (exceeds error threshold)",
                method=request.method,
                path=request.url.path,
                latency_ms=round(latency_ms, 2),
                threshold_ms=self.error_threshold_ms,
                status_code=response.status_code,
            )
        elif latency_ms > self.warning_threshold_ms:
            logger.warning(
                "Slow request detected (exceeds warning threshold)",
                method=request.method,
                path=request.url.path,
                latency_ms=round(latency_ms, 2),
                threshold_ms=self.warning_threshold_ms,
                status_code=response.status_code,
            )

        return response
