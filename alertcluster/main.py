"""
FastAPI application for the alert clustering service.

Provides REST API for:
- Browsing DBSCAN clusters of unbound alerts
- Listing the member alerts of a cluster
- Liveness and Prometheus metrics

The lifespan is the composition root: it wires the alert repository,
clusterer, result cache and query service, and owns the cache cleanup task.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from alertcluster.clustering.cache import ClusteringCache
from alertcluster.clustering.engine import AlertClusterer
from alertcluster.clustering.query import (
    ClusterNotFoundError,
    ClusterQueryError,
    ClusterQueryService,
)
from alertcluster.config import get_settings
from alertcluster.models.clustering import DBSCANParams
from alertcluster.observability.logging import configure_logging, get_logger
from alertcluster.observability.logging_middleware import (
    SlowRequestLogger,
    StructuredLoggingMiddleware,
)
from alertcluster.observability.metrics import generate_metrics
from alertcluster.routers import clusters_router
from alertcluster.storage.repository import AlertRepository, InMemoryAlertRepository

settings = get_settings()
configure_logging(
    log_level=settings.logging.level,
    json_output=settings.logging.json_output,
    colorized=settings.logging.colorized,
)
logger = get_logger(__name__)


class LivenessResponse(BaseModel):
    status: str = "alive"
    timestamp: float


def build_query_service(
    repository: AlertRepository,
    cache: ClusteringCache,
) -> ClusterQueryService:
    """Wire the clusterer and query service from settings."""
    clustering = get_settings().clustering

    clusterer = AlertClusterer(
        keyword_limit=clustering.keyword_limit,
        max_alerts_warning=clustering.max_alerts_per_run,
    )
    return ClusterQueryService(
        repository=repository,
        clusterer=clusterer,
        cache=cache,
        default_params=DBSCANParams(
            eps=clustering.default_eps,
            min_samples=clustering.default_min_samples,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown:
    - Build the clustering cache and start its cleanup task
    - Wire the query service onto app.state
    - Stop the cleanup task on shutdown
    """
    settings = get_settings()

    logger.info("=== Alert Clustering Service Starting ===")

    repository = app.state.repository
    if repository is None:
        logger.warning("No alert repository configured - using empty in-memory repository")
        repository = InMemoryAlertRepository()
        app.state.repository = repository

    cache = ClusteringCache(
        ttl_seconds=settings.clustering.cache_ttl_seconds,
        cleanup_interval_seconds=settings.clustering.cache_cleanup_interval_seconds,
    )
    app.state.cache = cache
    app.state.query_service = build_query_service(repository, cache)

    try:
        cache.start()
        logger.info(
            "Clustering cache ready",
            ttl_seconds=cache.ttl_seconds,
            cleanup_interval_seconds=cache.cleanup_interval_seconds,
        )

        logger.info("=== Service Ready ===")

        yield

    finally:
        logger.info("=== Shutting down ===")
        await cache.stop()
        logger.info("=== Shutdown complete ===")


def create_app(repository: Optional[AlertRepository] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        repository: Alert storage (an empty in-memory repository when omitted)
    """
    settings = get_settings()

    app = FastAPI(
        title="Alert Clustering API",
        description="Density-based clustering and near-duplicate detection for security alerts",
        version=settings.logging.service_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.repository = repository

    cors_origins = settings.cors.origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.methods_list,
        allow_headers=settings.cors.headers_list,
        max_age=settings.cors.max_age,
    )

    # Processed in reverse order of registration: StructuredLoggingMiddleware
    # is outermost so the slow request log carries the request context.
    app.add_middleware(
        SlowRequestLogger,
        warning_threshold_ms=settings.logging.slow_request_warning_ms,
        error_threshold_ms=settings.logging.slow_request_error_ms,
    )
    app.add_middleware(StructuredLoggingMiddleware)

    app.include_router(clusters_router)

    app.add_exception_handler(ClusterNotFoundError, cluster_not_found_handler)
    app.add_exception_handler(ClusterQueryError, cluster_query_error_handler)
    app.add_exception_handler(ValueError, validation_error_handler)

    app.add_api_route(
        "/health/liveness",
        liveness_probe,
        methods=["GET"],
        response_model=LivenessResponse,
        tags=["Health"],
    )
    app.add_api_route("/metrics", metrics, methods=["GET"], tags=["System"])

    return app


async def cluster_not_found_handler(request: Request, exc: ClusterNotFoundError):
    """Unknown or expired cluster id."""
    logger.info("Cluster not found", path=request.url.path, cluster_id=exc.cluster_id)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Cluster not found", "cluster_id": exc.cluster_id},
    )


async def cluster_query_error_handler(request: Request, exc: ClusterQueryError):
    """Handle alert storage failures during cluster queries."""
    logger.error(
        "Cluster query failed",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Clustering temporarily unavailable", "error": str(exc)},
    )


async def validation_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    logger.warning(f"Validation error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation failed", "error": str(exc)},
    )


async def liveness_probe() -> LivenessResponse:
    """
    Liveness probe.

    Performs no I/O; only fails if the process is dead.
    """
    return LivenessResponse(timestamp=time.time())


async def metrics():
    """Prometheus metrics in exposition format."""
    metrics_data, content_type = generate_metrics()
    return Response(content=metrics_data, media_type=content_type)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("alertcluster.main:app", **settings.service.uvicorn_options())
