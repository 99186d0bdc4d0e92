"""
Cluster browsing API endpoints.

Read-only views over clusters of unbound alerts:
- GET /api/v1/clusters: clusters for a DBSCAN parameter set
- GET /api/v1/clusters/{cluster_id}/alerts: member alerts of one cluster

Cluster ids are only valid while the summary that produced them is cached.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from alertcluster.clustering.query import ClusterQueryService
from alertcluster.models.alert import Alert
from alertcluster.models.clustering import ClusteringSummary, DBSCANParams, GetClustersParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/clusters", tags=["Clusters"])


class ClusterAlertsResponse(BaseModel):
    """Page of alerts belonging to a cluster."""

    cluster_id: str
    alerts: list[Alert] = Field(default_factory=list)
    total_count: int = Field(..., ge=0, description="Matching alerts before pagination")
    limit: int
    offset: int


def get_query_service(request: Request) -> ClusterQueryService:
    """Query service built by the application lifespan."""
    return request.app.state.query_service


def resolve_dbscan_params(
    eps: Optional[float],
    min_samples: Optional[int],
    defaults: DBSCANParams,
) -> Optional[DBSCANParams]:
    """
    Build DBSCAN parameters from optional query values.

    Returns None when both are omitted (service defaults apply); a single
    omitted value is taken from the defaults.
    """
    if eps is None and min_samples is None:
        return None
    return DBSCANParams(
        eps=defaults.eps if eps is None else eps,
        min_samples=defaults.min_samples if min_samples is None else min_samples,
    )


@router.get("", response_model=ClusteringSummary)
async def list_clusters(
    eps: Optional[float] = Query(default=None, gt=0.0, le=2.0),
    min_samples: Optional[int] = Query(default=None, ge=1),
    min_cluster_size: int = Query(default=0, ge=0),
    keyword: str = Query(default="", max_length=500),
    limit: int = Query(default=0, ge=0, le=1000, description="0 = no limit"),
    offset: int = Query(default=0, ge=0),
    service: ClusterQueryService = Depends(get_query_service),
) -> ClusteringSummary:
    """
    List clusters of unbound alerts.

    Returns:
        ClusteringSummary: Requested page of clusters, all noise alert ids
        and total_count after size/keyword filtering

    Raises:
        503: Alert storage unavailable
    """
    params = GetClustersParams(
        min_cluster_size=min_cluster_size,
        limit=limit,
        offset=offset,
        keyword=keyword,
        dbscan_params=resolve_dbscan_params(eps, min_samples, service.default_params),
    )
    return await service.get_alert_clusters(params)


@router.get("/{cluster_id}/alerts", response_model=ClusterAlertsResponse)
async def list_cluster_alerts(
    cluster_id: str,
    keyword: str = Query(default="", max_length=500),
    limit: int = Query(default=0, ge=0, le=1000, description="0 = no limit"),
    offset: int = Query(default=0, ge=0),
    service: ClusterQueryService = Depends(get_query_service),
) -> ClusterAlertsResponse:
    """
    List alerts of a cached cluster, ordered by alert id.

    Raises:
        404: Cluster not found (unknown id or expired summary)
        503: Alert storage unavailable
    """
    alerts, total_count = await service.get_cluster_alerts(
        cluster_id,
        keyword=keyword,
        limit=limit,
        offset=offset,
    )

    return ClusterAlertsResponse(
        cluster_id=cluster_id,
        alerts=alerts,
        total_count=total_count,
        limit=limit,
        offset=offset,
    )
