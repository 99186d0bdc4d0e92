"""
Cluster browsing over cached clustering summaries.

Flow for cluster lists:
1. Resolve DBSCAN parameters (service defaults when omitted)
2. Serve the cached summary, or cluster all unbound alerts and cache it
3. Filter by minimum size and keyword, then paginate

Cluster detail requests resolve the cluster id through the cache and return
the member alerts, filtered and paginated the same way.
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Optional, TypeVar

from alertcluster.clustering.cache import ClusteringCache
from alertcluster.clustering.engine import AlertClusterer
from alertcluster.models.alert import Alert
from alertcluster.models.clustering import (
    AlertCluster,
    ClusteringSummary,
    DBSCANParams,
    GetClustersParams,
)
from alertcluster.storage.repository import (
    AlertNotFoundError,
    AlertRepository,
    RepositoryError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DBSCAN_PARAMS = DBSCANParams(eps=0.3, min_samples=2)


class ClusterNotFoundError(Exception):
    """Cluster id is not present in any live cached summary."""

    def __init__(self, cluster_id: str):
        self.cluster_id = cluster_id
        super().__init__(f"cluster not found: {cluster_id}")


class ClusterQueryError(Exception):
    """A collaborator failed while serving a cluster query."""

    pass


def paginate(items: Sequence[T], offset: int, limit: int) -> list[T]:
    """
    Slice a page out of items.

    An offset past the end yields an empty page; limit=0 means no limit.
    """
    if offset < 0 or limit < 0:
        raise ValueError("offset and limit must be >= 0")
    if offset >= len(items):
        return []
    if limit == 0:
        return list(items[offset:])
    return list(items[offset:offset + limit])


class ClusterQueryService:
    """
    Read-side service for browsing alert clusters.

    Cached summaries are shared between requests and never mutated; every
    call returns a new summary.
    """

    def __init__(
        self,
        repository: AlertRepository,
        clusterer: AlertClusterer,
        cache: ClusteringCache,
        default_params: Optional[DBSCANParams] = None,
    ):
        self.repository = repository
        self.clusterer = clusterer
        self.cache = cache
        self.default_params = default_params or DEFAULT_DBSCAN_PARAMS

    async def get_alert_clusters(self, params: GetClustersParams) -> ClusteringSummary:
        """
        Get clusters of unbound alerts.

        Args:
            params: DBSCAN parameters plus filtering and pagination

        Returns:
            ClusteringSummary whose clusters are the requested page and whose
            total_count is the number of clusters left after filtering

        Raises:
            ClusterQueryError: If the repository fails or a center alert is missing
        """
        dbscan_params = params.dbscan_params or self.default_params

        summary = self.cache.get(dbscan_params)
        if summary is None:
            summary = await self._compute_summary(dbscan_params)
            self.cache.set(dbscan_params, summary)
        else:
            logger.debug(f"Serving cached clustering summary for {dbscan_params.cache_key()}")

        clusters = [c for c in summary.clusters if c.size >= params.min_cluster_size]

        if params.keyword:
            clusters = await self._filter_clusters_by_keyword(clusters, params.keyword)

        total_count = len(clusters)

        return ClusteringSummary(
            clusters=paginate(clusters, params.offset, params.limit),
            noise_alert_ids=list(summary.noise_alert_ids),
            parameters=summary.parameters,
            computed_at=summary.computed_at,
            total_count=total_count,
        )

    async def get_cluster_alerts(
        self,
        cluster_id: str,
        keyword: str = "",
        limit: int = 0,
        offset: int = 0,
    ) -> tuple[list[Alert], int]:
        """
        Get member alerts of a cached cluster.

        Members are ordered by id so that pages are stable.

        Returns:
            (page of alerts, number of alerts matching the keyword)

        Raises:
            ClusterNotFoundError: If no live summary contains the cluster
            ClusterQueryError: If the repository fails
        """
        if limit < 0 or offset < 0:
            raise ValueError("offset and limit must be >= 0")

        found = self.cache.find_cluster(cluster_id)
        if found is None:
            raise ClusterNotFoundError(cluster_id)

        cluster, _ = found

        try:
            alerts = await self.repository.batch_get_alerts(cluster.alert_ids)
        except RepositoryError as e:
            raise ClusterQueryError(
                f"failed to load alerts for cluster {cluster_id} "
                f"({len(cluster.alert_ids)} members): {e}"
            ) from e

        alerts = sorted(alerts, key=lambda a: a.id)

        if keyword:
            needle = keyword.lower()
            alerts = [a for a in alerts if needle in a.serialized_data().lower()]

        return paginate(alerts, offset, limit), len(alerts)

    async def _compute_summary(self, dbscan_params: DBSCANParams) -> ClusteringSummary:
        try:
            alerts = await self.repository.get_alerts_without_ticket(0, 0)
        except RepositoryError as e:
            raise ClusterQueryError(
                f"failed to load unbound alerts for clustering "
                f"(eps={dbscan_params.eps}, min_samples={dbscan_params.min_samples}): {e}"
            ) from e

        embedded = [a for a in alerts if a.has_embedding]
        logger.info(
            f"Clustering {len(embedded)} unbound alerts "
            f"({len(alerts) - len(embedded)} without embeddings skipped)"
        )

        result = await self.clusterer.cluster_alerts(embedded, dbscan_params)

        return ClusteringSummary(
            clusters=result.clusters,
            noise_alert_ids=result.noise_alert_ids,
            parameters=result.parameters,
            computed_at=datetime.now(timezone.utc),
        )

    async def _filter_clusters_by_keyword(
        self,
        clusters: list[AlertCluster],
        keyword: str,
    ) -> list[AlertCluster]:
        """Keep clusters whose center alert payload or keywords contain keyword (case-insensitive)."""
        if not clusters:
            return []

        try:
            centers = await self.repository.batch_get_alerts(
                [c.center_alert_id for c in clusters]
            )
        except RepositoryError as e:
            raise ClusterQueryError(
                f"failed to load center alerts for keyword filter "
                f"({len(clusters)} clusters, keyword={keyword!r}): {e}"
            ) from e

        center_data = {a.id: a.serialized_data().lower() for a in centers}

        missing = sorted({c.center_alert_id for c in clusters} - center_data.keys())
        if missing:
            raise ClusterQueryError(
                f"center alerts not found for keyword filter "
                f"(keyword={keyword!r}): {', '.join(missing)}"
            ) from AlertNotFoundError(f"alerts not found: {', '.join(missing)}")

        needle = keyword.lower()

        matched = []
        for cluster in clusters:
            if needle in center_data[cluster.center_alert_id]:
                matched.append(cluster)
            elif any(needle in kw.lower() for kw in cluster.keywords):
                matched.append(cluster)

        return matched
