"""
Alert clustering service using DBSCAN over cosine distance.

Groups unbound alerts into density-based clusters so that analysts can
triage similar alerts in bulk. Alerts reachable from no core point are
reported as noise, never as singleton clusters.

Conventions:
- Neighbours: cosine distance (1 - similarity) <= eps
- Core point: neighbourhood size, counting the point itself, >= min_samples
- Input order: ascending (created_at, id), so membership is deterministic
- Center: member closest to the centroid of member embeddings

Performance:
- O(n^2) distance matrix, computed with numpy in a worker thread
- Tens of milliseconds at hundreds of alerts
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence

import numpy as np
from sklearn.cluster import DBSCAN

from alertcluster.clustering.keywords import FrequentTokenExtractor, KeywordExtractor
from alertcluster.models.alert import Alert
from alertcluster.models.clustering import AlertCluster, ClusteringResult, DBSCANParams
from alertcluster.observability.logging import OperationContext
from alertcluster.observability.metrics import track_clustering_run
from alertcluster.utils.identifiers import generate_cluster_id
from alertcluster.utils.vectors import (
    InvalidInputError,
    average,
    cosine_distance,
    cosine_distance_matrix,
)

logger = logging.getLogger(__name__)

NOISE_LABEL = -1


class AlertClusterer:
    """
    Cluster alerts by embedding similarity with DBSCAN.

    The clusterer holds no mutable state between runs: concurrent runs for
    different parameter sets do not contend.
    """

    def __init__(
        self,
        keyword_extractor: KeywordExtractor | None = None,
        keyword_limit: int = 5,
        max_alerts_warning: int = 5000,
    ):
        """
        Initialize alert clusterer.

        Args:
            keyword_extractor: Keyword heuristic (frequent tokens by default)
            keyword_limit: Maximum keywords per cluster
            max_alerts_warning: Log a warning above this many input alerts
        """
        if keyword_limit < 0:
            raise ValueError("keyword_limit must be >= 0")

        self.keyword_extractor = keyword_extractor or FrequentTokenExtractor()
        self.keyword_limit = keyword_limit
        self.max_alerts_warning = max_alerts_warning

    async def cluster_alerts(
        self,
        alerts: Sequence[Alert],
        params: DBSCANParams,
    ) -> ClusteringResult:
        """
        Partition alerts into DBSCAN clusters and noise.

        Args:
            alerts: Alerts to cluster (callers pass unbound alerts)
            params: DBSCAN parameters

        Returns:
            ClusteringResult with clusters sorted by size (descending) and
            noise alert IDs in input order. Every cluster has
            size >= params.min_samples.
        """
        candidates = sorted((a for a in alerts if a.has_embedding), key=Alert.sort_key)

        if not candidates:
            logger.debug("No embedded alerts to cluster")
            return ClusteringResult(parameters=params)

        if len(candidates) > self.max_alerts_warning:
            logger.warning(
                f"Clustering {len(candidates)} alerts exceeds "
                f"max_alerts_warning={self.max_alerts_warning} (O(n^2) pass)"
            )

        # Vectors of another dimension are not comparable with the first alert's.
        dimension = len(candidates[0].embedding)
        usable = [a for a in candidates if len(a.embedding) == dimension]
        noise_ids: set[str] = {a.id for a in candidates if len(a.embedding) != dimension}

        if noise_ids:
            logger.warning(
                f"{len(noise_ids)} alerts have embedding dimension != {dimension}, "
                f"reporting them as noise"
            )

        embeddings = np.asarray([a.embedding for a in usable], dtype=np.float64)

        with OperationContext(
            "dbscan",
            alerts=len(usable),
            eps=params.eps,
            min_samples=params.min_samples,
        ) as operation:
            labels = await asyncio.to_thread(self._run_dbscan, embeddings, params)

        members_by_label: dict[int, list[Alert]] = defaultdict(list)
        for alert, label in zip(usable, labels):
            if label == NOISE_LABEL:
                noise_ids.add(alert.id)
            else:
                members_by_label[int(label)].append(alert)

        clusters: list[AlertCluster] = []
        for label, members in members_by_label.items():
            # A border point claimed by an earlier cluster can leave a cluster
            # below min_samples; such groups are noise.
            if len(members) < params.min_samples:
                noise_ids.update(a.id for a in members)
                continue
            clusters.append(self._build_cluster(members))

        clusters.sort(key=lambda c: (-c.size, c.id))
        noise_alert_ids = [a.id for a in candidates if a.id in noise_ids]

        track_clustering_run(
            duration_seconds=operation.duration_seconds,
            input_size=len(candidates),
            cluster_count=len(clusters),
            noise_count=len(noise_alert_ids),
        )

        logger.info(
            f"Clustering complete: {len(clusters)} clusters, "
            f"{len(candidates) - len(noise_alert_ids)}/{len(candidates)} alerts clustered, "
            f"{len(noise_alert_ids)} noise "
            f"(eps={params.eps}, min_samples={params.min_samples})"
        )

        return ClusteringResult(
            clusters=clusters,
            noise_alert_ids=noise_alert_ids,
            parameters=params,
        )

    def find_center_alert(self, alerts: Sequence[Alert]) -> Alert:
        """
        Find the alert closest to the centroid of the group.

        Ties keep the first alert in the given order.

        Raises:
            InvalidInputError: If alerts is empty
        """
        if not alerts:
            raise InvalidInputError("no alerts provided")

        if len(alerts) == 1:
            return alerts[0]

        centroid = average([a.embedding for a in alerts])

        closest = alerts[0]
        min_distance = float("inf")
        for alert in alerts:
            distance = cosine_distance(centroid, alert.embedding)
            if distance < min_distance:
                min_distance = distance
                closest = alert

        return closest

    def extract_keywords(self, alerts: Sequence[Alert]) -> list[str]:
        """Representative keywords for a group of alerts."""
        return self.keyword_extractor.extract(alerts, self.keyword_limit)

    def _build_cluster(self, members: list[Alert]) -> AlertCluster:
        alert_ids = [a.id for a in members]
        center = self.find_center_alert(members)

        return AlertCluster(
            id=generate_cluster_id(alert_ids),
            center_alert_id=center.id,
            alert_ids=alert_ids,
            size=len(alert_ids),
            keywords=self.extract_keywords(members),
        )

    @staticmethod
    def _run_dbscan(embeddings: np.ndarray, params: DBSCANParams) -> np.ndarray:
        """
        Run DBSCAN on a precomputed cosine distance matrix.

        Returns:
            Label per row (-1 = noise)
        """
        distances = cosine_distance_matrix(embeddings)

        clusterer = DBSCAN(
            eps=params.eps,
            min_samples=params.min_samples,
            metric="precomputed",
        )
        return clusterer.fit_predict(distances)
