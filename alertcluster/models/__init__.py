"""
Data models for alerts and clustering results.
"""

from alertcluster.models.alert import Alert, AlertThread
from alertcluster.models.clustering import (
    AlertCluster,
    ClusteringResult,
    ClusteringSummary,
    DBSCANParams,
    GetClustersParams,
)

__all__ = [
    "Alert",
    "AlertThread",
    "AlertCluster",
    "ClusteringResult",
    "ClusteringSummary",
    "DBSCANParams",
    "GetClustersParams",
]
