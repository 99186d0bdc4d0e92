"""
Alert clustering: DBSCAN engine, summary cache and browsing queries.
"""

from alertcluster.clustering.cache import ClusteringCache
from alertcluster.clustering.engine import AlertClusterer
from alertcluster.clustering.keywords import FrequentTokenExtractor, KeywordExtractor
from alertcluster.clustering.query import (
    ClusterNotFoundError,
    ClusterQueryError,
    ClusterQueryService,
)

__all__ = [
    "AlertClusterer",
    "ClusteringCache",
    "ClusterNotFoundError",
    "ClusterQueryError",
    "ClusterQueryService",
    "FrequentTokenExtractor",
    "KeywordExtractor",
]
