"""
Shared utilities: vector math and identifier generation.
"""

from alertcluster.utils.identifiers import generate_cluster_id, hash_alert_ids
from alertcluster.utils.vectors import (
    InvalidInputError,
    average,
    cosine_distance,
    cosine_distance_matrix,
    cosine_similarity,
    weighted_average,
)

__all__ = [
    "InvalidInputError",
    "average",
    "cosine_distance",
    "cosine_distance_matrix",
    "cosine_similarity",
    "weighted_average",
    "generate_cluster_id",
    "hash_alert_ids",
]
