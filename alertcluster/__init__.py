"""
Alert clustering - embedding-based similarity and density clustering for security alerts.

Decides whether a newly ingested alert duplicates an open, unbound alert
(so it can be merged into the existing discussion thread) and groups unbound
alerts into DBSCAN clusters for bulk triage.

Key Features:
    - Cosine similarity and weighted averaging over embeddings
    - Duplicate matching over a trailing 24-hour window
    - DBSCAN clustering with noise detection
    - TTL cache for clustering results with background cleanup
    - Filtering and pagination over cached clusters

Example:
    >>> from alertcluster import get_settings
    >>> settings = get_settings()
    >>> print(settings.clustering.default_eps)
"""

from alertcluster.config import get_settings

__all__ = ["get_settings"]
