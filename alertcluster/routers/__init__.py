"""
API routers for the alert clustering service.

Routers:
- clusters: Cluster browsing
"""

from alertcluster.routers.clusters import router as clusters_router

__all__ = ["clusters_router"]
