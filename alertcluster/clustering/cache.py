"""
TTL cache for clustering summaries.

Clustering the full set of unbound alerts is the expensive part of cluster
browsing, so summaries are cached per parameter set and served until they
expire. The key is derived from the DBSCAN parameters only: alerts ingested
or bound after a summary was computed are not reflected until it expires.

Cluster detail lookups go through a cluster_id -> cache key index kept in
step with the entries, so resolving a cluster does not scan every summary.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from alertcluster.models.clustering import AlertCluster, ClusteringSummary, DBSCANParams
from alertcluster.observability.metrics import (
    set_cache_entries,
    track_cache_eviction,
    track_cache_hit,
    track_cache_miss,
)

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    params: DBSCANParams
    summary: ClusteringSummary
    expires_at: float


class ClusteringCache:
    """
    Thread-safe TTL cache of clustering summaries keyed by DBSCAN parameters.

    A single lock guards entries and the cluster index; critical sections are
    dictionary operations only, never clustering work.

    Usage:
        cache = ClusteringCache(ttl_seconds=3600)
        cache.start()          # inside a running event loop
        ...
        await cache.stop()
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        cleanup_interval_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize clustering cache.

        Args:
            ttl_seconds: Lifetime of a cached summary
            cleanup_interval_seconds: Period of the background expiry sweep
            clock: Monotonic time source (injectable for tests)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be > 0")

        self.ttl_seconds = ttl_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._entries: dict[str, _CacheEntry] = {}
        self._cluster_index: dict[str, set[str]] = {}

        self._cleanup_task: Optional[asyncio.Task] = None

    def get(self, params: DBSCANParams) -> Optional[ClusteringSummary]:
        """
        Get the cached summary for a parameter set.

        Returns:
            Summary, or None if absent or expired (expired entries are removed)
        """
        key = params.cache_key()

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                track_cache_miss()
                return None

            if self._clock() >= entry.expires_at:
                self._remove_locked(key)
                track_cache_miss()
                track_cache_eviction("read")
                set_cache_entries(len(self._entries))
                return None

            track_cache_hit()
            return entry.summary

    def set(self, params: DBSCANParams, summary: ClusteringSummary) -> None:
        """Store a summary, replacing any existing entry for the same parameters."""
        key = params.cache_key()

        with self._lock:
            if key in self._entries:
                self._remove_locked(key)

            self._entries[key] = _CacheEntry(
                params=params,
                summary=summary,
                expires_at=self._clock() + self.ttl_seconds,
            )
            for cluster in summary.clusters:
                self._cluster_index.setdefault(cluster.id, set()).add(key)

            set_cache_entries(len(self._entries))

        logger.debug(
            f"Cached clustering summary for {key} "
            f"({len(summary.clusters)} clusters, ttl={self.ttl_seconds}s)"
        )

    def find_cluster(self, cluster_id: str) -> Optional[tuple[AlertCluster, DBSCANParams]]:
        """
        Resolve a cluster id against the live cached summaries.

        Returns:
            (cluster, parameters that produced it), or None if no unexpired
            summary contains the cluster
        """
        with self._lock:
            keys = self._cluster_index.get(cluster_id)
            if not keys:
                return None

            now = self._clock()
            for key in sorted(keys):
                entry = self._entries[key]
                if now >= entry.expires_at:
                    continue
                for cluster in entry.summary.clusters:
                    if cluster.id == cluster_id:
                        return cluster, entry.params

        return None

    def purge_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                self._remove_locked(key)
            set_cache_entries(len(self._entries))

        if expired:
            track_cache_eviction("sweep", len(expired))
            logger.info(f"Purged {len(expired)} expired clustering summaries")

        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._cluster_index.clear()
            set_cache_entries(0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def is_running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def start(self) -> None:
        """Start the background expiry sweep. Must be called from a running event loop."""
        if self.is_running:
            return

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(
            f"Clustering cache cleanup started "
            f"(interval={self.cleanup_interval_seconds}s, ttl={self.ttl_seconds}s)"
        )

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish. Safe to call twice."""
        task = self._cleanup_task
        self._cleanup_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        logger.info("Clustering cache cleanup stopped")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            try:
                self.purge_expired()
            except Exception as e:
                logger.error(f"Clustering cache sweep failed: {e}", exc_info=True)

    def _remove_locked(self, key: str) -> None:
        entry = self._entries.pop(key)
        for cluster in entry.summary.clusters:
            keys = self._cluster_index.get(cluster.id)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._cluster_index[cluster.id]
