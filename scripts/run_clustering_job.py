#!/usr/bin/env python3
"""
Offline clustering job over an alert export.

Loads alerts from a JSON file (a list of alerts, or an object with an
"alerts" list), clusters the unbound ones with the same query path the API
uses and prints the summary as JSON on stdout.

Usage:
  python scripts/run_clustering_job.py alerts.json --eps 0.2 --min-samples 3

Notes:
- Alerts without embeddings are skipped.
- Logs go to stderr so stdout stays valid JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

# Add repo root to sys.path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


logger = logging.getLogger(__name__)


def load_alerts(path: Path):
    from alertcluster.models.alert import Alert

    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("alerts", [])

    return TypeAdapter(list[Alert]).validate_python(raw)


async def run_job(
    alerts_path: Path,
    eps: float | None,
    min_samples: int | None,
    min_cluster_size: int,
    keyword: str,
) -> int:
    from alertcluster.clustering.cache import ClusteringCache
    from alertcluster.clustering.engine import AlertClusterer
    from alertcluster.clustering.query import ClusterQueryService
    from alertcluster.config import get_settings
    from alertcluster.models.clustering import DBSCANParams, GetClustersParams
    from alertcluster.storage.repository import InMemoryAlertRepository

    settings = get_settings()

    try:
        alerts = load_alerts(alerts_path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to load alerts from {alerts_path}: {e}")
        return 1

    logger.info(f"Loaded {len(alerts)} alerts from {alerts_path}")

    defaults = DBSCANParams(
        eps=settings.clustering.default_eps,
        min_samples=settings.clustering.default_min_samples,
    )
    service = ClusterQueryService(
        repository=InMemoryAlertRepository(alerts),
        clusterer=AlertClusterer(
            keyword_limit=settings.clustering.keyword_limit,
            max_alerts_warning=settings.clustering.max_alerts_per_run,
        ),
        cache=ClusteringCache(
            ttl_seconds=settings.clustering.cache_ttl_seconds,
            cleanup_interval_seconds=settings.clustering.cache_cleanup_interval_seconds,
        ),
        default_params=defaults,
    )

    params = GetClustersParams(
        min_cluster_size=min_cluster_size,
        keyword=keyword,
        dbscan_params=DBSCANParams(
            eps=defaults.eps if eps is None else eps,
            min_samples=defaults.min_samples if min_samples is None else min_samples,
        ),
    )
    summary = await service.get_alert_clusters(params)

    logger.info(
        f"Clustering job finished: {summary.total_count} clusters, "
        f"{len(summary.noise_alert_ids)} noise alerts"
    )

    print(summary.model_dump_json(indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Cluster unbound alerts from a JSON export",
    )
    parser.add_argument(
        "alerts_file",
        type=Path,
        help="JSON file with alerts",
    )
    parser.add_argument(
        "--eps",
        type=float,
        default=None,
        help="Maximum cosine distance between neighbours (default: CLUSTERING_DEFAULT_EPS)",
    )
    parser.add_argument(
        "--min-samples",
        type=int,
        default=None,
        help="Neighbourhood size for a core point (default: CLUSTERING_DEFAULT_MIN_SAMPLES)",
    )
    parser.add_argument(
        "--min-cluster-size",
        type=int,
        default=0,
        help="Hide clusters smaller than this (default: 0)",
    )
    parser.add_argument(
        "--keyword",
        default="",
        help="Only show clusters matching this keyword",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run_job(
            alerts_path=args.alerts_file,
            eps=args.eps,
            min_samples=args.min_samples,
            min_cluster_size=args.min_cluster_size,
            keyword=args.keyword,
        )
    )
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
