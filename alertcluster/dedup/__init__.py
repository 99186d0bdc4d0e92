"""Near-duplicate alert detection and thread routing."""

from alertcluster.dedup.matcher import (
    LOOKBACK_WINDOW,
    SIMILARITY_THRESHOLD,
    AlertMatchError,
    AlertThreadRouter,
    DuplicateMatcher,
    ThreadDecision,
    ThreadService,
)

__all__ = [
    "AlertMatchError",
    "AlertThreadRouter",
    "DuplicateMatcher",
    "LOOKBACK_WINDOW",
    "SIMILARITY_THRESHOLD",
    "ThreadDecision",
    "ThreadService",
]
