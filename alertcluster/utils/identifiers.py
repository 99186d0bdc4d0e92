"""
Cluster identifier generation.

Provides:
- Deterministic membership hashing (same members -> same hash)
- Human-readable cluster IDs ("swift-eagle-1a2b3c4d")
"""

import hashlib
import json
from collections.abc import Iterable

ADJECTIVES = (
    "swift", "brave", "bright", "clever", "gentle", "fierce", "quiet", "bold",
    "calm", "quick", "strong", "wise", "alert", "sharp", "agile", "keen",
    "vital", "smart", "fast", "noble", "proud", "steady", "fresh", "clear",
    "warm", "cool", "light", "deep", "soft", "hard", "wide", "tall",
)

NOUNS = (
    "eagle", "tiger", "wolf", "bear", "fox", "hawk", "lion", "deer",
    "whale", "shark", "horse", "bird", "fish", "cat", "dog", "owl",
    "ram", "elk", "bee", "ant", "frog", "duck", "goat", "pig",
    "cow", "hen", "rat", "bat", "fly", "bug", "oak", "pine",
)


def hash_alert_ids(alert_ids: Iterable[str]) -> str:
    """
    Generate deterministic hash of a set of alert IDs.

    Order-insensitive: IDs are sorted before hashing.

    Args:
        alert_ids: Member alert identifiers

    Returns:
        str: SHA-256 hash (hex digest, 64 chars)
    """
    normalized = json.dumps(sorted(alert_ids), separators=(",", ":"))

    hasher = hashlib.sha256()
    hasher.update(normalized.encode("utf-8"))

    return hasher.hexdigest()


def generate_cluster_id(alert_ids: Iterable[str]) -> str:
    """
    Generate a human-readable, membership-derived cluster ID.

    The adjective/noun pair keeps IDs easy to read out in triage; the hash
    suffix keeps them unique across parameter sets.

    Example:
        >>> generate_cluster_id(["alert-1", "alert-2"])
        "keen-owl-5f0c2a9e"  (format: adjective-noun-hash8)
    """
    digest = hash_alert_ids(alert_ids)
    value = int(digest[:8], 16)

    adjective = ADJECTIVES[value % len(ADJECTIVES)]
    noun = NOUNS[(value // len(ADJECTIVES)) % len(NOUNS)]

    return f"{adjective}-{noun}-{digest[:8]}"
