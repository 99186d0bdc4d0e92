"""
Keyword extraction for cluster summaries.

Keywords are a triage aid, not part of cluster membership, so extraction sits
behind a narrow protocol and can be swapped without touching the clustering
core.
"""

import re
from collections import Counter
from collections.abc import Iterator, Sequence
from typing import Any, Protocol

from alertcluster.models.alert import Alert

TOKEN_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_.:/\-]*[A-Za-z0-9]")

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has",
    "have", "in", "is", "it", "its", "of", "on", "or", "that", "the", "this",
    "to", "was", "were", "will", "with", "not", "but", "all", "any", "can",
    "true", "false", "null", "none", "http", "https", "www",
})


class KeywordExtractor(Protocol):
    """Produces representative terms for a group of alerts."""

    def extract(self, alerts: Sequence[Alert], limit: int) -> list[str]:
        ...


def _iter_text(value: Any) -> Iterator[str]:
    """Yield string leaves of a JSON-like payload (keys are skipped)."""
    if value is None or isinstance(value, (bool, int, float)):
        return
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_text(item)
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            yield from _iter_text(item)
    else:
        yield str(value)


class FrequentTokenExtractor:
    """
    Document-frequency keyword heuristic.

    Strategy:
    - Tokenize alert titles and string values of the payload
    - Count each token once per alert
    - Keep tokens shared by at least two members (any token for a single alert)
    - Rank by frequency, then alphabetically for stable output
    """

    def __init__(self, min_token_length: int = 3, stop_words: frozenset[str] = STOP_WORDS):
        self.min_token_length = min_token_length
        self.stop_words = stop_words

    def tokenize(self, alert: Alert) -> set[str]:
        texts = [alert.title, *_iter_text(alert.data)]

        tokens = set()
        for text in texts:
            for match in TOKEN_PATTERN.findall(text):
                token = match.lower()
                if len(token) >= self.min_token_length and token not in self.stop_words:
                    tokens.add(token)
        return tokens

    def extract(self, alerts: Sequence[Alert], limit: int) -> list[str]:
        if limit <= 0 or not alerts:
            return []

        document_frequency: Counter[str] = Counter()
        for alert in alerts:
            document_frequency.update(self.tokenize(alert))

        min_documents = 2 if len(alerts) > 1 else 1
        ranked = sorted(
            ((token, count) for token, count in document_frequency.items() if count >= min_documents),
            key=lambda item: (-item[1], item[0]),
        )
        return [token for token, _ in ranked[:limit]]
