"""
Vector similarity primitives for alert embeddings.

Provides:
- Cosine similarity / distance that tolerate unembedded alerts
- Weighted and plain averaging of embeddings
- Pairwise cosine distance matrix for clustering

Mismatched lengths and zero vectors are expected states (an alert whose
embedding has not been computed yet) and yield a similarity of 0 instead of
an error.
"""

from collections.abc import Sequence

import numpy as np


class InvalidInputError(ValueError):
    """Vector inputs that cannot be combined."""

    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1], or 0.0 if lengths differ or either norm is zero
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(vec_a, vec_b) / (norm_a * norm_b)
    return float(np.clip(similarity, -1.0, 1.0))


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine distance (1 - similarity), in [0, 2]."""
    return 1.0 - cosine_similarity(a, b)


def weighted_average(
    vectors: Sequence[Sequence[float]],
    weights: Sequence[float],
) -> list[float]:
    """
    Per-dimension weighted average of vectors.

    Args:
        vectors: Vectors of equal dimension (same embedding model)
        weights: One weight per vector

    Returns:
        sum(w_i * v_i) / sum(w_i) for each dimension

    Raises:
        InvalidInputError: If inputs are empty, lengths or dimensions differ,
            or the weights sum to zero
    """
    if len(vectors) == 0:
        raise InvalidInputError("vectors must not be empty")
    if len(vectors) != len(weights):
        raise InvalidInputError(
            f"vectors and weights length mismatch: {len(vectors)} != {len(weights)}"
        )

    dimension = len(vectors[0])
    if dimension == 0:
        raise InvalidInputError("vectors must have non-zero dimension")
    for i, vector in enumerate(vectors):
        if len(vector) != dimension:
            raise InvalidInputError(
                f"vector {i} has dimension {len(vector)}, expected {dimension}"
            )

    matrix = np.asarray(vectors, dtype=np.float64)
    weight_array = np.asarray(weights, dtype=np.float64)

    total_weight = float(weight_array.sum())
    if total_weight == 0:
        raise InvalidInputError("weights must not sum to zero")

    return (weight_array @ matrix / total_weight).tolist()


def average(vectors: Sequence[Sequence[float]]) -> list[float]:
    """Unweighted mean of equal-dimension vectors ([] for empty input)."""
    if len(vectors) == 0:
        return []
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()


def cosine_distance_matrix(embeddings: np.ndarray) -> np.ndarray:
    """
    Pairwise cosine distances for an N x D embedding matrix.

    Zero-norm rows are at distance 1.0 from every other row. The diagonal is
    always 0 so each point belongs to its own neighbourhood.

    Args:
        embeddings: N x D array

    Returns:
        N x N symmetric, non-negative distance matrix
    """
    norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
    safe_norms = np.where(norms == 0, 1.0, norms)
    normalized = embeddings / safe_norms

    similarity = np.clip(normalized @ normalized.T, -1.0, 1.0)
    distances = 1.0 - similarity

    zero_rows = norms[:, 0] == 0
    distances[zero_rows, :] = 1.0
    distances[:, zero_rows] = 1.0

    # Rounding can leave tiny negative values for near-identical vectors
    np.clip(distances, 0.0, 2.0, out=distances)
    np.fill_diagonal(distances, 0.0)
    return distances
