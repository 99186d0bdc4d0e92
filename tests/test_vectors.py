"""
Tests for vector similarity primitives and cluster identifiers.
"""

import re

import numpy as np
import pytest

from alertcluster.utils.identifiers import generate_cluster_id, hash_alert_ids
from alertcluster.utils.vectors import (
    InvalidInputError,
    average,
    cosine_distance,
    cosine_distance_matrix,
    cosine_similarity,
    weighted_average,
)


class TestCosineSimilarity:
    """Test suite for cosine_similarity / cosine_distance."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_length_mismatch_returns_zero(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0

    def test_empty_returns_zero(self):
        assert cosine_similarity([], []) == 0.0

    def test_zero_vector_returns_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_distance_is_one_minus_similarity(self):
        a, b = [1.0, 0.0], [0.6, 0.8]
        assert cosine_distance(a, b) == pytest.approx(1.0 - cosine_similarity(a, b))


class TestWeightedAverage:
    """Test suite for weighted_average / average."""

    def test_equal_weights(self):
        result = weighted_average([[1.0, 2.0], [3.0, 4.0]], [1.0, 1.0])
        assert result == pytest.approx([2.0, 3.0])

    def test_unequal_weights(self):
        result = weighted_average([[1.0, 0.0], [0.0, 1.0]], [3.0, 1.0])
        assert result == pytest.approx([0.75, 0.25])

    def test_empty_raises(self):
        with pytest.raises(InvalidInputError):
            weighted_average([], [])

    def test_length_mismatch_raises(self):
        with pytest.raises(InvalidInputError, match="length mismatch"):
            weighted_average([[1.0], [2.0]], [1.0])

    def test_zero_dimension_raises(self):
        with pytest.raises(InvalidInputError, match="non-zero dimension"):
            weighted_average([[]], [1.0])

    def test_dimension_mismatch_raises(self):
        with pytest.raises(InvalidInputError, match="dimension"):
            weighted_average([[1.0, 2.0], [1.0]], [1.0, 1.0])

    def test_zero_weight_sum_raises(self):
        with pytest.raises(InvalidInputError, match="sum to zero"):
            weighted_average([[1.0], [2.0]], [1.0, -1.0])

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            weighted_average([], [])

    def test_average(self):
        assert average([[0.0, 2.0], [2.0, 4.0]]) == pytest.approx([1.0, 3.0])

    def test_average_empty(self):
        assert average([]) == []


class TestCosineDistanceMatrix:
    """Test suite for cosine_distance_matrix."""

    def test_matches_pairwise_distance(self):
        vectors = [[1.0, 0.0], [0.6, 0.8], [0.0, 1.0]]
        matrix = cosine_distance_matrix(np.asarray(vectors))

        for i, a in enumerate(vectors):
            for j, b in enumerate(vectors):
                expected = 0.0 if i == j else cosine_distance(a, b)
                assert matrix[i, j] == pytest.approx(expected)

    def test_zero_rows_are_far_from_everything(self):
        matrix = cosine_distance_matrix(np.asarray([[0.0, 0.0], [1.0, 0.0]]))

        assert matrix[0, 1] == 1.0
        assert matrix[1, 0] == 1.0
        assert matrix[0, 0] == 0.0

    def test_non_negative(self):
        rng = np.random.default_rng(7)
        base = rng.normal(size=8)
        embeddings = np.stack([base, base * 1.0000001, base * 3])

        assert (cosine_distance_matrix(embeddings) >= 0).all()


class TestClusterIdentifiers:
    """Test suite for deterministic cluster ids."""

    def test_format(self):
        cluster_id = generate_cluster_id(["alert-1", "alert-2"])
        assert re.fullmatch(r"[a-z]+-[a-z]+-[0-9a-f]{8}", cluster_id)

    def test_order_independent(self):
        assert generate_cluster_id(["b", "a", "c"]) == generate_cluster_id(["c", "b", "a"])

    def test_different_members_different_ids(self):
        assert generate_cluster_id(["a", "b"]) != generate_cluster_id(["a", "c"])

    def test_hash_is_sha256_hex(self):
        assert re.fullmatch(r"[0-9a-f]{64}", hash_alert_ids(["x"]))
