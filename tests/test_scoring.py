"""Tests for cosine similarity."""

import math

import pytest

from src.context.scoring import cosine_similarity


def test_identical_vectors_score_one() -> None:
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)


def test_orthogonal_vectors_score_zero() -> None:
    assert cosine_similarity([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == 0.0


def test_opposite_vectors_score_minus_one() -> None:
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_magnitude_does_not_matter() -> None:
    assert cosine_similarity([2.0, 0.0], [0.5, 0.0]) == pytest.approx(1.0)


def test_known_angle() -> None:
    expected = 0.8  # (1,0,0)·(0.8,0.6,0) with unit norms
    assert cosine_similarity([1.0, 0.0, 0.0], [0.8, 0.6, 0.0]) == pytest.approx(expected)


def test_near_duplicate_embedding() -> None:
    score = cosine_similarity([1.0, 0.0, 0.0], [0.98, 0.02, 0.0])
    assert score == pytest.approx(0.98 / math.hypot(0.98, 0.02))
    assert score > 0.99


@pytest.mark.parametrize(
    ("a", "b"),
    [
        (None, [1.0]),
        ([1.0], None),
        ([], [1.0]),
        ([0.0, 0.0], [1.0, 1.0]),
        ([1.0, 1.0], [0.0, 0.0]),
        ([1.0, 0.0], [1.0, 0.0, 0.0]),
    ],
)
def test_degenerate_inputs_score_zero(a, b) -> None:
    assert cosine_similarity(a, b) == 0.0


def test_accepts_tuples() -> None:
    assert cosine_similarity((1.0, 0.0), (1.0, 0.0)) == pytest.approx(1.0)
