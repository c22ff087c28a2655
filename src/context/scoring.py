"""Cosine similarity between embedding vectors."""

import logging
import math
from collections.abc import Sequence

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity of two vectors, in [-1, 1].

    Missing, empty, zero-magnitude or mismatched vectors score 0.0 instead of
    raising, so a message without a usable embedding is simply not relevant.
    """
    if not a or not b:
        return 0.0
    if len(a) != len(b):
        logger.debug("Vector length mismatch (%d vs %d), scoring 0", len(a), len(b))
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b, strict=True):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
