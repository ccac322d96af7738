"""
Vector math for embedding comparison.

Pure functions, no I/O. Vectors are plain lists of floats as returned by the
embedding provider.
"""
import math
from typing import Sequence


class DimensionMismatch(ValueError):
    """Raised when two vectors of different lengths are compared."""
    def __init__(self, len_a: int, len_b: int):
        self.len_a = len_a
        self.len_b = len_b
        super().__init__(f"Vectors must be of the same length (got {len_a} and {len_b})")


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine of the angle between two equal-length vectors.

    Returns 0.0 when either vector has zero norm. Raises DimensionMismatch
    instead of truncating or padding.
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatch(len(vec_a), len(vec_b))

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for a, b in zip(vec_a, vec_b):
        dot += a * b
        norm_a += a * a
        norm_b += b * b

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
