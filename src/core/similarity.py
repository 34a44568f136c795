# src/core/similarity.py — v2
"""Cosine similarity utilities on numpy.

Both helpers treat a zero-magnitude vector as having similarity 0 with
everything, instead of dividing by zero.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

_EPSILON = 1e-12


class DimensionMismatchError(ValueError):
    """Raised when two vectors of different lengths are compared."""

    def __init__(self, left: int, right: int) -> None:
        self.left = left
        self.right = right
        super().__init__(f"Vector dimensions differ: {left} != {right}")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, in [-1, 1].

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(va.shape[0], vb.shape[0])
    if va.size == 0:
        return 0.0

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a < _EPSILON or norm_b < _EPSILON:
        return 0.0

    value = float(np.dot(va, vb) / (norm_a * norm_b))
    # Rounding can push |value| a hair past 1.
    return max(-1.0, min(1.0, value))


def cosine_scores(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Args:
        query: 1D vector of length d.
        matrix: 2D array of shape (n, d).

    Returns:
        Array of shape (n,). Rows (or a query) with zero magnitude score 0.
    """
    q = np.asarray(query, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"Expected 2D array, got {matrix.ndim}D")
    if matrix.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)
    if matrix.shape[1] != q.shape[0]:
        raise DimensionMismatchError(q.shape[0], matrix.shape[1])

    q_norm = float(np.linalg.norm(q))
    if q_norm < _EPSILON:
        return np.zeros(matrix.shape[0], dtype=np.float64)

    row_norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(row_norms < _EPSILON, 0.0, dots / (row_norms * q_norm))
    return np.clip(scores, -1.0, 1.0)
