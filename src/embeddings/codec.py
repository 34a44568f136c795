# src/embeddings/codec.py — v1
"""Persisted vector format and vector similarity.

Vectors are stored as a JSON array of numbers. Python serializes floats
with ``repr``, the shortest string that parses back to the same double,
so ``decode(encode(v)) == v`` bit for bit. The format carries no
dimensionality, so vectors from any provider fit.
"""

from __future__ import annotations

import json
import math
from typing import Sequence

from docsemantic.core.similarity import cosine_similarity

__all__ = ["VectorDecodeError", "decode", "encode", "is_valid", "similarity"]


class VectorDecodeError(ValueError):
    """Stored text is not a valid serialized vector."""


def encode(vector: Sequence[float]) -> str:
    """Serialize a vector for storage.

    Raises:
        ValueError: If the vector is empty or holds a non-finite component.
    """
    values = [float(x) for x in vector]
    if not values:
        raise ValueError("Cannot encode an empty vector")
    if not all(math.isfinite(x) for x in values):
        raise ValueError("Cannot encode a vector with NaN or infinite components")
    return json.dumps(values, separators=(",", ":"), allow_nan=False)


def decode(text: str | None) -> list[float]:
    """Parse a stored vector.

    Raises:
        VectorDecodeError: If the text is missing, not JSON, not a flat list
            of numbers, empty, or holds NaN or infinite components.
    """
    if not text:
        raise VectorDecodeError("No stored vector")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise VectorDecodeError(f"Stored vector is not valid JSON: {e}") from e
    if not isinstance(data, list) or not data:
        raise VectorDecodeError("Stored vector must be a non-empty JSON array")
    # bool is an int subclass; reject it explicitly.
    if any(isinstance(x, bool) or not isinstance(x, (int, float)) for x in data):
        raise VectorDecodeError("Stored vector must contain only numbers")
    try:
        values = [float(x) for x in data]
    except OverflowError as e:
        raise VectorDecodeError(f"Stored vector component out of range: {e}") from e
    # json.loads accepts NaN, Infinity and overflowing literals such as 1e400.
    if not all(math.isfinite(x) for x in values):
        raise VectorDecodeError("Stored vector contains NaN or infinite components")
    return values


def is_valid(text: str | None) -> bool:
    """True if ``text`` decodes to a vector."""
    try:
        decode(text)
    except VectorDecodeError:
        return False
    return True


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0 when either vector has zero magnitude."""
    return cosine_similarity(a, b)
