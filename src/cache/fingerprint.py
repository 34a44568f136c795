# src/cache/fingerprint.py — v1
"""Content hashing for immutable cache keys.

OCR results are keyed by the SHA-256 of the raw file bytes, AI
classifications by the SHA-256 of the whitespace-normalized text. Search
queries get a shorter hash of the exact text sent to the embedding
provider, so only surrounding whitespace is ignored.
"""

from __future__ import annotations

import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")


def file_hash(raw_bytes: bytes) -> str:
    """SHA-256 of raw file bytes."""
    return hashlib.sha256(raw_bytes).hexdigest()


def content_hash(text: str) -> str:
    """SHA-256 of text with whitespace runs collapsed and ends stripped."""
    return hashlib.sha256(normalize_whitespace(text).encode("utf-8")).hexdigest()


def query_hash(query: str, length: int = 16) -> str:
    """Short hash of a search query; case and inner spacing are significant."""
    return hashlib.sha256(query.strip().encode("utf-8")).hexdigest()[:length]


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()
