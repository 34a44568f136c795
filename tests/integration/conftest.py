# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

All backends are in-process: JSON document store in tmp_path, memory
cache backend, scripted embedding providers. Every test collected here
is marked ``integration``.
"""

from __future__ import annotations

import hashlib
import math
import re
from pathlib import Path

import pytest

from docsemantic.core.models import Document
from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.store.json_store import JsonDocumentStore


def pytest_collection_modifyitems(config, items):
    root = Path(__file__).parent
    for item in items:
        if root in item.path.parents:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def library() -> list[Document]:
    """A small mixed library across two owners."""
    return [
        Document(id=1, owner="alice", original_filename="voter_id_card.pdf",
                 description="Voter identity card", category="National ID"),
        Document(id=2, owner="alice", original_filename="aadhaar_front.jpg",
                 category="National ID", document_type="JPG"),
        Document(id=3, owner="alice", original_filename="resume_2024.docx",
                 description="Backend engineer resume"),
        Document(id=4, owner="alice", original_filename="lease_agreement.pdf",
                 description="Apartment lease", category="Housing"),
        Document(id=5, owner="bob", original_filename="voter_roll.csv"),
    ]


@pytest.fixture
def json_store(tmp_path, library) -> JsonDocumentStore:
    store = JsonDocumentStore(tmp_path / "documents.json")
    store.import_documents(
        "[" + ",".join(d.model_dump_json() for d in library) + "]"
    )
    return store


class BagOfWordsProvider(BaseEmbeddingProvider):
    """Deterministic embedder: each lowercased word is hashed into a bucket.

    Texts sharing words get a positive cosine similarity, so ranking
    behaves plausibly without a model.
    """

    _WORD_RE = re.compile(r"[a-z0-9]+")

    def __init__(self, name: str = "bow", dimensions: int = 256, priority: int = 1) -> None:
        super().__init__(priority=priority)
        self._name = name
        self._dims = dimensions
        self.call_count = 0

    def _text_to_vec(self, text: str) -> list[float]:
        vec = [0.0] * self._dims
        for word in self._WORD_RE.findall(text.lower()):
            digest = hashlib.sha256(word.encode()).digest()
            vec[int.from_bytes(digest[:4], "big") % self._dims] += 1.0
        norm = math.sqrt(sum(x * x for x in vec)) or 1.0
        return [x / norm for x in vec]

    async def embed(self, text: str) -> list[float]:
        self.call_count += 1
        return self._text_to_vec(text)

    def is_available(self) -> bool:
        return True

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def model_name(self) -> str:
        return f"{self._name}-hash"


@pytest.fixture
def bow_provider_cls() -> type[BagOfWordsProvider]:
    """The provider class, for tests that need several instances."""
    return BagOfWordsProvider


@pytest.fixture
def bow_provider() -> BagOfWordsProvider:
    return BagOfWordsProvider()
