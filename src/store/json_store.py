# src/store/json_store.py — v1
"""JSON file-backed document store (used by the CLI).

The whole collection lives in one JSON file, rewritten atomically on
every save via a temp file and rename.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from docsemantic.core.models import Document
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.store.memory_store import InMemoryDocumentStore

logger = logging.getLogger(__name__)

_DOCUMENTS_ADAPTER = TypeAdapter(list[Document])


class JsonDocumentStore(InMemoryDocumentStore):
    """Document store persisted to a single JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        super().__init__(self._load())

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[Document]:
        if not self._path.exists():
            return []
        try:
            return _DOCUMENTS_ADAPTER.validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as e:
            raise DocumentStoreError(f"Cannot read document store {self._path}: {e}") from e

    def _after_write(self) -> None:
        docs = [d for _, d in sorted(self._documents.items())]
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_bytes(_DOCUMENTS_ADAPTER.dump_json(docs, indent=2))
            os.replace(tmp, self._path)
        except OSError as e:
            raise DocumentStoreError(f"Cannot write document store {self._path}: {e}") from e

    def import_documents(self, raw: str) -> int:
        """Merge documents from a JSON array string; returns the count imported.

        Writes directly to the file. ``SearchService.import_documents`` also
        invalidates cached results and is what the CLI uses.
        """
        docs = self._write(parse_documents(raw))
        logger.info("Imported %d documents into %s", len(docs), self._path)
        return len(docs)


def parse_documents(raw: str) -> list[Document]:
    """Validate a JSON array of documents.

    Raises:
        DocumentStoreError: If the text is not a valid document list.
    """
    try:
        return _DOCUMENTS_ADAPTER.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise DocumentStoreError(f"Invalid document import: {e}") from e
