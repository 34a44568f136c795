# tests/unit/test_main.py — v1
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from docsemantic.api.facade import SearchService
from docsemantic.embeddings.errors import EmbeddingError
from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
from docsemantic.main import _build_parser, main
from docsemantic.store.json_store import JsonDocumentStore

_DOCUMENTS = [
    {"id": 1, "owner": "alice", "original_filename": "voter_id_card.pdf"},
    {"id": 2, "owner": "alice", "original_filename": "resume.docx"},
    {"id": 3, "owner": "bob", "original_filename": "voter_list.csv"},
]


@pytest.fixture
def import_file(tmp_path) -> Path:
    path = tmp_path / "import.json"
    path.write_text(json.dumps(_DOCUMENTS), encoding="utf-8")
    return path


@pytest.fixture
def store_path(tmp_path, import_file) -> Path:
    path = tmp_path / "store" / "documents.json"
    JsonDocumentStore(path).import_documents(import_file.read_text(encoding="utf-8"))
    return path


def _patch_orchestrator(provider):
    return patch(
        "docsemantic.embeddings.provider_factory.create_orchestrator",
        return_value=EmbeddingOrchestrator([provider], timeout_s=None),
    )


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_search_defaults(self):
        args = _build_parser().parse_args(["search", "alice", "voter card"])
        assert args.command == "search"
        assert args.scope == "alice"
        assert args.query == "voter card"
        assert args.mode == "hybrid"
        assert args.limit is None

    def test_search_options(self):
        args = _build_parser().parse_args(
            ["--store", "/tmp/d.json", "search", "alice", "q", "--mode", "semantic", "--limit", "3"]
        )
        assert args.store == Path("/tmp/d.json")
        assert args.mode == "semantic"
        assert args.limit == 3

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["search", "alice", "q", "--mode", "fuzzy"])

    def test_status_scope_optional(self):
        assert _build_parser().parse_args(["status"]).scope is None

    def test_import(self):
        args = _build_parser().parse_args(["import", "docs.json"])
        assert args.file == Path("docs.json")

    def test_cache_maintenance(self):
        args = _build_parser().parse_args(["cache-maintenance"])
        assert args.command == "cache-maintenance"


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestCommands:
    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_import(self, tmp_path, import_file, capsys):
        store = tmp_path / "out.json"
        assert main(["--store", str(store), "import", str(import_file)]) == 0
        assert "Imported 3 documents" in capsys.readouterr().out
        assert len(json.loads(store.read_text(encoding="utf-8"))) == 3

    def test_import_missing_file(self, tmp_path):
        assert main(["--store", str(tmp_path / "s.json"), "import", "nope.json"]) == 1

    def test_import_invalid_payload(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('[{"id": 1, "owner": "a", "embedding_generated": true}]', encoding="utf-8")
        store = tmp_path / "s.json"
        assert main(["--store", str(store), "import", str(bad)]) == 1
        assert not store.exists()

    def test_cache_maintenance_runs_until_stopped(self, store_path, capsys):
        with patch.object(SearchService, "run_maintenance", AsyncMock()) as run:
            assert main(["--store", str(store_path), "cache-maintenance"]) == 0
        run.assert_awaited_once()
        assert "Cache maintenance running" in capsys.readouterr().out

    def test_cache_maintenance_without_cache(self, store_path, monkeypatch, capsys):
        monkeypatch.setenv("CACHE_ENABLED", "false")
        assert main(["--store", str(store_path), "cache-maintenance"]) == 1
        assert "Cache is disabled" in capsys.readouterr().out

    def test_embed_then_search(self, make_provider, store_path, capsys):
        provider = make_provider("fake", vector=[0.3, 0.4, 0.5])
        with _patch_orchestrator(provider):
            assert main(["--store", str(store_path), "embed", "alice"]) == 0
            assert "Succeeded:    2" in capsys.readouterr().out

            assert main(
                ["--store", str(store_path), "search", "alice", "voter", "--limit", "5"]
            ) == 0
        out = capsys.readouterr().out
        assert "#1 voter_id_card.pdf" in out
        assert "hybrid" in out
        assert "voter_list.csv" not in out

        persisted = json.loads(store_path.read_text(encoding="utf-8"))
        flags = {d["id"]: d["embedding_generated"] for d in persisted}
        assert flags == {1: True, 2: True, 3: False}

    def test_embed_aborted_exit_code(self, make_provider, store_path, capsys):
        provider = make_provider(
            "fake", error=EmbeddingError("fake", "Invalid API key", status_code=401)
        )
        with _patch_orchestrator(provider):
            assert main(["--store", str(store_path), "embed", "alice"]) == 1
        assert "Aborted:" in capsys.readouterr().out

    def test_semantic_search_unavailable(self, make_provider, store_path):
        provider = make_provider(
            "fake", error=EmbeddingError("fake", "Too many requests", status_code=429)
        )
        with _patch_orchestrator(provider):
            code = main(["--store", str(store_path), "search", "alice", "q", "--mode", "semantic"])
        assert code == 2

    def test_search_no_results(self, make_provider, store_path, capsys):
        with _patch_orchestrator(make_provider("fake")):
            assert main(["--store", str(store_path), "search", "alice", "passport"]) == 0
        assert "No matching documents." in capsys.readouterr().out

    def test_status(self, make_provider, store_path, capsys):
        with _patch_orchestrator(make_provider("fake")):
            assert main(["--store", str(store_path), "status", "alice"]) == 0
        out = capsys.readouterr().out
        assert "Providers: 1/1 available" in out
        assert "Documents:        2" in out
        assert "Coverage:         0.0%" in out

    def test_cache_health(self, store_path, capsys):
        assert main(["--store", str(store_path), "cache-health"]) == 0
        assert "Cache (memory): UP" in capsys.readouterr().out

    def test_configuration_error(self, monkeypatch, capsys):
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        monkeypatch.delenv("CACHE_REDIS_URL", raising=False)
        assert main(["cache-health"]) == 1
        assert "CACHE_REDIS_URL" in capsys.readouterr().err

    def test_corrupt_store_is_fatal(self, tmp_path):
        store = tmp_path / "broken.json"
        store.write_text("{", encoding="utf-8")
        assert main(["--store", str(store), "status"]) == 1
