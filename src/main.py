# src/main.py — v1
"""CLI entry point for embedding runs, search, cache upkeep and imports.

Usage:
    docsemantic embed <scope>
    docsemantic regenerate <scope>
    docsemantic search <scope> <query> [--mode semantic|hybrid] [--limit N]
    docsemantic status [<scope>]
    docsemantic cache-health
    docsemantic cache-maintenance
    docsemantic import <file.json>

All commands operate on the JSON document store at DOCUMENT_STORE_PATH
unless --store is given.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from docsemantic.config.settings import ConfigurationError
from docsemantic.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        args.settings = _load_settings(args)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(args.settings, args.verbose)

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="docsemantic",
        description=f"docsemantic v{__version__}: semantic document search",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--store", type=Path, default=None,
        help="Document store JSON file (default: DOCUMENT_STORE_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- embed ---
    p_embed = subparsers.add_parser(
        "embed", help="Generate embeddings for documents that have none",
    )
    p_embed.add_argument("scope", help="Owner whose documents are processed")
    p_embed.set_defaults(func=_cmd_embed)

    # --- regenerate ---
    p_regen = subparsers.add_parser(
        "regenerate", help="Regenerate every embedding with the active provider",
    )
    p_regen.add_argument("scope", help="Owner whose documents are processed")
    p_regen.set_defaults(func=_cmd_regenerate)

    # --- search ---
    p_search = subparsers.add_parser("search", help="Search a scope's documents")
    p_search.add_argument("scope", help="Owner whose documents are searched")
    p_search.add_argument("query", help="Free-text query")
    p_search.add_argument(
        "--mode", choices=("semantic", "hybrid"), default="hybrid",
        help="Search mode (default: hybrid)",
    )
    p_search.add_argument(
        "--limit", type=int, default=None,
        help="Maximum results (default: SEARCH_DEFAULT_LIMIT)",
    )
    p_search.set_defaults(func=_cmd_search)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show provider status and embedding coverage",
    )
    p_status.add_argument("scope", nargs="?", default=None)
    p_status.set_defaults(func=_cmd_status)

    # --- cache-health ---
    p_health = subparsers.add_parser("cache-health", help="Check the cache backend")
    p_health.set_defaults(func=_cmd_cache_health)

    # --- cache-maintenance ---
    p_maint = subparsers.add_parser(
        "cache-maintenance",
        help="Run periodic cache eviction until interrupted",
    )
    p_maint.set_defaults(func=_cmd_cache_maintenance)

    # --- import ---
    p_import = subparsers.add_parser(
        "import", help="Merge documents from a JSON array file into the store",
    )
    p_import.add_argument("file", type=Path, help="JSON file with documents")
    p_import.set_defaults(func=_cmd_import)

    return parser


def _load_settings(args: argparse.Namespace):
    """Settings from .env and the environment, with --store applied."""
    from docsemantic.config.settings import load_settings

    overrides = {}
    if args.store is not None:
        overrides["document_store_path"] = args.store
    return load_settings(**overrides)


def _build_service(args: argparse.Namespace):
    """Create a SearchService for the configured (or --store) document file."""
    from docsemantic.api.facade import SearchService

    return SearchService.from_settings(args.settings)


def _cancel_on_signal(event: asyncio.Event) -> None:
    """Set ``event`` on SIGINT/SIGTERM so a pipeline stops between documents."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's event loop.
            pass


async def _run_pipeline(args: argparse.Namespace, regenerate: bool) -> int:
    service = _build_service(args)
    stop = asyncio.Event()
    _cancel_on_signal(stop)
    try:
        if regenerate:
            report = await service.force_regenerate_embeddings(args.scope, stop)
        else:
            report = await service.generate_missing_embeddings(args.scope, stop)
    finally:
        await service.close()

    print(f"\nEmbedding run ({report.mode.value}) for {report.scope}:")
    print(f"  Candidates:   {report.total_candidates}")
    print(f"  Succeeded:    {report.success_count}")
    print(f"  Failed:       {report.failure_count}")
    print(f"  Duration:     {report.duration_seconds:.1f}s")
    if report.aborted:
        print(f"  Aborted:      {report.abort_reason}")
    if report.cancelled:
        print("  Cancelled before completion")
    return 1 if report.aborted else 0


async def _cmd_embed(args: argparse.Namespace) -> int:
    """Fill embedding gaps for one scope."""
    return await _run_pipeline(args, regenerate=False)


async def _cmd_regenerate(args: argparse.Namespace) -> int:
    """Regenerate all embeddings for one scope."""
    return await _run_pipeline(args, regenerate=True)


async def _cmd_search(args: argparse.Namespace) -> int:
    """Run a search and print ranked results."""
    from docsemantic.search.semantic import SearchUnavailableError

    service = _build_service(args)
    try:
        results = await service.search(
            args.query, args.scope, mode=args.mode, limit=args.limit
        )
    except SearchUnavailableError as exc:
        logger.error("%s", exc)
        return 2
    finally:
        await service.close()

    if not results:
        print("No matching documents.")
        return 0
    for rank, hit in enumerate(results, start=1):
        print(
            f"{rank:3d}. {hit.score:.4f}  [{hit.search_type:8s}]  "
            f"#{hit.document_id} {hit.document.display_name}"
        )
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    """Print the provider table and, for a scope, embedding coverage."""
    service = _build_service(args)
    try:
        status = service.providers_status()
        print(
            f"\nProviders: {status.available_providers}/{status.total_providers} available"
        )
        for row in status.providers:
            flag = "yes" if row.available else "no"
            print(
                f"  {row.priority:3d}  {row.name:22s} {row.model:28s} "
                f"{row.dimensions:5d} dims  available: {flag}"
            )
        if args.scope:
            stats = await service.statistics(args.scope)
            print(f"\nScope {stats.scope}:")
            print(f"  Documents:        {stats.total_documents}")
            print(f"  With embeddings:  {stats.documents_with_embeddings}")
            print(f"  Coverage:         {stats.embedding_coverage:.1%}")
            print(f"  Active provider:  {stats.active_provider or 'None'}")
    finally:
        await service.close()
    return 0


async def _cmd_cache_health(args: argparse.Namespace) -> int:
    """Report cache backend health."""
    service = _build_service(args)
    try:
        health = await service.cache_health()
    finally:
        await service.close()
    print(f"Cache ({health.backend}): {health.status}")
    if health.detail:
        print(f"  {health.detail}")
    return 0 if health.is_up else 1


async def _cmd_import(args: argparse.Namespace) -> int:
    """Import documents from a JSON array file and invalidate cached results."""
    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    service = _build_service(args)
    try:
        imported = await service.import_documents(file_path.read_text(encoding="utf-8"))
    finally:
        await service.close()
    print(f"Imported {len(imported)} documents into {args.settings.document_store_path}")
    return 0


async def _cmd_cache_maintenance(args: argparse.Namespace) -> int:
    """Run periodic cache eviction until SIGINT/SIGTERM."""
    service = _build_service(args)
    stop = asyncio.Event()
    _cancel_on_signal(stop)
    try:
        if service.cache is None or not service.cache.enabled:
            print("Cache is disabled; nothing to maintain.")
            return 1
        print("Cache maintenance running; press Ctrl+C to stop.")
        await service.run_maintenance(stop)
    finally:
        await service.close()
    return 0


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage; output goes to stderr."""
    from docsemantic.logging.logger import setup_logging_from_settings

    root = setup_logging_from_settings(settings, stream=sys.stderr)
    if verbose:
        root.setLevel(logging.DEBUG)
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
