"""Command-line interface for vectorizing and searching books.

Usage::

    python -m shelfmind.cli vectorize my-book --file ~/books/my-book.epub
    python -m shelfmind.cli status my-book
    python -m shelfmind.cli search my-book "who betrayed the captain" --mode hybrid -k 5
    python -m shelfmind.cli purge my-book --yes
    python -m shelfmind.cli documents

Results go to stdout; structlog output goes to stderr.  Heavy imports
(embedding backends, aiosqlite) are deferred until a command needs them
so ``--help`` stays fast.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from shelfmind.config.settings import Settings
from shelfmind.models.rag import VectorizationState, VectorizationStatus
from shelfmind.utils.errors import ShelfMindError


def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct the service graph shared with the web application."""
    from shelfmind.config.loader import load_config
    from shelfmind.main import build_components

    return build_components(app_settings, load_config(settings=app_settings))


def _print_status(status: VectorizationStatus) -> None:
    line = (
        f"  [{status.state.value:<9}] {status.processed_chunks}/{status.total_chunks} "
        f"({status.progress:.1f}%)"
    )
    if status.error:
        line += f"  {status.error}"
    print(line)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_vectorize(args: argparse.Namespace, components: dict[str, Any]) -> int:
    coordinator = components["coordinator"]
    if args.file:
        components["reader"].register(args.document_id, args.file)

    print(f"Vectorizing: {args.document_id}")
    coordinator.progress_tracker.register_listener(args.document_id, _print_status)
    try:
        status = await coordinator.run_vectorization(args.document_id)
    finally:
        coordinator.progress_tracker.unregister_listener(args.document_id, _print_status)

    if status.state == VectorizationState.COMPLETE:
        print(f"\nDone: {status.total_chunks} chunks embedded.")
        return 0
    print(f"\nVectorization ended in state '{status.state.value}'.", file=sys.stderr)
    return 1


async def _handle_status(args: argparse.Namespace, components: dict[str, Any]) -> int:
    status = await components["coordinator"].get_vectorization_status(args.document_id)
    if args.json:
        print(json.dumps(status.model_dump(mode="json"), indent=2))
        return 0
    print(f"Document:  {status.document_id}")
    print(f"State:     {status.state.value}")
    print(f"Chunks:    {status.processed_chunks}/{status.total_chunks} embedded")
    if status.error:
        print(f"Error:     {status.error}")
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    results = await components["retrieval_engine"].search(
        args.document_id,
        args.query,
        mode=args.mode,
        top_k=args.top_k,
        min_score=args.min_score,
    )
    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return 0

    if not results:
        print("No results.")
        return 0
    for rank, result in enumerate(results, start=1):
        title = result.chapter_title or f"Chapter {result.chapter_index + 1}"
        print(f"{rank}. [{result.score:.3f}] {title} (chunk {result.chunk_id})")
        for snippet in result.highlights or [result.content[:160]]:
            print(f"     {snippet}")
    return 0


async def _handle_purge(args: argparse.Namespace, components: dict[str, Any]) -> int:
    counts = await components["vector_store"].count(args.document_id)
    if counts.total == 0:
        print(f"No chunks stored for '{args.document_id}'. Nothing to purge.")
        return 0

    print(f"Found {counts.total} chunks for '{args.document_id}'")
    if not args.yes:
        confirm = input(f"  Delete all {counts.total} chunks? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    deleted = await components["coordinator"].delete_document(args.document_id)
    print(f"Deleted {deleted} chunks.")
    return 0


async def _handle_documents(args: argparse.Namespace, components: dict[str, Any]) -> int:
    store = components["vector_store"]
    documents = await store.list_documents()
    if not documents:
        print("No vectorized documents.")
        return 0
    for document_id in documents:
        counts = await store.count(document_id)
        print(f"{document_id:<40} {counts.with_embedding}/{counts.total} embedded")
    return 0


_HANDLERS = {
    "vectorize": _handle_vectorize,
    "status": _handle_status,
    "search": _handle_search,
    "purge": _handle_purge,
    "documents": _handle_documents,
}


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m shelfmind.cli",
        description="Vectorize books and search them by meaning or keywords.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    vec_parser = subparsers.add_parser("vectorize", help="Chunk and embed a document")
    vec_parser.add_argument("document_id", help="Document identifier")
    vec_parser.add_argument(
        "--file",
        help="EPUB or .txt file for the document (default: <library_dir>/<id>.epub|.txt)",
    )

    status_parser = subparsers.add_parser("status", help="Show vectorization status")
    status_parser.add_argument("document_id", help="Document identifier")
    status_parser.add_argument("--json", action="store_true", help="Print JSON")

    search_parser = subparsers.add_parser("search", help="Search a vectorized document")
    search_parser.add_argument("document_id", help="Document identifier")
    search_parser.add_argument("query", help="Natural-language query")
    search_parser.add_argument(
        "--mode",
        default="hybrid",
        help="semantic | keyword | hybrid (default: hybrid)",
    )
    search_parser.add_argument("--top-k", "-k", type=int, default=None, dest="top_k")
    search_parser.add_argument("--min-score", type=float, default=None, dest="min_score")
    search_parser.add_argument("--json", action="store_true", help="Print JSON")

    purge_parser = subparsers.add_parser("purge", help="Delete a document's stored chunks")
    purge_parser.add_argument("document_id", help="Document identifier")
    purge_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    subparsers.add_parser("documents", help="List vectorized documents")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    components = _build_components(app_settings)
    await components["vector_store"].initialize()
    try:
        return await _HANDLERS[args.command](args, components)
    finally:
        await components["coordinator"].shutdown()


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command, and return the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    from shelfmind.config.loader import load_settings
    from shelfmind.utils.logging import configure_logging

    try:
        app_settings = load_settings()
        configure_logging(
            log_level=app_settings.log_level,
            json_output=(app_settings.app_env == "production"),
        )
        return asyncio.run(_run(args, app_settings))
    except ShelfMindError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
