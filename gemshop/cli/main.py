"""Command-line interface for gemshop.

Runs the same services as the HTTP API against the store named by
``DATABASE_URL``, without a server.  Ingestion here is synchronous: each
command waits for its files to finish and prints the outcome.

Usage::

    python -m gemshop.cli init-db
    python -m gemshop.cli ingest notes.md catalogue.csv
    python -m gemshop.cli ingest-dir ./docs --concurrency 2
    python -m gemshop.cli documents
    python -m gemshop.cli gems
    python -m gemshop.cli create-gem --name Sales --description "Answer pricing questions" \\
        --document-id 3f2c... --document-id 9ab1...
    python -m gemshop.cli ask --gem-id 7d0e... "What is the return policy?"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from gemshop.config.settings import Settings
from gemshop.models.rag import IngestionResult, IngestionStatus
from gemshop.utils.errors import GemShopError


def _print_result(result: IngestionResult) -> None:
    print(f"{result.filename}: {result.status.value}")
    if result.document_id:
        print(f"  Document ID:    {result.document_id}")
    print(f"  Chunks created: {result.chunks_created}")
    print(f"  Time:           {result.ingestion_time:.2f}s")
    if result.error:
        print(f"  Error:          {result.error}")


def _exit_code(results: list[IngestionResult]) -> int:
    return 1 if any(r.status == IngestionStatus.FAILED for r in results) else 0


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_init_db(args: argparse.Namespace, components: dict[str, Any]) -> int:
    print(f"Document store ready: {components['settings'].get_database_path()}")
    return 0


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = components["ingestion_service"]
    results: list[IngestionResult] = []
    for file_arg in args.files:
        path = Path(file_arg)
        result = await service.ingest_file(path, path.name)
        _print_result(result)
        results.append(result)
    return _exit_code(results)


async def _handle_ingest_dir(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = components["ingestion_service"]
    results = await service.ingest_directory(args.path, concurrency=args.concurrency)
    if not results:
        print(f"No supported files found in {args.path}")
        return 0
    for result in results:
        _print_result(result)
    completed = sum(1 for r in results if r.status == IngestionStatus.COMPLETED)
    print(f"\n{completed}/{len(results)} files ingested")
    return _exit_code(results)


async def _handle_documents(args: argparse.Namespace, components: dict[str, Any]) -> int:
    documents = await components["document_store"].list_documents()
    if not documents:
        print("No documents.")
        return 0
    for doc in documents:
        print(f"{doc.id}  {doc.source_type:<5} {doc.created_at:%Y-%m-%d %H:%M}  {doc.name}")
    return 0


async def _handle_gems(args: argparse.Namespace, components: dict[str, Any]) -> int:
    gems = await components["gem_service"].list_gems()
    if not gems:
        print("No Gems.")
        return 0
    for gem in gems:
        print(f"{gem.id}  {gem.name}: {gem.description}")
    return 0


async def _handle_create_gem(args: argparse.Namespace, components: dict[str, Any]) -> int:
    gem = await components["gem_service"].create_gem(
        name=args.name,
        description=args.description,
        document_ids=args.document_ids or [],
        rules=args.rules,
    )
    print(f"Created Gem {gem.id}")
    print(f"  System prompt: {gem.system_prompt}")
    return 0


async def _handle_ask(args: argparse.Namespace, components: dict[str, Any]) -> int:
    result = await components["chat_service"].answer(
        gem_id=args.gem_id,
        message=args.message,
        top_k=args.top_k,
    )
    print(result.response)
    if result.sources:
        print("\nSources:")
        for source in result.sources:
            print(f"  [{source.similarity:.3f}] {source.name} #{source.chunk_index}")
    return 0


_HANDLERS = {
    "init-db": _handle_init_db,
    "ingest": _handle_ingest,
    "ingest-dir": _handle_ingest_dir,
    "documents": _handle_documents,
    "gems": _handle_gems,
    "create-gem": _handle_create_gem,
    "ask": _handle_ask,
}


async def run_command(args: argparse.Namespace, app_settings: Settings) -> int:
    """Build components, open the store, run one command, close the store."""
    # Deferred: importing gemshop.main configures logging and builds the app.
    from gemshop.main import build_components

    components = build_components(app_settings)
    store = components["document_store"]
    await store.initialize()
    try:
        return await _HANDLERS[args.command](args, components)
    finally:
        await store.close()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m gemshop.cli",
        description="Manage gemshop documents and Gems, and chat from the terminal.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init-db", help="Create the database schema")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest one or more files")
    ingest_parser.add_argument("files", nargs="+", help="Paths to .pdf/.csv/.txt/.md files")

    dir_parser = subparsers.add_parser("ingest-dir", help="Ingest every supported file in a directory")
    dir_parser.add_argument("path", help="Directory path")
    dir_parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Files processed at once (default: 1)",
    )

    subparsers.add_parser("documents", help="List documents")
    subparsers.add_parser("gems", help="List Gems")

    gem_parser = subparsers.add_parser("create-gem", help="Create a Gem")
    gem_parser.add_argument("--name", required=True, help="Gem name")
    gem_parser.add_argument("--description", required=True, help="Gem mission")
    gem_parser.add_argument(
        "--document-id",
        action="append",
        dest="document_ids",
        help="Document to link (repeatable)",
    )
    gem_parser.add_argument("--rules", default=None, help="Free-form rules text")

    ask_parser = subparsers.add_parser("ask", help="Ask a Gem a question")
    ask_parser.add_argument("--gem-id", required=True, dest="gem_id", help="Gem ID")
    ask_parser.add_argument("message", help="The question")
    ask_parser.add_argument("--top-k", type=int, default=None, dest="top_k", help="Chunks to retrieve")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    try:
        exit_code = asyncio.run(run_command(args, app_settings))
    except GemShopError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
