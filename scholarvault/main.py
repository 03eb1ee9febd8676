"""CLI entry point."""

from __future__ import annotations

# Set certifi CA bundle for SSL before any HTTP libs load
import os

import certifi

os.environ.setdefault("SSL_CERT_FILE", certifi.where())

import argparse
import asyncio
from typing import Sequence

import pydantic
from rich.console import Console
from rich.table import Table

from scholarvault.catalog import CatalogService, VerificationCoordinator
from scholarvault.config.loader import load_settings, missing_storage_credentials
from scholarvault.db.database import get_db
from scholarvault.db.repositories import CatalogRepository
from scholarvault.errors import CatalogError
from scholarvault.models import PaperPage, SearchFilters, SettingsConfig, VerificationOutcome
from scholarvault.storage.client import StorageHandle
from scholarvault.utils.logging_config import LogLevel, parse_log_level, setup_logging


def _parse_verified(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "y")


async def _run_search(settings: SettingsConfig, filters: SearchFilters) -> PaperPage:
    handle = StorageHandle(settings.storage)
    async with get_db(settings.database.path) as db:
        return await CatalogService(CatalogRepository(db), handle).search(filters)


async def _run_verify(
    settings: SettingsConfig, paper_id: str
) -> tuple[VerificationOutcome, int]:
    handle = StorageHandle(settings.storage)
    try:
        async with get_db(settings.database.path) as db:
            repository = CatalogRepository(db)
            outcome = await VerificationCoordinator(repository, handle).verify(paper_id)
            return outcome, await repository.count_proofs(paper_id)
    finally:
        await handle.close()


async def _run_init_db(settings: SettingsConfig) -> None:
    async with get_db(settings.database.path):
        pass


def _print_page(console: Console, page: PaperPage) -> None:
    table = Table(title=f"Papers (page {page.page}, {page.total} total)")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Version", justify="right")
    table.add_column("Verified")
    table.add_column("CID", style="dim")
    for paper in page.papers:
        table.add_row(
            paper.id,
            paper.title,
            paper.author,
            f"v{paper.version}",
            "[green]yes[/]" if paper.is_verified else "no",
            paper.cid[:20] + ("..." if len(paper.cid) > 20 else ""),
        )
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scholarvault")
    parser.add_argument("--settings", default="config/settings.yaml")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    serve.add_argument("--reload", action="store_true")
    serve.add_argument("--verbose", "-v", action="store_true")

    search = sub.add_parser("search", help="Search the catalog")
    search.add_argument("--query")
    search.add_argument("--author")
    search.add_argument("--verified", help="true or false")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--limit", type=int, default=10)

    verify = sub.add_parser("verify", help="Re-check a paper against the storage network")
    verify.add_argument("--paper-id", required=True)

    sub.add_parser("init-db", help="Create the catalog schema")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    console = Console()
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    settings = load_settings(args.settings)

    if args.command == "serve":
        import uvicorn

        level = LogLevel.DETAILED if args.verbose else parse_log_level(settings.logging.level)
        setup_logging(level, log_file=settings.logging.log_file, debug=settings.logging.debug)
        missing = missing_storage_credentials(settings)
        if missing:
            console.print(f"[yellow]Warning:[/] storage not configured: {', '.join(missing)}")
        uvicorn.run(
            "scholarvault.web.app:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
        )
        return 0

    setup_logging(LogLevel.MINIMAL)

    if args.command == "init-db":
        asyncio.run(_run_init_db(settings))
        console.print(f"[green]Schema ready:[/] {settings.database.path}")
        return 0

    try:
        if args.command == "search":
            filters = SearchFilters(
                query=args.query,
                author=args.author,
                verified=_parse_verified(args.verified),
                page=args.page,
                limit=args.limit,
            )
            _print_page(console, asyncio.run(_run_search(settings, filters)))
            return 0

        if args.command == "verify":
            outcome, proof_count = asyncio.run(_run_verify(settings, args.paper_id))
            colour = "green" if outcome.is_valid else "red"
            console.print(f"[{colour}]{outcome.message}[/] ({outcome.reason.value})")
            console.print(f"{proof_count} proof record(s) on file for {args.paper_id}")
            return 0 if outcome.is_valid else 1
    except CatalogError as exc:
        console.print(f"[red]Error:[/] {exc.message}")
        return 2
    except pydantic.ValidationError as exc:
        for err in exc.errors():
            console.print(f"[red]Invalid {err['loc'][0]}:[/] {err['msg']}")
        return 2

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
