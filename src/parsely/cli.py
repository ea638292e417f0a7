#!/usr/bin/env python3
"""
Command-line interface for parsely.
Imports recipes into a Notion database from web pages (chop) or from photos (scan).
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from rich.console import Console

from .config import Settings
from .exceptions import ParselyError
from .fetcher import PageFetcher
from .importer import BatchImporter, load_urls, unique_urls
from .photos import PhotoImporter
from .report import ReportGenerator
from .review import AutoReviewer, ConsoleReviewer
from .services import RecipeVisionService
from .store import NotionRecipeStore


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )
    logging.getLogger().setLevel(log_level)

    # Reduce verbosity of external libraries
    if not verbose:
        for name in ("httpx", "httpcore", "notion_client"):
            logging.getLogger(name).setLevel(logging.WARNING)


def parse_tags(value: str) -> List[str]:
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    common.add_argument(
        "-t", "--tags", type=parse_tags, default=[],
        help="Comma separated tags added to every recipe's keywords",
    )
    common.add_argument(
        "-y", "--yes", action="store_true",
        help="Do not prompt: save every recipe and overwrite existing ones",
    )

    parser = argparse.ArgumentParser(prog="parsely", description="Import recipes into Notion")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chop = subparsers.add_parser("chop", parents=[common], help="Import recipes from web pages")
    chop.add_argument("urls", nargs="*", help="Recipe page URLs")
    chop.add_argument("-i", "--input", help="File with one URL per line")
    chop.add_argument("-b", "--batch-size", type=int, help="URLs processed concurrently (default: 5)")
    chop.add_argument(
        "--validate-only", action="store_true",
        help="Check that recipes can be extracted without saving them",
    )

    scan = subparsers.add_parser("scan", parents=[common], help="Import recipes from photos")
    scan.add_argument("files", nargs="+", help="Photo files (.jpg, .jpeg, .png)")
    scan.add_argument("-s", "--single", action="store_true", help="Treat all photos as a single recipe")
    scan.add_argument("-l", "--language", default="english", help="Language of the recipe (default: english)")

    return parser


async def chop(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    urls = list(args.urls)
    if args.input:
        urls.extend(load_urls(args.input))
    urls = unique_urls(urls)
    if not urls:
        logging.error("No URLs provided")
        return 1

    settings.require_store()
    reviewer = AutoReviewer(overwrite=True) if args.yes else ConsoleReviewer(console)

    async with PageFetcher(
        timeout=settings.fetch_timeout, render_timeout=settings.render_timeout
    ) as fetcher, NotionRecipeStore(
        token=settings.notion_token,
        database_id=settings.notion_database_id,
        retry_attempts=settings.retry_attempts,
        retry_base_delay=settings.retry_base_delay,
    ) as store:
        importer = BatchImporter(
            fetcher,
            store,
            reviewer=reviewer,
            batch_size=args.batch_size or settings.batch_size,
            batch_delay=settings.batch_delay,
        )
        result = await importer.run(urls, validate_only=args.validate_only, tags=args.tags)

    ReportGenerator(console).show_final_report(result)
    return 1 if result.failed else 0


async def scan(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    settings.require_store()
    vision = RecipeVisionService(api_key=settings.openrouter_api_key, model=settings.vision_model)
    reviewer = AutoReviewer() if args.yes else ConsoleReviewer(console)

    async with NotionRecipeStore(
        token=settings.notion_token,
        database_id=settings.notion_database_id,
        retry_attempts=settings.retry_attempts,
        retry_base_delay=settings.retry_base_delay,
    ) as store:
        importer = PhotoImporter(vision, store, reviewer=reviewer)
        result = await importer.run(
            args.files, single=args.single, language=args.language, tags=args.tags
        )

    ReportGenerator(console).show_final_report(result, title="Photo Import Results")
    return 1 if result.failed else 0


async def main_async(args: argparse.Namespace) -> int:
    console = Console()
    try:
        settings = Settings.from_env()
        if args.command == "chop":
            return await chop(args, settings, console)
        return await scan(args, settings, console)
    except (ParselyError, ValueError, OSError) as e:
        logging.error(str(e))
        return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    return asyncio.run(main_async(args))


def run() -> None:
    """Entry point for the console script."""
    sys.exit(main())


if __name__ == "__main__":
    run()
