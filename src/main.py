# src/main.py — v2
"""CLI entry point — show, insert, clear commands.

Usage:
    feedstore [--store PATH] [--backend sqlite|json] show
    feedstore [--store PATH] [--backend sqlite|json] insert <file> [--timestamp ISO]
    feedstore [--store PATH] [--backend sqlite|json] clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from feedstore.version import __version__

if TYPE_CHECKING:
    from feedstore.cache.base_feed_store import BaseFeedStore
    from feedstore.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
    except Exception as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    """Console script wrapper."""
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="feedstore",
        description=f"feedstore v{__version__} — single-record feed image cache",
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
        help="Store directory (default: FEED_STORE_PATH)",
    )
    parser.add_argument(
        "--backend", choices=["sqlite", "json"], default=None,
        help="Storage backend (default: FEED_STORE_BACKEND)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- show ---
    p_show = subparsers.add_parser("show", help="Print the cached feed as JSON")
    p_show.set_defaults(func=_cmd_show)

    # --- insert ---
    p_insert = subparsers.add_parser(
        "insert", help="Replace the cached feed with images from a JSON file",
    )
    p_insert.add_argument(
        "file", type=Path, help="JSON file holding an array of images",
    )
    p_insert.add_argument(
        "--timestamp", type=_parse_timestamp, default=None,
        help="ISO-8601 cache timestamp (default: now, UTC)",
    )
    p_insert.set_defaults(func=_cmd_insert)

    # --- clear ---
    p_clear = subparsers.add_parser("clear", help="Delete the cached feed")
    p_clear.set_defaults(func=_cmd_clear)

    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    from feedstore.cache.store_factory import create_feed_store

    store = create_feed_store(settings)
    async with store:
        return await args.func(args, store)


async def _cmd_show(args: argparse.Namespace, store: BaseFeedStore) -> int:
    """Print the current cache."""
    from feedstore.cache.codec import encode_image
    from feedstore.cache.models import FoundCache

    result = await store.retrieve()
    if not isinstance(result, FoundCache):
        print("empty")
        return 0

    payload = {
        "feed": [encode_image(image) for image in result.feed],
        "timestamp": result.timestamp.isoformat(),
    }
    print(json.dumps(payload, indent=2))
    return 0


async def _cmd_insert(args: argparse.Namespace, store: BaseFeedStore) -> int:
    """Load images from a JSON file and replace the cache with them."""
    from feedstore.cache.models import FeedImage

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    try:
        feed = TypeAdapter(list[FeedImage]).validate_json(
            file_path.read_text(encoding="utf-8")
        )
    except ValidationError as exc:
        logger.error("Invalid feed file %s: %s", file_path, exc)
        return 1

    timestamp = args.timestamp or datetime.now(timezone.utc)
    await store.insert(feed, timestamp)
    logger.info("Cached %d images at %s", len(feed), timestamp.isoformat())
    return 0


async def _cmd_clear(args: argparse.Namespace, store: BaseFeedStore) -> int:
    """Delete the cache."""
    await store.delete_cached_feed()
    logger.info("Cache cleared")
    return 0


def _parse_timestamp(value: str) -> datetime:
    """argparse type for ISO-8601 timestamps; naive values are UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from .env, with CLI flags taking precedence."""
    from feedstore.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.store is not None:
        overrides["feed_store_path"] = args.store
    if args.backend is not None:
        overrides["feed_store_backend"] = args.backend
    return load_settings(**overrides)


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from feedstore.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
