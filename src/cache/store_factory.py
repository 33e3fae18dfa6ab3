# src/cache/store_factory.py — v1
"""Factory for feed store instantiation."""

from __future__ import annotations

from pathlib import Path

from feedstore.cache.base_feed_store import BaseFeedStore
from feedstore.config.settings import Settings


def create_feed_store(
    settings: Settings | None = None,
    store_path: Path | str | None = None,
) -> BaseFeedStore:
    """Instantiate the configured feed store backend.

    Args:
        settings: Application settings. Defaults to the SQLite backend.
        store_path: Overrides settings.feed_store_path when given.

    Returns:
        Configured BaseFeedStore implementation.

    Raises:
        StorageUnavailable: If the storage location cannot be opened.
    """
    backend = "sqlite" if settings is None else settings.feed_store_backend
    if store_path is None:
        store_path = (
            Path("~/.feedstore/cache") if settings is None
            else settings.feed_store_path
        )

    if backend == "sqlite":
        from feedstore.cache.sqlite_store import SqliteFeedStore
        return SqliteFeedStore(store_path=store_path)

    if backend == "json":
        from feedstore.cache.json_store import JsonFeedStore
        return JsonFeedStore(store_path=store_path)

    raise ValueError(f"Unsupported feed store backend: {backend!r}")
