# src/cache/base_feed_store.py — v1
"""Abstract feed store: one cached feed per storage location.

Backends implement three blocking document hooks. This class runs them on
the default thread pool under a readers-writer lock, so mutations are
serialized against every other operation on the same instance while
retrievals may overlap with each other.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from feedstore.cache.codec import decode_cache, encode_cache
from feedstore.cache.errors import PersistenceFailure, StorageUnavailable
from feedstore.cache.models import CacheResult, EmptyCache, FeedImage, FoundCache
from feedstore.cache.rwlock import ReadWriteLock
from feedstore.logging.context import operation_context

logger = logging.getLogger(__name__)


class BaseFeedStore(ABC):
    """Unified interface for feed cache backends."""

    def __init__(self, store_path: Path | str) -> None:
        self._store_path = Path(store_path).expanduser()
        self._lock = ReadWriteLock()
        self._closed = False

    @property
    def store_path(self) -> Path:
        return self._store_path

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Public operations ---

    async def retrieve(self) -> CacheResult:
        """Return the cached feed, or EmptyCache.

        Never raises for storage or decode problems; both read as empty.
        """
        with operation_context(str(self._store_path), "retrieve"):
            async with self._lock.read():
                if self._closed:
                    return EmptyCache()
                try:
                    document = await self._run_to_completion(self._load_document)
                except Exception as e:
                    logger.warning("Failed to read cached feed: %s", e)
                    return EmptyCache()

            if document is None:
                logger.debug("No cached feed present")
                return EmptyCache()

            cache = decode_cache(document)
            if cache is None:
                logger.warning("Cached feed document is malformed, treating as empty")
                return EmptyCache()

            logger.debug("Retrieved cached feed with %d images", len(cache.feed))
            return FoundCache(feed=cache.feed, timestamp=cache.timestamp)

    async def insert(self, feed: Sequence[FeedImage], timestamp: datetime) -> None:
        """Replace the cached feed unconditionally.

        The timestamp must be timezone-aware so that retrieve() returns it
        unchanged.

        Raises:
            ValueError: If the timestamp is naive.
            PersistenceFailure: If the backend could not write the document.
            StorageUnavailable: If the store has been closed.
        """
        if timestamp.tzinfo is None or timestamp.utcoffset() is None:
            raise ValueError("insert() requires a timezone-aware timestamp")
        document = encode_cache(feed, timestamp)
        with operation_context(str(self._store_path), "insert"):
            async with self._lock.write():
                self._ensure_open()
                try:
                    await self._run_to_completion(self._save_document, document)
                except Exception as e:
                    raise PersistenceFailure(f"Failed to save cached feed: {e}") from e
            logger.debug("Inserted cached feed with %d images", len(document["feed"]))

    async def delete_cached_feed(self) -> None:
        """Remove the cached feed if present. Missing cache is not an error.

        Raises:
            PersistenceFailure: If the backend could not remove the document.
            StorageUnavailable: If the store has been closed.
        """
        with operation_context(str(self._store_path), "delete"):
            async with self._lock.write():
                self._ensure_open()
                try:
                    removed = await self._run_to_completion(self._remove_document)
                except Exception as e:
                    raise PersistenceFailure(
                        f"Failed to delete cached feed: {e}"
                    ) from e
            logger.debug("Delete finished (removed=%s)", removed)

    async def close(self) -> None:
        """Wait for in-flight operations, then release backend resources."""
        async with self._lock.write():
            if self._closed:
                return
            self._closed = True
            self._close_backend()

    async def __aenter__(self) -> BaseFeedStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _run_to_completion(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking hook on the thread pool and wait for it to finish.

        Cancelling the caller does not abandon the hook: the lock held around
        this call stays held until the thread returns, then the cancellation
        is re-raised.
        """
        future = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        cancelled = False
        while True:
            try:
                result = await asyncio.shield(future)
                break
            except asyncio.CancelledError:
                if future.done():
                    if not future.cancelled():
                        future.exception()
                    raise
                cancelled = True
        if cancelled:
            raise asyncio.CancelledError
        return result

    # --- Backend hooks (blocking, called from worker threads) ---

    @abstractmethod
    def _load_document(self) -> Any | None:
        """Return the decoded JSON document, or None when absent."""

    @abstractmethod
    def _save_document(self, document: dict[str, Any]) -> None:
        """Persist the document, replacing any previous one."""

    @abstractmethod
    def _remove_document(self) -> bool:
        """Remove the document. Returns False when there was nothing to remove."""

    def _close_backend(self) -> None:
        """Release backend resources. Default: nothing to release."""

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageUnavailable(f"Feed store at {self._store_path} is closed")
