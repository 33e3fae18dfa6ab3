# src/cache/rwlock.py — v1
"""FIFO-fair readers-writer lock for asyncio.

Readers share the lock; a writer holds it alone. Waiters are granted in
arrival order, so a writer queued behind active readers blocks every
reader that arrives after it, and consecutive readers at the head of the
queue are admitted together.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ReadWriteLock:
    """Single-writer / multi-reader lock scoped to one event loop."""

    def __init__(self) -> None:
        self._readers = 0
        self._writer = False
        self._waiters: deque[tuple[bool, asyncio.Future[None]]] = deque()

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def writer_active(self) -> bool:
        return self._writer

    async def acquire_read(self) -> None:
        if not self._writer and not self._waiters:
            self._readers += 1
            return
        await self._wait(exclusive=False)

    async def acquire_write(self) -> None:
        if not self._writer and self._readers == 0 and not self._waiters:
            self._writer = True
            return
        await self._wait(exclusive=True)

    def release_read(self) -> None:
        if self._readers <= 0:
            raise RuntimeError("release_read() called without a held read lock")
        self._readers -= 1
        self._wake()

    def release_write(self) -> None:
        if not self._writer:
            raise RuntimeError("release_write() called without a held write lock")
        self._writer = False
        self._wake()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        await self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the lock in exclusive mode for the duration of the block."""
        await self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    async def _wait(self, exclusive: bool) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append((exclusive, fut))
        try:
            await fut
        except asyncio.CancelledError:
            # Granted before the cancellation landed: hand the slot back.
            if fut.done() and not fut.cancelled():
                if exclusive:
                    self.release_write()
                else:
                    self.release_read()
            else:
                self._wake()
            raise

    def _wake(self) -> None:
        while self._waiters:
            exclusive, fut = self._waiters[0]
            if fut.done():
                self._waiters.popleft()
                continue
            if exclusive:
                if self._writer or self._readers:
                    return
                self._waiters.popleft()
                self._writer = True
                fut.set_result(None)
                return
            if self._writer:
                return
            self._waiters.popleft()
            self._readers += 1
            fut.set_result(None)
