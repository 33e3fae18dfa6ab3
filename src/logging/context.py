# src/logging/context.py — v2
"""Contextual logging support — attach store path and operation to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Set per feed store operation; copied into worker threads by asyncio.to_thread.
_store_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "store_path", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    store_path: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(store_path=_store_path.get(), operation=_operation.get())


@contextmanager
def operation_context(store_path: str, operation: str) -> Iterator[None]:
    """Scope store path and operation to a block, restoring prior values."""
    path_token = _store_path.set(store_path)
    op_token = _operation.set(operation)
    try:
        yield
    finally:
        _operation.reset(op_token)
        _store_path.reset(path_token)


def clear_context() -> None:
    """Reset all context variables."""
    _store_path.set(None)
    _operation.set(None)
