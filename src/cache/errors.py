# src/cache/errors.py — v1
"""Feed store error hierarchy.

Decode problems are never raised: malformed records read as an empty cache
and malformed entries are dropped.
"""

from __future__ import annotations


class FeedStoreError(Exception):
    """Base class for feed store failures."""


class StorageUnavailable(FeedStoreError):
    """Raised when the storage location cannot be opened or created."""


class PersistenceFailure(FeedStoreError):
    """Raised when a write or delete against an open store fails."""
