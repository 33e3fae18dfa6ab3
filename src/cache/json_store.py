# src/cache/json_store.py — v2
"""JSON file-based feed store (FEED_STORE_BACKEND=json).

Stores the cache document as a single JSON file under the store path.
Writes go to a temporary sibling first and are moved into place with
os.replace, so readers never see a partially written file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from feedstore.cache.base_feed_store import BaseFeedStore
from feedstore.cache.codec import CACHE_DOCUMENT_ID
from feedstore.cache.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class JsonFeedStore(BaseFeedStore):
    """File-based feed store using one JSON document."""

    def __init__(self, store_path: Path | str) -> None:
        super().__init__(store_path)
        try:
            self._store_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(
                f"Cannot create feed store directory {self._store_path}: {e}"
            ) from e
        if not os.access(self._store_path, os.W_OK):
            raise StorageUnavailable(
                f"Feed store directory {self._store_path} is not writable"
            )
        self._document_path = self._store_path / f"{CACHE_DOCUMENT_ID}.json"

    @property
    def document_path(self) -> Path:
        return self._document_path

    def _load_document(self) -> Any | None:
        if not self._document_path.exists():
            return None
        return json.loads(self._document_path.read_text(encoding="utf-8"))

    def _save_document(self, document: dict[str, Any]) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._store_path, prefix=f".{CACHE_DOCUMENT_ID}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp_name, self._document_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _remove_document(self) -> bool:
        try:
            self._document_path.unlink()
        except FileNotFoundError:
            return False
        return True
