# tests/conftest.py — v2
"""Shared test fixtures: sample feed images, timestamps and store backends.

No external services. Every store lives under pytest's tmp_path.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

import pytest

from feedstore.cache.base_feed_store import BaseFeedStore
from feedstore.cache.json_store import JsonFeedStore
from feedstore.cache.models import FeedImage
from feedstore.cache.sqlite_store import SqliteFeedStore


# === FIXTURES: Sample data ===


@pytest.fixture
def make_image() -> Callable[..., FeedImage]:
    """Factory for unique FeedImage instances."""

    def _make(**overrides: object) -> FeedImage:
        data: dict[str, object] = {
            "id": uuid.uuid4(),
            "description": "a description",
            "location": "a location",
            "url": "https://example.com/image.png",
        }
        data.update(overrides)
        return FeedImage(**data)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def sample_feed(make_image) -> list[FeedImage]:
    """Three images, one without description and location."""
    return [
        make_image(description="sunset", location="Lisbon",
                   url="https://cdn.example.com/a.jpg"),
        make_image(description=None, location=None,
                   url="https://cdn.example.com/b.jpg"),
        make_image(description="", location="Porto",
                   url="http://example.org/c.png?size=large"),
    ]


@pytest.fixture
def sample_timestamp() -> datetime:
    return datetime(2026, 2, 16, 12, 30, 45, 123456, tzinfo=timezone.utc)


# === FIXTURES: Stores ===


STORE_BACKENDS: dict[str, type[BaseFeedStore]] = {
    "sqlite": SqliteFeedStore,
    "json": JsonFeedStore,
}


@pytest.fixture(params=sorted(STORE_BACKENDS))
def store_cls(request) -> type[BaseFeedStore]:
    """Each backend class in turn."""
    return STORE_BACKENDS[request.param]


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "feed-store"


@pytest.fixture
def store(store_cls, store_path) -> Iterator[BaseFeedStore]:
    """A fresh store of each backend, rooted in tmp_path."""
    feed_store = store_cls(store_path)
    yield feed_store
    feed_store._close_backend()
