# tests/integration/cache/test_int_feed_store_contract.py — v1
"""Behavioural contract shared by every feed store backend.

Runs against SQLite and JSON stores on real files under tmp_path.
Coverage targets: base_feed_store.py, sqlite_store.py, json_store.py, rwlock.py
"""

from __future__ import annotations

import asyncio
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from feedstore.cache.json_store import JsonFeedStore
from feedstore.cache.models import EmptyCache, FeedImage, FoundCache
from feedstore.cache.sqlite_store import SqliteFeedStore


def _payload(n: int) -> tuple[list[FeedImage], datetime]:
    """A feed whose every field identifies the payload it belongs to."""
    feed = [
        FeedImage(
            id=uuid.UUID(int=n * 100 + i),
            description=f"payload {n} image {i}",
            location=f"loc {n}",
            url=f"https://example.com/{n}/{i}.png",
        )
        for i in range(5)
    ]
    timestamp = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=n)
    return feed, timestamp


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_empty_on_empty_cache(self, store):
        assert await store.retrieve() == EmptyCache()

    @pytest.mark.asyncio
    async def test_no_side_effects_on_empty_cache(self, store):
        assert await store.retrieve() == EmptyCache()
        assert await store.retrieve() == EmptyCache()

    @pytest.mark.asyncio
    async def test_found_values_on_non_empty_cache(
        self, store, sample_feed, sample_timestamp
    ):
        await store.insert(sample_feed, sample_timestamp)
        result = await store.retrieve()
        assert result == FoundCache(feed=sample_feed, timestamp=sample_timestamp)

    @pytest.mark.asyncio
    async def test_no_side_effects_on_non_empty_cache(
        self, store, sample_feed, sample_timestamp
    ):
        await store.insert(sample_feed, sample_timestamp)
        first = await store.retrieve()
        second = await store.retrieve()
        assert first == second == FoundCache(feed=sample_feed, timestamp=sample_timestamp)

    @pytest.mark.asyncio
    async def test_optional_fields_round_trip_to_none(self, store, make_image, sample_timestamp):
        image = make_image(description=None, location=None)
        await store.insert([image], sample_timestamp)
        result = await store.retrieve()
        assert isinstance(result, FoundCache)
        assert result.feed[0].description is None
        assert result.feed[0].location is None

    @pytest.mark.asyncio
    async def test_empty_feed_is_found(self, store, sample_timestamp):
        await store.insert([], sample_timestamp)
        assert await store.retrieve() == FoundCache(feed=(), timestamp=sample_timestamp)


class TestInsert:
    @pytest.mark.asyncio
    async def test_no_error_on_empty_cache(self, store, sample_feed, sample_timestamp):
        assert await store.insert(sample_feed, sample_timestamp) is None

    @pytest.mark.asyncio
    async def test_no_error_on_non_empty_cache(self, store, sample_feed, sample_timestamp):
        await store.insert(sample_feed, sample_timestamp)
        assert await store.insert(sample_feed[:1], sample_timestamp) is None

    @pytest.mark.asyncio
    async def test_overrides_previous_values(self, store):
        feed1, ts1 = _payload(1)
        feed2, ts2 = _payload(2)
        await store.insert(feed1, ts1)
        await store.insert(feed2, ts2)
        assert await store.retrieve() == FoundCache(feed=feed2, timestamp=ts2)

    @pytest.mark.asyncio
    async def test_shorter_feed_fully_replaces(self, store):
        feed1, ts1 = _payload(1)
        feed2, ts2 = _payload(2)
        await store.insert(feed1, ts1)
        await store.insert(feed2[:2], ts2)
        result = await store.retrieve()
        assert list(result.feed) == feed2[:2]

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, store_cls, store_path):
        feed, ts = _payload(7)
        await store_cls(store_path).insert(feed, ts)
        assert await store_cls(store_path).retrieve() == FoundCache(feed=feed, timestamp=ts)


class TestDelete:
    @pytest.mark.asyncio
    async def test_no_error_on_empty_cache(self, store):
        assert await store.delete_cached_feed() is None

    @pytest.mark.asyncio
    async def test_no_side_effects_on_empty_cache(self, store):
        await store.delete_cached_feed()
        assert await store.retrieve() == EmptyCache()

    @pytest.mark.asyncio
    async def test_no_error_on_non_empty_cache(self, store, sample_feed, sample_timestamp):
        await store.insert(sample_feed, sample_timestamp)
        assert await store.delete_cached_feed() is None

    @pytest.mark.asyncio
    async def test_empties_previously_inserted_cache(
        self, store, sample_feed, sample_timestamp
    ):
        await store.insert(sample_feed, sample_timestamp)
        await store.delete_cached_feed()
        assert await store.retrieve() == EmptyCache()

    @pytest.mark.asyncio
    async def test_insert_after_delete(self, store):
        feed, ts = _payload(3)
        await store.insert(*_payload(2))
        await store.delete_cached_feed()
        await store.insert(feed, ts)
        assert await store.retrieve() == FoundCache(feed=feed, timestamp=ts)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_side_effects_run_serially(self, store):
        """Operations issued without awaiting complete in issue order."""
        order: list[str] = []

        async def track(label, coro):
            await coro
            order.append(label)

        feed, ts = _payload(1)
        await asyncio.gather(
            track("insert", store.insert(feed, ts)),
            track("delete", store.delete_cached_feed()),
            track("insert-again", store.insert(feed, ts)),
        )
        assert order == ["insert", "delete", "insert-again"]

    @pytest.mark.asyncio
    async def test_final_state_is_last_issued_mutation(self, store):
        payloads = [_payload(n) for n in range(12)]
        ops = []
        for n, (feed, ts) in enumerate(payloads):
            ops.append(store.insert(feed, ts))
            ops.append(store.retrieve())
            if n % 4 == 1:
                ops.append(store.delete_cached_feed())
        results = await asyncio.gather(*ops)

        expected = {
            FoundCache(feed=feed, timestamp=ts) for feed, ts in payloads
        } | {EmptyCache()}
        for result in results:
            if result is not None:
                assert result in expected

        last_feed, last_ts = payloads[-1]
        assert await store.retrieve() == FoundCache(feed=last_feed, timestamp=last_ts)

    @pytest.mark.asyncio
    async def test_retrieve_sees_whole_payloads_only(self, store):
        payloads = [_payload(n) for n in range(8)]
        ops = []
        for feed, ts in payloads:
            ops.append(store.insert(feed, ts))
            ops.extend(store.retrieve() for _ in range(3))
        results = await asyncio.gather(*ops)

        retrieved = [r for r in results if r is not None]
        assert retrieved
        for result in retrieved:
            assert isinstance(result, FoundCache)
            marker = result.feed[0].location
            assert all(image.location == marker for image in result.feed)
            assert len(result.feed) == 5


class _InstrumentedMixin:
    """Records any overlap between a mutation and another operation."""

    def _setup_tracking(self) -> None:
        self._guard = threading.Lock()
        self.active_reads = 0
        self.active_writes = 0
        self.max_reads = 0
        self.violations = 0

    def _tracked(self, exclusive, fn, *args):
        with self._guard:
            if self.active_writes or (exclusive and self.active_reads):
                self.violations += 1
            if exclusive:
                self.active_writes += 1
            else:
                self.active_reads += 1
                self.max_reads = max(self.max_reads, self.active_reads)
        try:
            time.sleep(0.002)
            return fn(*args)
        finally:
            with self._guard:
                if exclusive:
                    self.active_writes -= 1
                else:
                    self.active_reads -= 1

    def _load_document(self):
        return self._tracked(False, super()._load_document)

    def _save_document(self, document):
        return self._tracked(True, super()._save_document, document)

    def _remove_document(self):
        return self._tracked(True, super()._remove_document)


class _InstrumentedSqliteStore(_InstrumentedMixin, SqliteFeedStore):
    def __init__(self, store_path):
        self._setup_tracking()
        super().__init__(store_path)


class _InstrumentedJsonStore(_InstrumentedMixin, JsonFeedStore):
    def __init__(self, store_path):
        self._setup_tracking()
        super().__init__(store_path)


class TestMutualExclusion:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("store_type", [_InstrumentedSqliteStore, _InstrumentedJsonStore])
    async def test_mutations_never_overlap(self, store_type, store_path):
        store = store_type(store_path)
        ops = []
        for n in range(10):
            ops.append(store.insert(*_payload(n)))
            ops.extend(store.retrieve() for _ in range(4))
            if n % 3 == 0:
                ops.append(store.delete_cached_feed())
        await asyncio.gather(*ops)

        assert store.violations == 0
        assert store.active_reads == 0
        assert store.active_writes == 0
