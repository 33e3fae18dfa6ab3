# src/cache/codec.py — v1
"""Document codec for the feed cache.

Stored shape::

    {"feed": [{"id": ..., "url": ..., "description"?: ..., "location"?: ...}],
     "timestamp": <float seconds since 2001-01-01T00:00:00Z>}

Optional image fields are omitted when None. Decoding is lenient: an entry
whose id or url does not parse is dropped, and a document without a feed
array decodes to None.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from feedstore.cache.models import CachedFeed, FeedImage

logger = logging.getLogger(__name__)

CACHE_DOCUMENT_ID = "cache-document"
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


def encode_image(image: FeedImage) -> dict[str, str]:
    """Serialize one image, omitting None optionals."""
    data = {
        "id": str(image.id),
        "description": image.description,
        "location": image.location,
        "url": image.url,
    }
    return {k: v for k, v in data.items() if v is not None}


def decode_image(data: Any) -> FeedImage | None:
    """Parse one stored image entry, or None if it is unusable."""
    if not isinstance(data, Mapping):
        return None
    image_id = data.get("id")
    url = data.get("url")
    if not isinstance(image_id, str) or not isinstance(url, str):
        return None
    try:
        return FeedImage(
            id=image_id,
            description=_optional_str(data.get("description")),
            location=_optional_str(data.get("location")),
            url=url,
        )
    except ValidationError:
        return None


def encode_timestamp(timestamp: datetime) -> float:
    """Seconds since REFERENCE_DATE. Naive values are treated as UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return (timestamp - REFERENCE_DATE).total_seconds()


def decode_timestamp(value: Any) -> datetime:
    """Inverse of encode_timestamp; unusable values map to REFERENCE_DATE."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return REFERENCE_DATE
    if not math.isfinite(value):
        return REFERENCE_DATE
    try:
        return REFERENCE_DATE + timedelta(seconds=value)
    except OverflowError:
        return REFERENCE_DATE


def encode_cache(feed: Iterable[FeedImage], timestamp: datetime) -> dict[str, Any]:
    """Build the stored document for a feed and its timestamp."""
    return {
        "feed": [encode_image(image) for image in feed],
        "timestamp": encode_timestamp(timestamp),
    }


def decode_cache(document: Any) -> CachedFeed | None:
    """Rebuild a CachedFeed from a stored document.

    Returns None when the document is not a mapping or has no feed array.
    Individual entries that fail to parse are skipped.
    """
    if not isinstance(document, Mapping):
        return None
    raw_feed = document.get("feed")
    if not isinstance(raw_feed, list):
        return None

    feed: list[FeedImage] = []
    for entry in raw_feed:
        image = decode_image(entry)
        if image is None:
            logger.debug("Dropping unreadable feed entry: %r", entry)
            continue
        feed.append(image)

    return CachedFeed(
        feed=tuple(feed), timestamp=decode_timestamp(document.get("timestamp"))
    )


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None
