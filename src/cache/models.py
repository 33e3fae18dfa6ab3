# src/cache/models.py — v2
"""Feed cache domain models: FeedImage, CachedFeed and retrieval results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Union
from uuid import UUID

from pydantic import AnyUrl, BaseModel, ConfigDict, TypeAdapter, field_validator

_URL_ADAPTER = TypeAdapter(AnyUrl)


class FeedImage(BaseModel):
    """Single feed entry. The url is kept verbatim once validated."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    description: str | None = None
    location: str | None = None
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        _URL_ADAPTER.validate_python(v)
        return v


class CachedFeed(BaseModel):
    """The one persisted (feed, timestamp) pair."""

    model_config = ConfigDict(frozen=True)

    feed: tuple[FeedImage, ...] = ()
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class EmptyCache(BaseModel):
    """Retrieval result when no readable record is present."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"


class FoundCache(BaseModel):
    """Retrieval result carrying the stored feed and its timestamp."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["found"] = "found"
    feed: tuple[FeedImage, ...]
    timestamp: datetime


CacheResult = Union[EmptyCache, FoundCache]
