"""Pydantic models for feed requests and responses."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class FeedType(StrEnum):
    """Feed variants served by the feed query layer."""

    top = "top"
    following = "following"
    for_you = "for-you"
    new = "new"
    viewed = "viewed"


RANKED_FEED_TYPES = frozenset({FeedType.top, FeedType.following, FeedType.for_you})
"""Variants ordered by ``score`` DESC; the rest order by ``created_at`` only."""

VIEWER_FEED_TYPES = frozenset({FeedType.following, FeedType.for_you, FeedType.viewed})
"""Variants that need a ``viewer_id`` to build their filter."""


class FeedPost(BaseModel):
    """A single post as returned in a feed page."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    content: str
    like_count: int
    view_count: int
    comment_count: int
    share_count: int
    score: int | None = None
    created_at: datetime
    updated_score_at: datetime | None = None


class FeedResponse(BaseModel):
    """One page of a feed plus the total matching count."""

    type: FeedType
    total: int
    offset: int
    limit: int
    posts: list[FeedPost]
