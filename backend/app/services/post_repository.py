"""Repository for the engagement store: posts, follows and post views.

All methods operate on a caller-supplied SQLAlchemy ``Session`` so that
transaction boundaries remain under the caller's control.
"""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import case, func, select
from sqlalchemy.orm import Query, Session

from backend.app.models.feed import RANKED_FEED_TYPES, VIEWER_FEED_TYPES, FeedType
from backend.app.models.post import Post, PostView
from backend.app.models.user import Follow, User

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class InvalidFeedRequestError(ValueError):
    """Raised when a feed request is missing a viewer or is out of range."""


# ---------------------------------------------------------------------------
# Batch reads for score recalculation
# ---------------------------------------------------------------------------


def fetch_post_page(db: Session, *, after_id: int, limit: int) -> list[Post]:
    """Return up to *limit* posts with ``id > after_id``, ordered by id.

    Keyset pagination on the immutable primary key: rows inserted or
    deleted while a pass is in progress never shift later pages.
    """
    return list(
        db.query(Post)
        .filter(Post.id > after_id)
        .order_by(Post.id)
        .limit(limit)
        .all()
    )


def existing_user_ids(db: Session, user_ids: Collection[int]) -> set[int]:
    """Return the subset of *user_ids* that have a ``users`` row."""
    if not user_ids:
        return set()
    rows = db.execute(select(User.id).where(User.id.in_(sorted(user_ids))))
    return {row[0] for row in rows}


def follower_counts(db: Session, user_ids: Collection[int]) -> dict[int, int]:
    """Return ``{user_id: follower_count}`` for *user_ids*.

    Users without any followers are absent from the mapping.
    """
    if not user_ids:
        return {}
    rows = db.execute(
        select(Follow.following_id, func.count())
        .where(Follow.following_id.in_(sorted(user_ids)))
        .group_by(Follow.following_id)
    )
    return {following_id: count for following_id, count in rows}


def follow_edges_among(db: Session, user_ids: Collection[int]) -> list[tuple[int, int]]:
    """Return ``(follower_id, following_id)`` edges with both ends in *user_ids*."""
    if not user_ids:
        return []
    rows = db.execute(
        select(Follow.follower_id, Follow.following_id).where(
            Follow.follower_id.in_(sorted(user_ids)),
            Follow.following_id.in_(sorted(user_ids)),
        )
    )
    return [(follower_id, following_id) for follower_id, following_id in rows]


# ---------------------------------------------------------------------------
# Feed queries
# ---------------------------------------------------------------------------


def _feed_query(db: Session, feed_type: FeedType, viewer_id: int | None) -> Query:
    if feed_type in VIEWER_FEED_TYPES and viewer_id is None:
        raise InvalidFeedRequestError(
            f"viewer_id is required for the '{feed_type}' feed"
        )

    query = db.query(Post)
    if feed_type == FeedType.following:
        followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
        query = query.filter(Post.author_id.in_(followed))
    elif feed_type == FeedType.for_you:
        seen = select(PostView.post_id).where(PostView.viewer_id == viewer_id)
        query = query.filter(Post.id.not_in(seen), Post.author_id != viewer_id)
    elif feed_type == FeedType.viewed:
        seen = select(PostView.post_id).where(PostView.viewer_id == viewer_id)
        query = query.filter(Post.id.in_(seen))
    return query


def list_feed(
    db: Session,
    feed_type: FeedType,
    *,
    viewer_id: int | None = None,
    offset: int = 0,
    limit: int = DEFAULT_PAGE_SIZE,
) -> list[Post]:
    """List posts for a feed variant.

    Args:
        feed_type: ``top``, ``following`` and ``for-you`` sort by ``score``
            DESC (NULLS LAST), then ``created_at`` DESC.  ``new`` and
            ``viewed`` ignore the score and sort by ``created_at`` DESC.
            ``id`` DESC is the final tie-break for all variants.
        viewer_id: Required for ``following``, ``for-you`` and ``viewed``.
        offset: Number of posts to skip (for pagination).
        limit: Maximum posts to return (1 to :data:`MAX_PAGE_SIZE`).

    Raises:
        InvalidFeedRequestError: If the viewer is missing or the page
            bounds are out of range.
    """
    if offset < 0 or not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidFeedRequestError(
            f"offset must be >= 0 and limit between 1 and {MAX_PAGE_SIZE}"
        )

    query = _feed_query(db, feed_type, viewer_id)

    if feed_type in RANKED_FEED_TYPES:
        # NULLS LAST via CASE: posts never scored sort after scored ones
        nulls_last = case((Post.score.is_(None), 1), else_=0)
        query = query.order_by(
            nulls_last,
            Post.score.desc(),
            Post.created_at.desc(),
            Post.id.desc(),
        )
    else:
        query = query.order_by(Post.created_at.desc(), Post.id.desc())

    return list(query.offset(offset).limit(limit).all())


def count_feed(
    db: Session,
    feed_type: FeedType,
    *,
    viewer_id: int | None = None,
) -> int:
    """Return total count matching the same filters as :func:`list_feed`."""
    return _feed_query(db, feed_type, viewer_id).count()
