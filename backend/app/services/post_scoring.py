"""Deterministic ranking score for feed posts.

Combines a post's engagement counters, its author's follower count, a
mutual-follow bonus, and a linearly decaying freshness bonus into a single
integer score.  Higher is better; no normalization is applied.

Formula
-------
::

    days_ago  = floor((now - created_at) / 1 day)
    freshness = max(0, FRESHNESS_WINDOW_DAYS - days_ago) * FRESHNESS_WEIGHT

    score = like_count * 3 + view_count * 1 + comment_count * 2
          + share_count * 2 + follower_count * 2
          + (MUTUAL_BONUS if mutually connected else 0)
          + freshness

Counters that are ``None`` or negative contribute zero.  A ``created_at``
later than *now* counts as zero days old.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# ---------------------------------------------------------------------------
# Constants – single source of truth for weights
# ---------------------------------------------------------------------------

WEIGHTS: dict[str, int] = {
    "like_count": 3,
    "view_count": 1,
    "comment_count": 2,
    "share_count": 2,
    "follower_count": 2,
}

MUTUAL_BONUS = 5
FRESHNESS_WINDOW_DAYS = 30
FRESHNESS_WEIGHT = 3

_ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PostScore:
    """Post score with per-component breakdown for explainability.

    Attributes:
        score: Non-negative integer ranking score.
        breakdown: Mapping of component name → contribution.  Keys are the
            counter names from :data:`WEIGHTS` plus ``"mutual_bonus"`` and
            ``"freshness"``.
    """

    score: int
    breakdown: dict[str, int]


# ---------------------------------------------------------------------------
# Scoring function
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_since(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed between *created_at* and *now*, never negative."""
    elapsed = _as_utc(now) - _as_utc(created_at)
    return max(elapsed // _ONE_DAY, 0)


def freshness_bonus(created_at: datetime, now: datetime) -> int:
    """Linear decay from ``30 * 3`` for a brand-new post to 0 at 30 days."""
    remaining = FRESHNESS_WINDOW_DAYS - days_since(created_at, now)
    return max(0, remaining) * FRESHNESS_WEIGHT


def compute_post_score(
    *,
    created_at: datetime,
    now: datetime,
    like_count: int | None = None,
    view_count: int | None = None,
    comment_count: int | None = None,
    share_count: int | None = None,
    follower_count: int | None = None,
    is_author_mutually_connected: bool = False,
) -> PostScore:
    """Compute a deterministic ranking score for a single post.

    Pure function: the same inputs (including *now*) always produce the
    same :class:`PostScore`.
    """
    raw: dict[str, int] = {
        "like_count": like_count or 0,
        "view_count": view_count or 0,
        "comment_count": comment_count or 0,
        "share_count": share_count or 0,
        "follower_count": follower_count or 0,
    }

    breakdown: dict[str, int] = {
        signal: weight * max(raw[signal], 0)
        for signal, weight in WEIGHTS.items()
    }
    breakdown["mutual_bonus"] = MUTUAL_BONUS if is_author_mutually_connected else 0
    breakdown["freshness"] = freshness_bonus(created_at, now)

    return PostScore(score=sum(breakdown.values()), breakdown=breakdown)
