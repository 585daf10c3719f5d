"""Tests for feed ordering and filtering in the post repository."""

from datetime import UTC, datetime, timedelta

import pytest
from backend.app.db.base import Base
from backend.app.models.feed import FeedType
from backend.app.models.post import Post, PostView
from backend.app.models.user import Follow, User
from backend.app.services.post_repository import (
    MAX_PAGE_SIZE,
    InvalidFeedRequestError,
    count_feed,
    list_feed,
)
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

_T1 = datetime(2025, 6, 1, 12, 0, 0)
_T2 = _T1 + timedelta(hours=1)
_T3 = _T1 + timedelta(hours=2)


@pytest.fixture()
def db() -> Session:  # type: ignore[misc]
    """Yield an in-memory SQLite session with the schema created."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


def _user(db: Session, name: str) -> User:
    user = User(name=name, created_at=_T1)
    db.add(user)
    db.flush()
    return user


def _post(
    db: Session,
    author: User,
    *,
    content: str = "text",
    score: int | None = 50,
    created_at: datetime = _T1,
) -> Post:
    """Insert a post directly with a preset score (bypass recalculation)."""
    post = Post(
        author_id=author.id,
        content=content,
        score=score,
        created_at=created_at,
    )
    db.add(post)
    db.flush()
    return post


def _view(db: Session, viewer: User, post: Post) -> None:
    db.add(PostView(post_id=post.id, viewer_id=viewer.id, viewed_at=datetime.now(UTC)))
    db.flush()


def _contents(posts: list[Post]) -> list[str]:
    return [p.content for p in posts]


# ---------------------------------------------------------------------------
# top
# ---------------------------------------------------------------------------


class TestTopFeed:
    def test_higher_scores_first(self, db: Session) -> None:
        author = _user(db, "a")
        _post(db, author, content="low", score=10)
        _post(db, author, content="high", score=90)
        _post(db, author, content="mid", score=50)
        db.commit()

        assert _contents(list_feed(db, FeedType.top)) == ["high", "mid", "low"]

    def test_unscored_posts_last(self, db: Session) -> None:
        author = _user(db, "a")
        _post(db, author, content="scored", score=30, created_at=_T1)
        _post(db, author, content="unscored", score=None, created_at=_T3)
        _post(db, author, content="zero", score=0, created_at=_T2)
        db.commit()

        assert _contents(list_feed(db, FeedType.top)) == ["scored", "zero", "unscored"]

    def test_equal_scores_tiebreak_by_created_at(self, db: Session) -> None:
        author = _user(db, "a")
        _post(db, author, content="older", score=50, created_at=_T1)
        _post(db, author, content="newer", score=50, created_at=_T2)
        db.commit()

        assert _contents(list_feed(db, FeedType.top)) == ["newer", "older"]

    def test_equal_score_and_date_tiebreak_by_id(self, db: Session) -> None:
        author = _user(db, "a")
        p1 = _post(db, author, score=50, created_at=_T1)
        p2 = _post(db, author, score=50, created_at=_T1)
        db.commit()

        assert [p.id for p in list_feed(db, FeedType.top)] == [p2.id, p1.id]

    def test_offset_and_limit(self, db: Session) -> None:
        author = _user(db, "a")
        for score in (90, 80, 70, 60):
            _post(db, author, content=str(score), score=score)
        db.commit()

        page = list_feed(db, FeedType.top, offset=1, limit=2)
        assert _contents(page) == ["80", "70"]
        assert count_feed(db, FeedType.top) == 4


# ---------------------------------------------------------------------------
# new / viewed ignore score
# ---------------------------------------------------------------------------


class TestChronologicalFeeds:
    def test_new_orders_by_created_at_only(self, db: Session) -> None:
        author = _user(db, "a")
        _post(db, author, content="old-popular", score=999, created_at=_T1)
        _post(db, author, content="fresh", score=1, created_at=_T3)
        _post(db, author, content="middle", score=None, created_at=_T2)
        db.commit()

        assert _contents(list_feed(db, FeedType.new)) == ["fresh", "middle", "old-popular"]

    def test_viewed_only_returns_seen_posts(self, db: Session) -> None:
        author = _user(db, "a")
        viewer = _user(db, "v")
        seen_old = _post(db, author, content="seen-old", score=999, created_at=_T1)
        seen_new = _post(db, author, content="seen-new", score=1, created_at=_T2)
        _post(db, author, content="unseen", created_at=_T3)
        _view(db, viewer, seen_old)
        _view(db, viewer, seen_new)
        db.commit()

        posts = list_feed(db, FeedType.viewed, viewer_id=viewer.id)
        assert _contents(posts) == ["seen-new", "seen-old"]
        assert count_feed(db, FeedType.viewed, viewer_id=viewer.id) == 2


# ---------------------------------------------------------------------------
# following / for-you
# ---------------------------------------------------------------------------


class TestViewerFeeds:
    def test_following_only_followed_authors_by_score(self, db: Session) -> None:
        viewer = _user(db, "viewer")
        followed = _user(db, "followed")
        stranger = _user(db, "stranger")
        db.add(Follow(follower_id=viewer.id, following_id=followed.id))
        _post(db, followed, content="f-low", score=5)
        _post(db, followed, content="f-high", score=500)
        _post(db, stranger, content="s", score=1000)
        db.commit()

        posts = list_feed(db, FeedType.following, viewer_id=viewer.id)
        assert _contents(posts) == ["f-high", "f-low"]

    def test_following_is_directional(self, db: Session) -> None:
        viewer = _user(db, "viewer")
        fan = _user(db, "fan")
        db.add(Follow(follower_id=fan.id, following_id=viewer.id))
        _post(db, fan, content="fan-post")
        db.commit()

        assert list_feed(db, FeedType.following, viewer_id=viewer.id) == []

    def test_for_you_hides_seen_and_own_posts(self, db: Session) -> None:
        viewer = _user(db, "viewer")
        author = _user(db, "author")
        seen = _post(db, author, content="seen", score=900)
        _post(db, author, content="unseen-low", score=10)
        _post(db, author, content="unseen-high", score=100)
        _post(db, viewer, content="own", score=1000)
        _view(db, viewer, seen)
        db.commit()

        posts = list_feed(db, FeedType.for_you, viewer_id=viewer.id)
        assert _contents(posts) == ["unseen-high", "unseen-low"]
        assert count_feed(db, FeedType.for_you, viewer_id=viewer.id) == 2

    def test_for_you_ignores_other_viewers_views(self, db: Session) -> None:
        viewer = _user(db, "viewer")
        other = _user(db, "other")
        author = _user(db, "author")
        post = _post(db, author, content="p")
        _view(db, other, post)
        db.commit()

        assert _contents(list_feed(db, FeedType.for_you, viewer_id=viewer.id)) == ["p"]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestInvalidRequests:
    @pytest.mark.parametrize(
        "feed_type", [FeedType.following, FeedType.for_you, FeedType.viewed],
    )
    def test_viewer_required(self, db: Session, feed_type: FeedType) -> None:
        with pytest.raises(InvalidFeedRequestError, match="viewer_id"):
            list_feed(db, feed_type)
        with pytest.raises(InvalidFeedRequestError):
            count_feed(db, feed_type)

    @pytest.mark.parametrize(
        ("offset", "limit"), [(-1, 10), (0, 0), (0, MAX_PAGE_SIZE + 1)],
    )
    def test_page_bounds(self, db: Session, offset: int, limit: int) -> None:
        with pytest.raises(InvalidFeedRequestError):
            list_feed(db, FeedType.top, offset=offset, limit=limit)

    def test_viewer_optional_for_public_feeds(self, db: Session) -> None:
        assert list_feed(db, FeedType.top) == []
        assert list_feed(db, FeedType.new) == []
