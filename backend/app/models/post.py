"""SQLAlchemy ORM models for posts and per-viewer post views."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class Post(Base):
    """A post with its engagement counters and cached ranking score.

    ``score`` and ``updated_score_at`` are written only by the score
    recalculation job; they may lag behind the counters between passes.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_author_id", "author_id"),
        Index("ix_posts_created_at", "created_at"),
        Index("ix_posts_score_created_at", "score", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    like_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    comment_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    share_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_score_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True,
    )


class PostView(Base):
    """Records that *viewer_id* has seen *post_id* (one row per pair)."""

    __tablename__ = "post_views"
    __table_args__ = (
        Index("ix_post_views_viewer_id", "viewer_id"),
    )

    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True,
    )
    viewer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    viewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
