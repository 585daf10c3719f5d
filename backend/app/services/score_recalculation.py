"""Batch recalculation of ranking scores for every post.

Called periodically by the scheduler (and on demand from the admin API)
to keep ``Post.score`` fresh as engagement counters and the follow graph
evolve.

Each pass walks the posts table in id order, one page at a time.  For each
page it derives the authors' follower counts and which authors are in a
reciprocal follow with another author *of the same page*, scores every
post, and commits the page before moving on.  Mutual follows split across
pages are not detected; this is a known approximation of the batch window.

A pass has no pass-wide transaction: a failure mid-pass leaves earlier
pages with fresh scores and later pages stale until the next pass.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy.orm import Session

from backend.app.core.logging import (
    EVENT_SCORE_PAGE_PROCESSED,
    EVENT_SCORE_POST_SKIPPED,
    EVENT_SCORE_RUN_COMPLETED,
    EVENT_SCORE_RUN_FAILED,
    EVENT_SCORE_RUN_SKIPPED,
    EVENT_SCORE_RUN_STARTED,
    log_event,
)
from backend.app.services.post_repository import (
    existing_user_ids,
    fetch_post_page,
    follow_edges_among,
    follower_counts,
)
from backend.app.services.post_scoring import compute_post_score

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class RunOutcome(StrEnum):
    """How a recalculation pass ended."""

    completed = "completed"
    cancelled = "cancelled"
    deadline_exceeded = "deadline_exceeded"


@dataclass(frozen=True)
class RecalculationSummary:
    """Counters describing a finished (or stopped) recalculation pass."""

    outcome: RunOutcome
    pages: int
    scanned: int
    updated: int
    changed: int
    skipped: int


def find_mutual_authors(edges: Iterable[tuple[int, int]]) -> set[int]:
    """Return every user that appears in at least one reciprocal follow pair."""
    edge_set = set(edges)
    mutual: set[int] = set()
    for follower_id, following_id in edge_set:
        if (following_id, follower_id) in edge_set:
            mutual.add(follower_id)
            mutual.add(following_id)
    return mutual


def recalculate_all_scores(
    db: Session,
    *,
    now: datetime | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    should_stop: Callable[[], bool] | None = None,
    max_run_seconds: float | None = None,
) -> RecalculationSummary:
    """Recompute and persist the score of every post.

    Every post visited gets a new ``score`` and ``updated_score_at``; the
    page is committed before the next page is fetched.  *now* is taken
    once per pass so all posts age against the same instant.

    *should_stop* is polled between pages; *max_run_seconds* bounds the
    wall-clock time of the pass.  Either one ends the pass early with the
    matching :class:`RunOutcome`.

    Posts whose author row no longer exists are skipped and logged.

    This function is **idempotent**: unchanged inputs and the same *now*
    produce unchanged scores.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    now = now or datetime.now(UTC)
    deadline = time.monotonic() + max_run_seconds if max_run_seconds else None

    outcome = RunOutcome.completed
    pages = scanned = updated = changed = skipped = 0
    last_id = 0

    while True:
        if should_stop is not None and should_stop():
            outcome = RunOutcome.cancelled
            break
        if deadline is not None and time.monotonic() >= deadline:
            outcome = RunOutcome.deadline_exceeded
            break

        posts = fetch_post_page(db, after_id=last_id, limit=batch_size)
        if not posts:
            break

        author_ids = {post.author_id for post in posts}
        known_authors = existing_user_ids(db, author_ids)
        followers = follower_counts(db, known_authors)
        mutual_authors = find_mutual_authors(follow_edges_among(db, known_authors))

        page_updated = 0
        for post in posts:
            if post.author_id not in known_authors:
                log_event(
                    logger, "warning", EVENT_SCORE_POST_SKIPPED,
                    post_id=post.id,
                    author_id=post.author_id,
                    reason="author_not_found",
                )
                skipped += 1
                continue

            result = compute_post_score(
                created_at=post.created_at,
                now=now,
                like_count=post.like_count,
                view_count=post.view_count,
                comment_count=post.comment_count,
                share_count=post.share_count,
                follower_count=followers.get(post.author_id, 0),
                is_author_mutually_connected=post.author_id in mutual_authors,
            )
            if post.score != result.score:
                changed += 1
            post.score = result.score
            post.updated_score_at = now
            page_updated += 1

        last_id = posts[-1].id
        db.commit()

        pages += 1
        scanned += len(posts)
        updated += page_updated
        log_event(
            logger, "info", EVENT_SCORE_PAGE_PROCESSED,
            page=pages,
            size=len(posts),
            updated=page_updated,
            last_id=last_id,
        )

    summary = RecalculationSummary(
        outcome=outcome,
        pages=pages,
        scanned=scanned,
        updated=updated,
        changed=changed,
        skipped=skipped,
    )
    log_event(
        logger, "info", EVENT_SCORE_RUN_COMPLETED,
        outcome=outcome,
        pages=pages,
        scanned=scanned,
        updated=updated,
        changed=changed,
        skipped=skipped,
    )
    return summary


# ---------------------------------------------------------------------------
# Single-flight runner
# ---------------------------------------------------------------------------


class RunStatus(StrEnum):
    idle = "idle"
    running = "running"


@dataclass(frozen=True)
class RunState:
    """Snapshot of the runner's state, safe to hand to other threads."""

    status: RunStatus = RunStatus.idle
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_summary: RecalculationSummary | None = None
    last_error: str | None = None


class ScoreRecalculationRunner:
    """Run :func:`recalculate_all_scores` with at most one pass in flight.

    Triggers that arrive while a pass is running are skipped, not queued.
    Errors from a pass are logged and recorded in :attr:`state`; they never
    propagate to the trigger, so the next scheduled trigger starts a fresh
    pass from the first post.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_run_seconds: float | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._session_factory = session_factory
        self._batch_size = batch_size
        self._max_run_seconds = max_run_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._state = RunState()

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state.status is RunStatus.running

    def _try_acquire(self) -> bool:
        with self._lock:
            if self._state.status is RunStatus.running:
                return False
            self._state = replace(
                self._state,
                status=RunStatus.running,
                started_at=self._clock(),
                finished_at=None,
            )
            self._cancel.clear()
            return True

    def _release(
        self,
        summary: RecalculationSummary | None,
        error: str | None,
    ) -> None:
        with self._lock:
            self._state = replace(
                self._state,
                status=RunStatus.idle,
                finished_at=self._clock(),
                last_summary=summary if summary is not None else self._state.last_summary,
                last_error=error,
            )

    def run_once(self) -> RecalculationSummary | None:
        """Run one full pass in the calling thread.

        Returns the pass summary, or ``None`` if the pass was skipped
        because another one is running or if it failed.
        """
        if not self._try_acquire():
            log_event(
                logger, "warning", EVENT_SCORE_RUN_SKIPPED,
                reason="already_running",
                started_at=self.state.started_at,
            )
            return None
        return self._run_acquired()

    def _run_acquired(self) -> RecalculationSummary | None:
        summary: RecalculationSummary | None = None
        error: str | None = None
        log_event(
            logger, "info", EVENT_SCORE_RUN_STARTED,
            batch_size=self._batch_size,
            max_run_seconds=self._max_run_seconds,
        )
        db: Session | None = None
        try:
            db = self._session_factory()
            summary = recalculate_all_scores(
                db,
                now=self._clock(),
                batch_size=self._batch_size,
                should_stop=self._cancel.is_set,
                max_run_seconds=self._max_run_seconds,
            )
        except Exception as exc:
            if db is not None:
                db.rollback()
            error = f"{type(exc).__name__}: {exc}"
            log_event(logger, "exception", EVENT_SCORE_RUN_FAILED, error=error)
        finally:
            if db is not None:
                db.close()
            self._release(summary, error)
        return summary

    def trigger_in_background(self) -> bool:
        """Start a pass in a daemon thread and return immediately.

        Returns ``False`` (and starts nothing) if a pass is already running.
        """
        if not self._try_acquire():
            log_event(
                logger, "warning", EVENT_SCORE_RUN_SKIPPED,
                reason="already_running",
                started_at=self.state.started_at,
            )
            return False
        thread = threading.Thread(
            target=self._run_acquired,
            name="score-recalculation",
            daemon=True,
        )
        thread.start()
        return True

    def cancel(self) -> None:
        """Ask the running pass (if any) to stop after its current page."""
        self._cancel.set()
