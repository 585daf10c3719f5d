"""Lightweight repeating-job scheduler using stdlib threading.

Runs a callable at a fixed interval in a daemon thread.  Exceptions in the
job are logged but never propagate — the app continues running.

The score recalculation job runs once at startup and then every
``score_recalc_interval_seconds``.  Overlap protection lives in
:class:`ScoreRecalculationRunner`: a tick that fires while the previous
pass is still running is skipped.  Separate processes are not coordinated;
each one runs its own passes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from backend.app.core.settings import settings
from backend.app.db.session import SessionLocal
from backend.app.services.score_recalculation import ScoreRecalculationRunner

logger = logging.getLogger(__name__)


class RepeatingJob:
    """Execute *func* every *interval_seconds* in a background daemon thread.

    With *run_immediately* the first execution happens as soon as the job
    starts instead of after one interval.
    """

    def __init__(
        self,
        func: Callable[[], object],
        interval_seconds: float,
        *,
        run_immediately: bool = False,
    ) -> None:
        self._func = func
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._stop_event = threading.Event()
        self._timer: threading.Timer | None = None

    @property
    def _name(self) -> str:
        return getattr(self._func, "__name__", repr(self._func))

    def _run(self) -> None:
        if self._stop_event.is_set():
            return
        try:
            self._func()
        except Exception:
            logger.exception("repeating_job_error: job=%s", self._name)
        # Schedule next run regardless of success/failure
        self._schedule()

    def _schedule(self, delay: float | None = None) -> None:
        if self._stop_event.is_set():
            return
        self._timer = threading.Timer(
            self._interval if delay is None else delay, self._run,
        )
        self._timer.daemon = True
        self._timer.start()

    def start(self) -> None:
        """Start the repeating job."""
        logger.info(
            "repeating_job_started: job=%s interval=%ds run_immediately=%s",
            self._name,
            self._interval,
            self._run_immediately,
        )
        self._stop_event.clear()
        self._schedule(0 if self._run_immediately else None)

    def stop(self) -> None:
        """Signal the job to stop and cancel any pending timer."""
        self._stop_event.set()
        if self._timer is not None:
            self._timer.cancel()
        logger.info("repeating_job_stopped: job=%s", self._name)


# ---------------------------------------------------------------------------
# Module-level runner and scheduler for score recalculation
# ---------------------------------------------------------------------------

_score_runner = ScoreRecalculationRunner(
    SessionLocal,
    batch_size=settings.score_recalc_batch_size,
    max_run_seconds=settings.score_recalc_max_run_seconds,
)
_score_job: RepeatingJob | None = None


def get_score_runner() -> ScoreRecalculationRunner:
    """Return the process-wide score recalculation runner (FastAPI dependency)."""
    return _score_runner


def _run_score_recalculation() -> None:
    """Run one pass through the single-flight runner."""
    _score_runner.run_once()


def start_score_recalculation_scheduler(interval_seconds: int) -> None:
    """Start the background score recalculation job (first pass immediately)."""
    global _score_job  # noqa: PLW0603
    if _score_job is not None:
        _score_job.stop()
    _score_job = RepeatingJob(
        _run_score_recalculation, interval_seconds, run_immediately=True,
    )
    _score_job.start()


def stop_score_recalculation_scheduler() -> None:
    """Stop the background job and ask any in-flight pass to stop."""
    global _score_job  # noqa: PLW0603
    if _score_job is not None:
        _score_job.stop()
        _score_job = None
    _score_runner.cancel()
