"""Pydantic models for the administrative score-recalculation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from backend.app.services.score_recalculation import RunOutcome, RunState, RunStatus


class RecalculationTriggerResponse(BaseModel):
    """Acknowledgement that a pass was (or was not) started.

    The response never reports whether the pass succeeded.
    """

    started: bool
    message: str
    timestamp: datetime


class RecalculationSummaryOut(BaseModel):
    outcome: RunOutcome
    pages: int
    scanned: int
    updated: int
    changed: int
    skipped: int


class RecalculationStatusResponse(BaseModel):
    """Current runner state plus the result of the last finished pass."""

    status: RunStatus
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_summary: RecalculationSummaryOut | None = None
    last_error: str | None = None

    @classmethod
    def from_state(cls, state: RunState) -> RecalculationStatusResponse:
        summary = state.last_summary
        return cls(
            status=state.status,
            started_at=state.started_at,
            finished_at=state.finished_at,
            last_summary=(
                RecalculationSummaryOut(
                    outcome=summary.outcome,
                    pages=summary.pages,
                    scanned=summary.scanned,
                    updated=summary.updated,
                    changed=summary.changed,
                    skipped=summary.skipped,
                )
                if summary is not None
                else None
            ),
            last_error=state.last_error,
        )
