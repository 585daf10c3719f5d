"""Administrative endpoints for the score recalculation job.

Every route requires the ``X-System-Secret`` header to match the
configured ``SYSTEM_SECRET``.
"""

import logging
import secrets
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Header, HTTPException

from backend.app.core.logging import EVENT_SCORE_RUN_TRIGGERED, log_event
from backend.app.core.scheduler import get_score_runner
from backend.app.core.settings import settings
from backend.app.models.admin import (
    RecalculationStatusResponse,
    RecalculationTriggerResponse,
)
from backend.app.services.score_recalculation import ScoreRecalculationRunner

logger = logging.getLogger(__name__)


def require_system_secret(
    x_system_secret: str | None = Header(None),
) -> None:
    """Reject the request unless the system secret header matches."""
    if not settings.is_admin_configured:
        logger.error("admin_auth_failed: reason=system_secret_not_configured")
        raise HTTPException(status_code=500, detail="System secret is not configured")
    expected = settings.system_secret.get_secret_value()  # type: ignore[union-attr]
    if x_system_secret is None or not secrets.compare_digest(x_system_secret, expected):
        logger.warning("admin_auth_failed: reason=bad_secret")
        raise HTTPException(status_code=403, detail="Access denied")


router = APIRouter(dependencies=[Depends(require_system_secret)])


@router.post(
    "/api/v1/admin/recalculate-scores",
    response_model=RecalculationTriggerResponse,
    status_code=202,
)
def recalculate_scores(
    runner: ScoreRecalculationRunner = Depends(get_score_runner),
) -> RecalculationTriggerResponse:
    """Start a recalculation pass in the background and return immediately."""
    started = runner.trigger_in_background()
    log_event(logger, "info", EVENT_SCORE_RUN_TRIGGERED, source="admin_api", started=started)
    message = (
        "Score recalculation started in the background"
        if started
        else "Score recalculation is already running"
    )
    return RecalculationTriggerResponse(
        started=started,
        message=message,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/api/v1/admin/recalculate-scores/status",
    response_model=RecalculationStatusResponse,
)
def recalculation_status(
    runner: ScoreRecalculationRunner = Depends(get_score_runner),
) -> RecalculationStatusResponse:
    """Return the runner state and the last pass summary."""
    return RecalculationStatusResponse.from_state(runner.state)
