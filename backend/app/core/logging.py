"""Structured logging baseline and event taxonomy.

Event taxonomy (minimum set)::

    app_start              — application process starting
    config_loaded          — settings resolved successfully
    db_initialized         — engine created, DB path resolved
    db_migration_started   — alembic upgrade beginning
    db_migration_succeeded — alembic upgrade completed
    db_migration_failed    — alembic upgrade error (with traceback)
    db_write_failed        — repository write error
    db_read_failed         — repository read error
    score_run_triggered    — admin endpoint asked for a recalculation pass
    score_run_started      — recalculation pass beginning
    score_page_processed   — one page of posts scored and written
    score_post_skipped     — post skipped (orphaned author)
    score_run_completed    — recalculation pass finished or stopped early
    score_run_failed       — recalculation pass aborted by an error
    score_run_skipped      — trigger ignored because a pass is running
    feed_served            — feed page returned to a caller

Rules:
    - Never log the system secret.
    - Log post ids and counts, not post content.

Usage::

    from backend.app.core.logging import log_event
    log_event(logger, "info", "score_run_started", batch_size=500)
"""

import logging
import sys

# Canonical event names for grep-ability and observability.
EVENT_APP_START = "app_start"
EVENT_CONFIG_LOADED = "config_loaded"
EVENT_DB_INITIALIZED = "db_initialized"
EVENT_DB_MIGRATION_STARTED = "db_migration_started"
EVENT_DB_MIGRATION_SUCCEEDED = "db_migration_succeeded"
EVENT_DB_MIGRATION_FAILED = "db_migration_failed"
EVENT_DB_WRITE_FAILED = "db_write_failed"
EVENT_DB_READ_FAILED = "db_read_failed"
EVENT_SCORE_RUN_TRIGGERED = "score_run_triggered"
EVENT_SCORE_RUN_STARTED = "score_run_started"
EVENT_SCORE_PAGE_PROCESSED = "score_page_processed"
EVENT_SCORE_POST_SKIPPED = "score_post_skipped"
EVENT_SCORE_RUN_COMPLETED = "score_run_completed"
EVENT_SCORE_RUN_FAILED = "score_run_failed"
EVENT_SCORE_RUN_SKIPPED = "score_run_skipped"
EVENT_FEED_SERVED = "feed_served"


_HANDLER_ATTR = "_feed_ranking"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logger with a simple structured format.

    Safe to call multiple times — only adds the handler once and
    restores it if Alembic's ``fileConfig()`` removes it.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Check if our handler is already attached
    for h in root.handlers:
        if getattr(h, _HANDLER_ATTR, False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


def log_event(
    logger: logging.Logger,
    level: str,
    event_name: str,
    **kwargs: object,
) -> None:
    """Emit a structured log line with consistent ``event_name: key=value`` format.

    Parameters
    ----------
    logger:
        The logger instance (provides the component via ``logger.name``).
    level:
        Log level name — ``"info"``, ``"warning"``, ``"error"``, or ``"exception"``.
    event_name:
        Canonical event name (e.g. ``"score_run_failed"``).
    **kwargs:
        Arbitrary key-value pairs appended as ``key=value``.
    """
    parts = " ".join(f"{k}={v}" for k, v in kwargs.items())
    message = f"{event_name}: {parts}" if parts else event_name
    log_fn = getattr(logger, level, logger.info)
    log_fn(message)
