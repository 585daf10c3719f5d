"""Tests for the structured logging baseline and event taxonomy.

Covers:
  - Logs include event_name and component
  - Secrets do not appear in output
  - Only ids/counts logged, not post content
  - db_read_failed / db_write_failed include error_category
"""

import logging
from datetime import UTC, datetime

import pytest
from backend.app.core.logging import (
    EVENT_APP_START,
    EVENT_CONFIG_LOADED,
    EVENT_DB_INITIALIZED,
    EVENT_DB_MIGRATION_FAILED,
    EVENT_DB_MIGRATION_STARTED,
    EVENT_DB_MIGRATION_SUCCEEDED,
    EVENT_DB_READ_FAILED,
    EVENT_DB_WRITE_FAILED,
    EVENT_FEED_SERVED,
    EVENT_SCORE_PAGE_PROCESSED,
    EVENT_SCORE_POST_SKIPPED,
    EVENT_SCORE_RUN_COMPLETED,
    EVENT_SCORE_RUN_FAILED,
    EVENT_SCORE_RUN_SKIPPED,
    EVENT_SCORE_RUN_STARTED,
    EVENT_SCORE_RUN_TRIGGERED,
    log_event,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------


class TestLogEventFormat:
    def test_log_event_emits_event_name(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.component")
        with caplog.at_level(logging.INFO):
            log_event(test_logger, "info", "test_event", key="value")
        assert "test_event" in caplog.text

    def test_log_event_includes_kwargs(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.component")
        with caplog.at_level(logging.INFO):
            log_event(test_logger, "info", "my_event", foo="bar", count=42)
        assert "my_event: foo=bar count=42" in caplog.text

    def test_log_event_without_kwargs(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.component")
        with caplog.at_level(logging.INFO):
            log_event(test_logger, "info", "bare_event")
        assert caplog.records[0].getMessage() == "bare_event"

    def test_log_event_component_in_record(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("backend.app.services.score_recalculation")
        with caplog.at_level(logging.INFO):
            log_event(test_logger, "info", "test_event")
        assert any(
            r.name == "backend.app.services.score_recalculation"
            for r in caplog.records
        )

    def test_log_event_warning_level(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.warn")
        with caplog.at_level(logging.WARNING):
            log_event(test_logger, "warning", "warn_event", detail="x")
        assert caplog.records[0].levelname == "WARNING"

    def test_unknown_level_falls_back_to_info(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.fallback")
        with caplog.at_level(logging.INFO):
            log_event(test_logger, "no_such_level", "fallback_event")
        assert caplog.records[0].levelname == "INFO"


class TestSetupLogging:
    def test_handler_added_once(self) -> None:
        root = logging.getLogger()
        setup_logging()
        setup_logging()
        ours = [h for h in root.handlers if getattr(h, "_feed_ranking", False)]
        assert len(ours) == 1


# ---------------------------------------------------------------------------
# Content and secrets
# ---------------------------------------------------------------------------


class TestContentNotLogged:
    def test_recalculation_logs_ids_not_content(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        from backend.app.db.base import Base
        from backend.app.models.post import Post
        from backend.app.services.score_recalculation import recalculate_all_scores
        from sqlalchemy import create_engine
        from sqlalchemy.orm import sessionmaker

        engine = create_engine("sqlite:///:memory:")
        Base.metadata.create_all(engine)
        db = sessionmaker(bind=engine)()
        db.add(Post(
            author_id=123,
            content="a private message about my weekend",
            created_at=datetime(2025, 6, 1),
        ))
        db.commit()

        with caplog.at_level(logging.INFO):
            recalculate_all_scores(db, now=datetime(2025, 6, 2, tzinfo=UTC))
        db.close()

        assert "author_id=123" in caplog.text
        assert "private message" not in caplog.text


class TestDbFailureCategory:
    def test_log_event_with_error_category(
        self, caplog: pytest.LogCaptureFixture,
    ) -> None:
        test_logger = logging.getLogger("test.db")
        with caplog.at_level(logging.ERROR):
            log_event(
                test_logger, "error", "db_read_failed",
                operation="list_feed", error_category="db",
            )
        assert "db_read_failed" in caplog.text
        assert "error_category=db" in caplog.text
        assert "operation=list_feed" in caplog.text


# ---------------------------------------------------------------------------
# Event taxonomy completeness
# ---------------------------------------------------------------------------


class TestEventTaxonomy:
    def test_all_events_defined(self) -> None:
        assert EVENT_APP_START == "app_start"
        assert EVENT_CONFIG_LOADED == "config_loaded"
        assert EVENT_DB_INITIALIZED == "db_initialized"
        assert EVENT_DB_MIGRATION_STARTED == "db_migration_started"
        assert EVENT_DB_MIGRATION_SUCCEEDED == "db_migration_succeeded"
        assert EVENT_DB_MIGRATION_FAILED == "db_migration_failed"
        assert EVENT_DB_WRITE_FAILED == "db_write_failed"
        assert EVENT_DB_READ_FAILED == "db_read_failed"
        assert EVENT_SCORE_RUN_TRIGGERED == "score_run_triggered"
        assert EVENT_SCORE_RUN_STARTED == "score_run_started"
        assert EVENT_SCORE_PAGE_PROCESSED == "score_page_processed"
        assert EVENT_SCORE_POST_SKIPPED == "score_post_skipped"
        assert EVENT_SCORE_RUN_COMPLETED == "score_run_completed"
        assert EVENT_SCORE_RUN_FAILED == "score_run_failed"
        assert EVENT_SCORE_RUN_SKIPPED == "score_run_skipped"
        assert EVENT_FEED_SERVED == "feed_served"
