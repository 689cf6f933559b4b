"""Tests for the structured sync audit log."""

from sqlalchemy import create_engine, select
from sqlalchemy.pool import StaticPool

from dugout.db.models import SyncLogEntry
from dugout.db.session import make_session_factory
from dugout.sync_log import SyncLogger


def test_events_are_written_with_run_id(session_factory, db_session):
    sync_logger = SyncLogger(session_factory, "finalize_points", sync_run_id="run-42")
    sync_logger.log_sync_start(matches=3)
    sync_logger.log_error("finalize_match", RuntimeError("boom"), match_id=7)
    sync_logger.log_sync_complete({"matches_completed": 2})

    entries = db_session.execute(select(SyncLogEntry).order_by(SyncLogEntry.id)).scalars().all()
    assert [e.level for e in entries] == ["info", "error", "info"]
    assert {e.sync_run_id for e in entries} == {"run-42"}
    assert entries[1].details["match_id"] == 7
    assert entries[1].details["error_type"] == "RuntimeError"
    assert entries[2].details["matches_completed"] == 2
    assert "duration_s" in entries[2].details
    assert sync_logger.write_failures == 0


def test_write_failure_never_raises():
    # No tables were created on this engine, so every insert fails
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    sync_logger = SyncLogger(make_session_factory(engine), "live_scores")

    sync_logger.log("info", "still running")
    sync_logger.log_no_scorecard(12)

    assert sync_logger.write_failures == 2
    engine.dispose()


def test_logger_without_store_only_mirrors(caplog):
    sync_logger = SyncLogger(None, "apply_bonuses")
    with caplog.at_level("INFO", logger="dugout.sync_log"):
        sync_logger.log("info", "hello")
    assert "[apply_bonuses] hello" in caplog.text
