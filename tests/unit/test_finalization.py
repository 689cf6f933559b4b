"""Tests for the finalization allocator."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from dugout.db.models import BonusCorrection, MatchArchive, PerformanceRecord, ScoreRecord
from dugout.db.upserts import upsert_performance, upsert_score_record
from dugout.match_statuses import (
    COMPLETED,
    GENERATION_FINAL,
    GENERATION_LIVE,
    POINTS_COMPLETE,
    POINTS_FAILED,
    POINTS_NONE,
)
from dugout.scoring.rules import ScoreBreakdown
from dugout.services import finalization
from dugout.services.finalization import (
    OUTCOME_COMPLETE,
    OUTCOME_FAILED,
    OUTCOME_LEASED,
    OUTCOME_NO_ROWS,
    OUTCOME_SKIPPED,
    FinalizationAllocator,
)
from dugout.tasks.leases import claim_match

PAYLOAD = {"status": "success", "data": {"id": "m", "status": "Team A won by 4 runs"}}


@pytest.fixture
def completed_match(db_session, make_match, make_player):
    """A completed match with two performance rows and a stale live score."""
    match = make_match(state=COMPLETED, last_payload=PAYLOAD)
    batter = make_player("p1")
    bowler = make_player("p2")

    upsert_performance(
        db_session, match_id=match.id, player_id=batter.id, tournament_id=match.tournament_id,
        delta={"batting_runs": 55, "batting_balls_faced": 30, "batting_sixes": 2,
               "batting_strike_rate": 183.0, "batting_dismissal": "c A b B"},
    )
    upsert_performance(
        db_session, match_id=match.id, player_id=bowler.id, tournament_id=match.tournament_id,
        delta={"bowling_overs": 4.0, "bowling_wickets": 5, "bowling_maidens": 1,
               "bowling_economy": 6.0},
    )
    upsert_score_record(
        db_session, match_id=match.id, player_id=batter.id, tournament_id=match.tournament_id,
        generation=GENERATION_LIVE, breakdown=ScoreBreakdown(40, 0, 0, 0),
    )
    db_session.commit()
    return match, batter, bowler


def _final_scores(session, match_id) -> dict[int, ScoreRecord]:
    rows = session.execute(
        select(ScoreRecord).where(
            ScoreRecord.match_id == match_id,
            ScoreRecord.generation == GENERATION_FINAL,
        )
    ).scalars()
    return {row.player_id: row for row in rows}


def test_finalize_writes_final_scores_and_closes_match(db_session, points_config, completed_match):
    match, batter, bowler = completed_match
    allocator = FinalizationAllocator(db_session, owner="run-1")

    assert allocator.finalize_match(match) == OUTCOME_COMPLETE

    finals = _final_scores(db_session, match.id)
    assert finals[batter.id].batting == 125
    assert finals[batter.id].total == 125
    assert finals[bowler.id].bowling == 190

    db_session.expire_all()
    assert match.points_status == POINTS_COMPLETE
    assert match.completed_and_captured is True
    assert match.lease_owner is None

    allocated = db_session.scalars(select(PerformanceRecord.points_allocated)).all()
    assert allocated == [True, True]

    live_left = db_session.scalar(
        select(func.count(ScoreRecord.id)).where(ScoreRecord.generation == GENERATION_LIVE)
    )
    assert live_left == 0

    archive = db_session.execute(select(MatchArchive)).scalar_one()
    assert archive.snapshot_type == "post_match"
    assert archive.source == "cricapi"
    assert archive.payload == PAYLOAD

    bonus = db_session.execute(select(BonusCorrection)).scalar_one()
    assert bonus.match_id == match.id
    assert bonus.tournament_id == match.tournament_id
    assert bonus.player_id is None
    assert bonus.captured is False


def test_failed_row_aborts_match_and_retry_only_processes_remaining(
    db_session, points_config, completed_match, monkeypatch
):
    match, batter, bowler = completed_match
    real_upsert = finalization.upsert_score_record

    def failing_for_bowler(session, **kwargs):
        if kwargs["player_id"] == bowler.id:
            raise OperationalError("INSERT INTO score_records", {}, Exception("disk I/O error"))
        return real_upsert(session, **kwargs)

    monkeypatch.setattr(finalization, "upsert_score_record", failing_for_bowler)
    allocator = FinalizationAllocator(db_session, owner="run-1")
    assert allocator.finalize_match(match) == OUTCOME_FAILED

    db_session.expire_all()
    assert match.points_status == POINTS_FAILED
    assert match.completed_and_captured is False
    finals = _final_scores(db_session, match.id)
    assert set(finals) == {batter.id}
    assert db_session.scalar(select(func.count(MatchArchive.id))) == 0

    written = []

    def recording(session, **kwargs):
        written.append(kwargs["player_id"])
        return real_upsert(session, **kwargs)

    monkeypatch.setattr(finalization, "upsert_score_record", recording)
    retry = FinalizationAllocator(db_session, owner="run-2")
    assert retry.finalize_match(match) == OUTCOME_COMPLETE

    assert written == [bowler.id]
    assert set(_final_scores(db_session, match.id)) == {batter.id, bowler.id}
    db_session.expire_all()
    assert match.points_status == POINTS_COMPLETE


def test_rerun_after_completion_writes_nothing(db_session, points_config, completed_match, monkeypatch):
    match, _, _ = completed_match
    FinalizationAllocator(db_session, owner="run-1").run()

    written = []
    real_upsert = finalization.upsert_score_record

    def recording(session, **kwargs):
        written.append(kwargs["player_id"])
        return real_upsert(session, **kwargs)

    monkeypatch.setattr(finalization, "upsert_score_record", recording)
    allocator = FinalizationAllocator(db_session, owner="run-2")
    stats = allocator.run()

    assert allocator.pending_matches() == []
    assert stats.matches_completed == 0
    assert written == []
    db_session.expire_all()
    assert allocator.finalize_match(match) == OUTCOME_SKIPPED


def test_missing_points_config_marks_match_failed(db_session, completed_match):
    match, _, _ = completed_match
    allocator = FinalizationAllocator(db_session, owner="run-1")

    assert allocator.finalize_match(match) == OUTCOME_FAILED
    db_session.expire_all()
    assert match.points_status == POINTS_FAILED
    assert _final_scores(db_session, match.id) == {}
    assert allocator.stats.errors


def test_match_without_rows_waits(db_session, points_config, make_match):
    match = make_match(state=COMPLETED)
    allocator = FinalizationAllocator(db_session, owner="run-1")

    assert allocator.finalize_match(match) == OUTCOME_NO_ROWS
    db_session.expire_all()
    assert match.points_status == POINTS_NONE
    assert match.completed_and_captured is False


def test_existing_archive_is_not_an_error(db_session, points_config, completed_match):
    match, _, _ = completed_match
    db_session.add(MatchArchive(
        match_id=match.id, source="cricapi", snapshot_type="post_match", payload={"old": True},
    ))
    db_session.commit()

    allocator = FinalizationAllocator(db_session, owner="run-1")
    assert allocator.finalize_match(match) == OUTCOME_COMPLETE

    archives = db_session.execute(select(MatchArchive)).scalars().all()
    assert len(archives) == 1
    assert archives[0].payload == {"old": True}
    assert allocator.stats.archives_written == 0


def test_leased_match_is_left_alone(db_session, points_config, completed_match):
    match, _, _ = completed_match
    claim_match(db_session, match.id, "other-run", 600)

    allocator = FinalizationAllocator(db_session, owner="run-1")
    assert allocator.finalize_match(match) == OUTCOME_LEASED
    assert _final_scores(db_session, match.id) == {}


def test_existing_bonus_row_survives_refinalization(db_session, points_config, completed_match):
    match, batter, _ = completed_match
    db_session.add(BonusCorrection(
        match_id=match.id, tournament_id=match.tournament_id,
        player_id=batter.id, potm=True, hattrick=0, captured=False,
    ))
    db_session.commit()

    FinalizationAllocator(db_session, owner="run-1").finalize_match(match)

    bonus = db_session.execute(select(BonusCorrection)).scalar_one()
    assert bonus.player_id == batter.id
    assert bonus.potm is True
