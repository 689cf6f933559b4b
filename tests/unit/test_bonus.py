"""Tests for late bonus corrections."""

import pytest
from sqlalchemy import select

from dugout.db.models import BonusCorrection, PerformanceRecord, PointsConfig, Tournament
from dugout.db.upserts import find_final_score, upsert_performance
from dugout.match_statuses import COMPLETED
from dugout.services.bonus import BonusCorrectionService
from dugout.services.finalization import FinalizationAllocator


@pytest.fixture
def finalized_match(db_session, points_config, make_match, make_player):
    """A finalized match whose batter scored 125 and bowler 190."""
    match = make_match(state=COMPLETED, last_payload={"data": {}})
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
    db_session.commit()
    FinalizationAllocator(db_session, owner="setup").finalize_match(match)
    return match, batter, bowler


def _award(session, match, player, potm=True, hattrick=0) -> BonusCorrection:
    bonus = session.execute(
        select(BonusCorrection).where(BonusCorrection.match_id == match.id)
    ).scalar_one()
    bonus.player_id = player.id
    bonus.potm = potm
    bonus.hattrick = hattrick
    session.commit()
    return bonus


def test_bonus_is_applied_once(db_session, finalized_match):
    match, _, bowler = finalized_match
    _award(db_session, match, bowler, potm=True, hattrick=1)

    service = BonusCorrectionService(db_session, owner="run-1")
    stats = service.run()
    assert stats.applied == 1

    final = find_final_score(db_session, match.id, bowler.id)
    assert final.bowling == 190
    assert final.bonus == 50 + 30
    assert final.total == 190 + 80

    record = db_session.execute(
        select(PerformanceRecord).where(PerformanceRecord.player_id == bowler.id)
    ).scalar_one()
    assert record.potm is True
    assert record.hattrick == 1

    db_session.expire_all()
    bonus = db_session.execute(select(BonusCorrection)).scalar_one()
    assert bonus.captured is True
    assert bonus.captured_at is not None

    again = BonusCorrectionService(db_session, owner="run-2").run()
    assert again.applied == 0
    assert find_final_score(db_session, match.id, bowler.id).total == 270


def test_captured_row_is_never_reapplied(db_session, finalized_match):
    match, batter, _ = finalized_match
    bonus = _award(db_session, match, batter, potm=True)
    bonus.captured = True
    db_session.commit()

    service = BonusCorrectionService(db_session, owner="run-1")
    assert service.pending() == []
    assert service.apply(bonus) is False

    final = find_final_score(db_session, match.id, batter.id)
    assert final.bonus == 0
    assert final.total == 125


def test_unfilled_bonus_row_is_not_pending(db_session, finalized_match):
    service = BonusCorrectionService(db_session, owner="run-1")
    assert service.pending() == []


def test_missing_final_score_leaves_row_pending(db_session, finalized_match, make_player):
    match, _, _ = finalized_match
    substitute = make_player("p7")
    _award(db_session, match, substitute, potm=True)

    service = BonusCorrectionService(db_session, owner="run-1")
    stats = service.run()

    assert stats.applied == 0
    assert stats.skipped_no_score == 1
    db_session.expire_all()
    bonus = db_session.execute(select(BonusCorrection)).scalar_one()
    assert bonus.captured is False
    assert find_final_score(db_session, match.id, substitute.id) is None


def test_points_table_comes_from_correction_tournament(db_session, finalized_match):
    match, batter, _ = finalized_match
    other = Tournament(name="Other Cup", provider="cricapi", external_id="series-2")
    db_session.add(other)
    db_session.flush()
    db_session.add(PointsConfig(tournament_id=other.id, bonus_potm=7))
    db_session.commit()

    bonus = _award(db_session, match, batter, potm=True)
    bonus.tournament_id = other.id
    db_session.commit()

    assert BonusCorrectionService(db_session, owner="run-1").run().applied == 1
    assert find_final_score(db_session, match.id, batter.id).bonus == 7


def test_missing_points_table_leaves_row_pending(db_session, finalized_match):
    match, batter, _ = finalized_match
    other = Tournament(name="Unconfigured", provider="cricapi", external_id="series-3")
    db_session.add(other)
    db_session.commit()

    bonus = _award(db_session, match, batter, potm=True)
    bonus.tournament_id = other.id
    db_session.commit()

    stats = BonusCorrectionService(db_session, owner="run-1").run()
    assert stats.skipped_no_config == 1
    db_session.expire_all()
    assert db_session.execute(select(BonusCorrection)).scalar_one().captured is False
