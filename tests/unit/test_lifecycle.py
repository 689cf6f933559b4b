"""Tests for match lifecycle and points-status transitions."""

import pytest
from sqlalchemy.exc import IntegrityError

from dugout.match_statuses import (
    COMPLETED,
    LIVE,
    NOT_STARTED,
    POINTS_COMPLETE,
    POINTS_FAILED,
    POINTS_PROCESSING,
    advance_state,
)
from dugout.services.lifecycle import MatchLifecycleTracker


def test_advance_state_is_monotonic():
    assert advance_state(NOT_STARTED, LIVE) == LIVE
    assert advance_state(LIVE, COMPLETED) == COMPLETED
    assert advance_state(NOT_STARTED, COMPLETED) == COMPLETED
    assert advance_state(COMPLETED, LIVE) == COMPLETED
    assert advance_state(LIVE, None) == LIVE
    assert advance_state(LIVE, "postponed") == LIVE
    assert advance_state(None, LIVE) == LIVE


def test_observe_tracks_currently_live(db_session, make_match):
    match = make_match(state=NOT_STARTED)
    tracker = MatchLifecycleTracker(db_session)

    assert tracker.observe(match, LIVE, "Team A opt to bat") is True
    assert match.state == LIVE
    assert match.currently_live is True
    assert match.status_text == "Team A opt to bat"

    assert tracker.observe(match, COMPLETED, "Team A won by 9 runs") is True
    assert match.state == COMPLETED
    assert match.currently_live is False


def test_observe_ignores_regressions(db_session, make_match):
    match = make_match(state=COMPLETED)
    tracker = MatchLifecycleTracker(db_session)

    assert tracker.observe(match, LIVE) is False
    assert match.state == COMPLETED
    assert match.currently_live is False


def test_points_status_transitions(db_session, make_match):
    match = make_match(state=COMPLETED)
    tracker = MatchLifecycleTracker(db_session)

    assert tracker.begin_processing(match.id) is True
    assert tracker.mark_failed(match.id) is True
    db_session.commit()
    db_session.refresh(match)
    assert match.points_status == POINTS_FAILED

    # failed may re-enter processing
    assert tracker.begin_processing(match.id) is True
    assert tracker.mark_complete(match.id) is True
    db_session.commit()
    db_session.refresh(match)
    assert match.points_status == POINTS_COMPLETE
    assert match.completed_and_captured is True

    # complete is final
    assert tracker.begin_processing(match.id) is False
    assert tracker.mark_failed(match.id) is False


def test_processing_refused_before_completion(db_session, make_match):
    match = make_match(state=LIVE)
    tracker = MatchLifecycleTracker(db_session)

    assert tracker.begin_processing(match.id) is False
    db_session.refresh(match)
    assert match.points_status != POINTS_PROCESSING


@pytest.mark.parametrize(
    "column, value",
    [("state", "abandoned"), ("points_status", "done")],
)
def test_match_rejects_unknown_status_values(db_session, make_match, column, value):
    match = make_match(state=LIVE)
    setattr(match, column, value)

    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()
