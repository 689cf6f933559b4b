"""Tests for per-match leases."""

from datetime import datetime, timedelta

import pytest

from dugout.tasks.leases import claim_match, match_lease, release_match


def test_only_one_owner_holds_a_lease(db_session, make_match):
    match = make_match()

    assert claim_match(db_session, match.id, "run-a", 600) is True
    assert claim_match(db_session, match.id, "run-b", 600) is False
    # The holder may re-claim (extends the lease)
    assert claim_match(db_session, match.id, "run-a", 600) is True


def test_release_only_by_owner(db_session, make_match):
    match = make_match()
    claim_match(db_session, match.id, "run-a", 600)

    release_match(db_session, match.id, "run-b")
    assert claim_match(db_session, match.id, "run-b", 600) is False

    release_match(db_session, match.id, "run-a")
    assert claim_match(db_session, match.id, "run-b", 600) is True


def test_expired_lease_can_be_taken_over(db_session, make_match):
    match = make_match()
    t0 = datetime(2026, 4, 1, 12, 0, 0)

    assert claim_match(db_session, match.id, "crashed-run", 60, now=t0) is True
    assert claim_match(db_session, match.id, "run-b", 60, now=t0 + timedelta(seconds=30)) is False
    assert claim_match(db_session, match.id, "run-b", 60, now=t0 + timedelta(seconds=120)) is True


def test_match_lease_releases_on_exit(db_session, make_match):
    match = make_match()

    with match_lease(db_session, match.id, "run-a", 600) as acquired:
        assert acquired is True
        assert claim_match(db_session, match.id, "run-b", 600) is False

    db_session.refresh(match)
    assert match.lease_owner is None
    assert match.lease_expires_at is None


def test_match_lease_releases_after_error(db_session, make_match):
    match = make_match()

    with pytest.raises(RuntimeError):
        with match_lease(db_session, match.id, "run-a", 600):
            raise RuntimeError("boom")

    assert claim_match(db_session, match.id, "run-b", 600) is True


def test_match_lease_not_acquired_does_not_release_holder(db_session, make_match):
    match = make_match()
    claim_match(db_session, match.id, "run-a", 600)

    with match_lease(db_session, match.id, "run-b", 600) as acquired:
        assert acquired is False

    db_session.refresh(match)
    assert match.lease_owner == "run-a"
