"""
Per-match leases for overlapping pipeline runs.

A lease is a (owner, expiry) pair on the match row. Claiming is a single
conditional UPDATE, so two runs racing for the same match cannot both win.
An expired lease (crashed run) can be taken over by anyone.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from dugout.db.models import Match


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def claim_match(
    session: Session,
    match_id: int,
    owner: str,
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> bool:
    """
    Try to take the lease on a match. Commits immediately.

    Succeeds when the match is unclaimed, its lease expired, or ``owner``
    already holds it (which also extends the expiry).
    """
    now = now or _utc_now()
    result = session.execute(
        update(Match)
        .where(
            Match.id == match_id,
            or_(
                Match.lease_owner.is_(None),
                Match.lease_expires_at.is_(None),
                Match.lease_expires_at < now,
                Match.lease_owner == owner,
            ),
        )
        .values(lease_owner=owner, lease_expires_at=now + timedelta(seconds=ttl_seconds))
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return (result.rowcount or 0) == 1


def release_match(session: Session, match_id: int, owner: str) -> None:
    """Drop the lease if ``owner`` still holds it. Commits immediately."""
    session.execute(
        update(Match)
        .where(and_(Match.id == match_id, Match.lease_owner == owner))
        .values(lease_owner=None, lease_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    session.commit()


@contextmanager
def match_lease(
    session: Session,
    match_id: int,
    owner: str,
    ttl_seconds: int,
) -> Generator[bool, None, None]:
    """
    Hold a match lease for the life of this context.

    Yields:
        True if the lease was acquired; the body should skip the match otherwise.
    """
    acquired = claim_match(session, match_id, owner, ttl_seconds)
    try:
        yield acquired
    except Exception:
        session.rollback()
        raise
    finally:
        if acquired:
            release_match(session, match_id, owner)
