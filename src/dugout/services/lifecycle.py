"""
Match lifecycle tracker.

Owns the two orthogonal pieces of match state:

- state: not_started -> live -> completed, driven only by provider reports
  and never moved backwards
- points_status: none -> processing -> complete | failed, driven by the
  finalization allocator; failed may re-enter processing, complete is final

The points_status transitions are conditional UPDATEs so a second run that
races in (or re-runs later) cannot re-open a completed match.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from dugout.db.models import Match
from dugout.match_statuses import (
    COMPLETED,
    LIVE,
    MATCH_STATES,
    POINTS_COMPLETE,
    POINTS_FAILED,
    POINTS_PROCESSING,
    advance_state,
    state_rank,
)

logger = logging.getLogger(__name__)


class MatchLifecycleTracker:
    """State transitions for Match rows. Never commits; callers own the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def observe(
        self,
        match: Match,
        reported_state: Optional[str],
        status_text: Optional[str] = None,
    ) -> bool:
        """
        Apply a provider-reported state to a match.

        Returns:
            True if the lifecycle state changed
        """
        previous = match.state
        new_state = advance_state(previous, reported_state)

        if (
            reported_state in MATCH_STATES
            and previous in MATCH_STATES
            and state_rank(reported_state) < state_rank(previous)
        ):
            logger.info(
                "Ignoring %s report for match %s already %s",
                reported_state, match.id, previous,
            )

        match.state = new_state
        match.currently_live = new_state == LIVE
        if status_text:
            match.status_text = status_text

        if new_state != previous:
            logger.info("Match %s: %s -> %s", match.id, previous, new_state)
            return True
        return False

    def begin_processing(self, match_id: int) -> bool:
        """
        Move a completed match into points processing.

        Refused (returns False) for matches already complete or not yet completed.
        """
        result = self.db.execute(
            update(Match)
            .where(
                Match.id == match_id,
                Match.state == COMPLETED,
                Match.points_status != POINTS_COMPLETE,
            )
            .values(points_status=POINTS_PROCESSING)
        )
        return (result.rowcount or 0) == 1

    def mark_complete(self, match_id: int) -> bool:
        """Finish processing: points complete and the match captured for good."""
        result = self.db.execute(
            update(Match)
            .where(Match.id == match_id, Match.points_status == POINTS_PROCESSING)
            .values(points_status=POINTS_COMPLETE, completed_and_captured=True)
        )
        return (result.rowcount or 0) == 1

    def mark_failed(self, match_id: int) -> bool:
        result = self.db.execute(
            update(Match)
            .where(Match.id == match_id, Match.points_status == POINTS_PROCESSING)
            .values(points_status=POINTS_FAILED)
        )
        return (result.rowcount or 0) == 1
