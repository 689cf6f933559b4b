"""
Finalization allocator: once-per-match commitment of final points.

For each completed match that is not yet captured:

1. Take the match lease and move points_status to 'processing'
   (refused if the match is already 'complete')
2. Load the tournament's points table; if missing, mark the match 'failed'
3. For each performance row with points_allocated = false:
   write the final score and set points_allocated = true, committing per row
   - any write failure marks the match 'failed' and stops at that row
4. When every row succeeded:
   - delete the match's live scores
   - archive the last raw scorecard (an existing archive is fine)
   - seed the empty bonus correction row
   - mark the match 'complete' and completed_and_captured

Writes are NOT transactional across rows. A failed or crashed run leaves the
rows it managed to write in place with points_allocated = true; the next run
picks up only the rows still false. Resuming is always safe; a match is
never atomically all-or-nothing.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dugout.db.models import Match, PerformanceRecord
from dugout.db.upserts import (
    archive_payload,
    delete_live_scores,
    ensure_bonus_placeholder,
    upsert_score_record,
)
from dugout.errors import ConfigMissing, DuplicateArchive, PersistenceError
from dugout.match_statuses import COMPLETED, GENERATION_FINAL, POINTS_COMPLETE
from dugout.scoring.config_store import load_points_rules
from dugout.scoring.rules import PerformanceStats, PointsRules, score
from dugout.services.lifecycle import MatchLifecycleTracker
from dugout.sync_log import SyncLogger
from dugout.tasks.leases import match_lease

logger = logging.getLogger(__name__)

# finalize_match() outcomes
OUTCOME_COMPLETE = "complete"
OUTCOME_FAILED = "failed"
OUTCOME_SKIPPED = "skipped"
OUTCOME_LEASED = "leased"
OUTCOME_NO_ROWS = "no_rows"


@dataclass
class FinalizationStats:
    matches_completed: int = 0
    matches_failed: int = 0
    matches_skipped: int = 0
    matches_leased: int = 0
    matches_without_rows: int = 0
    rows_allocated: int = 0
    live_scores_deleted: int = 0
    archives_written: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class FinalizationAllocator:
    """Commits final scores for completed matches."""

    def __init__(
        self,
        db: Session,
        *,
        owner: str,
        lease_seconds: int = 600,
        sync_logger: Optional[SyncLogger] = None,
    ):
        self.db = db
        self.owner = owner
        self.lease_seconds = lease_seconds
        self.sync_logger = sync_logger or SyncLogger(None, "finalize_points")
        self.tracker = MatchLifecycleTracker(db)
        self.stats = FinalizationStats()

    def pending_matches(self) -> list[Match]:
        return list(
            self.db.execute(
                select(Match)
                .where(
                    Match.state == COMPLETED,
                    Match.completed_and_captured.is_(False),
                    Match.points_status != POINTS_COMPLETE,
                )
                .order_by(Match.id)
            ).scalars()
        )

    def run(self) -> FinalizationStats:
        for match in self.pending_matches():
            outcome = self.finalize_match(match)
            if outcome == OUTCOME_COMPLETE:
                self.stats.matches_completed += 1
            elif outcome == OUTCOME_FAILED:
                self.stats.matches_failed += 1
            elif outcome == OUTCOME_LEASED:
                self.stats.matches_leased += 1
            elif outcome == OUTCOME_NO_ROWS:
                self.stats.matches_without_rows += 1
            else:
                self.stats.matches_skipped += 1
        self.sync_logger.log_sync_complete(self.stats.to_dict())
        return self.stats

    def finalize_match(self, match: Match) -> str:
        """Finalize one match and return the outcome name."""
        if match.points_status == POINTS_COMPLETE:
            return OUTCOME_SKIPPED

        match_id = match.id
        with match_lease(self.db, match_id, self.owner, self.lease_seconds) as acquired:
            if not acquired:
                logger.info("Match %s is leased by another run; skipping", match_id)
                return OUTCOME_LEASED

            records = self.db.execute(
                select(PerformanceRecord)
                .where(PerformanceRecord.match_id == match_id)
                .order_by(PerformanceRecord.id)
            ).scalars().all()
            if not records:
                logger.info("Match %s has no performance rows yet", match_id)
                return OUTCOME_NO_ROWS

            if not self.tracker.begin_processing(match_id):
                self.db.rollback()
                return OUTCOME_SKIPPED
            self.db.commit()

            try:
                rules = load_points_rules(self.db, match.tournament_id)
            except ConfigMissing as exc:
                self._fail(match_id, exc)
                return OUTCOME_FAILED

            for record in records:
                if record.points_allocated:
                    continue
                try:
                    self._allocate(record, rules)
                except PersistenceError as exc:
                    self._fail(match_id, exc)
                    return OUTCOME_FAILED
                self.stats.rows_allocated += 1

            try:
                self._complete(match)
            except SQLAlchemyError as exc:
                self.db.rollback()
                self._fail(match_id, exc)
                return OUTCOME_FAILED

        logger.info("Match %s finalized", match_id)
        return OUTCOME_COMPLETE

    def _allocate(self, record: PerformanceRecord, rules: PointsRules) -> None:
        """Write one final score and flag the row, committing both together."""
        breakdown = score(PerformanceStats.from_record(record), rules)
        try:
            upsert_score_record(
                self.db,
                match_id=record.match_id,
                player_id=record.player_id,
                tournament_id=record.tournament_id,
                generation=GENERATION_FINAL,
                breakdown=breakdown,
            )
            record.points_allocated = True
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(
                f"final score write failed for match {record.match_id} "
                f"player {record.player_id}: {exc}"
            ) from exc

    def _complete(self, match: Match) -> None:
        deleted = delete_live_scores(self.db, match.id)
        self.stats.live_scores_deleted += deleted

        if match.last_payload:
            try:
                archive_payload(
                    self.db,
                    match_id=match.id,
                    source=match.provider,
                    payload=match.last_payload,
                )
                self.stats.archives_written += 1
            except DuplicateArchive:
                logger.info("Archive already present for match %s", match.id)

        ensure_bonus_placeholder(self.db, match_id=match.id, tournament_id=match.tournament_id)
        self.tracker.mark_complete(match.id)
        self.db.commit()

    def _fail(self, match_id: int, error: Exception) -> None:
        self.tracker.mark_failed(match_id)
        self.db.commit()
        self.stats.errors.append(f"match {match_id}: {error}")
        self.sync_logger.log_error("finalize_match", error, match_id=match_id)
