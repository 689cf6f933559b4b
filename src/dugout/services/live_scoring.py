"""
Live scorer: provisional points for matches in progress.

Every pass is a full recompute from the current performance rows into the
'live' score generation, replacing whatever the previous pass wrote. It only
reads performance rows and only writes live scores, so it can run alongside
ingestion.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dugout.db.models import Match, PerformanceRecord
from dugout.db.upserts import upsert_score_record
from dugout.errors import ConfigMissing
from dugout.match_statuses import GENERATION_LIVE, LIVE
from dugout.scoring.config_store import PointsRulesCache
from dugout.scoring.rules import PerformanceStats, score
from dugout.sync_log import SyncLogger

logger = logging.getLogger(__name__)


@dataclass
class LiveScoringStats:
    matches_scored: int = 0
    scores_written: int = 0
    matches_skipped_no_config: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LiveScorer:
    """Recomputes live-generation scores for every live match."""

    def __init__(self, db: Session, sync_logger: Optional[SyncLogger] = None):
        self.db = db
        self.sync_logger = sync_logger or SyncLogger(None, "live_scores")
        self.rules = PointsRulesCache(db)
        self.stats = LiveScoringStats()

    def live_matches(self) -> list[Match]:
        return list(
            self.db.execute(
                select(Match).where(Match.state == LIVE).order_by(Match.id)
            ).scalars()
        )

    def run(self) -> LiveScoringStats:
        for match in self.live_matches():
            self.score_match(match)
        self.sync_logger.log_sync_complete(self.stats.to_dict())
        return self.stats

    def score_match(self, match: Match) -> int:
        """Rewrite live scores for one match. Returns the number of rows written."""
        try:
            rules = self.rules.get(match.tournament_id)
        except ConfigMissing as exc:
            self.stats.matches_skipped_no_config += 1
            logger.warning("Skipping live scores for match %s: %s", match.id, exc)
            return 0

        records = self.db.execute(
            select(PerformanceRecord)
            .where(PerformanceRecord.match_id == match.id)
            .order_by(PerformanceRecord.id)
        ).scalars().all()

        written = 0
        try:
            for record in records:
                upsert_score_record(
                    self.db,
                    match_id=match.id,
                    player_id=record.player_id,
                    tournament_id=record.tournament_id,
                    generation=GENERATION_LIVE,
                    breakdown=score(PerformanceStats.from_record(record), rules),
                )
                written += 1
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.stats.errors.append(f"match {match.id}: {exc}")
            self.sync_logger.log_error("live_scores", exc, match_id=match.id)
            return 0

        self.stats.matches_scored += 1
        self.stats.scores_written += written
        return written
