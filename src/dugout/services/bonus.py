"""
Bonus corrections: late POTM / hat-trick awards on finalized scores.

Finalization seeds one empty bonus_corrections row per match. Once an
operator fills in player_id (plus potm / hattrick), this service:

1. writes the award onto the player's performance row
2. recomputes the bonus category from the tournament's points table
3. rewrites the final score as batting + bowling + fielding + new bonus
4. flips captured to true

All four steps commit together per row. Anything that goes wrong rolls the
row back and leaves captured = false, so the next poll retries it. A row
with captured = true is never read for update again.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dugout.db.models import BonusCorrection
from dugout.db.upserts import find_final_score, upsert_performance, upsert_score_record
from dugout.errors import ConfigMissing
from dugout.match_statuses import GENERATION_FINAL
from dugout.scoring.config_store import load_points_rules
from dugout.scoring.normalizer import bonus_delta
from dugout.scoring.rules import ScoreBreakdown, bonus_points
from dugout.sync_log import SyncLogger
from dugout.tasks.leases import match_lease

logger = logging.getLogger(__name__)


@dataclass
class BonusStats:
    applied: int = 0
    skipped_no_score: int = 0
    skipped_no_config: int = 0
    skipped_leased: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BonusCorrectionService:
    """Applies pending bonus corrections exactly once."""

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
        self.sync_logger = sync_logger or SyncLogger(None, "apply_bonuses")
        self.stats = BonusStats()

    def pending(self) -> list[BonusCorrection]:
        return list(
            self.db.execute(
                select(BonusCorrection)
                .where(
                    BonusCorrection.captured.is_(False),
                    BonusCorrection.player_id.is_not(None),
                )
                .order_by(BonusCorrection.id)
            ).scalars()
        )

    def run(self) -> BonusStats:
        for bonus in self.pending():
            self.apply(bonus)
        self.sync_logger.log_sync_complete(self.stats.to_dict())
        return self.stats

    def apply(self, bonus: BonusCorrection) -> bool:
        """
        Apply one correction.

        Returns:
            True if the correction was applied and captured
        """
        if bonus.captured or bonus.player_id is None:
            return False

        bonus_id = bonus.id
        match_id = bonus.match_id
        with match_lease(self.db, match_id, self.owner, self.lease_seconds) as acquired:
            if not acquired:
                self.stats.skipped_leased += 1
                return False
            try:
                applied = self._apply_locked(bonus_id)
            except ConfigMissing as exc:
                self.db.rollback()
                self.stats.skipped_no_config += 1
                self.sync_logger.log_error("apply_bonus", exc, match_id=match_id)
                return False
            except SQLAlchemyError as exc:
                self.db.rollback()
                self.stats.errors.append(f"bonus {bonus_id}: {exc}")
                self.sync_logger.log_error("apply_bonus", exc, match_id=match_id)
                return False

        if applied:
            self.stats.applied += 1
        return applied

    def _apply_locked(self, bonus_id: int) -> bool:
        bonus = self.db.get(BonusCorrection, bonus_id, populate_existing=True)
        if bonus is None or bonus.captured or bonus.player_id is None:
            return False

        # The correction row carries its own tournament; never borrow one from elsewhere
        tournament_id = bonus.tournament_id
        rules = load_points_rules(self.db, tournament_id)

        final = find_final_score(self.db, bonus.match_id, bonus.player_id)
        if final is None:
            self.stats.skipped_no_score += 1
            logger.warning(
                "No final score for player %s in match %s; bonus %s left pending",
                bonus.player_id, bonus.match_id, bonus_id,
            )
            self.db.rollback()
            return False

        upsert_performance(
            self.db,
            match_id=bonus.match_id,
            player_id=bonus.player_id,
            tournament_id=tournament_id,
            delta=bonus_delta(bonus.potm, bonus.hattrick),
        )

        breakdown = ScoreBreakdown(
            batting=final.batting,
            bowling=final.bowling,
            fielding=final.fielding,
            bonus=bonus_points(bonus.potm, bonus.hattrick, rules),
        )
        upsert_score_record(
            self.db,
            match_id=bonus.match_id,
            player_id=bonus.player_id,
            tournament_id=tournament_id,
            generation=GENERATION_FINAL,
            breakdown=breakdown,
        )

        claimed = self.db.execute(
            update(BonusCorrection)
            .where(BonusCorrection.id == bonus_id, BonusCorrection.captured.is_(False))
            .values(
                captured=True,
                captured_at=datetime.now(timezone.utc).replace(tzinfo=None),
            )
        )
        if (claimed.rowcount or 0) != 1:
            self.db.rollback()
            return False

        self.db.commit()
        logger.info(
            "Applied bonus to player %s in match %s: %d points",
            bonus.player_id, bonus.match_id, breakdown.bonus,
        )
        return True
