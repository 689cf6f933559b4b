"""
Natural-key upserts for the pipeline tables.

Every write the pipeline makes goes through one of these helpers. Each looks
up the row by its composite key, updates it in place if found, otherwise adds
a new row. Nothing here commits: callers decide the transaction boundary.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dugout.db.models import (
    BonusCorrection,
    MatchArchive,
    PerformanceRecord,
    ScoreRecord,
)
from dugout.errors import DuplicateArchive
from dugout.match_statuses import GENERATION_FINAL, GENERATION_LIVE
from dugout.scoring.normalizer import PERFORMANCE_FIELDS, merge
from dugout.scoring.rules import ScoreBreakdown

logger = logging.getLogger(__name__)

POST_MATCH_SNAPSHOT = "post_match"


def performance_values(record: PerformanceRecord) -> dict[str, Any]:
    """Snapshot the mergeable counters of a stored performance row."""
    return {name: getattr(record, name) for name in PERFORMANCE_FIELDS}


def upsert_performance(
    session: Session,
    *,
    match_id: int,
    player_id: int,
    tournament_id: int,
    delta: Mapping[str, Any],
) -> PerformanceRecord:
    """
    Merge ``delta`` into the (match, player) performance row.

    Fields absent from ``delta`` keep their stored values; a new row gets
    defaults for everything the delta does not carry.
    """
    record = session.execute(
        select(PerformanceRecord)
        .where(
            PerformanceRecord.match_id == match_id,
            PerformanceRecord.player_id == player_id,
        )
        .with_for_update()
    ).scalar_one_or_none()

    existing = performance_values(record) if record is not None else None
    merged = merge(existing, delta)

    if record is None:
        record = PerformanceRecord(
            match_id=match_id,
            player_id=player_id,
            tournament_id=tournament_id,
        )
        session.add(record)

    for name, value in merged.items():
        setattr(record, name, value)
    record.updated_at = datetime.utcnow()

    session.flush()
    return record


def upsert_score_record(
    session: Session,
    *,
    match_id: int,
    player_id: int,
    tournament_id: int,
    generation: str,
    breakdown: ScoreBreakdown,
) -> ScoreRecord:
    """Write category scores for (match, player, generation), replacing any prior values."""
    score = session.execute(
        select(ScoreRecord).where(
            ScoreRecord.match_id == match_id,
            ScoreRecord.player_id == player_id,
            ScoreRecord.generation == generation,
        )
    ).scalar_one_or_none()

    if score is None:
        score = ScoreRecord(
            match_id=match_id,
            player_id=player_id,
            tournament_id=tournament_id,
            generation=generation,
        )
        session.add(score)

    score.batting = breakdown.batting
    score.bowling = breakdown.bowling
    score.fielding = breakdown.fielding
    score.bonus = breakdown.bonus
    score.total = breakdown.total
    score.updated_at = datetime.utcnow()

    session.flush()
    return score


def delete_live_scores(session: Session, match_id: int) -> int:
    """Remove the provisional score rows for a match. Returns rows deleted."""
    result = session.execute(
        delete(ScoreRecord).where(
            ScoreRecord.match_id == match_id,
            ScoreRecord.generation == GENERATION_LIVE,
        )
    )
    return result.rowcount or 0


def ensure_bonus_placeholder(
    session: Session,
    *,
    match_id: int,
    tournament_id: int,
) -> BonusCorrection:
    """
    Get or create the match's bonus correction row.

    An existing row is returned untouched so operator-entered values and the
    captured flag survive a repeated finalization.
    """
    bonus = session.execute(
        select(BonusCorrection).where(BonusCorrection.match_id == match_id)
    ).scalar_one_or_none()
    if bonus is not None:
        return bonus

    bonus = BonusCorrection(
        match_id=match_id,
        tournament_id=tournament_id,
        player_id=None,
        potm=False,
        hattrick=0,
        captured=False,
    )
    session.add(bonus)
    session.flush()
    return bonus


def archive_payload(
    session: Session,
    *,
    match_id: int,
    source: str,
    payload: dict,
    snapshot_type: str = POST_MATCH_SNAPSHOT,
) -> MatchArchive:
    """
    Append a raw payload snapshot for a match.

    Runs inside a savepoint so a uniqueness conflict only undoes the insert.

    Raises:
        DuplicateArchive: a snapshot of this type already exists
    """
    archive = MatchArchive(
        match_id=match_id,
        source=source,
        snapshot_type=snapshot_type,
        payload=payload,
    )
    try:
        with session.begin_nested():
            session.add(archive)
            session.flush()
    except IntegrityError as exc:
        raise DuplicateArchive(match_id, snapshot_type) from exc
    return archive


def find_final_score(
    session: Session,
    match_id: int,
    player_id: int,
) -> Optional[ScoreRecord]:
    """Return the committed (final generation) score row if one exists."""
    return session.execute(
        select(ScoreRecord).where(
            ScoreRecord.match_id == match_id,
            ScoreRecord.player_id == player_id,
            ScoreRecord.generation == GENERATION_FINAL,
        )
    ).scalar_one_or_none()
