"""
Database module for Dugout.

Provides SQLAlchemy ORM models, session management, and natural-key upserts.

Usage:
    from dugout.db import session_scope, Match, PerformanceRecord

    with session_scope(factory) as session:
        live = session.query(Match).filter(Match.currently_live.is_(True)).all()
"""

from dugout.db.models import (
    Base,
    BonusCorrection,
    Match,
    MatchArchive,
    PerformanceRecord,
    PipelineRun,
    PipelineStageRun,
    Player,
    PointsConfig,
    ScoreRecord,
    SyncLogEntry,
    Tournament,
)
from dugout.db.session import create_db_engine, make_session_factory, session_scope

__all__ = [
    # Base
    "Base",
    # Models
    "BonusCorrection",
    "Match",
    "MatchArchive",
    "PerformanceRecord",
    "PipelineRun",
    "PipelineStageRun",
    "Player",
    "PointsConfig",
    "ScoreRecord",
    "SyncLogEntry",
    "Tournament",
    # Session
    "create_db_engine",
    "make_session_factory",
    "session_scope",
]
