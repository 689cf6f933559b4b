"""
SQLAlchemy ORM models for Dugout.

This module defines all database tables and their relationships.
The schema is built around natural composite keys so that every write in
the pipeline can be an upsert, and around per-row boolean flags that act
as checkpoints for resumable processing.

Key design decisions:
- A match is bound to exactly one provider for its lifetime
- Players are scoped per (tournament, provider, external id)
- Performance rows are merged field-wise, never blindly overwritten
- Score rows exist in two generations: 'live' (provisional) and 'final'
- Convergence flags (points_allocated, completed_and_captured, captured)
  are the only record of what work remains

Tables:
- tournaments: Scoping entity, bound to one provider
- points_configs: Per-tournament fantasy points table
- matches: Fixtures through their full lifecycle
- players: Provider players, created lazily
- performance_records: Raw batting/bowling/fielding counters per (match, player)
- score_records: Computed category scores per (match, player, generation)
- bonus_corrections: Late POTM/hat-trick awards, one per match
- match_archives: Immutable raw provider payload snapshots
- sync_log: Structured audit trail of pipeline runs
- pipeline_runs / pipeline_stage_runs: Orchestrator run records
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from dugout.match_statuses import (
    MATCH_STATES,
    NOT_STARTED,
    POINTS_NONE,
    POINTS_STATUSES,
    SCORE_GENERATIONS,
)

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _one_of(column: str, values: tuple[str, ...]) -> str:
    """SQL text for a CHECK that pins a string column to a fixed set."""
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# =============================================================================
# Tournaments & Points Tables
# =============================================================================

class Tournament(Base):
    """
    A competition whose matches are scored with one points table.

    The provider reference fields depend on the provider: CricAPI identifies
    a series by external_id alone, SportMonks needs league_id + season_id.
    """
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    league_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    season_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # 'upcoming', 'in_progress', 'completed'
    status: Mapped[str] = mapped_column(String(20), default="upcoming", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    points_config: Mapped[Optional["PointsConfig"]] = relationship(
        back_populates="tournament",
        uselist=False,
    )
    matches: Mapped[list["Match"]] = relationship(back_populates="tournament")

    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_tournament_provider_external"),
    )

    def __repr__(self) -> str:
        return f"<Tournament(id={self.id}, name='{self.name}', provider='{self.provider}')>"


class PointsConfig(Base):
    """
    Fantasy points weights for one tournament.

    Created by an operator before the tournament starts. Penalties
    (duck, slow strike rate, expensive bowling) are stored as negative numbers.
    """
    __tablename__ = "points_configs"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Batting
    batting_runs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_six: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_duck: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_fastrr: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_slowrr: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_30: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_50: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_100: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_200: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Bowling
    bowling_wicket: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_maiden: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_noballswides: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_lower: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_higher: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_3wickets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_5wickets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Fielding
    fielding_catch: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fielding_runout: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fielding_stumping: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Bonus awards
    bonus_potm: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bonus_hattrick: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tournament: Mapped["Tournament"] = relationship(back_populates="points_config")

    def __repr__(self) -> str:
        return f"<PointsConfig(tournament_id={self.tournament_id})>"


# =============================================================================
# Matches
# =============================================================================

class Match(Base):
    """
    A fixture through its whole lifecycle.

    Lifecycle:
        not_started -> live -> completed   (monotonic, provider driven)

    Finalization:
        points_status: none -> processing -> complete | failed
        completed_and_captured is set once, after finalization succeeds.

    lease_owner / lease_expires_at implement a per-match claim so two
    overlapping runs never work on the same match at once.
    """
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # Schedule data
    name: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    match_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    team1: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    team2: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    team1_ref: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    team2_ref: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    venue: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Lifecycle
    state: Mapped[str] = mapped_column(String(20), default=NOT_STARTED, nullable=False)
    status_text: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    currently_live: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_and_captured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    points_status: Mapped[str] = mapped_column(String(20), default=POINTS_NONE, nullable=False)

    # Per-match lease
    lease_owner: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    lease_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Most recent raw scorecard, archived at finalization
    last_payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tournament: Mapped["Tournament"] = relationship(back_populates="matches")

    __table_args__ = (
        UniqueConstraint("provider", "external_id", name="uq_match_provider_external"),
        CheckConstraint(
            _one_of("state", MATCH_STATES),
            name="check_match_state",
        ),
        CheckConstraint(
            _one_of("points_status", POINTS_STATUSES),
            name="check_match_points_status",
        ),
        Index("idx_matches_state_captured", "state", "completed_and_captured"),
        Index("idx_matches_tournament", "tournament_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, {self.provider}:{self.external_id}, "
            f"state='{self.state}', points='{self.points_status}')>"
        )


# =============================================================================
# Players & Performances
# =============================================================================

class Player(Base):
    """
    A provider player within one tournament.

    Created lazily by the player resolver the first time a scorecard or
    squad mentions them. Name/role/team are refreshed when upstream changes.
    """
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    team_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "tournament_id", "provider", "external_id",
            name="uq_player_tournament_provider_external",
        ),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.name}', ext='{self.external_id}')>"


class PerformanceRecord(Base):
    """
    Raw counters for one player in one match.

    Providers report batting, bowling and fielding separately, so rows are
    built up by merging partial updates (see scoring/normalizer.py).
    """
    __tablename__ = "performance_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
    )
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Batting
    batting_runs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_balls_faced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_sixes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    batting_strike_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    batting_dismissal: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Bowling
    bowling_overs: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    bowling_wickets: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_runs_conceded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_maidens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_no_balls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_wides: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_economy: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    bowling_dot_balls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling_sixes_conceded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Fielding
    fielding_catches: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fielding_runouts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fielding_stumpings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Bonus awards (written by bonus corrections)
    potm: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hattrick: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Have final points been computed for this row
    points_allocated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    player: Mapped["Player"] = relationship()

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_performance_match_player"),
        Index("idx_performance_match_allocated", "match_id", "points_allocated"),
    )

    def __repr__(self) -> str:
        return (
            f"<PerformanceRecord(match_id={self.match_id}, player_id={self.player_id}, "
            f"allocated={self.points_allocated})>"
        )


class ScoreRecord(Base):
    """
    Fantasy points for one player in one match.

    generation='live' rows are rewritten every live pass and deleted when
    the match finalizes. generation='final' rows are written once and then
    only touched by bonus corrections.
    """
    __tablename__ = "score_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
    )
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
    )
    generation: Mapped[str] = mapped_column(String(10), nullable=False)

    batting: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bowling: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fielding: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "match_id", "player_id", "generation",
            name="uq_score_match_player_generation",
        ),
        CheckConstraint(
            _one_of("generation", SCORE_GENERATIONS),
            name="check_score_generation",
        ),
        CheckConstraint(
            "total = batting + bowling + fielding + bonus",
            name="check_score_total",
        ),
        Index("idx_scores_match_generation", "match_id", "generation"),
    )

    def __repr__(self) -> str:
        return (
            f"<ScoreRecord(match_id={self.match_id}, player_id={self.player_id}, "
            f"{self.generation}, total={self.total})>"
        )


class BonusCorrection(Base):
    """
    Pending POTM / hat-trick award for a finalized match.

    Seeded empty at finalization. An operator fills in player_id/potm/hattrick;
    the bonus stage applies it and flips captured to true, exactly once.
    """
    __tablename__ = "bonus_corrections"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    tournament_id: Mapped[int] = mapped_column(
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
    )
    player_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"),
        nullable=True,
    )
    potm: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hattrick: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    captured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    captured_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_bonus_pending", "captured", "player_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BonusCorrection(match_id={self.match_id}, player_id={self.player_id}, "
            f"captured={self.captured})>"
        )


class MatchArchive(Base):
    """Append-only raw provider payload snapshot."""

    __tablename__ = "match_archives"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    snapshot_type: Mapped[str] = mapped_column(String(30), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("match_id", "snapshot_type", name="uq_archive_match_snapshot"),
    )

    def __repr__(self) -> str:
        return f"<MatchArchive(match_id={self.match_id}, type='{self.snapshot_type}')>"


# =============================================================================
# Audit & Orchestration
# =============================================================================

class SyncLogEntry(Base):
    """
    Structured audit trail for pipeline runs.

    One row per event; entries from the same run share sync_run_id.
    """
    __tablename__ = "sync_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    sync_run_id: Mapped[str] = mapped_column(String(64), nullable=False)
    level: Mapped[str] = mapped_column(String(10), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_sync_log_run_created", "sync_run_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SyncLogEntry(run='{self.sync_run_id}', level='{self.level}')>"


class PipelineRun(Base):
    """Top-level record of a pipeline execution."""

    __tablename__ = "pipeline_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    summary_json: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    stage_runs: Mapped[list["PipelineStageRun"]] = relationship(
        back_populates="pipeline_run",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_pipeline_runs_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        return f"<PipelineRun(run_id='{self.run_id}', status='{self.status}')>"


class PipelineStageRun(Base):
    """Per-stage execution record for each pipeline run."""

    __tablename__ = "pipeline_stage_runs"

    id: Mapped[int] = mapped_column(primary_key=True)
    run_id: Mapped[str] = mapped_column(
        ForeignKey("pipeline_runs.run_id", ondelete="CASCADE"),
        nullable=False,
    )
    stage_name: Mapped[str] = mapped_column(String(80), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    metrics_json: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    error_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    pipeline_run: Mapped["PipelineRun"] = relationship(back_populates="stage_runs")

    __table_args__ = (
        Index("idx_pipeline_stage_runs_run_stage", "run_id", "stage_name"),
    )

    def __repr__(self) -> str:
        return (
            f"<PipelineStageRun(run_id='{self.run_id}', "
            f"stage='{self.stage_name}', status='{self.status}')>"
        )
