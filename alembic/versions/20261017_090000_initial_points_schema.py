"""Initial fantasy points schema

Revision ID: 3d8e51a0c4b7
Revises:
Create Date: 2026-10-17 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# Revision identifiers, used by Alembic.
revision: str = "3d8e51a0c4b7"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONB = postgresql.JSONB(astext_type=sa.Text())


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(),
        nullable=True,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=True),
        sa.Column("league_id", sa.String(length=50), nullable=True),
        sa.Column("season_id", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="upcoming"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "external_id", name="uq_tournament_provider_external"),
    )

    weight_columns = [
        "batting_runs", "batting_six", "batting_duck", "batting_fastrr", "batting_slowrr",
        "batting_30", "batting_50", "batting_100", "batting_200",
        "bowling_wicket", "bowling_maiden", "bowling_noballswides", "bowling_lower",
        "bowling_higher", "bowling_3wickets", "bowling_5wickets",
        "fielding_catch", "fielding_runout", "fielding_stumping",
        "bonus_potm", "bonus_hattrick",
    ]
    op.create_table(
        "points_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        *[_counter(name) for name in weight_columns],
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tournament_id"),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=300), nullable=True),
        sa.Column("match_type", sa.String(length=20), nullable=True),
        sa.Column("starts_at", sa.DateTime(), nullable=True),
        sa.Column("team1", sa.String(length=150), nullable=True),
        sa.Column("team2", sa.String(length=150), nullable=True),
        sa.Column("team1_ref", sa.String(length=50), nullable=True),
        sa.Column("team2_ref", sa.String(length=50), nullable=True),
        sa.Column("venue", sa.String(length=200), nullable=True),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="not_started"),
        sa.Column("status_text", sa.String(length=300), nullable=True),
        sa.Column("currently_live", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "completed_and_captured", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("points_status", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("lease_owner", sa.String(length=100), nullable=True),
        sa.Column("lease_expires_at", sa.DateTime(), nullable=True),
        sa.Column("last_payload", JSONB, nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "state IN ('not_started', 'live', 'completed')", name="check_match_state"
        ),
        sa.CheckConstraint(
            "points_status IN ('none', 'processing', 'complete', 'failed')",
            name="check_match_points_status",
        ),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "external_id", name="uq_match_provider_external"),
    )
    op.create_index(
        "idx_matches_state_captured", "matches", ["state", "completed_and_captured"], unique=False
    )
    op.create_index("idx_matches_tournament", "matches", ["tournament_id"], unique=False)

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("external_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=60), nullable=True),
        sa.Column("team_name", sa.String(length=150), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tournament_id", "provider", "external_id",
            name="uq_player_tournament_provider_external",
        ),
    )

    op.create_table(
        "performance_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        _counter("batting_runs"),
        _counter("batting_balls_faced"),
        _counter("batting_sixes"),
        sa.Column("batting_strike_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("batting_dismissal", sa.String(length=200), nullable=True),
        sa.Column("bowling_overs", sa.Float(), nullable=False, server_default="0"),
        _counter("bowling_wickets"),
        _counter("bowling_runs_conceded"),
        _counter("bowling_maidens"),
        _counter("bowling_no_balls"),
        _counter("bowling_wides"),
        sa.Column("bowling_economy", sa.Float(), nullable=False, server_default="0"),
        _counter("bowling_dot_balls"),
        _counter("bowling_sixes_conceded"),
        _counter("fielding_catches"),
        _counter("fielding_runouts"),
        _counter("fielding_stumpings"),
        sa.Column("potm", sa.Boolean(), nullable=False, server_default=sa.false()),
        _counter("hattrick"),
        sa.Column("points_allocated", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "player_id", name="uq_performance_match_player"),
    )
    op.create_index(
        "idx_performance_match_allocated",
        "performance_records",
        ["match_id", "points_allocated"],
        unique=False,
    )

    op.create_table(
        "score_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("generation", sa.String(length=10), nullable=False),
        _counter("batting"),
        _counter("bowling"),
        _counter("fielding"),
        _counter("bonus"),
        _counter("total"),
        _timestamp("updated_at"),
        sa.CheckConstraint("generation IN ('live', 'final')", name="check_score_generation"),
        sa.CheckConstraint(
            "total = batting + bowling + fielding + bonus", name="check_score_total"
        ),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "match_id", "player_id", "generation", name="uq_score_match_player_generation"
        ),
    )
    op.create_index(
        "idx_scores_match_generation", "score_records", ["match_id", "generation"], unique=False
    )

    op.create_table(
        "bonus_corrections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=True),
        sa.Column("potm", sa.Boolean(), nullable=False, server_default=sa.false()),
        _counter("hattrick"),
        sa.Column("captured", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.Column("captured_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id"),
    )
    op.create_index(
        "idx_bonus_pending", "bonus_corrections", ["captured", "player_id"], unique=False
    )

    op.create_table(
        "match_archives",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("snapshot_type", sa.String(length=30), nullable=False),
        sa.Column("payload", JSONB, nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "snapshot_type", name="uq_archive_match_snapshot"),
    )

    op.create_table(
        "sync_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sync_run_id", sa.String(length=64), nullable=False),
        sa.Column("level", sa.String(length=10), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("details", JSONB, nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_sync_log_run_created", "sync_log", ["sync_run_id", "created_at"], unique=False
    )

    op.create_table(
        "pipeline_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column(
            "started_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("summary_json", JSONB, nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("run_id"),
    )
    op.create_index("idx_pipeline_runs_started_at", "pipeline_runs", ["started_at"], unique=False)

    op.create_table(
        "pipeline_stage_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=False),
        sa.Column("stage_name", sa.String(length=80), nullable=False),
        sa.Column(
            "started_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("metrics_json", JSONB, nullable=True),
        sa.Column("error_text", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["run_id"], ["pipeline_runs.run_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_pipeline_stage_runs_run_stage",
        "pipeline_stage_runs",
        ["run_id", "stage_name"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_pipeline_stage_runs_run_stage", table_name="pipeline_stage_runs")
    op.drop_table("pipeline_stage_runs")
    op.drop_index("idx_pipeline_runs_started_at", table_name="pipeline_runs")
    op.drop_table("pipeline_runs")
    op.drop_index("idx_sync_log_run_created", table_name="sync_log")
    op.drop_table("sync_log")
    op.drop_table("match_archives")
    op.drop_index("idx_bonus_pending", table_name="bonus_corrections")
    op.drop_table("bonus_corrections")
    op.drop_index("idx_scores_match_generation", table_name="score_records")
    op.drop_table("score_records")
    op.drop_index("idx_performance_match_allocated", table_name="performance_records")
    op.drop_table("performance_records")
    op.drop_table("players")
    op.drop_index("idx_matches_tournament", table_name="matches")
    op.drop_index("idx_matches_state_captured", table_name="matches")
    op.drop_table("matches")
    op.drop_table("points_configs")
    op.drop_table("tournaments")
