"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dugout.db.models import Base, Match, Player, PointsConfig, Tournament
from dugout.db.session import make_session_factory
from dugout.errors import UpstreamUnavailable
from dugout.match_statuses import COMPLETED
from dugout.providers.base import (
    FixtureInfo,
    MatchStateReport,
    PlayerDetail,
    ProviderAdapter,
    Scorecard,
)
from dugout.providers.registry import ProviderRegistry


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features. StaticPool keeps one connection so
    every session (including the audit logger's) sees the same data.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave on pysqlite
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    return make_session_factory(test_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a database session for a test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def tournament(db_session) -> Tournament:
    tournament = Tournament(
        name="Test Premier League",
        provider="cricapi",
        external_id="series-1",
        status="in_progress",
    )
    db_session.add(tournament)
    db_session.commit()
    return tournament


@pytest.fixture
def points_config(db_session, tournament) -> PointsConfig:
    config = PointsConfig(
        tournament_id=tournament.id,
        batting_runs=1,
        batting_six=5,
        batting_duck=-10,
        batting_fastrr=35,
        batting_slowrr=-15,
        batting_30=10,
        batting_50=25,
        batting_100=50,
        batting_200=100,
        bowling_wicket=15,
        bowling_maiden=15,
        bowling_noballswides=-1,
        bowling_lower=25,
        bowling_higher=-20,
        bowling_3wickets=40,
        bowling_5wickets=75,
        fielding_catch=10,
        fielding_runout=12,
        fielding_stumping=15,
        bonus_potm=50,
        bonus_hattrick=30,
    )
    db_session.add(config)
    db_session.commit()
    return config


@pytest.fixture
def make_match(db_session, tournament):
    """Factory for matches in the shared test tournament."""
    counter = {"n": 0}

    def _make(state: str = COMPLETED, **overrides) -> Match:
        counter["n"] += 1
        values = {
            "tournament_id": tournament.id,
            "provider": "cricapi",
            "external_id": f"match-{counter['n']}",
            "name": f"Team A vs Team B, Match {counter['n']}",
            "starts_at": datetime(2026, 4, 1, 14, 0),
            "state": state,
        }
        values.update(overrides)
        match = Match(**values)
        db_session.add(match)
        db_session.commit()
        return match

    return _make


@pytest.fixture
def make_player(db_session, tournament):
    """Factory for players in the shared test tournament."""

    def _make(external_id: str, name: str = "", **overrides) -> Player:
        values = {
            "tournament_id": tournament.id,
            "provider": "cricapi",
            "external_id": external_id,
            "name": name or f"Player {external_id}",
        }
        values.update(overrides)
        player = Player(**values)
        db_session.add(player)
        db_session.commit()
        return player

    return _make


class FakeProvider(ProviderAdapter):
    """
    In-memory provider for service tests.

    Tests fill in the dicts; anything missing behaves like an upstream failure.
    """

    name = "cricapi"

    def __init__(self):
        self.scorecards: dict[str, Scorecard] = {}
        self.players: dict[str, PlayerDetail] = {}
        self.fixtures: list[FixtureInfo] = []
        self.squads: list[PlayerDetail] = []
        self.states: dict[str, MatchStateReport] = {}
        self.states_down = False
        self.player_calls: list[str] = []
        self.squad_team_refs: list[str] = []

    async def fetch_scorecard(self, match_ref):
        if match_ref not in self.scorecards:
            raise UpstreamUnavailable(self.name, f"match_scorecard/{match_ref}", 503)
        return self.scorecards[match_ref]

    async def fetch_player(self, player_ref):
        self.player_calls.append(player_ref)
        if player_ref not in self.players:
            raise UpstreamUnavailable(self.name, f"players_info/{player_ref}", 404)
        return self.players[player_ref]

    async def fetch_fixtures(self, tournament):
        return list(self.fixtures)

    async def fetch_squads(self, tournament, team_refs=()):
        self.squad_team_refs = list(team_refs)
        return list(self.squads)

    async def fetch_match_states(self, match_refs):
        if self.states_down:
            raise UpstreamUnavailable(self.name, "currentMatches", 503)
        return {ref: self.states[ref] for ref in match_refs if ref in self.states}


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_registry(fake_provider) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register(fake_provider)
    return registry
