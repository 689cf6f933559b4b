"""
Provider adapter interface and canonical scorecard types.

Each upstream cricket API has one adapter that translates its response
shapes into the dataclasses below. Everything downstream of the adapters
(player resolution, merging, scoring) only ever sees these types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from dugout.match_statuses import MATCH_STATES


# =============================================================================
# Canonical entries
# =============================================================================

@dataclass(frozen=True)
class BattingEntry:
    player_ref: str
    runs: int = 0
    balls_faced: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    dismissal: Optional[str] = None


@dataclass(frozen=True)
class BowlingEntry:
    player_ref: str
    overs: float = 0.0
    wickets: int = 0
    runs_conceded: int = 0
    maidens: int = 0
    no_balls: int = 0
    wides: int = 0
    economy: float = 0.0
    dot_balls: int = 0
    sixes_conceded: int = 0


@dataclass(frozen=True)
class FieldingEntry:
    player_ref: str
    catches: int = 0
    runouts: int = 0
    stumpings: int = 0


@dataclass
class Scorecard:
    """
    One provider's view of a match at the time of the request.

    Entry lists hold at most one entry per player per discipline; multiple
    innings are aggregated by the adapter.
    """
    match_ref: str
    state: str
    status_text: Optional[str] = None
    batting: list[BattingEntry] = field(default_factory=list)
    bowling: list[BowlingEntry] = field(default_factory=list)
    fielding: list[FieldingEntry] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.state not in MATCH_STATES:
            raise ValueError(f"Unknown match state: {self.state}")

    @property
    def has_entries(self) -> bool:
        return bool(self.batting or self.bowling or self.fielding)


@dataclass(frozen=True)
class PlayerDetail:
    """Player profile as listed by a provider (detail lookup or squad list)."""
    external_id: str
    name: Optional[str] = None
    role: Optional[str] = None
    team_name: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class FixtureInfo:
    """A scheduled match as listed by a provider."""
    external_id: str
    state: str
    name: Optional[str] = None
    match_type: Optional[str] = None
    starts_at: Optional[datetime] = None
    team1: Optional[str] = None
    team2: Optional[str] = None
    team1_ref: Optional[str] = None
    team2_ref: Optional[str] = None
    venue: Optional[str] = None
    status_text: Optional[str] = None


@dataclass(frozen=True)
class MatchStateReport:
    external_id: str
    state: str
    status_text: Optional[str] = None


# =============================================================================
# Adapter interface
# =============================================================================

class ProviderAdapter(ABC):
    """
    Abstract base class for cricket data providers.

    Every method makes at most one request per resource and raises
    UpstreamUnavailable on a non-success response; there are no retries
    inside an adapter call. The next scheduled run is the retry.
    """

    #: Registry key and value stored in matches.provider / players.provider
    name: str = ""

    @abstractmethod
    async def fetch_scorecard(self, match_ref: str) -> Scorecard:
        """Return the current scorecard and state for a match."""
        ...

    @abstractmethod
    async def fetch_player(self, player_ref: str) -> PlayerDetail:
        """Return profile details for a single player."""
        ...

    @abstractmethod
    async def fetch_fixtures(self, tournament: Any) -> list[FixtureInfo]:
        """Return every fixture the provider lists for a tournament."""
        ...

    @abstractmethod
    async def fetch_squads(
        self,
        tournament: Any,
        team_refs: Sequence[str] = (),
    ) -> list[PlayerDetail]:
        """Return squad members for a tournament (team_name filled in)."""
        ...

    @abstractmethod
    async def fetch_match_states(
        self,
        match_refs: Iterable[str],
    ) -> dict[str, MatchStateReport]:
        """Return state reports for the requested matches that the provider knows about."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None


# =============================================================================
# Per-player aggregation
# =============================================================================

def overs_to_balls(overs: float) -> int:
    """Convert cricket overs notation (3.4 = 3 overs, 4 balls) to balls."""
    whole = int(overs)
    part = int(round((overs - whole) * 10))
    return whole * 6 + part


def balls_to_overs(balls: int) -> float:
    return balls // 6 + (balls % 6) / 10


def aggregate_batting(entries: Iterable[BattingEntry]) -> list[BattingEntry]:
    """Combine several innings for the same batter into one entry."""
    merged: dict[str, BattingEntry] = {}
    for entry in entries:
        prev = merged.get(entry.player_ref)
        if prev is None:
            merged[entry.player_ref] = entry
            continue
        runs = prev.runs + entry.runs
        balls = prev.balls_faced + entry.balls_faced
        merged[entry.player_ref] = BattingEntry(
            player_ref=entry.player_ref,
            runs=runs,
            balls_faced=balls,
            sixes=prev.sixes + entry.sixes,
            strike_rate=round(runs * 100 / balls, 2) if balls else 0.0,
            # Later innings decide the dismissal
            dismissal=entry.dismissal if entry.dismissal is not None else prev.dismissal,
        )
    return list(merged.values())


def aggregate_bowling(entries: Iterable[BowlingEntry]) -> list[BowlingEntry]:
    """Combine several spells/innings for the same bowler into one entry."""
    merged: dict[str, BowlingEntry] = {}
    for entry in entries:
        prev = merged.get(entry.player_ref)
        if prev is None:
            merged[entry.player_ref] = entry
            continue
        balls = overs_to_balls(prev.overs) + overs_to_balls(entry.overs)
        runs = prev.runs_conceded + entry.runs_conceded
        merged[entry.player_ref] = BowlingEntry(
            player_ref=entry.player_ref,
            overs=balls_to_overs(balls),
            wickets=prev.wickets + entry.wickets,
            runs_conceded=runs,
            maidens=prev.maidens + entry.maidens,
            no_balls=prev.no_balls + entry.no_balls,
            wides=prev.wides + entry.wides,
            economy=round(runs * 6 / balls, 2) if balls else 0.0,
            dot_balls=prev.dot_balls + entry.dot_balls,
            sixes_conceded=prev.sixes_conceded + entry.sixes_conceded,
        )
    return list(merged.values())


def aggregate_fielding(entries: Iterable[FieldingEntry]) -> list[FieldingEntry]:
    """Sum fielding credits per player."""
    merged: dict[str, FieldingEntry] = {}
    for entry in entries:
        prev = merged.get(entry.player_ref)
        if prev is None:
            merged[entry.player_ref] = entry
            continue
        merged[entry.player_ref] = FieldingEntry(
            player_ref=entry.player_ref,
            catches=prev.catches + entry.catches,
            runouts=prev.runouts + entry.runouts,
            stumpings=prev.stumpings + entry.stumpings,
        )
    return list(merged.values())


def to_int(value: Any, default: int = 0) -> int:
    """Lenient int coercion for provider numbers (which arrive as str, int or null)."""
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
