"""
CricAPI (api.cricapi.com v1) adapter.

Endpoints used:
- match_scorecard?id=    -> scorecard + match state
- players_info?id=       -> player profile
- series_info?id=        -> fixtures (data.matchList)
- series_squad?id=       -> squads per team
- currentMatches         -> live state for many matches in one call

Every response carries a top-level "status"; anything other than "success"
(bad key, exhausted quota) is treated the same as an HTTP failure.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from dugout.errors import UpstreamUnavailable
from dugout.match_statuses import COMPLETED, LIVE, NOT_STARTED
from dugout.providers.base import (
    BattingEntry,
    BowlingEntry,
    FieldingEntry,
    FixtureInfo,
    MatchStateReport,
    PlayerDetail,
    ProviderAdapter,
    Scorecard,
    aggregate_batting,
    aggregate_bowling,
    aggregate_fielding,
    to_float,
    to_int,
)
from dugout.providers.http import ProviderHttpClient

logger = logging.getLogger(__name__)

PROVIDER_NAME = "cricapi"

# Status-text fragments that mean the match is over even without a winner
FINISHED_MARKERS = ("won by", "no result", "abandoned", "match tied", "drawn")


def classify_state(data: dict[str, Any]) -> str:
    """
    Map a CricAPI match object onto not_started / live / completed.

    Completed iff there is a winner, the match has ended, or the status text
    reports a finished outcome (no result / abandoned still count).
    """
    status = (data.get("status") or "").strip().lower()
    if data.get("matchWinner") or data.get("matchEnded"):
        return COMPLETED
    if any(marker in status for marker in FINISHED_MARKERS):
        return COMPLETED
    if (
        data.get("matchStarted") is False
        or status == "match not started"
        or status.startswith("match starts at")
    ):
        return NOT_STARTED
    return LIVE


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", ""))
    except ValueError:
        logger.debug("Unparseable CricAPI datetime: %r", value)
        return None


def _ref(obj: Any) -> Optional[str]:
    if isinstance(obj, dict) and obj.get("id"):
        return str(obj["id"])
    return None


class CricApiAdapter(ProviderAdapter):
    """Adapter for api.cricapi.com."""

    name = PROVIDER_NAME

    def __init__(self, client: ProviderHttpClient, api_key: str):
        self.client = client
        self.api_key = api_key

    async def _get(self, endpoint: str, **params: Any) -> dict[str, Any]:
        payload = await self.client.get_json(endpoint, params={"apikey": self.api_key, **params})
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(self.name, endpoint, detail="unexpected payload shape")
        status = payload.get("status")
        if status is not None and status != "success":
            raise UpstreamUnavailable(
                self.name, endpoint, detail=str(payload.get("reason") or status)
            )
        return payload

    # -------------------------------------------------------------------------
    # Scorecards
    # -------------------------------------------------------------------------

    async def fetch_scorecard(self, match_ref: str) -> Scorecard:
        payload = await self._get("match_scorecard", id=match_ref)
        data = payload.get("data") or {}

        batting: list[BattingEntry] = []
        bowling: list[BowlingEntry] = []
        fielding: list[FieldingEntry] = []

        for innings in data.get("scorecard") or []:
            for row in innings.get("batting") or []:
                player_ref = _ref(row.get("batsman"))
                if player_ref is None:
                    continue
                batting.append(BattingEntry(
                    player_ref=player_ref,
                    runs=to_int(row.get("r")),
                    balls_faced=to_int(row.get("b")),
                    sixes=to_int(row.get("6s")),
                    strike_rate=to_float(row.get("sr")),
                    dismissal=row.get("dismissal-text") or row.get("dismissal"),
                ))

            for row in innings.get("bowling") or []:
                player_ref = _ref(row.get("bowler"))
                if player_ref is None:
                    continue
                bowling.append(BowlingEntry(
                    player_ref=player_ref,
                    overs=to_float(row.get("o")),
                    wickets=to_int(row.get("w")),
                    runs_conceded=to_int(row.get("r")),
                    maidens=to_int(row.get("m")),
                    no_balls=to_int(row.get("nb")),
                    wides=to_int(row.get("wd")),
                    economy=to_float(row.get("eco")),
                    dot_balls=to_int(row.get("d")),
                    sixes_conceded=to_int(row.get("6s")),
                ))

            for row in innings.get("catching") or []:
                player_ref = _ref(row.get("catcher"))
                if player_ref is None:
                    continue
                fielding.append(FieldingEntry(
                    player_ref=player_ref,
                    catches=to_int(row.get("catch")),
                    runouts=to_int(row.get("runout")),
                    stumpings=to_int(row.get("stumped")),
                ))

        return Scorecard(
            match_ref=str(match_ref),
            state=classify_state(data),
            status_text=data.get("status"),
            batting=aggregate_batting(batting),
            bowling=aggregate_bowling(bowling),
            fielding=aggregate_fielding(fielding),
            raw=payload,
        )

    # -------------------------------------------------------------------------
    # Players & squads
    # -------------------------------------------------------------------------

    async def fetch_player(self, player_ref: str) -> PlayerDetail:
        payload = await self._get("players_info", id=player_ref)
        data = payload.get("data") or {}
        return PlayerDetail(
            external_id=str(player_ref),
            name=data.get("name"),
            role=data.get("role"),
            team_name=data.get("teamName"),
            country=data.get("country"),
        )

    async def fetch_squads(
        self,
        tournament: Any,
        team_refs: Sequence[str] = (),
    ) -> list[PlayerDetail]:
        payload = await self._get("series_squad", id=tournament.external_id)
        members: list[PlayerDetail] = []
        for team in payload.get("data") or []:
            team_name = team.get("teamName")
            for player in team.get("players") or []:
                if not player.get("id"):
                    continue
                members.append(PlayerDetail(
                    external_id=str(player["id"]),
                    name=player.get("name"),
                    role=player.get("role"),
                    team_name=team_name,
                    country=player.get("country"),
                ))
        return members

    # -------------------------------------------------------------------------
    # Fixtures & states
    # -------------------------------------------------------------------------

    async def fetch_fixtures(self, tournament: Any) -> list[FixtureInfo]:
        payload = await self._get("series_info", id=tournament.external_id)
        data = payload.get("data") or {}
        fixtures: list[FixtureInfo] = []
        for match in data.get("matchList") or []:
            if not match.get("id"):
                continue
            teams = match.get("teams") or []
            fixtures.append(FixtureInfo(
                external_id=str(match["id"]),
                state=classify_state(match),
                name=match.get("name"),
                match_type=match.get("matchType"),
                starts_at=_parse_datetime(match.get("dateTimeGMT")),
                team1=teams[0] if len(teams) > 0 else None,
                team2=teams[1] if len(teams) > 1 else None,
                venue=match.get("venue"),
                status_text=match.get("status"),
            ))
        return fixtures

    async def fetch_match_states(self, match_refs: Iterable[str]) -> dict[str, MatchStateReport]:
        wanted = {str(ref) for ref in match_refs}
        if not wanted:
            return {}
        payload = await self._get("currentMatches", offset=0)
        reports: dict[str, MatchStateReport] = {}
        for match in payload.get("data") or []:
            ref = str(match.get("id") or "")
            if ref not in wanted:
                continue
            reports[ref] = MatchStateReport(
                external_id=ref,
                state=classify_state(match),
                status_text=match.get("status"),
            )
        return reports

    async def aclose(self) -> None:
        await self.client.aclose()
