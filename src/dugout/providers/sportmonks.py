"""
SportMonks cricket (v2.0) adapter.

Endpoints used:
- fixtures/{id}?include=batting,bowling          -> scorecard + state
- players/{id}                                   -> player profile
- fixtures?filter[league_id]&filter[season_id]   -> fixtures for a tournament
- teams/{id}/squad/{season_id}                   -> squad per team

SportMonks has no fielding section; catches, stumpings and run outs are
derived from each batter's dismissal (wicket_id plus the credited fielder).
"""

import asyncio
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

PROVIDER_NAME = "sportmonks"

# wicket_id -> dismissal text
WICKET_CAUGHT = 54
WICKET_CAUGHT_SUBSTITUTE = 55
WICKET_STUMPED = 56
WICKET_RUN_OUT = 63
WICKET_BOWLED = 79
WICKET_LBW = 83
WICKET_NOT_OUT = 84
WICKET_RETIRED_HURT = 85

DISMISSAL_TEXT: dict[int, str] = {
    WICKET_CAUGHT: "Caught",
    WICKET_CAUGHT_SUBSTITUTE: "Caught (substitute)",
    WICKET_STUMPED: "Stumped",
    WICKET_RUN_OUT: "Run Out",
    WICKET_BOWLED: "Bowled",
    WICKET_LBW: "LBW",
    WICKET_NOT_OUT: "Not Out",
    WICKET_RETIRED_HURT: "Retired Hurt",
}

NOT_STARTED_STATUSES = frozenset({"NS", "Postp.", "Delayed"})
FINISHED_STATUSES = frozenset({"Finished", "Aban.", "Cancl."})


def classify_state(data: dict[str, Any]) -> str:
    """Map a SportMonks fixture onto not_started / live / completed."""
    status = (data.get("status") or "").strip()
    if data.get("winner_team_id") or data.get("draw_noresult") or status in FINISHED_STATUSES:
        return COMPLETED
    if not status or status in NOT_STARTED_STATUSES:
        return NOT_STARTED
    return LIVE


def dismissal_text(wicket_id: Any) -> Optional[str]:
    if wicket_id is None:
        return None
    return DISMISSAL_TEXT.get(to_int(wicket_id, default=-1), "Other")


def fielding_credit(row: dict[str, Any]) -> Optional[FieldingEntry]:
    """Return the fielding credit implied by one batting row's dismissal, if any."""
    wicket_id = to_int(row.get("wicket_id"), default=-1)
    fielder = row.get("catch_stump_player_id")

    if wicket_id == WICKET_CAUGHT and fielder:
        return FieldingEntry(player_ref=str(fielder), catches=1)
    if wicket_id == WICKET_STUMPED and fielder:
        return FieldingEntry(player_ref=str(fielder), stumpings=1)
    if wicket_id == WICKET_RUN_OUT:
        runout_by = row.get("runout_by_id") or fielder
        if runout_by:
            return FieldingEntry(player_ref=str(runout_by), runouts=1)
    return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable SportMonks datetime: %r", value)
        return None
    return parsed.replace(tzinfo=None)


class SportmonksAdapter(ProviderAdapter):
    """Adapter for cricket.sportmonks.com."""

    name = PROVIDER_NAME

    def __init__(self, client: ProviderHttpClient, api_token: str):
        self.client = client
        self.api_token = api_token

    async def _get(self, path: str, **params: Any) -> Any:
        payload = await self.client.get_json(path, params={"api_token": self.api_token, **params})
        if not isinstance(payload, dict) or "data" not in payload:
            raise UpstreamUnavailable(self.name, path, detail="response has no data section")
        return payload

    # -------------------------------------------------------------------------
    # Scorecards
    # -------------------------------------------------------------------------

    async def fetch_scorecard(self, match_ref: str) -> Scorecard:
        payload = await self._get(f"fixtures/{match_ref}", include="batting,bowling")
        data = payload.get("data") or {}

        batting: list[BattingEntry] = []
        bowling: list[BowlingEntry] = []
        fielding: list[FieldingEntry] = []

        for row in data.get("batting") or []:
            if not row.get("player_id"):
                continue
            batting.append(BattingEntry(
                player_ref=str(row["player_id"]),
                runs=to_int(row.get("score")),
                balls_faced=to_int(row.get("ball")),
                sixes=to_int(row.get("six_x")),
                strike_rate=to_float(row.get("rate")),
                dismissal=dismissal_text(row.get("wicket_id")),
            ))
            credit = fielding_credit(row)
            if credit is not None:
                fielding.append(credit)

        for row in data.get("bowling") or []:
            if not row.get("player_id"):
                continue
            bowling.append(BowlingEntry(
                player_ref=str(row["player_id"]),
                overs=to_float(row.get("overs")),
                wickets=to_int(row.get("wickets")),
                runs_conceded=to_int(row.get("runs")),
                maidens=to_int(row.get("medians")),
                no_balls=to_int(row.get("noball")),
                wides=to_int(row.get("wide")),
                economy=to_float(row.get("rate")),
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
        payload = await self._get(f"players/{player_ref}")
        data = payload.get("data") or {}
        position = data.get("position") or {}
        country_id = data.get("country_id")
        return PlayerDetail(
            external_id=str(player_ref),
            name=data.get("fullname"),
            role=position.get("name"),
            country=str(country_id) if country_id is not None else None,
        )

    async def fetch_squads(
        self,
        tournament: Any,
        team_refs: Sequence[str] = (),
    ) -> list[PlayerDetail]:
        members: list[PlayerDetail] = []
        for team_ref in team_refs:
            payload = await self._get(f"teams/{team_ref}/squad/{tournament.season_id}")
            data = payload.get("data") or {}
            team_name = data.get("name")
            for player in data.get("squad") or []:
                if not player.get("id"):
                    continue
                position = player.get("position") or {}
                country_id = player.get("country_id")
                members.append(PlayerDetail(
                    external_id=str(player["id"]),
                    name=player.get("fullname"),
                    role=position.get("name"),
                    team_name=team_name,
                    country=str(country_id) if country_id is not None else None,
                ))
        return members

    # -------------------------------------------------------------------------
    # Fixtures & states
    # -------------------------------------------------------------------------

    async def fetch_fixtures(self, tournament: Any) -> list[FixtureInfo]:
        params = {
            "filter[league_id]": tournament.league_id,
            "filter[season_id]": tournament.season_id,
            "include": "localteam,visitorteam,venue",
        }
        payload = await self._get("fixtures", **params)
        fixtures: list[FixtureInfo] = []
        for match in payload.get("data") or []:
            if not match.get("id"):
                continue
            local = match.get("localteam") or {}
            visitor = match.get("visitorteam") or {}
            venue = match.get("venue") or {}
            team1, team2 = local.get("name"), visitor.get("name")
            fixtures.append(FixtureInfo(
                external_id=str(match["id"]),
                state=classify_state(match),
                name=f"{team1} vs {team2}" if team1 and team2 else None,
                match_type=match.get("type"),
                starts_at=_parse_datetime(match.get("starting_at")),
                team1=team1,
                team2=team2,
                team1_ref=str(local["id"]) if local.get("id") else None,
                team2_ref=str(visitor["id"]) if visitor.get("id") else None,
                venue=venue.get("name"),
                status_text=match.get("note") or match.get("status"),
            ))
        return fixtures

    async def _fetch_state(self, match_ref: str) -> Optional[MatchStateReport]:
        try:
            payload = await self._get(f"fixtures/{match_ref}")
        except UpstreamUnavailable as exc:
            logger.warning("Skipping state for fixture %s: %s", match_ref, exc)
            return None
        data = payload.get("data") or {}
        return MatchStateReport(
            external_id=str(match_ref),
            state=classify_state(data),
            status_text=data.get("note") or data.get("status"),
        )

    async def fetch_match_states(self, match_refs: Iterable[str]) -> dict[str, MatchStateReport]:
        results = await asyncio.gather(*(self._fetch_state(str(ref)) for ref in match_refs))
        return {report.external_id: report for report in results if report is not None}

    async def aclose(self) -> None:
        await self.client.aclose()
