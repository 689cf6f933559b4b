"""Tests for the CricAPI adapter against canned HTTP responses."""

import httpx
import pytest

from dugout.errors import UpstreamUnavailable
from dugout.match_statuses import COMPLETED, LIVE, NOT_STARTED
from dugout.providers.cricapi import CricApiAdapter, classify_state
from dugout.providers.http import ProviderHttpClient


def _adapter(handler) -> CricApiAdapter:
    client = ProviderHttpClient(
        "cricapi",
        "https://api.test/v1",
        transport=httpx.MockTransport(handler),
    )
    return CricApiAdapter(client, api_key="secret")


SCORECARD = {
    "status": "success",
    "data": {
        "id": "m-1",
        "name": "Team A vs Team B",
        "status": "Team A won by 12 runs",
        "matchStarted": True,
        "matchEnded": True,
        "matchWinner": "Team A",
        "scorecard": [
            {
                "inning": "Team A Inning 1",
                "batting": [
                    {
                        "batsman": {"id": "p1", "name": "Opener"},
                        "r": 55, "b": 30, "4s": 4, "6s": 2, "sr": 183.33,
                        "dismissal-text": "c Fielder b Bowler",
                    },
                    {
                        "batsman": {"id": "p4", "name": "Finisher"},
                        "r": 0, "b": 1, "6s": 0, "sr": 0,
                        "dismissal-text": "not out",
                    },
                ],
                "bowling": [
                    {
                        "bowler": {"id": "p2", "name": "Quick"},
                        "o": 4, "m": 1, "r": 24, "w": 5, "nb": 1, "wd": 2, "eco": 6,
                    },
                ],
                "catching": [
                    {"catcher": {"id": "p3", "name": "Keeper"}, "catch": 2, "runout": 0, "stumped": 1},
                ],
            },
            {
                "inning": "Team A Inning 2",
                "batting": [
                    {
                        "batsman": {"id": "p1", "name": "Opener"},
                        "r": "10", "b": "5", "6s": "1", "sr": "200",
                        "dismissal-text": "b Spinner",
                    },
                ],
                "bowling": [
                    {
                        "bowler": {"id": "p2", "name": "Quick"},
                        "o": 2.3, "m": 0, "r": 21, "w": 1, "nb": 0, "wd": 0, "eco": 8.4,
                    },
                ],
                "catching": [
                    {"catcher": {"id": "p3", "name": "Keeper"}, "catch": 1, "runout": 1, "stumped": 0},
                ],
            },
        ],
    },
}


@pytest.mark.asyncio
async def test_fetch_scorecard_maps_and_aggregates_innings():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=SCORECARD)

    adapter = _adapter(handler)
    scorecard = await adapter.fetch_scorecard("m-1")
    await adapter.aclose()

    assert seen["path"].endswith("/match_scorecard")
    assert seen["params"] == {"apikey": "secret", "id": "m-1"}

    assert scorecard.state == COMPLETED
    assert scorecard.status_text == "Team A won by 12 runs"
    assert scorecard.raw == SCORECARD

    batting = {entry.player_ref: entry for entry in scorecard.batting}
    assert batting["p1"].runs == 65
    assert batting["p1"].balls_faced == 35
    assert batting["p1"].sixes == 3
    assert batting["p1"].dismissal == "b Spinner"
    assert batting["p4"].dismissal == "not out"

    (bowling,) = scorecard.bowling
    assert bowling.player_ref == "p2"
    assert bowling.overs == pytest.approx(6.3)
    assert bowling.wickets == 6
    assert bowling.runs_conceded == 45
    assert bowling.maidens == 1
    assert bowling.no_balls == 1
    assert bowling.wides == 2

    (fielding,) = scorecard.fielding
    assert (fielding.catches, fielding.runouts, fielding.stumpings) == (3, 1, 1)


@pytest.mark.asyncio
async def test_http_error_raises_upstream_unavailable():
    adapter = _adapter(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(UpstreamUnavailable) as excinfo:
        await adapter.fetch_scorecard("m-1")
    await adapter.aclose()

    assert excinfo.value.status_code == 500
    assert "secret" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_failure_status_raises_upstream_unavailable():
    payload = {"status": "failure", "reason": "hits today exceeded hits limit"}
    adapter = _adapter(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(UpstreamUnavailable, match="hits limit"):
        await adapter.fetch_player("p1")
    await adapter.aclose()


@pytest.mark.asyncio
async def test_fetch_player_profile():
    payload = {
        "status": "success",
        "data": {"id": "p1", "name": "Opener", "role": "Batsman", "country": "India"},
    }
    adapter = _adapter(lambda request: httpx.Response(200, json=payload))
    detail = await adapter.fetch_player("p1")
    await adapter.aclose()

    assert detail.external_id == "p1"
    assert detail.name == "Opener"
    assert detail.role == "Batsman"
    assert detail.country == "India"


@pytest.mark.asyncio
async def test_fetch_fixtures_from_series_info():
    payload = {
        "status": "success",
        "data": {
            "info": {"id": "series-1"},
            "matchList": [
                {
                    "id": "m-1",
                    "name": "Team A vs Team B, 1st Match",
                    "matchType": "t20",
                    "status": "Match not started",
                    "venue": "Eden Gardens",
                    "dateTimeGMT": "2026-04-01T14:00:00",
                    "teams": ["Team A", "Team B"],
                    "matchStarted": False,
                    "matchEnded": False,
                },
                {"name": "missing id is ignored"},
            ],
        },
    }

    class Series:
        external_id = "series-1"

    adapter = _adapter(lambda request: httpx.Response(200, json=payload))
    fixtures = await adapter.fetch_fixtures(Series())
    await adapter.aclose()

    (fixture,) = fixtures
    assert fixture.external_id == "m-1"
    assert fixture.state == NOT_STARTED
    assert fixture.team1 == "Team A"
    assert fixture.team2 == "Team B"
    assert fixture.starts_at.year == 2026
    assert fixture.venue == "Eden Gardens"


@pytest.mark.asyncio
async def test_fetch_match_states_filters_to_requested_matches():
    payload = {
        "status": "success",
        "data": [
            {"id": "m-1", "status": "Team B need 20 runs", "matchStarted": True, "matchEnded": False},
            {"id": "m-9", "status": "Team C won by 3 wickets", "matchEnded": True},
        ],
    }
    adapter = _adapter(lambda request: httpx.Response(200, json=payload))
    reports = await adapter.fetch_match_states(["m-1", "m-2"])
    await adapter.aclose()

    assert set(reports) == {"m-1"}
    assert reports["m-1"].state == LIVE


@pytest.mark.asyncio
async def test_fetch_match_states_failure_status_raises():
    payload = {"status": "failure", "reason": "Invalid API key"}
    adapter = _adapter(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(UpstreamUnavailable, match="Invalid API key") as excinfo:
        await adapter.fetch_match_states(["m-1"])
    await adapter.aclose()

    assert excinfo.value.url == "currentMatches"


@pytest.mark.asyncio
async def test_fetch_match_states_http_error_raises():
    adapter = _adapter(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(UpstreamUnavailable) as excinfo:
        await adapter.fetch_match_states(["m-1"])
    await adapter.aclose()

    assert excinfo.value.status_code == 503


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        ({"matchStarted": False, "status": "Match not started"}, NOT_STARTED),
        ({"status": "Match starts at Apr 01, 14:00 GMT"}, NOT_STARTED),
        ({"matchStarted": True, "matchEnded": False, "status": "Team A opt to bat"}, LIVE),
        ({"matchStarted": True, "matchWinner": "Team A", "status": "Team A won by 5 runs"}, COMPLETED),
        ({"matchStarted": True, "matchEnded": False, "status": "No result due to rain"}, COMPLETED),
        ({"matchStarted": True, "status": "Match abandoned without a ball bowled"}, COMPLETED),
    ],
)
def test_classify_state(data, expected):
    assert classify_state(data) == expected
