"""Tests for the shared provider HTTP client."""

import httpx
import pytest

from dugout.errors import UpstreamUnavailable
from dugout.providers.http import ProviderHttpClient, _safe_url


def test_safe_url_strips_query():
    assert _safe_url("https://api.test/v1/players_info?apikey=secret&id=1") == (
        "https://api.test/v1/players_info"
    )


@pytest.mark.asyncio
async def test_get_json_success_counts_requests():
    client = ProviderHttpClient(
        "cricapi", "https://api.test/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True})),
    )
    assert await client.get_json("currentMatches", params={"offset": 0}) == {"ok": True}
    assert client.requests_made == 1
    assert client.requests_failed == 0
    await client.aclose()


@pytest.mark.asyncio
async def test_invalid_json_is_upstream_failure():
    client = ProviderHttpClient(
        "cricapi", "https://api.test/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
    )
    with pytest.raises(UpstreamUnavailable, match="invalid JSON"):
        await client.get_json("currentMatches")
    assert client.requests_failed == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_error_is_upstream_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = ProviderHttpClient(
        "sportmonks", "https://cricket.test/api/v2.0",
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(UpstreamUnavailable) as excinfo:
        await client.get_json("fixtures/1", params={"api_token": "token"})
    assert excinfo.value.status_code is None
    assert "token" not in str(excinfo.value)
    await client.aclose()
