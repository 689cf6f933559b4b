"""
Shared HTTP client for provider adapters.

Wraps httpx.AsyncClient with:
- a base URL and timeout per provider
- an asyncio.Semaphore bounding in-flight requests (provider rate limits)
- uniform failure handling: any transport error, non-2xx status or
  undecodable body becomes UpstreamUnavailable

There are deliberately no retries here; a failed match is retried on the
next scheduled run.
"""

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from dugout.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def _safe_url(url: str) -> str:
    """Strip query params (they carry API keys) for safe logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ProviderHttpClient:
    """Single-attempt JSON GET client shared by one provider's adapter."""

    def __init__(
        self,
        provider: str,
        base_url: str,
        *,
        timeout: float = 20.0,
        max_concurrency: int = 4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider = provider
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
        )
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self.requests_made = 0
        self.requests_failed = 0

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        GET ``path`` relative to the base URL and decode the JSON body.

        Raises:
            UpstreamUnavailable: on transport error, non-2xx, or invalid JSON
        """
        url = str(self._client.base_url.join(path.lstrip("/")))
        async with self._semaphore:
            self.requests_made += 1
            try:
                response = await self._client.get(path.lstrip("/"), params=params)
            except httpx.HTTPError as exc:
                self.requests_failed += 1
                logger.warning("[%s] Request error on GET %s: %s", self.provider, _safe_url(url), exc)
                raise UpstreamUnavailable(self.provider, _safe_url(url), detail=str(exc)) from exc

        if not response.is_success:
            self.requests_failed += 1
            logger.warning(
                "[%s] HTTP %d on GET %s",
                self.provider, response.status_code, _safe_url(url),
            )
            raise UpstreamUnavailable(self.provider, _safe_url(url), response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            self.requests_failed += 1
            raise UpstreamUnavailable(
                self.provider, _safe_url(url), response.status_code, detail="invalid JSON body"
            ) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
