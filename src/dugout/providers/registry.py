"""Provider adapter registry keyed by provider name."""

from __future__ import annotations

from typing import Iterable, Optional

import httpx

from dugout.config import Settings
from dugout.providers.base import ProviderAdapter
from dugout.providers.cricapi import CricApiAdapter
from dugout.providers.http import ProviderHttpClient
from dugout.providers.sportmonks import SportmonksAdapter

KNOWN_PROVIDERS: tuple[str, ...] = ("cricapi", "sportmonks")


class ProviderRegistry:
    """In-memory registry of provider adapters for one run."""

    def __init__(self) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}

    def register(self, adapter: ProviderAdapter) -> None:
        if not adapter.name:
            raise ValueError("Adapter has no provider name")
        if adapter.name in self._adapters:
            raise ValueError(f"Provider already registered: {adapter.name}")
        self._adapters[adapter.name] = adapter

    def get(self, provider: str) -> ProviderAdapter:
        try:
            return self._adapters[provider]
        except KeyError as exc:
            raise KeyError(f"Unknown provider: {provider}") from exc

    def __contains__(self, provider: str) -> bool:
        return provider in self._adapters

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def build_registry(
    settings: Settings,
    providers: Optional[Iterable[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderRegistry:
    """
    Create adapters for the requested providers (default: every provider
    with a configured credential).
    """
    wanted = list(providers) if providers is not None else [
        name for name in KNOWN_PROVIDERS if settings.provider_credential(name)
    ]
    registry = ProviderRegistry()
    for name in wanted:
        if name == "cricapi":
            client = ProviderHttpClient(
                name,
                settings.cricapi_base_url,
                timeout=settings.http_timeout_seconds,
                max_concurrency=settings.provider_concurrency,
                transport=transport,
            )
            registry.register(CricApiAdapter(client, settings.cricapi_api_key or ""))
        elif name == "sportmonks":
            client = ProviderHttpClient(
                name,
                settings.sportmonks_base_url,
                timeout=settings.http_timeout_seconds,
                max_concurrency=settings.provider_concurrency,
                transport=transport,
            )
            registry.register(SportmonksAdapter(client, settings.sportmonks_api_token or ""))
        else:
            raise KeyError(f"Unknown provider: {name}")
    return registry
