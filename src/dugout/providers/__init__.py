"""Upstream cricket data providers."""

from dugout.providers.base import (
    BattingEntry,
    BowlingEntry,
    FieldingEntry,
    FixtureInfo,
    MatchStateReport,
    PlayerDetail,
    ProviderAdapter,
    Scorecard,
)
from dugout.providers.cricapi import CricApiAdapter
from dugout.providers.http import ProviderHttpClient
from dugout.providers.registry import KNOWN_PROVIDERS, ProviderRegistry, build_registry
from dugout.providers.sportmonks import SportmonksAdapter

__all__ = [
    "BattingEntry",
    "BowlingEntry",
    "CricApiAdapter",
    "FieldingEntry",
    "FixtureInfo",
    "KNOWN_PROVIDERS",
    "MatchStateReport",
    "PlayerDetail",
    "ProviderAdapter",
    "ProviderHttpClient",
    "ProviderRegistry",
    "Scorecard",
    "SportmonksAdapter",
    "build_registry",
]
