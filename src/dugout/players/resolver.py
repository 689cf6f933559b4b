"""
Player resolver: provider player id -> internal player id.

Scorecards identify players only by the provider's id. The resolver turns
that into an internal player row, creating one on first sight:

1. Per-run cache hit                     -> return immediately
2. Existing row for (tournament, provider, external id) -> return its id
3. Miss -> fetch the profile from the same provider and create the row

If step 3 cannot reach the provider the player is unresolvable; callers
skip just the affected performance row.

Squad listings go through apply_squad_member(), which creates or refreshes
rows in bulk without any detail lookups.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dugout.db.models import Player
from dugout.errors import PlayerUnresolvable, UpstreamUnavailable
from dugout.providers.base import PlayerDetail, ProviderAdapter

logger = logging.getLogger(__name__)

# Profile columns that squad/detail syncs are allowed to refresh
PROFILE_FIELDS = ("name", "role", "team_name", "country")


@dataclass
class ResolverStats:
    """Counters for one resolver's lifetime (one run)."""
    cache_hits: int = 0
    found: int = 0
    created: int = 0
    updated: int = 0
    unresolvable: list[str] = field(default_factory=list)


class PlayerResolver:
    """
    Get-or-create service for provider players within one tournament scope.

    Usage:
        resolver = PlayerResolver(session, adapter)
        player_id = await resolver.resolve("a1b2c3", tournament_id=7)

    Writes are flushed, never committed; the caller owns the transaction.
    """

    def __init__(self, db: Session, adapter: ProviderAdapter):
        self.db = db
        self.adapter = adapter
        self.provider = adapter.name
        self.stats = ResolverStats()
        self._cache: dict[tuple[int, str], int] = {}

    # =========================================================================
    # Main Public Methods
    # =========================================================================

    async def resolve(
        self,
        external_id: str,
        tournament_id: int,
        name_hint: Optional[str] = None,
    ) -> int:
        """
        Return the internal id for a provider player, creating it if needed.

        Args:
            external_id: Provider's player id
            tournament_id: Tournament the player is scoped to
            name_hint: Name from the scorecard, used if the profile has none

        Raises:
            PlayerUnresolvable: the player is unknown and the profile lookup failed
        """
        key = (tournament_id, str(external_id))
        cached = self._cache.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        player = self._find(tournament_id, str(external_id))
        if player is not None:
            self.stats.found += 1
            self._cache[key] = player.id
            return player.id

        try:
            detail = await self.adapter.fetch_player(str(external_id))
        except UpstreamUnavailable as exc:
            self.stats.unresolvable.append(str(external_id))
            raise PlayerUnresolvable(self.provider, str(external_id), str(exc)) from exc

        if not detail.name and name_hint:
            detail = PlayerDetail(
                external_id=detail.external_id,
                name=name_hint,
                role=detail.role,
                team_name=detail.team_name,
                country=detail.country,
            )

        player = self._create(tournament_id, detail)
        self._cache[key] = player.id
        logger.info(
            "Created %s player %s (%s) for tournament %d",
            self.provider, external_id, player.name, tournament_id,
        )
        return player.id

    def apply_squad_member(self, tournament_id: int, member: PlayerDetail) -> tuple[Player, str]:
        """
        Upsert a squad-listed player.

        Returns:
            (player, status) where status is 'created', 'updated' or 'unchanged'
        """
        player = self._find(tournament_id, member.external_id)
        if player is None:
            player = self._create(tournament_id, member)
            status = "created"
        elif self._refresh_profile(player, member):
            self.stats.updated += 1
            status = "updated"
        else:
            status = "unchanged"

        self._cache[(tournament_id, member.external_id)] = player.id
        return player, status

    # =========================================================================
    # Internals
    # =========================================================================

    def _find(self, tournament_id: int, external_id: str) -> Optional[Player]:
        return self.db.execute(
            select(Player).where(
                Player.tournament_id == tournament_id,
                Player.provider == self.provider,
                Player.external_id == external_id,
            )
        ).scalar_one_or_none()

    def _create(self, tournament_id: int, detail: PlayerDetail) -> Player:
        player = Player(
            tournament_id=tournament_id,
            provider=self.provider,
            external_id=detail.external_id,
            name=detail.name,
            role=detail.role,
            team_name=detail.team_name,
            country=detail.country,
        )
        self.db.add(player)
        self.db.flush()
        self.stats.created += 1
        return player

    def _refresh_profile(self, player: Player, detail: PlayerDetail) -> bool:
        """Copy non-empty upstream values that differ. Returns True if anything changed."""
        changes = []
        for name in PROFILE_FIELDS:
            incoming = getattr(detail, name)
            if incoming and incoming != getattr(player, name):
                changes.append(f"{name}: {getattr(player, name)!r} -> {incoming!r}")
                setattr(player, name, incoming)
        if changes:
            logger.debug("Updated player %s: %s", player.external_id, "; ".join(changes))
            self.db.flush()
        return bool(changes)
