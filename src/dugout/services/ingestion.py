"""
Performance ingestion: provider scorecards -> merged performance rows.

Runs over every match that has started and has not been fully captured,
including matches still in progress, so performance rows fill in during the
match and the live scorer always has something current to read.

Workflow per run:
1. Prefetch all candidate scorecards concurrently (bounded by each
   provider client's semaphore)
2. For each scorecard, under the match lease:
   a. resolve every player (skip just that row if unresolvable)
   b. merge batting, bowling and fielding deltas into performance rows
   c. store the raw payload on the match for archival
   d. feed the reported state to the lifecycle tracker
   e. commit

A provider failure skips the match for this run; the next run retries it.

Usage:
    service = PerformanceIngestionService(session, registry, owner="run-1")
    stats = await service.run()
    print(stats.summary())
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dugout.db.models import Match
from dugout.db.upserts import upsert_performance
from dugout.errors import PlayerUnresolvable, UpstreamUnavailable
from dugout.match_statuses import NOT_STARTED
from dugout.players.resolver import PlayerResolver
from dugout.providers.base import Scorecard
from dugout.providers.registry import ProviderRegistry
from dugout.scoring.normalizer import batting_delta, bowling_delta, fielding_delta
from dugout.services.lifecycle import MatchLifecycleTracker
from dugout.sync_log import SyncLogger
from dugout.tasks.leases import match_lease

logger = logging.getLogger(__name__)


@dataclass
class PerformanceIngestionStats:
    """Statistics from a performance ingestion run."""
    matches_considered: int = 0
    matches_ingested: int = 0
    matches_skipped_upstream: int = 0
    matches_skipped_leased: int = 0
    matches_without_scorecard: int = 0
    rows_written: int = 0
    rows_skipped_unresolvable: int = 0
    players_created: int = 0
    state_changes: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary of ingestion results."""
        lines = [
            "Performance ingestion complete:",
            f"  Matches considered:       {self.matches_considered}",
            f"  Matches ingested:         {self.matches_ingested}",
            f"  Skipped (upstream):       {self.matches_skipped_upstream}",
            f"  Skipped (leased):         {self.matches_skipped_leased}",
            f"  No scorecard yet:         {self.matches_without_scorecard}",
            f"  Performance rows written: {self.rows_written}",
            f"  Rows skipped (player):    {self.rows_skipped_unresolvable}",
            f"  Players created:          {self.players_created}",
            f"  State changes:            {self.state_changes}",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                lines.append(f"    - {err}")
            if len(self.errors) > 5:
                lines.append(f"    ... and {len(self.errors) - 5} more")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PerformanceIngestionService:
    """Pulls scorecards for in-play and finished matches into performance rows."""

    def __init__(
        self,
        db: Session,
        registry: ProviderRegistry,
        *,
        owner: str,
        lease_seconds: int = 600,
        sync_logger: Optional[SyncLogger] = None,
    ):
        self.db = db
        self.registry = registry
        self.owner = owner
        self.lease_seconds = lease_seconds
        self.sync_logger = sync_logger or SyncLogger(None, "ingest_performances")
        self.tracker = MatchLifecycleTracker(db)
        self.stats = PerformanceIngestionStats()
        self._resolvers: dict[str, PlayerResolver] = {}

    def candidate_matches(self) -> list[Match]:
        """Matches that have started but are not yet fully captured."""
        return list(
            self.db.execute(
                select(Match)
                .where(
                    Match.state != NOT_STARTED,
                    Match.completed_and_captured.is_(False),
                )
                .order_by(Match.id)
            ).scalars()
        )

    async def run(self, matches: Optional[Iterable[Match]] = None) -> PerformanceIngestionStats:
        targets = list(matches) if matches is not None else self.candidate_matches()
        self.stats.matches_considered += len(targets)
        self.sync_logger.log_sync_start(matches=len(targets))

        scorecards = await asyncio.gather(*(self._fetch(match) for match in targets))

        for match, scorecard in zip(targets, scorecards):
            if scorecard is None:
                continue
            await self.apply_scorecard(match, scorecard)

        self.stats.players_created = sum(r.stats.created for r in self._resolvers.values())
        self.sync_logger.log_sync_complete(self.stats.to_dict())
        return self.stats

    async def _fetch(self, match: Match) -> Optional[Scorecard]:
        try:
            adapter = self.registry.get(match.provider)
        except KeyError as exc:
            self.stats.errors.append(f"match {match.id}: {exc}")
            return None

        try:
            scorecard = await adapter.fetch_scorecard(match.external_id)
        except UpstreamUnavailable as exc:
            self.stats.matches_skipped_upstream += 1
            self.sync_logger.log_api_call(match.provider, f"scorecard/{match.external_id}", False, exc.status_code)
            return None

        self.sync_logger.log_api_call(match.provider, f"scorecard/{match.external_id}", True)
        return scorecard

    def _resolver_for(self, provider: str) -> PlayerResolver:
        resolver = self._resolvers.get(provider)
        if resolver is None:
            resolver = PlayerResolver(self.db, self.registry.get(provider))
            self._resolvers[provider] = resolver
        return resolver

    async def apply_scorecard(self, match: Match, scorecard: Scorecard) -> bool:
        """
        Merge one scorecard into performance rows for its match.

        Returns:
            True if the scorecard was applied and committed
        """
        match_id = match.id
        with match_lease(self.db, match_id, self.owner, self.lease_seconds) as acquired:
            if not acquired:
                self.stats.matches_skipped_leased += 1
                logger.info("Match %s is leased by another run; skipping", match_id)
                return False

            self.sync_logger.log_match_start(match_id, match.external_id, match.name)
            if not scorecard.has_entries:
                self.stats.matches_without_scorecard += 1
                self.sync_logger.log_no_scorecard(match_id)

            resolver = self._resolver_for(match.provider)
            sections: tuple[tuple[str, list, Callable[[Any], dict]], ...] = (
                ("batting", scorecard.batting, batting_delta),
                ("bowling", scorecard.bowling, bowling_delta),
                ("fielding", scorecard.fielding, fielding_delta),
            )

            try:
                for discipline, entries, to_delta in sections:
                    for entry in entries:
                        await self._apply_entry(match, resolver, discipline, entry, to_delta)

                match.last_payload = scorecard.raw
                if self.tracker.observe(match, scorecard.state, scorecard.status_text):
                    self.stats.state_changes += 1
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                self.stats.errors.append(f"match {match_id}: {exc}")
                self.sync_logger.log_error("ingest_match", exc, match_id=match_id)
                return False

        self.stats.matches_ingested += 1
        return True

    async def _apply_entry(
        self,
        match: Match,
        resolver: PlayerResolver,
        discipline: str,
        entry: Any,
        to_delta: Callable[[Any], dict],
    ) -> None:
        try:
            player_id = await resolver.resolve(entry.player_ref, match.tournament_id)
        except PlayerUnresolvable as exc:
            self.stats.rows_skipped_unresolvable += 1
            self.sync_logger.log_player_processing(
                match.id, entry.player_ref, discipline, False, str(exc)
            )
            return

        upsert_performance(
            self.db,
            match_id=match.id,
            player_id=player_id,
            tournament_id=match.tournament_id,
            delta=to_delta(entry),
        )
        self.stats.rows_written += 1
        self.sync_logger.log_player_processing(match.id, entry.player_ref, discipline, True)
