"""
Schedule, squad and live-status synchronisation.

These keep the match and player tables in step with the providers ahead of
ingestion:

- sync_fixtures: create/refresh Match rows for a tournament's fixtures
- sync_squads: create/refresh Player rows from squad listings
- sync_live_statuses: poll provider state for matches that should have
  started and move them along the lifecycle

Existing rows are updated in place; completed_and_captured, points_status
and the lifecycle state are never wound back by a schedule refresh.
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from dugout.db.models import Match, Tournament
from dugout.errors import UpstreamUnavailable
from dugout.match_statuses import COMPLETED
from dugout.players.resolver import PlayerResolver
from dugout.providers.base import ProviderAdapter
from dugout.providers.registry import ProviderRegistry
from dugout.services.lifecycle import MatchLifecycleTracker

logger = logging.getLogger(__name__)

ACTIVE_TOURNAMENT_STATUSES = ("upcoming", "in_progress")

# Schedule columns copied from FixtureInfo onto Match
SCHEDULE_FIELDS = (
    "name",
    "match_type",
    "starts_at",
    "team1",
    "team2",
    "team1_ref",
    "team2_ref",
    "venue",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class ScheduleSyncStats:
    fixtures_seen: int = 0
    matches_created: int = 0
    matches_updated: int = 0
    players_created: int = 0
    players_updated: int = 0
    states_changed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def active_tournaments(session: Session) -> list[Tournament]:
    return list(
        session.execute(
            select(Tournament)
            .where(Tournament.status.in_(ACTIVE_TOURNAMENT_STATUSES))
            .order_by(Tournament.id)
        ).scalars()
    )


async def sync_fixtures(
    session: Session,
    tournament: Tournament,
    adapter: ProviderAdapter,
    stats: Optional[ScheduleSyncStats] = None,
) -> ScheduleSyncStats:
    """Upsert Match rows for every fixture the provider lists for a tournament."""
    stats = stats or ScheduleSyncStats()
    tracker = MatchLifecycleTracker(session)
    fixtures = await adapter.fetch_fixtures(tournament)

    for fixture in fixtures:
        stats.fixtures_seen += 1
        match = session.execute(
            select(Match).where(
                Match.provider == adapter.name,
                Match.external_id == fixture.external_id,
            )
        ).scalar_one_or_none()

        if match is None:
            match = Match(
                tournament_id=tournament.id,
                provider=adapter.name,
                external_id=fixture.external_id,
            )
            session.add(match)
            stats.matches_created += 1
        else:
            stats.matches_updated += 1

        for name in SCHEDULE_FIELDS:
            value = getattr(fixture, name)
            if value is not None:
                setattr(match, name, value)

        if tracker.observe(match, fixture.state, fixture.status_text):
            stats.states_changed += 1
        session.flush()

    session.commit()
    logger.info(
        "Fixtures for %s: %d seen, %d created, %d updated",
        tournament.name, stats.fixtures_seen, stats.matches_created, stats.matches_updated,
    )
    return stats


async def sync_squads(
    session: Session,
    tournament: Tournament,
    adapter: ProviderAdapter,
    stats: Optional[ScheduleSyncStats] = None,
) -> ScheduleSyncStats:
    """Upsert Player rows from the provider's squad listings for a tournament."""
    stats = stats or ScheduleSyncStats()

    team_refs: list[str] = []
    rows = session.execute(
        select(Match.team1_ref, Match.team2_ref)
        .where(Match.tournament_id == tournament.id)
        .order_by(Match.id)
    ).all()
    for team1_ref, team2_ref in rows:
        for ref in (team1_ref, team2_ref):
            if ref and ref not in team_refs:
                team_refs.append(ref)

    members = await adapter.fetch_squads(tournament, team_refs)
    resolver = PlayerResolver(session, adapter)
    for member in members:
        _, status = resolver.apply_squad_member(tournament.id, member)
        if status == "created":
            stats.players_created += 1
        elif status == "updated":
            stats.players_updated += 1

    session.commit()
    logger.info(
        "Squads for %s: %d listed, %d created, %d updated",
        tournament.name, len(members), stats.players_created, stats.players_updated,
    )
    return stats


async def sync_live_statuses(
    session: Session,
    registry: ProviderRegistry,
    now: Optional[datetime] = None,
    stats: Optional[ScheduleSyncStats] = None,
) -> ScheduleSyncStats:
    """
    Refresh lifecycle state for matches that are due or in progress.

    Matches the provider no longer lists are left as they are; only an
    explicit report moves a match forward.
    """
    stats = stats or ScheduleSyncStats()
    now = now or _utc_now()
    tracker = MatchLifecycleTracker(session)

    due = session.execute(
        select(Match)
        .where(
            Match.state != COMPLETED,
            or_(Match.starts_at.is_(None), Match.starts_at <= now),
        )
        .order_by(Match.id)
    ).scalars().all()

    by_provider: dict[str, list[Match]] = defaultdict(list)
    for match in due:
        by_provider[match.provider].append(match)

    for provider, matches in by_provider.items():
        if provider not in registry:
            stats.errors.append(f"no adapter registered for provider {provider}")
            continue
        adapter = registry.get(provider)
        try:
            reports = await adapter.fetch_match_states([m.external_id for m in matches])
        except UpstreamUnavailable as exc:
            logger.warning("Status poll failed for %s; retrying next run: %s", provider, exc)
            stats.errors.append(f"{provider}: {exc}")
            continue
        for match in matches:
            report = reports.get(match.external_id)
            if report is None:
                continue
            if tracker.observe(match, report.state, report.status_text):
                stats.states_changed += 1

    session.commit()
    return stats
