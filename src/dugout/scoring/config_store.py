"""Lookup helpers for per-tournament points tables."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from dugout.db.models import PointsConfig
from dugout.errors import ConfigMissing
from dugout.scoring.rules import PointsRules


def load_points_rules(session: Session, tournament_id: int) -> PointsRules:
    """Return the tournament's points rules, raising ConfigMissing if none exist."""
    config = session.execute(
        select(PointsConfig).where(PointsConfig.tournament_id == tournament_id)
    ).scalar_one_or_none()
    if config is None:
        raise ConfigMissing(tournament_id)
    return PointsRules.from_config(config)


class PointsRulesCache:
    """Per-run memo of points rules; a missing table is remembered too."""

    def __init__(self, session: Session):
        self.session = session
        self._rules: dict[int, PointsRules | None] = {}

    def get(self, tournament_id: int) -> PointsRules:
        if tournament_id not in self._rules:
            try:
                self._rules[tournament_id] = load_points_rules(self.session, tournament_id)
            except ConfigMissing:
                self._rules[tournament_id] = None
                raise
        rules = self._rules[tournament_id]
        if rules is None:
            raise ConfigMissing(tournament_id)
        return rules
