"""
Fantasy points rules engine.

Pure computation: a player's performance counters plus a tournament's points
table give four category scores and a total. Nothing here touches the
database or the network, so every rule can be table-tested directly.

Scoring rules:
  Batting  = runs*batting_runs + sixes*batting_six
             + batting_duck       if runs == 0 and dismissed
             + batting_fastrr     if strike_rate >= 150 and balls >= 10
             + batting_slowrr     if strike_rate <= 90 and balls >= 10
             + one milestone bonus (highest of 200/100/50/30 reached)
  Bowling  = wickets*bowling_wicket + maidens*bowling_maiden
             + (no_balls + wides)*bowling_noballswides
             + bowling_lower      if economy <= 7 and overs >= 2
             + bowling_higher     if economy >= 9 and overs >= 2
             + one haul bonus (highest of 5/3 wickets reached)
  Fielding = catches*fielding_catch + runouts*fielding_runout
             + stumpings*fielding_stumping
  Bonus    = potm*bonus_potm + hattricks*bonus_hattrick
  Total    = Batting + Bowling + Fielding + Bonus
"""

from dataclasses import dataclass, fields
from typing import Any, Optional

from dugout.scoring.constants import (
    BATTING_MILESTONES,
    FAST_STRIKE_RATE,
    HIGH_ECONOMY,
    LOW_ECONOMY,
    MIN_BALLS_FOR_STRIKE_RATE,
    MIN_OVERS_FOR_ECONOMY,
    NOT_OUT_DISMISSALS,
    SLOW_STRIKE_RATE,
    WICKET_HAULS,
)


@dataclass(frozen=True)
class PointsRules:
    """
    Weights from a tournament's points table.

    Field names match the points_configs columns, so a row converts with
    PointsRules.from_config(row).
    """
    batting_runs: int = 0
    batting_six: int = 0
    batting_duck: int = 0
    batting_fastrr: int = 0
    batting_slowrr: int = 0
    batting_30: int = 0
    batting_50: int = 0
    batting_100: int = 0
    batting_200: int = 0
    bowling_wicket: int = 0
    bowling_maiden: int = 0
    bowling_noballswides: int = 0
    bowling_lower: int = 0
    bowling_higher: int = 0
    bowling_3wickets: int = 0
    bowling_5wickets: int = 0
    fielding_catch: int = 0
    fielding_runout: int = 0
    fielding_stumping: int = 0
    bonus_potm: int = 0
    bonus_hattrick: int = 0

    @classmethod
    def from_config(cls, config: Any) -> "PointsRules":
        """Build rules from any object carrying the weight attributes (e.g. PointsConfig)."""
        values = {}
        for f in fields(cls):
            value = getattr(config, f.name, None)
            values[f.name] = int(value) if value is not None else 0
        return cls(**values)


@dataclass(frozen=True)
class PerformanceStats:
    """The counters the rules engine reads for one player in one match."""
    runs: int = 0
    balls_faced: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    dismissal: Optional[str] = None
    overs: float = 0.0
    wickets: int = 0
    maidens: int = 0
    no_balls: int = 0
    wides: int = 0
    economy: float = 0.0
    catches: int = 0
    runouts: int = 0
    stumpings: int = 0
    potm: bool = False
    hattrick: int = 0

    @classmethod
    def from_record(cls, record: Any) -> "PerformanceStats":
        """Read counters off a PerformanceRecord (or anything shaped like one)."""
        return cls(
            runs=record.batting_runs or 0,
            balls_faced=record.batting_balls_faced or 0,
            sixes=record.batting_sixes or 0,
            strike_rate=float(record.batting_strike_rate or 0.0),
            dismissal=record.batting_dismissal,
            overs=float(record.bowling_overs or 0.0),
            wickets=record.bowling_wickets or 0,
            maidens=record.bowling_maidens or 0,
            no_balls=record.bowling_no_balls or 0,
            wides=record.bowling_wides or 0,
            economy=float(record.bowling_economy or 0.0),
            catches=record.fielding_catches or 0,
            runouts=record.fielding_runouts or 0,
            stumpings=record.fielding_stumpings or 0,
            potm=bool(record.potm),
            hattrick=record.hattrick or 0,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Category scores for one player in one match."""
    batting: int
    bowling: int
    fielding: int
    bonus: int

    @property
    def total(self) -> int:
        return self.batting + self.bowling + self.fielding + self.bonus

    def with_bonus(self, bonus: int) -> "ScoreBreakdown":
        """Copy with the bonus category replaced."""
        return ScoreBreakdown(
            batting=self.batting,
            bowling=self.bowling,
            fielding=self.fielding,
            bonus=bonus,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "batting": self.batting,
            "bowling": self.bowling,
            "fielding": self.fielding,
            "bonus": self.bonus,
            "total": self.total,
        }


def is_dismissed(dismissal: Optional[str]) -> bool:
    """
    Whether a batter's dismissal text means they were out.

    Not out, still batting, and retired hurt all count as NOT out, so they
    never attract a duck penalty. Comparison is case-insensitive.
    """
    if dismissal is None:
        return False
    return dismissal.strip().lower() not in NOT_OUT_DISMISSALS


def _milestone_bonus(runs: int, rules: PointsRules) -> int:
    for threshold, weight_name in BATTING_MILESTONES:
        if runs >= threshold:
            return getattr(rules, weight_name)
    return 0


def _wicket_haul_bonus(wickets: int, rules: PointsRules) -> int:
    for threshold, weight_name in WICKET_HAULS:
        if wickets >= threshold:
            return getattr(rules, weight_name)
    return 0


def batting_points(stats: PerformanceStats, rules: PointsRules) -> int:
    points = stats.runs * rules.batting_runs + stats.sixes * rules.batting_six

    if stats.runs == 0 and is_dismissed(stats.dismissal):
        points += rules.batting_duck

    if stats.balls_faced >= MIN_BALLS_FOR_STRIKE_RATE:
        if stats.strike_rate >= FAST_STRIKE_RATE:
            points += rules.batting_fastrr
        elif stats.strike_rate <= SLOW_STRIKE_RATE:
            points += rules.batting_slowrr

    points += _milestone_bonus(stats.runs, rules)
    return points


def bowling_points(stats: PerformanceStats, rules: PointsRules) -> int:
    points = (
        stats.wickets * rules.bowling_wicket
        + stats.maidens * rules.bowling_maiden
        + (stats.no_balls + stats.wides) * rules.bowling_noballswides
    )

    if stats.overs >= MIN_OVERS_FOR_ECONOMY:
        if stats.economy <= LOW_ECONOMY:
            points += rules.bowling_lower
        elif stats.economy >= HIGH_ECONOMY:
            points += rules.bowling_higher

    points += _wicket_haul_bonus(stats.wickets, rules)
    return points


def fielding_points(stats: PerformanceStats, rules: PointsRules) -> int:
    return (
        stats.catches * rules.fielding_catch
        + stats.runouts * rules.fielding_runout
        + stats.stumpings * rules.fielding_stumping
    )


def bonus_points(potm: bool, hattrick: int, rules: PointsRules) -> int:
    return (rules.bonus_potm if potm else 0) + hattrick * rules.bonus_hattrick


def score(stats: PerformanceStats, rules: PointsRules) -> ScoreBreakdown:
    """
    Compute all category scores for one performance.

    Deterministic and side-effect free: identical inputs always give an
    identical breakdown, and breakdown.total is always the category sum.
    """
    return ScoreBreakdown(
        batting=batting_points(stats, rules),
        bowling=bowling_points(stats, rules),
        fielding=fielding_points(stats, rules),
        bonus=bonus_points(stats.potm, stats.hattrick, rules),
    )
