"""
Performance normalizer: field-wise merging of partial performance updates.

Providers report batting, bowling and fielding separately, possibly in
different runs and in any order. Each report becomes a *delta* holding only
the fields it knows about, and deltas are merged into the stored record:

- a field present in the delta overwrites the stored value
- a field absent from the delta keeps the stored value
- with no stored record, unset counters default to zero / False

Because deltas for different disciplines touch disjoint fields, merging them
one after another gives the same result as merging their union at once.
"""

from typing import Any, Mapping, Optional

from dugout.providers.base import BattingEntry, BowlingEntry, FieldingEntry

# Every mergeable column on PerformanceRecord with its default
PERFORMANCE_FIELDS: dict[str, Any] = {
    "batting_runs": 0,
    "batting_balls_faced": 0,
    "batting_sixes": 0,
    "batting_strike_rate": 0.0,
    "batting_dismissal": None,
    "bowling_overs": 0.0,
    "bowling_wickets": 0,
    "bowling_runs_conceded": 0,
    "bowling_maidens": 0,
    "bowling_no_balls": 0,
    "bowling_wides": 0,
    "bowling_economy": 0.0,
    "bowling_dot_balls": 0,
    "bowling_sixes_conceded": 0,
    "fielding_catches": 0,
    "fielding_runouts": 0,
    "fielding_stumpings": 0,
    "potm": False,
    "hattrick": 0,
}


def empty_performance() -> dict[str, Any]:
    return dict(PERFORMANCE_FIELDS)


def merge(
    existing: Optional[Mapping[str, Any]],
    delta: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Merge ``delta`` into ``existing`` and return the full record values.

    Neither argument is modified. Keys outside PERFORMANCE_FIELDS in the
    delta are rejected; extra keys in ``existing`` are ignored.

    Raises:
        ValueError: if the delta names an unknown field
    """
    unknown = set(delta) - set(PERFORMANCE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown performance fields: {sorted(unknown)}")

    merged = empty_performance()
    if existing is not None:
        for name in PERFORMANCE_FIELDS:
            if name in existing:
                merged[name] = existing[name]
    merged.update(delta)
    return merged


def batting_delta(entry: BattingEntry) -> dict[str, Any]:
    return {
        "batting_runs": entry.runs,
        "batting_balls_faced": entry.balls_faced,
        "batting_sixes": entry.sixes,
        "batting_strike_rate": entry.strike_rate,
        "batting_dismissal": entry.dismissal,
    }


def bowling_delta(entry: BowlingEntry) -> dict[str, Any]:
    return {
        "bowling_overs": entry.overs,
        "bowling_wickets": entry.wickets,
        "bowling_runs_conceded": entry.runs_conceded,
        "bowling_maidens": entry.maidens,
        "bowling_no_balls": entry.no_balls,
        "bowling_wides": entry.wides,
        "bowling_economy": entry.economy,
        "bowling_dot_balls": entry.dot_balls,
        "bowling_sixes_conceded": entry.sixes_conceded,
    }


def fielding_delta(entry: FieldingEntry) -> dict[str, Any]:
    return {
        "fielding_catches": entry.catches,
        "fielding_runouts": entry.runouts,
        "fielding_stumpings": entry.stumpings,
    }


def bonus_delta(potm: bool, hattrick: int) -> dict[str, Any]:
    return {"potm": bool(potm), "hattrick": int(hattrick)}
