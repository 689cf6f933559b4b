"""
Thresholds used by the points rules engine.

The weights themselves live in each tournament's points_configs row; these
are the fixed cut-offs that decide when a weight applies.

Strike rate bonuses only count once a batter has faced enough balls, and
economy bonuses only once a bowler has bowled enough overs, so a single
lucky (or unlucky) over does not swing a player's score.
"""

# Batting strike rate (runs per 100 balls)
FAST_STRIKE_RATE = 150.0
SLOW_STRIKE_RATE = 90.0
MIN_BALLS_FOR_STRIKE_RATE = 10

# Bowling economy (runs per over)
LOW_ECONOMY = 7.0
HIGH_ECONOMY = 9.0
MIN_OVERS_FOR_ECONOMY = 2.0

# Batting milestones, highest first. Only the first satisfied one is awarded.
BATTING_MILESTONES: tuple[tuple[int, str], ...] = (
    (200, "batting_200"),
    (100, "batting_100"),
    (50, "batting_50"),
    (30, "batting_30"),
)

# Wicket hauls, highest first. Only the first satisfied one is awarded.
WICKET_HAULS: tuple[tuple[int, str], ...] = (
    (5, "bowling_5wickets"),
    (3, "bowling_3wickets"),
)

# Dismissal texts that mean the batter was NOT out. Compared lower-cased.
NOT_OUT_DISMISSALS: frozenset[str] = frozenset({
    "",
    "not out",
    "batting",
    "retired hurt",
    "retired not out",
    "did not bat",
    "dnb",
})
