"""Shared match lifecycle and points-status definitions.

This module is the single source of truth for the state values stored on
matches and the ordering rules the lifecycle tracker enforces.
"""

from __future__ import annotations

from typing import Optional

# Lifecycle states, in the only order a match may move through them.
NOT_STARTED = "not_started"
LIVE = "live"
COMPLETED = "completed"

MATCH_STATES: tuple[str, ...] = (NOT_STARTED, LIVE, COMPLETED)

_STATE_RANK: dict[str, int] = {state: rank for rank, state in enumerate(MATCH_STATES)}

# Finalization progress on a match.
POINTS_NONE = "none"
POINTS_PROCESSING = "processing"
POINTS_COMPLETE = "complete"
POINTS_FAILED = "failed"

POINTS_STATUSES: tuple[str, ...] = (
    POINTS_NONE,
    POINTS_PROCESSING,
    POINTS_COMPLETE,
    POINTS_FAILED,
)

# Score record generations.
GENERATION_LIVE = "live"
GENERATION_FINAL = "final"

SCORE_GENERATIONS: tuple[str, ...] = (GENERATION_LIVE, GENERATION_FINAL)


def state_rank(state: str) -> int:
    """Return the position of a state in the lifecycle, raising KeyError if unknown."""
    return _STATE_RANK[state]


def advance_state(current: Optional[str], reported: Optional[str]) -> str:
    """Return the state a match should hold after a provider report.

    - Unknown or missing reports leave the current state alone.
    - A report behind the current state is ignored (no regressions).
    """
    current_state = current or NOT_STARTED
    if reported not in _STATE_RANK:
        return current_state
    if _STATE_RANK[reported] > _STATE_RANK[current_state]:
        return reported
    return current_state
