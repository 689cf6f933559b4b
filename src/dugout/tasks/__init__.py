"""Task runtime utilities for orchestrated pipeline runs."""

from dugout.tasks.leases import claim_match, match_lease, release_match
from dugout.tasks.runtime import StageContext, StageResult, utc_now
from dugout.tasks.stages import StageDefinition, StageRegistry

__all__ = [
    "StageContext",
    "StageDefinition",
    "StageRegistry",
    "StageResult",
    "claim_match",
    "match_lease",
    "release_match",
    "utc_now",
]
