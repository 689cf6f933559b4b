"""Pipeline services: ingestion, scoring, finalization and sync jobs."""

from dugout.services.bonus import BonusCorrectionService, BonusStats
from dugout.services.finalization import FinalizationAllocator, FinalizationStats
from dugout.services.ingestion import PerformanceIngestionService, PerformanceIngestionStats
from dugout.services.lifecycle import MatchLifecycleTracker
from dugout.services.live_scoring import LiveScorer, LiveScoringStats
from dugout.services.schedule_sync import (
    ScheduleSyncStats,
    active_tournaments,
    sync_fixtures,
    sync_live_statuses,
    sync_squads,
)

__all__ = [
    "BonusCorrectionService",
    "BonusStats",
    "FinalizationAllocator",
    "FinalizationStats",
    "LiveScorer",
    "LiveScoringStats",
    "MatchLifecycleTracker",
    "PerformanceIngestionService",
    "PerformanceIngestionStats",
    "ScheduleSyncStats",
    "active_tournaments",
    "sync_fixtures",
    "sync_live_statuses",
    "sync_squads",
]
