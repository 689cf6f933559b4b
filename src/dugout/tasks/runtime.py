"""Shared runtime dataclasses for orchestrated pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

StageStatus = Literal["success", "failed", "partial", "skipped"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class StageContext:
    """
    Runtime context passed to each stage handler.

    ``owner`` identifies this run in match leases; ``services`` carries the
    shared collaborators (session factory, provider registry, settings).
    """

    run_id: str
    stage_name: str
    started_at: datetime
    owner: str
    services: Any = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class StageResult:
    """Normalized result returned by a stage handler."""

    stage_name: str
    status: StageStatus
    started_at: datetime
    ended_at: datetime
    metrics: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def duration_s(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

    @classmethod
    def from_metrics(
        cls,
        ctx: StageContext,
        metrics: dict[str, Any],
        error: Optional[str] = None,
    ) -> "StageResult":
        """
        Build a result from a stage's stats dict.

        A stage that recorded errors but finished is 'partial'; an explicit
        error makes it 'failed'.
        """
        if error is not None:
            status: StageStatus = "failed"
        elif metrics.get("errors"):
            status = "partial"
        else:
            status = "success"
        return cls(
            stage_name=ctx.stage_name,
            status=status,
            started_at=ctx.started_at,
            ended_at=utc_now(),
            metrics=metrics,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_s": self.duration_s,
            "metrics": self.metrics,
            "error": self.error,
        }
