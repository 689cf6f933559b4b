"""
Pipeline orchestrator.

Runs the points pipeline stages in order for one scheduled invocation:

    match_status -> ingest_performances -> live_scores
                 -> finalize_points -> apply_bonuses

plus the daily sync_fixtures / sync_squads stages when asked for. Each run
is recorded in pipeline_runs / pipeline_stage_runs and, optionally, as JSONL
events. Runs hold no state between invocations: everything a later run
needs to resume is in the convergence flags on the rows themselves.

Usage:
    dugout                                   # default stages
    dugout --stages sync_fixtures,sync_squads
    dugout --skip-stages apply_bonuses --status-jsonl logs/events.jsonl
    dugout --providers sportmonks --artifacts-dir artifacts/runs

Exit codes: 0 success, 1 a stage failed, 2 missing or invalid configuration.
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import logging
import socket
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from sqlalchemy.orm import sessionmaker

from dugout.config import Settings, get_settings
from dugout.db import PipelineRun, PipelineStageRun, session_scope
from dugout.db.session import create_db_engine, make_session_factory
from dugout.errors import MissingConfiguration, UpstreamUnavailable
from dugout.providers.registry import KNOWN_PROVIDERS, ProviderRegistry, build_registry
from dugout.services import (
    BonusCorrectionService,
    FinalizationAllocator,
    LiveScorer,
    PerformanceIngestionService,
    ScheduleSyncStats,
    active_tournaments,
    sync_fixtures,
    sync_live_statuses,
    sync_squads,
)
from dugout.sync_log import SyncLogger
from dugout.tasks import StageContext, StageDefinition, StageRegistry, StageResult, utc_now

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    """Collaborators shared by every stage in a run."""

    settings: Settings
    session_factory: sessionmaker
    registry: ProviderRegistry


def _append_jsonl(path: Path | None, payload: dict[str, Any]) -> None:
    if path is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(payload, default=str) + "\n")


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str) + "\n", encoding="utf-8")


def _sync_logger(ctx: StageContext) -> SyncLogger:
    return SyncLogger(ctx.services.session_factory, ctx.stage_name, sync_run_id=ctx.run_id)


# =============================================================================
# Stage runners
# =============================================================================

async def _run_match_status(ctx: StageContext) -> StageResult:
    services: PipelineServices = ctx.services
    with session_scope(services.session_factory) as session:
        stats = await sync_live_statuses(session, services.registry)
    return StageResult.from_metrics(ctx, stats.to_dict())


async def _run_ingest_performances(ctx: StageContext) -> StageResult:
    services: PipelineServices = ctx.services
    session = services.session_factory()
    try:
        service = PerformanceIngestionService(
            session,
            services.registry,
            owner=ctx.owner,
            lease_seconds=services.settings.match_lease_seconds,
            sync_logger=_sync_logger(ctx),
        )
        stats = await service.run()
        logger.info(stats.summary())
    finally:
        session.close()
    return StageResult.from_metrics(ctx, stats.to_dict())


def _run_live_scores(ctx: StageContext) -> StageResult:
    services: PipelineServices = ctx.services
    session = services.session_factory()
    try:
        stats = LiveScorer(session, sync_logger=_sync_logger(ctx)).run()
    finally:
        session.close()
    return StageResult.from_metrics(ctx, stats.to_dict())


def _run_finalize_points(ctx: StageContext) -> StageResult:
    services: PipelineServices = ctx.services
    session = services.session_factory()
    try:
        allocator = FinalizationAllocator(
            session,
            owner=ctx.owner,
            lease_seconds=services.settings.match_lease_seconds,
            sync_logger=_sync_logger(ctx),
        )
        stats = allocator.run()
    finally:
        session.close()
    return StageResult.from_metrics(ctx, stats.to_dict())


def _run_apply_bonuses(ctx: StageContext) -> StageResult:
    services: PipelineServices = ctx.services
    session = services.session_factory()
    try:
        service = BonusCorrectionService(
            session,
            owner=ctx.owner,
            lease_seconds=services.settings.match_lease_seconds,
            sync_logger=_sync_logger(ctx),
        )
        stats = service.run()
    finally:
        session.close()
    return StageResult.from_metrics(ctx, stats.to_dict())


def _run_tournament_sync(sync_fn):
    async def _runner(ctx: StageContext) -> StageResult:
        services: PipelineServices = ctx.services
        stats = ScheduleSyncStats()
        session = services.session_factory()
        try:
            for tournament in active_tournaments(session):
                if tournament.provider not in services.registry:
                    stats.errors.append(
                        f"tournament {tournament.id}: no adapter for {tournament.provider}"
                    )
                    continue
                adapter = services.registry.get(tournament.provider)
                try:
                    await sync_fn(session, tournament, adapter, stats)
                except UpstreamUnavailable as exc:
                    session.rollback()
                    stats.errors.append(f"tournament {tournament.id}: {exc}")
                    logger.warning("Skipping tournament %s: %s", tournament.id, exc)
        finally:
            session.close()
        return StageResult.from_metrics(ctx, stats.to_dict())

    return _runner


def _build_registry() -> StageRegistry:
    registry = StageRegistry()
    registry.register(
        StageDefinition(
            name="sync_fixtures",
            runner=_run_tournament_sync(sync_fixtures),
            description="Create/refresh matches from provider fixture lists.",
            enabled_by_default=False,
            needs_providers=True,
        )
    )
    registry.register(
        StageDefinition(
            name="sync_squads",
            runner=_run_tournament_sync(sync_squads),
            description="Create/refresh players from provider squad lists.",
            enabled_by_default=False,
            needs_providers=True,
        )
    )
    registry.register(
        StageDefinition(
            name="match_status",
            runner=_run_match_status,
            description="Move due matches along not_started -> live -> completed.",
            needs_providers=True,
        )
    )
    registry.register(
        StageDefinition(
            name="ingest_performances",
            runner=_run_ingest_performances,
            description="Merge provider scorecards into performance rows.",
            needs_providers=True,
        )
    )
    registry.register(
        StageDefinition(
            name="live_scores",
            runner=_run_live_scores,
            description="Recompute provisional scores for live matches.",
        )
    )
    registry.register(
        StageDefinition(
            name="finalize_points",
            runner=_run_finalize_points,
            description="Commit final scores for completed matches.",
        )
    )
    registry.register(
        StageDefinition(
            name="apply_bonuses",
            runner=_run_apply_bonuses,
            description="Apply pending POTM / hat-trick corrections.",
        )
    )
    return registry


async def _execute_stage(stage: StageDefinition, ctx: StageContext) -> StageResult:
    try:
        outcome = stage.runner(ctx)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome
    except Exception as exc:
        logger.exception("Stage %s crashed", stage.name)
        return StageResult(
            stage_name=stage.name,
            status="failed",
            started_at=ctx.started_at,
            ended_at=utc_now(),
            error=f"{type(exc).__name__}: {exc}",
        )


# =============================================================================
# Run bookkeeping
# =============================================================================

def _save_run_started(factory: sessionmaker, run_id: str, started_at: datetime) -> None:
    with session_scope(factory) as session:
        session.add(PipelineRun(run_id=run_id, started_at=started_at, status="running"))


def _save_stage_result(factory: sessionmaker, run_id: str, result: StageResult) -> None:
    with session_scope(factory) as session:
        session.add(
            PipelineStageRun(
                run_id=run_id,
                stage_name=result.stage_name,
                started_at=result.started_at,
                ended_at=result.ended_at,
                status=result.status,
                metrics_json=result.metrics,
                error_text=result.error,
            )
        )


def _save_run_finished(
    factory: sessionmaker,
    run_id: str,
    ended_at: datetime,
    status: str,
    summary: dict[str, Any],
) -> None:
    with session_scope(factory) as session:
        run = session.query(PipelineRun).filter(PipelineRun.run_id == run_id).first()
        if run is None:
            raise RuntimeError(f"PipelineRun not found for run_id={run_id}")
        run.ended_at = ended_at
        run.status = status
        run.summary_json = summary


# =============================================================================
# Entry points
# =============================================================================

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run fantasy points pipeline stages in sequence.")
    parser.add_argument(
        "--stages",
        default=None,
        help="Comma-separated stage list. Default: registry defaults.",
    )
    parser.add_argument(
        "--skip-stages",
        default="",
        help="Comma-separated stage names to skip.",
    )
    parser.add_argument(
        "--providers",
        default=None,
        help="Comma-separated providers to enable. Default: every provider with a credential.",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Continue running remaining stages after a failed stage.",
    )
    parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Write per-stage result JSON under <dir>/<run id>/.",
    )
    parser.add_argument(
        "--metrics-json",
        default=None,
        help="Write the run summary JSON to this path.",
    )
    parser.add_argument(
        "--status-jsonl",
        default=None,
        help="Append run/stage events as JSONL to this path.",
    )
    parser.add_argument(
        "--owner",
        default=None,
        help="Lease owner name for this run. Default: <hostname>-<run id>.",
    )
    return parser.parse_args(argv)


def _split(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def check_startup(
    settings: Settings,
    stages: Sequence[StageDefinition],
    providers: Sequence[str],
) -> None:
    """
    Raise MissingConfiguration before any work if a required credential is absent.
    """
    if any(stage.needs_providers for stage in stages):
        if not providers:
            raise MissingConfiguration(["CRICAPI_API_KEY or SPORTMONKS_API_TOKEN"])
        settings.require_startup_credentials(providers)
    else:
        settings.require_startup_credentials([])


async def run_pipeline(
    args: argparse.Namespace,
    services: PipelineServices,
    stages: Sequence[StageDefinition],
) -> int:
    started_at = utc_now()
    run_id = started_at.strftime("%Y%m%dT%H%M%SZ") + "-" + uuid.uuid4().hex[:8]
    owner = args.owner or f"{socket.gethostname()}-{run_id}"
    events_path = Path(args.status_jsonl) if args.status_jsonl else None
    artifacts_root = Path(args.artifacts_dir) / run_id if args.artifacts_dir else None
    factory = services.session_factory

    run_summary: dict[str, Any] = {
        "run_id": run_id,
        "started_at": started_at.isoformat(),
        "stages": [],
        "status": "running",
    }
    _append_jsonl(events_path, {
        "event": "pipeline_started",
        "run_id": run_id,
        "timestamp": utc_now().isoformat(),
        "stages": [s.name for s in stages],
    })
    _save_run_started(factory, run_id, started_at)

    try:
        for stage in stages:
            ctx = StageContext(
                run_id=run_id,
                stage_name=stage.name,
                started_at=utc_now(),
                owner=owner,
                services=services,
            )
            result = await _execute_stage(stage, ctx)
            _save_stage_result(factory, run_id, result)
            if artifacts_root is not None:
                _write_json(artifacts_root / f"{stage.name}.json", result.to_dict())
            run_summary["stages"].append(result.to_dict())
            _append_jsonl(events_path, {
                "event": "stage_finished",
                "run_id": run_id,
                "timestamp": utc_now().isoformat(),
                **result.to_dict(),
            })
            logger.info(
                "Stage %s finished: %s (%.1fs)",
                stage.name, result.status, result.duration_s,
            )
            if result.status == "failed" and not args.continue_on_error:
                break
    finally:
        await services.registry.aclose()

    ended_at = utc_now()
    has_failed = any(stage["status"] == "failed" for stage in run_summary["stages"])
    final_status = "failed" if has_failed else "success"
    run_summary["ended_at"] = ended_at.isoformat()
    run_summary["status"] = final_status
    run_summary["duration_s"] = (ended_at - started_at).total_seconds()

    _save_run_finished(factory, run_id, ended_at, final_status, run_summary)
    _append_jsonl(events_path, {
        "event": "pipeline_finished",
        "run_id": run_id,
        "timestamp": utc_now().isoformat(),
        "status": final_status,
        "duration_s": run_summary["duration_s"],
    })
    if args.metrics_json:
        _write_json(Path(args.metrics_json), run_summary)
    if artifacts_root is not None:
        _write_json(artifacts_root / "summary.json", run_summary)

    logger.info("Pipeline %s finished with status=%s", run_id, final_status)
    return 1 if final_status == "failed" else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    registry = _build_registry()
    try:
        stages = registry.resolve(
            include=_split(args.stages) or None,
            skip=set(_split(args.skip_stages)),
        )
    except KeyError as exc:
        logger.error("%s", exc.args[0])
        return 2

    providers = _split(args.providers) or [
        name for name in KNOWN_PROVIDERS if settings.provider_credential(name)
    ]
    unknown = sorted(set(providers) - set(KNOWN_PROVIDERS))
    if unknown:
        logger.error(
            "Unknown provider(s): %s (expected one of %s)",
            ", ".join(unknown), ", ".join(KNOWN_PROVIDERS),
        )
        return 2

    try:
        check_startup(settings, stages, providers)
    except MissingConfiguration as exc:
        logger.error("%s", exc)
        return 2

    engine = create_db_engine(settings)
    services = PipelineServices(
        settings=settings,
        session_factory=make_session_factory(engine),
        registry=build_registry(settings, providers),
    )
    try:
        return asyncio.run(run_pipeline(args, services, stages))
    finally:
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
