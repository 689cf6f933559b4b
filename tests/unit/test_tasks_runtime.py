"""Unit tests for task runtime primitives."""

from datetime import datetime, timedelta

import pytest

from dugout.tasks.runtime import StageContext, StageResult
from dugout.tasks.stages import StageDefinition, StageRegistry


def _noop_stage(_ctx):
    raise NotImplementedError


def test_stage_registry_register_and_get():
    registry = StageRegistry()
    stage = StageDefinition(name="alpha", runner=_noop_stage)
    registry.register(stage)

    loaded = registry.get("alpha")
    assert loaded.name == "alpha"
    assert loaded.runner is _noop_stage


def test_stage_registry_duplicate_registration_raises():
    registry = StageRegistry()
    stage = StageDefinition(name="dup", runner=_noop_stage)
    registry.register(stage)
    with pytest.raises(ValueError):
        registry.register(stage)


def test_stage_registry_unknown_stage_raises():
    registry = StageRegistry()
    with pytest.raises(KeyError, match="Unknown stage"):
        registry.get("missing")


def test_stage_registry_resolve_keeps_registration_order():
    registry = StageRegistry()
    registry.register(StageDefinition(name="a", runner=_noop_stage, enabled_by_default=True))
    registry.register(StageDefinition(name="b", runner=_noop_stage, enabled_by_default=True))
    registry.register(StageDefinition(name="c", runner=_noop_stage, enabled_by_default=False))

    default_names = [s.name for s in registry.resolve()]
    assert default_names == ["a", "b"]

    include_names = [s.name for s in registry.resolve(include=["c", "a"])]
    assert include_names == ["a", "c"]

    skipped = [s.name for s in registry.resolve(include=["c", "a"], skip={"a"})]
    assert skipped == ["c"]


def test_stage_result_duration_and_payload():
    started = datetime(2026, 4, 14, 10, 0, 0)
    ended = started + timedelta(seconds=12.5)
    result = StageResult(
        stage_name="example",
        status="success",
        started_at=started,
        ended_at=ended,
        metrics={"rows": 123},
    )

    assert result.duration_s == 12.5
    payload = result.to_dict()
    assert payload["stage_name"] == "example"
    assert payload["status"] == "success"
    assert payload["duration_s"] == 12.5
    assert payload["metrics"] == {"rows": 123}


def test_stage_result_status_from_metrics():
    ctx = StageContext(
        run_id="run-1",
        stage_name="finalize_points",
        started_at=datetime(2026, 4, 14, 10, 0, 0),
        owner="host-1",
    )
    assert StageResult.from_metrics(ctx, {"errors": []}).status == "success"
    assert StageResult.from_metrics(ctx, {"errors": ["match 3: boom"]}).status == "partial"
    assert StageResult.from_metrics(ctx, {}, error="crashed").status == "failed"
