"""Stage registry primitives for pipeline orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from dugout.tasks.runtime import StageContext, StageResult

StageRunner = Callable[[StageContext], StageResult | Awaitable[StageResult]]


@dataclass(frozen=True)
class StageDefinition:
    """Registered stage metadata and runner implementation."""

    name: str
    runner: StageRunner
    description: str = ""
    enabled_by_default: bool = True
    needs_providers: bool = False


class StageRegistry:
    """Ordered, in-memory registry of named pipeline stages."""

    def __init__(self) -> None:
        self._stages: dict[str, StageDefinition] = {}

    def register(self, stage: StageDefinition) -> None:
        if stage.name in self._stages:
            raise ValueError(f"Stage already registered: {stage.name}")
        self._stages[stage.name] = stage

    def get(self, stage_name: str) -> StageDefinition:
        try:
            return self._stages[stage_name]
        except KeyError as exc:
            raise KeyError(f"Unknown stage: {stage_name}") from exc

    def default_stage_names(self) -> list[str]:
        return [name for name, stage in self._stages.items() if stage.enabled_by_default]

    def resolve(
        self,
        include: list[str] | None = None,
        skip: set[str] | None = None,
    ) -> list[StageDefinition]:
        """
        Stages to run, in registration order.

        ``include`` picks stages explicitly (unknown names raise KeyError);
        otherwise the defaults are used. ``skip`` always wins.
        """
        skipped = skip or set()
        if include:
            wanted = {self.get(name).name for name in include}
            names = [name for name in self._stages if name in wanted]
        else:
            names = self.default_stage_names()
        return [self._stages[name] for name in names if name not in skipped]
