from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from buildgate._meta import logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildgate.steps import Step, StepContext, StepResult


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Results of the steps that ran, in order; the last one is the failure, if any."""

    results: tuple[StepResult, ...]
    planned: int

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results) and len(self.results) == self.planned

    @property
    def failed(self) -> StepResult | None:
        return next((r for r in self.results if not r.ok), None)


class Pipeline:
    """Runs steps one after another and stops at the first failure."""

    def __init__(self, steps: Iterable[Step]) -> None:
        self.steps = tuple(steps)

    def run(self, ctx: StepContext) -> PipelineResult:
        results: list[StepResult] = []
        for index, step in enumerate(self.steps, start=1):
            logger.info("[%d/%d] %s", index, len(self.steps), step.name)
            result = step.run(ctx)
            results.append(result)
            if not result.ok:
                skipped = len(self.steps) - index
                if skipped:
                    logger.warning("stopping after %s; %d step(s) not run", step.name, skipped)
                break
        return PipelineResult(results=tuple(results), planned=len(self.steps))


__all__ = ["Pipeline", "PipelineResult"]
