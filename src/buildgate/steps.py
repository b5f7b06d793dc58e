"""Typed pipeline steps.

Each step runs one external tool (or, for cleaning, touches only the
filesystem) and reports a :class:`StepResult` instead of raising: the error,
if any, travels inside the result so the pipeline can stop on it.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from buildgate._meta import logger
from buildgate.classify import ensure_clean, scan, scan_file
from buildgate.errors import BuildgateError, ConfigurationError, ProcessFailureError
from buildgate.gate import ensure_passed, evaluate_file
from buildgate.model.types import BuildConfiguration, BuildTarget
from buildgate.process import ProcessResult, run_tool
from buildgate.toolchain import (
    Toolchain,
    automation_command,
    build_command,
    package_command,
    runner_log_path,
    wrap_with_coverage,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from buildgate.config import BuildgateConfig
    from buildgate.model.coverage import GateResult


class Runner(Protocol):
    def __call__(self, command: Sequence[str], *, log_path: Path, cwd: Path | None = None) -> ProcessResult: ...


@dataclass(frozen=True, slots=True)
class StepContext:
    """Everything a step needs; built once per invocation."""

    config: BuildgateConfig
    runner: Runner = run_tool

    @property
    def toolchain(self) -> Toolchain:
        if self.config.engine_dir is None:
            msg = "an engine directory is required to run engine tools"
            raise ConfigurationError(msg)
        return Toolchain(self.config.engine_dir)


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    error: BuildgateError | None = None
    log_path: Path | None = None
    gate: GateResult | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class _Outcome:
    log_path: Path | None = None
    gate: GateResult | None = None


class Step(ABC):
    """A unit of pipeline work."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def execute(self, ctx: StepContext, outcome: _Outcome) -> None:
        """Do the work, raising :class:`BuildgateError` on failure."""

    def run(self, ctx: StepContext) -> StepResult:
        outcome = _Outcome()
        logger.info("step %s: starting", self.name)
        try:
            self.execute(ctx, outcome)
        except BuildgateError as exc:
            logger.error("step %s: %s", self.name, exc)
            return StepResult(self.name, error=exc, log_path=outcome.log_path, gate=outcome.gate)
        logger.info("step %s: ok", self.name)
        return StepResult(self.name, log_path=outcome.log_path, gate=outcome.gate)


def _run_and_check(ctx: StepContext, command: Sequence[str], *, step: str, outcome: _Outcome) -> ProcessResult:
    log_path = ctx.config.log_path(step)
    outcome.log_path = log_path
    result = ctx.runner(command, log_path=log_path, cwd=ctx.config.root)
    # Exit status first; the log classifier is the stricter second gate.
    result.check()
    ensure_clean(scan(result.lines), step=step)
    return result


@dataclass(frozen=True, slots=True)
class BuildStep(Step):
    target: BuildTarget
    configuration: BuildConfiguration

    @property
    def name(self) -> str:
        return f"Build{self.target.value.capitalize()}{self.configuration.value}"

    def execute(self, ctx: StepContext, outcome: _Outcome) -> None:
        cfg = ctx.config
        cmd = build_command(
            ctx.toolchain,
            cfg.project,
            target=self.target,
            configuration=self.configuration,
            platform=cfg.platform,
            extra=cfg.build_flags,
        )
        _run_and_check(ctx, cmd, step=self.name, outcome=outcome)


@dataclass(frozen=True, slots=True)
class PackageStep(Step):
    configuration: BuildConfiguration

    @property
    def name(self) -> str:
        return f"Package{self.configuration.value}"

    def execute(self, ctx: StepContext, outcome: _Outcome) -> None:
        cfg = ctx.config
        archive = cfg.archive_dir / self.configuration.value
        _remove_tree(archive)
        cmd = package_command(
            ctx.toolchain,
            cfg.project,
            configuration=self.configuration,
            platform=cfg.platform,
            archive_dir=archive,
            extra=cfg.build_flags,
        )
        try:
            _run_and_check(ctx, cmd, step=self.name, outcome=outcome)
        except ProcessFailureError:
            if cfg.clean_on_failure:
                logger.info("removing partial archive %s", archive)
                _remove_tree(archive)
            raise


@dataclass(frozen=True, slots=True)
class TestStep(Step):
    """Run the automation tests, then gate on the runner log and on coverage."""

    __test__ = False  # not a pytest test class

    @property
    def name(self) -> str:
        return "Test"

    def execute(self, ctx: StepContext, outcome: _Outcome) -> None:
        cfg = ctx.config
        report = cfg.coverage_report
        runner_log = runner_log_path(cfg.project)
        for stale in (report, runner_log):
            stale.unlink(missing_ok=True)

        cmd = automation_command(
            ctx.toolchain,
            cfg.project,
            test_map=cfg.test_map,
            test_filter=cfg.effective_test_filter,
            extra=cfg.test_flags,
        )
        if cfg.collect_coverage:
            tool = ctx.toolchain.coverage_tool(cfg.coverage_tool)
            if tool is None:
                logger.info("coverage tool not found, running tests without coverage")
            else:
                report.parent.mkdir(parents=True, exist_ok=True)
                cmd = wrap_with_coverage(cmd, coverage_tool=tool, sources=cfg.root / "Source", report_path=report)

        log_path = cfg.log_path(self.name)
        outcome.log_path = log_path
        ctx.runner(cmd, log_path=log_path, cwd=cfg.root).check()
        ensure_clean(scan_file(runner_log), step=self.name)

        gate = evaluate_file(
            report,
            cfg.coverage_threshold,
            project_root=cfg.root,
            cwd=cfg.root,
            source_url_prefix=cfg.source_url_prefix,
            plugin_marker=cfg.plugin_marker,
        )
        outcome.gate = gate
        ensure_passed(gate)


@dataclass(frozen=True, slots=True)
class CleanStep(Step):
    """Delete build artefacts of the project and its plugins, plus buildgate's own output."""

    @property
    def name(self) -> str:
        return "Clean"

    def execute(self, ctx: StepContext, outcome: _Outcome) -> None:
        for path in clean_targets(ctx.config):
            _remove_tree(path)


def clean_targets(config: BuildgateConfig) -> list[Path]:
    """Return the existing directories a clean removes, project first, then plugins."""
    roots = [config.root]
    plugins_dir = config.root / "Plugins"
    if plugins_dir.is_dir():
        roots.extend(sorted({p.parent for p in plugins_dir.rglob("*.uplugin")}))
    candidates = [root / name for root in roots for name in config.clean_dirs]
    candidates.extend([config.logs_dir, config.coverage_dir, config.archive_dir])
    return [p for p in candidates if p.is_dir()]


def _remove_tree(path: Path) -> None:
    if not path.exists():
        return
    logger.info("removing %s", path)
    try:
        shutil.rmtree(path)
    except OSError as exc:
        msg = f"failed to remove {path}: {exc}"
        raise ProcessFailureError(msg) from exc


def build_all_steps() -> list[Step]:
    """Editor then game builds, in the order a release build needs them."""
    return [
        BuildStep(BuildTarget.EDITOR, BuildConfiguration.DEBUG),
        BuildStep(BuildTarget.EDITOR, BuildConfiguration.DEVELOPMENT),
        BuildStep(BuildTarget.GAME, BuildConfiguration.DEBUG),
        BuildStep(BuildTarget.GAME, BuildConfiguration.DEVELOPMENT),
        BuildStep(BuildTarget.GAME, BuildConfiguration.SHIPPING),
    ]


def package_all_steps() -> list[Step]:
    return [PackageStep(configuration) for configuration in BuildConfiguration]


def ci_steps() -> list[Step]:
    return [*build_all_steps(), TestStep(), *package_all_steps()]


__all__ = [
    "BuildStep",
    "CleanStep",
    "PackageStep",
    "Runner",
    "Step",
    "StepContext",
    "StepResult",
    "TestStep",
    "build_all_steps",
    "ci_steps",
    "clean_targets",
    "package_all_steps",
]
