from __future__ import annotations

from typing import Annotated

import typer

from buildgate.cli._shared import (
    ColorOption,
    EngineDirOption,
    NoColorOption,
    PlatformOption,
    ProjectDirOption,
    build_context,
    resolve_use_color,
    run_steps,
    stdout_color_allowed,
)
from buildgate.steps import TestStep, ci_steps

ThresholdOption = Annotated[
    float | None,
    typer.Option("--threshold", help="Fail if overall line coverage % is below this value.", min=0, max=100),
]
FilterOption = Annotated[
    str | None,
    typer.Option("--filter", help="Automation test name filter (default: the project name)."),
]
NoCoverageOption = Annotated[
    bool,
    typer.Option("--no-coverage", help="Run the tests without the coverage tool."),
]


def run_tests_cmd(
    project_dir: ProjectDirOption = None,
    engine_dir: EngineDirOption = None,
    platform: PlatformOption = None,
    threshold: ThresholdOption = None,
    test_filter: FilterOption = None,
    no_coverage: NoCoverageOption = False,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Run the automation tests and enforce the coverage threshold."""
    ctx = build_context(
        project_dir=project_dir,
        engine_dir=engine_dir,
        platform=platform,
        coverage_threshold=threshold,
        test_filter=test_filter,
        collect_coverage=False if no_coverage else None,
    )
    use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=stdout_color_allowed())
    run_steps(ctx, [TestStep()], use_color=use_color)


def ci_cmd(
    project_dir: ProjectDirOption = None,
    engine_dir: EngineDirOption = None,
    platform: PlatformOption = None,
    threshold: ThresholdOption = None,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Build every target, run the tests, then package every configuration."""
    ctx = build_context(
        project_dir=project_dir,
        engine_dir=engine_dir,
        platform=platform,
        coverage_threshold=threshold,
    )
    use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=stdout_color_allowed())
    run_steps(ctx, ci_steps(), use_color=use_color)


def register(app: typer.Typer) -> None:
    app.command("test")(run_tests_cmd)
    app.command("ci")(ci_cmd)


__all__ = ["register"]
