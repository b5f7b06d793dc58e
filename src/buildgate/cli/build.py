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
from buildgate.model.types import BuildConfiguration, BuildTarget
from buildgate.steps import BuildStep, CleanStep, PackageStep, Step, build_all_steps, package_all_steps

TargetOption = Annotated[
    BuildTarget | None,
    typer.Option("--target", "-t", help="Build only this target.", case_sensitive=False),
]
ConfigurationOption = Annotated[
    BuildConfiguration | None,
    typer.Option("--configuration", "-c", help="Build only this configuration.", case_sensitive=False),
]


def select_build_steps(target: BuildTarget | None, configuration: BuildConfiguration | None) -> list[Step]:
    """Return the build steps for the requested target/configuration (all of them by default)."""
    if target is not None and configuration is not None:
        return [BuildStep(target, configuration)]
    return [
        step
        for step in build_all_steps()
        if isinstance(step, BuildStep)
        and (target is None or step.target is target)
        and (configuration is None or step.configuration is configuration)
    ]


def build_cmd(
    project_dir: ProjectDirOption = None,
    engine_dir: EngineDirOption = None,
    platform: PlatformOption = None,
    target: TargetOption = None,
    configuration: ConfigurationOption = None,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Compile editor and game targets, failing on any error or warning in the build log."""
    ctx = build_context(project_dir=project_dir, engine_dir=engine_dir, platform=platform)
    use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=stdout_color_allowed())
    run_steps(ctx, select_build_steps(target, configuration), use_color=use_color)


def package_cmd(
    project_dir: ProjectDirOption = None,
    engine_dir: EngineDirOption = None,
    platform: PlatformOption = None,
    configuration: ConfigurationOption = None,
    clean_on_failure: Annotated[
        bool,
        typer.Option("--clean-on-failure", help="Remove a partial archive when packaging fails."),
    ] = False,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Build, cook, stage and archive the game for one or every configuration."""
    ctx = build_context(
        project_dir=project_dir,
        engine_dir=engine_dir,
        platform=platform,
        clean_on_failure=True if clean_on_failure else None,
    )
    steps: list[Step] = [PackageStep(configuration)] if configuration is not None else package_all_steps()
    use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=stdout_color_allowed())
    run_steps(ctx, steps, use_color=use_color)


def clean_cmd(
    project_dir: ProjectDirOption = None,
    engine_dir: EngineDirOption = None,
    color: ColorOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Delete intermediate build output, logs, coverage and archives."""
    ctx = build_context(project_dir=project_dir, engine_dir=engine_dir, platform=None, require_engine=False)
    use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=stdout_color_allowed())
    run_steps(ctx, [CleanStep()], use_color=use_color)


def register(app: typer.Typer) -> None:
    app.command("build")(build_cmd)
    app.command("package")(package_cmd)
    app.command("clean")(clean_cmd)


__all__ = ["register", "select_build_steps"]
