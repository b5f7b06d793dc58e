from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import click.utils as click_utils
import typer

from buildgate._meta import logger
from buildgate.cli.exit_codes import EXIT_OK, exit_code_for
from buildgate.config import load_config
from buildgate.errors import BuildgateError
from buildgate.locate import locate
from buildgate.model.types import Platform
from buildgate.pipeline import Pipeline
from buildgate.render import render_step_failure, render_summary
from buildgate.steps import StepContext

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildgate.steps import Step

ProjectDirOption = Annotated[
    Path | None,
    typer.Option(
        "-p",
        "--project-dir",
        help="Directory to start the project search from (default: current directory).",
    ),
]
EngineDirOption = Annotated[
    Path | None,
    typer.Option("--engine-dir", help="Unreal Engine installation root (overrides UE_ENGINE_DIR)."),
]
PlatformOption = Annotated[
    Platform | None,
    typer.Option("--platform", help="Target platform.", case_sensitive=False),
]
ColorOption = Annotated[bool, typer.Option("--color", help="Force color output")]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Disable color output")]


def resolve_use_color(*, color: bool, no_color: bool, color_allowed: bool) -> bool:
    # CLI flags take precedence over the IO policy default.
    if no_color:
        return False
    if color:
        return True
    return color_allowed


def stdout_color_allowed() -> bool:
    try:
        is_tty = bool(getattr(sys.stdout, "isatty", lambda: False)())
    except OSError:
        return False
    return is_tty and not click_utils.should_strip_ansi(sys.stdout)


def fail(error: BuildgateError) -> NoReturn:
    typer.echo(f"ERROR: {error}", err=True)
    raise typer.Exit(code=exit_code_for(error)) from error


def build_context(
    *,
    project_dir: Path | None,
    engine_dir: Path | None,
    platform: Platform | None,
    require_engine: bool = True,
    **overrides: Any,
) -> StepContext:
    """Locate the project and resolve its configuration; the only place the environment is read."""
    try:
        project = locate(project_dir)
        logger.debug("project %s at %s", project.project_name, project.root_directory)
        config = load_config(
            project,
            overrides={"engine_dir": engine_dir, "platform": platform, **overrides},
            environ=os.environ,
            require_engine=require_engine,
        )
    except BuildgateError as exc:
        fail(exc)
    return StepContext(config)


def run_steps(ctx: StepContext, steps: Iterable[Step], *, use_color: bool) -> NoReturn:
    result = Pipeline(steps).run(ctx)
    typer.echo(render_summary(result, color=use_color))
    failed = result.failed
    if failed is None:
        raise typer.Exit(code=EXIT_OK)
    assert failed.error is not None  # noqa: S101 - a failed step always carries its error
    typer.echo(render_step_failure(failed, color=use_color), err=True)
    raise typer.Exit(code=exit_code_for(failed.error))


__all__ = [
    "ColorOption",
    "EngineDirOption",
    "NoColorOption",
    "PlatformOption",
    "ProjectDirOption",
    "build_context",
    "fail",
    "resolve_use_color",
    "run_steps",
    "stdout_color_allowed",
]
