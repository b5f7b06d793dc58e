from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer

from buildgate.cli._shared import (
    ColorOption,
    NoColorOption,
    ProjectDirOption,
    fail,
    resolve_use_color,
    stdout_color_allowed,
)
from buildgate.cli.exit_codes import EXIT_OK, EXIT_QUALITY_GATE
from buildgate.config import load_config
from buildgate.errors import BuildgateError, InputNotFoundError
from buildgate.gate import evaluate_file
from buildgate.io import write_output
from buildgate.locate import locate
from buildgate.model.coverage import GateFail
from buildgate.render import render_gate_failure


def register(app: typer.Typer) -> None:
    @app.command("gate")
    def gate(
        coverage: Annotated[
            Path | None,
            typer.Argument(help="Cobertura coverage XML (default: the project's coverage output)."),
        ] = None,
        project_dir: ProjectDirOption = None,
        threshold: Annotated[
            float | None,
            typer.Option("--threshold", help="Fail if overall line coverage % is below this value.", min=0, max=100),
        ] = None,
        source_url_prefix: Annotated[
            str | None,
            typer.Option("--source-url-prefix", help="Repository URL prefix to strip from file references."),
        ] = None,
        plugin_marker: Annotated[
            str | None,
            typer.Option("--plugin-marker", help="Path segment where plugin sources start."),
        ] = None,
        output: Annotated[
            Path | None,
            typer.Option("--output", help="Write the report to PATH (use '-' for stdout)."),
        ] = None,
        color: ColorOption = False,
        no_color: NoColorOption = False,
    ) -> None:
        """Check a coverage report against the threshold and list uncovered source lines."""
        try:
            project = locate(project_dir)
            config = load_config(
                project,
                overrides={
                    "coverage_threshold": threshold,
                    "source_url_prefix": source_url_prefix,
                    "plugin_marker": plugin_marker,
                },
                environ=os.environ,
                require_engine=False,
            )
            if coverage is not None and not coverage.is_file():
                msg = f"coverage report not found: {coverage}"
                raise InputNotFoundError(msg)
            report_path = coverage if coverage is not None else config.coverage_report
            result = evaluate_file(
                report_path,
                config.coverage_threshold,
                project_root=config.root,
                source_url_prefix=config.source_url_prefix,
                plugin_marker=config.plugin_marker,
            )
        except BuildgateError as exc:
            fail(exc)

        allowed = output in {None, Path("-")} and stdout_color_allowed()
        use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=allowed)
        if isinstance(result, GateFail):
            write_output(render_gate_failure(result, color=use_color), output)
            raise typer.Exit(code=EXIT_QUALITY_GATE)

        if result.skipped:
            text = f"No coverage report at {report_path}; coverage gate skipped."
        else:
            text = f"Coverage {result.coverage_pct}% meets the required {config.coverage_threshold}%."
        write_output(text, output)
        raise typer.Exit(code=EXIT_OK)


__all__ = ["register"]
