from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer

from buildgate.classify import scan_file
from buildgate.cli._shared import ColorOption, NoColorOption, fail, resolve_use_color, stdout_color_allowed
from buildgate.cli.exit_codes import EXIT_OK, EXIT_QUALITY_GATE
from buildgate.errors import BuildgateError, InputNotFoundError
from buildgate.io import write_output
from buildgate.render import render_log_issues


def register(app: typer.Typer) -> None:
    @app.command("scan")
    def scan(
        log: Annotated[Path, typer.Argument(help="Captured tool output to classify.")],
        output: Annotated[
            Path | None,
            typer.Option("--output", help="Write the report to PATH (use '-' for stdout)."),
        ] = None,
        color: ColorOption = False,
        no_color: NoColorOption = False,
    ) -> None:
        """Classify a captured log and fail if it contains errors or warnings."""
        try:
            if not log.is_file():
                msg = f"log file not found: {log}"
                raise InputNotFoundError(msg)
            result = scan_file(log)
        except BuildgateError as exc:
            fail(exc)
        allowed = output in {None, Path("-")} and stdout_color_allowed()
        use_color = resolve_use_color(color=color, no_color=no_color, color_allowed=allowed)
        write_output(render_log_issues(result, color=use_color), output)
        raise typer.Exit(code=EXIT_QUALITY_GATE if result.has_issues else EXIT_OK)


__all__ = ["register"]
