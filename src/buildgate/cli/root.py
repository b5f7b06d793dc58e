from __future__ import annotations

import logging
from typing import Annotated

import typer
from typer.main import get_command

from buildgate import __version__
from buildgate.cli import build, gate, scan, verify
from buildgate.config import LOG_FORMAT


def _configure_logging(*, quiet: bool, verbose: bool) -> None:
    """Configure logging based on *quiet*/*verbose*."""
    level = logging.ERROR if quiet else (logging.DEBUG if verbose else logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _version_callback(value: bool) -> None:  # noqa: FBT001
    if value:
        typer.echo(f"buildgate {__version__}")
        raise typer.Exit


def create_app() -> typer.Typer:
    app = typer.Typer(
        help="Build, test, package and clean an Unreal Engine project with strict quality gates.",
        no_args_is_help=True,
    )

    @app.callback()
    def _root(
        *,
        version: Annotated[
            bool,
            typer.Option("--version", help="Show version and exit", callback=_version_callback, is_eager=True),
        ] = False,
        quiet: Annotated[bool, typer.Option("-q", "--quiet", help="Suppress INFO logs, emit only errors")] = False,
        verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Emit diagnostic logging")] = False,
    ) -> None:
        _configure_logging(quiet=quiet, verbose=verbose)

    build.register(app)
    verify.register(app)
    scan.register(app)
    gate.register(app)

    return app


def main() -> None:
    app = create_app()
    get_command(app)()


# Click-compatible object for tooling that imports it
cli = get_command(create_app())

__all__ = ["cli", "create_app", "main"]
