"""Blocking execution of external tools with their output teed to a log file."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from buildgate._meta import logger
from buildgate.errors import ProcessFailureError, ToolNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


@dataclass(frozen=True, slots=True)
class ProcessResult:
    command: tuple[str, ...]
    exit_code: int
    lines: tuple[str, ...]
    log_path: Path

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> None:
        """Raise :class:`ProcessFailureError` if the process exited non-zero."""
        if self.ok:
            return
        msg = f"{self.command[0]} exited with status {self.exit_code} (log: {self.log_path})"
        raise ProcessFailureError(msg, exit_code=self.exit_code)


def run_tool(command: Sequence[str], *, log_path: Path, cwd: Path | None = None) -> ProcessResult:
    """Run *command* to completion, writing every output line to *log_path*.

    Standard error is merged into standard output. Any previous log at
    *log_path* is overwritten. There is no timeout: a tool that never exits
    blocks the caller.
    """
    cmd = tuple(str(part) for part in command)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("running: %s", " ".join(cmd))

    lines: list[str] = []
    with log_path.open("w", encoding="utf-8") as log:
        try:
            proc = subprocess.Popen(  # noqa: S603 - commands are built from configured tool paths
                cmd,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            msg = f"failed to start {cmd[0]}: {exc}"
            raise ToolNotFoundError(msg) from exc

        with proc:
            assert proc.stdout is not None  # noqa: S101 - stdout=PIPE
            for raw in proc.stdout:
                line = raw.rstrip("\r\n")
                lines.append(line)
                log.write(line + "\n")
                logger.debug("%s", line)
            exit_code = proc.wait()

    logger.info("%s finished with status %d", cmd[0], exit_code)
    return ProcessResult(command=cmd, exit_code=exit_code, lines=tuple(lines), log_path=log_path)


__all__ = ["ProcessResult", "run_tool"]
