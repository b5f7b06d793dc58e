"""Classification of captured tool output into errors, warnings and noise.

Build tools frequently exit with status 0 while reporting problems as
warnings. The rules here enforce a zero-warning policy on top of the exit
code: any ``ERROR:`` line, or any ``WARNING:`` line that is not known noise,
fails the step.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from buildgate.errors import LogGateError, ToolOutputMissingError
from buildgate.model.log import ClassifiedLine, LogScan
from buildgate.model.types import Classification

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

_ERROR_RE = re.compile(r"^\s*ERROR:")
_WARNING_RE = re.compile(r"^\s*WARNING:")
# "WARNING: Success - 0 error(s), 0 warning(s)" is a summary, not a problem.
_SUCCESS_SUMMARY_RE = re.compile(r"Success - \d+ error\(s\), \d+ warning\(s\)")
# UnrealBuildTool advisory about the installed compiler/SDK version.
_PREFERRED_VERSION_RE = re.compile(r"preferred version", re.IGNORECASE)

_BENIGN_WARNINGS = (_SUCCESS_SUMMARY_RE, _PREFERRED_VERSION_RE)


def classify_line(line: str) -> Classification:
    if _ERROR_RE.match(line):
        return Classification.ERROR
    if _WARNING_RE.match(line) and not any(p.search(line) for p in _BENIGN_WARNINGS):
        return Classification.WARNING
    return Classification.IGNORED


def classify(lines: Iterable[str]) -> list[ClassifiedLine]:
    """Classify each line; the first matching rule wins."""
    return [ClassifiedLine(text=line, classification=classify_line(line)) for line in lines]


def scan(lines: Iterable[str]) -> LogScan:
    classified = tuple(classify(lines))
    errors = sum(1 for c in classified if c.classification is Classification.ERROR)
    warnings = sum(1 for c in classified if c.classification is Classification.WARNING)
    return LogScan(lines=classified, errors=errors, warnings=warnings)


def scan_file(path: Path) -> LogScan:
    """Classify the lines of a captured log file.

    Undecodable bytes are replaced rather than rejected; engine logs mix
    encodings.
    """
    if not path.is_file():
        msg = f"expected log file was not written: {path}"
        raise ToolOutputMissingError(msg)
    with path.open(encoding="utf-8", errors="replace") as f:
        return scan(ln.rstrip("\r\n") for ln in f)


def ensure_clean(result: LogScan, *, step: str) -> None:
    """Raise :class:`LogGateError` if *result* contains errors or warnings."""
    if not result.has_issues:
        return
    details = [f"{number}: {line.text.strip()}" for number, line in result.issues()]
    msg = f"{step}: {result.errors} error(s), {result.warnings} warning(s) in log"
    raise LogGateError(msg, details=details, scan=result)


__all__ = ["classify", "classify_line", "ensure_clean", "scan", "scan_file"]
