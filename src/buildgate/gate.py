"""Coverage threshold gate.

Utilities in this module compare the overall coverage of a report with a
configured threshold and, when it falls short, map every uncovered line back
to the source text so the failure report can show what is missing.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from defusedxml import ElementTree

from buildgate._meta import logger
from buildgate.errors import CoverageGateError, InvalidCoverageXMLError
from buildgate.inputs.cobertura import read_report
from buildgate.model.coverage import (
    LINE_NOT_FOUND,
    SOURCE_NOT_AVAILABLE,
    GateFail,
    GatePass,
    ResolvedUncoveredLine,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from buildgate.model.coverage import CoverageReport, GateResult

DEFAULT_PLUGIN_MARKER = "Plugins/"


def coverage_percent(rate: float) -> float:
    """Return *rate* as a percentage rounded to two decimal places."""
    return round(rate * 100, 2)


def _candidates(
    file_ref: str,
    *,
    project_root: Path,
    cwd: Path,
    source_url_prefix: str | None,
    plugin_marker: str | None,
) -> Iterator[Callable[[], Path | None]]:
    normalized = file_ref.replace("\\", "/")

    yield lambda: cwd / file_ref

    def strip_prefix() -> Path | None:
        if not source_url_prefix or not normalized.startswith(source_url_prefix):
            return None
        return project_root / normalized[len(source_url_prefix) :].lstrip("/")

    yield strip_prefix

    yield lambda: project_root / normalized

    def from_marker() -> Path | None:
        if not plugin_marker:
            return None
        idx = normalized.find(plugin_marker)
        if idx < 0:
            return None
        return project_root / normalized[idx:]

    yield from_marker


def resolve_source(
    file_ref: str,
    *,
    project_root: Path,
    cwd: Path | None = None,
    source_url_prefix: str | None = None,
    plugin_marker: str | None = DEFAULT_PLUGIN_MARKER,
) -> Path | None:
    """Map a coverage file reference to an existing file, or ``None``.

    Strategies are tried in order and only until one yields an existing file:
    the reference as written (relative to *cwd*), the reference with the
    source repository URL prefix stripped, the reference under the project
    root, and the tail starting at the plugin tree marker under the project
    root.
    """
    for candidate in _candidates(
        file_ref,
        project_root=project_root,
        cwd=cwd if cwd is not None else Path.cwd(),
        source_url_prefix=source_url_prefix,
        plugin_marker=plugin_marker,
    ):
        path = candidate()
        if path is None:
            continue
        try:
            found = path.is_file()
        except OSError:
            # e.g. a path component longer than the filesystem allows
            logger.debug("cannot stat %s", path, exc_info=True)
            continue
        if found:
            return path
    return None


def read_source_lines(path: Path) -> list[str]:
    """Return the lines of *path* with trailing whitespace removed.

    If the file cannot be read an empty list is returned instead.
    """
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return [ln.rstrip() for ln in f]
    except OSError:
        logger.debug("could not read %s", path, exc_info=True)
        return []


def evaluate(
    report: CoverageReport,
    threshold: float,
    *,
    project_root: Path,
    cwd: Path | None = None,
    source_url_prefix: str | None = None,
    plugin_marker: str | None = DEFAULT_PLUGIN_MARKER,
) -> GateResult:
    """Compare *report* with *threshold* (a percentage).

    A report at or above the threshold passes. Otherwise every zero-hit line
    is resolved to its source text and returned in a :class:`GateFail`,
    ordered by file reference then line number.
    """
    pct = coverage_percent(report.overall_rate)
    if pct >= threshold:
        return GatePass(coverage_pct=pct)

    records: list[ResolvedUncoveredLine] = []
    for file_ref, numbers in sorted(report.uncovered_lines().items()):
        resolved = resolve_source(
            file_ref,
            project_root=project_root,
            cwd=cwd,
            source_url_prefix=source_url_prefix,
            plugin_marker=plugin_marker,
        )
        if resolved is None:
            logger.debug("no source found for %s", file_ref)
            records.extend(
                ResolvedUncoveredLine(file_ref, None, number, SOURCE_NOT_AVAILABLE) for number in numbers
            )
            continue

        source = read_source_lines(resolved)
        for number in numbers:
            text = source[number - 1] if 1 <= number <= len(source) else LINE_NOT_FOUND
            records.append(ResolvedUncoveredLine(file_ref, resolved, number, text))

    return GateFail(coverage_pct=pct, threshold=threshold, uncovered=tuple(records))


def evaluate_file(
    path: Path,
    threshold: float,
    *,
    project_root: Path,
    cwd: Path | None = None,
    source_url_prefix: str | None = None,
    plugin_marker: str | None = DEFAULT_PLUGIN_MARKER,
) -> GateResult:
    """Read and evaluate the report at *path*.

    A missing report means coverage was not collected; the gate is skipped
    and treated as a pass.
    """
    if not path.exists():
        logger.info("no coverage report at %s, skipping coverage gate", path)
        return GatePass(coverage_pct=None, skipped=True)

    try:
        report = read_report(path)
    except ElementTree.ParseError as exc:
        msg = f"failed to parse coverage XML {path}: {exc}"
        raise InvalidCoverageXMLError(msg) from exc

    return evaluate(
        report,
        threshold,
        project_root=project_root,
        cwd=cwd,
        source_url_prefix=source_url_prefix,
        plugin_marker=plugin_marker,
    )


def ensure_passed(result: GateResult) -> None:
    """Raise :class:`CoverageGateError` if *result* is a failure."""
    if isinstance(result, GatePass):
        return
    details = [f"{line.original_file_ref}:{line.line_number}: {line.line_text}" for line in result.uncovered]
    msg = f"coverage {result.coverage_pct}% is below the required {result.threshold}%"
    raise CoverageGateError(msg, details=details, result=result)


__all__ = [
    "DEFAULT_PLUGIN_MARKER",
    "coverage_percent",
    "ensure_passed",
    "evaluate",
    "evaluate_file",
    "read_source_lines",
    "resolve_source",
]
