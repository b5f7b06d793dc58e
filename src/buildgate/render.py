"""Human-readable reports for log scans, coverage gate failures and pipeline runs."""

from __future__ import annotations

from io import StringIO
from itertools import groupby
from typing import TYPE_CHECKING

from more_itertools import consecutive_groups
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from buildgate.errors import CoverageGateError, LogGateError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildgate.model.coverage import GateFail
    from buildgate.model.log import LogScan
    from buildgate.pipeline import PipelineResult
    from buildgate.steps import StepResult

_NO_ISSUES = "No errors or warnings."


def _render_rich_table(table: Table, *, color: bool) -> str:
    buf = StringIO()
    console = Console(
        file=buf,
        force_terminal=color,
        color_system="standard" if color else None,
        no_color=not color,
        width=10_000,
    )
    console.print(table)
    return buf.getvalue().rstrip()


def format_ranges(numbers: Iterable[int]) -> str:
    """Collapse sorted line numbers into ``"3-5, 9"`` form."""
    parts: list[str] = []
    for group in consecutive_groups(numbers):
        run = list(group)
        parts.append(str(run[0]) if len(run) == 1 else f"{run[0]}-{run[-1]}")
    return ", ".join(parts)


def render_log_issues(scan: LogScan, *, color: bool = False) -> str:
    issues = scan.issues()
    if not issues:
        return _NO_ISSUES

    t = Table(show_header=True, header_style="bold")
    t.add_column("Line", justify="right")
    t.add_column("Kind")
    t.add_column("Text", overflow="fold")
    for number, line in issues:
        kind = line.classification.value
        if color:
            kind = f"[red]{kind}[/red]" if kind == "error" else f"[yellow]{kind}[/yellow]"
        t.add_row(str(number), kind, escape(line.text.strip()))

    summary = f"{scan.errors} error(s), {scan.warnings} warning(s)"
    return f"{_render_rich_table(t, color=color)}\n{summary}"


def render_gate_failure(result: GateFail, *, color: bool = False) -> str:
    blocks = [f"Coverage {result.coverage_pct}% is below the required {result.threshold}%."]

    for file_ref, group in groupby(result.uncovered, key=lambda line: line.original_file_ref):
        lines = list(group)
        resolved = lines[0].resolved_path
        where = f" ({resolved})" if resolved is not None and str(resolved) != file_ref else ""
        blocks.append(f"\n{file_ref}{where}  lines {format_ranges(ln.line_number for ln in lines)}")

        t = Table(show_header=True, header_style="bold")
        t.add_column("Line", justify="right")
        t.add_column("Source", overflow="fold")
        for ln in lines:
            t.add_row(str(ln.line_number), escape(ln.line_text))
        blocks.append(_render_rich_table(t, color=color))

    return "\n".join(blocks)


def render_step_failure(result: StepResult, *, color: bool = False) -> str:
    """Describe why *result* failed, including the gate report when there is one."""
    error = result.error
    head = f"{result.name} failed: {error}"
    if result.log_path is not None:
        head += f"\nlog: {result.log_path}"
    if isinstance(error, CoverageGateError):
        return f"{head}\n{render_gate_failure(error.result, color=color)}"
    if isinstance(error, LogGateError):
        return f"{head}\n{render_log_issues(error.scan, color=color)}"
    return head


def _status(result: StepResult, *, color: bool) -> str:
    if result.ok:
        text = "ok"
        if result.gate is not None and result.gate.coverage_pct is not None:
            text += f" ({result.gate.coverage_pct}% coverage)"
        return f"[green]{text}[/green]" if color else text
    return "[red]FAILED[/red]" if color else "FAILED"


def render_summary(pipeline: PipelineResult, *, color: bool = False) -> str:
    t = Table(title="Pipeline", show_header=True, header_style="bold")
    t.add_column("Step")
    t.add_column("Status")
    t.add_column("Log", overflow="fold")
    for result in pipeline.results:
        t.add_row(result.name, _status(result, color=color), escape(str(result.log_path or "")))
    not_run = pipeline.planned - len(pipeline.results)
    if not_run:
        t.add_row(f"({not_run} more)", "not run", "")
    return _render_rich_table(t, color=color)


__all__ = [
    "format_ranges",
    "render_gate_failure",
    "render_log_issues",
    "render_step_failure",
    "render_summary",
]
