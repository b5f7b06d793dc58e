"""Coverage report and gate result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

SOURCE_NOT_AVAILABLE = "(source code not available)"
LINE_NOT_FOUND = "(line not found)"


@dataclass(frozen=True, slots=True)
class CoverageReport:
    """Parsed coverage report.

    Fields
    ------
    overall_rate:
        Fraction of executable lines hit, in ``[0, 1]``.
    per_file:
        File reference (as written in the report, possibly a foreign absolute
        path) mapped to ``(line_number, hit_count)`` pairs sorted by line.
    """

    overall_rate: float
    per_file: Mapping[str, tuple[tuple[int, int], ...]] = field(default_factory=dict)

    def uncovered_lines(self) -> dict[str, list[int]]:
        """Return the line numbers with zero hits per file, ascending; files without misses are omitted."""
        out: dict[str, list[int]] = {}
        for file_ref, lines in self.per_file.items():
            missed = sorted(number for number, hits in lines if hits == 0)
            if missed:
                out[file_ref] = missed
        return out


@dataclass(frozen=True, slots=True)
class ResolvedUncoveredLine:
    original_file_ref: str
    resolved_path: Path | None
    line_number: int
    line_text: str


@dataclass(frozen=True, slots=True)
class GatePass:
    """Coverage met the threshold, or no report existed (``skipped``)."""

    coverage_pct: float | None
    skipped: bool = False

    @property
    def passed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class GateFail:
    coverage_pct: float
    threshold: float
    uncovered: tuple[ResolvedUncoveredLine, ...]

    @property
    def passed(self) -> bool:
        return False


GateResult = GatePass | GateFail


__all__ = [
    "LINE_NOT_FOUND",
    "SOURCE_NOT_AVAILABLE",
    "CoverageReport",
    "GateFail",
    "GatePass",
    "GateResult",
    "ResolvedUncoveredLine",
]
