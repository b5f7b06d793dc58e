from __future__ import annotations

from dataclasses import dataclass

from buildgate.model.types import Classification


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    text: str
    classification: Classification


@dataclass(frozen=True, slots=True)
class LogScan:
    """Classified lines of one captured log together with the issue counts."""

    lines: tuple[ClassifiedLine, ...]
    errors: int
    warnings: int

    @property
    def has_issues(self) -> bool:
        return self.errors + self.warnings > 0

    def issues(self) -> list[tuple[int, ClassifiedLine]]:
        """Return ``(line_number, line)`` pairs for every error or warning, 1-indexed."""
        return [
            (number, line)
            for number, line in enumerate(self.lines, start=1)
            if line.classification is not Classification.IGNORED
        ]


__all__ = ["ClassifiedLine", "LogScan"]
