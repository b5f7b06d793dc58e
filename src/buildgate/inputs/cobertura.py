from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from defusedxml import ElementTree

from buildgate.errors import InvalidCoverageXMLError
from buildgate.model.coverage import CoverageReport

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path


class ElementLike(Protocol):
    tag: str

    def get(self, key: str, default: str | None = None) -> str | None: ...

    def findall(self, path: str) -> list[ElementLike]: ...


def read_root(path: Path) -> ElementLike:
    """Parse coverage XML and return the root element.

    Accepts Cobertura-style reports, which use ``<coverage>`` as root.
    """
    root = ElementTree.parse(path).getroot()
    tag = (root.tag or "").split("}")[-1]  # tolerate namespaces
    if tag.lower() != "coverage":
        msg = f"unexpected root tag {root.tag!r} in {path}"
        raise InvalidCoverageXMLError(msg)
    return root


def iter_line_hits(root: ElementLike) -> Iterator[tuple[str, int, int]]:
    """Yield ``(filename, line_number, hits)`` for every well-formed ``<line>``."""
    for cls in root.findall(".//class"):
        filename = cls.get("filename")
        if not filename:
            continue
        for line_elem in cls.findall("./lines/line"):
            n_raw = line_elem.get("number")
            hits_raw = line_elem.get("hits")
            if not n_raw or hits_raw is None:
                continue
            try:
                n = int(n_raw)
                hits = int(hits_raw)
            except ValueError:
                continue
            yield filename, n, hits


def _merge(records: Iterable[tuple[str, int, int]]) -> dict[str, tuple[tuple[int, int], ...]]:
    # The same file may appear under several <class> elements; keep the max hits per line.
    acc: dict[str, dict[int, int]] = {}
    for filename, number, hits in records:
        lines = acc.setdefault(filename, {})
        lines[number] = max(lines.get(number, 0), hits)
    return {filename: tuple(sorted(lines.items())) for filename, lines in acc.items()}


def _line_rate(root: ElementLike, per_file: dict[str, tuple[tuple[int, int], ...]], path: Path) -> float:
    raw = root.get("line-rate")
    if raw is not None and raw.strip():
        try:
            rate = float(raw)
        except ValueError as exc:
            msg = f"invalid line-rate {raw!r} in {path}"
            raise InvalidCoverageXMLError(msg) from exc
        if not 0.0 <= rate <= 1.0:
            msg = f"line-rate out of range in {path}: {rate}"
            raise InvalidCoverageXMLError(msg)
        return rate

    total = sum(len(lines) for lines in per_file.values())
    if total == 0:
        return 1.0
    hit = sum(1 for lines in per_file.values() for _, hits in lines if hits > 0)
    return hit / total


def read_report(path: Path) -> CoverageReport:
    """Parse *path* into a :class:`CoverageReport`.

    The overall rate is taken from the root ``line-rate`` attribute and, when
    that is absent, recomputed from the per-line hits of the same document.
    """
    root = read_root(path)
    per_file = _merge(iter_line_hits(root))
    return CoverageReport(overall_rate=_line_rate(root, per_file, path), per_file=per_file)


__all__ = ["ElementLike", "iter_line_hits", "read_report", "read_root"]
