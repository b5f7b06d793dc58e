from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True, slots=True)
class ProjectDescriptor:
    """A located project: its root directory, name and descriptor file."""

    root_directory: Path
    project_name: str
    descriptor_path: Path


__all__ = ["ProjectDescriptor"]
