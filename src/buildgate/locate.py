"""Project discovery by walking up the directory tree."""

from __future__ import annotations

from pathlib import Path

from buildgate._meta import logger
from buildgate.errors import ProjectNotFoundError
from buildgate.model.project import ProjectDescriptor
from buildgate.model.types import DESCRIPTOR_SUFFIX


def locate(start_dir: Path | None = None) -> ProjectDescriptor:
    """Find the project whose descriptor sits in *start_dir* or one of its parents.

    The search starts at *start_dir* (defaults to the current directory) and
    moves towards the filesystem root. When a directory holds several
    descriptors the first one in lexical order wins.

    Raises
    ------
    ProjectNotFoundError
        If the filesystem root is reached without finding a descriptor.
    """
    start = Path(start_dir) if start_dir is not None else Path.cwd()
    current = start.resolve()

    while True:
        descriptors = sorted(p for p in current.glob(f"*{DESCRIPTOR_SUFFIX}") if p.is_file())
        if descriptors:
            if len(descriptors) > 1:
                logger.debug(
                    "multiple project descriptors in %s, using %s",
                    current,
                    descriptors[0].name,
                )
            descriptor = descriptors[0]
            return ProjectDescriptor(
                root_directory=current,
                project_name=descriptor.stem,
                descriptor_path=descriptor,
            )

        parent = current.parent
        if parent == current:
            msg = f"no *{DESCRIPTOR_SUFFIX} file found in {start} or any parent directory"
            raise ProjectNotFoundError(msg)
        current = parent


__all__ = ["locate"]
