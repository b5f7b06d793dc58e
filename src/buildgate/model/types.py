"""Shared type aliases and enumerations used across buildgate."""

from __future__ import annotations

import platform
from enum import StrEnum

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Classification(StrEnum):
    """Outcome of classifying a single captured log line."""

    ERROR = "error"
    WARNING = "warning"
    IGNORED = "ignored"


class BuildConfiguration(StrEnum):
    """Unreal build configurations driven by the pipeline."""

    DEBUG = "DebugGame"
    DEVELOPMENT = "Development"
    SHIPPING = "Shipping"


class BuildTarget(StrEnum):
    """Which target of the project is compiled."""

    EDITOR = "editor"
    GAME = "game"


class Platform(StrEnum):
    """Unreal platform names for the supported host operating systems."""

    WIN64 = "Win64"
    LINUX = "Linux"
    MAC = "Mac"


FULL_COVERAGE: float = 100.0

DESCRIPTOR_SUFFIX = ".uproject"


def host_platform() -> Platform:
    """Return the Unreal platform name of the running host."""
    system = platform.system()
    if system == "Windows":
        return Platform.WIN64
    if system == "Darwin":
        return Platform.MAC
    return Platform.LINUX


__all__ = [
    "DESCRIPTOR_SUFFIX",
    "FULL_COVERAGE",
    "BuildConfiguration",
    "BuildTarget",
    "Classification",
    "Platform",
    "host_platform",
]
