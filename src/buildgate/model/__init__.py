"""Domain model for buildgate (pure types; no IO)."""

from .coverage import (
    LINE_NOT_FOUND,
    SOURCE_NOT_AVAILABLE,
    CoverageReport,
    GateFail,
    GatePass,
    GateResult,
    ResolvedUncoveredLine,
)
from .log import ClassifiedLine, LogScan
from .project import ProjectDescriptor
from .types import (
    DESCRIPTOR_SUFFIX,
    FULL_COVERAGE,
    BuildConfiguration,
    BuildTarget,
    Classification,
    Platform,
    host_platform,
)

__all__ = [
    "DESCRIPTOR_SUFFIX",
    "FULL_COVERAGE",
    "LINE_NOT_FOUND",
    "SOURCE_NOT_AVAILABLE",
    "BuildConfiguration",
    "BuildTarget",
    "Classification",
    "ClassifiedLine",
    "CoverageReport",
    "GateFail",
    "GatePass",
    "GateResult",
    "LogScan",
    "Platform",
    "ProjectDescriptor",
    "ResolvedUncoveredLine",
    "host_platform",
]
