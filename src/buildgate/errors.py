"""Centralised exception hierarchy for buildgate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from buildgate.model.coverage import GateFail
    from buildgate.model.log import LogScan


class BuildgateError(Exception):
    """Base class for all custom buildgate exceptions."""


class ConfigurationError(BuildgateError):
    """A required configuration input is missing or invalid."""


class ProjectNotFoundError(BuildgateError):
    """No project descriptor was found between the start directory and the filesystem root."""


class ToolNotFoundError(BuildgateError):
    """An expected external binary is missing."""


class InputNotFoundError(BuildgateError):
    """A file named on the command line does not exist."""


class ProcessFailureError(BuildgateError):
    """An external process exited with a non-zero status."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ToolOutputMissingError(ProcessFailureError):
    """A tool exited successfully but did not write the output it is expected to produce."""


class QualityGateError(BuildgateError):
    """A log or coverage gate rejected an otherwise successful run."""

    def __init__(self, message: str, *, details: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.details = tuple(details)


class LogGateError(QualityGateError):
    """The captured log of a step contains errors or non-benign warnings."""

    def __init__(self, message: str, *, details: Sequence[str] = (), scan: LogScan) -> None:
        super().__init__(message, details=details)
        self.scan = scan


class CoverageGateError(QualityGateError):
    """Overall coverage is below the configured threshold."""

    def __init__(self, message: str, *, details: Sequence[str] = (), result: GateFail) -> None:
        super().__init__(message, details=details)
        self.result = result


class CoverageXMLError(BuildgateError):
    """Base class for errors related to coverage XML handling."""


class InvalidCoverageXMLError(CoverageXMLError):
    """Coverage XML file was found but does not contain a valid report."""


__all__ = [
    "BuildgateError",
    "ConfigurationError",
    "CoverageGateError",
    "CoverageXMLError",
    "InputNotFoundError",
    "InvalidCoverageXMLError",
    "LogGateError",
    "ProcessFailureError",
    "ProjectNotFoundError",
    "QualityGateError",
    "ToolNotFoundError",
    "ToolOutputMissingError",
]
