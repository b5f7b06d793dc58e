from __future__ import annotations

from buildgate.errors import (
    BuildgateError,
    ConfigurationError,
    CoverageXMLError,
    InputNotFoundError,
    ProcessFailureError,
    ProjectNotFoundError,
    QualityGateError,
    ToolNotFoundError,
)

# mirror <sysexits.h>
EXIT_OK = 0  # Normal success
EXIT_GENERIC = 1  # Generic failure (fallback)
EXIT_QUALITY_GATE = 3  # Log classifier or coverage gate rejected the run (2 is Click usage errors)
EXIT_DATAERR = 65  # Input data was invalid (e.g., malformed coverage XML)
EXIT_NOINPUT = 66  # Input not found (e.g., no .uproject above the start directory, missing log or report)
EXIT_UNAVAILABLE = 69  # Required engine binary is missing
EXIT_CONFIG = 78  # Invalid configuration (e.g., no engine directory)

_MAX_EXIT_CODE = 255


def exit_code_for(error: BuildgateError) -> int:
    """Map *error* to a process exit status; a failed tool's own status passes through."""
    if isinstance(error, ProcessFailureError):
        code = error.exit_code
        # Statuses the OS would truncate to 0 (or cannot represent) become a generic failure.
        return code if 0 < code <= _MAX_EXIT_CODE else EXIT_GENERIC
    if isinstance(error, QualityGateError):
        return EXIT_QUALITY_GATE
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIG
    if isinstance(error, ToolNotFoundError):
        return EXIT_UNAVAILABLE
    if isinstance(error, (ProjectNotFoundError, InputNotFoundError)):
        return EXIT_NOINPUT
    if isinstance(error, CoverageXMLError):
        return EXIT_DATAERR
    return EXIT_GENERIC


__all__ = [
    "EXIT_CONFIG",
    "EXIT_DATAERR",
    "EXIT_GENERIC",
    "EXIT_NOINPUT",
    "EXIT_OK",
    "EXIT_QUALITY_GATE",
    "EXIT_UNAVAILABLE",
    "exit_code_for",
]
