"""Discovery of engine binaries and construction of their command lines.

All lookups are filesystem based and relative to the configured engine
directory; nothing is read from the environment here.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from buildgate.errors import ToolNotFoundError
from buildgate.model.types import BuildTarget, Platform, host_platform

if TYPE_CHECKING:
    from collections.abc import Sequence

    from buildgate.model.project import ProjectDescriptor
    from buildgate.model.types import BuildConfiguration

COVERAGE_TOOL_NAME = "OpenCppCoverage"

_BATCH_FILES = Path("Engine") / "Build" / "BatchFiles"


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Engine tools for one installation, as seen from the running host."""

    engine_dir: Path
    host: Platform = field(default_factory=host_platform)

    def _require(self, path: Path, what: str) -> Path:
        if not path.is_file():
            msg = f"{what} not found at {path}"
            raise ToolNotFoundError(msg)
        return path

    def build_tool(self) -> Path:
        """Return ``Build.bat`` (Windows) or the host's ``Build.sh``."""
        batch = self.engine_dir / _BATCH_FILES
        if self.host is Platform.WIN64:
            path = batch / "Build.bat"
        else:
            path = batch / self.host.value / "Build.sh"
        return self._require(path, "UnrealBuildTool wrapper")

    def uat(self) -> Path:
        script = "RunUAT.bat" if self.host is Platform.WIN64 else "RunUAT.sh"
        return self._require(self.engine_dir / _BATCH_FILES / script, "RunUAT")

    def editor_cmd(self) -> Path:
        exe = "UnrealEditor-Cmd.exe" if self.host is Platform.WIN64 else "UnrealEditor-Cmd"
        path = self.engine_dir / "Engine" / "Binaries" / self.host.value / exe
        return self._require(path, "automation test runner")

    def coverage_tool(self, configured: Path | None = None) -> Path | None:
        """Return the coverage wrapper, or ``None`` when it is not installed.

        An explicitly *configured* path must exist; the ``PATH`` search is
        permissive because running without coverage is allowed.
        """
        if configured is not None:
            return self._require(configured, "coverage tool")
        found = shutil.which(COVERAGE_TOOL_NAME)
        return Path(found) if found else None


def target_name(project: ProjectDescriptor, target: BuildTarget) -> str:
    if target is BuildTarget.EDITOR:
        return f"{project.project_name}Editor"
    return project.project_name


def build_command(
    toolchain: Toolchain,
    project: ProjectDescriptor,
    *,
    target: BuildTarget,
    configuration: BuildConfiguration,
    platform: Platform,
    extra: Sequence[str] = (),
) -> list[str]:
    # Format: Build <TargetName> <Platform> <Configuration> -Project=<path> [options]
    return [
        str(toolchain.build_tool()),
        target_name(project, target),
        platform.value,
        configuration.value,
        f"-Project={project.descriptor_path}",
        "-WaitMutex",
        "-FromMsBuild",
        *extra,
    ]


def package_command(
    toolchain: Toolchain,
    project: ProjectDescriptor,
    *,
    configuration: BuildConfiguration,
    platform: Platform,
    archive_dir: Path,
    extra: Sequence[str] = (),
) -> list[str]:
    return [
        str(toolchain.uat()),
        "BuildCookRun",
        f"-project={project.descriptor_path}",
        "-noP4",
        f"-platform={platform.value}",
        f"-clientconfig={configuration.value}",
        "-build",
        "-cook",
        "-stage",
        "-pak",
        "-archive",
        f"-archivedirectory={archive_dir}",
        "-unattended",
        "-utf8output",
        *extra,
    ]


def automation_command(
    toolchain: Toolchain,
    project: ProjectDescriptor,
    *,
    test_map: str,
    test_filter: str,
    extra: Sequence[str] = (),
) -> list[str]:
    cmd = [str(toolchain.editor_cmd()), str(project.descriptor_path)]
    if test_map:
        cmd.append(test_map)
    cmd.extend(
        [
            f"-ExecCmds=Automation RunTests {test_filter}; Quit",
            "-unattended",
            "-nopause",
            "-nosplash",
            "-NullRHI",
            "-log",
            *extra,
        ]
    )
    return cmd


def wrap_with_coverage(
    command: Sequence[str],
    *,
    coverage_tool: Path,
    sources: Path,
    report_path: Path,
) -> list[str]:
    """Run *command* under the coverage tool, exporting a Cobertura report to *report_path*."""
    return [
        str(coverage_tool),
        "--sources",
        str(sources),
        "--export_type",
        f"cobertura:{report_path}",
        "--",
        *command,
    ]


def runner_log_path(project: ProjectDescriptor) -> Path:
    """Where the test runner writes its own log."""
    return project.root_directory / "Saved" / "Logs" / f"{project.project_name}.log"


__all__ = [
    "COVERAGE_TOOL_NAME",
    "Toolchain",
    "automation_command",
    "build_command",
    "package_command",
    "runner_log_path",
    "target_name",
    "wrap_with_coverage",
]
