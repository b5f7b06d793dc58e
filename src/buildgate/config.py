"""Central configuration and constants for ``buildgate``.

Configuration is resolved once, at the command line boundary, into a frozen
:class:`BuildgateConfig`. Sources in increasing precedence:

1. built-in defaults;
2. the ``UE_ENGINE_DIR`` environment value (engine location only);
3. ``buildgate.toml`` next to the project descriptor;
4. explicit command line overrides.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from buildgate._meta import logger
from buildgate.errors import ConfigurationError
from buildgate.gate import DEFAULT_PLUGIN_MARKER
from buildgate.model.types import FULL_COVERAGE, Platform, host_platform

if TYPE_CHECKING:
    from collections.abc import Mapping

    from buildgate.model.project import ProjectDescriptor

# Default logging format used by the CLI entry point.
LOG_FORMAT = "%(levelname)s: %(message)s"

CONFIG_FILENAME = "buildgate.toml"
ENGINE_DIR_ENV = "UE_ENGINE_DIR"

DEFAULT_CLEAN_DIRS: tuple[str, ...] = ("Binaries", "Intermediate", "DerivedDataCache")

_PATH_KEYS = frozenset({"engine_dir", "logs_dir", "coverage_dir", "archive_dir", "coverage_tool"})
_STR_KEYS = frozenset({"test_map", "test_filter", "source_url_prefix", "plugin_marker"})
_LIST_KEYS = frozenset({"build_flags", "test_flags", "clean_dirs"})
_BOOL_KEYS = frozenset({"clean_on_failure", "collect_coverage"})


@dataclass(frozen=True, slots=True)
class BuildgateConfig:
    """Fully resolved settings for one invocation.

    Fields
    ------
    project:
        The located project.
    engine_dir:
        Root of the Unreal Engine installation (the directory holding ``Engine/``).
    logs_dir, coverage_dir, archive_dir:
        Output locations; absolute after resolution.
    coverage_threshold:
        Minimum overall line coverage percentage (0..100).
    coverage_tool:
        Explicit coverage wrapper binary. ``None`` means search ``PATH``.
    test_filter:
        Automation test name filter. ``None`` means the project name.
    """

    project: ProjectDescriptor
    engine_dir: Path | None
    platform: Platform = field(default_factory=host_platform)
    logs_dir: Path = Path("Saved/Buildgate/Logs")
    coverage_dir: Path = Path("Saved/Buildgate/Coverage")
    archive_dir: Path = Path("Saved/Buildgate/Archive")
    coverage_threshold: float = 80.0
    collect_coverage: bool = True
    coverage_tool: Path | None = None
    test_map: str = ""
    test_filter: str | None = None
    source_url_prefix: str | None = None
    plugin_marker: str = DEFAULT_PLUGIN_MARKER
    build_flags: tuple[str, ...] = ()
    test_flags: tuple[str, ...] = ()
    clean_dirs: tuple[str, ...] = DEFAULT_CLEAN_DIRS
    clean_on_failure: bool = False

    @property
    def root(self) -> Path:
        return self.project.root_directory

    @property
    def coverage_report(self) -> Path:
        return self.coverage_dir / "coverage.xml"

    @property
    def effective_test_filter(self) -> str:
        return self.test_filter or self.project.project_name

    def log_path(self, step: str) -> Path:
        return self.logs_dir / f"{step}.log"


def read_config_file(path: Path) -> dict[str, Any]:
    """Return the settings table of *path*, or an empty dict when it does not exist."""
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"failed to parse {path}: {exc}"
        raise ConfigurationError(msg) from exc
    logger.debug("loaded settings from %s", path)
    # Accept both a top-level table and a [buildgate] section.
    section = data.get("buildgate", data)
    if not isinstance(section, dict):
        msg = f"[buildgate] in {path} must be a table"
        raise ConfigurationError(msg)
    return dict(section)


def _coerce(key: str, value: Any, *, base: Path) -> Any:  # noqa: PLR0911
    if key in _PATH_KEYS:
        if not isinstance(value, (str, Path)) or not str(value).strip():
            msg = f"{key} must be a non-empty path"
            raise ConfigurationError(msg)
        path = Path(value).expanduser()
        return path if path.is_absolute() else base / path
    if key in _STR_KEYS:
        if not isinstance(value, str):
            msg = f"{key} must be a string, got {type(value).__name__}"
            raise ConfigurationError(msg)
        return value
    if key in _LIST_KEYS:
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            msg = f"{key} must be a list of strings"
            raise ConfigurationError(msg)
        return tuple(value)
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            msg = f"{key} must be true or false"
            raise ConfigurationError(msg)
        return value
    if key == "platform":
        try:
            return Platform(value)
        except ValueError as exc:
            choices = ", ".join(p.value for p in Platform)
            msg = f"unsupported platform {value!r}. Available platforms: {choices}"
            raise ConfigurationError(msg) from exc
    if key == "coverage_threshold":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            msg = "coverage_threshold must be a number"
            raise ConfigurationError(msg)
        if value < 0 or value > FULL_COVERAGE:
            msg = f"coverage_threshold out of range: {value}"
            raise ConfigurationError(msg)
        return float(value)
    msg = f"unknown setting: {key!r}"
    raise ConfigurationError(msg)


def load_config(
    project: ProjectDescriptor,
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    require_engine: bool = True,
) -> BuildgateConfig:
    """Resolve the configuration for *project*.

    ``None`` values in *overrides* are ignored so that unset command line
    options do not mask file settings. Commands that never start an engine
    tool pass ``require_engine=False``.

    Raises
    ------
    ConfigurationError
        On an unreadable settings file, an unknown or ill-typed setting, or
        when no engine directory is configured anywhere.
    """
    base = project.root_directory
    raw: dict[str, Any] = {}

    env_engine = (environ or {}).get(ENGINE_DIR_ENV)
    if env_engine:
        raw["engine_dir"] = env_engine
    raw.update(read_config_file(base / CONFIG_FILENAME))
    raw.update({k: v for k, v in (overrides or {}).items() if v is not None})

    values = {key: _coerce(key, value, base=base) for key, value in raw.items()}

    if "engine_dir" not in values:
        if require_engine:
            msg = (
                f"engine directory not configured: set engine_dir in {CONFIG_FILENAME}, "
                f"pass --engine-dir, or export {ENGINE_DIR_ENV}"
            )
            raise ConfigurationError(msg)
        values["engine_dir"] = None
    elif require_engine and not values["engine_dir"].is_dir():
        msg = f"engine directory does not exist: {values['engine_dir']}"
        raise ConfigurationError(msg)

    return _with_default_dirs(project, values)


def _with_default_dirs(project: ProjectDescriptor, values: dict[str, Any]) -> BuildgateConfig:
    # Output directories default to project-relative locations.
    for f in fields(BuildgateConfig):
        if f.name in {"logs_dir", "coverage_dir", "archive_dir"} and f.name not in values:
            values[f.name] = project.root_directory / f.default
    return BuildgateConfig(project=project, **values)


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CLEAN_DIRS",
    "ENGINE_DIR_ENV",
    "LOG_FORMAT",
    "BuildgateConfig",
    "load_config",
    "read_config_file",
]
