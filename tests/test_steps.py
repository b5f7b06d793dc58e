from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from buildgate.config import BuildgateConfig, load_config
from buildgate.errors import (
    ConfigurationError,
    CoverageGateError,
    LogGateError,
    ProcessFailureError,
    ToolNotFoundError,
    ToolOutputMissingError,
)
from buildgate.model.coverage import GateFail, GatePass
from buildgate.model.project import ProjectDescriptor
from buildgate.model.types import BuildConfiguration, BuildTarget
from buildgate.steps import (
    BuildStep,
    CleanStep,
    PackageStep,
    StepContext,
    TestStep,
    build_all_steps,
    ci_steps,
    clean_targets,
    package_all_steps,
)
from buildgate.toolchain import runner_log_path

if TYPE_CHECKING:
    from conftest import FakeRunner

GAME_CPP = "Source/Game/Game.cpp"


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def test_build_step_success(make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner) -> None:
    config = make_config(build_flags=["-NoHotReload"])
    fake_runner.outputs.append((0, ["Building GameEditor...", "WARNING: Success - 0 error(s), 0 warning(s)"]))

    result = BuildStep(BuildTarget.EDITOR, BuildConfiguration.DEVELOPMENT).run(StepContext(config, fake_runner))

    assert result.ok
    assert result.name == "BuildEditorDevelopment"
    assert result.log_path == config.log_path("BuildEditorDevelopment")
    (cmd,) = fake_runner.calls
    assert cmd[1:4] == ("GameEditor", config.platform.value, "Development")
    assert cmd[-1] == "-NoHotReload"


def test_build_step_exit_code(make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner) -> None:
    fake_runner.outputs.append((5, ["ERROR: something broke"]))

    result = BuildStep(BuildTarget.GAME, BuildConfiguration.SHIPPING).run(StepContext(make_config(), fake_runner))

    assert not result.ok
    assert isinstance(result.error, ProcessFailureError)
    assert result.error.exit_code == 5


def test_build_step_warning_fails_clean_exit(
    make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner
) -> None:
    fake_runner.outputs.append((0, ["Compiling", "  WARNING: unused variable 'x'", "Done"]))

    result = BuildStep(BuildTarget.GAME, BuildConfiguration.DEBUG).run(StepContext(make_config(), fake_runner))

    assert isinstance(result.error, LogGateError)
    assert result.error.scan.warnings == 1
    assert result.error.details == ("2: WARNING: unused variable 'x'",)
    assert str(result.error) == "BuildGameDebugGame: 0 error(s), 1 warning(s) in log"


def test_build_step_missing_tool(
    make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner, tmp_path: Path
) -> None:
    empty = tmp_path / "EmptyEngine"
    empty.mkdir()

    result = BuildStep(BuildTarget.EDITOR, BuildConfiguration.DEBUG).run(
        StepContext(make_config(engine_dir=empty), fake_runner)
    )

    assert isinstance(result.error, ToolNotFoundError)
    assert fake_runner.calls == []


def test_engine_required_for_tool_steps(unreal_project: ProjectDescriptor, fake_runner: FakeRunner) -> None:
    config = load_config(unreal_project, environ={}, require_engine=False)

    result = BuildStep(BuildTarget.EDITOR, BuildConfiguration.DEBUG).run(StepContext(config, fake_runner))

    assert isinstance(result.error, ConfigurationError)


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------


def _write_archive(config: BuildgateConfig, configuration: BuildConfiguration) -> Callable[[Sequence[str]], None]:
    def effect(cmd: Sequence[str]) -> None:
        out = config.archive_dir / configuration.value
        out.mkdir(parents=True, exist_ok=True)
        (out / "Game.pak").write_text("pak", encoding="utf-8")

    return effect


def test_package_step_clears_previous_archive(
    make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner
) -> None:
    config = make_config()
    stale = config.archive_dir / "Shipping" / "old.pak"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")
    fake_runner.side_effect = _write_archive(config, BuildConfiguration.SHIPPING)

    result = PackageStep(BuildConfiguration.SHIPPING).run(StepContext(config, fake_runner))

    assert result.ok
    assert result.name == "PackageShipping"
    assert not stale.exists()
    assert (config.archive_dir / "Shipping" / "Game.pak").is_file()
    assert f"-archivedirectory={config.archive_dir / 'Shipping'}" in fake_runner.calls[0]


@pytest.mark.parametrize("clean_on_failure", [True, False])
def test_package_step_failure_archive(
    make_config: Callable[..., BuildgateConfig], fake_runner: FakeRunner, clean_on_failure: bool
) -> None:
    config = make_config(clean_on_failure=clean_on_failure)
    fake_runner.side_effect = _write_archive(config, BuildConfiguration.DEVELOPMENT)
    fake_runner.outputs.append((25, ["ERROR: cook failed"]))

    result = PackageStep(BuildConfiguration.DEVELOPMENT).run(StepContext(config, fake_runner))

    assert isinstance(result.error, ProcessFailureError)
    assert result.error.exit_code == 25
    assert (config.archive_dir / "Development").exists() is not clean_on_failure


# ---------------------------------------------------------------------------
# Test
# ---------------------------------------------------------------------------


@pytest.fixture
def coverage_tool(tmp_path: Path) -> Path:
    tool = tmp_path / "OpenCppCoverage.exe"
    tool.write_text("", encoding="utf-8")
    return tool


@pytest.fixture
def no_coverage_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda name: None)


def _test_run(
    config: BuildgateConfig,
    coverage_xml_file: Callable[..., Path],
    *,
    runner_log: Sequence[str] | None = ("LogAutomation: Test Completed. Result={Success}",),
    coverage: dict[str, dict[int, int]] | None = None,
) -> Callable[[Sequence[str]], None]:
    def effect(cmd: Sequence[str]) -> None:
        if runner_log is not None:
            path = runner_log_path(config.project)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("".join(f"{ln}\n" for ln in runner_log), encoding="utf-8")
        if coverage is not None:
            coverage_xml_file(coverage, path=config.coverage_report)

    return effect


def test_test_step_passes_with_coverage(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    coverage_tool: Path,
) -> None:
    config = make_config(coverage_tool=coverage_tool, coverage_threshold=60)
    fake_runner.side_effect = _test_run(config, coverage_xml_file, coverage={GAME_CPP: {1: 1, 3: 1, 5: 0}})

    result = TestStep().run(StepContext(config, fake_runner))

    assert result.ok, result.error
    assert result.gate == GatePass(66.67)
    (cmd,) = fake_runner.calls
    assert cmd[0] == str(coverage_tool)
    assert f"cobertura:{config.coverage_report}" in cmd
    assert "-ExecCmds=Automation RunTests Game; Quit" in cmd


def test_test_step_coverage_below_threshold(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    coverage_tool: Path,
) -> None:
    config = make_config(coverage_tool=coverage_tool)
    fake_runner.side_effect = _test_run(config, coverage_xml_file, coverage={GAME_CPP: {1: 1, 3: 0, 5: 0}})

    result = TestStep().run(StepContext(config, fake_runner))

    assert isinstance(result.error, CoverageGateError)
    gate = result.gate
    assert isinstance(gate, GateFail)
    assert gate.coverage_pct == 33.33
    assert gate.threshold == 80.0
    assert [(u.line_number, u.line_text) for u in gate.uncovered] == [(3, "void Tick()"), (5, "    DoThing();")]
    assert all(u.resolved_path == config.root / GAME_CPP for u in gate.uncovered)


def test_test_step_runner_log_errors(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    no_coverage_on_path: None,
) -> None:
    config = make_config()
    fake_runner.side_effect = _test_run(
        config, coverage_xml_file, runner_log=["LogInit: ok", "ERROR: Test Game.Smoke failed"]
    )

    result = TestStep().run(StepContext(config, fake_runner))

    assert isinstance(result.error, LogGateError)
    assert result.error.details == ("2: ERROR: Test Game.Smoke failed",)


def test_test_step_exit_code_checked_before_log(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    no_coverage_on_path: None,
) -> None:
    config = make_config()
    fake_runner.side_effect = _test_run(config, coverage_xml_file, runner_log=["ERROR: crash"])
    fake_runner.outputs.append((3, []))

    result = TestStep().run(StepContext(config, fake_runner))

    assert isinstance(result.error, ProcessFailureError)
    assert not isinstance(result.error, ToolOutputMissingError)
    assert result.error.exit_code == 3


def test_test_step_missing_runner_log(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    no_coverage_on_path: None,
) -> None:
    config = make_config()
    stale = runner_log_path(config.project)
    stale.parent.mkdir(parents=True)
    stale.write_text("LogInit: previous run\n", encoding="utf-8")
    fake_runner.side_effect = _test_run(config, coverage_xml_file, runner_log=None)

    result = TestStep().run(StepContext(config, fake_runner))

    assert isinstance(result.error, ToolOutputMissingError)


def test_test_step_without_coverage_tool_skips_gate(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    no_coverage_on_path: None,
) -> None:
    config = make_config()
    # A report from an earlier run must not be evaluated.
    coverage_xml_file({GAME_CPP: [1]}, line_rate=0.0, path=config.coverage_report)
    fake_runner.side_effect = _test_run(config, coverage_xml_file)

    result = TestStep().run(StepContext(config, fake_runner))

    assert result.ok, result.error
    assert result.gate == GatePass(None, skipped=True)
    assert not config.coverage_report.exists()
    assert "--export_type" not in fake_runner.calls[0]


def test_test_step_coverage_disabled(
    make_config: Callable[..., BuildgateConfig],
    fake_runner: FakeRunner,
    coverage_xml_file: Callable[..., Path],
    coverage_tool: Path,
) -> None:
    config = make_config(coverage_tool=coverage_tool, collect_coverage=False)
    fake_runner.side_effect = _test_run(config, coverage_xml_file)

    result = TestStep().run(StepContext(config, fake_runner))

    assert result.ok, result.error
    assert fake_runner.calls[0][0] != str(coverage_tool)


# ---------------------------------------------------------------------------
# Clean
# ---------------------------------------------------------------------------


def _mkdirs(root: Path, *names: str) -> None:
    for name in names:
        (root / name).mkdir(parents=True, exist_ok=True)


def test_clean_step(unreal_project: ProjectDescriptor, fake_runner: FakeRunner) -> None:
    root = unreal_project.root_directory
    _mkdirs(root, "Binaries", "Intermediate", "Content", "Saved/Buildgate/Logs", "Plugins/Net/Binaries")
    (root / "Plugins" / "Net" / "Net.uplugin").write_text("{}", encoding="utf-8")
    _mkdirs(root, "Plugins/Stray/Binaries")  # no .uplugin: not a plugin
    config = load_config(unreal_project, environ={}, require_engine=False)

    targets = clean_targets(config)
    assert targets == [
        root / "Binaries",
        root / "Intermediate",
        root / "Plugins" / "Net" / "Binaries",
        config.logs_dir,
    ]

    result = CleanStep().run(StepContext(config, fake_runner))

    assert result.ok
    assert fake_runner.calls == []
    assert not any(p.exists() for p in targets)
    assert (root / "Source").is_dir()
    assert (root / "Content").is_dir()
    assert (root / "Plugins" / "Stray" / "Binaries").is_dir()


def test_clean_step_nothing_to_do(unreal_project: ProjectDescriptor, fake_runner: FakeRunner) -> None:
    config = load_config(unreal_project, environ={}, require_engine=False)
    assert clean_targets(config) == []
    assert CleanStep().run(StepContext(config, fake_runner)).ok


# ---------------------------------------------------------------------------
# Step lists
# ---------------------------------------------------------------------------


def test_step_lists() -> None:
    assert [s.name for s in build_all_steps()] == [
        "BuildEditorDebugGame",
        "BuildEditorDevelopment",
        "BuildGameDebugGame",
        "BuildGameDevelopment",
        "BuildGameShipping",
    ]
    assert [s.name for s in package_all_steps()] == ["PackageDebugGame", "PackageDevelopment", "PackageShipping"]
    names = [s.name for s in ci_steps()]
    assert names.index("Test") == len(build_all_steps())
    assert names[-1] == "PackageShipping"
