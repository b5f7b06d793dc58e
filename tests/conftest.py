from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from click.testing import CliRunner

from buildgate.config import BuildgateConfig, load_config
from buildgate.locate import locate
from buildgate.model.project import ProjectDescriptor
from buildgate.model.types import Platform, host_platform
from buildgate.process import ProcessResult

LinesSpec = Mapping[int, int] | Iterable[int]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Click CLI runner for invoking the command-line interface."""
    return CliRunner()


@pytest.fixture
def coverage_xml_content() -> Callable[..., str]:
    def build(mapping: Mapping[Path | str, LinesSpec], *, line_rate: float | None = None) -> str:
        classes: list[str] = []
        for file, lines in mapping.items():
            items = lines.items() if isinstance(lines, Mapping) else ((ln, 0) for ln in lines)
            lines_xml = "".join(f'<line number="{ln}" hits="{hits}"/>' for ln, hits in items)
            classes.append(f'<class filename="{file}"><lines>{lines_xml}</lines></class>')
        classes_xml = "".join(classes)
        rate_attr = f' line-rate="{line_rate}"' if line_rate is not None else ""
        return (
            f"<coverage{rate_attr}>"
            f"<packages><package><classes>{classes_xml}</classes></package></packages>"
            "</coverage>"
        )

    return build


@pytest.fixture
def coverage_xml_file(
    tmp_path: Path,
    coverage_xml_content: Callable[..., str],
) -> Callable[..., Path]:
    def write(
        mapping: Mapping[Path | str, LinesSpec],
        *,
        line_rate: float | None = None,
        path: Path | None = None,
    ) -> Path:
        xml_file = path or tmp_path / "coverage.xml"
        xml_file.parent.mkdir(parents=True, exist_ok=True)
        xml_file.write_text(coverage_xml_content(mapping, line_rate=line_rate), encoding="utf-8")
        return xml_file

    return write


@pytest.fixture
def unreal_project(tmp_path: Path) -> ProjectDescriptor:
    """A minimal project tree: ``Game/Game.uproject`` with a source file."""
    root = tmp_path / "Game"
    (root / "Source" / "Game").mkdir(parents=True)
    (root / "Game.uproject").write_text('{"FileVersion": 3}\n', encoding="utf-8")
    (root / "Source" / "Game" / "Game.cpp").write_text(
        '#include "Game.h"\n\nvoid Tick()\n{\n    DoThing();   \n}\n',
        encoding="utf-8",
    )
    return locate(root)


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")


@pytest.fixture
def engine_dir(tmp_path: Path) -> Path:
    """A fake engine installation holding the host's tool entry points."""
    engine = tmp_path / "UE_5.4"
    batch = engine / "Engine" / "Build" / "BatchFiles"
    host = host_platform()
    if host is Platform.WIN64:
        _touch(batch / "Build.bat")
        _touch(batch / "RunUAT.bat")
        _touch(engine / "Engine" / "Binaries" / "Win64" / "UnrealEditor-Cmd.exe")
    else:
        _touch(batch / host.value / "Build.sh")
        _touch(batch / "RunUAT.sh")
        _touch(engine / "Engine" / "Binaries" / host.value / "UnrealEditor-Cmd")
    return engine


@pytest.fixture
def make_config(unreal_project: ProjectDescriptor, engine_dir: Path) -> Callable[..., BuildgateConfig]:
    def make(**overrides: object) -> BuildgateConfig:
        return load_config(unreal_project, overrides={"engine_dir": engine_dir, **overrides}, environ={})

    return make


@dataclass
class FakeRunner:
    """Stands in for :func:`buildgate.process.run_tool`.

    ``outputs`` is consumed one entry per call: ``(exit_code, lines)``. An
    optional ``side_effect`` runs before returning, e.g. to write the files a
    real tool would produce.
    """

    outputs: list[tuple[int, Sequence[str]]] = field(default_factory=list)
    side_effect: Callable[[Sequence[str]], None] | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def __call__(self, command: Sequence[str], *, log_path: Path, cwd: Path | None = None) -> ProcessResult:
        cmd = tuple(str(c) for c in command)
        self.calls.append(cmd)
        exit_code, lines = self.outputs.pop(0) if self.outputs else (0, ())
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text("".join(f"{ln}\n" for ln in lines), encoding="utf-8")
        if self.side_effect is not None:
            self.side_effect(cmd)
        return ProcessResult(command=cmd, exit_code=exit_code, lines=tuple(lines), log_path=log_path)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
