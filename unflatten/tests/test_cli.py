"""End-to-end tests for the unflatten command line."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from unflatten.cli import app
from unflatten.registry import StrategyRegistry

SAMPLE_DATA = Path(__file__).resolve().parent / "data"


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    shutil.copytree(SAMPLE_DATA, tmp_path / "inputs")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _written(directory: Path) -> set[str]:
    return {str(path.relative_to(directory)) for path in directory.rglob("*") if path.is_file()}


def test_extract_writes_artifacts(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["extract", "inputs/a.go", "inputs/b.py", "--input", "inputs/c.txt", "--output", "out"],
    )
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert _written(workspace / "out") == {
        "server.go",
        "new_server.go",
        "server_start.go",
        "Loader.py",
        "main.py",
        "c_text_0.txt",
    }
    assert "Extraction summary" in result.output


def test_extract_defaults_to_the_extracted_directory(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/*.py", "--quiet"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert _written(workspace / "extracted") == {"Loader.py", "main.py"}
    assert "Extraction summary" not in result.output


def test_dry_run_creates_nothing(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/a.go", "--dry-run", "--output", "out", "--parallel", "2"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert not (workspace / "out").exists()
    assert "Files written" in result.output


def test_config_file_supplies_defaults(workspace: Path) -> None:
    (workspace / "unflatten.yaml").write_text("dry_run: true\noutput_dir: from_config\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/b.py"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert not (workspace / "from_config").exists()

    result = runner.invoke(app, ["extract", "inputs/b.py", "--no-dry-run"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert _written(workspace / "from_config") == {"Loader.py", "main.py"}


def test_language_override_and_report(workspace: Path) -> None:
    shutil.copyfile(workspace / "inputs" / "b.py", workspace / "inputs" / "dump.txt")
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["extract", "inputs/dump.txt", "--language", "python", "--output", "out", "--report"],
    )
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert _written(workspace / "out") == {"Loader.py", "main.py"}
    assert "Per-file results" in result.output


def test_missing_input_is_rejected(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/missing.go"])
    assert result.exit_code != 0
    assert not (workspace / "extracted").exists()


def test_no_inputs_is_rejected(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract"])
    assert result.exit_code != 0


def test_parallel_must_be_positive(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/a.go", "--parallel", "0"])
    assert result.exit_code == 2


def test_missing_explicit_config_is_rejected(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["extract", "inputs/a.go", "--config", "absent.yaml"])
    assert result.exit_code == 2


def test_plugins_lists_builtin_strategies(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["plugins"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    for name in ("generic", "java", "python", "rust", "dart"):
        assert name in result.output


def test_plugins_with_missing_directory_exits_nonzero(workspace: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["plugins", "--plugin-dir", "no_such_dir"])
    assert result.exit_code == 1


@pytest.mark.parametrize(
    "arguments",
    [
        ["extract", "inputs/a.go", "--output", "out", "--quiet"],
        ["extract", "inputs/a.go", "--output", "out", "--parallel", "2", "--quiet"],
        ["plugins"],
    ],
)
def test_commands_close_the_registry(
    workspace: Path, monkeypatch: pytest.MonkeyPatch, arguments: list[str]
) -> None:
    closed: list[int] = []
    original_close = StrategyRegistry.close

    def recording_close(self: StrategyRegistry) -> None:
        closed.append(len(self))
        original_close(self)

    monkeypatch.setattr(StrategyRegistry, "close", recording_close)
    runner = CliRunner()
    result = runner.invoke(app, arguments)
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert len(closed) == 1
    assert closed[0] >= 7
