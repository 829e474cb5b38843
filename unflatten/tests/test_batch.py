"""Batch runs: sequential and pooled execution, failures, dry-run and merging."""

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path

import pytest

from unflatten.batch import BatchRunner, run_batch, worker_count
from unflatten.errors import (
    ExtractionTimeoutError,
    InitializationError,
    NoStrategyError,
    ReadError,
    WriteError,
)
from unflatten.extract.base import ExtractionStrategy
from unflatten.pipeline import extract_file
from unflatten.registry import StrategyRegistry, create_default_registry
from unflatten.writer import ArtifactWriter

DATA_DIR = Path(__file__).resolve().parent / "data"
EXPECTED_FILES = {"server.go", "new_server.go", "server_start.go", "Loader.py", "main.py", "c_text_0.txt"}


class SharedNameStrategy(ExtractionStrategy):
    name = "shared"
    extensions = (".x",)

    def collect(self, content: str):
        yield self.emit(content, "fixed", "shared.txt", format="text")


class SleepyStrategy(ExtractionStrategy):
    name = "sleepy"
    extensions = (".slow",)

    def collect(self, content: str):
        time.sleep(1.0)
        yield self.emit(content, "slow")


class FlakyStrategy(ExtractionStrategy):
    name = "flaky"
    extensions = (".flaky",)
    fail = False

    def prepare(self) -> None:
        if type(self).fail:
            raise InitializationError("flaky: matchers unavailable")
        super().prepare()

    def collect(self, content: str):
        yield self.emit(content, "flaky")


class TrackingStrategy(ExtractionStrategy):
    name = "tracking"
    extensions = (".track",)

    def __init__(self) -> None:
        super().__init__()
        self.used = False

    def collect(self, content: str):
        self.used = True
        yield self.emit(content, "tracked")


def _inputs(tmp_path: Path) -> list[Path]:
    source_dir = tmp_path / "inputs"
    source_dir.mkdir()
    paths = []
    for name in ("a.go", "b.py", "c.txt"):
        target = source_dir / name
        shutil.copyfile(DATA_DIR / name, target)
        paths.append(target)
    return paths


def _registry(*strategies: ExtractionStrategy) -> StrategyRegistry:
    registry = StrategyRegistry()
    registry.register_all(strategies)
    return registry


def _snapshot(directory: Path) -> dict[str, str]:
    return {
        str(path.relative_to(directory)): path.read_text(encoding="utf-8")
        for path in directory.rglob("*")
        if path.is_file()
    }


def test_sequential_and_pooled_runs_agree(tmp_path: Path) -> None:
    paths = _inputs(tmp_path)
    registry = create_default_registry()

    sequential = run_batch(paths, registry, concurrency=1, output_dir=tmp_path / "seq")
    pooled = run_batch(paths, registry, concurrency=4, output_dir=tmp_path / "pool")

    for outcome in (sequential, pooled):
        results, failures = outcome
        assert failures == []
        assert {result.source_path.name: result.artifact_count for result in results} == {
            "a.go": 3,
            "b.py": 2,
            "c.txt": 1,
        }
        assert outcome.total_artifacts == 6
        assert outcome.total_written == 6

    assert set(_snapshot(tmp_path / "seq")) == EXPECTED_FILES
    assert _snapshot(tmp_path / "seq") == _snapshot(tmp_path / "pool")
    assert (tmp_path / "seq" / "c_text_0.txt").read_text(encoding="utf-8") == (DATA_DIR / "c.txt").read_text(
        encoding="utf-8"
    )


def test_failures_do_not_stop_the_batch(tmp_path: Path) -> None:
    paths = _inputs(tmp_path)
    missing = tmp_path / "inputs" / "missing.go"
    outcome = run_batch([paths[0], missing, paths[1]], create_default_registry(), output_dir=tmp_path / "out")

    assert [result.source_path.name for result in outcome.results] == ["a.go", "b.py"]
    assert len(outcome.failures) == 1
    assert outcome.failures[0].path == missing
    assert isinstance(outcome.failures[0].error, ReadError)


def test_no_strategy_is_a_per_file_failure(tmp_path: Path) -> None:
    source = tmp_path / "data.unknown"
    source.write_text("payload\n", encoding="utf-8")
    outcome = run_batch([source], _registry(SharedNameStrategy()), output_dir=tmp_path / "out")
    assert outcome.results == []
    assert isinstance(outcome.failures[0].error, NoStrategyError)


def test_timeout_abandons_the_file(tmp_path: Path) -> None:
    slow = tmp_path / "input.slow"
    slow.write_text("slow\n", encoding="utf-8")
    outcome = run_batch([slow], _registry(SleepyStrategy()), output_dir=tmp_path / "out", timeout=0.1)
    assert outcome.results == []
    assert isinstance(outcome.failures[0].error, ExtractionTimeoutError)
    assert not (tmp_path / "out").exists()


def test_initialization_failure_on_clone_is_recorded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    registry = _registry(FlakyStrategy())
    monkeypatch.setattr(FlakyStrategy, "fail", True)
    source = tmp_path / "input.flaky"
    source.write_text("data\n", encoding="utf-8")

    outcome = run_batch([source], registry, output_dir=tmp_path / "out")
    assert isinstance(outcome.failures[0].error, InitializationError)


def test_registered_instance_is_never_used_for_extraction(tmp_path: Path) -> None:
    registered = TrackingStrategy()
    registry = _registry(registered)
    paths = []
    for index in range(6):
        path = tmp_path / f"file{index}.track"
        path.write_text(f"content {index}\n", encoding="utf-8")
        paths.append(path)

    outcome = run_batch(paths, registry, concurrency=4, output_dir=tmp_path / "out")
    assert outcome.total_artifacts == 6
    assert registered.used is False


def test_extract_file_uses_language_override(tmp_path: Path) -> None:
    source = tmp_path / "dump.txt"
    shutil.copyfile(DATA_DIR / "b.py", source)
    result = extract_file(source, create_default_registry(), language="python")
    assert result.strategy_name == "python"
    assert [artifact.suggested_name for artifact in result.artifacts] == ["Loader.py", "main.py"]


def test_dry_run_plans_without_writing(tmp_path: Path) -> None:
    paths = _inputs(tmp_path)
    output = tmp_path / "out"
    outcome = run_batch(paths, create_default_registry(), dry_run=True, output_dir=output)

    assert not output.exists()
    assert outcome.total_artifacts == 6
    assert outcome.total_written == 0
    planned = {path.name for result in outcome.results for path in result.planned_paths}
    assert planned == EXPECTED_FILES


def _colliding_inputs(tmp_path: Path) -> list[Path]:
    first = tmp_path / "one.x"
    second = tmp_path / "two.x"
    first.write_text("first\n", encoding="utf-8")
    second.write_text("second\n", encoding="utf-8")
    return [first, second]


def test_collisions_without_merge_keep_the_last_write(tmp_path: Path) -> None:
    output = tmp_path / "out"
    outcome = run_batch(_colliding_inputs(tmp_path), _registry(SharedNameStrategy()), output_dir=output)
    assert (output / "shared.txt").read_text(encoding="utf-8") == "second\n"
    assert outcome.total_written == 1


def test_pooled_collisions_leave_one_complete_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("unflatten.batch.os.cpu_count", lambda: 8)
    contents = [f"{index}:" + "x" * (index * 4096 + 1) + "\n" for index in range(48)]
    paths = []
    for index, content in enumerate(contents):
        path = tmp_path / f"input{index}.x"
        path.write_text(content, encoding="utf-8")
        paths.append(path)

    for round_index in range(4):
        output = tmp_path / f"out{round_index}"
        outcome = run_batch(paths, _registry(SharedNameStrategy()), concurrency=8, output_dir=output)
        assert outcome.failures == []
        assert [path.name for path in output.iterdir()] == ["shared.txt"]
        assert (output / "shared.txt").read_text(encoding="utf-8") in contents


@pytest.mark.parametrize("concurrency", [1, 4])
def test_collisions_with_merge_fold_in_input_order(tmp_path: Path, concurrency: int) -> None:
    output = tmp_path / "out"
    outcome = run_batch(
        _colliding_inputs(tmp_path),
        _registry(SharedNameStrategy()),
        concurrency=concurrency,
        output_dir=output,
        merge=True,
    )
    assert (output / "shared.txt").read_text(encoding="utf-8") == "first\n\n---- merged ----\n\nsecond\n"
    assert [result.source_path.name for result in outcome.results] == ["one.x", "two.x"]
    assert all(result.written_paths == [output / "shared.txt"] for result in outcome.results)
    assert outcome.total_written == 1


def test_write_errors_are_attributed_to_the_source(tmp_path: Path) -> None:
    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory\n", encoding="utf-8")
    paths = _inputs(tmp_path)

    outcome = run_batch(paths[:1], create_default_registry(), output_dir=blocked)
    assert len(outcome.results) == 1
    assert outcome.results[0].written_paths == []
    assert len(outcome.failures) == 3
    assert all(isinstance(failure.error, WriteError) for failure in outcome.failures)
    assert all(failure.path == paths[0] for failure in outcome.failures)


def test_runner_rejects_non_positive_concurrency(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        BatchRunner(create_default_registry(), ArtifactWriter(tmp_path), concurrency=0)


def test_worker_count_is_bounded_by_cpu_count() -> None:
    assert worker_count(1) == 1
    assert worker_count(10_000) == (os.cpu_count() or 1)
