"""Batch execution across many input files."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from .errors import UnflattenError
from .logging import get_logger
from .merge import merge_planned
from .pipeline import ExtractionResult, FileFailure, extract_file
from .registry import StrategyRegistry
from .writer import ArtifactWriter, WriteReport

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class BatchOutcome:
    """Successful results plus per-file failures; unpacks as ``(results, failures)``."""

    results: list[ExtractionResult] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)

    def __iter__(self) -> Iterator[Union[list[ExtractionResult], list[FileFailure]]]:
        yield self.results
        yield self.failures

    @property
    def total_artifacts(self) -> int:
        return sum(result.artifact_count for result in self.results)

    @property
    def total_written(self) -> int:
        return len({path for result in self.results for path in result.written_paths})


def worker_count(concurrency: int) -> int:
    return max(1, min(concurrency, os.cpu_count() or 1))


class BatchRunner:
    """Run extraction over a list of files, sequentially or on a bounded thread pool.

    Without merge every worker writes its own file's artifacts as soon as the file
    is extracted, so colliding names end with whichever write came last. With merge
    nothing is written until every file is drained; results are then put back in
    input order, colliding artifacts are folded together and each output is written once.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        writer: ArtifactWriter,
        *,
        language: Optional[str] = None,
        concurrency: int = 1,
        merge: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.registry = registry
        self.writer = writer
        self.language = language or None
        self.concurrency = concurrency
        self.merge = merge
        self.timeout = timeout

    def run(self, paths: Sequence[Path]) -> BatchOutcome:
        outcome = BatchOutcome()
        if self.concurrency == 1 or len(paths) <= 1:
            for path in paths:
                self._collect(path, outcome)
        else:
            self._run_pooled(paths, outcome)

        if self.merge:
            order = {path: index for index, path in enumerate(paths)}
            outcome.results.sort(key=lambda result: order.get(result.source_path, len(order)))
            self._write_merged(outcome)
        LOGGER.debug(
            "Batch finished: %s succeeded, %s failed, %s artifact(s)",
            len(outcome.results),
            len(outcome.failures),
            outcome.total_artifacts,
        )
        return outcome

    def process(self, path: Path) -> tuple[ExtractionResult, Optional[WriteReport]]:
        """Extract one file and, unless merging, write its artifacts."""
        result = extract_file(path, self.registry, language=self.language, timeout=self.timeout)
        if self.merge:
            return result, None
        return result, self.writer.write_result(result)

    def _collect(self, path: Path, outcome: BatchOutcome) -> None:
        try:
            result, report = self.process(path)
        except UnflattenError as error:
            LOGGER.error("Skipping %s: %s", path, error)
            outcome.failures.append(FileFailure(path=path, error=error))
            return
        self._record(result, report, outcome)

    def _run_pooled(self, paths: Sequence[Path], outcome: BatchOutcome) -> None:
        workers = worker_count(self.concurrency)
        LOGGER.debug("Processing %s file(s) with %s worker(s)", len(paths), workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="unflatten") as executor:
            futures = {executor.submit(self.process, path): path for path in paths}
            for future in as_completed(futures):
                path = futures[future]
                try:
                    result, report = future.result()
                except UnflattenError as error:
                    LOGGER.error("Skipping %s: %s", path, error)
                    outcome.failures.append(FileFailure(path=path, error=error))
                    continue
                self._record(result, report, outcome)

    @staticmethod
    def _record(result: ExtractionResult, report: Optional[WriteReport], outcome: BatchOutcome) -> None:
        outcome.results.append(result)
        if report is None:
            return
        for _, error in report.failures:
            outcome.failures.append(FileFailure(path=result.source_path, error=error))

    def _write_merged(self, outcome: BatchOutcome) -> None:
        planned = [item for result in outcome.results for item in self.writer.plan(result)]
        merged = merge_planned(planned)
        LOGGER.debug("Merged %s planned artifact(s) into %s output(s)", len(planned), len(merged))
        by_source = {result.source_path: result for result in outcome.results}
        for item in merged:
            report = self.writer.write([item])
            for source in item.sources:
                result = by_source.get(source)
                if result is None:
                    continue
                result.planned_paths.extend(report.planned)
                result.written_paths.extend(report.written)
                for _, error in report.failures:
                    outcome.failures.append(FileFailure(path=source, error=error))


def run_batch(
    paths: Sequence[Path],
    registry: StrategyRegistry,
    concurrency: int = 1,
    dry_run: bool = False,
    *,
    output_dir: Path = Path("extracted"),
    language: Optional[str] = None,
    merge: bool = False,
    timeout: Optional[float] = None,
) -> BatchOutcome:
    """Extract ``paths`` with ``registry`` and write the artifacts below ``output_dir``."""
    writer = ArtifactWriter(output_dir, dry_run=dry_run)
    runner = BatchRunner(
        registry,
        writer,
        language=language,
        concurrency=concurrency,
        merge=merge,
        timeout=timeout,
    )
    return runner.run(list(paths))


__all__ = ["BatchOutcome", "BatchRunner", "run_batch", "worker_count"]
