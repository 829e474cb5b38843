"""Per-file extraction: read, resolve, extract."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ExtractionTimeoutError, ReadError, UnflattenError
from .extract.base import Artifact, ExtractionStrategy
from .logging import get_logger
from .registry import StrategyRegistry

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ExtractionResult:
    source_path: Path
    strategy_name: str
    artifacts: list[Artifact] = field(default_factory=list)
    written_paths: list[Path] = field(default_factory=list)
    planned_paths: list[Path] = field(default_factory=list)

    @property
    def artifact_count(self) -> int:
        return len(self.artifacts)

    @property
    def written_count(self) -> int:
        return len(self.written_paths)


@dataclass(slots=True)
class FileFailure:
    path: Path
    error: UnflattenError

    def __str__(self) -> str:
        return str(self.error)


def read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as error:
        raise ReadError(path, error.strerror or str(error)) from error


def _run_session(strategy: ExtractionStrategy, content: str) -> list[Artifact]:
    with strategy.session():
        return strategy.extract(content)


def _run_with_timeout(strategy: ExtractionStrategy, content: str, path: Path, timeout: float) -> list[Artifact]:
    outcome: dict[str, object] = {}

    def target() -> None:
        try:
            outcome["artifacts"] = _run_session(strategy, content)
        except BaseException as error:  # re-raised on the calling thread
            outcome["error"] = error

    worker = threading.Thread(target=target, name=f"extract-{path.name}", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        LOGGER.error("Extraction of %s exceeded %ss; abandoning it", path, timeout)
        raise ExtractionTimeoutError(path, timeout)
    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["artifacts"]  # type: ignore[return-value]


def extract_file(
    path: Path,
    registry: StrategyRegistry,
    *,
    language: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ExtractionResult:
    """Extract one file on a private clone of the resolved strategy.

    Raises the per-file errors (``ReadError``, ``NoStrategyError``,
    ``InitializationError``, ``ExtractionTimeoutError``); the batch runner records them.
    """
    content = read_source(path)
    strategy = registry.resolve(path, language).clone()
    LOGGER.debug("Extracting %s with '%s'", path, strategy.identify())
    if timeout:
        artifacts = _run_with_timeout(strategy, content, path, timeout)
    else:
        artifacts = _run_session(strategy, content)
    LOGGER.debug("%s yielded %s artifact(s)", path, len(artifacts))
    return ExtractionResult(source_path=path, strategy_name=strategy.identify(), artifacts=artifacts)


__all__ = ["ExtractionResult", "FileFailure", "extract_file", "read_source"]
