"""Artifact naming and persistence."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import WriteError
from .extract.base import Artifact
from .logging import get_logger
from .paths import default_extension, sanitize_name, synthesized_name

if TYPE_CHECKING:
    from .pipeline import ExtractionResult

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PlannedArtifact:
    artifact: Artifact
    output_name: str
    sources: tuple[Path, ...] = ()


@dataclass(slots=True)
class WriteReport:
    planned: list[Path] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    failures: list[tuple[PlannedArtifact, WriteError]] = field(default_factory=list)


class ArtifactWriter:
    """Map artifacts to files below ``output_dir`` and write them (unless dry-run)."""

    def __init__(self, output_dir: Path, *, dry_run: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.dry_run = dry_run

    def output_name(self, artifact: Artifact, source: Path, ordinal: int) -> str:
        name = artifact.suggested_name
        if not name:
            return synthesized_name(source, artifact.kind, ordinal, artifact.format)
        if not PurePosixPath(name).suffix:
            name += default_extension(artifact.format)
        return name

    def plan(self, result: "ExtractionResult") -> list[PlannedArtifact]:
        return [
            PlannedArtifact(
                artifact=artifact,
                output_name=self.output_name(artifact, result.source_path, ordinal),
                sources=(result.source_path,),
            )
            for ordinal, artifact in enumerate(result.artifacts)
        ]

    def target_path(self, name: str) -> Path:
        cleaned = sanitize_name(name)
        if not cleaned:
            raise WriteError(self.output_dir / name, "output name is empty after sanitizing")
        target = self.output_dir / cleaned
        root = self.output_dir.resolve()
        if not target.resolve().is_relative_to(root):
            raise WriteError(target, f"resolves outside {self.output_dir}")
        return target

    def write(self, planned: Iterable[PlannedArtifact]) -> WriteReport:
        report = WriteReport()
        for item in planned:
            try:
                target = self.target_path(item.output_name)
                report.planned.append(target)
                if self.dry_run:
                    LOGGER.debug("Dry run: would write %s", target)
                    continue
                self._write_file(target, item.artifact.content)
            except WriteError as error:
                LOGGER.error("Failed to write %s: %s", item.output_name, error)
                report.failures.append((item, error))
                continue
            report.written.append(target)
        return report

    def write_result(self, result: "ExtractionResult") -> WriteReport:
        report = self.write(self.plan(result))
        result.planned_paths = list(report.planned)
        result.written_paths = list(report.written)
        return report

    @staticmethod
    def _write_file(target: Path, content: str) -> None:
        """Write a sibling temp file and rename it over ``target``."""
        temp_path: Optional[Path] = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content)
            temp_path.chmod(0o644)
            os.replace(temp_path, target)
            temp_path = None
        except OSError as error:
            raise WriteError(target, error.strerror or str(error)) from error
        finally:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)


__all__ = ["ArtifactWriter", "PlannedArtifact", "WriteReport"]
