"""Terminal summaries of a batch run."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from .batch import BatchOutcome
from .registry import StrategyInfo


def summary_table(outcome: BatchOutcome, *, language: Optional[str] = None, dry_run: bool = False) -> Table:
    table = Table(title="Extraction summary" + (" (dry run)" if dry_run else ""))
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Files processed", str(len(outcome.results)))
    table.add_row("Artifacts found", str(outcome.total_artifacts))
    table.add_row("Files written", str(outcome.total_written))
    table.add_row("Failures", str(len(outcome.failures)))
    table.add_row("Target language", language or "auto")
    return table


def results_table(outcome: BatchOutcome, paths: Sequence[Path]) -> Table:
    """Per-file breakdown in input order, whatever order the workers finished in."""
    order = {path: index for index, path in enumerate(paths)}
    table = Table(title="Per-file results")
    table.add_column("File", style="cyan")
    table.add_column("Strategy")
    table.add_column("Artifacts", justify="right")
    table.add_column("Written", justify="right")
    table.add_column("Kinds", style="dim")
    for result in sorted(outcome.results, key=lambda item: order.get(item.source_path, len(order))):
        kinds = sorted({artifact.kind for artifact in result.artifacts})
        table.add_row(
            str(result.source_path),
            result.strategy_name,
            str(result.artifact_count),
            str(result.written_count),
            ", ".join(kinds),
        )
    return table


def failures_table(outcome: BatchOutcome) -> Table:
    table = Table(title="Failures")
    table.add_column("File", style="cyan")
    table.add_column("Error", style="red")
    table.add_column("Cause")
    for failure in outcome.failures:
        table.add_row(str(failure.path), type(failure.error).__name__, str(failure.error))
    return table


def strategies_table(strategies: Sequence[StrategyInfo]) -> Table:
    table = Table(title=f"Extraction strategies ({len(strategies)})")
    table.add_column("Name", style="cyan")
    table.add_column("Extensions")
    for info in strategies:
        table.add_row(info.name, " ".join(info.extensions) or "-")
    return table


def print_outcome(
    outcome: BatchOutcome,
    paths: Sequence[Path],
    *,
    console: Optional[Console] = None,
    detailed: bool = False,
    language: Optional[str] = None,
    dry_run: bool = False,
) -> None:
    console = console or Console()
    console.print(summary_table(outcome, language=language, dry_run=dry_run))
    if detailed:
        console.print(results_table(outcome, paths))
        if outcome.failures:
            console.print(failures_table(outcome))


__all__ = ["failures_table", "print_outcome", "results_table", "strategies_table", "summary_table"]
