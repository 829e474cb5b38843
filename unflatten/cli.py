"""Command-line interface for unflatten."""

from __future__ import annotations

import glob
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from .batch import BatchRunner
from .config import ExtractConfig, build_config
from .errors import UnflattenError
from .extract.external import load_strategy_dir
from .logging import configure_logging, get_logger, resolve_level
from .registry import StrategyRegistry, create_default_registry, list_strategies
from .report import print_outcome, strategies_table
from .writer import ArtifactWriter

app = typer.Typer(help="Split flattened text files into one file per extracted artifact.")
LOGGER = get_logger(__name__)

GLOB_CHARS = ("*", "?", "[")


@app.callback()
def main() -> None:
    """unflatten CLI root."""
    return None


def _expand_inputs(inputs: List[str]) -> list[Path]:
    """Expand globs, check existence and drop duplicates, keeping first-seen order."""
    selected: dict[Path, Path] = {}
    for raw in inputs:
        pattern = raw.strip()
        if not pattern:
            continue
        if any(char in pattern for char in GLOB_CHARS):
            matches = sorted(glob.glob(pattern, recursive=True))
            if not matches:
                LOGGER.warning("Pattern '%s' matched no files", pattern)
            candidates = [Path(match) for match in matches]
        else:
            candidates = [Path(pattern)]
        for candidate in candidates:
            if not candidate.exists():
                raise typer.BadParameter(f"input file does not exist: {candidate}")
            if candidate.is_dir():
                LOGGER.warning("Skipping directory %s", candidate)
                continue
            selected.setdefault(candidate.resolve(), candidate)
    return list(selected.values())


def _build_registry(plugin_dir: Optional[Path]) -> StrategyRegistry:
    extra = load_strategy_dir(plugin_dir) if plugin_dir else []
    return create_default_registry(extra)


def _explicit(options: dict[str, object]) -> dict[str, object]:
    return {key: value for key, value in options.items() if value is not None}


@app.command("extract")
def extract(
    inputs: Optional[List[str]] = typer.Argument(None, help="Input files or glob patterns."),
    input_list: Optional[str] = typer.Option(None, "--input", "-i", help="Comma-separated input files."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: extracted)."),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Force a strategy by language name."),
    parallel: Optional[int] = typer.Option(None, "--parallel", "-p", min=1, help="Number of concurrent workers."),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--no-dry-run", help="Show what would be written."),
    merge: Optional[bool] = typer.Option(None, "--merge/--no-merge", help="Merge artifacts that share an output name."),
    report: Optional[bool] = typer.Option(None, "--report/--no-report", help="Print a per-file report."),
    quiet: Optional[bool] = typer.Option(None, "--quiet/--no-quiet", help="Only log warnings and errors."),
    verbose: Optional[bool] = typer.Option(None, "--verbose/--no-verbose", help="Log debug details."),
    plugin_dir: Optional[Path] = typer.Option(None, "--plugin-dir", help="Directory of external strategy manifests."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file."),
    timeout: Optional[float] = typer.Option(None, "--timeout", min=0.001, help="Per-file extraction timeout in seconds."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level."),
) -> None:
    """Extract artifacts from INPUTS into the output directory."""
    cli_options = _explicit(
        {
            "output_dir": output,
            "language": language,
            "concurrency": parallel,
            "dry_run": dry_run,
            "merge": merge,
            "report": report,
            "quiet": quiet,
            "verbose": verbose,
            "plugin_dir": plugin_dir,
            "timeout": timeout,
            "log_level": log_level,
        }
    )
    try:
        config = build_config(config_file, cli_options)
    except UnflattenError as error:
        raise typer.BadParameter(str(error)) from error
    configure_logging(resolve_level(config.log_level, quiet=config.quiet, verbose=config.verbose))

    raw_inputs = list(inputs or [])
    if input_list:
        raw_inputs.extend(part for part in input_list.split(","))
    if not raw_inputs:
        raise typer.BadParameter("input files are required")
    paths = _expand_inputs(raw_inputs)
    if not paths:
        LOGGER.warning("No input files to process.")
        return

    try:
        registry = _build_registry(config.plugin_dir)
    except UnflattenError as error:
        LOGGER.error("Cannot build strategy registry: %s", error)
        raise typer.Exit(code=1) from error

    try:
        _run(config, paths, registry)
    finally:
        registry.close()


def _run(config: ExtractConfig, paths: list[Path], registry: StrategyRegistry) -> None:
    LOGGER.info("Extracting %s file(s) into %s", len(paths), config.output_dir)
    if config.dry_run:
        LOGGER.warning("Dry run: no files will be written")
    runner = BatchRunner(
        registry,
        ArtifactWriter(config.output_dir, dry_run=config.dry_run),
        language=config.language,
        concurrency=config.concurrency,
        merge=config.merge,
        timeout=config.timeout,
    )
    outcome = runner.run(paths)
    if not config.quiet:
        print_outcome(
            outcome,
            paths,
            console=Console(),
            detailed=config.report,
            language=config.language,
            dry_run=config.dry_run,
        )


@app.command("plugins")
def plugins(
    plugin_dir: Optional[Path] = typer.Option(None, "--plugin-dir", help="Directory of external strategy manifests."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level."),
) -> None:
    """List the available extraction strategies."""
    configure_logging(log_level)
    try:
        registry = _build_registry(plugin_dir)
    except UnflattenError as error:
        LOGGER.error("Cannot build strategy registry: %s", error)
        raise typer.Exit(code=1) from error
    try:
        Console().print(strategies_table(list_strategies(registry)))
    finally:
        registry.close()


__all__ = ["app", "extract", "main", "plugins"]
