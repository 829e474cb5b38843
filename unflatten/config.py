"""Configuration models for unflatten."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "unflatten.yaml"


class ExtractConfig(BaseModel):
    output_dir: Path = Path("extracted")
    language: Optional[str] = None
    concurrency: int = Field(default=1, ge=1)
    dry_run: bool = False
    merge: bool = False
    quiet: bool = False
    verbose: bool = False
    report: bool = False
    plugin_dir: Optional[Path] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    log_level: str = "INFO"


def load_config_file(path: Path) -> dict[str, object]:
    """Read a YAML mapping of option overrides; a missing file yields no overrides."""
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        raise ConfigError(f"Failed to parse {path}: {error}") from error
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def build_config(config_path: Optional[Path], cli_options: dict[str, object]) -> ExtractConfig:
    """Layer explicitly passed CLI options over the YAML file values."""
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Config file {config_path} does not exist")
    file_overrides = load_config_file(config_path or Path(DEFAULT_CONFIG_NAME))
    merged: dict[str, object] = {**file_overrides, **cli_options}
    try:
        return ExtractConfig(**merged)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}") from error


__all__ = ["DEFAULT_CONFIG_NAME", "ExtractConfig", "build_config", "load_config_file"]
