"""Bridge to extraction strategies that run as external processes."""

from __future__ import annotations

import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Iterator, List, Optional

import orjson
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import InitializationError, PluginLoadError
from ..logging import get_logger
from .base import Artifact, ExtractionStrategy

LOGGER = get_logger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml")
SHARED_LIBRARY_SUFFIXES = (".so", ".dylib", ".dll")


class ExternalStrategySpec(BaseModel):
    name: str
    command: List[str]
    extensions: List[str] = Field(default_factory=list)
    manifest_names: List[str] = Field(default_factory=list)
    aliases: List[str] = Field(default_factory=list)
    format: str = "text"
    timeout: Optional[float] = Field(default=30.0, gt=0)

    @field_validator("name")
    @classmethod
    def _lower_name(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if not cleaned:
            raise ValueError("name must not be empty")
        return cleaned

    @field_validator("command", mode="before")
    @classmethod
    def _split_command(cls, value: object) -> object:
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("extensions")
    @classmethod
    def _dotted(cls, values: List[str]) -> List[str]:
        return [value if value.startswith(".") else f".{value}" for value in (item.strip().lower() for item in values) if value]


class SubprocessStrategy(ExtractionStrategy):
    """Run an external command per extraction: content on stdin, one JSON artifact per stdout line."""

    def __init__(self, spec: ExternalStrategySpec, *, source: Optional[Path] = None) -> None:
        super().__init__()
        if not spec.command:
            raise PluginLoadError(f"strategy '{spec.name}' declares an empty command")
        self.spec = spec
        self.source = source
        self.name = spec.name
        self.extensions = tuple(spec.extensions)
        self.aliases = tuple(spec.aliases)
        self.manifest_names = tuple(spec.manifest_names)
        self.default_format = spec.format
        self.executable: Optional[str] = None

    @property
    def prepared(self) -> bool:
        return self.executable is not None

    def prepare(self) -> None:
        executable = shutil.which(self.spec.command[0])
        if not executable:
            raise InitializationError(f"{self.identify()}: command '{self.spec.command[0]}' not found on PATH")
        self.executable = executable

    def dispose(self) -> None:
        self.executable = None

    def clone(self) -> "SubprocessStrategy":
        return type(self)(self.spec, source=self.source)

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        if self.executable is None:
            raise InitializationError(f"{self.identify()} used before prepare()")
        command = [self.executable, *self.spec.command[1:]]
        LOGGER.debug("Running external strategy %s: %s", self.identify(), " ".join(command))
        process = subprocess.Popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        try:
            stdout_text, stderr_text = process.communicate(content, timeout=self.spec.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            LOGGER.error("External strategy %s timed out after %ss", self.identify(), self.spec.timeout)
            return
        stderr_text = stderr_text.strip()
        if stderr_text:
            log_fn = LOGGER.error if process.returncode != 0 else LOGGER.debug
            log_fn("External strategy %s stderr:\n%s", self.identify(), stderr_text)
        if process.returncode != 0:
            LOGGER.error("External strategy %s failed with exit code %s", self.identify(), process.returncode)
            return

        for line in stdout_text.splitlines():
            payload = line.strip()
            if not payload:
                continue
            try:
                data = orjson.loads(payload)
            except orjson.JSONDecodeError:
                LOGGER.error("Invalid artifact payload from %s: %s", self.identify(), payload)
                continue
            yield self._artifact(data)

    def _artifact(self, data: object) -> Optional[Artifact]:
        if not isinstance(data, dict) or not str(data.get("content") or "").strip():
            LOGGER.warning("Skipping artifact without content from %s", self.identify())
            return None
        return self.emit(
            str(data["content"]),
            str(data.get("kind") or "external"),
            str(data.get("suggested_name") or data.get("suggestedName") or ""),
            format=str(data.get("format") or self.default_format),
            namespace=str(data.get("namespace") or ""),
            references=[str(item) for item in data.get("references") or []],
            tags=[str(item) for item in data.get("tags") or []],
            qualifiers=[str(item) for item in data.get("qualifiers") or []],
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.identify()!r}, command={self.spec.command!r})"


def _load_manifest(path: Path) -> ExternalStrategySpec:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        raise PluginLoadError(f"failed to read plugin manifest {path}: {error}") from error
    if not isinstance(data, dict):
        raise PluginLoadError(f"plugin manifest {path} must contain a mapping")
    try:
        return ExternalStrategySpec(**data)
    except ValidationError as error:
        raise PluginLoadError(f"invalid plugin manifest {path}: {error}") from error


def load_strategy_dir(directory: Path) -> list[SubprocessStrategy]:
    """Build external strategies from the YAML manifests in ``directory``."""
    if not directory.is_dir():
        raise PluginLoadError(f"plugin directory {directory} does not exist")
    try:
        entries = sorted(directory.iterdir())
    except OSError as error:
        raise PluginLoadError(f"cannot list plugin directory {directory}: {error}") from error

    strategies: list[SubprocessStrategy] = []
    for entry in entries:
        suffix = entry.suffix.lower()
        if suffix in SHARED_LIBRARY_SUFFIXES:
            LOGGER.warning("Ignoring shared library plugin %s; only process-based plugins are supported", entry.name)
            continue
        if suffix not in MANIFEST_SUFFIXES or not entry.is_file():
            continue
        spec = _load_manifest(entry)
        LOGGER.info("Loaded external strategy '%s' from %s", spec.name, entry.name)
        strategies.append(SubprocessStrategy(spec, source=entry))
    return strategies


__all__ = ["ExternalStrategySpec", "SubprocessStrategy", "load_strategy_dir"]
