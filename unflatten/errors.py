"""Exception hierarchy for the extraction engine."""

from __future__ import annotations

from pathlib import Path


class UnflattenError(Exception):
    """Base class for all engine errors."""


class InitializationError(UnflattenError):
    """A strategy could not allocate its matchers."""


class PluginInitError(UnflattenError):
    """A strategy failed ``prepare()`` while being registered."""

    def __init__(self, name: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"strategy '{name}' failed to initialize{detail}")
        self.name = name


class DuplicateRegistrationError(UnflattenError):
    def __init__(self, name: str) -> None:
        super().__init__(f"strategy '{name}' is already registered")
        self.name = name


class NoStrategyError(UnflattenError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"no extraction strategy available for {filename}")
        self.filename = filename


class FileError(UnflattenError):
    """An error attributed to a single path."""

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = Path(path)


class ReadError(FileError):
    pass


class WriteError(FileError):
    pass


class ExtractionTimeoutError(FileError):
    def __init__(self, path: Path | str, timeout: float) -> None:
        super().__init__(path, f"extraction exceeded {timeout:g}s")
        self.timeout = timeout


class PluginLoadError(UnflattenError):
    """The plugin directory or one of its manifests is unusable."""


class ConfigError(UnflattenError):
    pass


__all__ = [
    "ConfigError",
    "DuplicateRegistrationError",
    "ExtractionTimeoutError",
    "FileError",
    "InitializationError",
    "NoStrategyError",
    "PluginInitError",
    "PluginLoadError",
    "ReadError",
    "UnflattenError",
    "WriteError",
]
