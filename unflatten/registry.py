"""Strategy registry and resolution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, Iterator, Optional

from .errors import DuplicateRegistrationError, NoStrategyError, PluginInitError
from .extract.base import ExtractionStrategy
from .logging import get_logger
from .plugins.dart import DartStrategy
from .plugins.generic import GenericStrategy
from .plugins.golang import GoStrategy
from .plugins.java import JavaStrategy
from .plugins.javascript import JavaScriptStrategy
from .plugins.python import PythonStrategy
from .plugins.rust import RustStrategy

LOGGER = get_logger(__name__)

FALLBACK_NAME = "generic"

BUILTIN_STRATEGIES: tuple[type[ExtractionStrategy], ...] = (
    JavaStrategy,
    PythonStrategy,
    GoStrategy,
    JavaScriptStrategy,
    RustStrategy,
    DartStrategy,
    GenericStrategy,
)


@dataclass(frozen=True, slots=True)
class StrategyInfo:
    name: str
    extensions: tuple[str, ...]


class StrategyRegistry:
    """Lookup tables from strategy name, file extension and language identifier.

    Registration happens before any batch starts; afterwards the tables are only read.
    """

    def __init__(self, fallback: str = FALLBACK_NAME) -> None:
        self.fallback = fallback
        self._by_name: dict[str, ExtractionStrategy] = {}
        self._by_extension: dict[str, ExtractionStrategy] = {}
        self._by_language: dict[str, ExtractionStrategy] = {}

    def register(self, strategy: ExtractionStrategy) -> None:
        name = strategy.identify()
        if name in self._by_name:
            raise DuplicateRegistrationError(name)
        try:
            strategy.prepare()
        except Exception as error:
            raise PluginInitError(name, error) from error

        self._by_name[name] = strategy
        for extension in sorted(strategy.file_extensions()):
            previous = self._by_extension.get(extension)
            if previous is not None:
                LOGGER.debug("Extension %s moves from '%s' to '%s'", extension, previous.identify(), name)
            self._by_extension[extension] = strategy
        for manifest in strategy.manifest_names:
            self._by_extension.setdefault(manifest.lower(), strategy)
        for language in sorted(strategy.language_aliases()):
            self._by_language.setdefault(language, strategy)
        self._by_language[name] = strategy
        LOGGER.debug("Registered strategy '%s'", name)

    def register_all(self, strategies: Iterable[ExtractionStrategy]) -> None:
        for strategy in strategies:
            self.register(strategy)

    def resolve(self, filename: str | Path, language: Optional[str] = None) -> ExtractionStrategy:
        """Pick the strategy for ``filename``.

        Precedence: explicit language, well-known file name or extension, ``handles()`` over the specific
        strategies, then the fallback.
        """
        name = str(filename)
        if not self._by_name:
            raise NoStrategyError(name)

        if language:
            strategy = self._by_language.get(language.strip().lower())
            if strategy is not None:
                return strategy
            LOGGER.warning("Unknown language '%s' for %s; detecting from the file name", language, name)

        base = PurePath(name).name.lower()
        if base in self._by_extension:
            return self._by_extension[base]
        extension = PurePath(base).suffix
        if extension and extension in self._by_extension:
            return self._by_extension[extension]

        for strategy in self._by_name.values():
            if strategy.identify() == self.fallback:
                continue
            if strategy.handles(name):
                return strategy

        fallback = self._by_name.get(self.fallback)
        if fallback is None:
            raise NoStrategyError(name)
        return fallback

    def get(self, name: str) -> Optional[ExtractionStrategy]:
        return self._by_name.get(name.lower())

    def names(self) -> list[str]:
        return sorted(self._by_name)

    def strategies(self) -> list[ExtractionStrategy]:
        return list(self._by_name.values())

    def close(self) -> None:
        """Dispose every registered strategy; a failing dispose is logged and the rest still run."""
        for name, strategy in self._by_name.items():
            try:
                strategy.dispose()
            except Exception:
                LOGGER.warning("Strategy '%s' failed to dispose", name, exc_info=True)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[ExtractionStrategy]:
        return iter(list(self._by_name.values()))


def list_strategies(registry: StrategyRegistry) -> list[StrategyInfo]:
    """Registered strategies ordered by name, for introspection output."""
    return [
        StrategyInfo(name=strategy.identify(), extensions=tuple(sorted(strategy.file_extensions())))
        for strategy in sorted(registry.strategies(), key=lambda item: item.identify())
    ]


def create_default_registry(extra: Iterable[ExtractionStrategy] = ()) -> StrategyRegistry:
    """Registry holding every built-in strategy plus ``extra`` (for example external ones)."""
    registry = StrategyRegistry()
    registry.register_all(strategy_type() for strategy_type in BUILTIN_STRATEGIES)
    registry.register_all(extra)
    return registry


__all__ = [
    "BUILTIN_STRATEGIES",
    "FALLBACK_NAME",
    "StrategyInfo",
    "StrategyRegistry",
    "create_default_registry",
    "list_strategies",
]
