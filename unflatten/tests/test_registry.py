"""Strategy registration and resolution."""

from __future__ import annotations

import pytest

from unflatten.errors import DuplicateRegistrationError, InitializationError, NoStrategyError, PluginInitError
from unflatten.extract.base import ExtractionStrategy
from unflatten.plugins.generic import GenericStrategy
from unflatten.registry import StrategyRegistry, create_default_registry, list_strategies


class _Fixed(ExtractionStrategy):
    def collect(self, content: str):
        yield self.emit(content, "fixed", format="text")


class XStrategy(_Fixed):
    name = "x"
    extensions = (".x", ".shared")
    aliases = ("ex",)


class YStrategy(_Fixed):
    name = "y"
    extensions = (".y", ".shared")


class MakefileStrategy(_Fixed):
    name = "make"

    def handles(self, filename: str) -> bool:
        return filename.endswith("Makefile")


class BrokenStrategy(_Fixed):
    name = "broken"
    extensions = (".broken",)

    def prepare(self) -> None:
        raise InitializationError("cannot compile")


def _registry(*strategies: ExtractionStrategy) -> StrategyRegistry:
    registry = StrategyRegistry()
    registry.register_all(strategies)
    return registry


def test_language_override_beats_extension() -> None:
    registry = _registry(XStrategy(), YStrategy(), GenericStrategy())
    assert registry.resolve("a.x").identify() == "x"
    assert registry.resolve("a.x", language="y").identify() == "y"
    assert registry.resolve("a.y", language="EX").identify() == "x"


def test_unknown_language_falls_through_to_detection(caplog: pytest.LogCaptureFixture) -> None:
    registry = _registry(XStrategy(), GenericStrategy())
    with caplog.at_level("WARNING", logger="unflatten.registry"):
        assert registry.resolve("a.x", language="cobol").identify() == "x"
    assert "Unknown language 'cobol'" in caplog.text


def test_later_registration_wins_a_shared_extension() -> None:
    registry = _registry(XStrategy(), YStrategy())
    assert registry.resolve("data.shared").identify() == "y"


def test_handles_then_fallback() -> None:
    registry = _registry(XStrategy(), MakefileStrategy(), GenericStrategy())
    assert registry.resolve("build/Makefile").identify() == "make"
    assert registry.resolve("notes.unknown").identify() == "generic"


def test_duplicate_name_is_rejected() -> None:
    registry = _registry(XStrategy())
    with pytest.raises(DuplicateRegistrationError):
        registry.register(XStrategy())
    assert len(registry) == 1


def test_failed_prepare_leaves_registry_untouched() -> None:
    registry = _registry(XStrategy(), GenericStrategy())
    with pytest.raises(PluginInitError) as info:
        registry.register(BrokenStrategy())
    assert info.value.name == "broken"
    assert "broken" not in registry
    assert registry.resolve("a.broken").identify() == "generic"
    assert registry.resolve("a.broken", language="broken").identify() == "generic"


def test_empty_registry_has_no_strategy() -> None:
    with pytest.raises(NoStrategyError):
        StrategyRegistry().resolve("a.x")


def test_missing_fallback_raises_no_strategy() -> None:
    registry = _registry(XStrategy())
    with pytest.raises(NoStrategyError) as info:
        registry.resolve("a.unknown")
    assert info.value.filename == "a.unknown"


def test_default_registry_resolution() -> None:
    registry = create_default_registry()
    expected = {
        "Main.java": "java",
        "pom.xml": "java",
        "tool.py": "python",
        "requirements.txt": "python",
        "server.go": "go",
        "go.mod": "go",
        "App.tsx": "javascript",
        "package.json": "javascript",
        "lib.rs": "rust",
        "Cargo.toml": "rust",
        "main.dart": "dart",
        "pubspec.yaml": "dart",
        "notes.txt": "generic",
        "settings.yaml": "generic",
        "dump.unknown": "generic",
    }
    for filename, name in expected.items():
        assert registry.resolve(filename).identify() == name, filename
    assert registry.resolve("x.txt", language="golang").identify() == "go"


def test_list_strategies_sorted_by_name() -> None:
    infos = list_strategies(create_default_registry([XStrategy()]))
    names = [info.name for info in infos]
    assert names == sorted(names)
    assert {"dart", "generic", "go", "java", "javascript", "python", "rust", "x"} == set(names)
    x_info = next(info for info in infos if info.name == "x")
    assert x_info.extensions == (".shared", ".x")


def test_close_disposes_every_strategy() -> None:
    registry = _registry(XStrategy(), YStrategy(), GenericStrategy())
    assert all(strategy.prepared for strategy in registry)

    registry.close()
    assert not any(strategy.prepared for strategy in registry)
    assert registry.resolve("a.x").identify() == "x"


def test_close_keeps_going_after_a_failing_dispose(caplog: pytest.LogCaptureFixture) -> None:
    class StuckStrategy(_Fixed):
        name = "stuck"
        extensions = (".stuck",)

        def dispose(self) -> None:
            raise RuntimeError("still busy")

    registry = _registry(StuckStrategy(), XStrategy())
    with caplog.at_level("WARNING", logger="unflatten.registry"):
        registry.close()
    assert not registry.get("x").prepared
    assert "failed to dispose" in caplog.text
