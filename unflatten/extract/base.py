"""Extraction interfaces for language strategies."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from bisect import bisect_right
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import PurePath
from typing import ClassVar, Iterable, Iterator, Mapping, Optional, Sequence, Union

from ..errors import InitializationError
from ..logging import get_logger
from ..paths import sanitize_name

LOGGER = get_logger(__name__)

PatternSpec = Union[str, tuple[str, int]]

# A brace body that tolerates exactly one nested level. Deeper nesting makes the
# balanced re-scan fail, and ``recover`` then falls back to SHALLOW_BODY, which
# truncates at the first closing brace.
BALANCED_BODY = r"\{(?:[^{}]|\{[^{}]*\})*\}"
SHALLOW_BODY = r"\{[^}]*\}"
# Rest of the header line plus every following line indented deeper than column 0.
INDENTED_BODY = r"[^\n]*(?:\n|\Z)(?:(?:[ \t]*\n)*[ \t]+\S[^\n]*(?:\n|\Z))*"

_TOML_LINE = re.compile(
    r"""^(?:\s*$|\s*\#|\s*\[\[?[^\]\n]+\]\]?\s*(?:\#.*)?$|\s*[A-Za-z0-9_."'-]+\s*=|\s+\S|[\]}"'])"""
)


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Drop empty and repeated entries, keeping first-seen order."""
    return tuple(dict.fromkeys(item for item in items if item))


def collect_toml(content: str, start: int) -> str:
    """Return the TOML document that begins at ``start``."""
    kept: list[str] = []
    for line in content[start:].splitlines():
        if not _TOML_LINE.match(line):
            break
        kept.append(line)
    document = "\n".join(kept).strip()
    return f"{document}\n" if document else ""


def leading_lines(content: str, start: int, line: re.Pattern[str]) -> str:
    """The run of consecutive lines directly above ``start`` (a line start) that each fully match ``line``."""
    lead = start
    while lead > 0:
        previous = content.rfind("\n", 0, lead - 1) + 1
        if not line.fullmatch(content, previous, lead - 1):
            break
        lead = previous
    return content[lead:start]


COMMENTS = r"//[^\n]*|/\*.*?\*/"
STRING_LITERALS = {
    '"': r'"(?:\\.|[^"\\\n])*"',
    "'": r"'(?:\\.|[^'\\\n])*'",
    "`": r"`(?:\\.|[^`\\])*`",
}
# A single character or escape between single quotes; lifetimes like 'a never close.
CHAR_LITERAL = r"'(?:\\[^\n][^'\n]{0,9}|[^'\\\n])'"


class BraceDepth:
    """Brace nesting depth at arbitrary offsets of one text.

    Braces inside comments and inside the given string quotes (and char literals
    when enabled) are not counted.
    """

    def __init__(self, content: str, *, quotes: str = '"', char_literals: bool = False) -> None:
        self._positions: list[int] = []
        self._depths: list[int] = []
        skipped = [COMMENTS, *(STRING_LITERALS[quote] for quote in quotes)]
        if char_literals:
            skipped.append(CHAR_LITERAL)
        tokens = re.compile("|".join(skipped) + r"|[{}]", re.DOTALL)
        depth = 0
        for match in tokens.finditer(content):
            token = match.group()
            if token not in ("{", "}"):
                continue
            depth += 1 if token == "{" else -1
            self._positions.append(match.start())
            self._depths.append(depth)

    def at(self, offset: int) -> int:
        index = bisect_right(self._positions, offset - 1)
        return self._depths[index - 1] if index else 0


@dataclass(frozen=True, slots=True)
class Artifact:
    """One extracted, classified unit of content destined for its own output file."""

    content: str
    kind: str
    suggested_name: str = ""
    format: str = "text"
    namespace: str = ""
    references: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    qualifiers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.content.strip():
            raise ValueError(f"refusing to build an empty '{self.kind}' artifact")
        object.__setattr__(self, "suggested_name", sanitize_name(self.suggested_name))
        object.__setattr__(self, "references", unique(self.references))
        object.__setattr__(self, "tags", unique(self.tags))
        object.__setattr__(self, "qualifiers", unique(self.qualifiers))

    def renamed(self, suggested_name: str) -> "Artifact":
        return replace(self, suggested_name=suggested_name)


class ExtractionStrategy(ABC):
    """Interface for language and format specific extractors.

    Subclasses declare their matchers in ``PATTERNS`` and implement ``collect``.
    Matchers only exist between ``prepare()`` and ``dispose()``; one instance must
    not be used by two threads at once, which ``session()`` enforces with a lock.
    """

    name: ClassVar[str] = ""
    extensions: ClassVar[tuple[str, ...]] = ()
    aliases: ClassVar[tuple[str, ...]] = ()
    manifest_names: ClassVar[tuple[str, ...]] = ()
    default_format: ClassVar[str] = "text"
    PATTERNS: ClassVar[Mapping[str, PatternSpec]] = {}
    # String delimiters whose contents never count towards brace depth.
    QUOTES: ClassVar[str] = '"'
    CHAR_LITERALS: ClassVar[bool] = False

    def __init__(self) -> None:
        self._matchers: Optional[dict[str, re.Pattern[str]]] = None
        self._guard = threading.RLock()

    # --- capability set ----------------------------------------------------------

    def identify(self) -> str:
        return self.name.lower()

    def file_extensions(self) -> frozenset[str]:
        return frozenset(extension.lower() for extension in self.extensions)

    def language_aliases(self) -> frozenset[str]:
        return frozenset(alias.lower() for alias in (self.name, *self.aliases))

    @property
    def prepared(self) -> bool:
        return self._matchers is not None

    def prepare(self) -> None:
        """Compile every matcher declared in ``PATTERNS``."""
        matchers: dict[str, re.Pattern[str]] = {}
        for key, spec in self.PATTERNS.items():
            pattern, flags = (spec, 0) if isinstance(spec, str) else spec
            try:
                matchers[key] = re.compile(pattern, flags)
            except re.error as error:
                raise InitializationError(f"{self.identify()}: pattern '{key}' does not compile: {error}") from error
        self._matchers = matchers

    def dispose(self) -> None:
        self._matchers = None

    def handles(self, filename: str) -> bool:
        base = PurePath(filename).name.lower()
        if base in {manifest.lower() for manifest in self.manifest_names}:
            return True
        return PurePath(base).suffix in self.file_extensions()

    def extract(self, content: str) -> list[Artifact]:
        """Return the artifacts found in ``content``; never raises for any input."""
        with self._guard:
            if not self.prepared:
                with self.session():
                    return self._collect_safely(content)
            return self._collect_safely(content)

    @abstractmethod
    def collect(self, content: str) -> Iterable[Optional[Artifact]]:
        """Yield artifacts in emission order; ``None`` entries are skipped."""

    # --- lifecycle ---------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator["ExtractionStrategy"]:
        """Hold the instance exclusively with matchers prepared, disposing on every exit."""
        with self._guard:
            self.prepare()
            try:
                yield self
            finally:
                self.dispose()

    def clone(self) -> "ExtractionStrategy":
        """Return a fresh, unprepared instance with the same configuration."""
        return type(self)()

    # --- helpers for subclasses ----------------------------------------------------

    def matcher(self, key: str) -> re.Pattern[str]:
        if self._matchers is None:
            raise InitializationError(f"{self.identify()} used before prepare()")
        return self._matchers[key]

    def scan(self, key: str, content: str, depth: Optional[BraceDepth] = None) -> Iterator[re.Match[str]]:
        """Iterate matches of one matcher, keeping only those at brace depth 0 when ``depth`` is given."""
        for match in self.matcher(key).finditer(content):
            if depth is not None and depth.at(match.start()) > 0:
                continue
            yield match

    def brace_depth(self, content: str) -> BraceDepth:
        return BraceDepth(content, quotes=self.QUOTES, char_literals=self.CHAR_LITERALS)

    @staticmethod
    def recover(
        content: str,
        head: str,
        skeleton: str,
        *,
        bodies: Sequence[str] = (BALANCED_BODY, SHALLOW_BODY),
        flags: int = re.MULTILINE,
        start: int = 0,
    ) -> str:
        """Re-scan ``content`` from ``start`` for the full declaration introduced by ``head``.

        ``head`` must be anchored on the declared name. When no body pattern finds
        the declaration again, ``skeleton`` is returned so the name still yields an artifact.
        """
        for body in bodies:
            match = re.compile(head + body, flags).search(content, start)
            if match:
                return match.group(0)
        return skeleton

    def emit(
        self,
        content: str,
        kind: str,
        name: str = "",
        *,
        format: Optional[str] = None,
        namespace: str = "",
        references: Iterable[str] = (),
        tags: Iterable[str] = (),
        qualifiers: Iterable[str] = (),
    ) -> Optional[Artifact]:
        if not content.strip():
            return None
        return Artifact(
            content=content,
            kind=kind,
            suggested_name=name,
            format=format or self.default_format,
            namespace=namespace,
            references=tuple(references),
            tags=tuple(tags),
            qualifiers=tuple(qualifiers),
        )

    def _collect_safely(self, content: str) -> list[Artifact]:
        try:
            return [artifact for artifact in self.collect(content) if artifact is not None]
        except Exception:
            LOGGER.warning("Strategy '%s' failed while scanning; emitting no artifacts", self.identify(), exc_info=True)
            return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.identify()!r})"


__all__ = [
    "Artifact",
    "BALANCED_BODY",
    "BraceDepth",
    "ExtractionStrategy",
    "INDENTED_BODY",
    "SHALLOW_BODY",
    "collect_toml",
    "leading_lines",
    "unique",
]
