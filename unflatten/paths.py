"""Path helper utilities."""

from __future__ import annotations

import re
from pathlib import Path

RESERVED_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')

EXTENSIONS: dict[str, str] = {
    "go": ".go",
    "golang": ".go",
    "java": ".java",
    "python": ".py",
    "py": ".py",
    "javascript": ".js",
    "js": ".js",
    "jsx": ".jsx",
    "typescript": ".ts",
    "ts": ".ts",
    "tsx": ".tsx",
    "rust": ".rs",
    "rs": ".rs",
    "dart": ".dart",
    "json": ".json",
    "xml": ".xml",
    "html": ".html",
    "yaml": ".yaml",
    "yml": ".yaml",
    "toml": ".toml",
    "ini": ".ini",
    "properties": ".properties",
    "markdown": ".md",
    "md": ".md",
    "protobuf": ".proto",
    "proto": ".proto",
    "mod": ".mod",
    "sql": ".sql",
    "shell": ".sh",
    "bash": ".sh",
    "sh": ".sh",
    "css": ".css",
    "c": ".c",
    "cpp": ".cpp",
    "csharp": ".cs",
    "kotlin": ".kt",
    "ruby": ".rb",
    "text": ".txt",
    "txt": ".txt",
}


def _normalize_relative(path: str) -> str:
    """Return a forward-slashed relative path without leading separators."""
    return path.replace("\\", "/").lstrip("/")


def default_extension(format_name: str) -> str:
    """Return the file extension used for a content format."""
    return EXTENSIONS.get(format_name.strip().lower(), ".txt")


def sanitize_name(name: str) -> str:
    """Strip traversal segments and reserved characters from a relative file name.

    Nested names (``pkg/Foo.java``) are kept nested; ``..`` and ``.`` segments are
    dropped so the result always stays below the directory it is joined to.
    """
    normalized = _normalize_relative(name.strip())
    parts: list[str] = []
    for segment in normalized.split("/"):
        cleaned = RESERVED_CHARS.sub("_", segment).strip()
        if not cleaned or cleaned in {".", ".."}:
            continue
        parts.append(cleaned)
    return "/".join(parts)


def synthesized_name(source: Path, kind: str, ordinal: int, format_name: str) -> str:
    """Name for an artifact that did not suggest one."""
    kind_token = re.sub(r"[^\w.-]+", "_", kind).strip("_") or "artifact"
    return f"{source.stem}_{kind_token}_{ordinal}{default_extension(format_name)}"


def snake_case(name: str) -> str:
    """Convert CamelCase identifiers to snake_case."""
    spaced = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return spaced.lower()


__all__ = ["EXTENSIONS", "default_extension", "sanitize_name", "snake_case", "synthesized_name"]
