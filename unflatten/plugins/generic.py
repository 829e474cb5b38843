"""Universal fallback strategy for unstructured and mixed text."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, ExtractionStrategy

# Objects tolerate two nested levels; deeper nesting truncates like the language bodies do.
OBJECT_BODY = r"\{(?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*\}"
KEY_VALUE_LINE = r"(?:[ \t]*[\w.-]+[ \t]*[:=](?:[ \t]+[^\n]*)?|[ \t]+-[ \t]+[^\n]*)[ \t]*(?:\n|\Z)"

FENCE_FORMATS = {
    "": "text",
    "yml": "yaml",
    "sh": "shell",
    "console": "shell",
    "golang": "go",
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "rs": "rust",
}


class GenericStrategy(ExtractionStrategy):
    name = "generic"
    extensions = (".txt", ".md", ".rst", ".yml", ".yaml", ".xml", ".json", ".ini", ".cfg", ".conf")
    aliases = ("text", "plain")
    default_format = "text"
    PATTERNS = {
        "fenced": (
            r"^[ \t]*(`{3,}|~{3,})[ \t]*([\w+#.-]*)[^\n]*\n(.*?)^[ \t]*\1[ \t]*$",
            re.MULTILINE | re.DOTALL,
        ),
        "tagged": (
            r"^[ \t]*(?:<\?xml[^>]*\?>\s*)?<([A-Za-z][\w:.-]*)\b[^>]*(?<!/)>.*?</\1\s*>",
            re.MULTILINE | re.DOTALL,
        ),
        "object": (rf"^[ \t]*{OBJECT_BODY}", re.MULTILINE),
        "section": (r"^\[([^\]\n]+)\][ \t]*(?:\n|\Z)(?:(?!\[)[^\n]*\S[^\n]*(?:\n|\Z))*", re.MULTILINE),
        "key_value": (rf"^(?:{KEY_VALUE_LINE}){{2,}}", re.MULTILINE),
        "yaml_document": (r"^---[ \t]*$", re.MULTILINE),
        "ini_assignment": (r"^[ \t]*[\w.-]+[ \t]*=", re.MULTILINE),
    }

    def handles(self, filename: str) -> bool:
        return True

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        found: list[tuple[int, Optional[Artifact]]] = []
        remaining = content

        for match in self.matcher("fenced").finditer(content):
            info = match.group(2).lower()
            found.append((match.start(), self.emit(match.group(3), "fenced-block", format=FENCE_FORMATS.get(info, info))))
        remaining = self._mask(remaining, self.matcher("fenced"))

        for match in self.matcher("tagged").finditer(remaining):
            tag = match.group(1).lower()
            text = content[match.start():match.end()].strip()
            found.append((match.start(), self.emit(text + "\n", "tagged", format="html" if tag == "html" else "xml", tags=[tag])))
        remaining = self._mask(remaining, self.matcher("tagged"))

        for match in self.matcher("object").finditer(remaining):
            text = content[match.start():match.end()].strip()
            found.append((match.start(), self.emit(text + "\n", "object", format="json")))
        remaining = self._mask(remaining, self.matcher("object"))

        for match in self.matcher("section").finditer(remaining):
            text = content[match.start():match.end()].rstrip()
            section = match.group(1).strip()
            found.append((match.start(), self.emit(text + "\n", "section", format="ini", namespace=section)))
        remaining = self._mask(remaining, self.matcher("section"))

        for match in self.matcher("key_value").finditer(remaining):
            text = content[match.start():match.end()].rstrip()
            first_line = text.lstrip().split("\n", 1)[0]
            key_format = "yaml" if re.match(r"[\w.-]+[ \t]*:", first_line) else "properties"
            found.append((match.start(), self.emit(text + "\n", "key-value", format=key_format)))

        emitted = [artifact for _, artifact in sorted(found, key=lambda item: item[0]) if artifact is not None]
        if emitted:
            yield from emitted
        elif content.strip():
            yield self.emit(content, "text", format=self.sniff_format(content))

    def sniff_format(self, content: str) -> str:
        stripped = content.strip()
        if stripped.startswith("{") and stripped.endswith("}"):
            return "json"
        if "<?xml" in content:
            return "xml"
        if self.matcher("yaml_document").search(content) and (":" in content or "- " in content):
            return "yaml"
        if "[" in content and "]" in content and self.matcher("ini_assignment").search(content):
            return "ini"
        return "text"

    @staticmethod
    def _mask(content: str, pattern: re.Pattern[str]) -> str:
        """Blank out every match while keeping offsets and line breaks stable."""
        return pattern.sub(lambda match: re.sub(r"[^\n]", " ", match.group(0)), content)


__all__ = ["GenericStrategy"]
