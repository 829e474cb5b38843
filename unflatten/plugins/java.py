"""Structural-class strategy for Java sources and Maven build files."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, BraceDepth, ExtractionStrategy, leading_lines

MODIFIERS = r"(?:public|private|protected|abstract|final|static|sealed|non-sealed|strictfp)"
ANNOTATION = r"@\w+(?:\.\w+)*(?:\([^)]*\))?"
ANNOTATION_LINE = re.compile(rf"[ \t]*(?:{ANNOTATION}[ \t]*)+")

KEYWORD_KIND = {
    "class": "class",
    "interface": "interface",
    "enum": "enum",
    "record": "record",
    "@interface": "annotation",
}


class JavaStrategy(ExtractionStrategy):
    name = "java"
    extensions = (".java",)
    aliases = ("jvm",)
    manifest_names = ("pom.xml", "application.properties")
    default_format = "java"
    CHAR_LITERALS = True
    PATTERNS = {
        "package": (r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE),
        "import": (r"^\s*import\s+(?:static\s+)?([\w.*]+)\s*;", re.MULTILINE),
        "type": (
            rf"^[ \t]*((?:{ANNOTATION}[ \t]+)*)((?:{MODIFIERS}\s+)*)(class|interface|enum|record|@interface)\s+(\w+)",
            re.MULTILINE,
        ),
        "annotation": r"@(\w+)",
        "maven_pom": (r"(?:<\?xml[^>]*\?>\s*)?<project\b[^>]*>.*?</project>", re.DOTALL),
        "property": (r"^([A-Za-z][\w.-]*)[ \t]*[=:][ \t]*(.*)$", re.MULTILINE),
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        package = ""
        match = self.matcher("package").search(content)
        if match:
            package = match.group(1)
        imports = [found.group(1) for found in self.matcher("import").finditer(content)]
        header = self._header(package, imports)
        depth = self.brace_depth(content)

        for found in self.scan("type", content, depth):
            annotations, modifiers, keyword, type_name = found.groups()
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            yield self.emit(
                header + lead + self._declaration(content, found.start(), keyword, type_name),
                KEYWORD_KIND[keyword],
                f"{type_name}.java",
                namespace=package,
                references=imports,
                tags=self.matcher("annotation").findall(lead + annotations),
                qualifiers=modifiers.split(),
            )

        if "<project" in content:
            pom = self.matcher("maven_pom").search(content)
            if pom:
                yield self.emit(pom.group(0), "build-manifest", "pom.xml", format="xml")

        properties = self._properties(content, depth)
        if properties:
            yield self.emit(properties, "module-config", "application.properties", format="properties")

    @staticmethod
    def _header(package: str, imports: list[str]) -> str:
        lines: list[str] = []
        if package:
            lines.extend([f"package {package};", ""])
        lines.extend(f"import {name};" for name in imports)
        if imports:
            lines.append("")
        return "\n".join(lines) + ("\n" if lines else "")

    def _declaration(self, content: str, start: int, keyword: str, type_name: str) -> str:
        head = (
            rf"^[ \t]*(?:{ANNOTATION}[ \t]+)*(?:{MODIFIERS}\s+)*{re.escape(keyword)}\s+{re.escape(type_name)}\b[^{{;]*"
        )
        skeleton = f"public {keyword} {type_name} {{\n}}"
        return self.recover(content, head, skeleton, start=start)

    def _properties(self, content: str, depth: BraceDepth) -> str:
        lines: list[str] = []
        for found in self.scan("property", content, depth):
            key, value = found.group(1), found.group(2).strip()
            if key in {"package", "import", "default", "case"} or value.endswith(";"):
                continue
            lines.append(f"{key}={value}")
        return "\n".join(lines) + "\n" if lines else ""


__all__ = ["JavaStrategy"]
