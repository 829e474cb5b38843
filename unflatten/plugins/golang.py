"""Curly-brace strategy for Go sources and module manifests."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, ExtractionStrategy
from ..paths import snake_case

TYPE_PARAMS = r"(?:\[[^\]\n]*\])?"
PARAMETERS = r"\((?:[^()]|\([^()]*\))*\)"

TEST_PREFIXES = (
    ("Test", "test", "testing.T"),
    ("Benchmark", "benchmark", "testing.B"),
    ("Fuzz", "fuzz", "testing.F"),
)


class GoStrategy(ExtractionStrategy):
    name = "go"
    extensions = (".go", ".mod")
    aliases = ("golang",)
    manifest_names = ("go.mod",)
    default_format = "go"
    QUOTES = "\"`"
    CHAR_LITERALS = True
    PATTERNS = {
        "package": (r"^package\s+(\w+)", re.MULTILINE),
        "import_single": (r'^import\s+(?:([\w.]+)\s+)?"([^"]+)"', re.MULTILINE),
        "import_group": (r"^import\s*\(([^)]*)\)", re.MULTILINE),
        "import_line": (r'^\s*(?:([\w.]+)\s+)?"([^"]+)"', re.MULTILINE),
        "struct": (rf"^type\s+(\w+){TYPE_PARAMS}\s+struct\s*\{{", re.MULTILINE),
        "interface": (rf"^type\s+(\w+){TYPE_PARAMS}\s+interface\s*\{{", re.MULTILINE),
        "function": (rf"^func\s+(\w+){TYPE_PARAMS}\s*\(", re.MULTILINE),
        "method": (r"^func\s*\(\s*(?:\w+\s+)?(\*?)\s*(\w+)(?:\[[^\]]*\])?\s*\)\s*(\w+)\s*\(", re.MULTILINE),
        "const": (r"^const\s+(?:\([^)]*\)|[^\n]+)", re.MULTILINE),
        "var": (r"^var\s+(?:\([^)]*\)|[^\n]+)", re.MULTILINE),
        "struct_tag": r'(\w+):"[^"]*"',
        "error_return": r"\berror\)?\s*\{",
        "go_mod": (r"^module\s+(\S+)\s*$", re.MULTILINE),
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        package = ""
        match = self.matcher("package").search(content)
        if match:
            package = match.group(1)
        imports = self._imports(content)
        depth = self.brace_depth(content)
        common = {"namespace": package, "references": imports}

        for found in self.scan("struct", content, depth):
            struct_name = found.group(1)
            body = self.recover(
                content,
                rf"^type\s+{re.escape(struct_name)}{TYPE_PARAMS}\s+struct\s*",
                f"type {struct_name} struct {{\n}}",
                start=found.start(),
            )
            yield self.emit(
                body,
                "struct",
                f"{snake_case(struct_name)}.go",
                tags=self.matcher("struct_tag").findall(body),
                **common,
            )

        for found in self.scan("interface", content, depth):
            interface_name = found.group(1)
            body = self.recover(
                content,
                rf"^type\s+{re.escape(interface_name)}{TYPE_PARAMS}\s+interface\s*",
                f"type {interface_name} interface {{\n}}",
                start=found.start(),
            )
            yield self.emit(body, "interface", f"{snake_case(interface_name)}.go", **common)

        for found in self.scan("function", content, depth):
            function_name = found.group(1)
            body = self.recover(
                content,
                rf"^func\s+{re.escape(function_name)}{TYPE_PARAMS}\s*{PARAMETERS}[^{{\n]*",
                f"func {function_name}() {{\n}}",
                start=found.start(),
            )
            qualifiers = ["error"] if self.matcher("error_return").search(body.split("\n", 1)[0]) else []
            yield self.emit(
                body,
                self._function_kind(function_name, body),
                f"{snake_case(function_name)}.go",
                qualifiers=qualifiers,
                **common,
            )

        for found in self.scan("method", content, depth):
            pointer, receiver, method_name = found.groups()
            body = self.recover(
                content,
                rf"^func\s*\([^)]*\b{re.escape(receiver)}\b[^)]*\)\s*{re.escape(method_name)}\s*{PARAMETERS}[^{{\n]*",
                f"func (r {'*' if pointer else ''}{receiver}) {method_name}() {{\n}}",
                start=found.start(),
            )
            yield self.emit(
                body,
                "method",
                f"{snake_case(receiver)}_{snake_case(method_name)}.go",
                tags=[receiver],
                qualifiers=["pointer_receiver" if pointer else "value_receiver"],
                **common,
            )

        for key, kind, filename in (("const", "constant", "constants.go"), ("var", "variable", "variables.go")):
            declarations = [found.group(0).rstrip() for found in self.scan(key, content, depth)]
            if declarations:
                yield self.emit("\n\n".join(declarations) + "\n", kind, filename, **common)

        yield self._go_mod(content)

    def _imports(self, content: str) -> list[str]:
        names: list[str] = []
        for found in self.matcher("import_single").finditer(content):
            names.append(found.group(2))
        for block in self.matcher("import_group").finditer(content):
            for line in self.matcher("import_line").finditer(block.group(1)):
                names.append(line.group(2))
        return names

    @staticmethod
    def _function_kind(function_name: str, body: str) -> str:
        signature = body.split("{", 1)[0]
        for prefix, kind, parameter in TEST_PREFIXES:
            if function_name.startswith(prefix) and parameter in signature:
                return kind
        if function_name.startswith("Example") and re.search(r"\(\s*\)", signature):
            return "example"
        return "function"

    def _go_mod(self, content: str) -> Optional[Artifact]:
        match = self.matcher("go_mod").search(content)
        if not match:
            return None
        module_name = match.group(1)
        directives = re.compile(
            r"^module\s+\S+[ \t]*(?:\n|\Z)(?:[ \t]*(?://[^\n]*)?\n"
            r"|(?:go|toolchain|require|replace|exclude|retract)\b[ \t]*(?:\([^)]*\)|[^\n]*)[ \t]*(?:\n|\Z))*",
            re.MULTILINE,
        )
        found = directives.search(content, match.start())
        text = found.group(0) if found else ""
        if not text.strip():
            text = f"module {module_name}\n\ngo 1.21\n"
        return self.emit(text.rstrip() + "\n", "module-manifest", "go.mod", format="mod", namespace=module_name)


__all__ = ["GoStrategy"]
