"""Strategy for JavaScript and TypeScript modules, components and tool configs."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, ExtractionStrategy

EXPORT = r"(export\s+)?(default\s+)?"
PARAMETERS = r"\((?:[^()]|\([^()]*\))*\)"
TYPE_ANNOTATION = r"(?::\s*[^=;{]+?)?"

CONFIG_TOOLS = ("webpack", "vite", "next", "babel", "jest", "rollup", "eslint")


class JavaScriptStrategy(ExtractionStrategy):
    name = "javascript"
    extensions = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")
    aliases = ("js", "jsx", "typescript", "ts", "tsx", "node")
    manifest_names = ("package.json", "tsconfig.json")
    default_format = "javascript"
    QUOTES = "\"'`"
    PATTERNS = {
        "import": (
            r"""^\s*import\s+(?:[^'";]+?\s+from\s+)?['"]([^'"]+)['"]|\brequire\(\s*['"]([^'"]+)['"]\s*\)""",
            re.MULTILINE,
        ),
        "class": (rf"^{EXPORT}(abstract\s+)?class\s+(\w+)", re.MULTILINE),
        "function": (rf"^{EXPORT}(async\s+)?function\s*\*?\s*(\w+)\s*(?:<[^>]*>)?\s*\(", re.MULTILINE),
        "arrow": (
            rf"^(export\s+)?(?:const|let|var)\s+(\w+){TYPE_ANNOTATION}\s*=\s*(async\s+)?"
            rf"(?:{PARAMETERS}|\w+){TYPE_ANNOTATION}\s*=>",
            re.MULTILINE,
        ),
        "interface": (r"^(export\s+)?(?:declare\s+)?interface\s+(\w+)", re.MULTILINE),
        "type_alias": (r"^(export\s+)?type\s+(\w+)\s*(?:<[^>]*>)?\s*=", re.MULTILINE),
        "enum": (r"^(export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(\w+)", re.MULTILINE),
        "describe": (r"""^describe\(\s*(['"`])(.+?)\1""", re.MULTILINE),
        "jsx": r"return\s*\(?\s*<[A-Za-z>]",
        "typescript": (
            r"^(?:export\s+)?(?:interface|type\s+\w+\s*=|enum)\b|\w\s*:\s*(?:string|number|boolean|void|any|unknown)\b",
            re.MULTILINE,
        ),
        "module_config": (r"^(?:module\.exports\s*=\s*|export\s+default\s+(?:defineConfig\()?)\{", re.MULTILINE),
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        imports = [found.group(1) or found.group(2) for found in self.matcher("import").finditer(content)]
        depth = self.brace_depth(content)
        language = "typescript" if self.matcher("typescript").search(content) else "javascript"
        module_ext = ".ts" if language == "typescript" else ".js"
        common = {"references": imports, "format": language}

        for found in self.scan("class", content, depth):
            exported, default, abstract, class_name = found.groups()
            head = rf"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+{re.escape(class_name)}\b[^{{]*"
            body = self.recover(content, head, f"class {class_name} {{\n  constructor() {{\n  }}\n}}")
            yield self.emit(
                body,
                "class",
                f"{class_name}{module_ext}",
                qualifiers=self._qualifiers(exported, default, abstract),
                **common,
            )

        for found in self.scan("function", content, depth):
            exported, default, is_async, function_name = found.groups()
            head = (
                rf"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*{re.escape(function_name)}"
                rf"\s*(?:<[^>]*>)?\s*{PARAMETERS}[^{{]*"
            )
            body = self.recover(content, head, f"function {function_name}() {{\n}}")
            yield self._callable(body, function_name, module_ext, self._qualifiers(exported, default, is_async), common)

        for found in self.scan("arrow", content, depth):
            exported, function_name, is_async = found.groups()
            head = (
                rf"^(?:export\s+)?(?:const|let|var)\s+{re.escape(function_name)}{TYPE_ANNOTATION}\s*=\s*(?:async\s+)?"
                rf"(?:{PARAMETERS}|\w+){TYPE_ANNOTATION}\s*=>\s*"
            )
            body = self.recover(
                content,
                head,
                f"const {function_name} = () => {{\n}};",
                bodies=(r"\{(?:[^{}]|\{[^{}]*\})*\}", r"\{[^}]*\}", r"[^\n]+"),
            )
            qualifiers = self._qualifiers(exported, None, is_async) + ["arrow"]
            yield self._callable(body, function_name, module_ext, qualifiers, common)

        for key, kind in (("interface", "interface"), ("enum", "enum")):
            for found in self.scan(key, content, depth):
                exported, declared = found.group(1), found.group(2)
                head = rf"^(?:export\s+)?(?:declare\s+)?(?:const\s+)?{kind}\s+{re.escape(declared)}\b[^{{]*"
                body = self.recover(content, head, f"{kind} {declared} {{\n}}")
                yield self.emit(
                    body,
                    kind,
                    f"{declared}.ts",
                    references=imports,
                    format="typescript",
                    qualifiers=self._qualifiers(exported, None, None),
                )

        for found in self.scan("type_alias", content, depth):
            exported, alias = found.groups()
            statement = re.search(
                rf"^(?:export\s+)?type\s+{re.escape(alias)}\b[^=]*=\s*(?:\{{(?:[^{{}}]|\{{[^{{}}]*\}})*\}}|[^;\n]+);?",
                content,
                re.MULTILINE,
            )
            body = statement.group(0) if statement else f"type {alias} = unknown;"
            yield self.emit(
                body,
                "type",
                f"{alias}.ts",
                references=imports,
                format="typescript",
                qualifiers=self._qualifiers(exported, None, None),
            )

        for found in self.scan("describe", content, depth):
            title = found.group(2)
            slug = re.sub(r"[^\w]+", "_", title).strip("_").lower() or "suite"
            head = rf"^describe\(\s*{re.escape(found.group(1) + title + found.group(1))}\s*,[^{{]*"
            body = self.recover(content, head, f"describe({found.group(1)}{title}{found.group(1)}, () => {{\n}});")
            yield self.emit(body, "test", f"{slug}.test{module_ext}", **common)

        yield from self._configs(content, module_ext)

    def _callable(
        self,
        body: str,
        function_name: str,
        module_ext: str,
        qualifiers: list[str],
        common: dict[str, object],
    ) -> Optional[Artifact]:
        if function_name[:1].isupper() and self.matcher("jsx").search(body):
            kind, extension = "component", module_ext + "x"
        elif re.match(r"use[A-Z]", function_name):
            kind, extension = "hook", module_ext
        else:
            kind, extension = "function", module_ext
        return self.emit(body, kind, f"{function_name}{extension}", qualifiers=qualifiers, **common)

    @staticmethod
    def _qualifiers(exported: Optional[str], default: Optional[str], extra: Optional[str]) -> list[str]:
        values: list[str] = []
        if exported:
            values.append("export")
        if default:
            values.append("default")
        if extra:
            values.append(extra.strip())
        return values

    def _configs(self, content: str, module_ext: str) -> Iterator[Optional[Artifact]]:
        stripped = content.strip()
        if stripped.startswith("{") and stripped.endswith("}"):
            if '"name"' in stripped and '"version"' in stripped:
                yield self.emit(stripped + "\n", "framework-config", "package.json", format="json")
            elif '"compilerOptions"' in stripped:
                yield self.emit(stripped + "\n", "framework-config", "tsconfig.json", format="json")
            return

        config = self.matcher("module_config").search(content)
        if config:
            lowered = content.lower()
            tool = next((candidate for candidate in CONFIG_TOOLS if candidate in lowered), "app")
            body = self.recover(
                content[config.start():],
                r"^(?:module\.exports\s*=\s*|export\s+default\s+(?:defineConfig\()?)",
                "module.exports = {};\n",
                bodies=(r"\{(?:[^{}]|\{[^{}]*\})*\}\)?;?", r"\{[^}]*\}\)?;?"),
            )
            preamble = content[: config.start()].strip()
            text = f"{preamble}\n\n{body}\n" if preamble else f"{body}\n"
            yield self.emit(text, "framework-config", f"{tool}.config{module_ext}")


__all__ = ["JavaScriptStrategy"]
