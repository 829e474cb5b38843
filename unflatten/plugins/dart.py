"""Strategy for Dart and Flutter sources plus pub manifests."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, BraceDepth, ExtractionStrategy, leading_lines
from ..paths import snake_case

ANNOTATION_LINE = re.compile(r"@[\w.]+(?:\([^)\n]*\))?[ \t]*")
TYPE_PARAMS = r"(?:<[^{>]*(?:<[^{>]*>)?[^{>]*>)?"
RETURN_TYPE = r"[A-Za-z_$][\w$]*(?:<[^(){};=]*>)?\??"
PARAMETERS = r"\((?:[^()]|\([^()]*\))*\)"

NOT_FUNCTIONS = frozenset({"if", "for", "while", "switch", "catch", "return", "new", "assert"})
DECLARATION_WORDS = frozenset(
    {"class", "enum", "mixin", "extension", "typedef", "import", "export", "part", "library", "get", "set"}
)
PUBSPEC_KEYS = ("name", "description", "version", "publish_to", "environment", "dependencies", "dev_dependencies", "flutter")


class DartStrategy(ExtractionStrategy):
    name = "dart"
    extensions = (".dart",)
    aliases = ("flutter",)
    manifest_names = ("pubspec.yaml", "pubspec.yml", "analysis_options.yaml")
    default_format = "dart"
    QUOTES = "\"'"
    PATTERNS = {
        "library": (r"^library\s+([\w.]+)\s*;", re.MULTILINE),
        "part_of": (r"^part\s+of\s+['\"]?([\w./:]+)['\"]?\s*;", re.MULTILINE),
        "import": (r"^(?:import|export)\s+['\"]([^'\"]+)['\"][^;\n]*;", re.MULTILINE),
        "class": (
            rf"^((?:(?:abstract|base|final|interface|sealed)\s+)*)(?:mixin\s+)?class\s+(\w+){TYPE_PARAMS}"
            r"((?:\s+(?:extends|with|implements)\s+[^{]+?)*)\s*\{",
            re.MULTILINE,
        ),
        "mixin": (rf"^(?:base\s+)?mixin\s+(?!class\b)(\w+){TYPE_PARAMS}(?:\s+on\s+[^{{]+?)?\s*\{{", re.MULTILINE),
        "enum": (rf"^enum\s+(\w+){TYPE_PARAMS}[^{{]*\{{", re.MULTILINE),
        "extension": (rf"^extension\s+(\w+)?{TYPE_PARAMS}\s*on\s+([\w<>?, ]+?)\s*\{{", re.MULTILINE),
        "typedef": (r"^typedef\s+(\w+)[^;]*;", re.MULTILINE),
        "function": (
            rf"^(?:external\s+)?({RETURN_TYPE})\s+(\w+)\s*{TYPE_PARAMS}\s*\(",
            re.MULTILINE,
        ),
        "getter": (rf"^(?:{RETURN_TYPE}\s+)?(get|set)\s+(\w+)\b", re.MULTILINE),
        "widget": r"\bextends\s+(?:Stateless|Stateful)Widget\b",
        "state": r"\bextends\s+State\s*<",
        "pubspec": (r"^name:[ \t]*\S", re.MULTILINE),
        "yaml_block": (r"^([\w-]+):[^\n]*(?:\n|\Z)(?:(?:[ \t]*(?:#[^\n]*)?\n)*[ \t]+\S[^\n]*(?:\n|\Z))*", re.MULTILINE),
        "annotation": r"@([\w.]+)",
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        namespace = ""
        match = self.matcher("library").search(content) or self.matcher("part_of").search(content)
        if match:
            namespace = match.group(1)
        imports = [found.group(1) for found in self.matcher("import").finditer(content)]
        depth = self.brace_depth(content)
        common = {"namespace": namespace, "references": imports}

        for found in self.scan("class", content, depth):
            modifiers, class_name, clauses = found.groups()
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            head = (
                rf"^(?:(?:abstract|base|final|interface|sealed)\s+)*(?:mixin\s+)?class\s+"
                rf"{re.escape(class_name)}\b[^{{]*"
            )
            body = self.recover(content, head, f"class {class_name} {{\n}}", start=found.start())
            yield self.emit(
                lead + body,
                self._class_kind(clauses or "", modifiers),
                f"{snake_case(class_name)}.dart",
                tags=self.matcher("annotation").findall(lead),
                qualifiers=modifiers.split() + self._supertypes(clauses or ""),
                **common,
            )

        for found in self.scan("mixin", content, depth):
            mixin_name = found.group(1)
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            body = self.recover(
                content,
                rf"^(?:base\s+)?mixin\s+{re.escape(mixin_name)}\b[^{{]*",
                f"mixin {mixin_name} {{\n}}",
                start=found.start(),
            )
            yield self.emit(lead + body, "mixin", f"{snake_case(mixin_name)}.dart", **common)

        for found in self.scan("enum", content, depth):
            enum_name = found.group(1)
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            body = self.recover(
                content, rf"^enum\s+{re.escape(enum_name)}\b[^{{]*", f"enum {enum_name} {{\n}}", start=found.start()
            )
            yield self.emit(lead + body, "enum", f"{snake_case(enum_name)}.dart", **common)

        for found in self.scan("extension", content, depth):
            extension_name, target = found.group(1), found.group(2).strip()
            label = extension_name or f"{re.sub(r'[^A-Za-z0-9]+', '', target)}Extension"
            anchor = re.escape(extension_name) + r"\b" if extension_name else ""
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            body = self.recover(
                content,
                rf"^extension\s+{anchor}[^{{]*?on\s+{re.escape(target)}\s*",
                f"extension {label} on {target} {{\n}}",
                start=found.start(),
            )
            yield self.emit(lead + body, "extension", f"{snake_case(label)}.dart", tags=[target], **common)

        for found in self.scan("typedef", content, depth):
            yield self.emit(found.group(0), "typedef", f"{snake_case(found.group(1))}.dart", **common)

        yield from self._functions(content, depth, common)
        yield from self._manifests(content)

    def _functions(self, content: str, depth: BraceDepth, common: dict[str, object]) -> Iterator[Optional[Artifact]]:
        for found in self.scan("function", content, depth):
            return_type, function_name = found.groups()
            if function_name in NOT_FUNCTIONS or return_type in DECLARATION_WORDS:
                continue
            lead = leading_lines(content, found.start(), ANNOTATION_LINE)
            head = (
                rf"^(?:external\s+)?{RETURN_TYPE}\s+{re.escape(function_name)}\s*{TYPE_PARAMS}\s*"
                rf"{PARAMETERS}\s*(?:async\*?|sync\*)?\s*"
            )
            body = self.recover(
                content,
                head,
                f"void {function_name}() {{\n}}",
                bodies=(r"\{(?:[^{}]|\{[^{}]*\})*\}", r"=>[^;]*;", r"\{[^}]*\}"),
                start=found.start(),
            )
            signature = body.split("{", 1)[0]
            is_async = bool(re.search(r"\)\s*async\b", signature))
            yield self.emit(
                lead + body,
                "async_function" if is_async else "function",
                f"{snake_case(function_name)}.dart",
                tags=self.matcher("annotation").findall(lead),
                qualifiers=["async"] if is_async else [],
                **common,
            )

        for found in self.scan("getter", content, depth):
            accessor, property_name = found.groups()
            body = self.recover(
                content,
                rf"^(?:{RETURN_TYPE}\s+)?{accessor}\s+{re.escape(property_name)}\b[^{{=;]*",
                f"{accessor} {property_name} => null;",
                bodies=(r"\{(?:[^{}]|\{[^{}]*\})*\}", r"=>[^;]*;"),
            )
            kind = "getter" if accessor == "get" else "setter"
            yield self.emit(body, kind, f"{snake_case(property_name)}_{accessor}ter.dart", **common)

    def _class_kind(self, clauses: str, modifiers: str) -> str:
        if self.matcher("widget").search(clauses):
            return "widget"
        if self.matcher("state").search(clauses):
            return "state"
        if "abstract" in modifiers.split():
            return "abstract_class"
        return "class"

    @staticmethod
    def _supertypes(clauses: str) -> list[str]:
        names: list[str] = []
        for _, types in re.findall(r"\b(extends|with|implements)\s+(.+?)(?=\s+(?:extends|with|implements)\b|$)", clauses.strip()):
            names.extend(re.sub(r"<.*", "", part).strip() for part in types.split(","))
        return names

    def _manifests(self, content: str) -> Iterator[Optional[Artifact]]:
        blocks = {found.group(1): found.group(0) for found in self.matcher("yaml_block").finditer(content)}
        if self.matcher("pubspec").search(content) and ("dependencies" in blocks or "flutter" in blocks):
            sections = [blocks[key].rstrip() for key in PUBSPEC_KEYS if key in blocks]
            package_name = blocks["name"].split(":", 1)[1].strip()
            yield self.emit(
                "\n".join(sections) + "\n",
                "package-manifest",
                "pubspec.yaml",
                format="yaml",
                namespace=package_name,
            )

        options = [blocks[key].rstrip() for key in ("include", "analyzer", "linter") if key in blocks]
        if "analyzer" in blocks or "linter" in blocks:
            yield self.emit("\n\n".join(options) + "\n", "analysis-config", "analysis_options.yaml", format="yaml")


__all__ = ["DartStrategy"]
