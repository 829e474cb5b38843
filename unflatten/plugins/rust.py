"""Brace-and-keyword strategy for Rust crates."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import Artifact, ExtractionStrategy, collect_toml, leading_lines
from ..paths import snake_case

ATTRIBUTE_LINE = re.compile(r"[ \t]*#\[[^\n]*\][ \t]*")
VISIBILITY = r"(?:pub(?:\([^)]*\))?\s+)?"
GENERICS = r"(?:<[^{;]*?>)?"


class RustStrategy(ExtractionStrategy):
    name = "rust"
    extensions = (".rs",)
    aliases = ("rs",)
    manifest_names = ("Cargo.toml",)
    default_format = "rust"
    CHAR_LITERALS = True
    PATTERNS = {
        "use": (r"^\s*(?:pub(?:\([^)]*\))?\s+)?use\s+([\w:*]+(?:::\{[^}]*\})?)\s*;", re.MULTILINE),
        "module": (rf"^({VISIBILITY})mod\s+(\w+)\s*\{{", re.MULTILINE),
        "function": (
            rf"^({VISIBILITY})((?:const\s+|async\s+|unsafe\s+|extern\s+\"[^\"]*\"\s+)*)fn\s+(\w+)\s*({GENERICS})\s*\(",
            re.MULTILINE,
        ),
        "struct": (rf"^({VISIBILITY})struct\s+(\w+)\s*({GENERICS})\s*(\{{|\(|;|where\b)", re.MULTILINE),
        "enum": (rf"^({VISIBILITY})enum\s+(\w+)\s*({GENERICS})", re.MULTILINE),
        "trait": (rf"^({VISIBILITY})(unsafe\s+)?trait\s+(\w+)\s*({GENERICS})", re.MULTILINE),
        "impl": (
            rf"^(unsafe\s+)?impl\s*({GENERICS})\s*(?:([\w:]+)(?:<[^{{]*?>)?\s+for\s+)?&?([\w:]+)",
            re.MULTILINE,
        ),
        "macro": (r"^macro_rules!\s*(\w+)\s*\{", re.MULTILINE),
        "attribute": r"#\[([^\]]*(?:\[[^\]]*\][^\]]*)*)\]",
        "lifetime": r"'([a-z_]\w*)\b(?!')",
        "cargo": (r"^\[package\]\s*$", re.MULTILINE),
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        imports = [found.group(1) for found in self.matcher("use").finditer(content)]
        depth = self.brace_depth(content)
        common = {"references": imports}

        for found in self.scan("module", content, depth):
            visibility, module_name = found.groups()
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            tags = self._attributes(attributes)
            kind = "test" if "cfg(test)" in tags else "module"
            body = self.recover(
                content,
                rf"^{VISIBILITY}mod\s+{re.escape(module_name)}\s*",
                f"mod {module_name} {{\n}}",
                start=found.start(),
            )
            yield self.emit(
                attributes + body,
                kind,
                f"{module_name}.rs",
                tags=tags,
                qualifiers=self._visibility(visibility),
                **common,
            )

        for found in self.scan("function", content, depth):
            visibility, modifiers, function_name, generics = found.groups()
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            head = (
                rf"^{VISIBILITY}(?:const\s+|async\s+|unsafe\s+|extern\s+\"[^\"]*\"\s+)*fn\s+"
                rf"{re.escape(function_name)}\s*{GENERICS}\s*\((?:[^()]|\([^()]*\))*\)[^{{;]*"
            )
            tags = self._attributes(attributes)
            kind = "test" if "test" in tags or "tokio::test" in tags else "function"
            yield self.emit(
                attributes + self.recover(content, head, f"fn {function_name}() {{\n}}", start=found.start()),
                kind,
                f"{function_name}.rs",
                tags=tags,
                qualifiers=self._visibility(visibility) + modifiers.split() + self._lifetimes(generics),
                **common,
            )

        for found in self.scan("struct", content, depth):
            visibility, struct_name, generics, opener = found.groups()
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            yield self.emit(
                attributes + self._struct_body(content, found.start(), struct_name, opener),
                "struct",
                f"{snake_case(struct_name)}.rs",
                tags=self._attributes(attributes),
                qualifiers=self._visibility(visibility) + self._lifetimes(generics),
                **common,
            )

        for found in self.scan("enum", content, depth):
            visibility, enum_name, generics = found.groups()
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            body = self.recover(
                content,
                rf"^{VISIBILITY}enum\s+{re.escape(enum_name)}\b[^{{;]*",
                f"enum {enum_name} {{\n}}",
                start=found.start(),
            )
            yield self.emit(
                attributes + body,
                "enum",
                f"{snake_case(enum_name)}.rs",
                tags=self._attributes(attributes),
                qualifiers=self._visibility(visibility) + self._lifetimes(generics),
                **common,
            )

        for found in self.scan("trait", content, depth):
            visibility, unsafe, trait_name, generics = found.groups()
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            body = self.recover(
                content,
                rf"^{VISIBILITY}(?:unsafe\s+)?trait\s+{re.escape(trait_name)}\b[^{{;]*",
                f"trait {trait_name} {{\n}}",
                start=found.start(),
            )
            qualifiers = self._visibility(visibility) + (["unsafe"] if unsafe else []) + self._lifetimes(generics)
            yield self.emit(
                attributes + body,
                "trait",
                f"{snake_case(trait_name)}.rs",
                tags=self._attributes(attributes),
                qualifiers=qualifiers,
                **common,
            )

        for found in self.scan("impl", content, depth):
            yield self._impl(content, found, imports)

        for found in self.scan("macro", content, depth):
            macro_name = found.group(1)
            attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
            body = self.recover(
                content,
                rf"^macro_rules!\s*{re.escape(macro_name)}\s*",
                f"macro_rules! {macro_name} {{\n    () => {{}};\n}}",
                start=found.start(),
            )
            yield self.emit(attributes + body, "macro", f"{macro_name}.rs", tags=self._attributes(attributes), **common)

        cargo = self.matcher("cargo").search(content)
        if cargo:
            yield self.emit(collect_toml(content, cargo.start()), "package-manifest", "Cargo.toml", format="toml")

    def _impl(self, content: str, found: re.Match[str], imports: list[str]) -> Optional[Artifact]:
        unsafe, generics, trait_path, type_path = found.groups()
        attributes = leading_lines(content, found.start(), ATTRIBUTE_LINE)
        type_name = type_path.rsplit("::", 1)[-1]
        if trait_path:
            trait_name = trait_path.rsplit("::", 1)[-1]
            head = (
                rf"^(?:unsafe\s+)?impl\s*{GENERICS}\s*{re.escape(trait_path)}(?:<[^{{]*?>)?\s+for\s+"
                rf"&?{re.escape(type_path)}\b[^{{;]*"
            )
            filename = f"{snake_case(trait_name)}_for_{snake_case(type_name)}.rs"
            skeleton = f"impl {trait_name} for {type_name} {{\n}}"
            tags = self._attributes(attributes) + [trait_name]
        else:
            head = rf"^(?:unsafe\s+)?impl\s*{GENERICS}\s*&?{re.escape(type_path)}\b[^{{;]*"
            filename = f"{snake_case(type_name)}_impl.rs"
            skeleton = f"impl {type_name} {{\n}}"
            tags = self._attributes(attributes)
        qualifiers = (["unsafe"] if unsafe else []) + self._lifetimes(generics)
        return self.emit(
            attributes + self.recover(content, head, skeleton, start=found.start()),
            "impl",
            filename,
            namespace=type_name,
            references=imports,
            tags=tags,
            qualifiers=qualifiers,
        )

    def _struct_body(self, content: str, start: int, struct_name: str, opener: str) -> str:
        head = rf"^{VISIBILITY}struct\s+{re.escape(struct_name)}\s*{GENERICS}\s*"
        if opener == "(":
            return self.recover(
                content,
                head,
                f"struct {struct_name}();",
                bodies=(r"\((?:[^()]|\([^()]*\))*\)[^;\n]*;",),
                start=start,
            )
        if opener == ";":
            return self.recover(content, head, f"struct {struct_name};", bodies=(r";",), start=start)
        return self.recover(content, head + r"(?:where\b[^{]*)?", f"struct {struct_name} {{\n}}", start=start)

    def _attributes(self, block: str) -> list[str]:
        tags: list[str] = []
        for attribute in self.matcher("attribute").findall(block or ""):
            derive = re.fullmatch(r"\s*derive\s*\(([^)]*)\)\s*", attribute)
            if derive:
                tags.extend(name.strip() for name in derive.group(1).split(",") if name.strip())
            else:
                tags.append(re.sub(r"\s+", "", attribute))
        return tags

    def _lifetimes(self, generics: Optional[str]) -> list[str]:
        return [f"'{name}" for name in self.matcher("lifetime").findall(generics or "") if name != "static"]

    @staticmethod
    def _visibility(visibility: Optional[str]) -> list[str]:
        cleaned = re.sub(r"\s+", "", visibility or "")
        return [cleaned] if cleaned else []


__all__ = ["RustStrategy"]
