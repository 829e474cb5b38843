"""Indentation-delimited strategy for Python sources and packaging files."""

from __future__ import annotations

import re
from typing import Iterator, Optional

from ..extract.base import INDENTED_BODY, Artifact, ExtractionStrategy, collect_toml, leading_lines

DECORATOR_LINE = re.compile(r"@[^\n]*")
PARAMETERS = r"\((?:[^()]|\([^()]*\))*\)"

SETUP_FALLBACK = """from setuptools import setup, find_packages

setup(
    name="package",
    version="0.1.0",
    packages=find_packages(),
    install_requires=[]
)
"""


class PythonStrategy(ExtractionStrategy):
    name = "python"
    extensions = (".py", ".pyw")
    aliases = ("py", "python3")
    manifest_names = ("requirements.txt", "setup.py", "pyproject.toml")
    default_format = "python"
    PATTERNS = {
        "import": (r"^(?:from\s+([\w.]+)\s+import\b|import\s+([\w.]+(?:\s*,\s*[\w.]+)*))", re.MULTILINE),
        "class": (r"^class\s+(\w+)\s*(\((?:[^()]|\([^()]*\))*\))?\s*:", re.MULTILINE),
        "function": (r"^(async\s+)?def\s+(\w+)\s*\(", re.MULTILINE),
        "decorator": (r"^[ \t]*@([\w.]+)", re.MULTILINE),
        "requirement": (
            r"^([A-Za-z0-9][\w.-]*)(?:\[[\w,\s-]+\])?\s*(?:===|==|>=|<=|~=|!=|>|<)\s*[\w.*+!-]+"
            r"(?:\s*,\s*(?:===|==|>=|<=|~=|!=|>|<)\s*[\w.*+!-]+)*\s*(?:;[^\n]*)?$",
            re.MULTILINE,
        ),
        "setup_py": (r"^(?:from\s+setuptools\s+import|import\s+setuptools)", re.MULTILINE),
        "pyproject": (r"^\[(?:project|build-system|tool\.poetry)\]\s*$", re.MULTILINE),
    }

    def collect(self, content: str) -> Iterator[Optional[Artifact]]:
        imports = self._imports(content)

        for found in self.scan("class", content):
            class_name, bases = found.group(1), found.group(2) or ""
            decorators = leading_lines(content, found.start(), DECORATOR_LINE)
            base_names = [part.strip() for part in bases.strip("()").split(",") if part.strip()]
            kind = "test" if class_name.startswith("Test") or class_name.endswith("TestCase") else "class"
            head = rf"^class\s+{re.escape(class_name)}\b\s*(?:{PARAMETERS})?\s*:"
            skeleton = f"class {class_name}:\n    pass\n"
            body = self.recover(content, head, skeleton, bodies=(INDENTED_BODY,), start=found.start())
            yield self.emit(
                self._tidy(decorators + body),
                kind,
                f"{class_name}.py",
                references=imports,
                tags=self.matcher("decorator").findall(decorators),
                qualifiers=base_names,
            )

        for found in self.scan("function", content):
            is_async, function_name = bool(found.group(1)), found.group(2)
            decorators = leading_lines(content, found.start(), DECORATOR_LINE)
            if function_name == "test" or function_name.startswith("test_"):
                kind = "test"
            else:
                kind = "async_function" if is_async else "function"
            prefix = "async def" if is_async else "def"
            async_head = r"async\s+" if is_async else ""
            head = rf"^{async_head}def\s+{re.escape(function_name)}\s*{PARAMETERS}[^:\n]*:"
            skeleton = f"{prefix} {function_name}():\n    pass\n"
            body = self.recover(content, head, skeleton, bodies=(INDENTED_BODY,), start=found.start())
            yield self.emit(
                self._tidy(decorators + body),
                kind,
                f"{function_name}.py",
                references=imports,
                tags=self.matcher("decorator").findall(decorators),
                qualifiers=["async"] if is_async else [],
            )

        yield from self._manifests(content)

    def _imports(self, content: str) -> list[str]:
        names: list[str] = []
        for found in self.matcher("import").finditer(content):
            if found.group(1):
                names.append(found.group(1))
            else:
                names.extend(part.strip() for part in found.group(2).split(","))
        return names

    def _manifests(self, content: str) -> Iterator[Optional[Artifact]]:
        requirements = [found.group(0).strip() for found in self.matcher("requirement").finditer(content)]
        if requirements:
            yield self.emit("\n".join(requirements) + "\n", "dependency-manifest", "requirements.txt", format="text")

        if self.matcher("setup_py").search(content) and re.search(r"^setup\(", content, re.MULTILINE):
            setup_text = self.recover(
                content,
                r"^(?:from\s+setuptools\s+import|import\s+setuptools)[\s\S]*?^setup",
                SETUP_FALLBACK,
                bodies=(r"\((?:[^()]|\((?:[^()]|\([^()]*\))*\))*\)",),
            )
            yield self.emit(self._tidy(setup_text), "dependency-manifest", "setup.py")

        pyproject = self.matcher("pyproject").search(content)
        if pyproject:
            yield self.emit(collect_toml(content, pyproject.start()), "dependency-manifest", "pyproject.toml", format="toml")

    @staticmethod
    def _tidy(text: str) -> str:
        return text.rstrip() + "\n"


__all__ = ["PythonStrategy"]
