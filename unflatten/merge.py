"""Coalescing of artifacts that share an output identity."""

from __future__ import annotations

from dataclasses import replace
from functools import reduce
from typing import Sequence

from .extract.base import Artifact, unique
from .writer import PlannedArtifact

SEPARATOR_TEXT = "---- merged ----"

LINE_COMMENT_FORMATS = {
    "//": ("go", "java", "javascript", "typescript", "rust", "dart", "c", "cpp", "csharp", "kotlin", "protobuf", "jsx", "tsx", "mod"),
    "#": ("python", "yaml", "toml", "ini", "properties", "shell", "ruby"),
    "--": ("sql",),
}
MARKUP_FORMATS = ("xml", "html", "markdown", "md")


def separator_for(format_name: str) -> str:
    """The visible line placed between merged members, in the format's own comment syntax."""
    key = format_name.strip().lower()
    if key in MARKUP_FORMATS:
        return f"<!-- {SEPARATOR_TEXT} -->"
    for prefix, formats in LINE_COMMENT_FORMATS.items():
        if key in formats:
            return f"{prefix} {SEPARATOR_TEXT}"
    return SEPARATOR_TEXT


def _fold(left: Artifact, right: Artifact) -> Artifact:
    body = left.content.rstrip("\n")
    content = f"{body}\n\n{separator_for(left.format)}\n\n{right.content}"
    return replace(
        left,
        content=content,
        references=unique((*left.references, *right.references)),
        tags=unique((*left.tags, *right.tags)),
        qualifiers=unique((*left.qualifiers, *right.qualifiers)),
    )


def merge_artifacts(group: Sequence[Artifact]) -> Artifact:
    """Fold ``group`` left to right into one artifact; kind, name, namespace and format come from the first member."""
    if not group:
        raise ValueError("cannot merge an empty group")
    if len(group) == 1:
        return group[0]
    return reduce(_fold, group[1:], group[0])


def merge_planned(planned: Sequence[PlannedArtifact]) -> list[PlannedArtifact]:
    """Group planned artifacts by ``(output_name, format)`` in first-seen order and merge each group."""
    groups: dict[tuple[str, str], list[PlannedArtifact]] = {}
    for item in planned:
        groups.setdefault((item.output_name, item.artifact.format), []).append(item)

    merged: list[PlannedArtifact] = []
    for (output_name, _), members in groups.items():
        if len(members) == 1:
            merged.append(members[0])
            continue
        sources = tuple(dict.fromkeys(source for member in members for source in member.sources))
        merged.append(
            PlannedArtifact(
                artifact=merge_artifacts([member.artifact for member in members]),
                output_name=output_name,
                sources=sources,
            )
        )
    return merged


__all__ = ["SEPARATOR_TEXT", "merge_artifacts", "merge_planned", "separator_for"]
