"""Output naming, path safety and artifact merging."""

from __future__ import annotations

from pathlib import Path

import pytest

from unflatten.errors import WriteError
from unflatten.extract.base import Artifact
from unflatten.merge import SEPARATOR_TEXT, merge_artifacts, merge_planned, separator_for
from unflatten.pipeline import ExtractionResult
from unflatten.writer import ArtifactWriter, PlannedArtifact


def _result(source: Path, *artifacts: Artifact) -> ExtractionResult:
    return ExtractionResult(source_path=source, strategy_name="test", artifacts=list(artifacts))


def test_unnamed_artifacts_get_synthesized_names(tmp_path: Path) -> None:
    writer = ArtifactWriter(tmp_path)
    result = _result(
        Path("notes.md"),
        Artifact(content="a = 1\n", kind="key-value", format="properties"),
        Artifact(content="print()\n", kind="fenced-block", format="python"),
    )
    names = [item.output_name for item in writer.plan(result)]
    assert names == ["notes_key-value_0.properties", "notes_fenced-block_1.py"]


def test_extension_is_appended_when_missing(tmp_path: Path) -> None:
    writer = ArtifactWriter(tmp_path)
    artifact = Artifact(content="x", kind="struct", suggested_name="server", format="go")
    assert writer.output_name(artifact, Path("a.go"), 0) == "server.go"
    unknown = Artifact(content="x", kind="blob", suggested_name="blob", format="exotic")
    assert writer.output_name(unknown, Path("a.go"), 0) == "blob.txt"


def test_traversal_is_stripped_from_suggested_names(tmp_path: Path) -> None:
    artifact = Artifact(content="boom\n", kind="text", suggested_name="../../etc/passwd")
    assert artifact.suggested_name == "etc/passwd"

    writer = ArtifactWriter(tmp_path / "out")
    report = writer.write_result(_result(Path("a.txt"), artifact))
    assert report.written == [tmp_path / "out" / "etc" / "passwd.txt"]
    assert not (tmp_path / "etc").exists()


def test_target_path_rejects_escapes(tmp_path: Path) -> None:
    writer = ArtifactWriter(tmp_path / "out")
    assert writer.target_path("../../x.txt") == tmp_path / "out" / "x.txt"
    with pytest.raises(WriteError):
        writer.target_path("../..")


def test_nested_names_create_directories(tmp_path: Path) -> None:
    artifact = Artifact(content="package a;\n", kind="class", suggested_name="com/example/A.java", format="java")
    writer = ArtifactWriter(tmp_path)
    writer.write_result(_result(Path("dump.java"), artifact))
    assert (tmp_path / "com" / "example" / "A.java").read_text(encoding="utf-8") == "package a;\n"


def test_dry_run_writer_reports_plan_only(tmp_path: Path) -> None:
    writer = ArtifactWriter(tmp_path / "out", dry_run=True)
    result = _result(Path("a.txt"), Artifact(content="x\n", kind="text", suggested_name="x.txt"))
    report = writer.write_result(result)
    assert report.planned == [tmp_path / "out" / "x.txt"]
    assert report.written == []
    assert result.planned_paths == report.planned
    assert not (tmp_path / "out").exists()


def test_blank_artifacts_are_rejected() -> None:
    with pytest.raises(ValueError):
        Artifact(content="   \n", kind="text")


@pytest.mark.parametrize(
    ("format_name", "expected"),
    [
        ("go", f"// {SEPARATOR_TEXT}"),
        ("Rust", f"// {SEPARATOR_TEXT}"),
        ("python", f"# {SEPARATOR_TEXT}"),
        ("yaml", f"# {SEPARATOR_TEXT}"),
        ("sql", f"-- {SEPARATOR_TEXT}"),
        ("xml", f"<!-- {SEPARATOR_TEXT} -->"),
        ("json", SEPARATOR_TEXT),
        ("text", SEPARATOR_TEXT),
    ],
)
def test_separator_uses_the_format_comment_syntax(format_name: str, expected: str) -> None:
    assert separator_for(format_name) == expected


def test_merge_folds_left_to_right_and_unions_metadata() -> None:
    first = Artifact(
        content="type A struct {}\n",
        kind="struct",
        suggested_name="a.go",
        format="go",
        namespace="main",
        references=("fmt",),
        tags=("json",),
    )
    second = Artifact(
        content="type A struct { X int }\n",
        kind="struct",
        suggested_name="a.go",
        format="go",
        namespace="other",
        references=("fmt", "os"),
        qualifiers=("exported",),
    )
    merged = merge_artifacts([first, second])
    assert merged.content == f"type A struct {{}}\n\n// {SEPARATOR_TEXT}\n\ntype A struct {{ X int }}\n"
    assert merged.namespace == "main"
    assert merged.references == ("fmt", "os")
    assert merged.tags == ("json",)
    assert merged.qualifiers == ("exported",)
    assert merge_artifacts([first]) is first
    assert merge_artifacts([merged]) == merged
    assert merge_artifacts([first, second]) == merged


def test_merge_rejects_empty_group() -> None:
    with pytest.raises(ValueError):
        merge_artifacts([])


def test_merge_planned_groups_by_name_and_format() -> None:
    go_a = Artifact(content="a\n", kind="struct", suggested_name="x.go", format="go")
    go_b = Artifact(content="b\n", kind="struct", suggested_name="x.go", format="go")
    text = Artifact(content="c\n", kind="text", suggested_name="x.go", format="text")
    other = Artifact(content="d\n", kind="struct", suggested_name="y.go", format="go")
    planned = [
        PlannedArtifact(go_a, "x.go", (Path("one.go"),)),
        PlannedArtifact(other, "y.go", (Path("one.go"),)),
        PlannedArtifact(go_b, "x.go", (Path("two.go"),)),
        PlannedArtifact(text, "x.go", (Path("three.txt"),)),
    ]

    merged = merge_planned(planned)
    assert [(item.output_name, item.artifact.format) for item in merged] == [
        ("x.go", "go"),
        ("y.go", "go"),
        ("x.go", "text"),
    ]
    assert merged[0].sources == (Path("one.go"), Path("two.go"))
    assert merged[0].artifact.content == f"a\n\n// {SEPARATOR_TEXT}\n\nb\n"
    assert merged[1] is planned[1]
