"""Tests for the structural parser and edit application."""

from __future__ import annotations

import pytest

from frameshift.analysis.parser import (
    Edit,
    SyntaxTree,
    detect_dialect,
    first_damaged_node,
    parse_artifact,
    parse_source,
)
from frameshift.analysis.schemas import ParseFailure, SourceArtifact
from frameshift.constants import Dialect
from frameshift.resilience.errors import UnsafeTransformError
from frameshift.services.transform_service import parse_with_retry
from tests.conftest import first_node, parse

TWO_CONSTS = "const a = 1;\nconst b = 2;\n"


# ── parse_source ─────────────────────────────────────────────


def test_parse_valid_jsx_returns_tree() -> None:
    """A well-formed component parses with its dialect recorded."""
    tree = parse_source("const App = () => <div className=\"a\">hi</div>;", Dialect.JSX)

    assert isinstance(tree, SyntaxTree)
    assert tree.dialect == Dialect.JSX
    assert tree.root.type == "program"
    assert not tree.root.has_error


def test_parse_tsx_with_types() -> None:
    code = "interface P { n: number }\nexport const C = (p: P) => <b>{p.n}</b>;\n"
    tree = parse_source(code, Dialect.TSX)
    assert isinstance(tree, SyntaxTree)


def test_parse_failure_is_positioned() -> None:
    """Damaged input yields a ParseFailure pointing at line 2."""
    result = parse_source("const a = 1;\nconst b = ;\n", Dialect.JSX)

    assert isinstance(result, ParseFailure)
    assert result.line == 2
    assert result.column >= 1
    assert result.offset >= len("const a = 1;\n")
    assert result.message


def test_truncated_artifact_fails(truncated_source: str) -> None:
    """The failure points past the intact import, not at the first byte."""
    result = parse_source(truncated_source, Dialect.JSX)

    assert isinstance(result, ParseFailure)
    assert result.line > 1
    assert result.offset > truncated_source.index(";")


def test_damage_inside_block_is_located() -> None:
    code = "function A() {\n  const a = 1;\n  const b = ;\n  return a;\n}\n"
    result = parse_source(code, Dialect.JSX)

    assert isinstance(result, ParseFailure)
    assert result.line == 3


def test_parse_artifact_uses_artifact_dialect() -> None:
    artifact = SourceArtifact(text="const x: number = 1;", dialect=Dialect.TSX)
    assert isinstance(parse_artifact(artifact), SyntaxTree)
    assert artifact.size == len("const x: number = 1;")


def test_first_damaged_node_none_for_clean_tree() -> None:
    tree = parse(TWO_CONSTS)
    assert first_damaged_node(tree.root) is None


def test_text_and_slice_round_trip() -> None:
    source = "const s = 'héllo';\n"
    tree = parse(source)
    assert tree.text == source
    node = first_node(tree.root, "string")
    assert tree.slice(node.start_byte, node.end_byte) == "'héllo'"


def test_node_at_exact_span() -> None:
    tree = parse(TWO_CONSTS)
    node = tree.node_at(10, 11, "number")
    assert node is not None
    assert node.type == "number"
    assert tree.node_at(10, 11, "string") is None


# ── detect_dialect ───────────────────────────────────────────


def test_detect_dialect_from_extension() -> None:
    assert detect_dialect("const a = 1;", "scene.tsx") == Dialect.TSX
    assert detect_dialect("interface P {}", "scene.jsx") == Dialect.JSX


def test_detect_dialect_from_ts_hints() -> None:
    """Type syntax selects TSX when no filename is known."""
    assert detect_dialect("type Props = { a: number };") == Dialect.TSX
    assert detect_dialect("const [n, setN] = useState<number>(0);") == Dialect.TSX
    assert detect_dialect("const n = 1;") == Dialect.JSX


def test_parse_with_retry_switches_dialect() -> None:
    """Typed code misdetected as JSX is retried as TSX."""
    result = parse_with_retry("function f(a: number) { return a; }", None)
    assert isinstance(result, SyntaxTree)
    assert result.dialect == Dialect.TSX


def test_parse_with_retry_respects_explicit_dialect() -> None:
    result = parse_with_retry("function f(a: number) { return a; }", Dialect.JSX)
    assert isinstance(result, ParseFailure)


# ── SyntaxTree.apply ─────────────────────────────────────────


def test_apply_single_replacement() -> None:
    tree = parse(TWO_CONSTS)
    edited = tree.apply([Edit(10, 11, "42")], stage="test")
    assert edited.text == "const a = 42;\nconst b = 2;\n"
    assert edited.dialect == tree.dialect


def test_apply_no_edits_returns_same_tree() -> None:
    tree = parse(TWO_CONSTS)
    assert tree.apply([], stage="test") is tree


def test_apply_insertions_keep_order() -> None:
    """Insertions at one offset land in the order given."""
    tree = parse(TWO_CONSTS)
    edited = tree.apply(
        [Edit(0, 0, "const x = 0;\n"), Edit(0, 0, "const y = 0;\n")],
        stage="test",
    )
    assert edited.text.startswith("const x = 0;\nconst y = 0;\nconst a = 1;")


def test_apply_drops_nested_edit() -> None:
    """An edit inside a larger replacement is superseded by it."""
    tree = parse(TWO_CONSTS)
    edited = tree.apply(
        [Edit(0, 12, "const a = 3;"), Edit(10, 11, "9")], stage="test"
    )
    assert edited.text == "const a = 3;\nconst b = 2;\n"


def test_apply_keeps_boundary_insertion() -> None:
    tree = parse(TWO_CONSTS)
    edited = tree.apply(
        [Edit(0, 12, "let a = 5;"), Edit(12, 12, "\nconst c = 3;")],
        stage="test",
    )
    assert edited.text == "let a = 5;\nconst c = 3;\nconst b = 2;\n"


def test_apply_rejects_partial_overlap() -> None:
    tree = parse(TWO_CONSTS)
    with pytest.raises(UnsafeTransformError, match="overlapping edits"):
        tree.apply([Edit(6, 11, "b = 7"), Edit(10, 14, "3;\nc")], stage="rewrite")


def test_apply_rejects_unparseable_result() -> None:
    """Edits that break the syntax raise instead of returning a bad tree."""
    tree = parse(TWO_CONSTS)
    with pytest.raises(UnsafeTransformError, match="no longer parses") as exc:
        tree.apply([Edit(10, 11, "")], stage="normalize")
    assert exc.value.stage == "normalize"
