"""Tests for static shape inference."""

from __future__ import annotations

import pytest

from frameshift.analysis.nodes import Node, text
from frameshift.analysis.shapes import (
    Lookup,
    Population,
    infer_kind,
    infer_population,
    is_pure,
    loop_population,
)
from frameshift.constants import ValueKind
from tests.conftest import first_node, nodes_of, parse


def _value(code: str, name: str = "v") -> tuple[Node, Lookup]:
    """Initializer node of ``const <name> = ...`` plus a lookup over the module."""
    tree = parse(code)
    declarator = next(
        d for d in nodes_of(tree.root, "variable_declarator")
        if text(d.child_by_field_name("name")) == name
    )
    value = declarator.child_by_field_name("value")
    assert value is not None
    return value, Lookup(tree.root)


def _population(code: str, name: str = "v") -> Population | str:
    value, lookup = _value(code, name)
    return infer_population(value, lookup)


# ── Literals ─────────────────────────────────────────────────


def test_object_literal() -> None:
    pop = _population("const v = { x: 1, label: 'a', on: true };")

    assert isinstance(pop, Population)
    assert pop.origin == "literal"
    assert pop.value_kind == ValueKind.OBJECT
    assert [(p.name, p.kind) for p in pop.properties] == [
        ("x", ValueKind.NUMBER),
        ("label", ValueKind.STRING),
        ("on", ValueKind.BOOLEAN),
    ]


def test_source_of_finds_property_by_name() -> None:
    pop = _population("const v = { x: 1, label: 'a' };")

    assert isinstance(pop, Population)
    found = pop.source_of("label")
    assert found is not None
    assert found.kind == ValueKind.STRING
    assert pop.source_of("missing") is None
    assert not pop.is_empty_collection


def test_array_of_objects_merges_keys() -> None:
    """Keys from every element are unioned in first-seen order."""
    pop = _population("const v = [{ a: 1 }, { a: 2, b: 3 }];")

    assert isinstance(pop, Population)
    assert pop.collection
    assert pop.count == 2
    assert pop.shape().property_names == ("a", "b")


def test_empty_array_is_empty_collection() -> None:
    pop = _population("const v = [];")
    assert isinstance(pop, Population)
    assert pop.is_empty_collection


def test_spread_object_is_opaque() -> None:
    assert _population("const base = { a: 1 };\nconst v = { ...base, b: 2 };") == (
        "object literal spreads or defines methods"
    )


def test_identifier_follows_constant() -> None:
    pop = _population("const START = { x: 0, y: 0 };\nconst v = START;")
    assert isinstance(pop, Population)
    assert pop.shape().property_names == ("x", "y")


def test_identifier_to_mutable_binding_is_expression() -> None:
    pop = _population("let start = 5;\nconst v = start;")
    assert isinstance(pop, Population)
    assert pop.origin == "expression"


# ── Generators ───────────────────────────────────────────────


def test_array_from_with_constant_length() -> None:
    pop = _population(
        "const N = 12;\n"
        "const v = Array.from({ length: N }, (_, i) => ({ x: i * 10, y: Math.random() }));"
    )

    assert isinstance(pop, Population)
    assert pop.origin == "generator"
    assert pop.count == 12
    assert pop.index_name == "i"
    assert pop.shape().property_names == ("x", "y")


def test_array_from_with_mutable_length_is_opaque() -> None:
    pop = _population("let n = 3;\nconst v = Array.from({ length: n }, () => 0);")
    assert pop == "Array.from length is not a static number"


@pytest.mark.parametrize(
    "constructor",
    ["Array(8).fill(0)", "[...Array(8)]", "new Array(8).fill(null)", "Array.from({ length: 8 })"],
)
def test_mapped_constructors(constructor: str) -> None:
    pop = _population(f"const v = {constructor}.map((_, i) => i * 2);")

    assert isinstance(pop, Population)
    assert pop.count == 8
    assert pop.value_kind == ValueKind.NUMBER
    assert pop.element is not None


def test_generator_reading_placeholder_is_opaque() -> None:
    pop = _population("const v = Array.from({ length: 3 }, (el) => el.x);")
    assert pop == "generator reads its element placeholder"


def test_generator_with_local_declarations() -> None:
    pop = _population(
        "const v = Array.from({ length: 4 }, (_, i) => {\n"
        "  const angle = (i / 4) * Math.PI * 2;\n"
        "  return { angle, r: 10 };\n"
        "});"
    )
    assert isinstance(pop, Population)
    assert len(pop.locals) == 1
    assert pop.shape().property_names == ("angle", "r")


def test_generator_with_control_flow_is_opaque() -> None:
    pop = _population(
        "const v = Array.from({ length: 4 }, (_, i) => {\n"
        "  if (i > 2) { log(i); }\n"
        "  return { i };\n"
        "});"
    )
    assert pop == "generator body has control flow"


def test_factory_with_loop() -> None:
    """A zero-argument factory call is walked through its push loop."""
    pop = _population(
        "function makeStars() {\n"
        "  const out = [];\n"
        "  for (let i = 0; i <= 9; i++) {\n"
        "    out.push({ x: i, twinkle: Math.random() });\n"
        "  }\n"
        "  return out;\n"
        "}\n"
        "const v = makeStars();\n"
    )
    assert isinstance(pop, Population)
    assert pop.origin == "loop"
    assert pop.count == 10
    assert pop.shape().property_names == ("x", "twinkle")


def test_function_by_reference_is_opaque() -> None:
    pop = _population("function make() { return []; }\nconst v = make;")
    assert isinstance(pop, str)
    assert "by reference" in pop


def test_unknown_call_is_opaque() -> None:
    assert _population("const v = fetchPoints();") == "initializer calls fetchPoints"


# ── Loops ────────────────────────────────────────────────────


def _loop_statements(code: str) -> tuple[list[Node], Lookup]:
    tree = parse(code)
    program = tree.root
    return [c for c in program.named_children if c.type != "comment"], Lookup(program)


def test_loop_with_bad_step() -> None:
    statements, lookup = _loop_statements(
        "const pts = [];\nfor (let i = 0; i < 10; i += 2) { pts.push({ x: i }); }\n"
    )
    assert loop_population(statements, "pts", lookup) == (
        "population loop does not count up by one"
    )


def test_loop_modified_elsewhere() -> None:
    statements, lookup = _loop_statements(
        "const pts = [];\n"
        "for (let i = 0; i < 3; i++) { pts.push({ x: i }); }\n"
        "pts.reverse();\n"
    )
    assert loop_population(statements, "pts", lookup) == (
        "population array is modified outside its loop"
    )


def test_loop_bound_from_array_length() -> None:
    statements, lookup = _loop_statements(
        "const COLORS = ['red', 'green', 'blue'];\n"
        "const pts = [];\n"
        "for (let i = 0; i < COLORS.length; i++) { pts.push({ c: i }); }\n"
    )
    pop = loop_population(statements, "pts", lookup)
    assert isinstance(pop, Population)
    assert pop.count == 3


def test_no_loop_found() -> None:
    statements, lookup = _loop_statements("const pts = [];\n")
    assert loop_population(statements, "pts", lookup) == "no population loop found"


# ── Kinds and purity ─────────────────────────────────────────


@pytest.mark.parametrize(
    ("expr", "kind"),
    [
        ("'a' + 1", ValueKind.STRING),
        ("2 * x", ValueKind.NUMBER),
        ("!ready", ValueKind.BOOLEAN),
        ("a < b", ValueKind.BOOLEAN),
        ("Math.random()", ValueKind.NUMBER),
        ("window.innerWidth", ValueKind.NUMBER),
        ("ok ? 'yes' : 'no'", ValueKind.STRING),
        ("ok ? 1 : 'no'", ValueKind.UNKNOWN),
        ("items.map(f)", ValueKind.ARRAY),
    ],
)
def test_infer_kind(expr: str, kind: ValueKind) -> None:
    value, _ = _value(f"const v = {expr};")
    assert infer_kind(value) == kind


def test_is_pure() -> None:
    tree = parse("const a = Math.sin(t) * 2;\nconst b = fetch(url);\nconst c = n++;\n")
    values = [
        d.child_by_field_name("value")
        for d in nodes_of(tree.root, "variable_declarator")
    ]
    assert [is_pure(v) for v in values] == [True, False, False]


def test_lookup_number_requires_const() -> None:
    tree = parse("const A = 4;\nlet B = 5;\nconst C = A;\n")
    lookup = Lookup(tree.root)
    at = first_node(tree.root, "identifier", "A")
    assert lookup.number("A", at) == 4.0
    assert lookup.number("B", at) is None
    assert lookup.find("missing", at) is None
