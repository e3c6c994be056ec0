"""Tests for the structural emitter."""

from __future__ import annotations

from fractions import Fraction

import pytest

from frameshift.transform.emit import (
    Arrow,
    ArrayLit,
    Binary,
    Block,
    Call,
    Conditional,
    Const,
    Fragment,
    Ident,
    ImportDecl,
    JsxAttribute,
    Member,
    Num,
    ObjectLit,
    Return,
    Spread,
    Str,
    Unary,
    add,
    floor,
    format_number,
    mul,
    property_key,
    quote_string,
    render_statements,
    scale,
)
from tests.conftest import first_node, parse

A, B, C = Ident("a"), Ident("b"), Ident("c")
FRAME = Ident("frame")


# ── Literals ─────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("value", "spelled"),
    [
        (2.0, "2"),
        (-3.0, "-3"),
        (0.1 + 0.2, "0.3"),
        (1 / 3, "0.333333"),
        (-0.0, "0"),
        (2.0833333, "2.083333"),
    ],
)
def test_format_number(value: float, spelled: str) -> None:
    assert format_number(value) == spelled


def test_format_number_rejects_non_finite() -> None:
    with pytest.raises(ValueError, match="non-finite"):
        format_number(float("nan"))
    with pytest.raises(ValueError, match="non-finite"):
        format_number(float("inf"))


def test_quote_string_escapes() -> None:
    assert quote_string("it's") == "'it\\'s'"
    assert quote_string('say "hi"', '"') == '"say \\"hi\\""'
    assert quote_string("a\nb\\c") == "'a\\nb\\\\c'"


def test_property_key_quotes_non_identifiers() -> None:
    assert property_key("opacity") == "opacity"
    assert property_key("$scale") == "$scale"
    assert property_key("background-color") == "'background-color'"
    assert property_key("2x") == "'2x'"


# ── Precedence ───────────────────────────────────────────────


def test_lower_precedence_operand_is_bracketed() -> None:
    assert Binary("*", Binary("+", A, B), C).render() == "(a + b) * c"
    assert Binary("+", A, Binary("*", B, C)).render() == "a + b * c"


def test_right_operand_of_same_precedence_is_bracketed() -> None:
    """Left-associative operators keep their grouping."""
    assert Binary("-", A, Binary("-", B, C)).render() == "a - (b - c)"
    assert Binary("-", Binary("-", A, B), C).render() == "a - b - c"


def test_exponent_groups_left_operand() -> None:
    assert Binary("**", Binary("**", A, B), C).render() == "(a ** b) ** c"


def test_unary_spacing_and_nesting() -> None:
    assert Unary("-", Num(-1)).render() == "-(-1)"
    assert Unary("!", Binary("&&", A, B)).render() == "!(a && b)"
    assert Unary("typeof", A).render() == "typeof a"


def test_conditional() -> None:
    expr = Conditional(Binary(">=", FRAME, Num(30)), Num(1), Num(0))
    assert expr.render() == "frame >= 30 ? 1 : 0"
    nested = Conditional(expr, A, B)
    assert nested.render() == "(frame >= 30 ? 1 : 0) ? a : b"
    assert Binary("*", expr, Num(2)).render() == "(frame >= 30 ? 1 : 0) * 2"


def test_member_and_call() -> None:
    assert Member(Ident("style"), "background-color").render() == "style['background-color']"
    assert Member(Binary("+", A, B), "x").render() == "(a + b).x"
    assert floor(Binary("/", FRAME, Num(90))).render() == "Math.floor(frame / 90)"
    assert Call(Ident("f"), (A, B)).render() == "f(a, b)"
    assert Call(Ident("f"), (Arrow(("x",), A),)).render() == "f((x) => a)"


def test_array_literal() -> None:
    assert ArrayLit((Num(1), Str("a"))).render() == "[1, 'a']"
    assert ArrayLit().render() == "[]"


# ── Objects and functions ────────────────────────────────────


def test_object_literal_single_line() -> None:
    obj = ObjectLit((("x", Num(1)), ("z-index", Num(2)), Spread(Ident("rest"))))
    assert obj.render() == "{ x: 1, 'z-index': 2, ...rest }"
    assert ObjectLit().render() == "{}"


def test_object_literal_multiline_indents() -> None:
    obj = ObjectLit((("x", Num(1)), Spread(Ident("p"))), multiline=True)
    assert obj.render("  ") == "{\n    x: 1,\n    ...p,\n  }"


def test_arrow_with_object_body_is_parenthesised() -> None:
    arrow = Arrow(("p",), ObjectLit((("x", Num(1)),)))
    assert arrow.render() == "(p) => ({ x: 1 })"


def test_arrow_with_block_body() -> None:
    arrow = Arrow((), Block((Const("a", Num(1)), Return(A))))
    assert arrow.render() == "() => {\n  const a = 1;\n  return a;\n}"


def test_arrow_as_argument() -> None:
    call = Call(Member(Ident("items"), "map"), (Arrow(("_", "i"), Ident("i")),))
    assert call.render() == "items.map((_, i) => i)"


def test_render_statements() -> None:
    code = render_statements([Const("a", Num(1)), Const("b", Num(2))], "  ")
    assert code == "const a = 1;\n  const b = 2;"


# ── Arithmetic helpers ───────────────────────────────────────


def test_add_simplifies() -> None:
    assert add(A, Num(0)) is A
    assert add(Num(0), A) is A
    assert add(A, Num(-2)).render() == "a - 2"
    assert add(A, B).render() == "a + b"


def test_mul_simplifies() -> None:
    assert mul(Num(1), A) is A
    assert mul(A, Num(1)) is A
    assert mul(Num(2), Num(3)) == Num(6)
    assert mul(FRAME, Num(2.5)).render() == "frame * 2.5"


def test_scale_uses_integer_ratios() -> None:
    assert scale(FRAME, Fraction(1, 30)).render() == "frame / 30"
    assert scale(FRAME, Fraction(25, 12)).render() == "frame * 25 / 12"
    assert scale(FRAME, Fraction(2)).render() == "frame * 2"
    assert scale(FRAME, Fraction(1)) is FRAME
    assert mul(A, scale(FRAME, Fraction(25, 12))).render() == "a * (frame * 25 / 12)"


# ── JSX and modules ──────────────────────────────────────────


def test_jsx_attribute() -> None:
    assert JsxAttribute("className", 'a "b"').render() == 'className="a &quot;b&quot;"'
    style = JsxAttribute("style", ObjectLit((("color", Str("red")),)))
    assert style.render() == "style={{ color: 'red' }}"


def test_import_declaration() -> None:
    assert (
        ImportDecl("remotion", names=("AbsoluteFill", "useCurrentFrame")).render()
        == "import { AbsoluteFill, useCurrentFrame } from 'remotion';"
    )
    assert (
        ImportDecl("react", default="React", names=("useMemo",), quote='"').render()
        == 'import React, { useMemo } from "react";'
    )
    assert ImportDecl("./styles.css").render() == "import './styles.css';"


# ── Fragment ─────────────────────────────────────────────────


def test_fragment_substitutes_descendant() -> None:
    tree = parse("const v = Math.random() * 10;")
    product = first_node(tree.root, "binary_expression")
    call = first_node(tree.root, "call_expression")
    fragment = Fragment(
        product, {(call.start_byte, call.end_byte): Call(Ident("random"), (Str("seed"),))}
    )

    assert fragment.render() == "random('seed') * 10"
    assert fragment.precedence == 13


def test_fragment_brackets_low_precedence_substitute() -> None:
    tree = parse("const v = x * 10;")
    product = first_node(tree.root, "binary_expression")
    x = first_node(tree.root, "identifier", "x")
    fragment = Fragment(product, {(x.start_byte, x.end_byte): Binary("+", A, B)})
    assert fragment.render() == "(a + b) * 10"


def test_fragment_whole_node_substitution() -> None:
    tree = parse("const v = x * 10;")
    product = first_node(tree.root, "binary_expression")
    fragment = Fragment(product, {(product.start_byte, product.end_byte): Num(5)})
    assert fragment.render() == "5"
    assert fragment.precedence == Num(5).precedence


def test_fragment_without_substitutions_is_verbatim() -> None:
    tree = parse("const v = (a  +  b);")
    value = first_node(tree.root, "parenthesized_expression")
    assert Fragment(value).render() == "(a  +  b)"
