"""Structural emitter — builds JavaScript fragments from expression objects.

Replacement code is assembled from these nodes and printed here, so
operator precedence, quoting and object-literal layout are decided in
one place. ``Fragment`` re-prints an existing tree node with selected
sub-expressions substituted, which keeps untouched source verbatim.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from fractions import Fraction

from frameshift.analysis.nodes import Node, text

# ── Precedence ───────────────────────────────────────────

ASSIGN = 1
CONDITIONAL = 2
BINARY: dict[str, int] = {
    "??": 3,
    "||": 4,
    "&&": 5,
    "|": 6,
    "^": 7,
    "&": 8,
    "==": 9,
    "!=": 9,
    "===": 9,
    "!==": 9,
    "<": 10,
    ">": 10,
    "<=": 10,
    ">=": 10,
    "<<": 11,
    ">>": 11,
    ">>>": 11,
    "+": 12,
    "-": 12,
    "*": 13,
    "/": 13,
    "%": 13,
    "**": 14,
}
UNARY = 15
POSTFIX = 16
ATOM = 20

INDENT = "  "

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_NODE_PRECEDENCE: dict[str, int] = {
    "ternary_expression": CONDITIONAL,
    "conditional_expression": CONDITIONAL,
    "unary_expression": UNARY,
    "await_expression": UNARY,
    "update_expression": POSTFIX,
    "arrow_function": ASSIGN,
    "assignment_expression": ASSIGN,
    "augmented_assignment_expression": ASSIGN,
    "yield_expression": ASSIGN,
    "sequence_expression": 0,
    "as_expression": 10,
    "satisfies_expression": 10,
}


def format_number(value: float) -> str:
    """Shortest stable spelling of a number (six decimals at most)."""
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"cannot emit non-finite number {value!r}")
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    spelled = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if spelled in ("-0", "") else spelled


def quote_string(value: str, quote: str = "'") -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"{quote}{escaped}{quote}"


def property_key(name: str) -> str:
    return name if _IDENTIFIER.match(name) else quote_string(name)


# ── Expressions ──────────────────────────────────────────


class Expr:
    """Base class for emitted expressions."""

    precedence: int = ATOM

    def render(self, indent: str = "") -> str:
        raise NotImplementedError

    def wrapped(self, minimum: int, indent: str = "") -> str:
        code = self.render(indent)
        return f"({code})" if self.precedence < minimum else code

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class Ident(Expr):
    name: str

    def render(self, indent: str = "") -> str:
        return self.name


@dataclass(frozen=True)
class Num(Expr):
    value: float

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return UNARY if self.value < 0 else ATOM

    def render(self, indent: str = "") -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class Str(Expr):
    value: str
    quote: str = "'"

    def render(self, indent: str = "") -> str:
        return quote_string(self.value, self.quote)


@dataclass(frozen=True)
class Keyword(Expr):
    """``true``, ``false``, ``null`` or ``undefined``."""

    word: str

    def render(self, indent: str = "") -> str:
        return self.word


TRUE = Keyword("true")
FALSE = Keyword("false")
NULL = Keyword("null")


@dataclass(frozen=True)
class Member(Expr):
    obj: Expr
    prop: str

    def render(self, indent: str = "") -> str:
        if _IDENTIFIER.match(self.prop):
            return f"{self.obj.wrapped(POSTFIX, indent)}.{self.prop}"
        return f"{self.obj.wrapped(POSTFIX, indent)}[{quote_string(self.prop)}]"


@dataclass(frozen=True)
class Index(Expr):
    obj: Expr
    index: Expr

    def render(self, indent: str = "") -> str:
        return f"{self.obj.wrapped(POSTFIX, indent)}[{self.index.render(indent)}]"


@dataclass(frozen=True)
class Call(Expr):
    func: Expr
    args: tuple[Expr, ...] = ()

    def render(self, indent: str = "") -> str:
        args = ", ".join(a.wrapped(ASSIGN, indent) for a in self.args)
        return f"{self.func.wrapped(POSTFIX, indent)}({args})"


@dataclass(frozen=True)
class Binary(Expr):
    op: str
    left: Expr
    right: Expr

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return BINARY[self.op]

    def render(self, indent: str = "") -> str:
        prec = BINARY[self.op]
        left = self.left.wrapped(prec + 1 if self.op == "**" else prec, indent)
        right = self.right.wrapped(prec + 1, indent)
        return f"{left} {self.op} {right}"


@dataclass(frozen=True)
class Unary(Expr):
    op: str
    operand: Expr
    precedence = UNARY

    def render(self, indent: str = "") -> str:
        inner = self.operand.wrapped(UNARY, indent)
        if self.op.isalpha():
            return f"{self.op} {inner}"
        if inner.startswith(self.op[-1]):
            return f"{self.op}({self.operand.render(indent)})"
        return f"{self.op}{inner}"


@dataclass(frozen=True)
class Conditional(Expr):
    test: Expr
    then: Expr
    otherwise: Expr
    precedence = CONDITIONAL

    def render(self, indent: str = "") -> str:
        return (
            f"{self.test.wrapped(CONDITIONAL + 1, indent)}"
            f" ? {self.then.wrapped(ASSIGN, indent)}"
            f" : {self.otherwise.wrapped(ASSIGN, indent)}"
        )


@dataclass(frozen=True)
class ArrayLit(Expr):
    items: tuple[Expr, ...] = ()

    def render(self, indent: str = "") -> str:
        return "[" + ", ".join(i.wrapped(ASSIGN, indent) for i in self.items) + "]"


@dataclass(frozen=True)
class Spread:
    """``...expr`` entry inside an object literal."""

    value: Expr


@dataclass(frozen=True)
class ObjectLit(Expr):
    """Object literal; a bare ``Fragment`` entry reprints an existing entry."""

    entries: tuple[tuple[str, Expr] | Spread | Fragment, ...] = ()
    multiline: bool = False

    def _entry(self, entry: tuple[str, Expr] | Spread | Fragment, indent: str) -> str:
        if isinstance(entry, Fragment):
            return entry.render(indent)
        if isinstance(entry, Spread):
            return f"...{entry.value.wrapped(ASSIGN, indent)}"
        key, value = entry
        return f"{property_key(key)}: {value.wrapped(ASSIGN, indent)}"

    def render(self, indent: str = "") -> str:
        if not self.entries:
            return "{}"
        if not self.multiline:
            return "{ " + ", ".join(self._entry(e, indent) for e in self.entries) + " }"
        inner = indent + INDENT
        lines = [f"{inner}{self._entry(e, inner)}," for e in self.entries]
        return "{\n" + "\n".join(lines) + f"\n{indent}}}"


@dataclass(frozen=True)
class Arrow(Expr):
    params: tuple[str, ...]
    body: Expr | Block
    precedence = ASSIGN

    def render(self, indent: str = "") -> str:
        params = f"({', '.join(self.params)})"
        if isinstance(self.body, Block):
            return f"{params} => {self.body.render(indent)}"
        body = self.body.render(indent)
        if isinstance(self.body, ObjectLit):
            body = f"({body})"
        elif self.body.precedence < ASSIGN:
            body = f"({body})"
        return f"{params} => {body}"


@dataclass(frozen=True)
class Fragment(Expr):
    """Verbatim source of a node with some descendants replaced.

    ``substitutions`` maps ``(start_byte, end_byte)`` of descendant nodes
    to the expressions printed in their place; replaced ranges must not
    nest.
    """

    node: Node
    substitutions: Mapping[tuple[int, int], Expr] = field(
        default_factory=lambda: dict[tuple[int, int], Expr]()
    )

    @property
    def precedence(self) -> int:  # type: ignore[override]
        if not self.substitutions or (
            self.node.start_byte,
            self.node.end_byte,
        ) not in self.substitutions:
            return _node_precedence(self.node)
        return self.substitutions[(self.node.start_byte, self.node.end_byte)].precedence

    def render(self, indent: str = "") -> str:
        source = self.node.text or b""
        base = self.node.start_byte
        whole = (self.node.start_byte, self.node.end_byte)
        if whole in self.substitutions:
            return self.substitutions[whole].render(indent)
        pieces: list[str] = []
        pos = 0
        for (start, end), expr in sorted(self.substitutions.items()):
            if start < base + pos:
                continue
            pieces.append(source[pos:start - base].decode("utf-8"))
            # a substituted node keeps its own precedence slot; bracket it
            code = expr.render(indent)
            pieces.append(code if expr.precedence >= POSTFIX else f"({code})")
            pos = end - base
        pieces.append(source[pos:].decode("utf-8"))
        return "".join(pieces)


def _node_precedence(node: Node) -> int:
    if node.type == "binary_expression":
        op = node.child_by_field_name("operator")
        return BINARY.get(text(op), ASSIGN)
    return _NODE_PRECEDENCE.get(node.type, ATOM)


# ── Statements ───────────────────────────────────────────


class Statement:
    def render(self, indent: str = "") -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Const(Statement):
    name: str
    value: Expr

    def render(self, indent: str = "") -> str:
        return f"const {self.name} = {self.value.wrapped(ASSIGN, indent)};"


@dataclass(frozen=True)
class Return(Statement):
    value: Expr

    def render(self, indent: str = "") -> str:
        return f"return {self.value.render(indent)};"


@dataclass(frozen=True)
class Verbatim(Statement):
    """An existing statement node reprinted with substitutions."""

    fragment: Fragment

    def render(self, indent: str = "") -> str:
        return self.fragment.render(indent)


@dataclass(frozen=True)
class Block:
    statements: tuple[Statement, ...]

    def render(self, indent: str = "") -> str:
        if not self.statements:
            return "{}"
        inner = indent + INDENT
        lines = [f"{inner}{s.render(inner)}" for s in self.statements]
        return "{\n" + "\n".join(lines) + f"\n{indent}}}"


def render_statements(statements: Sequence[Statement], indent: str) -> str:
    """Statements one per line; the first line carries no indent."""
    return f"\n{indent}".join(s.render(indent) for s in statements)


# ── JSX and modules ──────────────────────────────────────


@dataclass(frozen=True)
class JsxAttribute:
    name: str
    value: Expr | str

    def render(self, indent: str = "") -> str:
        if isinstance(self.value, str):
            return f'{self.name}="{self.value.replace(chr(34), "&quot;")}"'
        return f"{self.name}={{{self.value.render(indent)}}}"


@dataclass(frozen=True)
class ImportDecl(Statement):
    source: str
    default: str | None = None
    names: tuple[str, ...] = ()
    quote: str = "'"

    def render(self, indent: str = "") -> str:
        clauses: list[str] = []
        if self.default:
            clauses.append(self.default)
        if self.names:
            clauses.append("{ " + ", ".join(self.names) + " }")
        source = quote_string(self.source, self.quote)
        if not clauses:
            return f"import {source};"
        return f"import {', '.join(clauses)} from {source};"


# ── Arithmetic helpers ───────────────────────────────────


def add(left: Expr, right: Expr) -> Expr:
    if isinstance(right, Num) and right.value == 0:
        return left
    if isinstance(left, Num) and left.value == 0:
        return right
    if isinstance(right, Num) and right.value < 0:
        return Binary("-", left, Num(-right.value))
    return Binary("+", left, right)


def mul(left: Expr, right: Expr) -> Expr:
    if isinstance(left, Num) and left.value == 1:
        return right
    if isinstance(right, Num) and right.value == 1:
        return left
    if isinstance(left, Num) and isinstance(right, Num):
        return Num(left.value * right.value)
    return Binary("*", left, right)


def scale(value: Expr, factor: Fraction) -> Expr:
    """``value * factor`` spelled with integers only, multiplying first."""
    if factor.denominator == 1:
        return mul(value, Num(factor.numerator))
    if factor.numerator == 1:
        return Binary("/", value, Num(factor.denominator))
    return Binary("/", mul(value, Num(factor.numerator)), Num(factor.denominator))


def floor(value: Expr) -> Expr:
    return Call(Member(Ident("Math"), "floor"), (value,))
