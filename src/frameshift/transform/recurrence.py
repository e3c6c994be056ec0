"""Recurrence analysis — solve timer-driven updaters in closed form.

An updater such as ``p => ({ ...p, x: p.x + p.vx })`` applied once per
tick is a recurrence over tick count ``n``. Each property's update is
classified (hold, linear, integrated velocity, periodic, toggle, reset)
and then printed as a pure expression of ``n``. Anything else is
opaque and carries a best-effort fallback recurrence.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Literal

from frameshift.analysis.nodes import (
    Node,
    body_statements,
    call_arguments,
    callee,
    is_function,
    member_parts,
    named,
    number_value,
    object_entries,
    parameter_patterns,
    pattern_keys,
    returned_expression,
    text,
    unwrap,
    walk,
)
from frameshift.transform.emit import (
    Binary,
    Conditional,
    Expr,
    Num,
    Unary,
    add,
    floor,
    mul,
)

SELF = ""  # key of a scalar's own previous value


# ── Recurrence variants ──────────────────────────────────


@dataclass(frozen=True)
class Hold:
    """Value never changes."""


@dataclass(frozen=True)
class Linear:
    """``v + sign * step`` each tick."""

    step: Node
    sign: int = 1


@dataclass(frozen=True)
class Integrated:
    """``v + sign * velocity`` where ``velocity`` itself moves linearly."""

    velocity: str
    sign: int = 1


@dataclass(frozen=True)
class Periodic:
    """``(v + sign * step) % modulus`` each tick."""

    step: Node
    modulus: Node
    sign: int = 1


@dataclass(frozen=True)
class Toggle:
    """``!v`` each tick."""


@dataclass(frozen=True)
class Reset:
    """Assigned a value that does not depend on the previous state."""

    value: Node


@dataclass(frozen=True)
class Opaque:
    """Not solvable; ``fallback`` is the best-effort approximation."""

    reason: str
    fallback: Recurrence = field(default_factory=Hold)


type Recurrence = Hold | Linear | Integrated | Periodic | Toggle | Reset | Opaque

_MOTION = (Linear, Integrated, Periodic, Toggle)


# ── Subjects ─────────────────────────────────────────────


@dataclass(frozen=True)
class Subject:
    """How an updater refers to the previous value.

    ``scalars`` are identifiers that are the previous value itself,
    ``element`` is an identifier whose members are previous properties,
    ``aliases`` maps destructured identifiers to the property they hold.
    """

    scalars: frozenset[str] = frozenset()
    element: str | None = None
    aliases: Mapping[str, str] = field(default_factory=lambda: dict[str, str]())

    def key_of(self, node: Node | None) -> str | None:
        node = unwrap(node)
        if node is None:
            return None
        if node.type in ("identifier", "shorthand_property_identifier"):
            name = text(node)
            if name in self.scalars:
                return SELF
            return self.aliases.get(name)
        parts = member_parts(node)
        if parts is not None and self.element is not None:
            obj, prop = parts
            if unwrap(obj) is not None and unwrap(obj).type == "identifier" and text(unwrap(obj)) == self.element:
                return prop
        return None

    def is_bare_element(self, node: Node) -> bool:
        """A reference to the element object not followed by ``.prop``."""
        if self.element is None or node.type != "identifier" or text(node) != self.element:
            return False
        parent = node.parent
        return not (
            parent is not None
            and parent.type == "member_expression"
            and parent.child_by_field_name("object") == node
        )


@dataclass(frozen=True)
class Scope:
    """Block-local constants of an updater callback."""

    locals: Mapping[str, Node] = field(default_factory=lambda: dict[str, Node]())
    reassigned: frozenset[str] = frozenset()


def referenced_keys(node: Node | None, subject: Subject, scope: Scope) -> set[str]:
    """Previous-value keys an expression reads (locals followed)."""
    keys: set[str] = set()
    if node is None:
        return keys
    seen_locals: set[str] = set()
    stack = [node]
    while stack:
        for n in walk(stack.pop()):
            if n.type == "member_expression":
                key = subject.key_of(n)
                if key is not None:
                    keys.add(key)
            elif n.type in ("identifier", "shorthand_property_identifier"):
                name = text(n)
                if name in subject.scalars:
                    keys.add(SELF)
                elif name in subject.aliases:
                    keys.add(subject.aliases[name])
                elif name in scope.locals and name not in seen_locals:
                    seen_locals.add(name)
                    stack.append(scope.locals[name])
    return keys


def references_whole_element(node: Node, subject: Subject, scope: Scope) -> bool:
    for n in walk(node):
        if subject.is_bare_element(n):
            return True
        if n.type == "identifier" and text(n) in scope.locals:
            if references_whole_element(scope.locals[text(n)], subject, Scope()):
                return True
    return False


# ── Classification ───────────────────────────────────────


def classify_update(
    node: Node | None, key: str, subject: Subject, scope: Scope
) -> Recurrence:
    """Classify the new value ``node`` of property ``key``."""
    node = unwrap(node)
    if node is None:
        return Opaque("missing update expression")

    if node.type == "identifier" and text(node) in scope.locals:
        name = text(node)
        inner = classify_update(scope.locals[name], key, subject, scope)
        if name in scope.reassigned:
            return Opaque(f"local {name!r} is reassigned", _best_effort(inner))
        return inner

    if subject.key_of(node) == key:
        return Hold()

    if references_whole_element(node, subject, scope):
        return Opaque("update reads the whole previous element")

    if node.type == "binary_expression":
        op = text(node.child_by_field_name("operator"))
        left = unwrap(node.child_by_field_name("left"))
        right = unwrap(node.child_by_field_name("right"))
        if op in ("+", "-") and left is not None and right is not None:
            if _is_self(left, key, subject, scope) and key not in referenced_keys(right, subject, scope):
                return Linear(right, 1 if op == "+" else -1)
            if op == "+" and _is_self(right, key, subject, scope) and key not in referenced_keys(left, subject, scope):
                return Linear(left, 1)
        if op == "%" and left is not None and right is not None:
            inner = classify_update(left, key, subject, scope)
            if isinstance(inner, Linear) and not referenced_keys(right, subject, scope):
                return Periodic(inner.step, right, inner.sign)

    if node.type == "unary_expression":
        op = text(node.child_by_field_name("operator"))
        if op == "!" and _is_self(node.child_by_field_name("argument"), key, subject, scope):
            return Toggle()

    if node.type in ("ternary_expression", "conditional_expression"):
        branches = [
            classify_update(node.child_by_field_name(f), key, subject, scope)
            for f in ("alternative", "consequence")
        ]
        return Opaque("conditional update", _pick_motion(branches))

    if node.type == "call_expression" and callee(node) in ("Math.max", "Math.min"):
        branches = [classify_update(a, key, subject, scope) for a in call_arguments(node)]
        return Opaque("clamped update", _pick_motion(branches))

    if not referenced_keys(node, subject, scope):
        return Reset(node)
    return Opaque("update is not a closed form")


def _is_self(node: Node | None, key: str, subject: Subject, scope: Scope) -> bool:
    node = unwrap(node)
    if node is None:
        return False
    if node.type == "identifier" and text(node) in scope.locals and text(node) not in scope.reassigned:
        return _is_self(scope.locals[text(node)], key, subject, scope)
    return subject.key_of(node) == key


def _best_effort(rec: Recurrence) -> Recurrence:
    return rec.fallback if isinstance(rec, Opaque) else rec


def _pick_motion(branches: list[Recurrence]) -> Recurrence:
    candidates = [_best_effort(b) for b in branches]
    for rec in candidates:
        if isinstance(rec, _MOTION):
            return rec
    return Hold()


def solve(
    recurrences: Mapping[str, Recurrence], subject: Subject, scope: Scope
) -> dict[str, Recurrence]:
    """Resolve cross-property steps; integrate velocity references."""

    def moving(node: Node) -> set[str]:
        return {
            k for k in referenced_keys(node, subject, scope)
            if not isinstance(recurrences.get(k, Hold()), Hold)
        }

    def resolve(rec: Recurrence) -> Recurrence:
        match rec:
            case Linear(step=step, sign=sign):
                changing = moving(step)
                if not changing:
                    return rec
                target = subject.key_of(step)
                velocity = recurrences.get(target) if target is not None else None
                if isinstance(velocity, Linear) and not moving(velocity.step):
                    return Integrated(target, sign)  # type: ignore[arg-type]
                return Opaque("step depends on a changing property", rec)
            case Periodic(step=step, modulus=modulus):
                if moving(step) or moving(modulus):
                    return Opaque("periodic step depends on a changing property", Hold())
                return rec
            case Reset(value=value):
                if moving(value):
                    return Opaque("reset value depends on a changing property", Hold())
                return rec
            case Opaque(reason=reason, fallback=fallback):
                inner = resolve(fallback)
                if isinstance(inner, Opaque):
                    inner = inner.fallback
                return Opaque(reason, inner)
            case _:
                return rec

    return {key: resolve(rec) for key, rec in recurrences.items()}


# ── Updater extraction ───────────────────────────────────


@dataclass(frozen=True)
class UpdatePlan:
    """Per-property recurrences of one setter call."""

    shape: Literal["scalar", "object", "collection"]
    recurrences: dict[str, Recurrence]
    subject: Subject
    scope: Scope
    index_name: str | None = None
    spread_previous: bool = True


def extract_plan(
    argument: Node | None,
    state_name: str,
    shape: Literal["scalar", "object", "collection"],
) -> UpdatePlan | str:
    """Build an update plan from a setter argument, or a reason it is opaque."""
    argument = unwrap(argument)
    if argument is None:
        return "setter called without a value"

    previous = state_name
    body: Node | None = argument
    scope = Scope()
    if is_function(argument):
        params = parameter_patterns(argument)
        if params:
            if params[0].type != "identifier":
                return "updater parameter is destructured"
            previous = text(params[0])
        result = _callback_body(argument)
        if isinstance(result, str):
            return result
        body, scope = result

    if shape == "scalar":
        subject = Subject(scalars=frozenset({previous}))
        rec = classify_update(body, SELF, subject, scope)
        return UpdatePlan("scalar", {SELF: rec}, subject, scope)

    if shape == "object":
        subject = Subject(element=previous)
        return _object_plan(body, previous, subject, scope, "object")

    # collection: previous.map(element => ({...}))
    body = unwrap(body)
    if body is None or body.type != "call_expression":
        return "collection update is not a map over the previous value"
    fn = body.child_by_field_name("function")
    parts = member_parts(fn) if fn is not None else None
    if parts is None or parts[1] != "map" or text(unwrap(parts[0])) != previous:
        return "collection update is not a map over the previous value"
    args = named(body.child_by_field_name("arguments")) if body.child_by_field_name("arguments") else []
    callback = unwrap(args[0]) if args else None
    if not is_function(callback):
        return "map callback is not an inline function"
    params = parameter_patterns(callback)  # type: ignore[arg-type]
    if not params:
        return "map callback takes no element"
    index_name = text(params[1]) if len(params) > 1 and params[1].type == "identifier" else None
    result = _callback_body(callback)  # type: ignore[arg-type]
    if isinstance(result, str):
        return result
    element_body, element_scope = result
    if params[0].type == "identifier":
        subject = Subject(element=text(params[0]))
        plan = _object_plan(element_body, text(params[0]), subject, element_scope, "collection")
    elif params[0].type == "object_pattern":
        aliases = {k: k for k in pattern_keys(params[0])}
        subject = Subject(aliases=aliases)
        plan = _object_plan(element_body, None, subject, element_scope, "collection")
    else:
        return "map element parameter is not an identifier"
    if isinstance(plan, str):
        return plan
    return UpdatePlan(
        "collection",
        plan.recurrences,
        plan.subject,
        plan.scope,
        index_name=index_name,
        spread_previous=plan.spread_previous,
    )


def _callback_body(fn: Node) -> tuple[Node, Scope] | str:
    statements = body_statements(fn)
    if statements is None:
        expr = returned_expression(fn)
        return (expr, Scope()) if expr is not None else "updater has no body"
    locals_: dict[str, Node] = {}
    lets: set[str] = set()
    reassigned: set[str] = set()
    for stmt in statements[:-1]:
        if stmt.type in ("lexical_declaration", "variable_declaration"):
            for decl in named(stmt):
                if decl.type != "variable_declarator":
                    continue
                name = decl.child_by_field_name("name")
                value = decl.child_by_field_name("value")
                if name is None or name.type != "identifier" or value is None:
                    return "updater declares a destructured or empty local"
                locals_[text(name)] = value
                if not text(stmt).startswith("const"):
                    lets.add(text(name))
        elif stmt.type in ("if_statement", "expression_statement"):
            for n in walk(stmt):
                if n.type in ("assignment_expression", "augmented_assignment_expression"):
                    target = n.child_by_field_name("left")
                    if target is not None and target.type == "identifier" and text(target) in lets:
                        reassigned.add(text(target))
                        continue
                    return "updater mutates state outside its locals"
                if n.type == "update_expression":
                    arg = n.child_by_field_name("argument")
                    if arg is not None and text(arg) in lets:
                        reassigned.add(text(arg))
                        continue
                    return "updater mutates state outside its locals"
            top = named(stmt)
            if stmt.type == "expression_statement" and top and top[0].type == "call_expression":
                return "updater calls functions for side effects"
        else:
            return f"updater contains a {stmt.type.replace('_', ' ')}"
    expr = returned_expression(fn)
    if expr is None:
        return "updater does not return a value"
    return expr, Scope(locals_, frozenset(reassigned))


def _object_plan(
    body: Node | None,
    element: str | None,
    subject: Subject,
    scope: Scope,
    shape: Literal["object", "collection"],
) -> UpdatePlan | str:
    body = unwrap(body)
    if body is None or body.type != "object":
        return "update does not build an object literal"
    recurrences: dict[str, Recurrence] = {}
    spread = False
    for key, value in object_entries(body):
        if key is None:
            if element is not None and unwrap(value) is not None and text(unwrap(value)) == element:
                spread = True
                continue
            return "update spreads something other than the previous value"
        recurrences[key] = classify_update(value, key, subject, scope)
    return UpdatePlan(shape, solve(recurrences, subject, scope), subject, scope, spread_previous=spread)


# ── Closed forms ─────────────────────────────────────────


def is_low_fidelity(rec: Recurrence) -> bool:
    return isinstance(rec, Opaque)


def closed_form(
    rec: Recurrence,
    initial: Expr,
    ticks: Expr,
    render: Callable[[Node], Expr],
    initial_of: Callable[[str], Expr],
    recurrences: Mapping[str, Recurrence],
) -> Expr:
    """Value after ``ticks`` applications of ``rec`` starting at ``initial``."""
    match rec:
        case Hold():
            return initial
        case Linear(step=step, sign=sign):
            return _signed(initial, mul(_step(step, render), ticks), sign)
        case Integrated(velocity=velocity, sign=sign):
            accel = recurrences[velocity]
            if not isinstance(accel, Linear):
                raise TypeError(f"velocity {velocity!r} has no linear acceleration")
            accel_step = _step(accel.step, render)
            if accel.sign < 0:
                accel_step = Unary("-", accel_step)
            triangle = Binary(
                "/", Binary("*", ticks, Binary("-", ticks, Num(1))), Num(2)
            )
            drift = add(
                mul(initial_of(velocity), ticks), mul(accel_step, triangle)
            )
            return _signed(initial, drift, sign)
        case Periodic(step=step, modulus=modulus, sign=sign):
            return Binary("%", _signed(initial, mul(_step(step, render), ticks), sign), render(modulus))
        case Toggle():
            odd = Binary("===", Binary("%", floor(ticks), Num(2)), Num(1))
            return Conditional(odd, Unary("!", initial), initial)
        case Reset(value=value):
            target = render(value)
            if target.render() == initial.render():
                return initial
            return Conditional(Binary(">=", ticks, Num(1)), target, initial)
        case Opaque(fallback=fallback):
            return closed_form(fallback, initial, ticks, render, initial_of, recurrences)
    raise TypeError(f"unknown recurrence {rec!r}")


def _step(node: Node, render: Callable[[Node], Expr]) -> Expr:
    value = number_value(node)
    return Num(value) if value is not None else render(node)


def _signed(initial: Expr, delta: Expr, sign: int) -> Expr:
    if sign < 0:
        return Binary("-", initial, delta)
    return add(initial, delta)


def is_integral_step(rec: Recurrence) -> bool:
    """True when every tick moves the value by a whole number."""
    match rec:
        case Linear(step=step) | Periodic(step=step):
            node = unwrap(step)
            return node is not None and node.type == "number" and "." not in text(node)
        case Toggle() | Reset() | Hold():
            return True
    return False

