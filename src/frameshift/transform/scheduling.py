"""Scheduling removal — effects, handlers and attributes made obsolete.

Once a binding is derived from the frame counter, the timers and
handlers that used to drive it are dead weight. A piece of code is
removable when everything it does is one of: calling a rewritten
setter, setting up or cancelling a timer whose callback is itself
removable, filling a local population array, or pure bookkeeping.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from frameshift.analysis.nodes import (
    Node,
    call_arguments,
    callee,
    contains,
    function_body,
    identifier_references,
    is_function,
    jsx_attribute_name,
    jsx_attribute_value,
    jsx_expression_content,
    named,
    text,
    unwrap,
    walk,
)
from frameshift.analysis.shapes import Lookup, is_pure
from frameshift.constants import CANCELLERS, EFFECT_HOOKS, SCHEDULERS

logger = logging.getLogger(__name__)

_HANDLER_ATTR = re.compile(r"^on[A-Z]")
_BOOKKEEPING_TARGETS = frozenset({"identifier", "member_expression", "subscript_expression"})


class Removability:
    """Decides whether code only drives the given setters.

    Recursive handlers (``requestAnimationFrame(animate)`` inside
    ``animate``) are assumed removable while they are being checked.
    """

    def __init__(self, setters: Iterable[str], lookup: Lookup) -> None:
        self.setters = frozenset(setters)
        self.lookup = lookup
        self._visiting: set[tuple[int, int]] = set()

    def function(self, fn: Node) -> bool:
        key = (fn.start_byte, fn.end_byte)
        if key in self._visiting:
            return True
        self._visiting.add(key)
        try:
            body = function_body(fn)
            if body is None:
                return False
            if body.type == "statement_block":
                return all(self.statement(s) for s in named(body))
            return self.expression(body)
        finally:
            self._visiting.discard(key)

    def callback(self, node: Node | None) -> bool:
        node = unwrap(node)
        if node is None:
            return False
        if is_function(node):
            return self.function(node)
        if node.type == "identifier":
            target = unwrap(self.lookup.value_of(text(node), node))
            if target is not None and (is_function(target) or target.type == "function_declaration"):
                return self.function(target)
            hooked = _hook_callback(target)
            if hooked is not None:
                return self.function(hooked)
        return False

    def expression(self, node: Node | None) -> bool:
        node = unwrap(node)
        if node is None:
            return True
        match node.type:
            case "call_expression":
                name = callee(node) or ""
                if name in self.setters:
                    return True
                if name in CANCELLERS or name.endswith(".removeEventListener"):
                    return True
                if name.endswith(".addEventListener"):
                    args = call_arguments(node)
                    return len(args) > 1 and self.callback(args[1])
                if name in SCHEDULERS:
                    args = call_arguments(node)
                    return bool(args) and self.callback(args[0])
                return False
            case "assignment_expression":
                left = node.child_by_field_name("left")
                right = unwrap(node.child_by_field_name("right"))
                if left is None or left.type not in _BOOKKEEPING_TARGETS:
                    return False
                if left.type != "identifier" and not _is_ref_slot(left):
                    return False
                if right is not None and right.type == "call_expression":
                    return self.expression(right)
                return right is None or is_pure(right)
            case "augmented_assignment_expression" | "update_expression":
                target = node.child_by_field_name("left") or node.child_by_field_name("argument")
                return target is not None and (target.type == "identifier" or _is_ref_slot(target))
            case "sequence_expression" | "binary_expression" | "ternary_expression" | "conditional_expression":
                return all(self.expression(c) for c in named(node))
            case "await_expression" | "yield_expression":
                return False
        if is_function(node):
            return True
        return is_pure(node)

    def statement(self, stmt: Node) -> bool:
        match stmt.type:
            case "expression_statement":
                return all(self.expression(e) for e in named(stmt))
            case "lexical_declaration" | "variable_declaration":
                for declarator in named(stmt):
                    if declarator.type != "variable_declarator":
                        continue
                    value = unwrap(declarator.child_by_field_name("value"))
                    if value is None:
                        continue
                    if is_function(value):
                        if not self.function(value):
                            return False
                    elif not self.expression(value):
                        return False
                return True
            case "function_declaration":
                return self.function(stmt)
            case "for_statement":
                return _is_population_loop(stmt)
            case "return_statement":
                inner = named(stmt)
                if not inner:
                    return True
                value = unwrap(inner[0])
                if is_function(value):
                    return self.function(value)  # type: ignore[arg-type]
                return self.expression(value)
            case "if_statement":
                condition = stmt.child_by_field_name("condition")
                if condition is not None and not is_pure(condition):
                    return False
                return all(
                    self.statement(c)
                    for c in named(stmt)
                    if c.type != "parenthesized_expression"
                )
            case "else_clause" | "statement_block":
                return all(self.statement(c) for c in named(stmt))
            case "empty_statement":
                return True
        return False


def _is_ref_slot(node: Node) -> bool:
    """``someRef.current`` style mutable slot."""
    return node.type == "member_expression" and text(node.child_by_field_name("property")) == "current"


def _is_population_loop(loop: Node) -> bool:
    for n in walk(loop):
        if n.type == "call_expression":
            name = callee(n) or ""
            if not (name.endswith(".push") or name.startswith("Math.")):
                return False
        elif n.type in ("await_expression", "yield_expression", "new_expression"):
            return False
    return True


def _hook_callback(node: Node | None) -> Node | None:
    """The function wrapped by ``useCallback(fn, deps)``."""
    node = unwrap(node)
    if node is None or node.type != "call_expression" or callee(node) != "useCallback":
        return None
    args = call_arguments(node)
    fn = unwrap(args[0]) if args else None
    return fn if is_function(fn) else None


# ── Removal plan ─────────────────────────────────────────


@dataclass(frozen=True)
class RemovalPlan:
    """Statements and attributes to delete from the artifact."""

    effects: tuple[Node, ...] = ()
    attributes: tuple[Node, ...] = ()
    handlers: tuple[Node, ...] = ()

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self.effects + self.attributes + self.handlers

    def covers(self, node: Node) -> bool:
        return any(contains(removed, node) for removed in self.nodes)


def plan_removals(root: Node, setters: Iterable[str], lookup: Lookup) -> RemovalPlan:
    """Find every effect, ``on*`` attribute and handler that only drives ``setters``."""
    checker = Removability(setters, lookup)
    if not checker.setters:
        return RemovalPlan()

    effects: list[Node] = []
    attributes: list[Node] = []
    for node in walk(root):
        if node.type == "call_expression" and callee(node) in EFFECT_HOOKS:
            statement = node.parent
            if statement is None or statement.type != "expression_statement":
                continue
            args = call_arguments(node)
            fn = unwrap(args[0]) if args else None
            if is_function(fn) and _drives(fn, checker) and checker.function(fn):  # type: ignore[arg-type]
                effects.append(statement)
        elif node.type == "jsx_attribute" and _HANDLER_ATTR.match(jsx_attribute_name(node)):
            handler = jsx_expression_content(jsx_attribute_value(node))
            if handler is not None and checker.callback(handler):
                attributes.append(node)

    plan = RemovalPlan(tuple(effects), tuple(attributes))
    handlers: list[Node] = []
    changed = True
    while changed:
        changed = False
        for declaration, name, fn in _handler_declarations(root):
            if declaration in handlers or plan.covers(declaration):
                continue
            references = [
                r for r in identifier_references(root, name)
                if not contains(declaration, r)
            ]
            if all(plan.covers(r) for r in references) and checker.function(fn):
                handlers.append(declaration)
                plan = RemovalPlan(plan.effects, plan.attributes, tuple(handlers))
                changed = True
    logger.debug(
        "event=removals_planned effects=%d attributes=%d handlers=%d",
        len(plan.effects),
        len(plan.attributes),
        len(plan.handlers),
    )
    return plan


def _drives(fn: Node, checker: Removability, depth: int = 0) -> bool:
    """Effects that touch none of the setters are not ours to remove."""
    for n in walk(fn):
        if n.type != "identifier":
            continue
        if text(n) in checker.setters:
            return True
        if depth < 2:
            target = unwrap(checker.lookup.value_of(text(n), n))
            if target is not None and not contains(fn, target) and (
                is_function(target) or target.type == "function_declaration"
            ):
                if _drives(target, checker, depth + 1):
                    return True
    return False


def _handler_declarations(root: Node) -> list[tuple[Node, str, Node]]:
    found: list[tuple[Node, str, Node]] = []
    for node in walk(root):
        if node.type == "function_declaration":
            name = node.child_by_field_name("name")
            if name is not None and node.parent is not None and node.parent.type == "statement_block":
                found.append((node, text(name), node))
        elif node.type == "lexical_declaration" and node.parent is not None and node.parent.type == "statement_block":
            declarators = [d for d in named(node) if d.type == "variable_declarator"]
            if len(declarators) != 1:
                continue
            target = declarators[0].child_by_field_name("name")
            value = unwrap(declarators[0].child_by_field_name("value"))
            fn = value if is_function(value) else _hook_callback(value)
            if target is not None and target.type == "identifier" and fn is not None:
                found.append((node, text(target), fn))
    return found


def scheduler_calls(root: Node) -> list[Node]:
    return [
        n for n in walk(root)
        if n.type == "call_expression" and callee(n) in SCHEDULERS
    ]


# ── Spans ────────────────────────────────────────────────


def statement_span(source: bytes, node: Node) -> tuple[int, int]:
    """Byte span of a statement, widened to whole lines when it owns them."""
    start, end = node.start_byte, node.end_byte
    line_start = start
    while line_start > 0 and source[line_start - 1:line_start] in (b" ", b"\t"):
        line_start -= 1
    if line_start > 0 and source[line_start - 1:line_start] != b"\n":
        return start, end
    line_end = end
    while line_end < len(source) and source[line_end:line_end + 1] in (b" ", b"\t"):
        line_end += 1
    if line_end < len(source) and source[line_end:line_end + 1] not in (b"\n", b"\r"):
        return start, end
    if source[line_end:line_end + 2] == b"\r\n":
        line_end += 2
    elif line_end < len(source):
        line_end += 1
    if _follows_blank(source, line_start):
        following = _blank_line_end(source, line_end)
        if following is not None:
            line_end = following
    return line_start, line_end


def _blank_line_end(source: bytes, offset: int) -> int | None:
    """End of the whitespace-only line starting at ``offset``, if it is one."""
    end = offset
    while end < len(source) and source[end:end + 1] in (b" ", b"\t", b"\r"):
        end += 1
    if source[end:end + 1] != b"\n":
        return None
    return end + 1


def _follows_blank(source: bytes, line_start: int) -> bool:
    if line_start == 0:
        return False
    previous = source.rfind(b"\n", 0, line_start - 1) + 1
    return _blank_line_end(source, previous) == line_start


def attribute_span(source: bytes, node: Node) -> tuple[int, int]:
    """Byte span of a JSX attribute together with the whitespace before it."""
    start = node.start_byte
    while start > 0 and source[start - 1:start] in (b" ", b"\t", b"\n", b"\r"):
        start -= 1
    return start, node.end_byte


def line_indent(source: bytes, offset: int) -> str:
    """Leading whitespace of the line containing ``offset``."""
    line_start = source.rfind(b"\n", 0, offset) + 1
    end = line_start
    while end < len(source) and source[end:end + 1] in (b" ", b"\t"):
        end += 1
    return source[line_start:end].decode("utf-8")
