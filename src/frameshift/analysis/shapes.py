"""Static shape inference for state initializers and populations.

Shapes are read from literals or from generator-style code that can be
walked without running it: ``Array.from({ length: N }, fn)``, array
constructor chains ending in ``.map(fn)``, and ``for`` loops that push
object literals into a local array. Anything else is opaque.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Literal

from frameshift.analysis.nodes import (
    Node,
    ancestors,
    body_statements,
    call_arguments,
    callee,
    is_function,
    member_parts,
    named,
    number_value,
    object_entries,
    parameter_patterns,
    returned_expression,
    text,
    unwrap,
    walk,
)
from frameshift.analysis.schemas import KnownShape, PropertySpec
from frameshift.constants import ValueKind

MAX_ELEMENTS = 100_000
_MAX_DEPTH = 4

_PURE_CALLS = frozenset({
    "Number", "String", "Boolean", "parseInt", "parseFloat", "isNaN",
})
_SCOPE_TYPES = frozenset({"statement_block", "program", "switch_body"})


@dataclass(frozen=True)
class PropertySource:
    """One property of a populated object and the node computing it."""

    name: str
    kind: ValueKind
    value: Node


@dataclass(frozen=True)
class Population:
    """How the initial value of a binding is produced."""

    origin: Literal["literal", "generator", "loop", "expression"]
    value_kind: ValueKind
    collection: bool = False
    properties: tuple[PropertySource, ...] = ()
    count: int | None = None
    index_name: str | None = None
    locals: tuple[Node, ...] = ()
    literal: Node | None = None
    element: Node | None = None

    def shape(self) -> KnownShape:
        return KnownShape(
            properties=tuple(PropertySpec(name=p.name, kind=p.kind) for p in self.properties),
            value_kind=self.value_kind,
            collection=self.collection,
            element_count=self.count,
        )

    def source_of(self, name: str) -> PropertySource | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    @property
    def is_empty_collection(self) -> bool:
        return self.collection and self.count == 0


# ── Declarations ─────────────────────────────────────────


@dataclass(frozen=True)
class Declaration:
    scope: Node
    node: Node  # declarator, function declaration or parameter
    value: Node | None
    constant: bool


class Lookup:
    """Lexical name lookup by walking enclosing blocks outward."""

    def __init__(self, root: Node) -> None:
        self.root = root

    def find(self, name: str, at: Node) -> Declaration | None:
        for scope in self._scopes(at):
            if is_function(scope):
                for param in parameter_patterns(scope):
                    if param.type == "identifier" and text(param) == name:
                        return Declaration(scope, param, None, False)
                    if param.type == "object_pattern" and name in _pattern_names(param):
                        return Declaration(scope, param, None, False)
                continue
            found = self._declared_in(scope, name)
            if found is not None:
                return found
        return None

    def value_of(self, name: str, at: Node) -> Node | None:
        found = self.find(name, at)
        return found.value if found is not None else None

    def number(self, name: str, at: Node) -> float | None:
        found = self.find(name, at)
        if found is None or not found.constant:
            return None
        return number_value(found.value)

    def _scopes(self, at: Node) -> list[Node]:
        scopes = [a for a in ancestors(at) if a.type in _SCOPE_TYPES or is_function(a)]
        if at.type in _SCOPE_TYPES:
            scopes.insert(0, at)
        return scopes

    def _declared_in(self, scope: Node, name: str) -> Declaration | None:
        for stmt in named(scope):
            if stmt.type == "export_statement":
                inner = stmt.child_by_field_name("declaration")
                if inner is None:
                    continue
                stmt = inner
            if stmt.type in ("lexical_declaration", "variable_declaration"):
                constant = text(stmt).startswith("const")
                for decl in named(stmt):
                    if decl.type != "variable_declarator":
                        continue
                    target = decl.child_by_field_name("name")
                    if target is None:
                        continue
                    if target.type == "identifier" and text(target) == name:
                        return Declaration(scope, decl, decl.child_by_field_name("value"), constant)
                    if target.type in ("array_pattern", "object_pattern") and name in _pattern_names(target):
                        return Declaration(scope, decl, None, constant)
            elif stmt.type in ("function_declaration", "generator_function_declaration", "class_declaration"):
                target = stmt.child_by_field_name("name")
                if target is not None and text(target) == name:
                    return Declaration(scope, stmt, stmt, True)
            elif stmt.type == "import_statement":
                if name in _imported_names(stmt):
                    return Declaration(scope, stmt, None, True)
        return None


def _pattern_names(pattern: Node) -> set[str]:
    return {
        text(n) for n in walk(pattern)
        if n.type in ("identifier", "shorthand_property_identifier_pattern")
    }


def _imported_names(stmt: Node) -> set[str]:
    names: set[str] = set()
    for n in walk(stmt):
        if n.type == "import_specifier":
            alias = n.child_by_field_name("alias") or n.child_by_field_name("name")
            if alias is not None:
                names.add(text(alias))
        elif n.type == "import_clause":
            for child in named(n):
                if child.type == "identifier":
                    names.add(text(child))
        elif n.type == "namespace_import":
            for child in named(n):
                if child.type == "identifier":
                    names.add(text(child))
    return names


# ── Kinds ────────────────────────────────────────────────


def infer_kind(node: Node | None) -> ValueKind:
    node = unwrap(node)
    if node is None:
        return ValueKind.UNKNOWN
    match node.type:
        case "number":
            return ValueKind.NUMBER
        case "string" | "template_string":
            return ValueKind.STRING
        case "true" | "false":
            return ValueKind.BOOLEAN
        case "array":
            return ValueKind.ARRAY
        case "object":
            return ValueKind.OBJECT
        case "unary_expression":
            op = text(node.child_by_field_name("operator"))
            if op == "!":
                return ValueKind.BOOLEAN
            if op in ("-", "+", "~"):
                return ValueKind.NUMBER
        case "binary_expression":
            op = text(node.child_by_field_name("operator"))
            if op in ("-", "*", "/", "%", "**", "|", "&", "^", "<<", ">>"):
                return ValueKind.NUMBER
            if op in ("<", ">", "<=", ">=", "===", "!==", "==", "!=", "&&", "||"):
                kinds = {infer_kind(node.child_by_field_name(f)) for f in ("left", "right")}
                return ValueKind.BOOLEAN if op not in ("&&", "||") else _single(kinds)
            if op == "+":
                kinds = {infer_kind(node.child_by_field_name(f)) for f in ("left", "right")}
                if ValueKind.STRING in kinds:
                    return ValueKind.STRING
                return ValueKind.NUMBER
        case "ternary_expression" | "conditional_expression":
            kinds = {infer_kind(node.child_by_field_name(f)) for f in ("consequence", "alternative")}
            return _single(kinds)
        case "call_expression":
            name = callee(node) or ""
            if name.startswith("Math.") or name in ("Number", "parseInt", "parseFloat", "random"):
                return ValueKind.NUMBER
            if name in ("String",):
                return ValueKind.STRING
            if name.endswith((".map", ".filter")) or name == "Array.from":
                return ValueKind.ARRAY
        case "member_expression":
            name = text(node)
            if name.startswith("Math.") or name.endswith((".innerWidth", ".innerHeight", ".length")):
                return ValueKind.NUMBER
    return ValueKind.UNKNOWN


def _single(kinds: set[ValueKind]) -> ValueKind:
    kinds.discard(ValueKind.UNKNOWN)
    return kinds.pop() if len(kinds) == 1 else ValueKind.UNKNOWN


def is_pure(node: Node) -> bool:
    """No assignments, awaits, constructors or non-math calls."""
    for n in walk(node):
        if n.type in (
            "assignment_expression",
            "augmented_assignment_expression",
            "update_expression",
            "await_expression",
            "yield_expression",
            "new_expression",
        ):
            return False
        if n.type == "call_expression":
            name = callee(n) or ""
            if not (name.startswith("Math.") or name in _PURE_CALLS or name in ("Date.now", "performance.now")):
                return False
        if is_function(n) and n is not node:
            return False
    return True


# ── Population inference ─────────────────────────────────


def infer_population(
    node: Node | None, lookup: Lookup, depth: int = 0
) -> Population | str:
    """Population of an initial value, or the reason it is opaque."""
    if depth > _MAX_DEPTH:
        return "initializer indirection is too deep"
    original = node
    node = unwrap(node)
    if node is None:
        return Population("literal", ValueKind.UNKNOWN)

    match node.type:
        case "array":
            return _array_literal(node)
        case "object":
            props = _object_properties(node)
            if isinstance(props, str):
                return props
            return Population("literal", ValueKind.OBJECT, properties=props, literal=node)
        case "number" | "string" | "template_string" | "true" | "false" | "null" | "undefined":
            return Population("literal", infer_kind(node), literal=node)
        case "identifier":
            return _from_identifier(node, lookup, depth)
        case "call_expression":
            return _from_call(node, lookup, depth)
    if is_function(node):
        return _from_factory(node, lookup, depth)
    if is_pure(node):
        return Population("expression", infer_kind(node), literal=original)
    return "initializer has side effects or calls unknown functions"


def _array_literal(node: Node) -> Population | str:
    items = named(node)
    if any(i.type == "spread_element" for i in items):
        return "array literal contains spread elements"
    if not items:
        return Population("literal", ValueKind.UNKNOWN, collection=True, count=0, literal=node)
    if all(i.type == "object" for i in items):
        merged: dict[str, PropertySource] = {}
        for item in items:
            props = _object_properties(item)
            if isinstance(props, str):
                return props
            for prop in props:
                merged.setdefault(prop.name, prop)
        return Population(
            "literal",
            ValueKind.OBJECT,
            collection=True,
            properties=tuple(merged.values()),
            count=len(items),
            literal=node,
        )
    return Population(
        "literal",
        infer_kind(items[0]),
        collection=True,
        count=len(items),
        literal=node,
        element=items[0],
    )


def _object_properties(node: Node) -> tuple[PropertySource, ...] | str:
    props: list[PropertySource] = []
    for key, value in object_entries(node):
        if key is None:
            return "object literal spreads or defines methods"
        props.append(PropertySource(key, infer_kind(value), value))
    return tuple(props)


def _from_identifier(node: Node, lookup: Lookup, depth: int) -> Population | str:
    found = lookup.find(text(node), node)
    if found is None or found.value is None or not found.constant:
        return Population("expression", ValueKind.UNKNOWN, literal=node)
    if is_function(found.value) or found.value.type == "function_declaration":
        return f"initializer passes function {text(node)!r} by reference"
    inner = infer_population(found.value, lookup, depth + 1)
    if isinstance(inner, str):
        return inner
    if inner.origin == "literal":
        return dataclasses.replace(inner, literal=node)
    return inner


def _from_call(node: Node, lookup: Lookup, depth: int) -> Population | str:
    name = callee(node)
    args = call_arguments(node)
    if name == "Array.from" and len(args) == 2:
        count = _length_of(args[0], lookup)
        if count is None:
            return "Array.from length is not a static number"
        return _element_population(args[1], count, lookup, "generator")
    fn = node.child_by_field_name("function")
    parts = member_parts(fn) if fn is not None else None
    if parts is not None and parts[1] == "map" and len(args) == 1:
        count = _constructor_count(parts[0], lookup)
        if count is None:
            return "mapped array has no static length"
        return _element_population(args[0], count, lookup, "generator")
    if fn is not None and unwrap(fn).type == "identifier" and not args:
        found = lookup.find(text(unwrap(fn)), node)
        if found is not None and found.value is not None:
            target = found.value
            if target.type == "function_declaration" or is_function(unwrap(target)):
                return _from_factory(unwrap(target), lookup, depth + 1)
    if is_pure(node):
        return Population("expression", infer_kind(node), literal=node)
    return f"initializer calls {name or 'an expression'}"


def _from_factory(fn: Node, lookup: Lookup, depth: int) -> Population | str:
    statements = body_statements(fn)
    if statements is None:
        return infer_population(returned_expression(fn), lookup, depth + 1)
    returned = returned_expression(fn)
    if returned is None:
        return "factory does not end with a return"
    if returned.type == "identifier":
        loop = loop_population(statements[:-1], text(returned), lookup)
        if not isinstance(loop, str):
            return loop
    others = [s for s in statements[:-1] if s.type not in ("lexical_declaration", "comment")]
    if others:
        return "factory runs statements before returning"
    return infer_population(returned, lookup, depth + 1)


def _element_population(
    callback: Node, count: int, lookup: Lookup, origin: Literal["generator", "loop"]
) -> Population | str:
    fn = unwrap(callback)
    if not is_function(fn):
        return "generator callback is not an inline function"
    params = parameter_patterns(fn)  # type: ignore[arg-type]
    index_name = text(params[1]) if len(params) > 1 and params[1].type == "identifier" else None
    if params and params[0].type == "identifier" and _reads(fn, text(params[0])):  # type: ignore[arg-type]
        return "generator reads its element placeholder"
    statements = body_statements(fn)  # type: ignore[arg-type]
    locals_: list[Node] = []
    if statements is not None:
        for stmt in statements[:-1]:
            if stmt.type == "comment":
                continue
            if stmt.type != "lexical_declaration" or not is_pure(stmt):
                return "generator body has control flow"
            locals_.append(stmt)
    element = returned_expression(fn)  # type: ignore[arg-type]
    if element is None:
        return "generator does not return an element"
    return _element(element, count, index_name, tuple(locals_), origin)


def _element(
    element: Node,
    count: int,
    index_name: str | None,
    locals_: tuple[Node, ...],
    origin: Literal["generator", "loop"],
) -> Population | str:
    if element.type == "object":
        props = _object_properties(element)
        if isinstance(props, str):
            return props
        return Population(
            origin,
            ValueKind.OBJECT,
            collection=True,
            properties=props,
            count=count,
            index_name=index_name,
            locals=locals_,
            element=element,
        )
    if not is_pure(element):
        return "generated element has side effects"
    return Population(
        origin,
        infer_kind(element),
        collection=True,
        count=count,
        index_name=index_name,
        locals=locals_,
        element=element,
    )


def _reads(fn: Node, name: str) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    encoded = name.encode("utf-8")
    return any(n.type == "identifier" and n.text == encoded for n in walk(body))


def loop_population(
    statements: list[Node], target: str, lookup: Lookup
) -> Population | str:
    """Population built by ``for (...) target.push({...})`` in ``statements``."""
    declared = False
    loop: Node | None = None
    for stmt in statements:
        if stmt.type in ("lexical_declaration", "variable_declaration"):
            for decl in named(stmt):
                name = decl.child_by_field_name("name")
                value = unwrap(decl.child_by_field_name("value"))
                if name is not None and text(name) == target:
                    if value is None or value.type != "array" or named(value):
                        return "population array does not start empty"
                    declared = True
        elif stmt.type == "for_statement" and _pushes_to(stmt, target):
            if loop is not None:
                return "population array is filled by more than one loop"
            loop = stmt
        elif _mentions(stmt, target):
            return "population array is modified outside its loop"
    if not declared or loop is None:
        return "no population loop found"

    header = _loop_header(loop, lookup)
    if isinstance(header, str):
        return header
    index_name, count = header
    body = loop.child_by_field_name("body")
    inner = named(body) if body is not None and body.type == "statement_block" else [body] if body is not None else []
    locals_: list[Node] = []
    pushed: Node | None = None
    for stmt in inner:
        if stmt.type == "comment":
            continue
        if pushed is not None:
            return "population loop continues after its push"
        if stmt.type == "lexical_declaration" and is_pure(stmt):
            locals_.append(stmt)
            continue
        call = unwrap(named(stmt)[0]) if stmt.type == "expression_statement" and named(stmt) else None
        if call is not None and call.type == "call_expression" and callee(call) == f"{target}.push":
            args = call_arguments(call)
            if len(args) != 1:
                return "population push takes more than one element"
            pushed = unwrap(args[0])
            continue
        return "population loop does more than push"
    if pushed is None:
        return "population loop has no push"
    return _element(pushed, count, index_name, tuple(locals_), "loop")


def _pushes_to(loop: Node, target: str) -> bool:
    return any(
        n.type == "call_expression" and callee(n) == f"{target}.push"
        for n in walk(loop)
    )


def _mentions(stmt: Node, target: str) -> bool:
    encoded = target.encode("utf-8")
    return any(n.type == "identifier" and n.text == encoded for n in walk(stmt))


def _loop_header(loop: Node, lookup: Lookup) -> tuple[str, int] | str:
    init = loop.child_by_field_name("initializer")
    cond = loop.child_by_field_name("condition")
    step = loop.child_by_field_name("increment")
    if init is None or cond is None or step is None:
        return "population loop header is incomplete"
    declarators = [d for d in named(init) if d.type == "variable_declarator"]
    if len(declarators) != 1:
        return "population loop declares more than one counter"
    index = declarators[0].child_by_field_name("name")
    start = number_value(declarators[0].child_by_field_name("value"))
    if index is None or index.type != "identifier" or start is None:
        return "population loop counter does not start at a number"
    index_name = text(index)

    test = unwrap(named(cond)[0]) if cond.type == "expression_statement" and named(cond) else unwrap(cond)
    if test is None or test.type != "binary_expression":
        return "population loop condition is not a comparison"
    op = text(test.child_by_field_name("operator"))
    left = unwrap(test.child_by_field_name("left"))
    bound = test.child_by_field_name("right")
    if op not in ("<", "<=") or left is None or text(left) != index_name or bound is None:
        return "population loop condition is not counter < bound"
    limit = _static_count(bound, lookup)
    if limit is None:
        return "population loop bound is not a static number"

    spelled = text(step).replace(" ", "")
    if spelled not in (f"{index_name}++", f"++{index_name}", f"{index_name}+=1", f"{index_name}={index_name}+1"):
        return "population loop does not count up by one"

    count = int(limit - start + (1 if op == "<=" else 0))
    if start != 0:
        return "population loop counter does not start at zero"
    if not 0 <= count <= MAX_ELEMENTS:
        return "population size is out of range"
    return index_name, count


# ── Counts ───────────────────────────────────────────────


def _static_count(node: Node | None, lookup: Lookup) -> float | None:
    node = unwrap(node)
    if node is None:
        return None
    value = number_value(node)
    if value is not None:
        return value
    if node.type == "identifier":
        return lookup.number(text(node), node)
    parts = member_parts(node)
    if parts is not None and parts[1] == "length":
        obj = unwrap(parts[0])
        if obj is not None and obj.type == "identifier":
            target = unwrap(lookup.value_of(text(obj), node))
            if target is not None and target.type == "array":
                return float(len(named(target)))
    return None


def _count(node: Node | None, lookup: Lookup) -> int | None:
    value = _static_count(node, lookup)
    if value is None or value != int(value) or not 0 <= value <= MAX_ELEMENTS:
        return None
    return int(value)


def _length_of(node: Node, lookup: Lookup) -> int | None:
    obj = unwrap(node)
    if obj is None or obj.type != "object":
        return None
    for key, value in object_entries(obj):
        if key == "length":
            return _count(value, lookup)
    return None


def _constructor_count(node: Node | None, lookup: Lookup) -> int | None:
    """Length of ``Array(N).fill()``, ``[...Array(N)]`` and friends."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "array":
        items = named(node)
        if len(items) == 1 and items[0].type == "spread_element":
            inner = named(items[0])
            return _constructor_count(inner[0], lookup) if inner else None
        return None
    if node.type == "new_expression":
        ctor = node.child_by_field_name("constructor")
        args = node.child_by_field_name("arguments")
        if text(ctor) == "Array" and args is not None and len(named(args)) == 1:
            return _count(named(args)[0], lookup)
        return None
    if node.type != "call_expression":
        return None
    name = callee(node)
    args = call_arguments(node)
    if name == "Array" and len(args) == 1:
        return _count(args[0], lookup)
    if name == "Array.from" and len(args) == 1:
        return _length_of(args[0], lookup)
    fn = node.child_by_field_name("function")
    parts = member_parts(fn) if fn is not None else None
    if parts is not None and parts[1] in ("fill", "keys"):
        return _constructor_count(parts[0], lookup)
    return None
