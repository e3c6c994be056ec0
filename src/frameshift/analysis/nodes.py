"""Small helpers over tree-sitter nodes.

Everything here reads structure only; nothing resolves types or
executes code. Helpers accept both the TSX and JavaScript grammar
variants of a construct where their node types differ.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import tree_sitter

type Node = tree_sitter.Node

FUNCTION_TYPES = frozenset({
    "arrow_function",
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "method_definition",
})

JSX_ELEMENT_TYPES = frozenset({"jsx_opening_element", "jsx_self_closing_element"})

_TRANSPARENT_WRAPPERS = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
})

_PARAMETER_WRAPPERS = frozenset({"required_parameter", "optional_parameter"})


def text(node: Node | None) -> str:
    """Source text of a node ('' for None)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of a node and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def named(node: Node) -> list[Node]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type != "comment"]


def descendants(node: Node, *types: str) -> Iterator[Node]:
    wanted = frozenset(types)
    return (n for n in walk(node) if n.type in wanted)


def unwrap(node: Node | None) -> Node | None:
    """Strip parentheses and TS type assertions around an expression."""
    while node is not None and node.type in _TRANSPARENT_WRAPPERS:
        inner = named(node)
        if not inner:
            return node
        node = inner[0]
    return node


def ancestors(node: Node) -> Iterator[Node]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def enclosing(node: Node, types: Iterable[str]) -> Node | None:
    wanted = frozenset(types)
    for parent in ancestors(node):
        if parent.type in wanted:
            return parent
    return None


def contains(outer: Node, inner: Node) -> bool:
    return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def line_of(node: Node) -> int:
    return node.start_point[0] + 1


# ── Names and calls ──────────────────────────────────────


def dotted_name(node: Node | None) -> str | None:
    """``a.b.c`` for identifier/member chains, None for anything else."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type in ("identifier", "this"):
        return text(node)
    if node.type == "member_expression":
        obj = dotted_name(node.child_by_field_name("object"))
        prop = node.child_by_field_name("property")
        if obj is None or prop is None:
            return None
        return f"{obj}.{text(prop)}"
    return None


def callee(call: Node) -> str | None:
    """Dotted callee of a call, with ``window.``/``globalThis.`` stripped."""
    name = dotted_name(call.child_by_field_name("function"))
    if name is None:
        return None
    for prefix in ("window.", "globalThis.", "React."):
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


def call_arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return []
    return named(args)


def member_parts(node: Node) -> tuple[Node, str] | None:
    """(object node, property name) of a member expression."""
    node = unwrap(node)
    if node is None or node.type != "member_expression":
        return None
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    if obj is None or prop is None:
        return None
    return obj, text(prop)


# ── Functions ────────────────────────────────────────────


def is_function(node: Node | None) -> bool:
    return node is not None and node.type in FUNCTION_TYPES


def parameter_patterns(fn: Node) -> list[Node]:
    """Pattern nodes of a function's parameters, in order."""
    single = fn.child_by_field_name("parameter")
    if single is not None:
        return [single]
    params = fn.child_by_field_name("parameters")
    if params is None:
        return []
    patterns: list[Node] = []
    for param in named(params):
        if param.type in _PARAMETER_WRAPPERS:
            pattern = param.child_by_field_name("pattern")
            if pattern is None:
                continue
            param = pattern
        if param.type == "assignment_pattern":
            left = param.child_by_field_name("left")
            if left is None:
                continue
            param = left
        patterns.append(param)
    return patterns


def pattern_keys(pattern: Node) -> list[str]:
    """Property names bound by an object destructuring pattern."""
    keys: list[str] = []
    for child in named(pattern):
        if child.type == "shorthand_property_identifier_pattern":
            keys.append(text(child))
        elif child.type == "pair_pattern":
            key = child.child_by_field_name("key")
            if key is not None:
                keys.append(property_key_text(key) or "")
        elif child.type == "object_assignment_pattern":
            left = child.child_by_field_name("left")
            if left is not None:
                keys.append(text(left))
    return [k for k in keys if k]


def function_body(fn: Node) -> Node | None:
    return fn.child_by_field_name("body")


def body_statements(fn: Node) -> list[Node] | None:
    """Top-level statements of a block-bodied function, None otherwise."""
    body = function_body(fn)
    if body is None or body.type != "statement_block":
        return None
    return named(body)


def returned_expression(fn: Node) -> Node | None:
    """Expression body, or the argument of the trailing return statement."""
    body = function_body(fn)
    if body is None:
        return None
    if body.type != "statement_block":
        return unwrap(body)
    statements = named(body)
    if statements and statements[-1].type == "return_statement":
        inner = named(statements[-1])
        return unwrap(inner[0]) if inner else None
    return None


def function_name(fn: Node) -> str | None:
    """Declared name, or the variable a function expression is bound to."""
    name = fn.child_by_field_name("name")
    if name is not None:
        return text(name)
    parent = fn.parent
    if parent is not None and parent.type == "variable_declarator":
        target = parent.child_by_field_name("name")
        if target is not None and target.type == "identifier":
            return text(target)
    return None


# ── Literals ─────────────────────────────────────────────


def number_value(node: Node | None) -> float | None:
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "number":
        raw = text(node).replace("_", "").lower()
        try:
            if raw.startswith(("0x", "0o", "0b")):
                return float(int(raw, 0))
            return float(raw)
        except ValueError:
            return None
    if node.type == "unary_expression":
        op = node.child_by_field_name("operator")
        arg = number_value(node.child_by_field_name("argument"))
        if arg is None or op is None:
            return None
        if text(op) == "-":
            return -arg
        if text(op) == "+":
            return arg
    return None


def string_value(node: Node | None) -> str | None:
    """Content of a string literal or substitution-free template."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "string":
        return text(node)[1:-1]
    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.children):
            return None
        return text(node)[1:-1]
    return None


def property_key_text(key: Node) -> str | None:
    if key.type in ("property_identifier", "identifier", "private_property_identifier"):
        return text(key)
    if key.type == "string":
        return string_value(key)
    if key.type == "number":
        return text(key)
    return None


def object_entries(obj: Node) -> list[tuple[str | None, Node]]:
    """(key, value) pairs of an object literal; spreads have key None."""
    entries: list[tuple[str | None, Node]] = []
    for child in named(obj):
        if child.type == "pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or value is None:
                continue
            entries.append((property_key_text(key), value))
        elif child.type == "shorthand_property_identifier":
            entries.append((text(child), child))
        elif child.type == "spread_element":
            inner = named(child)
            if inner:
                entries.append((None, inner[0]))
        elif child.type == "method_definition":
            entries.append((None, child))
    return entries


def word_count(value: str) -> int:
    return len([w for w in value.split() if any(ch.isalpha() for ch in w)])


# ── JSX ──────────────────────────────────────────────────


def jsx_attributes(element: Node) -> list[Node]:
    return [c for c in element.named_children if c.type == "jsx_attribute"]


def jsx_attribute_name(attr: Node) -> str:
    children = named(attr)
    return text(children[0]) if children else ""


def jsx_attribute_value(attr: Node) -> Node | None:
    children = named(attr)
    if len(children) < 2:
        return None
    return children[-1]


def jsx_expression_content(value: Node | None) -> Node | None:
    """Expression inside ``{...}``, unwrapped."""
    if value is None or value.type != "jsx_expression":
        return None
    inner = named(value)
    return unwrap(inner[0]) if inner else None


def jsx_tag_name(element: Node) -> str:
    return text(element.child_by_field_name("name"))


def jsx_find_attribute(element: Node, name: str) -> Node | None:
    for attr in jsx_attributes(element):
        if jsx_attribute_name(attr) == name:
            return attr
    return None


def jsx_elements(root: Node) -> list[Node]:
    """Opening and self-closing elements in document (pre-order) order."""
    return [
        n for n in walk(root)
        if n.type in JSX_ELEMENT_TYPES and n.child_by_field_name("name") is not None
    ]


def identifier_references(root: Node, name: str) -> list[Node]:
    """All identifier nodes spelling ``name`` (bindings included)."""
    encoded = name.encode("utf-8")
    return [
        n for n in walk(root)
        if n.type in ("identifier", "shorthand_property_identifier")
        and n.text == encoded
    ]


def jsx_is_outermost(element: Node) -> bool:
    """True when no other JSX element encloses ``element``."""
    own = element.parent if element.type == "jsx_opening_element" else element
    return own is None or enclosing(own, ("jsx_element",)) is None
