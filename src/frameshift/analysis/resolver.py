"""Stateful-variable resolver — reactive state bindings and their sites.

For every ``const [value, setValue] = useState(init)`` the resolver
infers the value's structural shape, classifies each setter call by
the context it runs in (mount effect, interval, timeout, frame loop,
event handler) and cross-references every read of the value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from frameshift.analysis.nodes import (
    Node,
    ancestors,
    call_arguments,
    callee,
    contains,
    function_body,
    function_name,
    identifier_references,
    is_function,
    jsx_attribute_name,
    line_of,
    member_parts,
    named,
    number_value,
    object_entries,
    parameter_patterns,
    pattern_keys,
    returned_expression,
    string_value,
    text,
    unwrap,
    walk,
)
from frameshift.analysis.parser import SyntaxTree
from frameshift.analysis.schemas import (
    KnownShape,
    MutationSite,
    OpaqueShape,
    StateBinding,
    UsageSite,
)
from frameshift.analysis.shapes import (
    Lookup,
    Population,
    infer_population,
    loop_population,
)
from frameshift.constants import (
    EFFECT_HOOKS,
    ELEMENT_CALLBACKS,
    FRAME_LOOP_INTERVAL_MS,
    FRAME_SCHEDULERS,
    INTERVAL_SCHEDULERS,
    STATE_HOOKS,
    TIMEOUT_SCHEDULERS,
    ArgumentKind,
    MutationContext,
    ValueKind,
)

logger = logging.getLogger(__name__)

_ARRAY_BUILTINS = frozenset({
    "length", "slice", "concat", "join", "indexOf", "includes", "at",
    "sort", "reverse", "keys", "values", "entries", "push", "pop",
    "shift", "unshift", "splice", "flat", "fill",
})
_LITERAL_TYPES = frozenset({
    "number", "string", "true", "false", "null", "undefined",
    "template_string", "array", "object", "unary_expression",
})
_CONTEXT_PRIORITY = (
    MutationContext.INTERVAL,
    MutationContext.FRAME_LOOP,
    MutationContext.TIMEOUT,
    MutationContext.MOUNT,
    MutationContext.EVENT,
    MutationContext.REACTIVE,
    MutationContext.UNKNOWN,
)
_MAX_CALL_DEPTH = 3


@dataclass(frozen=True)
class BindingEvidence:
    """Tree nodes behind a binding, kept for the rewriter."""

    declaration: Node
    declarator: Node
    component: Node | None
    initializer: Node | None
    population: Population | None
    population_source: Literal["initializer", "mount"] | None
    mutation_nodes: tuple[Node, ...]


@dataclass(frozen=True)
class Resolution:
    """Every binding in an artifact with the evidence behind it."""

    bindings: dict[str, StateBinding]
    evidence: dict[str, BindingEvidence]
    lookup: Lookup


def resolve_bindings(tree: SyntaxTree) -> dict[str, StateBinding]:
    """Map of binding name to binding, in declaration order."""
    return resolve(tree).bindings


def resolve(tree: SyntaxTree) -> Resolution:
    root = tree.root
    lookup = Lookup(root)
    bindings: dict[str, StateBinding] = {}
    evidence: dict[str, BindingEvidence] = {}

    for declarator in (n for n in walk(root) if n.type == "variable_declarator"):
        value = unwrap(declarator.child_by_field_name("value"))
        if value is None or value.type != "call_expression":
            continue
        if callee(value) not in STATE_HOOKS:
            continue
        pattern = declarator.child_by_field_name("name")
        if pattern is None or pattern.type != "array_pattern":
            continue
        targets = named(pattern)
        if not targets or targets[0].type != "identifier":
            continue
        name = text(targets[0])
        setter = (
            text(targets[1])
            if len(targets) > 1 and targets[1].type == "identifier"
            else None
        )
        key = name if name not in bindings else f"{name}@{line_of(declarator)}"
        binding, proof = _resolve_binding(
            name, setter, declarator, value, root, lookup
        )
        bindings[key] = binding
        evidence[key] = proof
        logger.debug(
            "event=binding_resolved name=%s shape=%s mutations=%d usages=%d",
            key,
            binding.shape.kind,
            len(binding.mutation_sites),
            len(binding.usage_sites),
        )
    return Resolution(bindings=bindings, evidence=evidence, lookup=lookup)


def _resolve_binding(
    name: str,
    setter: str | None,
    declarator: Node,
    hook_call: Node,
    root: Node,
    lookup: Lookup,
) -> tuple[StateBinding, BindingEvidence]:
    declaration = declarator.parent or declarator
    component = next((a for a in ancestors(declarator) if is_function(a)), None)
    scope = component or root
    args = call_arguments(hook_call)
    initializer = args[0] if args else None

    mutations: list[MutationSite] = []
    mutation_nodes: list[Node] = []
    if setter is not None:
        for ref in identifier_references(scope, setter):
            if contains(declarator, ref):
                continue
            site = _mutation_site(ref, name, root, lookup)
            mutations.append(site)
            mutation_nodes.append(_site_node(ref))

    init_population = infer_population(initializer, lookup)
    mount_population = _mount_population(mutations, mutation_nodes, lookup)
    population: Population | None = None
    source: Literal["initializer", "mount"] | None = None
    reason = ""
    if isinstance(init_population, Population):
        population, source = init_population, "initializer"
        if mount_population is not None and _is_placeholder(init_population):
            population, source = mount_population, "mount"
    else:
        reason = init_population
        if mount_population is not None:
            population, source = mount_population, "mount"

    shape: KnownShape | OpaqueShape = (
        population.shape() if population is not None else OpaqueShape(reason=reason)
    )
    usages = _usage_sites(scope, name, declarator, mutation_nodes)

    binding = StateBinding(
        name=name,
        setter=setter,
        shape=shape,
        declaration_start=declaration.start_byte,
        declaration_end=declaration.end_byte,
        line=line_of(declarator),
        mutation_sites=tuple(mutations),
        usage_sites=tuple(usages),
    )
    missing = _missing_properties(binding)
    if missing:
        binding = binding.model_copy(update={"missing_properties": missing})
    proof = BindingEvidence(
        declaration=declaration,
        declarator=declarator,
        component=component,
        initializer=initializer,
        population=population,
        population_source=source,
        mutation_nodes=tuple(mutation_nodes),
    )
    return binding, proof


def _is_placeholder(population: Population) -> bool:
    if population.is_empty_collection:
        return True
    literal = unwrap(population.literal)
    return population.origin == "literal" and (
        literal is None or literal.type in ("null", "undefined")
    )


def _site_node(ref: Node) -> Node:
    parent = ref.parent
    if parent is not None and parent.type == "call_expression" and parent.child_by_field_name("function") == ref:
        return parent
    return ref


# ── Mutation sites ───────────────────────────────────────


def _mutation_site(ref: Node, name: str, root: Node, lookup: Lookup) -> MutationSite:
    node = _site_node(ref)
    if node is ref:
        context, interval = _reference_context(ref, root, lookup)
        return MutationSite(
            context=context,
            argument_kind=ArgumentKind.EXPRESSION,
            line=line_of(ref),
            start_byte=ref.start_byte,
            end_byte=ref.end_byte,
            interval_ms=interval,
        )
    args = call_arguments(node)
    argument = unwrap(args[0]) if args else None
    context, interval = mutation_context(node, root, lookup)
    return MutationSite(
        context=context,
        argument_kind=_argument_kind(argument),
        line=line_of(node),
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        interval_ms=interval,
        read_properties=_mutation_reads(argument, name),
    )


def _argument_kind(argument: Node | None) -> ArgumentKind:
    if argument is None:
        return ArgumentKind.EXPRESSION
    if is_function(argument):
        return ArgumentKind.UPDATER
    if argument.type in _LITERAL_TYPES and not any(
        n.type in ("identifier", "call_expression") for n in walk(argument)
    ):
        return ArgumentKind.LITERAL
    return ArgumentKind.EXPRESSION


def mutation_context(
    node: Node, root: Node, lookup: Lookup, depth: int = 0
) -> tuple[MutationContext, float | None]:
    """Context in which ``node`` (a call) executes."""
    fn = _owning_function(node)
    if fn is None:
        return MutationContext.UNKNOWN, None
    return _function_role(fn, root, lookup, depth)


def _owning_function(node: Node) -> Node | None:
    for parent in ancestors(node):
        if is_function(parent) and not _is_iterator_callback(parent):
            return parent
    return None


def _is_iterator_callback(fn: Node) -> bool:
    parent = fn.parent
    if parent is None or parent.type != "arguments" or parent.parent is None:
        return False
    name = callee(parent.parent) or ""
    return "." in name and name.rsplit(".", 1)[-1] in ELEMENT_CALLBACKS


def _function_role(
    fn: Node, root: Node, lookup: Lookup, depth: int
) -> tuple[MutationContext, float | None]:
    parent = fn.parent
    if parent is not None and parent.type == "arguments" and parent.parent is not None:
        role = _callback_role(parent.parent, lookup)
        if role is not None:
            return role
        declared = _hook_wrapped_name(parent.parent)
        if declared is None:
            return MutationContext.UNKNOWN, None
        name: str | None = declared
    elif parent is not None and parent.type == "jsx_expression":
        attr = parent.parent
        if attr is not None and attr.type == "jsx_attribute" and jsx_attribute_name(attr).startswith("on"):
            return MutationContext.EVENT, None
        return MutationContext.UNKNOWN, None
    else:
        name = function_name(fn)

    if name is None or depth > _MAX_CALL_DEPTH:
        return MutationContext.UNKNOWN, None
    body = function_body(fn)
    if body is not None and _schedules_itself(body, name):
        return MutationContext.FRAME_LOOP, FRAME_LOOP_INTERVAL_MS

    roles: list[tuple[MutationContext, float | None]] = []
    for ref in identifier_references(root, name):
        if _is_declaration_name(ref):
            continue
        role = _reference_role(ref, root, lookup, depth)
        if role is not None:
            roles.append(role)
    return _strongest(roles)


def _callback_role(
    call: Node, lookup: Lookup
) -> tuple[MutationContext, float | None] | None:
    name = callee(call) or ""
    args = call_arguments(call)
    if name in INTERVAL_SCHEDULERS:
        return MutationContext.INTERVAL, _delay(args, call, lookup)
    if name in TIMEOUT_SCHEDULERS:
        delay = _delay(args, call, lookup)
        if delay is None and len(args) < 2:
            delay = 0.0
        return MutationContext.TIMEOUT, delay
    if name in FRAME_SCHEDULERS:
        return MutationContext.FRAME_LOOP, FRAME_LOOP_INTERVAL_MS
    if name in EFFECT_HOOKS:
        deps = unwrap(args[1]) if len(args) > 1 else None
        if deps is not None and deps.type == "array" and not named(deps):
            return MutationContext.MOUNT, None
        return MutationContext.REACTIVE, None
    if name.endswith("addEventListener"):
        return MutationContext.EVENT, None
    return None


def _hook_wrapped_name(call: Node) -> str | None:
    """Name bound to ``useCallback(fn, deps)``."""
    if callee(call) not in ("useCallback",):
        return None
    parent = call.parent
    if parent is not None and parent.type == "variable_declarator":
        target = parent.child_by_field_name("name")
        if target is not None and target.type == "identifier":
            return text(target)
    return None


def _reference_role(
    ref: Node, root: Node, lookup: Lookup, depth: int
) -> tuple[MutationContext, float | None] | None:
    parent = ref.parent
    if parent is None:
        return None
    if parent.type == "arguments" and parent.parent is not None:
        return _callback_role(parent.parent, lookup)
    if parent.type == "call_expression" and parent.child_by_field_name("function") == ref:
        return mutation_context(parent, root, lookup, depth + 1)
    if parent.type == "jsx_expression":
        attr = parent.parent
        if attr is not None and attr.type == "jsx_attribute" and jsx_attribute_name(attr).startswith("on"):
            return MutationContext.EVENT, None
        return MutationContext.UNKNOWN, None
    if parent.type in ("array", "variable_declarator"):
        return None
    return MutationContext.UNKNOWN, None


def _reference_context(
    ref: Node, root: Node, lookup: Lookup
) -> tuple[MutationContext, float | None]:
    """Context of a setter passed by reference rather than called."""
    role = _reference_role(ref, root, lookup, 0)
    return role if role is not None else (MutationContext.UNKNOWN, None)


def _strongest(
    roles: list[tuple[MutationContext, float | None]],
) -> tuple[MutationContext, float | None]:
    if not roles:
        return MutationContext.UNKNOWN, None
    return min(roles, key=lambda r: _CONTEXT_PRIORITY.index(r[0]))


def _schedules_itself(body: Node, name: str) -> bool:
    for n in walk(body):
        if n.type == "call_expression" and callee(n) in FRAME_SCHEDULERS:
            args = call_arguments(n)
            if args and unwrap(args[0]) is not None and text(unwrap(args[0])) == name:
                return True
    return False


def _is_declaration_name(ref: Node) -> bool:
    parent = ref.parent
    if parent is None:
        return False
    if parent.type in ("variable_declarator", "function_declaration"):
        return parent.child_by_field_name("name") == ref
    return False


def _delay(args: list[Node], at: Node, lookup: Lookup) -> float | None:
    if len(args) < 2:
        return None
    node = unwrap(args[1])
    value = number_value(node)
    if value is None and node is not None and node.type == "identifier":
        value = lookup.number(text(node), at)
    if value is None or value < 0:
        return None
    return value


def _mount_population(
    sites: list[MutationSite], nodes: list[Node], lookup: Lookup
) -> Population | None:
    for site, node in zip(sites, nodes, strict=True):
        if site.context != MutationContext.MOUNT or node.type != "call_expression":
            continue
        args = call_arguments(node)
        argument = unwrap(args[0]) if args else None
        if argument is None or is_function(argument):
            continue
        if argument.type == "identifier":
            statement = next(
                (a for a in ancestors(node) if a.parent is not None and a.parent.type == "statement_block"),
                None,
            )
            if statement is not None and statement.parent is not None:
                siblings = named(statement.parent)
                preceding = siblings[: siblings.index(statement)] if statement in siblings else []
                result = loop_population(preceding, text(argument), lookup)
                if isinstance(result, Population):
                    return result
        result = infer_population(argument, lookup)
        if isinstance(result, Population) and result.origin != "expression":
            return result
    return None


def _mutation_reads(argument: Node | None, name: str) -> tuple[str, ...]:
    """Properties an updater reads off, or writes into, elements."""
    if argument is None:
        return ()
    previous = name
    body: Node = argument
    if is_function(argument):
        params = parameter_patterns(argument)
        if params and params[0].type == "identifier":
            previous = text(params[0])
        body = function_body(argument) or argument
    seen: dict[str, None] = {}
    for n in walk(body):
        parts = member_parts(n) if n.type == "member_expression" else None
        if parts is None:
            continue
        obj, prop = parts
        if text(unwrap(obj)) != previous:
            continue
        call = n.parent
        if prop in ELEMENT_CALLBACKS and call is not None and call.type == "call_expression":
            for key in _callback_properties(call, ELEMENT_CALLBACKS[prop], include_written=True):
                seen.setdefault(key, None)
        elif prop not in _ARRAY_BUILTINS:
            seen.setdefault(prop, None)
    return tuple(seen)


# ── Usage sites ──────────────────────────────────────────


def _usage_sites(
    scope: Node, name: str, declarator: Node, mutation_nodes: list[Node]
) -> list[UsageSite]:
    sites: list[UsageSite] = []
    for ref in identifier_references(scope, name):
        if contains(declarator, ref):
            continue
        if any(contains(m, ref) for m in mutation_nodes):
            continue
        if _is_shadowed(ref, name):
            continue
        sites.append(_usage(ref))
    return sites


def _is_shadowed(ref: Node, name: str) -> bool:
    """True for parameters or locals that reuse the binding's name."""
    parent = ref.parent
    if parent is None:
        return False
    if parent.type in ("formal_parameters", "required_parameter", "optional_parameter"):
        return True
    if parent.type == "arrow_function" and parent.child_by_field_name("parameter") == ref:
        return True
    return parent.type == "variable_declarator" and parent.child_by_field_name("name") == ref


def _usage(ref: Node) -> UsageSite:
    parent = ref.parent
    span = {"line": line_of(ref), "start_byte": ref.start_byte, "end_byte": ref.end_byte}
    if ref.type == "shorthand_property_identifier":
        return UsageSite(via="escape", **span)
    if parent is not None and parent.type == "member_expression" and parent.child_by_field_name("object") == ref:
        prop = text(parent.child_by_field_name("property"))
        call = parent.parent
        if prop in ELEMENT_CALLBACKS and call is not None and call.type == "call_expression":
            props = _callback_properties(call, ELEMENT_CALLBACKS[prop])
            return UsageSite(via="iterator", properties=props, **span)
        if prop in _ARRAY_BUILTINS:
            return UsageSite(via="direct", **span)
        return UsageSite(via="member", properties=(prop,), **span)
    if parent is not None and parent.type == "subscript_expression" and parent.child_by_field_name("object") == ref:
        key = string_value(parent.child_by_field_name("index"))
        if key in _ARRAY_BUILTINS:
            return UsageSite(via="direct", **span)
        if key is not None:
            return UsageSite(via="member", properties=(key,), **span)
        return UsageSite(via="subscript", properties=_subscript_properties(parent), **span)
    if parent is not None and parent.type == "variable_declarator" and parent.child_by_field_name("value") == ref:
        target = parent.child_by_field_name("name")
        if target is not None and target.type == "object_pattern":
            return UsageSite(via="member", properties=tuple(pattern_keys(target)), **span)
    if parent is not None and parent.type in ("arguments", "jsx_expression", "spread_element"):
        return UsageSite(via="escape", **span)
    return UsageSite(via="direct", **span)


def _subscript_properties(subscript: Node) -> tuple[str, ...]:
    parent = subscript.parent
    if parent is None:
        return ()
    if parent.type == "member_expression" and parent.child_by_field_name("object") == subscript:
        return (text(parent.child_by_field_name("property")),)
    if parent.type == "variable_declarator" and parent.child_by_field_name("value") == subscript:
        target = parent.child_by_field_name("name")
        if target is None:
            return ()
        if target.type == "object_pattern":
            return tuple(pattern_keys(target))
        if target.type == "identifier":
            scope = next((a for a in ancestors(parent) if a.type in ("statement_block", "program")), None)
            if scope is not None:
                return _member_reads(scope, text(target))
    return ()


def _callback_properties(
    call: Node, param_index: int, include_written: bool = False
) -> tuple[str, ...]:
    args = call_arguments(call)
    fn = unwrap(args[0]) if args else None
    if fn is None or not is_function(fn):
        return ()
    params = parameter_patterns(fn)
    if len(params) <= param_index:
        return ()
    param = params[param_index]
    seen: dict[str, None] = {}
    if param.type == "object_pattern":
        for key in pattern_keys(param):
            seen.setdefault(key, None)
    elif param.type == "identifier":
        body = function_body(fn)
        if body is not None:
            for key in _member_reads(body, text(param)):
                seen.setdefault(key, None)
    if include_written:
        returned = returned_expression(fn)
        if returned is not None and returned.type == "object":
            for key, _ in object_entries(returned):
                if key is not None:
                    seen.setdefault(key, None)
    return tuple(seen)


def _member_reads(scope: Node, name: str) -> tuple[str, ...]:
    """``name.prop``, ``name['prop']`` and ``const { a, b } = name`` reads."""
    encoded = name.encode("utf-8")
    seen: dict[str, None] = {}
    for n in walk(scope):
        if n.type == "member_expression":
            obj = n.child_by_field_name("object")
            if obj is not None and obj.type == "identifier" and obj.text == encoded:
                seen.setdefault(text(n.child_by_field_name("property")), None)
        elif n.type == "subscript_expression":
            obj = n.child_by_field_name("object")
            key = string_value(n.child_by_field_name("index"))
            if key is not None and obj is not None and obj.type == "identifier" and obj.text == encoded:
                seen.setdefault(key, None)
        elif n.type == "variable_declarator":
            value = unwrap(n.child_by_field_name("value"))
            target = n.child_by_field_name("name")
            if value is not None and value.text == encoded and target is not None and target.type == "object_pattern":
                for key in pattern_keys(target):
                    seen.setdefault(key, None)
    return tuple(seen)


def _missing_properties(binding: StateBinding) -> tuple[str, ...]:
    shape = binding.shape
    if not isinstance(shape, KnownShape) or shape.value_kind != ValueKind.OBJECT:
        return ()
    known = set(shape.property_names)
    return tuple(p for p in binding.read_properties if p not in known)
