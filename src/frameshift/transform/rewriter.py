"""Determinism rewriter — time-driven state as pure functions of frame.

Each resolvable ``useState`` declaration is replaced by a ``const``
computed from a single frame counter. Timer-driven updaters are solved
in closed form over the tick count, index-like state driven by clicks
advances on a fixed cadence, and everything else collapses to its
initial value. Timers and handlers that only drove rewritten state are
removed; setters that are still referenced become no-op stubs.

Binding-level problems never abort the rewrite: the binding is left
as written and a finding explains why.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from fractions import Fraction

from frameshift.analysis.nodes import (
    Node,
    ancestors,
    call_arguments,
    callee,
    contains,
    dotted_name,
    function_body,
    function_name,
    identifier_references,
    is_function,
    line_of,
    member_parts,
    named,
    number_value,
    text,
    unwrap,
    walk,
)
from frameshift.analysis.parser import Edit, SyntaxTree
from frameshift.analysis.resolver import BindingEvidence, Resolution
from frameshift.analysis.schemas import (
    ClassificationProfile,
    Finding,
    KnownShape,
    MutationSite,
    OpaqueShape,
    StateBinding,
)
from frameshift.analysis.shapes import Lookup, Population
from frameshift.config import Settings
from frameshift.constants import (
    FRAME_HOOK,
    INDEX_NAME_PATTERN,
    REMOTION_MODULE,
    SEEDED_RANDOM,
    WALL_CLOCK_CALLS,
    Category,
    FindingKind,
    MutationContext,
    Severity,
    ValueKind,
)
from frameshift.transform.emit import (
    ASSIGN,
    POSTFIX,
    FALSE,
    Arrow,
    ArrayLit,
    Binary,
    Block,
    Call,
    Conditional,
    Const,
    Expr,
    Fragment,
    Ident,
    Keyword,
    Member,
    Num,
    ObjectLit,
    Return,
    Spread,
    Statement,
    Str,
    Verbatim,
    add,
    floor,
    mul,
    property_key,
    scale,
)
from frameshift.transform.imports import imported_from, manage_imports
from frameshift.transform.recurrence import (
    SELF,
    Hold,
    Opaque,
    Periodic,
    Recurrence,
    UpdatePlan,
    closed_form,
    extract_plan,
    is_integral_step,
    is_low_fidelity,
)
from frameshift.transform.scheduling import (
    RemovalPlan,
    attribute_span,
    line_indent,
    plan_removals,
    scheduler_calls,
    statement_span,
)

logger = logging.getLogger(__name__)

_TIME_CONTEXTS = frozenset({
    MutationContext.INTERVAL,
    MutationContext.TIMEOUT,
    MutationContext.FRAME_LOOP,
})
_INDEX_NAME = re.compile(INDEX_NAME_PATTERN)
_UNIT_NAMES = frozenset({"opacity", "scale", "alpha"})
_COLOR_HINTS = ("color", "colour", "fill", "stroke", "background", "hue")


@dataclass(frozen=True)
class RewriteOutcome:
    """Result of the rewrite stage."""

    tree: SyntaxTree
    findings: tuple[Finding, ...] = ()
    rewritten: tuple[str, ...] = ()


class _Skip(Exception):
    """Leave a binding as written and record why."""

    def __init__(self, kind: FindingKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


# ── Rendering ────────────────────────────────────────────


@dataclass(frozen=True)
class _Shorthand(Expr):
    """``key: value`` printed in place of a shorthand property."""

    key: str
    value: Expr

    def render(self, indent: str = "") -> str:
        return f"{property_key(self.key)}: {self.value.wrapped(ASSIGN, indent)}"


@dataclass
class _Usage:
    frame: bool = False
    random: bool = False


@dataclass
class _Env:
    """Everything needed to re-print source nodes as frame-pure code."""

    frame: str
    random: str
    settings: Settings
    lookup: Lookup
    usage: _Usage
    counters: dict[str, int]
    binding: str
    label: str = "value"
    index: Expr | None = None
    identifiers: Mapping[str, Expr] = field(default_factory=lambda: dict[str, Expr]())
    members: Mapping[str, Callable[[str], Expr]] = field(
        default_factory=lambda: dict[str, Callable[[str], Expr]]()
    )
    locals: Mapping[str, Node] = field(default_factory=lambda: dict[str, Node]())
    inline_within: tuple[Node, ...] = ()
    inlining: frozenset[str] = frozenset()

    def labelled(self, label: str) -> _Env:
        return dataclasses.replace(self, label=label)

    def frame_ref(self) -> Expr:
        self.usage.frame = True
        return Ident(self.frame)

    def seeded(self) -> Expr:
        key = f"{self.binding}-{self.label}"
        occurrence = self.counters.get(key, 0)
        self.counters[key] = occurrence + 1
        prefix = key if not occurrence else f"{key}-{occurrence}"
        seed: Expr = Str(prefix)
        if self.index is not None:
            seed = Binary("+", Str(prefix + "-"), self.index)
        self.usage.random = True
        return Call(Ident(self.random), (seed,))

    def elapsed_ms(self) -> Expr:
        return scale(self.frame_ref(), Fraction(1000, self.settings.fps))


def render(node: Node, env: _Env) -> Fragment:
    """Re-print ``node`` with randomness, clocks and captured names replaced."""
    subs: dict[tuple[int, int], Expr] = {}
    if node.type == "shorthand_property_identifier":
        value = _captured(node, env)
        if value is not None:
            subs[(node.start_byte, node.end_byte)] = value
        return Fragment(node, subs)
    stack = [node]
    while stack:
        current = stack.pop()
        replacement = _substitute(current, env)
        if replacement is not None:
            subs[(current.start_byte, current.end_byte)] = replacement
            continue
        stack.extend(reversed(current.children))
    return Fragment(node, subs)


def _substitute(node: Node, env: _Env) -> Expr | None:
    match node.type:
        case "call_expression":
            name = callee(node)
            if name == "Math.random" and not call_arguments(node):
                return env.seeded()
            if name in WALL_CLOCK_CALLS:
                return env.elapsed_ms()
        case "member_expression":
            name = dotted_name(node)
            if name == "window.innerWidth":
                return Num(env.settings.width)
            if name == "window.innerHeight":
                return Num(env.settings.height)
            parts = member_parts(node)
            obj = unwrap(parts[0]) if parts is not None else None
            if parts is not None and obj is not None and obj.type == "identifier" and text(obj) in env.members:
                return env.members[text(obj)](parts[1])
        case "identifier":
            return _captured(node, env)
        case "shorthand_property_identifier":
            value = _captured(node, env)
            if value is not None:
                return _Shorthand(text(node), value)
    return None


def _captured(node: Node, env: _Env) -> Expr | None:
    name = text(node)
    if _is_binding_name(node):
        return None
    if name in env.identifiers:
        return env.identifiers[name]
    if name in env.inlining:
        return None
    value = env.locals.get(name)
    if value is None and env.inline_within:
        found = env.lookup.find(name, node)
        if (
            found is not None
            and found.constant
            and found.value is not None
            and not is_function(unwrap(found.value))
            and any(contains(scope, found.node) for scope in env.inline_within)
        ):
            value = found.value
    if value is None:
        return None
    return render(value, dataclasses.replace(env, inlining=env.inlining | {name}))


def _is_binding_name(node: Node) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type in ("variable_declarator", "function_declaration"):
        return parent.child_by_field_name("name") == node
    return parent.type in ("formal_parameters", "required_parameter", "optional_parameter") or (
        parent.type == "arrow_function" and parent.child_by_field_name("parameter") == node
    )


# ── Timing ───────────────────────────────────────────────


def frames_spanned(ms: float, fps: int) -> Fraction:
    """Exact number of frames covering ``ms`` milliseconds at ``fps``."""
    return Fraction(ms).limit_denominator(1000) * fps / 1000


# ── Neutral defaults ─────────────────────────────────────


def neutral_default(name: str, kind: ValueKind = ValueKind.UNKNOWN) -> Expr:
    """Documented stand-in for a property the initial value never sets."""
    lowered = name.lower()
    if lowered in _UNIT_NAMES:
        return Num(1)
    if any(hint in lowered for hint in _COLOR_HINTS):
        return Str("transparent")
    match kind:
        case ValueKind.STRING:
            return Str("")
        case ValueKind.BOOLEAN:
            return FALSE
        case ValueKind.ARRAY:
            return ArrayLit()
        case ValueKind.OBJECT:
            return ObjectLit()
    return Num(0)


# ── Rewriter ─────────────────────────────────────────────


class _Rewriter:
    def __init__(
        self,
        tree: SyntaxTree,
        resolution: Resolution,
        profile: ClassificationProfile,
        settings: Settings,
        strict_shapes: bool,
    ) -> None:
        self.tree = tree
        self.resolution = resolution
        self.profile = profile
        self.settings = settings
        self.strict_shapes = strict_shapes
        self.taken = {
            text(n) for n in walk(tree.root)
            if n.type in ("identifier", "shorthand_property_identifier_pattern", "type_identifier")
        }
        self.frame = self._fresh("frame", "currentFrame")
        existing = imported_from(tree.root, REMOTION_MODULE)
        if SEEDED_RANDOM in existing:
            self.random = existing[SEEDED_RANDOM]
        else:
            self.random = self._fresh(SEEDED_RANDOM, "remotionRandom")
        self.counters: dict[str, int] = {}
        self.usage: dict[tuple[int, int], _Usage] = {}
        self.findings: list[Finding] = []

    @property
    def content_mode(self) -> bool:
        return self.profile.primary_category == Category.CONTENT

    def _fresh(self, *candidates: str) -> str:
        for name in candidates:
            if name not in self.taken:
                self.taken.add(name)
                return name
        base = candidates[0]
        suffix = 2
        while f"{base}{suffix}" in self.taken:
            suffix += 1
        self.taken.add(f"{base}{suffix}")
        return f"{base}{suffix}"

    def _env(self, key: str, component: Node | None, evidence: BindingEvidence) -> _Env:
        scope_key = (component.start_byte, component.end_byte) if component is not None else (0, 0)
        usage = self.usage.setdefault(scope_key, _Usage())
        return _Env(
            frame=self.frame,
            random=self.random,
            settings=self.settings,
            lookup=self.resolution.lookup,
            usage=usage,
            counters=self.counters,
            binding=key.split("@", 1)[0],
            inline_within=_effect_bodies(evidence),
        )

    def _finding(
        self,
        kind: FindingKind,
        message: str,
        binding: str | None = None,
        line: int | None = None,
        severity: Severity = Severity.WARNING,
        resolved: bool = False,
    ) -> None:
        self.findings.append(
            Finding(
                kind=kind,
                severity=severity,
                message=message,
                binding=binding,
                line=line,
                resolved=resolved,
            )
        )

    # ── per binding ──

    def derive(self, key: str, binding: StateBinding, evidence: BindingEvidence) -> Expr:
        """Frame-pure replacement value, or raise :class:`_Skip`."""
        env = self._env(key, evidence.component, evidence)
        sites = list(zip(binding.mutation_sites, evidence.mutation_nodes, strict=True))
        timed = [(s, n) for s, n in sites if s.context in _TIME_CONTEXTS]
        events = [(s, n) for s, n in sites if s.context == MutationContext.EVENT]
        mounts = [s for s, _ in sites if s.context == MutationContext.MOUNT]
        other = [s for s, _ in sites if s.context in (MutationContext.REACTIVE, MutationContext.UNKNOWN)]

        if other:
            raise _Skip(
                FindingKind.UNSUPPORTED_MUTATION,
                f"setter runs in a {other[0].context} context (line {other[0].line})",
            )
        if mounts and not (evidence.population_source == "mount" and len(mounts) == 1):
            raise _Skip(
                FindingKind.UNSUPPORTED_MUTATION,
                "mount-time setter call does not build a static population",
            )
        if len(timed) > 1:
            raise _Skip(FindingKind.UNSUPPORTED_MUTATION, "setter is driven by more than one timer")
        if isinstance(binding.shape, OpaqueShape) and timed:
            raise _Skip(FindingKind.OPAQUE_SHAPE, f"shape is opaque: {binding.shape.reason}")
        if binding.shape_incomplete and self.strict_shapes:
            raise _Skip(
                FindingKind.SHAPE_INCOMPLETE,
                "reads properties missing from the initial value: "
                + ", ".join(binding.missing_properties),
            )

        if timed:
            value = self._timed(key, binding, evidence, env, *timed[0])
        elif events and self._is_index(binding):
            value = self._index(binding, evidence, env, events)
        else:
            value = self._held(binding, evidence, env)

        if binding.shape_incomplete:
            self._finding(
                FindingKind.SHAPE_INCOMPLETE,
                "defaulted properties missing from the initial value: "
                + ", ".join(binding.missing_properties),
                binding=key,
                line=binding.line,
                resolved=True,
            )
        return value

    def _initial(self, binding: StateBinding, evidence: BindingEvidence, env: _Env) -> Expr:
        population = evidence.population
        if evidence.population_source == "mount" and population is not None:
            return self._generated(population, env, {}, None, binding)
        initializer = unwrap(evidence.initializer)
        if initializer is None:
            return Keyword("undefined")
        value = number_value(initializer)
        if value is not None:
            return Num(value)
        if is_function(initializer):
            return Call(render(initializer, env))
        return render(initializer, env)

    def _held(self, binding: StateBinding, evidence: BindingEvidence, env: _Env) -> Expr:
        """Initial value with neutral defaults for properties it never sets."""
        value = self._initial(binding, evidence, env)
        if evidence.population_source == "mount":
            return value  # generated elements already carry the defaults
        return self._with_defaults(binding, value, env)

    def _with_defaults(self, binding: StateBinding, value: Expr, env: _Env) -> Expr:
        shape = binding.shape
        if not binding.missing_properties or not isinstance(shape, KnownShape):
            return value
        defaults = tuple(
            (name, neutral_default(name)) for name in binding.missing_properties
        )
        if not shape.collection:
            return ObjectLit((Spread(value), *defaults), multiline=True)
        item = self._fresh("item")
        return Call(
            Member(value, "map"),
            (Arrow((item,), ObjectLit((Spread(Ident(item)), *defaults))),),
        )

    # ── time-driven ──

    def _timed(
        self,
        key: str,
        binding: StateBinding,
        evidence: BindingEvidence,
        env: _Env,
        site: MutationSite,
        node: Node,
    ) -> Expr:
        shape = binding.shape
        if not isinstance(shape, KnownShape):
            raise _Skip(FindingKind.OPAQUE_SHAPE, f"shape is opaque: {shape.reason}")
        kind = "collection" if shape.collection else (
            "object" if shape.value_kind == ValueKind.OBJECT else "scalar"
        )
        args = call_arguments(node) if node.type == "call_expression" else []
        plan = extract_plan(args[0] if args else None, binding.name, kind)

        if isinstance(plan, str):
            if self.content_mode:
                raise _Skip(FindingKind.OPAQUE_RECURRENCE, f"update is opaque: {plan}")
            self._finding(
                FindingKind.OPAQUE_RECURRENCE,
                f"update is opaque ({plan}); holding the initial value",
                binding=key,
                line=site.line,
                resolved=True,
            )
            return self._held(binding, evidence, env)

        low = [k or binding.name for k, rec in plan.recurrences.items() if is_low_fidelity(rec)]
        if low:
            reasons = sorted({
                rec.reason for rec in plan.recurrences.values() if isinstance(rec, Opaque)
            })
            if self.content_mode:
                raise _Skip(
                    FindingKind.OPAQUE_RECURRENCE,
                    "update is not a closed form: " + "; ".join(reasons),
                )
            self._finding(
                FindingKind.OPAQUE_RECURRENCE,
                f"low-fidelity substitute for {', '.join(low)}: " + "; ".join(reasons),
                binding=key,
                line=site.line,
                resolved=True,
            )

        ticks = self._ticks(site, plan, env)
        if kind == "scalar":
            initial = self._initial(binding, evidence, env)
            step_env = dataclasses.replace(env, locals=plan.scope.locals)
            return closed_form(
                plan.recurrences[SELF],
                initial,
                ticks,
                lambda n: render(n, step_env),
                lambda _k: initial,
                plan.recurrences,
            )
        population = evidence.population
        if population is None:
            raise _Skip(FindingKind.OPAQUE_SHAPE, "initial value has no static population")
        if kind == "object":
            return self._object(binding, population, plan, ticks, env)
        return self._generated(population, env, plan.recurrences, (plan, ticks), binding)

    def _ticks(self, site: MutationSite, plan: UpdatePlan, env: _Env) -> Expr:
        frame = env.frame_ref()
        if site.context == MutationContext.TIMEOUT:
            if site.interval_ms is None:
                raise _Skip(FindingKind.UNSUPPORTED_MUTATION, "timeout delay is not a static number")
            # first whole frame whose start time reaches the delay
            fire_at = math.ceil(frames_spanned(site.interval_ms, self.settings.fps))
            return Conditional(Binary(">=", frame, Num(fire_at)), Num(1), Num(0))
        if not site.interval_ms:
            raise _Skip(FindingKind.UNSUPPORTED_MUTATION, "timer interval is not a static number")
        per_frame = 1 / frames_spanned(site.interval_ms, self.settings.fps)
        ticks = scale(frame, per_frame)
        integral = all(is_integral_step(r) for r in plan.recurrences.values())
        if integral and per_frame.denominator != 1:
            return floor(ticks)
        return ticks

    def _object(
        self,
        binding: StateBinding,
        population: Population,
        plan: UpdatePlan,
        ticks: Expr,
        env: _Env,
    ) -> Expr:
        cache: dict[str, Expr] = {}

        def initial_of(name: str) -> Expr:
            if name not in cache:
                prop = population.source_of(name)
                if prop is None:
                    cache[name] = neutral_default(name)
                else:
                    value = number_value(prop.value)
                    cache[name] = Num(value) if value is not None else render(prop.value, env.labelled(name))
            return cache[name]

        step_env = dataclasses.replace(
            env,
            locals=plan.scope.locals,
            members={plan.subject.element: initial_of} if plan.subject.element else {},
            identifiers={alias: initial_of(k) for alias, k in plan.subject.aliases.items()},
        )
        names = list(dict.fromkeys(
            [p.name for p in population.properties]
            + list(plan.recurrences)
            + list(binding.missing_properties)
        ))
        entries = tuple(
            (
                name,
                closed_form(
                    plan.recurrences.get(name, Hold()),
                    initial_of(name),
                    ticks,
                    lambda n: render(n, step_env),
                    initial_of,
                    plan.recurrences,
                ),
            )
            for name in names
        )
        return ObjectLit(entries, multiline=True)

    def _generated(
        self,
        population: Population,
        env: _Env,
        recurrences: Mapping[str, Recurrence],
        motion: tuple[UpdatePlan, Expr] | None,
        binding: StateBinding,
    ) -> Expr:
        """``Array.from`` (or ``.map``) producing every element at this frame."""
        index_name = population.index_name or self._fresh("i")
        index = Ident(index_name)
        base = self._fresh("base")
        local_names = frozenset(
            text(d.child_by_field_name("name"))
            for local in population.locals
            for d in named(local)
            if d.type == "variable_declarator"
        )
        element_env = dataclasses.replace(env, index=index, inlining=env.inlining | local_names)

        statements: list[Statement] = []
        for local in population.locals:
            label = next(
                (text(d.child_by_field_name("name")) for d in named(local) if d.type == "variable_declarator"),
                "local",
            )
            statements.append(Verbatim(render(local, element_env.labelled(label))))

        if population.origin == "literal" and population.literal is not None:
            collection = render(population.literal, env)
            source = None
        else:
            collection = None
            source = self._element_value(population, element_env)

        entries: list[tuple[str, Expr] | Spread] = [Spread(Ident(base))]
        if motion is not None:
            plan, ticks = motion
            identifiers: dict[str, Expr] = {
                alias: Member(Ident(base), key) for alias, key in plan.subject.aliases.items()
            }
            if plan.subject.element:
                identifiers[plan.subject.element] = Ident(base)
            if plan.index_name:
                identifiers[plan.index_name] = index
            step_env = dataclasses.replace(element_env, identifiers=identifiers, locals=plan.scope.locals)
            for name, rec in recurrences.items():
                if isinstance(rec, Hold):
                    continue
                entries.append((
                    name,
                    closed_form(
                        rec,
                        Member(Ident(base), name),
                        ticks,
                        lambda n: render(n, step_env),
                        lambda k: Member(Ident(base), k),
                        recurrences,
                    ),
                ))
        for name in binding.missing_properties:
            entries.append((name, neutral_default(name)))

        result: Expr = Ident(base) if len(entries) == 1 else ObjectLit(tuple(entries), multiline=True)
        if collection is not None:
            if len(entries) == 1:
                return collection
            return Call(Member(collection, "map"), (Arrow((base, index_name), result),))

        if source is None:
            raise _Skip(FindingKind.OPAQUE_SHAPE, "collection has no element generator")
        if len(entries) == 1 and not statements:
            body: Expr | Block = source
        else:
            body = Block((*statements, Const(base, source), Return(result)))
        length = ObjectLit((("length", Num(population.count or 0)),))
        return Call(Member(Ident("Array"), "from"), (length, Arrow(("_", index_name), body)))

    def _element_value(self, population: Population, env: _Env) -> Expr:
        if population.properties and population.element is not None and population.element.type == "object":
            return ObjectLit(
                tuple(
                    (p.name, render(p.value, env.labelled(p.name)))
                    for p in population.properties
                ),
                multiline=True,
            )
        if population.element is None:
            return Keyword("undefined")
        return render(population.element, env)

    # ── index-like ──

    def _is_index(self, binding: StateBinding) -> bool:
        shape = binding.shape
        return (
            _INDEX_NAME.match(binding.name.lower()) is not None
            and isinstance(shape, KnownShape)
            and not shape.collection
            and shape.value_kind == ValueKind.NUMBER
        )

    def _index(
        self,
        binding: StateBinding,
        evidence: BindingEvidence,
        env: _Env,
        events: list[tuple[MutationSite, Node]],
    ) -> Expr:
        count: Expr | None = None
        for _, node in events:
            if node.type != "call_expression":
                continue
            args = call_arguments(node)
            plan = extract_plan(args[0] if args else None, binding.name, "scalar")
            if isinstance(plan, UpdatePlan):
                rec = plan.recurrences[SELF]
                if isinstance(rec, Opaque):
                    rec = rec.fallback
                if isinstance(rec, Periodic):
                    count = render(rec.modulus, dataclasses.replace(env, locals=plan.scope.locals))
                    break
        if count is None:
            count = self._subscripted_length(binding)
        initial = self._initial(binding, evidence, env)
        if count is None:
            return initial
        advance = floor(Binary("/", env.frame_ref(), Num(self.settings.slide_frames)))
        return Binary("%", add(initial, advance), count)

    def _subscripted_length(self, binding: StateBinding) -> Expr | None:
        for site in binding.usage_sites:
            node = self.tree.node_at(site.start_byte, site.end_byte)
            parent = node.parent if node is not None else None
            if parent is None or parent.type != "subscript_expression":
                continue
            index = parent.child_by_field_name("index")
            obj = unwrap(parent.child_by_field_name("object"))
            if index is not None and unwrap(index) == node and obj is not None and obj.type in ("identifier", "member_expression"):
                return Member(Fragment(obj), "length")
        return None

    # ── whole artifact ──

    def run(self) -> RewriteOutcome:
        derived: dict[str, tuple[StateBinding, BindingEvidence, Expr]] = {}
        for key, binding in self.resolution.bindings.items():
            evidence = self.resolution.evidence[key]
            if len([d for d in named(evidence.declaration) if d.type == "variable_declarator"]) != 1:
                self._finding(
                    FindingKind.UNSUPPORTED_MUTATION,
                    "declaration binds more than one variable",
                    binding=key,
                    line=binding.line,
                )
                continue
            try:
                value = self.derive(key, binding, evidence)
            except _Skip as skip:
                logger.info("event=binding_skipped name=%s kind=%s reason=%s", key, skip.kind, skip.message)
                self._finding(skip.kind, skip.message, binding=key, line=binding.line)
                continue
            derived[key] = (binding, evidence, value)
            logger.debug("event=binding_rewritten name=%s", key)

        setters = [b.setter for b, _, _ in derived.values() if b.setter]
        removals = plan_removals(self.tree.root, setters, self.resolution.lookup)
        edits: list[Edit] = []
        source = self.tree.source

        for key, (binding, evidence, value) in derived.items():
            indent = line_indent(source, evidence.declaration.start_byte)
            code = Const(binding.name, value).render(indent)
            if binding.setter and self._setter_survives(binding, evidence, removals):
                code += f"\n{indent}{Const(binding.setter, Arrow((), Block(()))).render(indent)}"
                self._finding(
                    FindingKind.SETTER_STUBBED,
                    f"{binding.setter} is still referenced; replaced with a no-op",
                    binding=key,
                    line=binding.line,
                    severity=Severity.INFO,
                    resolved=True,
                )
            edits.append(Edit(evidence.declaration.start_byte, evidence.declaration.end_byte, code))

        for node in removals.effects + removals.handlers:
            edits.append(Edit(*statement_span(source, node), ""))
        for node in removals.attributes:
            edits.append(Edit(*attribute_span(source, node), ""))

        replaced = [e for _, e, _ in derived.values()]
        edits.extend(self._residual_edits(removals, replaced))
        self._report_residual_scheduling(setters, removals)
        edits.extend(self._frame_declarations())

        if not edits:
            return RewriteOutcome(self.tree, tuple(self.findings), ())
        tree = self.tree.apply(edits, stage="rewrite")
        remotion: dict[str, str] = {}
        if any(u.frame for u in self.usage.values()):
            remotion[FRAME_HOOK] = FRAME_HOOK
        if any(u.random for u in self.usage.values()):
            remotion[SEEDED_RANDOM] = self.random
        tree = manage_imports(tree, remotion)
        logger.info(
            "event=rewrite_completed rewritten=%d skipped=%d removed=%d",
            len(derived),
            len(self.resolution.bindings) - len(derived),
            len(removals.nodes),
        )
        return RewriteOutcome(tree, tuple(self.findings), tuple(derived))

    def _setter_survives(
        self, binding: StateBinding, evidence: BindingEvidence, removals: RemovalPlan
    ) -> bool:
        scope = evidence.component or self.tree.root
        return any(
            not contains(evidence.declarator, ref) and not removals.covers(ref)
            for ref in identifier_references(scope, binding.setter or "")
        )

    def _residual_edits(
        self, removals: RemovalPlan, replaced: list[BindingEvidence]
    ) -> list[Edit]:
        """Seed leftover ``Math.random()`` and clock reads outside derived code."""
        edits: list[Edit] = []
        for node in walk(self.tree.root):
            if node.type != "call_expression":
                continue
            name = callee(node)
            if name != "Math.random" and name not in WALL_CLOCK_CALLS:
                continue
            if name == "Math.random" and call_arguments(node):
                continue
            if removals.covers(node) or any(contains(e.declaration, node) for e in replaced):
                continue
            component = _component_function(node)
            if name in WALL_CLOCK_CALLS and (component is None or _block_body(component) is None):
                self._finding(
                    FindingKind.DISALLOWED_REFERENCE,
                    f"{name}() outside a component cannot be tied to the frame",
                    line=line_of(node),
                )
                continue
            usage = self.usage.setdefault(
                (component.start_byte, component.end_byte) if component is not None else (0, 0),
                _Usage(),
            )
            owner = function_name(component) if component is not None else None
            env = _Env(
                frame=self.frame,
                random=self.random,
                settings=self.settings,
                lookup=self.resolution.lookup,
                usage=usage,
                counters=self.counters,
                binding=owner or "artifact",
                label="random" if name == "Math.random" else "clock",
            )
            replacement = env.seeded() if name == "Math.random" else env.elapsed_ms()
            edits.append(Edit(node.start_byte, node.end_byte, replacement.wrapped(POSTFIX)))
            self._finding(
                FindingKind.DISALLOWED_REFERENCE,
                f"{name}() replaced with a frame-pure equivalent",
                line=line_of(node),
                severity=Severity.INFO,
                resolved=True,
            )
        return edits

    def _report_residual_scheduling(self, setters: list[str], removals: RemovalPlan) -> None:
        if not setters:
            return
        names = frozenset(setters)
        for call in scheduler_calls(self.tree.root):
            if removals.covers(call):
                continue
            if any(n.type == "identifier" and text(n) in names for n in walk(call)):
                self._finding(
                    FindingKind.RESIDUAL_SCHEDULING,
                    f"{callee(call)} still schedules work touching rewritten state",
                    line=line_of(call),
                )

    def _frame_declarations(self) -> list[Edit]:
        edits: list[Edit] = []
        components = {
            (e.component.start_byte, e.component.end_byte): e.component
            for e in self.resolution.evidence.values()
            if e.component is not None
        }
        for node in walk(self.tree.root):
            if is_function(node) and (node.start_byte, node.end_byte) in self.usage:
                components.setdefault((node.start_byte, node.end_byte), node)
        for span, usage in sorted(self.usage.items()):
            component = components.get(span)
            if not usage.frame or component is None:
                continue
            body = _block_body(component)
            if body is None:
                continue
            statements = named(body)
            indent = line_indent(self.tree.source, statements[0].start_byte) if statements else "  "
            hook = Const(self.frame, Call(Ident(FRAME_HOOK))).render(indent)
            edits.append(Edit(body.start_byte + 1, body.start_byte + 1, f"\n{indent}{hook}"))
        return edits


def _component_function(node: Node) -> Node | None:
    """Nearest enclosing function that looks like a component or hook."""
    outermost: Node | None = None
    for parent in ancestors(node):
        if not is_function(parent):
            continue
        name = function_name(parent) or ""
        if name[:1].isupper() or name.startswith("use"):
            return parent
        outermost = parent
    return outermost


def _block_body(fn: Node) -> Node | None:
    body = function_body(fn)
    return body if body is not None and body.type == "statement_block" else None


def _effect_bodies(evidence: BindingEvidence) -> tuple[Node, ...]:
    """Function bodies whose constants may be inlined into derived code."""
    bodies: dict[tuple[int, int], Node] = {}
    for node in evidence.mutation_nodes:
        for parent in ancestors(node):
            if is_function(parent):
                bodies[(parent.start_byte, parent.end_byte)] = parent
            if evidence.component is not None and parent == evidence.component:
                break
    if evidence.component is not None:
        bodies.pop((evidence.component.start_byte, evidence.component.end_byte), None)
    return tuple(bodies.values())


def rewrite(
    tree: SyntaxTree,
    resolution: Resolution,
    profile: ClassificationProfile,
    settings: Settings,
    *,
    strict_shapes: bool | None = None,
) -> RewriteOutcome:
    """Replace time-driven state with pure expressions of the frame counter."""
    strict = settings.strict_shapes if strict_shapes is None else strict_shapes
    return _Rewriter(tree, resolution, profile, settings, strict).run()
