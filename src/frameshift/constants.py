"""Shared constants — single source of truth for cross-module values.

StrEnum members are str-compatible, so findings, stage traces and the
JSON audit log carry plain strings without conversion.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class Category(StrEnum):
    """Primary classification of an artifact."""

    CONTENT = "content"
    EFFECT = "effect"
    MIXED = "mixed"


class Dialect(StrEnum):
    """Source dialects the structural parser accepts."""

    TSX = "tsx"
    JSX = "jsx"


class FindingKind(StrEnum):
    """Structured audit-trail entries produced while transforming."""

    PARSE_ERROR = "parse_error"
    SHAPE_INCOMPLETE = "shape_incomplete"
    OPAQUE_SHAPE = "opaque_shape"
    OPAQUE_RECURRENCE = "opaque_recurrence"
    UNSUPPORTED_MUTATION = "unsupported_mutation"
    SETTER_STUBBED = "setter_stubbed"
    RESIDUAL_SCHEDULING = "residual_scheduling"
    UNRESOLVED_CLASS = "unresolved_class"
    DYNAMIC_CLASS = "dynamic_class"
    DISALLOWED_REFERENCE = "disallowed_reference"
    UNSAFE_TRANSFORM = "unsafe_transform"


class CorruptionSignature(StrEnum):
    """Textual damage the corruption guard recognises."""

    UNBALANCED_DELIMITER = "unbalanced_delimiter"
    UNTERMINATED_STRING = "unterminated_string"
    UNTERMINATED_COMMENT = "unterminated_comment"
    NESTED_STRING_BOUNDARY = "nested_string_boundary"
    DOUBLED_QUOTE_PREFIX = "doubled_quote_prefix"
    DUPLICATED_CSS_UNIT = "duplicated_css_unit"
    LEADING_OBJECT_COMMA = "leading_object_comma"


class Severity(StrEnum):
    """Severity levels for findings."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class TransformState(StrEnum):
    """States of the safety orchestrator."""

    PARSING = "parsing"
    CLASSIFYING = "classifying"
    TRANSFORMING = "transforming"
    VALIDATING = "validating"
    DONE = "done"
    FALLBACK = "fallback"


class StageOutcome(StrEnum):
    """Outcome of an individual pipeline stage execution."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class MutationContext(StrEnum):
    """Where a setter call runs, as far as the tree shows."""

    MOUNT = "mount"  # directly inside useEffect(..., [])
    INTERVAL = "interval"  # setInterval callback
    TIMEOUT = "timeout"  # setTimeout callback, fires once
    FRAME_LOOP = "frame_loop"  # self-scheduling requestAnimationFrame
    EVENT = "event"  # JSX on* handler or addEventListener
    REACTIVE = "reactive"  # effect with dependencies
    UNKNOWN = "unknown"


class ValueKind(StrEnum):
    """Coarse value kinds inferred from literals."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


class ArgumentKind(StrEnum):
    """What a setter call passes."""

    LITERAL = "literal"
    UPDATER = "updater"
    EXPRESSION = "expression"


# ── Classification Thresholds ────────────────────────────


class Scores:
    """Named classifier weights and caps."""

    PERIODIC_WEIGHT = 25
    PERIODIC_CAP = 2
    GEOMETRIC_WEIGHT = 20
    GEOMETRIC_CAP = 2
    TRIG_WEIGHT = 4
    TRIG_CAP = 5
    PROSE_WEIGHT = 12
    PROSE_CAP = 6
    COLLECTION_WEIGHT = 20
    COLLECTION_CAP = 1
    LARGE_TREE_BONUS = 8
    LARGE_TREE_NODES = 1500
    STRONG = 60  # both scores at or above → mixed
    MAX = 100


PROSE_MIN_WORDS = 3

# ── Timing ───────────────────────────────────────────────

FRAME_LOOP_INTERVAL_MS = 1000 / 60

# ── React / Remotion Names ───────────────────────────────

REMOTION_MODULE = "remotion"
FRAME_HOOK = "useCurrentFrame"
SEEDED_RANDOM = "random"
FULL_FRAME = "AbsoluteFill"

STATE_HOOKS = frozenset({"useState"})
EFFECT_HOOKS = frozenset({"useEffect", "useLayoutEffect"})
REMOVABLE_REACT_IMPORTS = ("useState", "useEffect", "useLayoutEffect")

INTERVAL_SCHEDULERS = frozenset({"setInterval"})
TIMEOUT_SCHEDULERS = frozenset({"setTimeout"})
FRAME_SCHEDULERS = frozenset({"requestAnimationFrame"})
SCHEDULERS = INTERVAL_SCHEDULERS | TIMEOUT_SCHEDULERS | FRAME_SCHEDULERS
CANCELLERS = frozenset({
    "clearInterval",
    "clearTimeout",
    "cancelAnimationFrame",
    "removeEventListener",
})
WALL_CLOCK_CALLS = frozenset({"Date.now", "performance.now"})
TRIG_CALLS = frozenset({"Math.sin", "Math.cos", "Math.tan", "Math.atan2"})

# Array methods whose callback receives an element (index of that param)
ELEMENT_CALLBACKS: dict[str, int] = {
    "map": 0,
    "forEach": 0,
    "filter": 0,
    "find": 0,
    "findIndex": 0,
    "some": 0,
    "every": 0,
    "flatMap": 0,
    "reduce": 1,
}

# Geometric property names that mark a binding as motion state
GEOMETRIC_NAMES = frozenset({
    "x", "y", "z", "vx", "vy", "vz", "dx", "dy", "speed", "velocity",
    "size", "radius", "r", "angle", "rotation", "scale", "width",
    "height", "orbit", "phase", "theta",
})

# Names that identify a navigation index state variable
INDEX_NAME_PATTERN = (
    r"^(current|active|selected|visible)?"
    r"(slide|scene|page|index|idx|tab|step|item|card|panel)"
    r"(index|idx)?$"
)

# ── Enhancement ──────────────────────────────────────────

ENHANCEMENT_LINE_HEIGHT = 1.5
ENHANCEMENT_GAP = "24px"
ENHANCEMENT_SHADOW = "0 4px 12px rgba(0, 0, 0, 0.15)"
ENHANCEMENT_GRADIENT = "linear-gradient(135deg, #0f172a 0%, #1e293b 100%)"

# ── Misc ─────────────────────────────────────────────────

EXCERPT_CHARS = 60
ERROR_TRUNCATION_CHARS = 200

# ── Stage Labels (user-facing) ─────────────────────────

STAGE_LABELS: dict[str, str] = {
    "parse": "Parsing artifact",
    "repair": "Repairing corruption",
    "classify": "Classifying artifact",
    "resolve": "Resolving state bindings",
    "rewrite": "Rewriting to frame time",
    "normalize": "Normalizing styles",
    "enhance": "Applying design prism",
    "validate": "Validating output",
}
