"""Pattern classifier — categorical profile of an artifact.

Every signal is counted from named syntax-tree nodes, never from raw
text, so reformatting an artifact cannot change its profile.
"""

from __future__ import annotations

import logging
import re

import tree_sitter

from frameshift.analysis.nodes import (
    callee,
    descendants,
    named,
    object_entries,
    string_value,
    text,
    unwrap,
    walk,
    word_count,
)
from frameshift.analysis.parser import SyntaxTree
from frameshift.analysis.schemas import ClassificationProfile
from frameshift.config import Settings
from frameshift.constants import (
    GEOMETRIC_NAMES,
    PROSE_MIN_WORDS,
    SCHEDULERS,
    STATE_HOOKS,
    TRIG_CALLS,
    Category,
    Scores,
)

logger = logging.getLogger(__name__)

SIGNAL_NAMES = (
    "periodic_updates",
    "prose_blocks",
    "content_collections",
    "geometric_bindings",
    "trig_calls",
    "node_count",
)

_MOTION_NOUNS = frozenset({
    "particle", "particles", "star", "stars", "bubble", "bubbles",
    "dot", "dots", "circle", "circles", "orb", "orbs", "shape", "shapes",
    "position", "pos", "offset", "rotation", "angle", "ball", "balls",
    "sparks", "spark", "flakes", "snowflakes", "points", "nodes",
})

_CLASS_ATTRS = frozenset({"className", "class", "style"})
_CSS_VALUE = re.compile(r"\w\(|\d(px|rem|em|%|vh|vw|deg|ms|s)\b|#[0-9a-fA-F]{3}")
_CAMEL_SPLIT = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


def collect_signals(root: tree_sitter.Node) -> dict[str, int]:
    """Count every classification signal in a single walk of the tree."""
    signals = dict.fromkeys(SIGNAL_NAMES, 0)
    for node in walk(root):
        if not node.is_named or node.type == "comment":
            continue
        if node.type == "jsx_text" and not text(node).strip():
            continue
        signals["node_count"] += 1
        if node.type == "call_expression":
            name = callee(node)
            if name in SCHEDULERS:
                signals["periodic_updates"] += 1
            elif name in TRIG_CALLS:
                signals["trig_calls"] += 1
            elif name is not None and name.endswith(".push"):
                if _is_geometric_object(_first_argument(node)):
                    signals["geometric_bindings"] += 1
        elif node.type == "jsx_element":
            if _element_prose_words(node) >= PROSE_MIN_WORDS:
                signals["prose_blocks"] += 1
        elif node.type in ("string", "template_string"):
            if _is_prose_literal(node):
                signals["prose_blocks"] += 1
        elif node.type == "array":
            if _is_content_collection(node):
                signals["content_collections"] += 1
        elif node.type == "variable_declarator":
            if _is_geometric_state(node):
                signals["geometric_bindings"] += 1
    return signals


def score(signals: dict[str, int]) -> tuple[int, int]:
    """(effect_score, content_score), each clamped to 0..100."""
    effect = (
        Scores.PERIODIC_WEIGHT * min(signals["periodic_updates"], Scores.PERIODIC_CAP)
        + Scores.GEOMETRIC_WEIGHT * min(signals["geometric_bindings"], Scores.GEOMETRIC_CAP)
        + Scores.TRIG_WEIGHT * min(signals["trig_calls"], Scores.TRIG_CAP)
    )
    content = (
        Scores.PROSE_WEIGHT * min(signals["prose_blocks"], Scores.PROSE_CAP)
        + Scores.COLLECTION_WEIGHT * min(signals["content_collections"], Scores.COLLECTION_CAP)
    )
    if signals["node_count"] > Scores.LARGE_TREE_NODES:
        content += Scores.LARGE_TREE_BONUS
    return min(effect, Scores.MAX), min(content, Scores.MAX)


def classify(
    tree: SyntaxTree,
    settings: Settings | None = None,
    force_category: Category | None = None,
) -> ClassificationProfile:
    """Assign a primary category with a confidence score."""
    settings = settings or Settings()
    signals = collect_signals(tree.root)
    effect, content = score(signals)
    matched = tuple(
        f"{name}:{signals[name]}"
        for name in SIGNAL_NAMES
        if name != "node_count" and signals[name] > 0
    )

    if force_category is not None:
        return ClassificationProfile(
            primary_category=force_category,
            confidence_score=Scores.MAX,
            matched_signals=(*matched, "forced"),
            content_score=content,
            effect_score=effect,
            signals=signals,
        )

    diff = abs(effect - content)
    if effect >= Scores.STRONG and content >= Scores.STRONG:
        category = Category.MIXED
        confidence = round(0.8 * min(effect, content))
    elif diff <= settings.tie_margin:
        category = Category.CONTENT
        confidence = round(0.5 * content)
    else:
        category = Category.EFFECT if effect > content else Category.CONTENT
        confidence = round(0.6 * max(effect, content) + 0.8 * diff)

    profile = ClassificationProfile(
        primary_category=category,
        confidence_score=max(0, min(Scores.MAX, confidence)),
        matched_signals=matched,
        content_score=content,
        effect_score=effect,
        signals=signals,
    )
    logger.debug(
        "event=classified category=%s confidence=%d effect=%d content=%d",
        profile.primary_category,
        profile.confidence_score,
        effect,
        content,
    )
    return profile


# ── Signal predicates ────────────────────────────────────


def _first_argument(call: tree_sitter.Node) -> tree_sitter.Node | None:
    args = call.child_by_field_name("arguments")
    if args is None:
        return None
    inner = named(args)
    return unwrap(inner[0]) if inner else None


def _element_prose_words(element: tree_sitter.Node) -> int:
    """Words in an element's direct text children."""
    return word_count(
        " ".join(text(c) for c in element.named_children if c.type == "jsx_text")
    )


def _is_prose_literal(node: tree_sitter.Node) -> bool:
    value = string_value(node)
    if value is None or word_count(value) < PROSE_MIN_WORDS:
        return False
    if _CSS_VALUE.search(value):
        return False
    for parent in (node.parent, node.parent.parent if node.parent else None):
        if parent is None:
            continue
        if parent.type == "jsx_attribute":
            attr = named(parent)
            if attr and text(attr[0]) in _CLASS_ATTRS:
                return False
        if parent.type in ("import_statement", "export_statement"):
            return False
    return True


def _is_content_collection(array: tree_sitter.Node) -> bool:
    items = named(array)
    if len(items) < 2 or any(i.type != "object" for i in items):
        return False
    return all(
        any(string_value(value) is not None for key, value in object_entries(item) if key)
        for item in items
    )


def _object_keys(node: tree_sitter.Node | None) -> set[str]:
    if node is None:
        return set()
    return {key for key, _ in object_entries(node) if key}


def _is_geometric_object(node: tree_sitter.Node | None) -> bool:
    if node is None or node.type != "object":
        return False
    return len(_object_keys(node) & GEOMETRIC_NAMES) >= 2


def _is_geometric_state(declarator: tree_sitter.Node) -> bool:
    value = unwrap(declarator.child_by_field_name("value"))
    if value is None or value.type != "call_expression":
        return False
    if callee(value) not in STATE_HOOKS:
        return False
    pattern = declarator.child_by_field_name("name")
    if pattern is not None and pattern.type == "array_pattern":
        targets = named(pattern)
        if targets:
            tokens = {t.lower() for t in _CAMEL_SPLIT.findall(text(targets[0]))}
            if tokens & (_MOTION_NOUNS | GEOMETRIC_NAMES):
                return True
    args = value.child_by_field_name("arguments")
    if args is None:
        return False
    return any(_is_geometric_object(obj) for obj in descendants(args, "object"))
