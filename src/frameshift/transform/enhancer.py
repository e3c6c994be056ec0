"""Design prism — additive presentation defaults for video output.

Each rule looks at one literal ``style={{...}}`` object and may add a
single property it is missing. Nothing is ever overwritten or removed,
so running the pass twice changes nothing the second time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from frameshift.analysis.nodes import (
    Node,
    jsx_attribute_value,
    jsx_elements,
    jsx_expression_content,
    jsx_find_attribute,
    jsx_is_outermost,
    line_of,
    named,
    object_entries,
    string_value,
)
from frameshift.analysis.parser import Edit, SyntaxTree
from frameshift.analysis.schemas import ClassificationProfile
from frameshift.constants import (
    ENHANCEMENT_GAP,
    ENHANCEMENT_GRADIENT,
    ENHANCEMENT_LINE_HEIGHT,
    ENHANCEMENT_SHADOW,
)
from frameshift.transform.emit import Expr, Num, ObjectLit, Str, property_key

logger = logging.getLogger(__name__)

_BACKGROUND_KEYS = frozenset({"background", "backgroundColor", "backgroundImage"})
_GAP_KEYS = frozenset({"gap", "rowGap", "columnGap"})
_LAYOUT_DISPLAYS = frozenset({"flex", "inline-flex", "grid", "inline-grid"})


@dataclass(frozen=True)
class AppliedEnhancement:
    rule: str
    element_index: int
    property: str
    value: str


@dataclass(frozen=True)
class EnhanceOutcome:
    tree: SyntaxTree
    applied: tuple[AppliedEnhancement, ...] = ()


@dataclass(frozen=True)
class StyleSite:
    """A literal style object and where its element sits."""

    index: int
    element: Node
    style: Node
    entries: dict[str, Node]
    root: bool


type Rule = Callable[[StyleSite], tuple[str, Expr] | None]


# ── Rules ────────────────────────────────────────────────


def typography_scale(site: StyleSite) -> tuple[str, Expr] | None:
    if "fontSize" in site.entries and "lineHeight" not in site.entries:
        return "lineHeight", Num(ENHANCEMENT_LINE_HEIGHT)
    return None


def spacing_rhythm(site: StyleSite) -> tuple[str, Expr] | None:
    display = string_value(site.entries.get("display"))
    if display in _LAYOUT_DISPLAYS and not _GAP_KEYS & site.entries.keys():
        return "gap", Str(ENHANCEMENT_GAP)
    return None


def shadow(site: StyleSite) -> tuple[str, Expr] | None:
    if site.root or "boxShadow" in site.entries or "borderRadius" not in site.entries:
        return None
    if _BACKGROUND_KEYS & site.entries.keys():
        return "boxShadow", Str(ENHANCEMENT_SHADOW)
    return None


def gradient_default(site: StyleSite) -> tuple[str, Expr] | None:
    if not site.root or site.element.type != "jsx_opening_element":
        return None
    if _BACKGROUND_KEYS & site.entries.keys():
        return None
    return "background", Str(ENHANCEMENT_GRADIENT)


RULES: dict[str, Rule] = {
    "typography-scale": typography_scale,
    "spacing-rhythm": spacing_rhythm,
    "shadow": shadow,
    "gradient-default": gradient_default,
}


# ── Pass ─────────────────────────────────────────────────


def style_sites(root: Node) -> list[StyleSite]:
    """Elements whose ``style`` is a spread-free object literal."""
    sites: list[StyleSite] = []
    for index, element in enumerate(jsx_elements(root)):
        attr = jsx_find_attribute(element, "style")
        if attr is None:
            continue
        style = jsx_expression_content(jsx_attribute_value(attr))
        if style is None or style.type != "object":
            continue
        entries = object_entries(style)
        if any(key is None for key, _ in entries):
            continue
        sites.append(
            StyleSite(
                index=index,
                element=element,
                style=style,
                entries={key: value for key, value in entries if key is not None},
                root=jsx_is_outermost(element),
            )
        )
    return sites


def _insertion(site: StyleSite, additions: list[tuple[str, Expr]]) -> Edit:
    members = named(site.style)
    if not members:
        replacement = ObjectLit(tuple(additions)).render()
        return Edit(site.style.start_byte, site.style.end_byte, replacement)
    code = "".join(f", {property_key(k)}: {v.render()}" for k, v in additions)
    return Edit(members[-1].end_byte, members[-1].end_byte, code)


def enhance(
    tree: SyntaxTree,
    profile: ClassificationProfile,
    threshold: int,
    targets: frozenset[int] | None = None,
) -> EnhanceOutcome:
    """Apply every rule to the targeted style objects.

    ``targets`` restricts the pass to element ordinals; None means all.
    Below the confidence threshold the tree is returned untouched.
    """
    if profile.confidence_score < threshold:
        logger.debug(
            "event=enhance_skipped confidence=%d threshold=%d",
            profile.confidence_score,
            threshold,
        )
        return EnhanceOutcome(tree=tree)

    edits: list[Edit] = []
    applied: list[AppliedEnhancement] = []
    for site in style_sites(tree.root):
        if targets is not None and site.index not in targets:
            continue
        additions: list[tuple[str, Expr]] = []
        for name, rule in RULES.items():
            fired = rule(site)
            if fired is None:
                continue
            prop, value = fired
            additions.append(fired)
            applied.append(
                AppliedEnhancement(name, site.index, prop, value.render())
            )
            logger.debug(
                "event=enhancement_applied rule=%s element=%d line=%d",
                name,
                site.index,
                line_of(site.element),
            )
        if additions:
            edits.append(_insertion(site, additions))

    result = tree.apply(edits, stage="enhance")
    logger.info("event=enhance_complete applied=%d", len(applied))
    return EnhanceOutcome(tree=result, applied=tuple(applied))
