"""Style normalizer — utility classes into inline ``style`` objects.

A rendered frame has no stylesheet, so static ``className`` tokens are
looked up in the utility table and moved into ``style``. Inline
properties the author wrote keep priority over class-derived ones.
Tokens the table does not know stay in ``className`` and are reported,
as do the classes on capitalised components.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from frameshift.analysis.nodes import (
    Node,
    identifier_references,
    jsx_attribute_value,
    jsx_elements,
    jsx_expression_content,
    jsx_find_attribute,
    jsx_is_outermost,
    jsx_tag_name,
    line_of,
    named,
    object_entries,
    string_value,
)
from frameshift.analysis.parser import Edit, SyntaxTree
from frameshift.analysis.schemas import ClassificationProfile, Finding
from frameshift.config import Settings
from frameshift.constants import (
    FULL_FRAME,
    REMOTION_MODULE,
    Category,
    FindingKind,
    Severity,
)
from frameshift.transform.emit import (
    Expr,
    Fragment,
    JsxAttribute,
    Num,
    ObjectLit,
    Spread,
    Str,
)
from frameshift.transform.imports import imported_from, manage_imports
from frameshift.transform.scheduling import attribute_span
from frameshift.transform.style_tables import (
    StyleMap,
    is_full_screen,
    resolve_classes,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizeOutcome:
    """Result of the normalize stage.

    ``enhancement_targets`` holds element ordinals (document order of
    opening and self-closing elements) the design prism may touch;
    None means every element.
    """

    tree: SyntaxTree
    resolved: int = 0
    unresolved: tuple[str, ...] = ()
    findings: tuple[Finding, ...] = ()
    enhancement_targets: frozenset[int] | None = frozenset()
    promoted_root: bool = False


def style_value(value: str | int | float) -> Expr:
    if isinstance(value, str):
        return Str(value)
    return Num(float(value))


def is_intrinsic(tag: str) -> bool:
    """Lowercase host elements such as ``div`` or ``svg``, not components."""
    return tag[:1].islower() and "." not in tag


def static_class_names(attr: Node) -> str | None:
    """Literal ``className`` text, None when it is computed."""
    value = jsx_attribute_value(attr)
    if value is None:
        return None
    if value.type == "string":
        return string_value(value)
    return string_value(jsx_expression_content(value))


def merged_style(styles: StyleMap, existing: Node | None) -> ObjectLit | None:
    """Class-derived properties followed by whatever ``style`` already held.

    Returns None when the existing value is not something an object
    literal can absorb.
    """
    entries: list[tuple[str, Expr] | Spread | Fragment] = []
    if existing is None:
        return ObjectLit(tuple((k, style_value(v)) for k, v in styles.items()))

    inner = jsx_expression_content(existing)
    if inner is None:
        return None
    if inner.type == "object":
        written = {key for key, _ in object_entries(inner) if key is not None}
        entries.extend(
            (k, style_value(v)) for k, v in styles.items() if k not in written
        )
        entries.extend(Fragment(child) for child in named(inner))
        return ObjectLit(tuple(entries))
    entries.extend((k, style_value(v)) for k, v in styles.items())
    entries.append(Spread(Fragment(inner)))
    return ObjectLit(tuple(entries))


def _closing_name(element: Node) -> Node | None:
    parent = element.parent
    if parent is None or parent.type != "jsx_element":
        return None
    closing = parent.child_by_field_name("close_tag")
    if closing is None:
        closing = next(
            (c for c in named(parent) if c.type == "jsx_closing_element"), None
        )
    return closing.child_by_field_name("name") if closing is not None else None


class _Normalizer:
    def __init__(
        self,
        tree: SyntaxTree,
        profile: ClassificationProfile,
        settings: Settings,
    ) -> None:
        self.tree = tree
        self.profile = profile
        self.settings = settings
        self.edits: list[Edit] = []
        self.findings: list[Finding] = []
        self.unresolved: list[str] = []
        self.resolved = 0
        self.normalized: set[int] = set()
        self.frame_name: str | None = None
        self.promoted = False

    def run(self) -> NormalizeOutcome:
        promote = (
            self.settings.promote_root
            and self.profile.primary_category != Category.CONTENT
        )
        if promote:
            self.frame_name = self._full_frame_name()
        for ordinal, element in enumerate(jsx_elements(self.tree.root)):
            self._element(ordinal, element)

        tree = self.tree.apply(self.edits, stage="normalize")
        promoted = self.promoted
        if promoted and self.frame_name is not None:
            tree = manage_imports(tree, {FULL_FRAME: self.frame_name})

        match self.profile.primary_category:
            case Category.CONTENT:
                targets: frozenset[int] | None = frozenset()
            case Category.MIXED:
                targets = frozenset(self.normalized)
            case _:
                targets = None
        logger.info(
            "event=styles_normalized resolved=%d unresolved=%d elements=%d promoted=%s",
            self.resolved,
            len(self.unresolved),
            len(self.normalized),
            promoted,
        )
        return NormalizeOutcome(
            tree=tree,
            resolved=self.resolved,
            unresolved=tuple(self.unresolved),
            findings=tuple(self.findings),
            enhancement_targets=targets,
            promoted_root=promoted,
        )

    def _full_frame_name(self) -> str | None:
        """Local name for the full-frame container, None when it would clash."""
        local = imported_from(self.tree.root, REMOTION_MODULE).get(FULL_FRAME)
        if local is not None:
            return local
        if identifier_references(self.tree.root, FULL_FRAME):
            return None
        return FULL_FRAME

    def _element(self, ordinal: int, element: Node) -> None:
        attr = jsx_find_attribute(element, "className")
        if attr is None:
            return
        classes = static_class_names(attr)
        if classes is None:
            self._finding(
                FindingKind.DYNAMIC_CLASS,
                f"computed className on <{jsx_tag_name(element)}> left as written",
                element,
            )
            return

        tokens = classes.split()
        tag = jsx_tag_name(element)
        if not is_intrinsic(tag):
            # on a component className is only a prop
            self.unresolved.extend(tokens)
            self._finding(
                FindingKind.UNRESOLVED_CLASS,
                f"className on component <{tag}> left as written: {classes.strip()}",
                element,
            )
            return

        styles, leftover = resolve_classes(tokens)
        self.resolved += len(tokens) - len(leftover)
        if leftover:
            self.unresolved.extend(leftover)
            self._finding(
                FindingKind.UNRESOLVED_CLASS,
                f"no inline equivalent for: {' '.join(leftover)}",
                element,
            )
        if not styles:
            return

        style_attr = jsx_find_attribute(element, "style")
        merged = merged_style(
            styles, jsx_attribute_value(style_attr) if style_attr is not None else None
        )
        if merged is None:
            logger.debug(
                "event=style_not_mergeable tag=%s line=%d",
                jsx_tag_name(element),
                line_of(element),
            )
            return

        remaining = JsxAttribute("className", " ".join(leftover)).render() if leftover else ""
        rendered_style = JsxAttribute("style", merged).render()
        if style_attr is None:
            replacement = f"{rendered_style} {remaining}".rstrip()
            self.edits.append(Edit(attr.start_byte, attr.end_byte, replacement))
        else:
            self.edits.append(Edit(style_attr.start_byte, style_attr.end_byte, rendered_style))
            if remaining:
                self.edits.append(Edit(attr.start_byte, attr.end_byte, remaining))
            else:
                start, end = attribute_span(self.tree.source, attr)
                self.edits.append(Edit(start, end, ""))
        self.normalized.add(ordinal)

        if (
            self.frame_name is not None
            and not self.promoted
            and jsx_tag_name(element) == "div"
            and jsx_is_outermost(element)
            and is_full_screen(tokens)
        ):
            self._promote(element, self.frame_name)

    def _promote(self, element: Node, frame_name: str) -> None:
        name = element.child_by_field_name("name")
        if name is None:
            return
        closing = _closing_name(element)
        if closing is None and element.type != "jsx_self_closing_element":
            return
        self.edits.append(Edit(name.start_byte, name.end_byte, frame_name))
        if closing is not None:
            self.edits.append(Edit(closing.start_byte, closing.end_byte, frame_name))
        self.promoted = True
        logger.debug("event=root_promoted line=%d", line_of(element))

    def _finding(self, kind: FindingKind, message: str, element: Node) -> None:
        self.findings.append(
            Finding(
                kind=kind,
                severity=Severity.INFO,
                message=message,
                line=line_of(element),
            )
        )


def normalize_styles(
    tree: SyntaxTree,
    profile: ClassificationProfile,
    settings: Settings | None = None,
) -> NormalizeOutcome:
    """Move static utility classes into inline styles."""
    return _Normalizer(tree, profile, settings or Settings()).run()

