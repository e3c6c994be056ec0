"""Tests for moving utility classes into inline styles."""

from __future__ import annotations

from frameshift.analysis.nodes import jsx_attribute_value
from frameshift.config import Settings
from frameshift.constants import Category, FindingKind
from frameshift.transform.normalizer import (
    is_intrinsic,
    merged_style,
    normalize_styles,
    static_class_names,
)
from tests.conftest import first_node, make_profile, parse

PANEL = (
    "export default function Panel() {\n"
    "  return (\n"
    '    <div className="w-full h-screen p-4">\n'
    '      <span className="font-bold">Hi</span>\n'
    "    </div>\n"
    "  );\n"
    "}\n"
)


def _style_value(code: str):
    tree = parse(code)
    return tree, jsx_attribute_value(first_node(tree.root, "jsx_attribute"))


# ── merged_style ─────────────────────────────────────────────


def test_merged_style_without_existing_style() -> None:
    merged = merged_style({"color": "#fff"}, None)
    assert merged is not None
    assert merged.render() == "{ color: '#fff' }"


def test_author_properties_win() -> None:
    """Inline properties stay and override the class-derived ones."""
    _, existing = _style_value("const e = <div style={{ margin: 4 }} />;")
    merged = merged_style({"padding": "8px", "color": "red", "margin": "0px"}, existing)
    assert merged is not None
    assert merged.render() == "{ padding: '8px', color: 'red', margin: 4 }"


def test_expression_style_is_spread() -> None:
    _, existing = _style_value("const e = <div style={base} />;")
    merged = merged_style({"color": "red"}, existing)
    assert merged is not None
    assert merged.render() == "{ color: 'red', ...base }"


def test_string_style_cannot_merge() -> None:
    _, existing = _style_value('const e = <div style="color: red" />;')
    assert merged_style({"color": "red"}, existing) is None


def test_static_class_names() -> None:
    tree = parse("const e = <div className={'p-4 flex'} />;")
    assert static_class_names(first_node(tree.root, "jsx_attribute")) == "p-4 flex"
    tree = parse("const e = <div className={active ? 'a' : 'b'} />;")
    assert static_class_names(first_node(tree.root, "jsx_attribute")) is None


# ── Whole artifact ───────────────────────────────────────────


def test_effect_root_is_promoted(settings: Settings) -> None:
    outcome = normalize_styles(parse(PANEL), make_profile(Category.EFFECT), settings)
    code = outcome.tree.text

    assert outcome.promoted_root
    assert code.startswith("import { AbsoluteFill } from 'remotion';\n")
    assert "<AbsoluteFill style={{ width: '100%', height: '100vh', padding: '16px' }}>" in code
    assert "</AbsoluteFill>" in code
    assert "<span style={{ fontWeight: 700 }}>Hi</span>" in code
    assert "className" not in code
    assert outcome.resolved == 4
    assert outcome.enhancement_targets is None


def test_content_root_is_not_promoted(carousel_source: str, settings: Settings) -> None:
    outcome = normalize_styles(parse(carousel_source), make_profile(Category.CONTENT), settings)
    code = outcome.tree.text

    assert not outcome.promoted_root
    assert "AbsoluteFill" not in code
    assert 'className="hover:bg-blue-700"' in code
    assert "backgroundColor: '#2563eb'" in code
    assert outcome.unresolved == ("hover:bg-blue-700",)
    assert outcome.enhancement_targets == frozenset()
    (finding,) = outcome.findings
    assert finding.kind == FindingKind.UNRESOLVED_CLASS


def test_existing_style_is_merged(particles_source: str, settings: Settings) -> None:
    outcome = normalize_styles(parse(particles_source), make_profile(), settings)
    code = outcome.tree.text

    assert "<AbsoluteFill" in code
    assert "position: 'absolute'" in code
    assert "borderRadius: '9999px'" in code
    assert "opacity: 0.5 + 0.5 * Math.sin(p.phase)" in code


def test_mixed_targets_normalized_elements(settings: Settings) -> None:
    outcome = normalize_styles(parse(PANEL), make_profile(Category.MIXED), settings)
    assert outcome.enhancement_targets == frozenset({0, 1})


def test_promotion_can_be_disabled() -> None:
    settings = Settings(_env_file=None, promote_root=False)  # type: ignore[call-arg]
    outcome = normalize_styles(parse(PANEL), make_profile(), settings)
    assert not outcome.promoted_root
    assert "AbsoluteFill" not in outcome.tree.text


def test_declared_name_blocks_promotion(settings: Settings) -> None:
    code = "const AbsoluteFill = 1;\n" + PANEL
    outcome = normalize_styles(parse(code), make_profile(), settings)
    assert not outcome.promoted_root
    assert "<div style=" in outcome.tree.text


def test_existing_remotion_alias_is_reused(settings: Settings) -> None:
    code = "import { AbsoluteFill as Fill } from 'remotion';\n" + PANEL
    outcome = normalize_styles(parse(code), make_profile(), settings)
    assert "<Fill style=" in outcome.tree.text
    assert "</Fill>" in outcome.tree.text


def test_dynamic_class_is_reported(settings: Settings) -> None:
    tree = parse("const e = <div className={active ? 'p-4' : 'p-2'}>x</div>;")
    outcome = normalize_styles(tree, make_profile(), settings)

    assert outcome.tree.text == tree.text
    (finding,) = outcome.findings
    assert finding.kind == FindingKind.DYNAMIC_CLASS


def test_component_classes_are_left_in_place(settings: Settings) -> None:
    tree = parse(
        "const e = (\n"
        "  <section className=\"p-4\">\n"
        "    <Card className=\"p-2 shadow-lg\">x</Card>\n"
        "    <motion.div className=\"p-2\" />\n"
        "  </section>\n"
        ");"
    )
    outcome = normalize_styles(tree, make_profile(Category.MIXED), settings)
    code = outcome.tree.text

    assert '<Card className="p-2 shadow-lg">' in code
    assert '<motion.div className="p-2" />' in code
    assert "<section style={{ padding: '16px' }}>" in code
    assert outcome.resolved == 1
    assert outcome.unresolved == ("p-2", "shadow-lg", "p-2")
    assert outcome.enhancement_targets == frozenset({0})
    messages = [f.message for f in outcome.findings if f.kind == FindingKind.UNRESOLVED_CLASS]
    assert messages == [
        "className on component <Card> left as written: p-2 shadow-lg",
        "className on component <motion.div> left as written: p-2",
    ]


def test_is_intrinsic() -> None:
    assert is_intrinsic("div")
    assert is_intrinsic("svg")
    assert not is_intrinsic("Card")
    assert not is_intrinsic("motion.div")
    assert not is_intrinsic("")
