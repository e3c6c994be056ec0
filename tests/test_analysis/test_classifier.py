"""Tests for the pattern classifier."""

from __future__ import annotations

from frameshift.analysis.classifier import SIGNAL_NAMES, classify, collect_signals, score
from frameshift.config import Settings
from frameshift.constants import Category
from tests.conftest import parse

TICKER = """\
export default function Ticker() {
  const [count, setCount] = useState(0);
  useEffect(() => {
    const id = setInterval(() => setCount(c => c + 1), 1000);
    return () => clearInterval(id);
  }, []);
  return (
    <div>
      <p>Here are some words</p>
      <p>And here are more</p>
      <span>{count}</span>
    </div>
  );
}
"""

TICKER_COMPACT = (
    "export default function Ticker() { const [count, setCount] = useState(0);"
    " useEffect(() => { const id = setInterval(() => setCount(c => c + 1), 1000);"
    " return () => clearInterval(id); }, []);"
    " return (<div><p>Here are some words</p><p>And here are more</p>"
    "<span>{count}</span></div>); }\n"
)


def _signals(**overrides: int) -> dict[str, int]:
    signals = dict.fromkeys(SIGNAL_NAMES, 0)
    signals.update(overrides)
    return signals


# ── score ────────────────────────────────────────────────────


def test_score_applies_weights_and_caps() -> None:
    """Periodic and geometric counts saturate at two each."""
    signals = _signals(
        periodic_updates=2,
        geometric_bindings=2,
        prose_blocks=6,
        content_collections=1,
        node_count=10,
    )
    assert score(signals) == (90, 92)
    signals["periodic_updates"] = 7
    assert score(signals) == (90, 92)


def test_score_large_tree_bonus() -> None:
    assert score(_signals(node_count=1501)) == (0, 8)
    assert score(_signals(node_count=1500)) == (0, 0)


def test_score_clamps_to_hundred() -> None:
    effect, _ = score(_signals(periodic_updates=2, geometric_bindings=2, trig_calls=5))
    assert effect == 100


# ── classify ─────────────────────────────────────────────────


def test_particles_are_effect(particles_source: str, settings: Settings) -> None:
    """Interval updater over a geometric collection reads as an effect."""
    profile = classify(parse(particles_source), settings)

    assert profile.primary_category == Category.EFFECT
    assert profile.signals["periodic_updates"] == 1
    assert profile.signals["geometric_bindings"] >= 1
    assert profile.effect_score > profile.content_score
    assert "periodic_updates:1" in profile.matched_signals


def test_carousel_is_content(carousel_source: str, settings: Settings) -> None:
    profile = classify(parse(carousel_source), settings)

    assert profile.primary_category == Category.CONTENT
    assert profile.signals["content_collections"] == 1
    assert profile.signals["prose_blocks"] >= 4
    assert profile.signals["periodic_updates"] == 0
    assert profile.confidence_score == 100


def test_near_tie_resolves_to_content(settings: Settings) -> None:
    """Scores within the tie margin default to content at half confidence."""
    profile = classify(parse(TICKER), settings)

    assert profile.effect_score == 25
    assert profile.content_score == 24
    assert profile.primary_category == Category.CONTENT
    assert profile.confidence_score == 12


def test_tie_margin_is_configurable() -> None:
    profile = classify(parse(TICKER), Settings(tie_margin=0))
    assert profile.primary_category == Category.EFFECT


def test_force_category_overrides(carousel_source: str, settings: Settings) -> None:
    profile = classify(parse(carousel_source), settings, Category.EFFECT)

    assert profile.primary_category == Category.EFFECT
    assert profile.confidence_score == 100
    assert "forced" in profile.matched_signals


def test_reformatting_does_not_change_profile(settings: Settings) -> None:
    """Whitespace and line breaks leave every signal untouched."""
    spread = classify(parse(TICKER), settings)
    compact = classify(parse(TICKER_COMPACT), settings)

    assert spread.signals == compact.signals
    assert spread.primary_category == compact.primary_category
    assert spread.confidence_score == compact.confidence_score


def test_comments_and_class_strings_are_not_prose() -> None:
    code = (
        "// setInterval(() => tick(), 10) would animate this forever\n"
        'const A = () => <div className="flex items-center justify-between gap-4" />;\n'
    )
    signals = collect_signals(parse(code).root)

    assert signals["periodic_updates"] == 0
    assert signals["prose_blocks"] == 0


def test_geometric_state_by_name() -> None:
    """A state variable named after moving things counts as geometric."""
    code = "function S() { const [stars, setStars] = useState([]); return null; }"
    assert collect_signals(parse(code).root)["geometric_bindings"] == 1


def test_geometric_push_in_loop() -> None:
    code = (
        "const out = [];\n"
        "for (let i = 0; i < 5; i++) { out.push({ x: i, y: i * 2 }); }\n"
    )
    assert collect_signals(parse(code).root)["geometric_bindings"] == 1


def test_trig_calls_counted() -> None:
    code = "const a = Math.sin(1) + Math.cos(2) + Math.sqrt(4);"
    assert collect_signals(parse(code).root)["trig_calls"] == 2
