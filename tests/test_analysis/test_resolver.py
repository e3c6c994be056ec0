"""Tests for the stateful-variable resolver."""

from __future__ import annotations

import pytest

from frameshift.analysis.resolver import resolve, resolve_bindings
from frameshift.analysis.schemas import KnownShape, OpaqueShape
from frameshift.constants import (
    FRAME_LOOP_INTERVAL_MS,
    ArgumentKind,
    MutationContext,
    ValueKind,
)
from tests.conftest import parse

STARS = """\
function Stars() {
  const [stars, setStars] = useState([]);
  useEffect(() => {
    const list = [];
    for (let i = 0; i < 20; i++) {
      list.push({ x: Math.random() * 100, y: Math.random() * 100 });
    }
    setStars(list);
  }, []);
  return <div>{stars.map(s => <span style={{ left: s.x, top: s.y, width: s.r }} />)}</div>;
}
"""

SPINNER = """\
function Spinner() {
  const [angle, setAngle] = useState(0);
  useEffect(() => {
    let raf;
    const tick = () => {
      setAngle(a => a + 1);
      raf = requestAnimationFrame(tick);
    };
    raf = requestAnimationFrame(tick);
    return () => cancelAnimationFrame(raf);
  }, []);
  return <div style={{ transform: `rotate(${angle}deg)` }} />;
}
"""


# ── Bindings and shapes ──────────────────────────────────────


def test_particles_binding(particles_source: str) -> None:
    """Generated collection with an interval updater."""
    bindings = resolve_bindings(parse(particles_source))
    particles = bindings["particles"]

    assert particles.setter == "setParticles"
    assert isinstance(particles.shape, KnownShape)
    assert particles.shape.collection is True
    assert particles.shape.element_count == 50
    assert particles.shape.property_names == (
        "id", "x", "y", "vx", "vy", "size", "color", "phase",
    )
    assert particles.missing_properties == ()
    assert particles.time_driven


def test_particles_mutation_site(particles_source: str) -> None:
    (site,) = resolve_bindings(parse(particles_source))["particles"].mutation_sites

    assert site.context == MutationContext.INTERVAL
    assert site.interval_ms == 16.0
    assert site.argument_kind == ArgumentKind.UPDATER
    assert site.read_properties == ("x", "vx", "y", "vy")


def test_particles_usage_reads(particles_source: str) -> None:
    binding = resolve_bindings(parse(particles_source))["particles"]
    iterators = [u for u in binding.usage_sites if u.via == "iterator"]

    assert len(iterators) == 1
    assert iterators[0].properties == ("id", "x", "y", "size", "color", "phase")


def test_carousel_index_binding(carousel_source: str) -> None:
    binding = resolve_bindings(parse(carousel_source))["currentSlide"]

    assert isinstance(binding.shape, KnownShape)
    assert binding.shape.value_kind == ValueKind.NUMBER
    (site,) = binding.mutation_sites
    assert site.context == MutationContext.EVENT
    assert site.argument_kind == ArgumentKind.UPDATER
    assert not binding.time_driven
    assert [u.via for u in binding.usage_sites] == ["direct"]


def test_mount_loop_population() -> None:
    """An empty initial array filled by a mount-time loop takes the loop's shape."""
    resolution = resolve(parse(STARS))
    binding = resolution.bindings["stars"]

    assert isinstance(binding.shape, KnownShape)
    assert binding.shape.element_count == 20
    assert binding.shape.property_names == ("x", "y")
    assert binding.missing_properties == ("r",)
    assert binding.shape_incomplete
    assert resolution.evidence["stars"].population_source == "mount"
    assert binding.mutation_sites[0].context == MutationContext.MOUNT
    assert binding.mutation_sites[0].argument_kind == ArgumentKind.EXPRESSION


def test_opaque_initializer() -> None:
    code = (
        "function P() {\n"
        "  const [points, setPoints] = useState(makePoints());\n"
        "  useEffect(() => { const t = setInterval(() => setPoints(p => p), 30); }, []);\n"
        "  return <svg>{points.length}</svg>;\n"
        "}\n"
    )
    binding = resolve_bindings(parse(code))["points"]

    assert isinstance(binding.shape, OpaqueShape)
    assert "makePoints" in binding.shape.reason
    assert binding.missing_properties == ()


def test_duplicate_names_are_keyed_by_line() -> None:
    code = (
        "function A() { const [n, setN] = useState(0); return n; }\n"
        "function B() { const [n, setN] = useState(1); return n; }\n"
    )
    bindings = resolve_bindings(parse(code))
    assert list(bindings) == ["n", "n@2"]


def test_binding_without_setter() -> None:
    code = "function A() { const [seed] = useState(() => 4); return seed; }"
    binding = resolve_bindings(parse(code))["seed"]
    assert binding.setter is None
    assert binding.mutation_sites == ()


def test_non_state_declarations_ignored() -> None:
    code = "function A() { const [a, b] = useMemo(() => [1, 2], []); return a + b; }"
    assert resolve_bindings(parse(code)) == {}


# ── Mutation contexts ────────────────────────────────────────


@pytest.mark.parametrize(
    ("schedule", "context", "interval"),
    [
        ("setTimeout(() => setOn(true), 1000)", MutationContext.TIMEOUT, 1000.0),
        ("setTimeout(() => setOn(true))", MutationContext.TIMEOUT, 0.0),
        ("setInterval(() => setOn(v => !v), 250)", MutationContext.INTERVAL, 250.0),
        ("setInterval(() => setOn(v => !v), DELAY)", MutationContext.INTERVAL, 500.0),
        ("window.addEventListener('click', () => setOn(true))", MutationContext.EVENT, None),
    ],
)
def test_scheduler_contexts(
    schedule: str, context: MutationContext, interval: float | None
) -> None:
    code = (
        "const DELAY = 500;\n"
        "function A() {\n"
        "  const [on, setOn] = useState(false);\n"
        f"  useEffect(() => {{ {schedule}; }}, []);\n"
        "  return <i>{String(on)}</i>;\n"
        "}\n"
    )
    (site,) = resolve_bindings(parse(code))["on"].mutation_sites
    assert site.context == context
    assert site.interval_ms == interval


def test_frame_loop_context() -> None:
    """A callback that reschedules itself with requestAnimationFrame."""
    (site,) = resolve_bindings(parse(SPINNER))["angle"].mutation_sites
    assert site.context == MutationContext.FRAME_LOOP
    assert site.interval_ms == pytest.approx(FRAME_LOOP_INTERVAL_MS)


def test_reactive_effect_context() -> None:
    code = (
        "function A({ value }) {\n"
        "  const [shown, setShown] = useState(0);\n"
        "  useEffect(() => { setShown(value); }, [value]);\n"
        "  return shown;\n"
        "}\n"
    )
    (site,) = resolve_bindings(parse(code))["shown"].mutation_sites
    assert site.context == MutationContext.REACTIVE
    assert site.argument_kind == ArgumentKind.EXPRESSION


def test_named_handler_is_event() -> None:
    """A setter inside a named function passed to onClick runs on events."""
    code = (
        "function A() {\n"
        "  const [count, setCount] = useState(0);\n"
        "  const reset = () => { setCount(0); };\n"
        "  return <button onClick={reset}>{count}</button>;\n"
        "}\n"
    )
    (site,) = resolve_bindings(parse(code))["count"].mutation_sites
    assert site.context == MutationContext.EVENT
    assert site.argument_kind == ArgumentKind.LITERAL


def test_setter_passed_by_reference() -> None:
    code = (
        "function A() {\n"
        "  const [v, setV] = useState(0);\n"
        "  return <input onChange={setV} value={v} />;\n"
        "}\n"
    )
    (site,) = resolve_bindings(parse(code))["v"].mutation_sites
    assert site.context == MutationContext.EVENT
    assert site.argument_kind == ArgumentKind.EXPRESSION


# ── Usage sites ──────────────────────────────────────────────


def test_member_and_subscript_usage() -> None:
    code = (
        "function A() {\n"
        "  const [box, setBox] = useState({ w: 1, h: 2 });\n"
        "  const [items] = useState([{ label: 'a' }, { label: 'b' }]);\n"
        "  const { label } = items[0];\n"
        "  return <div style={{ width: box.w, height: box.depth }}>{label}</div>;\n"
        "}\n"
    )
    bindings = resolve_bindings(parse(code))

    box = bindings["box"]
    assert [u.via for u in box.usage_sites] == ["member", "member"]
    assert box.missing_properties == ("depth",)

    items = bindings["items"]
    (usage,) = items.usage_sites
    assert usage.via == "subscript"
    assert usage.properties == ("label",)
    assert items.missing_properties == ()


def test_destructuring_and_string_keys_are_reads() -> None:
    code = (
        "function A() {\n"
        "  const [pos, setPos] = useState({ x: 0, y: 0 });\n"
        "  const { x, w } = pos;\n"
        "  const tall = pos['h'] > 2;\n"
        "  return <div style={{ left: x, width: w, top: pos.y }}>{tall}</div>;\n"
        "}\n"
    )
    pos = resolve_bindings(parse(code))["pos"]

    assert [(u.via, u.properties) for u in pos.usage_sites] == [
        ("member", ("x", "w")),
        ("member", ("h",)),
        ("member", ("y",)),
    ]
    assert pos.missing_properties == ("w", "h")
    assert pos.shape_incomplete


def test_string_key_on_collection_builtin_is_direct() -> None:
    code = (
        "function A() {\n"
        "  const [items] = useState([{ a: 1 }]);\n"
        "  return <b>{items['length']}</b>;\n"
        "}\n"
    )
    (usage,) = resolve_bindings(parse(code))["items"].usage_sites
    assert usage.via == "direct"


def test_shadowing_declarations_are_not_usages() -> None:
    """Parameters and locals that reuse the name are skipped."""
    code = (
        "function A() {\n"
        "  const [size, setSize] = useState(3);\n"
        "  const grow = (size) => 2;\n"
        "  function half() { const size = 1; return 0; }\n"
        "  return <b>{grow(size)}</b>;\n"
        "}\n"
    )
    binding = resolve_bindings(parse(code))["size"]
    assert [u.via for u in binding.usage_sites] == ["escape"]
