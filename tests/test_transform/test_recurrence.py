"""Tests for recurrence classification and closed forms."""

from __future__ import annotations

from typing import Literal

import pytest

from frameshift.analysis.nodes import Node
from frameshift.transform.emit import Expr, Fragment, Ident, Num
from frameshift.transform.recurrence import (
    SELF,
    Hold,
    Integrated,
    Linear,
    Opaque,
    Periodic,
    Recurrence,
    Reset,
    Toggle,
    UpdatePlan,
    closed_form,
    extract_plan,
    is_integral_step,
    is_low_fidelity,
)
from tests.conftest import first_node, parse

TICKS = Ident("n")


def _plan(
    argument: str,
    shape: Literal["scalar", "object", "collection"] = "scalar",
    state: str = "value",
) -> UpdatePlan | str:
    tree = parse(f"setValue({argument});")
    call = first_node(tree.root, "call_expression")
    arg = call.child_by_field_name("arguments").named_children[0]
    return extract_plan(arg, state, shape)


def _render(node: Node) -> Expr:
    return Fragment(node)


def _initial(key: str) -> Expr:
    return Ident(f"{key}0")


def _closed(plan: UpdatePlan, key: str = SELF, initial: Expr | None = None) -> str:
    return closed_form(
        plan.recurrences[key],
        initial if initial is not None else Ident("start"),
        TICKS,
        _render,
        _initial,
        plan.recurrences,
    ).render()


def _scalar(argument: str) -> Recurrence:
    plan = _plan(argument)
    assert isinstance(plan, UpdatePlan)
    return plan.recurrences[SELF]


# ── Scalar updaters ──────────────────────────────────────────


def test_increment_is_linear() -> None:
    plan = _plan("c => c + 1")
    assert isinstance(plan, UpdatePlan)
    assert isinstance(plan.recurrences[SELF], Linear)
    assert _closed(plan) == "start + n"
    assert _closed(plan, initial=Num(0)) == "n"


def test_decrement_is_negative_linear() -> None:
    plan = _plan("c => c - 2")
    assert isinstance(plan, UpdatePlan)
    rec = plan.recurrences[SELF]
    assert isinstance(rec, Linear) and rec.sign == -1
    assert _closed(plan) == "start - 2 * n"


def test_step_on_left_is_linear() -> None:
    assert isinstance(_scalar("c => 0.5 + c"), Linear)


def test_modulo_is_periodic() -> None:
    plan = _plan("i => (i + 1) % 4")
    assert isinstance(plan, UpdatePlan)
    assert isinstance(plan.recurrences[SELF], Periodic)
    assert _closed(plan) == "(start + n) % 4"


def test_negation_is_toggle() -> None:
    plan = _plan("v => !v")
    assert isinstance(plan, UpdatePlan)
    assert isinstance(plan.recurrences[SELF], Toggle)
    assert _closed(plan) == "Math.floor(n) % 2 === 1 ? !start : start"


def test_literal_value_is_reset() -> None:
    """A plain value replaces the state once the first tick fires."""
    plan = _plan("true")
    assert isinstance(plan, UpdatePlan)
    assert isinstance(plan.recurrences[SELF], Reset)
    assert _closed(plan) == "n >= 1 ? true : start"


def test_reset_to_initial_value_is_constant() -> None:
    plan = _plan("true")
    assert isinstance(plan, UpdatePlan)
    assert _closed(plan, initial=Ident("true")) == "true"


def test_clamped_update_falls_back_to_motion() -> None:
    rec = _scalar("c => Math.min(c + 1, 10)")
    assert isinstance(rec, Opaque)
    assert rec.reason == "clamped update"
    assert isinstance(rec.fallback, Linear)
    assert is_low_fidelity(rec)


def test_conditional_update_is_opaque() -> None:
    rec = _scalar("c => c > 9 ? 0 : c + 1")
    assert isinstance(rec, Opaque)
    assert isinstance(rec.fallback, Linear)


def test_multiplication_is_not_closed_form() -> None:
    rec = _scalar("c => c * 2")
    assert isinstance(rec, Opaque)
    assert isinstance(rec.fallback, Hold)


def test_block_body_with_constant_local() -> None:
    assert isinstance(_scalar("c => { const next = c + 1; return next; }"), Linear)


def test_reassigned_local_is_opaque() -> None:
    rec = _scalar("c => { let n = c + 1; if (n > 9) n = 0; return n; }")
    assert isinstance(rec, Opaque)
    assert "reassigned" in rec.reason
    assert isinstance(rec.fallback, Linear)


# ── Object and collection updaters ───────────────────────────


def test_object_update_keeps_spread() -> None:
    plan = _plan("p => ({ ...p, x: p.x + p.vx })", "object")
    assert isinstance(plan, UpdatePlan)
    assert plan.spread_previous
    assert list(plan.recurrences) == ["x"]
    assert isinstance(plan.recurrences["x"], Linear)
    assert _closed(plan, "x", Ident("x0")) == "x0 + p.vx * n"


def test_collection_velocity_is_integrated() -> None:
    """Position stepping by a linearly changing velocity integrates it."""
    plan = _plan(
        "prev => prev.map(p => ({ ...p, vy: p.vy + 0.5, y: p.y + p.vy }))",
        "collection",
    )
    assert isinstance(plan, UpdatePlan)
    assert plan.shape == "collection"
    assert isinstance(plan.recurrences["vy"], Linear)
    assert plan.recurrences["y"] == Integrated("vy", 1)
    assert (
        _closed(plan, "y", Ident("y0"))
        == "y0 + (vy0 * n + 0.5 * (n * (n - 1) / 2))"
    )


def test_collection_index_name() -> None:
    plan = _plan("prev => prev.map((p, i) => ({ ...p, x: p.x + i }))", "collection")
    assert isinstance(plan, UpdatePlan)
    assert plan.index_name == "i"
    assert _closed(plan, "x", Ident("x0")) == "x0 + i * n"


def test_destructured_element() -> None:
    plan = _plan(
        "prev => prev.map(({ x, speed }) => ({ x: x + speed, speed }))",
        "collection",
    )
    assert isinstance(plan, UpdatePlan)
    assert not plan.spread_previous
    assert isinstance(plan.recurrences["x"], Linear)
    assert isinstance(plan.recurrences["speed"], Hold)


def test_mutually_dependent_steps_are_opaque() -> None:
    plan = _plan("p => ({ ...p, x: p.x + p.y, y: p.y + p.x })", "object")
    assert isinstance(plan, UpdatePlan)
    rec = plan.recurrences["x"]
    assert isinstance(rec, Opaque)
    assert rec.reason == "step depends on a changing property"


@pytest.mark.parametrize(
    ("argument", "shape", "reason"),
    [
        ("prev => prev.filter(p => p.alive)", "collection",
         "collection update is not a map over the previous value"),
        ("({ count }) => count + 1", "scalar", "updater parameter is destructured"),
        ("c => { log(c); return c + 1; }", "scalar", "updater calls functions for side effects"),
        ("c => { window.total = c; return c; }", "scalar", "updater mutates state outside its locals"),
        ("c => { for (;;) {} return c; }", "scalar", "updater contains a for statement"),
        ("p => ({ ...other, x: 1 })", "object", "update spreads something other than the previous value"),
        ("prev => prev.map(step)", "collection", "map callback is not an inline function"),
    ],
)
def test_unsupported_updaters(
    argument: str, shape: Literal["scalar", "object", "collection"], reason: str
) -> None:
    assert _plan(argument, shape) == reason


# ── Step integrality ─────────────────────────────────────────


def test_is_integral_step() -> None:
    assert is_integral_step(_scalar("c => c + 1"))
    assert not is_integral_step(_scalar("c => c + 0.5"))
    assert is_integral_step(_scalar("v => !v"))
    assert is_integral_step(Hold())
    assert not is_integral_step(Integrated("vy"))
