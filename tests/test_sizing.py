"""Tests for content-driven element sizing."""
from __future__ import annotations

import math

import pytest

from conftest import el

from gsn_core import Diagram, ElementKind, LayoutConfig, estimate_text_width, measure_element, size_for_text, strip_markup
from gsn_core.sizing import resolve_display_text


# ── markup stripping ───────────────────────────────────────────────

@pytest.mark.parametrize("content, expected", [
    ("", ""),
    ("<p>Hello <b>world</b></p><p>Second</p>", "Hello world\nSecond"),
    ("Line one<br/>Line two", "Line one\nLine two"),
    ("Fish &amp; chips", "Fish & chips"),
    ("**Bold** and [a link](http://example.com)", "Bold and a link"),
    ("*emphasis* here", "emphasis here"),
    ("snake_case_name", "snake_case_name"),
    ("# Title\n- item one\n- item two", "Title\nitem one\nitem two"),
    ("> quoted\n1. first", "quoted\nfirst"),
    ("  \n\nText   with    spaces\n\n", "Text with spaces"),
])
def test_strip_markup(content, expected):
    assert strip_markup(content) == expected


# ── text width ─────────────────────────────────────────────────────

def test_ascii_and_cjk_widths(config):
    assert estimate_text_width("ab", config) == 16
    assert estimate_text_width("安全", config) == 30
    assert estimate_text_width("a安", config) == 23


def test_combining_marks_have_no_width(config):
    assert estimate_text_width("e\u0301", config) == 8


# ── box shaping ────────────────────────────────────────────────────

@pytest.mark.parametrize("kind, expected", [
    (ElementKind.GOAL, (129, 80)),
    (ElementKind.STRATEGY, (129, 80)),
    (ElementKind.EVIDENCE, (129, 80)),
    (ElementKind.MODULE, (129, 80)),
    (ElementKind.CONTEXT, (97, 60)),
    (ElementKind.ASSUMPTION, (97, 60)),
    (ElementKind.JUSTIFICATION, (97, 60)),
])
def test_empty_content_uses_golden_ratio(kind, expected):
    size = size_for_text("", kind)
    assert (size.width, size.height) == expected
    assert size.width / size.height == pytest.approx(1.618, abs=0.01)


def test_empty_content_respects_configured_bounds():
    config = LayoutConfig(hierarchical_bounds={"min_width": 200, "max_width": 400, "min_height": 80, "max_height": 300})
    size = size_for_text("", ElementKind.GOAL, config)
    assert (size.width, size.height) == (200, 80)


def test_goal_text_fits_wrapped_lines():
    text = "The system is acceptably safe to operate in its intended environment"
    size = size_for_text(text, ElementKind.GOAL)
    assert (size.width, size.height) == (153, 120)


def test_ellipse_kinds_get_extra_room():
    text = "The system is acceptably safe to operate in its intended environment"
    size = size_for_text(text, ElementKind.EVIDENCE)
    assert (size.width, size.height) == (193, 150)


def test_module_reserves_tab_height():
    text = "The system is acceptably safe to operate in its intended environment"
    goal = size_for_text(text, ElementKind.GOAL)
    module = size_for_text(text, ElementKind.MODULE)
    assert module.width == goal.width
    assert module.height == goal.height + 30


def test_long_text_is_clamped():
    size = size_for_text("x" * 2000, ElementKind.GOAL)
    assert (size.width, size.height) == (400, 300)


def test_many_short_lines_widen_then_clamp():
    size = size_for_text("\n".join(["abc"] * 15), ElementKind.GOAL)
    assert (size.width, size.height) == (400, 300)


def test_height_covers_wrapped_text(config):
    text = "Hazard H1 is mitigated by interlocks\nand periodic proof testing of the trip system"
    size = size_for_text(text, ElementKind.STRATEGY, config)
    available = size.width - config.padding_x
    lines = sum(max(1, math.ceil(estimate_text_width(line, config) / available)) for line in text.split("\n"))
    assert size.height >= lines * config.line_height + config.padding_y
    assert size.width >= 120


def test_sizes_are_integral():
    size = size_for_text("Assumed: operators are trained", ElementKind.ASSUMPTION)
    assert size.width == int(size.width)
    assert size.height == int(size.height)


@pytest.mark.parametrize("text, side", [
    ("", 60),
    ("abc", 64),
    ("x" * 500, 160),
])
def test_undeveloped_is_square(text, side):
    size = size_for_text(text, ElementKind.UNDEVELOPED)
    assert (size.width, size.height) == (side, side)


# ── module lookup ──────────────────────────────────────────────────

def _nested() -> Diagram:
    return Diagram(
        id="sub",
        elements=[
            el("SG", ElementKind.GOAL, "<p>Subsystem <b>hazards</b> are controlled</p>"),
            el("SE", ElementKind.EVIDENCE, "Report"),
        ],
    )


def test_module_displays_nested_top_goal():
    module = el("M1", ElementKind.MODULE, "own text", module_ref="sub")
    assert resolve_display_text(module, {"sub": _nested()}) == "Subsystem hazards are controlled"


def test_module_with_unresolved_reference_uses_own_content():
    module = el("M1", ElementKind.MODULE, "own text", module_ref="missing")
    assert resolve_display_text(module, {"sub": _nested()}) == "own text"
    assert resolve_display_text(module, None) == "own text"


def test_lookup_ignored_for_other_kinds():
    goal = el("G1", ElementKind.GOAL, "own text", module_ref="sub")
    assert resolve_display_text(goal, {"sub": _nested()}) == "own text"


def test_measure_element_uses_module_lookup(config):
    module = el("M1", ElementKind.MODULE, "", module_ref="sub")
    assert measure_element(module, config) == size_for_text("", ElementKind.MODULE, config)
    assert measure_element(module, config, {"sub": _nested()}) == size_for_text(
        "Subsystem hazards are controlled", ElementKind.MODULE, config,
    )
