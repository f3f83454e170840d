"""Shared helpers for building diagram snapshots in tests."""
from __future__ import annotations

import pytest

from gsn_core import Element, ElementKind, LayoutConfig, Relation, RelationKind


def el(element_id: str, kind: ElementKind | str, content: str = "", **kwargs) -> Element:
    return Element(id=element_id, kind=kind, content=content, **kwargs)


def sup(source: str, target: str) -> Relation:
    return Relation(id=f"{source}->{target}", source=source, target=target, kind=RelationKind.SUPPORTED_BY)


def ctx(source: str, target: str) -> Relation:
    return Relation(id=f"{source}~>{target}", source=source, target=target, kind=RelationKind.IN_CONTEXT_OF)


def boxes_intersect(a: Element, b: Element, margin: float) -> bool:
    a_left, a_top, a_right, a_bottom = a.bounds()
    b_left, b_top, b_right, b_bottom = b.bounds()
    overlap_x = min(a_right, b_right) + margin - (max(a_left, b_left) - margin)
    overlap_y = min(a_bottom, b_bottom) + margin - (max(a_top, b_top) - margin)
    return overlap_x > 1e-6 and overlap_y > 1e-6


@pytest.fixture()
def config() -> LayoutConfig:
    return LayoutConfig()


@pytest.fixture()
def small_argument() -> tuple[list[Element], list[Relation]]:
    """G1 -> S1 -> {G2 -> E1, G3 -> E2}, with a context on G1."""
    elements = [
        el("G1", ElementKind.GOAL, "The system is acceptably safe", label="G1"),
        el("C1", ElementKind.CONTEXT, "Operating environment", label="C1"),
        el("S1", ElementKind.STRATEGY, "Argument over identified hazards", label="S1"),
        el("G2", ElementKind.GOAL, "Hazard H1 is mitigated", label="G2"),
        el("G3", ElementKind.GOAL, "Hazard H2 is mitigated", label="G3"),
        el("E1", ElementKind.EVIDENCE, "Test report TR-1", label="E1"),
        el("E2", ElementKind.EVIDENCE, "Analysis AR-2", label="E2"),
    ]
    relations = [
        ctx("G1", "C1"),
        sup("G1", "S1"),
        sup("S1", "G2"),
        sup("S1", "G3"),
        sup("G2", "E1"),
        sup("G3", "E2"),
    ]
    return elements, relations
