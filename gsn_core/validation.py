"""
GSN diagram validation - Check argument structure for issues.

Provides validation that can be used by the service, the CLI and the MCP
tools to give live feedback on an argument's structure. Every check runs on
every call and reports at most one diagnostic.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .models import ElementKind, SATELLITE_KINDS, TERMINAL_KINDS

if TYPE_CHECKING:
    from .models import Element, Relation

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"      # Structurally invalid, must be fixed
    WARNING = "warning"  # Incomplete argument, should review


class DiagnosticCode(str, Enum):
    """Fixed vocabulary of diagnostic codes."""
    NO_ROOT_GOAL = "NO_ROOT_GOAL"
    MULTIPLE_ROOT_GOALS = "MULTIPLE_ROOT_GOALS"
    CYCLIC_REFERENCE = "CYCLIC_REFERENCE"
    ORPHAN_NODES = "ORPHAN_NODES"
    UNDEVELOPED_GOALS = "UNDEVELOPED_GOALS"
    NO_EVIDENCE_PATH = "NO_EVIDENCE_PATH"
    SINGLE_CHILD_STRATEGY = "SINGLE_CHILD_STRATEGY"


@dataclass
class Diagnostic:
    """A single diagnostic found in a diagram."""
    kind: IssueSeverity
    code: DiagnosticCode
    message: str
    element_ids: Optional[list[str]] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "kind": self.kind.value,
            "code": self.code.value,
            "message": self.message,
        }
        if self.element_ids is not None:
            result["elementIds"] = list(self.element_ids)
        return result


@dataclass
class ValidationResult:
    """Outcome of validating a diagram snapshot."""
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def codes(self) -> list[str]:
        return [d.code.value for d in (*self.errors, *self.warnings)]

    def find(self, code: DiagnosticCode) -> Optional[Diagnostic]:
        """Return the diagnostic with the given code, if reported."""
        for diagnostic in (*self.errors, *self.warnings):
            if diagnostic.code == code:
                return diagnostic
        return None

    def to_dict(self) -> dict:
        """Convert to the `{isValid, errors, warnings}` shape used by callers."""
        return {
            "isValid": self.is_valid,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
        }


class _Graph:
    """Lookup tables over one snapshot. Relations with a missing endpoint are dropped."""

    def __init__(self, elements: Sequence["Element"], relations: Iterable["Relation"]):
        self.elements = list(elements)
        self.by_id: dict[str, "Element"] = {}
        for element in self.elements:
            self.by_id.setdefault(element.id, element)

        self.relations = list(relations)
        self.supported_children: dict[str, list[str]] = {}
        self.all_children: dict[str, list[str]] = {}
        self.supported_targets: set[str] = set()

        for relation in self.relations:
            if relation.source not in self.by_id or relation.target not in self.by_id:
                continue
            self.all_children.setdefault(relation.source, []).append(relation.target)
            if relation.is_supported_by:
                self.supported_children.setdefault(relation.source, []).append(relation.target)
                self.supported_targets.add(relation.target)

    def kind(self, element_id: str) -> ElementKind:
        return self.by_id[element_id].kind

    def developing_children(self, element_id: str) -> list[str]:
        """Supported-by children that continue the argument (non-satellites)."""
        return [
            child for child in self.supported_children.get(element_id, [])
            if self.kind(child) not in SATELLITE_KINDS
        ]

    def names(self, element_ids: Iterable[str]) -> str:
        return ", ".join(self.by_id[i].display_name() for i in element_ids)


def validate_diagram(
    elements: Sequence["Element"],
    relations: Iterable["Relation"],
) -> ValidationResult:
    """
    Validate a GSN diagram snapshot.

    Checks for:
    - No root goal - ERROR
    - Cyclic supported-by references - ERROR
    - Multiple root goals - WARNING
    - Orphan elements (no relations) - WARNING
    - Undeveloped goals/strategies - WARNING
    - Goals without a path to evidence - WARNING
    - Strategies with a single child - WARNING

    Args:
        elements: Elements of the diagram
        relations: Relations of the diagram (dangling ones are ignored)

    Returns:
        ValidationResult; `is_valid` is True iff no error was found
    """
    graph = _Graph(elements, relations)
    result = ValidationResult()

    for check in (
        _check_root_goals,
        _check_cycles,
        _check_orphans,
        _check_undeveloped,
        _check_evidence_reachability,
        _check_strategy_children,
    ):
        diagnostic = check(graph)
        if diagnostic is None:
            continue
        if diagnostic.kind == IssueSeverity.ERROR:
            result.errors.append(diagnostic)
        else:
            result.warnings.append(diagnostic)

    logger.debug(
        "Validated %d elements / %d relations: %d errors, %d warnings",
        len(graph.elements), len(graph.relations),
        len(result.errors), len(result.warnings),
    )
    return result


def _check_root_goals(graph: _Graph) -> Optional[Diagnostic]:
    goals = [e for e in graph.elements if e.kind == ElementKind.GOAL]
    if not goals:
        return Diagnostic(
            kind=IssueSeverity.ERROR,
            code=DiagnosticCode.NO_ROOT_GOAL,
            message="The diagram has no root goal",
        )

    roots = [g.id for g in goals if g.id not in graph.supported_targets]
    if not roots:
        return Diagnostic(
            kind=IssueSeverity.ERROR,
            code=DiagnosticCode.NO_ROOT_GOAL,
            message="The diagram has no root goal (every goal supports another element)",
        )

    if len(roots) > 1:
        return Diagnostic(
            kind=IssueSeverity.WARNING,
            code=DiagnosticCode.MULTIPLE_ROOT_GOALS,
            message=f"The diagram has {len(roots)} root goals; a single root goal is recommended",
            element_ids=roots,
        )
    return None


def find_cycle(graph: _Graph) -> Optional[list[str]]:
    """
    Find one cycle along supported-by relations.

    Depth-first search with an explicit recursion stack; an edge into an
    element still on the stack closes a cycle.

    Returns:
        Element IDs on the cycle (in traversal order), or None
    """
    visited: set[str] = set()

    for start in graph.by_id:
        if start in visited:
            continue

        path: list[str] = [start]
        on_stack: set[str] = {start}
        frames = [iter(graph.supported_children.get(start, []))]
        visited.add(start)

        while frames:
            child = next(frames[-1], None)
            if child is None:
                frames.pop()
                on_stack.discard(path.pop())
                continue
            if child in on_stack:
                return path[path.index(child):]
            if child in visited:
                continue
            visited.add(child)
            on_stack.add(child)
            path.append(child)
            frames.append(iter(graph.supported_children.get(child, [])))

    return None


def _check_cycles(graph: _Graph) -> Optional[Diagnostic]:
    cycle = find_cycle(graph)
    if cycle is None:
        return None
    return Diagnostic(
        kind=IssueSeverity.ERROR,
        code=DiagnosticCode.CYCLIC_REFERENCE,
        message=(
            "Cyclic reference detected: a GSN argument must be a tree "
            f"({graph.names(cycle)})"
        ),
        element_ids=cycle,
    )


def _check_orphans(graph: _Graph) -> Optional[Diagnostic]:
    if len(graph.elements) <= 1:
        return None

    touched: set[str] = set()
    for relation in graph.relations:
        touched.add(relation.source)
        touched.add(relation.target)

    orphans = [e.id for e in graph.elements if e.id not in touched]
    if not orphans:
        return None
    return Diagnostic(
        kind=IssueSeverity.WARNING,
        code=DiagnosticCode.ORPHAN_NODES,
        message=f"{len(orphans)} element(s) have no relations: {graph.names(orphans)}",
        element_ids=orphans,
    )


def _check_undeveloped(graph: _Graph) -> Optional[Diagnostic]:
    undeveloped = []
    for element in graph.elements:
        if element.kind not in (ElementKind.GOAL, ElementKind.STRATEGY):
            continue
        if graph.developing_children(element.id):
            continue
        marked = any(
            graph.kind(child) == ElementKind.UNDEVELOPED
            for child in graph.all_children.get(element.id, [])
        )
        if not marked:
            undeveloped.append(element.id)

    if not undeveloped:
        return None
    return Diagnostic(
        kind=IssueSeverity.WARNING,
        code=DiagnosticCode.UNDEVELOPED_GOALS,
        message=(
            f"{len(undeveloped)} goal(s)/strategy(ies) are not developed; "
            "add children or mark them Undeveloped"
        ),
        element_ids=undeveloped,
    )


def can_reach_terminal(graph: _Graph, start: str) -> bool:
    """
    Check that every supported-by branch below `start` ends in a terminal.

    Terminals are Evidence, Undeveloped and Module elements; satellite kinds
    count as satisfied. A branch's visited set is the path that led to it,
    so a cycle fails only the branch that runs into it while a shared
    descendant is checked again from each parent. Results are not memoized.
    """
    on_path: set[str] = set()

    def enter(element_id: str):
        if element_id in on_path:
            return False, None
        kind = graph.kind(element_id)
        if kind in TERMINAL_KINDS or kind in SATELLITE_KINDS:
            return True, None
        children = graph.developing_children(element_id)
        if not children:
            return False, None
        on_path.add(element_id)
        return None, (element_id, iter(children))

    value, frame = enter(start)
    if frame is None:
        return value

    # value holds the outcome of the last finished child of the top frame
    frames = [frame]
    while frames:
        element_id, children = frames[-1]
        if value is False:
            frames.pop()
            on_path.discard(element_id)
            continue
        child = next(children, None)
        if child is None:
            frames.pop()
            on_path.discard(element_id)
            value = True
            continue
        value, frame = enter(child)
        if frame is not None:
            frames.append(frame)
            value = None

    return bool(value)


def _check_evidence_reachability(graph: _Graph) -> Optional[Diagnostic]:
    unreachable = [
        e.id for e in graph.elements
        if e.kind == ElementKind.GOAL and not can_reach_terminal(graph, e.id)
    ]
    if not unreachable:
        return None
    return Diagnostic(
        kind=IssueSeverity.WARNING,
        code=DiagnosticCode.NO_EVIDENCE_PATH,
        message=f"{len(unreachable)} goal(s) cannot reach evidence: {graph.names(unreachable)}",
        element_ids=unreachable,
    )


def _check_strategy_children(graph: _Graph) -> Optional[Diagnostic]:
    single = [
        e.id for e in graph.elements
        if e.kind == ElementKind.STRATEGY and len(graph.developing_children(e.id)) == 1
    ]
    if not single:
        return None
    return Diagnostic(
        kind=IssueSeverity.WARNING,
        code=DiagnosticCode.SINGLE_CHILD_STRATEGY,
        message=(
            f"{len(single)} strategy(ies) have a single child; strategies "
            "usually decompose a goal into several sub-goals"
        ),
        element_ids=single,
    )


def validation_summary(result: ValidationResult) -> dict:
    """
    Create a summary of a validation result.

    Args:
        result: Result of validate_diagram

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(result.errors) + len(result.warnings),
        "errors": len(result.errors),
        "warnings": len(result.warnings),
        "valid": result.is_valid,
    }
