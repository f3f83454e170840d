"""
Automatic layout for GSN diagrams.

Arranges an argument as a forest of trees:
- Goals, strategies and solutions are stacked in depth rows below the
  element they support (a contour-based Reingold-Tilford variant that
  respects each element's width)
- Context, assumptions and justifications sit beside the element they
  belong to, split between its right and left edges
- Trees are packed left to right, then any remaining overlaps across the
  whole forest are pushed apart

Layout never modifies the elements it is given; it returns new elements
with fresh sizes and centre positions.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Optional

from .config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .forest import Forest, Tree, TreeNode, build_forest
from .models import Position, is_satellite_kind
from .sizing import measure_element

if TYPE_CHECKING:
    from .models import Diagram, Element, Relation

logger = logging.getLogger(__name__)

_EPSILON = 1e-6


def auto_layout(
    elements: Sequence["Element"],
    relations: Sequence["Relation"],
    module_lookup: Optional[Mapping[str, "Diagram"]] = None,
    config: Optional[LayoutConfig] = None,
) -> list["Element"]:
    """
    Size and position every element of a diagram.

    Args:
        elements: Elements of the diagram (not modified)
        relations: Relations of the diagram (dangling ones are ignored)
        module_lookup: Nested diagrams by module reference, used to size
            Module elements from their nested top-level goal
        config: Layout tunables (defaults if None)

    Returns:
        New elements, in input order, with `size` and `position` replaced.
        Empty and all-satellite inputs come back unchanged; satellites that
        no tree reaches keep their previous position.
    """
    config = config or DEFAULT_LAYOUT_CONFIG
    elements = list(elements)
    relations = list(relations)

    if not elements:
        return elements
    if all(is_satellite_kind(e.kind) for e in elements):
        logger.debug("Only satellite elements; nothing to lay out")
        return elements

    sizes = [measure_element(e, config, module_lookup) for e in elements]
    forest = build_forest(elements, relations, sizes)

    for tree in forest.trees:
        _reserve_satellite_space(forest.arena, tree)
        _first_walk(forest.arena, tree, config)
        _second_walk(forest.arena, tree, config)
        _place_satellites(forest.arena, tree, config)

    pack_trees(forest, config)
    resolve_overlaps(forest.arena, range(len(forest.arena)), config)

    placed = forest.placed_elements()
    result = []
    for i, element in enumerate(elements):
        update = {"size": sizes[i]}
        if i in placed:
            node = forest.arena[placed[i]]
            update["position"] = Position(x=node.x, y=node.y)
        result.append(element.model_copy(update=update))
    return result


def _split_satellites(node: TreeNode) -> tuple[list[int], list[int]]:
    """First half goes on the right edge, the rest on the left."""
    half = math.ceil(len(node.satellites) / 2)
    return node.satellites[:half], node.satellites[half:]


def _stack_height(arena: list[TreeNode], indices: list[int], config: LayoutConfig) -> float:
    if not indices:
        return 0.0
    return sum(arena[i].height for i in indices) + config.satellite_stack_gap * (len(indices) - 1)


def _reserve_satellite_space(arena: list[TreeNode], tree: Tree) -> None:
    for index in tree.tree_nodes(arena):
        node = arena[index]
        right, left = _split_satellites(node)
        node.right_reserve = max((arena[i].width for i in right), default=0.0)
        node.left_reserve = max((arena[i].width for i in left), default=0.0)


def _reserves(node: TreeNode, config: LayoutConfig) -> tuple[float, float]:
    left = node.left_reserve + config.satellite_gap if node.left_reserve else 0.0
    right = node.right_reserve + config.satellite_gap if node.right_reserve else 0.0
    return left, right


def _first_walk(arena: list[TreeNode], tree: Tree, config: LayoutConfig) -> None:
    """
    Post-order pass: place each node's children relative to one another.

    Every subtree keeps a contour, the leftmost and rightmost extent of each
    of its rows relative to its own centre. A child is moved right until its
    contour clears the contours of its left siblings by the sibling gap on
    every shared row; on the top row this is exactly half the left node's
    width, its right satellite reserve, the gap, the right node's left
    reserve and half the right node's width. A parent is centred over its
    first and last child; when its own siblings later push it off that
    centre, the offset is recorded in `mod` and applied to its descendants.
    """
    contours: dict[int, tuple[list[float], list[float]]] = {}

    for index in reversed(tree.tree_nodes(arena)):
        node = arena[index]
        left_reserve, right_reserve = _reserves(node, config)
        own_left = -(node.width / 2 + left_reserve)
        own_right = node.width / 2 + right_reserve

        if not node.children:
            node.mid = 0.0
            contours[index] = ([own_left], [own_right])
            continue

        span_left: list[float] = []
        span_right: list[float] = []
        offsets: list[float] = []

        for position, child_index in enumerate(node.children):
            child = arena[child_index]
            child_left, child_right = contours.pop(child_index)

            if position == 0:
                offset = child.mid
            else:
                shared = min(len(span_right), len(child_left))
                offset = max(
                    span_right[d] + config.sibling_gap - child_left[d]
                    for d in range(shared)
                )
            offsets.append(offset)

            for d, (lo, hi) in enumerate(zip(child_left, child_right)):
                if d < len(span_left):
                    span_left[d] = min(span_left[d], offset + lo)
                    span_right[d] = max(span_right[d], offset + hi)
                else:
                    span_left.append(offset + lo)
                    span_right.append(offset + hi)

        node.mid = (offsets[0] + offsets[-1]) / 2
        for child_index, offset in zip(node.children, offsets):
            child = arena[child_index]
            child.prelim = offset
            child.mod = offset - child.mid

        contours[index] = (
            [own_left] + [v - node.mid for v in span_left],
            [own_right] + [v - node.mid for v in span_right],
        )

    root = arena[tree.root]
    root.prelim = root.mid
    root.mod = 0.0


def _row_heights(arena: list[TreeNode], tree: Tree, config: LayoutConfig) -> list[float]:
    """Height of each depth row, including satellite stacks."""
    rows: list[float] = []
    for index in tree.tree_nodes(arena):
        node = arena[index]
        right, left = _split_satellites(node)
        occupied = max(
            node.height,
            _stack_height(arena, right, config),
            _stack_height(arena, left, config),
        )
        while len(rows) <= node.depth:
            rows.append(0.0)
        rows[node.depth] = max(rows[node.depth], occupied)
    return rows


def _second_walk(arena: list[TreeNode], tree: Tree, config: LayoutConfig) -> None:
    """Pre-order pass: apply ancestor modifiers and assign row centres."""
    rows = _row_heights(arena, tree, config)
    row_centres = []
    top = 0.0
    for height in rows:
        row_centres.append(top + height / 2)
        top += height + config.level_gap

    mod_sums = {tree.root: 0.0}
    for index in tree.tree_nodes(arena):
        node = arena[index]
        node.x = node.prelim + mod_sums[index]
        node.y = row_centres[node.depth]
        for child_index in node.children:
            mod_sums[child_index] = mod_sums[index] + node.mod


def _place_satellites(arena: list[TreeNode], tree: Tree, config: LayoutConfig) -> None:
    """
    Stack each node's satellites beside it, centred on its row.

    Each side is clamped so it stays clear of the neighbouring sibling's
    body and satellite reserve.
    """
    for index in tree.tree_nodes(arena):
        node = arena[index]
        if not node.satellites:
            continue
        right, left = _split_satellites(node)
        left_limit, right_limit = _sibling_limits(arena, index, config)

        for side, stack in ((1, right), (-1, left)):
            if not stack:
                continue
            y = node.y - _stack_height(arena, stack, config) / 2
            for sat_index in stack:
                sat = arena[sat_index]
                sat.x = node.x + side * (node.width / 2 + config.satellite_gap + sat.width / 2)
                sat.y = y + sat.height / 2
                y += sat.height + config.satellite_stack_gap

                if side > 0 and right_limit is not None:
                    excess = sat.x + sat.width / 2 - right_limit
                    if excess > 0:
                        floor = node.x + node.width / 2 + 2 * config.overlap_margin + sat.width / 2
                        sat.x = max(sat.x - excess, floor)
                elif side < 0 and left_limit is not None:
                    excess = left_limit - (sat.x - sat.width / 2)
                    if excess > 0:
                        ceiling = node.x - node.width / 2 - 2 * config.overlap_margin - sat.width / 2
                        sat.x = min(sat.x + excess, ceiling)


def _sibling_limits(
    arena: list[TreeNode], index: int, config: LayoutConfig
) -> tuple[Optional[float], Optional[float]]:
    """Outermost x a node's satellites may reach on each side."""
    node = arena[index]
    if node.parent < 0:
        return None, None
    siblings = arena[node.parent].children
    position = siblings.index(index)

    left_limit = right_limit = None
    if position > 0:
        sibling = arena[siblings[position - 1]]
        _, reserve = _reserves(sibling, config)
        left_limit = sibling.x + sibling.width / 2 + reserve + config.sibling_gap
    if position + 1 < len(siblings):
        sibling = arena[siblings[position + 1]]
        reserve, _ = _reserves(sibling, config)
        right_limit = sibling.x - sibling.width / 2 - reserve - config.sibling_gap
    return left_limit, right_limit


def resolve_overlaps(
    arena: list[TreeNode],
    indices: Sequence[int],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> int:
    """
    Push overlapping boxes apart.

    Boxes are grown by `overlap_margin` on every side. Each intersecting
    pair is separated along the axis with the smaller penetration, each box
    moving half the distance. Runs at most `overlap_iterations` passes and
    stops after the first pass that finds nothing.

    Returns:
        Number of passes that moved something
    """
    margin = config.overlap_margin
    moving_passes = 0

    for _ in range(config.overlap_iterations):
        order = sorted(indices, key=lambda i: arena[i].x - arena[i].width / 2)
        moved = False

        for pos, i in enumerate(order):
            a = arena[i]
            for j in order[pos + 1:]:
                b = arena[j]
                a_left, a_top, a_right, a_bottom = a.box(margin)
                b_left, b_top, b_right, b_bottom = b.box(margin)
                if b_left >= a_right:
                    break
                overlap_x = min(a_right, b_right) - max(a_left, b_left)
                overlap_y = min(a_bottom, b_bottom) - max(a_top, b_top)
                if overlap_x <= _EPSILON or overlap_y <= _EPSILON:
                    continue

                moved = True
                if overlap_x < overlap_y:
                    shift = overlap_x / 2
                    if a.x <= b.x:
                        a.x -= shift
                        b.x += shift
                    else:
                        a.x += shift
                        b.x -= shift
                else:
                    shift = overlap_y / 2
                    if a.y <= b.y:
                        a.y -= shift
                        b.y += shift
                    else:
                        a.y += shift
                        b.y -= shift

        if not moved:
            break
        moving_passes += 1

    if moving_passes:
        logger.debug("Overlap resolution moved boxes in %d pass(es)", moving_passes)
    return moving_passes


def tree_bounds(arena: list[TreeNode], tree: Tree) -> tuple[float, float, float, float]:
    """Bounding box (left, top, right, bottom) of a tree and its satellites."""
    boxes = [arena[i].box() for i in tree.order]
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def pack_trees(forest: Forest, config: LayoutConfig = DEFAULT_LAYOUT_CONFIG) -> None:
    """Lay trees out left to right, tops aligned, `tree_gap` apart."""
    cursor = config.start_x
    for tree in forest.trees:
        left, top, right, _ = tree_bounds(forest.arena, tree)
        dx = cursor - left
        dy = config.start_y - top
        for index in tree.order:
            node = forest.arena[index]
            node.x += dx
            node.y += dy
        cursor += (right - left) + config.tree_gap
