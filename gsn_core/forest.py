"""
Forest construction for the layout engine.

Turns a free-form element graph into independent trees. Nodes live in a
flat arena and refer to each other by integer index, so there are no object
back-references, and traversal uses explicit stacks rather than recursion.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .models import RelationKind, is_satellite_kind

if TYPE_CHECKING:
    from .models import Element, Relation, Size

logger = logging.getLogger(__name__)

NO_PARENT = -1


@dataclass
class TreeNode:
    """One placed element. `element` indexes the caller's element list."""
    element: int
    parent: int = NO_PARENT
    depth: int = 0
    is_satellite: bool = False
    width: float = 0.0
    height: float = 0.0
    children: list[int] = field(default_factory=list)
    satellites: list[int] = field(default_factory=list)

    # Positioning state
    prelim: float = 0.0
    mod: float = 0.0
    mid: float = 0.0          # Centre of the children span, in their frame
    x: float = 0.0
    y: float = 0.0
    left_reserve: float = 0.0   # Width kept free for satellites on each side
    right_reserve: float = 0.0

    def box(self, margin: float = 0.0) -> tuple[float, float, float, float]:
        """Bounding box (left, top, right, bottom), grown by `margin`."""
        half_w = self.width / 2 + margin
        half_h = self.height / 2 + margin
        return (self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h)


@dataclass
class Tree:
    """A tree of the forest; `order` lists its arena indices in pre-order."""
    root: int
    order: list[int] = field(default_factory=list)

    def tree_nodes(self, arena: list[TreeNode]) -> list[int]:
        return [i for i in self.order if not arena[i].is_satellite]


@dataclass
class Forest:
    arena: list[TreeNode] = field(default_factory=list)
    trees: list[Tree] = field(default_factory=list)

    def placed_elements(self) -> dict[int, int]:
        """Map element index -> arena index for every placed element."""
        return {node.element: i for i, node in enumerate(self.arena)}


def build_forest(
    elements: Sequence["Element"],
    relations: Sequence["Relation"],
    sizes: Sequence["Size"],
) -> Forest:
    """
    Build the layout forest.

    Roots are non-satellite elements with no incoming supported-by relation.
    Each tree is grown depth-first along outgoing relations; a relation of
    kind in-context-of, or one pointing at a satellite kind, attaches the
    target as a satellite of its source instead of a child. Satellites are
    leaves. An element already placed (in this tree or an earlier one) ends
    the branch. Non-satellite elements still unplaced once the roots are
    processed seed further trees, which covers graphs with no root at all.

    Args:
        elements: Elements of the snapshot
        relations: Relations of the snapshot (dangling ones are skipped)
        sizes: Computed size for each element, by position in `elements`

    Returns:
        Forest holding the arena and the trees in placement order
    """
    index_by_id: dict[str, int] = {}
    for i, element in enumerate(elements):
        index_by_id.setdefault(element.id, i)

    outgoing: dict[int, list[tuple[int, bool]]] = {}
    supported_targets: set[int] = set()
    for relation in relations:
        source = index_by_id.get(relation.source)
        target = index_by_id.get(relation.target)
        if source is None or target is None:
            continue
        as_satellite = (
            relation.kind == RelationKind.IN_CONTEXT_OF
            or is_satellite_kind(elements[target].kind)
        )
        outgoing.setdefault(source, []).append((target, as_satellite))
        if relation.kind == RelationKind.SUPPORTED_BY:
            supported_targets.add(target)

    forest = Forest()
    claimed: set[int] = set()

    def grow(seed: int) -> None:
        visited = {seed}
        root = _new_node(forest.arena, seed, sizes)
        tree = Tree(root=root, order=[root])
        frames = [(root, iter(outgoing.get(seed, [])))]

        while frames:
            parent, edges = frames[-1]
            edge = next(edges, None)
            if edge is None:
                frames.pop()
                continue
            target, as_satellite = edge
            if target in visited or target in claimed:
                continue
            visited.add(target)

            parent_node = forest.arena[parent]
            node = _new_node(forest.arena, target, sizes, parent=parent)
            tree.order.append(node)
            if as_satellite:
                forest.arena[node].is_satellite = True
                forest.arena[node].depth = parent_node.depth
                parent_node.satellites.append(node)
            else:
                forest.arena[node].depth = parent_node.depth + 1
                parent_node.children.append(node)
                frames.append((node, iter(outgoing.get(target, []))))

        claimed.update(visited)
        forest.trees.append(tree)

    roots = [
        i for i, element in enumerate(elements)
        if not is_satellite_kind(element.kind) and i not in supported_targets
    ]
    for root in roots:
        if root not in claimed:
            grow(root)

    for i, element in enumerate(elements):
        if i not in claimed and not is_satellite_kind(element.kind):
            logger.debug("Element %s is unreachable from any root; seeding a tree", element.id)
            grow(i)

    logger.debug(
        "Built forest: %d trees, %d placed of %d elements",
        len(forest.trees), len(forest.arena), len(elements),
    )
    return forest


def _new_node(arena: list[TreeNode], element: int, sizes: Sequence["Size"], parent: int = NO_PARENT) -> int:
    size = sizes[element]
    arena.append(TreeNode(element=element, parent=parent, width=size.width, height=size.height))
    return len(arena) - 1
