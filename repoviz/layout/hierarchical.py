"""Layered top-to-bottom tree layout."""

from __future__ import annotations

from typing import Dict, Tuple

from ..hierarchy import RepoTree
from ..models import ROOT_ID
from .base import InteractionAction, LayoutFrame, LayoutPolicy, NodePosition, snapshot

TOP_MARGIN = 50.0
MIN_CANVAS_HEIGHT = 800.0
ROW_HEIGHT_PER_NODE = 20.0
BOTTOM_RESERVE = 200.0


def compute_hierarchical_frame(tree: RepoTree, width: float) -> Tuple[Dict[str, NodePosition], float]:
    """Place every node by depth, giving each subtree width proportional to its leaves.

    Returns the positions and the content height the frame occupies. The
    result depends only on ``tree`` and ``width``.
    """
    total = len(tree)
    content_height = max(MIN_CANVAS_HEIGHT, total * ROW_HEIGHT_PER_NODE)
    usable_height = content_height - BOTTOM_RESERVE
    max_depth = max((tree.depth_of(node_id) for node_id in tree.order), default=0)
    level_height = usable_height / max_depth if max_depth else 0.0

    leaves = tree.leaf_counts()
    positions: Dict[str, NodePosition] = {}
    stack = [(ROOT_ID, 0.0, float(width))]
    while stack:
        node_id, left, right = stack.pop()
        depth = tree.depth_of(node_id)
        positions[node_id] = NodePosition(
            x=(left + right) / 2,
            y=TOP_MARGIN + depth * level_height,
        )
        children = tree.nodes[node_id].children
        if not children:
            continue
        span = right - left
        parent_leaves = leaves[node_id]
        cursor = left
        spans = []
        for child_id in children:
            child_right = cursor + span * leaves[child_id] / parent_leaves
            spans.append((child_id, cursor, child_right))
            cursor = child_right
        stack.extend(reversed(spans))
    return positions, content_height


class HierarchicalLayout(LayoutPolicy):
    """Static layered layout, recomputed only when the data or width changes."""

    name = "tree"

    def __init__(self, tree: RepoTree, width: float, height: float) -> None:
        super().__init__(tree, width, height)
        self._positions, self.content_height = compute_hierarchical_frame(tree, self.width)

    def current_frame(self) -> LayoutFrame:
        return snapshot(self._positions)

    def on_interaction(
        self,
        node_id: str,
        action: InteractionAction | str,
        x: float | None = None,
        y: float | None = None,
    ) -> None:
        # Tree view nodes are not draggable.
        InteractionAction.parse(action)

    def resize(self, width: float, height: float) -> None:
        self.height = float(height)
        if float(width) == self.width:
            return
        self.width = float(width)
        self._positions, self.content_height = compute_hierarchical_frame(self.tree, self.width)


def subtree_span(tree: RepoTree, frame: LayoutFrame, node_id: str) -> Tuple[float, float]:
    """Horizontal extent covered by ``node_id`` and all of its descendants."""
    xs = [frame[descendant].x for descendant in tree.descendants(node_id)]
    return min(xs), max(xs)


__all__ = ["HierarchicalLayout", "compute_hierarchical_frame", "subtree_span"]
