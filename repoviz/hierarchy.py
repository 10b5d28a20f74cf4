"""Materialise a flat repository listing into a rooted tree.

The builder walks every entry's path prefix by prefix, creating intermediate
directory nodes on first sight and registering one parent edge per node.
Node and edge order follow input order only, so sibling ordering is
reproducible and can be used for layout tie-breaks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .logging import get_logger
from .models import ROOT_ID, Edge, RepoEntry, TreeNode

logger = get_logger("hierarchy")


@dataclass
class RepoTree:
    """Nodes keyed by id plus the deduplicated parent edges."""

    nodes: Dict[str, TreeNode]
    order: List[str]
    edges: List[Edge]
    _parents: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def root(self) -> TreeNode:
        return self.nodes[ROOT_ID]

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[TreeNode]:
        for node_id in self.order:
            yield self.nodes[node_id]

    def get(self, node_id: str) -> Optional[TreeNode]:
        return self.nodes.get(node_id)

    def parent_of(self, node_id: str) -> Optional[str]:
        return self._parents.get(node_id)

    def depth_of(self, node_id: str) -> int:
        """Number of edges between ``node_id`` and the synthetic root."""
        depth = 0
        current = self._parents.get(node_id)
        while current is not None:
            depth += 1
            current = self._parents.get(current)
        return depth

    def descendants(self, node_id: str = ROOT_ID) -> List[str]:
        """Pre-order walk starting at ``node_id`` following ``children`` order."""
        result: List[str] = []
        seen = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            stack.extend(reversed(self.nodes[current].children))
        return result

    def leaf_counts(self) -> Dict[str, int]:
        """Number of leaves under each node (a leaf counts itself)."""
        counts: Dict[str, int] = {}
        for node_id in reversed(self.descendants()):
            children = self.nodes[node_id].children
            counts[node_id] = sum(counts[child] for child in children) if children else 1
        return counts

    def edge_pairs(self) -> List[Tuple[str, str]]:
        return [edge.as_tuple() for edge in self.edges]


def build_hierarchy(entries: Iterable[RepoEntry] | None) -> RepoTree:
    """Convert ``entries`` into a :class:`RepoTree` rooted at the synthetic root."""
    root = TreeNode(id=ROOT_ID, name=ROOT_ID, kind="root")
    nodes: Dict[str, TreeNode] = {ROOT_ID: root}
    order: List[str] = [ROOT_ID]
    edges: List[Edge] = []
    parents: Dict[str, str] = {}

    for entry in entries or ():
        if not entry.path:
            continue
        parts = entry.path.split("/")
        current = ROOT_ID
        for index, part in enumerate(parts):
            is_last = index == len(parts) - 1
            child_id = entry.path if is_last else "/".join(parts[: index + 1])
            existing = nodes.get(child_id)
            if existing is None:
                kind = entry.type if is_last else "tree"
                nodes[child_id] = TreeNode(
                    id=child_id,
                    name=part,
                    kind=kind,
                    size=entry.size if is_last and kind == "blob" else None,
                    sha=entry.sha if is_last else None,
                    status=entry.status if is_last else None,
                )
                order.append(child_id)
            elif is_last:
                _merge_declaration(existing, entry)

            # A top-level "root" directory folds into the synthetic root.
            if child_id != current and child_id not in parents:
                edges.append(Edge(parent=current, child=child_id))
                parents[child_id] = current
                nodes[current].children.append(child_id)
            current = child_id

    logger.debug("Built hierarchy with %d nodes and %d edges", len(order), len(edges))
    return RepoTree(nodes=nodes, order=order, edges=edges, _parents=parents)


def _merge_declaration(node: TreeNode, entry: RepoEntry) -> None:
    # First-seen kind wins; a later explicit entry only fills missing metadata.
    if node.kind != entry.type:
        logger.debug(
            "Ignoring conflicting declaration for %s (%s vs %s)", entry.path, node.kind, entry.type
        )
        return
    if node.sha is None and entry.sha:
        node.sha = entry.sha
    if node.status is None and entry.status:
        node.status = entry.status
