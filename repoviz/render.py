"""Scene building and interaction routing for the graph and tree views.

The render adapter turns the hierarchy, the current layout frame and the
selection state into plain node/edge geometry, and routes pointer events back
to the layout engine and the selection controller. All view parameters
(search term, dependency highlights, pan/zoom transform) are passed in
explicitly on every call.
"""

from __future__ import annotations

import math
import posixpath
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .hierarchy import RepoTree
from .layout.base import InteractionAction, LayoutFrame, LayoutPolicy
from .logging import get_logger
from .models import ROOT_ID, TreeNode
from .selection import SelectionController, SelectionState

logger = get_logger("render")

ROOT_COLOR = "#4f46e5"
DIRECTORY_COLOR = "#f59e0b"
FILE_COLOR = "#10b981"
STATUS_COLORS = {
    "added": "#22c55e",
    "modified": "#eab308",
    "removed": "#7f1d1d",
}
DEPENDENCY_COLOR = "#34d399"
MATCH_COLOR = "#ef4444"
SELECTED_COLOR = "#8b5cf6"

MIN_FILE_RADIUS = 4.0
MAX_FILE_RADIUS = 15.0


@dataclass(frozen=True)
class ViewTransform:
    """Pan/zoom transform applied on top of layout coordinates."""

    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.k + self.x, y * self.k + self.y)

    def invert(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.x) / self.k, (y - self.y) / self.k)


@dataclass(frozen=True)
class RenderParams:
    search_term: str = ""
    highlighted_deps: Sequence[str] = ()
    transform: ViewTransform = field(default_factory=ViewTransform)


@dataclass(frozen=True)
class NodeView:
    id: str
    label: str
    kind: str
    x: float
    y: float
    radius: float
    color: str
    bold: bool = False
    clickable: bool = False


@dataclass(frozen=True)
class EdgeView:
    source: str
    target: str
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Scene:
    view: str
    nodes: List[NodeView]
    edges: List[EdgeView]

    def node(self, node_id: str) -> NodeView:
        for view in self.nodes:
            if view.id == node_id:
                return view
        raise KeyError(node_id)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "view": self.view,
            "nodes": [asdict(view) for view in self.nodes],
            "edges": [asdict(view) for view in self.edges],
        }


def matches_search(node_id: str, search_term: str | None) -> bool:
    """Case-insensitive substring match of the search term against the node id."""
    if not search_term:
        return False
    return search_term.lower() in node_id.lower()


def resolve_dependencies(selected_path: str | None, deps: Sequence[str]) -> List[str]:
    """Resolve ``deps`` relative to the selected file's directory.

    Resolution is plain join-and-normalise; the result is repository-relative
    with no leading slash.
    """
    base = posixpath.dirname(selected_path) if selected_path and selected_path != ROOT_ID else ""
    resolved: List[str] = []
    for dep in deps:
        if not dep:
            continue
        joined = posixpath.normpath(posixpath.join("/", base, dep))
        resolved.append(joined.lstrip("/"))
    return resolved


def is_dependency(node_id: str, resolved_deps: Sequence[str]) -> bool:
    return any(dep and node_id.startswith(dep) for dep in resolved_deps)


def size_radius_scale(tree: RepoTree) -> Callable[[Optional[int]], float]:
    """Square-root scale mapping blob sizes onto the file radius range."""
    sizes = [node.size for node in tree if node.kind == "blob" and node.size]
    largest = max(sizes) if sizes else 0

    def scale(size: Optional[int]) -> float:
        if not largest or not size:
            return MIN_FILE_RADIUS
        ratio = math.sqrt(max(0, size)) / math.sqrt(largest)
        return MIN_FILE_RADIUS + ratio * (MAX_FILE_RADIUS - MIN_FILE_RADIUS)

    return scale


def node_color(
    node: TreeNode,
    *,
    is_dep: bool = False,
    is_match: bool = False,
    is_selected: bool = False,
    has_children: bool | None = None,
) -> str:
    """Resolve a node's fill; later rules override earlier ones."""
    branch = node.kind != "blob" if has_children is None else has_children
    color = DIRECTORY_COLOR if branch else FILE_COLOR
    if node.id == ROOT_ID:
        color = ROOT_COLOR
    if node.status in STATUS_COLORS:
        color = STATUS_COLORS[node.status]
    if is_dep:
        color = DEPENDENCY_COLOR
    if is_match:
        color = MATCH_COLOR
    if is_selected:
        color = SELECTED_COLOR
    return color


def build_scene(
    tree: RepoTree,
    frame: LayoutFrame,
    selection: SelectionState | None,
    params: RenderParams | None = None,
    *,
    view: str = "graph",
) -> Scene:
    """Produce node and edge geometry for one frame of the chosen view."""
    params = params or RenderParams()
    selected_id = selection.selected_id if selection else None
    deps = resolve_dependencies(selected_id, params.highlighted_deps)
    radius_for = size_radius_scale(tree)

    nodes: List[NodeView] = []
    for node in tree:
        position = frame.get(node.id)
        if position is None:
            continue
        x, y = params.transform.apply(position.x, position.y)
        is_match = matches_search(node.id, params.search_term)
        is_selected = node.id == selected_id
        if view == "tree":
            has_children = bool(node.children)
            color = node_color(
                node,
                is_dep=is_dependency(node.id, deps),
                is_match=is_match,
                is_selected=is_selected,
                has_children=has_children,
            )
            radius = 8.0 if (is_match or is_selected or node.id == ROOT_ID) else 5.0
            bold = is_match or is_selected
        else:
            color = MATCH_COLOR if is_match else node_color(node)
            base = radius_for(node.size) if node.kind == "blob" else (10.0 if node.id == ROOT_ID else 7.0)
            radius = base + 3 if is_match else base
            bold = is_match
        nodes.append(
            NodeView(
                id=node.id,
                label=node.name,
                kind=node.kind,
                x=x,
                y=y,
                radius=radius * params.transform.k,
                color=color,
                bold=bold,
                clickable=node.kind == "blob",
            )
        )

    edges: List[EdgeView] = []
    for edge in tree.edges:
        source, target = frame.get(edge.parent), frame.get(edge.child)
        if source is None or target is None:
            continue
        x1, y1 = params.transform.apply(source.x, source.y)
        x2, y2 = params.transform.apply(target.x, target.y)
        edges.append(EdgeView(edge.parent, edge.child, x1, y1, x2, y2))
    return Scene(view=view, nodes=nodes, edges=edges)


class EventType(str, Enum):
    CLICK = "click"
    HOVER = "hover"
    DRAG_START = "dragStart"
    DRAG_MOVE = "dragMove"
    DRAG_END = "dragEnd"
    RIGHT_CLICK = "rightClick"


_DRAG_ACTIONS = {
    EventType.DRAG_START: InteractionAction.DRAG_START,
    EventType.DRAG_MOVE: InteractionAction.DRAG_MOVE,
    EventType.DRAG_END: InteractionAction.DRAG_END,
}


@dataclass(frozen=True)
class InteractionEvent:
    type: EventType
    node_id: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None


class RenderAdapter:
    """Routes view events to the layout engine and selection controller."""

    def __init__(self, layout: LayoutPolicy, selection: SelectionController) -> None:
        self.layout = layout
        self.selection = selection
        self.hovered_id: Optional[str] = None
        self.context_id: Optional[str] = None

    def dispatch(self, event: InteractionEvent, transform: ViewTransform | None = None) -> None:
        logger.debug("Dispatching %s on %s", event.type.value, event.node_id)
        if event.type is EventType.HOVER:
            self.hovered_id = event.node_id
            return
        if event.node_id is None:
            return
        if event.type is EventType.CLICK:
            self.selection.select(event.node_id)
        elif event.type is EventType.RIGHT_CLICK:
            self.context_id = event.node_id
        else:
            x, y = event.x, event.y
            if transform is not None and x is not None and y is not None:
                x, y = transform.invert(x, y)
            self.layout.on_interaction(event.node_id, _DRAG_ACTIONS[event.type], x, y)


__all__ = [
    "EdgeView",
    "EventType",
    "InteractionEvent",
    "NodeView",
    "RenderAdapter",
    "RenderParams",
    "Scene",
    "ViewTransform",
    "build_scene",
    "is_dependency",
    "matches_search",
    "node_color",
    "resolve_dependencies",
]
