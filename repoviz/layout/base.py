"""Base classes for layout policies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..hierarchy import RepoTree


class InteractionAction(str, Enum):
    """Pointer interactions forwarded from the render adapter."""

    DRAG_START = "dragStart"
    DRAG_MOVE = "dragMove"
    DRAG_END = "dragEnd"
    RELEASE = "release"

    @classmethod
    def parse(cls, value: "InteractionAction | str") -> "InteractionAction":
        if isinstance(value, cls):
            return value
        normalised = str(value).replace("_", "").lower()
        for member in cls:
            if member.value.lower() == normalised:
                return member
        raise ValueError(f"Unknown interaction action: {value!r}")


@dataclass
class NodePosition:
    """Position and, for simulated layouts, velocity of a single node."""

    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    pinned: bool = False
    fx: Optional[float] = None
    fy: Optional[float] = None


LayoutFrame = Mapping[str, NodePosition]


def snapshot(positions: Dict[str, NodePosition]) -> LayoutFrame:
    """Return a read-only copy that later ticks cannot mutate."""
    return MappingProxyType({node_id: replace(pos) for node_id, pos in positions.items()})


class LayoutPolicy(ABC):
    """Contract shared by the force-directed and hierarchical layouts."""

    name: str = "layout"

    def __init__(self, tree: RepoTree, width: float, height: float) -> None:
        self.tree = tree
        self.width = float(width)
        self.height = float(height)

    @abstractmethod
    def current_frame(self) -> LayoutFrame:
        """Return a read-only snapshot of every node's position."""

    @abstractmethod
    def on_interaction(
        self,
        node_id: str,
        action: InteractionAction | str,
        x: float | None = None,
        y: float | None = None,
    ) -> None:
        """React to a drag interaction on ``node_id``."""

    @abstractmethod
    def resize(self, width: float, height: float) -> None:
        """Adapt to a new canvas size."""

    def step(self) -> bool:
        """Advance one tick; static layouts have nothing to do."""
        return False

    def stop(self) -> None:
        """Release any per-frame ticking resources."""

    @property
    def active(self) -> bool:
        return False
