"""Force-directed layout driven by a damped physics simulation."""

from __future__ import annotations

import asyncio
import math
import random
from typing import Callable, Dict, List, Optional, Tuple

from ..hierarchy import RepoTree
from ..logging import get_logger
from .base import InteractionAction, LayoutFrame, LayoutPolicy, NodePosition, snapshot

logger = get_logger("layout.force")

_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))
_DRAG_ALPHA_TARGET = 0.3


class ForceLayout(LayoutPolicy):
    """Many-body repulsion, link springs and a centering pull, cooled by alpha.

    Each :meth:`step` decays ``alpha`` geometrically toward ``alpha_target`` and
    applies the forces scaled by the new alpha. With ``alpha_target`` at zero the
    simulation settles once alpha falls below ``alpha_min``. Dragging a node
    pins it and keeps the simulation warm until the drag ends.
    """

    name = "force"

    def __init__(
        self,
        tree: RepoTree,
        width: float,
        height: float,
        *,
        link_distance: float = 50.0,
        charge_strength: float = -120.0,
        alpha_min: float = 0.001,
        velocity_decay: float = 0.4,
        seed: int = 0,
    ) -> None:
        super().__init__(tree, width, height)
        self.link_distance = link_distance
        self.charge_strength = charge_strength
        self.alpha = 1.0
        self.alpha_min = alpha_min
        self.alpha_decay = 1 - math.pow(alpha_min, 1 / 300)
        self.alpha_target = 0.0
        self.velocity_decay = velocity_decay
        self.ticks = 0
        self._random = random.Random(seed)
        self._stopped = False
        self._running = True
        self._order: List[str] = list(tree.order)
        self._positions: Dict[str, NodePosition] = {}
        self._links: List[Tuple[str, str, float, float]] = []
        self._initialise_positions()
        self._initialise_links()

    @property
    def active(self) -> bool:
        return self._running and not self._stopped

    def current_frame(self) -> LayoutFrame:
        return snapshot(self._positions)

    def step(self) -> bool:
        """Advance the simulation by one tick and report whether it is still active."""
        if not self.active:
            return False
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self._apply_links()
        self._apply_charge()
        self._integrate()
        self._apply_center()
        self.ticks += 1
        if self.alpha < self.alpha_min:
            self._running = False
            logger.debug("Force layout settled after %d ticks", self.ticks)
        return self.active

    def run(self, max_ticks: int = 1000) -> int:
        """Tick until the simulation settles or ``max_ticks`` is reached."""
        count = 0
        while count < max_ticks and self.step():
            count += 1
        return count

    async def run_async(
        self,
        *,
        frame_interval: float = 1 / 60,
        on_tick: Optional[Callable[[LayoutFrame], None]] = None,
    ) -> int:
        """Tick once per display frame, yielding to the event loop in between."""
        count = 0
        while self.step():
            count += 1
            if on_tick is not None:
                on_tick(self.current_frame())
            await asyncio.sleep(frame_interval)
        return count

    def stop(self) -> None:
        """Tear the simulation down; it never ticks again."""
        self._stopped = True
        self._running = False

    def restart(self) -> None:
        if not self._stopped:
            self._running = True

    def on_interaction(
        self,
        node_id: str,
        action: InteractionAction | str,
        x: float | None = None,
        y: float | None = None,
    ) -> None:
        position = self._positions.get(node_id)
        if position is None:
            raise KeyError(node_id)
        action = InteractionAction.parse(action)
        if action is InteractionAction.DRAG_START:
            self.alpha_target = _DRAG_ALPHA_TARGET
            self.alpha = max(self.alpha, self.alpha_target)
            self.restart()
            position.pinned = True
            position.fx = position.x if x is None else x
            position.fy = position.y if y is None else y
        elif action is InteractionAction.DRAG_MOVE:
            if position.pinned:
                position.fx = position.x if x is None else x
                position.fy = position.y if y is None else y
        else:
            self.alpha_target = 0.0
            position.pinned = False
            position.fx = None
            position.fy = None

    def resize(self, width: float, height: float) -> None:
        self.width = float(width)
        self.height = float(height)
        self.alpha = max(self.alpha, _DRAG_ALPHA_TARGET)
        self.restart()

    def _initialise_positions(self) -> None:
        cx, cy = self.width / 2, self.height / 2
        for index, node_id in enumerate(self._order):
            radius = _INITIAL_RADIUS * math.sqrt(0.5 + index)
            angle = index * _INITIAL_ANGLE
            self._positions[node_id] = NodePosition(
                x=cx + radius * math.cos(angle),
                y=cy + radius * math.sin(angle),
            )

    def _initialise_links(self) -> None:
        degree: Dict[str, int] = {node_id: 0 for node_id in self._order}
        for edge in self.tree.edges:
            degree[edge.parent] += 1
            degree[edge.child] += 1
        for edge in self.tree.edges:
            source, target = degree[edge.parent], degree[edge.child]
            strength = 1 / min(source, target)
            bias = source / (source + target)
            self._links.append((edge.parent, edge.child, strength, bias))

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        for parent_id, child_id, strength, bias in self._links:
            source = self._positions[parent_id]
            target = self._positions[child_id]
            dx = target.x + target.vx - source.x - source.vx or self._jiggle()
            dy = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(dx * dx + dy * dy)
            factor = (length - self.link_distance) / length * self.alpha * strength
            dx *= factor
            dy *= factor
            target.vx -= dx * bias
            target.vy -= dy * bias
            source.vx += dx * (1 - bias)
            source.vy += dy * (1 - bias)

    def _apply_charge(self) -> None:
        positions = [self._positions[node_id] for node_id in self._order]
        count = len(positions)
        for i in range(count):
            node = positions[i]
            for j in range(i + 1, count):
                other = positions[j]
                dx = other.x - node.x or self._jiggle()
                dy = other.y - node.y or self._jiggle()
                dist2 = max(dx * dx + dy * dy, 1.0)
                # Force magnitude falls off with distance; negative strength repels.
                weight = self.charge_strength * self.alpha / dist2
                node.vx += dx * weight
                node.vy += dy * weight
                other.vx -= dx * weight
                other.vy -= dy * weight

    def _integrate(self) -> None:
        keep = 1 - self.velocity_decay
        for position in self._positions.values():
            if position.fx is not None and position.fy is not None:
                position.x, position.y = position.fx, position.fy
                position.vx = position.vy = 0.0
                continue
            position.vx *= keep
            position.vy *= keep
            position.x += position.vx
            position.y += position.vy

    def _apply_center(self) -> None:
        free = [pos for pos in self._positions.values() if not pos.pinned]
        if not free:
            return
        mean_x = sum(pos.x for pos in self._positions.values()) / len(self._positions)
        mean_y = sum(pos.y for pos in self._positions.values()) / len(self._positions)
        shift_x = self.width / 2 - mean_x
        shift_y = self.height / 2 - mean_y
        for position in free:
            position.x += shift_x
            position.y += shift_y


__all__ = ["ForceLayout"]
