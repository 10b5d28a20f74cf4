"""Layout policies for the repository graph and tree views."""

from __future__ import annotations

from typing import Callable, Dict

from ..config import LayoutConfig
from ..hierarchy import RepoTree
from .base import InteractionAction, LayoutFrame, LayoutPolicy, NodePosition
from .force import ForceLayout
from .hierarchical import HierarchicalLayout


def _force_factory(tree: RepoTree, settings: LayoutConfig) -> LayoutPolicy:
    return ForceLayout(
        tree,
        settings.width,
        settings.height,
        link_distance=settings.link_distance,
        charge_strength=settings.charge_strength,
        alpha_min=settings.alpha_min,
        velocity_decay=settings.velocity_decay,
    )


def _tree_factory(tree: RepoTree, settings: LayoutConfig) -> LayoutPolicy:
    return HierarchicalLayout(tree, settings.width, settings.height)


_POLICIES: Dict[str, Callable[[RepoTree, LayoutConfig], LayoutPolicy]] = {
    "graph": _force_factory,
    "force": _force_factory,
    "tree": _tree_factory,
    "hierarchical": _tree_factory,
}


def create_layout(policy: str, tree: RepoTree, settings: LayoutConfig | None = None) -> LayoutPolicy:
    """Instantiate the layout policy registered under ``policy``."""
    factory = _POLICIES.get(policy.lower())
    if factory is None:
        choices = ", ".join(sorted(_POLICIES))
        raise ValueError(f"Unknown layout policy '{policy}'. Expected one of: {choices}")
    return factory(tree, settings or LayoutConfig())


__all__ = [
    "ForceLayout",
    "HierarchicalLayout",
    "InteractionAction",
    "LayoutFrame",
    "LayoutPolicy",
    "NodePosition",
    "create_layout",
]
