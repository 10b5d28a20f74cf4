"""Visualizer session wiring the hierarchy, layouts, selection and clients."""

from __future__ import annotations

import asyncio
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar

from .config import RepoVizConfig, load_config
from .github.client import GitHubClient, parse_repo_url
from .hierarchy import RepoTree, build_hierarchy
from .layout import LayoutPolicy, create_layout
from .layout.base import LayoutFrame
from .llm.runner import ExplanationRunner
from .logging import get_logger
from .models import ROOT_ID, CommitSummary, FileContent, TreeNode
from .render import RenderAdapter, RenderParams, Scene, ViewTransform, build_scene
from .selection import SelectionController

logger = get_logger("session")

T = TypeVar("T")


class VisualizerSession:
    """Holds one loaded repository and everything needed to draw and explore it."""

    def __init__(
        self,
        config: RepoVizConfig | None = None,
        *,
        client: GitHubClient | None = None,
        explainer: ExplanationRunner | None = None,
    ) -> None:
        self.config = config or load_config(Path.cwd())
        self.client = client or GitHubClient(
            self.config.github.token,
            api_url=self.config.github.api_url,
            request_timeout=self.config.github.request_timeout,
        )
        self.explainer = explainer or ExplanationRunner(
            provider=self.config.explain.provider,
            model=self.config.explain.model,
            api_keys=self.config.explain.api_keys,
            temperature=self.config.explain.temperature,
            request_timeout=self.config.explain.request_timeout,
        )
        self.repo_url: Optional[str] = None
        self.branch: Optional[str] = None
        self.tree: RepoTree = build_hierarchy(None)
        self.view = "graph"
        self.layout: Optional[LayoutPolicy] = None
        self.selection: Optional[SelectionController] = None
        self.adapter: Optional[RenderAdapter] = None
        self.search_term = ""
        self.highlighted_deps: Sequence[str] = ()
        self.provider: Optional[str] = None
        self.model: Optional[str] = None
        self.api_key: Optional[str] = None

    async def load(self, repo_url: str, branch: str | None = None, *, view: str | None = None) -> RepoTree:
        """Fetch the repository tree and rebuild hierarchy, layout and selection."""
        parse_repo_url(repo_url)
        entries = await self._in_executor(partial(self.client.fetch_tree, repo_url, branch))
        if self.layout is not None:
            self.layout.stop()
        self.repo_url = repo_url
        self.branch = branch
        self.tree = build_hierarchy(entries)
        self.view = view or self.view
        self.layout = create_layout(self.view, self.tree, self.config.layout)
        self.selection = SelectionController(
            self.tree,
            fetch_content=self._fetch_content,
            fetch_history=self._fetch_history,
            explain=self._explain,
        )
        self.adapter = RenderAdapter(self.layout, self.selection)
        logger.info("Loaded %s with %d nodes", repo_url, len(self.tree))
        return self.tree

    def set_view(self, view: str) -> LayoutPolicy:
        """Switch layout policy; the selection is left untouched."""
        if self.layout is not None:
            self.layout.stop()
        self.view = view
        self.layout = create_layout(view, self.tree, self.config.layout)
        if self.adapter is not None:
            self.adapter.layout = self.layout
        return self.layout

    def set_explanation_provider(
        self, provider: str | None = None, model: str | None = None, api_key: str | None = None
    ) -> None:
        self.provider = provider
        self.model = model
        self.api_key = api_key

    def resize(self, width: float, height: float) -> None:
        self.config.layout.width = float(width)
        self.config.layout.height = float(height)
        if self.layout is not None:
            self.layout.resize(width, height)

    def frame(self) -> LayoutFrame:
        if self.layout is None:
            raise RuntimeError("No repository loaded.")
        return self.layout.current_frame()

    def scene(self, transform: ViewTransform | None = None) -> Scene:
        state = self.selection.state if self.selection is not None else None
        params = RenderParams(
            search_term=self.search_term,
            highlighted_deps=tuple(self.highlighted_deps),
            transform=transform or ViewTransform(),
        )
        view = "tree" if self.view in ("tree", "hierarchical") else "graph"
        return build_scene(self.tree, self.frame(), state, params, view=view)

    def settle(self, max_ticks: int | None = None) -> int:
        """Run the active layout to rest synchronously (no-op for static layouts)."""
        if self.layout is None:
            return 0
        ticks = 0
        limit = max_ticks or self.config.layout.max_ticks
        while ticks < limit and self.layout.step():
            ticks += 1
        return ticks

    def close(self) -> None:
        if self.layout is not None:
            self.layout.stop()

    async def _fetch_content(self, node: TreeNode) -> FileContent:
        assert self.repo_url is not None
        return await self._in_executor(
            partial(self.client.fetch_blob, self.repo_url, node.sha or "", node.id)
        )

    async def _fetch_history(self, node: TreeNode) -> Sequence[CommitSummary]:
        assert self.repo_url is not None
        path = "" if node.id == ROOT_ID else node.id
        return await self._in_executor(
            partial(self.client.fetch_commits, self.repo_url, path, self.branch)
        )

    async def _explain(self, text: str, mode: str) -> str:
        return await self._in_executor(
            partial(
                self.explainer.explain,
                text,
                mode=mode,
                provider=self.provider,
                model=self.model,
                api_key=self.api_key,
            )
        )

    @staticmethod
    async def _in_executor(func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)


__all__ = ["VisualizerSession"]
