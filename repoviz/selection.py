"""Selection tracking and the asynchronous loads tied to it.

Every selection change bumps a monotonically increasing token. Fetches close
over the token that was current when they were issued and only apply their
result if it still matches at resolution time, so a late response for a node
the user already navigated away from is dropped instead of overwriting the
newer selection. In-flight requests are not cancelled; only their effects are
suppressed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple

from .errors import InvalidInput, MissingCredential, NetworkError, RepoVizError, user_message
from .hierarchy import RepoTree
from .logging import get_logger
from .models import CommitSummary, FileContent, TreeNode

logger = get_logger("selection")

ContentFetcher = Callable[[TreeNode], Awaitable[FileContent]]
HistoryFetcher = Callable[[TreeNode], Awaitable[Sequence[CommitSummary]]]
Explainer = Callable[[str, str], Awaitable[str]]
Listener = Callable[["SelectionState"], None]


class Phase(str, Enum):
    IDLE = "idle"
    LOADING_CONTENT = "loading-content"
    CONTENT_READY = "content-ready"
    LOAD_ERROR = "load-error"


class SubPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ErrorInfo:
    """Failure captured into state for display next to a retry action."""

    kind: str
    message: str
    retryable: bool = True

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if not isinstance(exc, RepoVizError):
            exc = NetworkError(str(exc))
        return cls(
            kind=exc.kind,
            message=user_message(exc),
            retryable=not isinstance(exc, MissingCredential),
        )


@dataclass
class SelectionState:
    selected_id: Optional[str] = None
    phase: Phase = Phase.IDLE
    content: Optional[FileContent] = None
    error: Optional[ErrorInfo] = None
    commits: Optional[Tuple[CommitSummary, ...]] = None
    history_phase: SubPhase = SubPhase.IDLE
    history_error: Optional[ErrorInfo] = None
    explanation: Optional[str] = None
    explanation_phase: SubPhase = SubPhase.IDLE
    explanation_error: Optional[ErrorInfo] = None


class SelectionController:
    """Owns the live :class:`SelectionState` and coordinates its fetches."""

    def __init__(
        self,
        tree: RepoTree,
        *,
        fetch_content: ContentFetcher,
        fetch_history: HistoryFetcher | None = None,
        explain: Explainer | None = None,
    ) -> None:
        self.tree = tree
        self._fetch_content = fetch_content
        self._fetch_history = fetch_history
        self._explain = explain
        self._state = SelectionState()
        self._token = 0
        self._explain_generation = 0
        self._history_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

    @property
    def token(self) -> int:
        return self._token

    @property
    def state(self) -> SelectionState:
        return replace(self._state)

    @property
    def selected_node(self) -> Optional[TreeNode]:
        if self._state.selected_id is None:
            return None
        return self.tree.get(self._state.selected_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def select(self, node_id: str) -> Optional[asyncio.Task]:
        """Select ``node_id``; blobs start a content load and return its task."""
        node = self.tree.get(node_id)
        if node is None:
            raise InvalidInput(f"Unknown node '{node_id}'.")
        token = self._next_token()
        self._state = SelectionState(selected_id=node.id)
        if not node.is_leaf:
            self._notify()
            return None

        self._state.phase = Phase.LOADING_CONTENT
        self._notify()
        return self._spawn(self._load_content(token, node))

    def clear(self) -> None:
        self._next_token()
        self._state = SelectionState()
        self._notify()

    def request_explanation(self, mode: str = "file", text: str | None = None) -> asyncio.Task:
        """Ask the explainer about the loaded file (or ``text`` in selection mode)."""
        if self._explain is None:
            raise InvalidInput("No explanation provider configured.")
        if self._state.phase is not Phase.CONTENT_READY or self._state.content is None:
            raise InvalidInput("File content must be loaded before requesting an explanation.")
        content = self._state.content
        if content.is_binary or content.text is None:
            raise InvalidInput("Binary files cannot be explained.")
        source = text if mode == "selection" and text else content.text
        if not source.strip():
            raise InvalidInput("The file is empty; there is nothing to explain.")

        self._explain_generation += 1
        generation = self._explain_generation
        self._state.explanation_phase = SubPhase.LOADING
        self._state.explanation_error = None
        self._notify()
        return self._spawn(self._load_explanation(self._token, generation, source, mode))

    def request_history(self) -> Optional[asyncio.Task]:
        """Load commit history once per selection; repeat calls reuse the result."""
        if self._fetch_history is None:
            raise InvalidInput("No history provider configured.")
        node = self.selected_node
        if node is None:
            raise InvalidInput("Select a node before requesting its history.")
        if self._state.history_phase is SubPhase.READY:
            return None
        if self._state.history_phase is SubPhase.LOADING and self._history_task is not None:
            return self._history_task

        self._state.history_phase = SubPhase.LOADING
        self._state.history_error = None
        self._notify()
        self._history_task = self._spawn(self._load_history(self._token, node))
        return self._history_task

    async def wait_idle(self) -> None:
        """Await every task spawned so far (useful for tests and shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _load_content(self, token: int, node: TreeNode) -> None:
        try:
            content = await self._fetch_content(node)
        except Exception as exc:
            if not self._is_current(token, "content", node.id):
                return
            logger.warning("Failed to load content for %s: %s", node.id, exc)
            self._state.phase = Phase.LOAD_ERROR
            self._state.error = ErrorInfo.from_exception(exc)
        else:
            if not self._is_current(token, "content", node.id):
                return
            self._state.phase = Phase.CONTENT_READY
            self._state.content = content
            self._state.error = None
        self._notify()

    async def _load_history(self, token: int, node: TreeNode) -> None:
        assert self._fetch_history is not None
        try:
            commits = await self._fetch_history(node)
        except Exception as exc:
            if not self._is_current(token, "history", node.id):
                return
            logger.warning("Failed to load history for %s: %s", node.id, exc)
            self._state.history_phase = SubPhase.ERROR
            self._state.history_error = ErrorInfo.from_exception(exc)
        else:
            if not self._is_current(token, "history", node.id):
                return
            self._state.history_phase = SubPhase.READY
            self._state.commits = tuple(commits)
        self._history_task = None
        self._notify()

    async def _load_explanation(self, token: int, generation: int, source: str, mode: str) -> None:
        assert self._explain is not None
        try:
            text = await self._explain(source, mode)
        except Exception as exc:
            if not self._is_current(token, "explanation") or generation != self._explain_generation:
                return
            logger.warning("Explanation failed: %s", exc)
            self._state.explanation_phase = SubPhase.ERROR
            self._state.explanation_error = ErrorInfo.from_exception(exc)
        else:
            if not self._is_current(token, "explanation") or generation != self._explain_generation:
                return
            self._state.explanation_phase = SubPhase.READY
            self._state.explanation = text
        self._notify()

    def _is_current(self, token: int, what: str, node_id: str | None = None) -> bool:
        if token == self._token:
            return True
        logger.debug(
            "Dropping stale %s result for %s (token %d, current %d)",
            what,
            node_id or self._state.selected_id,
            token,
            self._token,
        )
        return False

    def _next_token(self) -> int:
        self._token += 1
        self._history_task = None
        return self._token

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)


__all__ = [
    "ErrorInfo",
    "Phase",
    "SelectionController",
    "SelectionState",
    "SubPhase",
]
