"""Tests for the visualizer session wiring."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from repoviz.config import RepoVizConfig
from repoviz.errors import InvalidInput
from repoviz.layout import ForceLayout, HierarchicalLayout
from repoviz.render import EventType, InteractionEvent
from repoviz.selection import Phase, SubPhase
from repoviz.session import VisualizerSession
from tests._fixtures.fake_github import FakeGitHubClient

REPO_URL = "https://github.com/octo/hello"


class _StubExplainer:
    def __init__(self) -> None:
        self.calls = []

    def explain(self, code, *, mode="file", provider=None, model=None, api_key=None) -> str:
        self.calls.append((code, mode, provider, api_key))
        return "A greeting."


@pytest.fixture
def fake_client(sample_entries, sample_commits) -> FakeGitHubClient:
    return FakeGitHubClient(
        sample_entries,
        blobs={"sha-app": "print('hi')\n"},
        commits={"src/app.py": sample_commits, "": sample_commits[:1]},
    )


def _session(fake_client, explainer=None) -> VisualizerSession:
    return VisualizerSession(
        RepoVizConfig(root=Path(".")), client=fake_client, explainer=explainer or _StubExplainer()
    )


def test_load_builds_tree_and_layout(fake_client) -> None:
    session = _session(fake_client)

    tree = asyncio.run(session.load(REPO_URL, "main", view="graph"))

    assert len(tree) == 9
    assert set(tree.nodes) == {
        "root",
        "README.md",
        "src",
        "src/app.py",
        "src/utils",
        "src/utils/io.py",
        "src/utils/text.py",
        "tests",
        "tests/test_app.py",
    }
    assert isinstance(session.layout, ForceLayout)
    assert fake_client.calls == [("tree", REPO_URL, "main")]
    assert session.settle() > 0
    assert session.layout.active is False


def test_load_rejects_malformed_url_without_fetching(fake_client) -> None:
    session = _session(fake_client)

    with pytest.raises(InvalidInput):
        asyncio.run(session.load("github.com/octo"))
    assert fake_client.calls == []


def test_click_selects_and_loads_content(fake_client) -> None:
    explainer = _StubExplainer()
    session = _session(fake_client, explainer)
    session.set_explanation_provider("openai", api_key="sk")

    async def scenario() -> None:
        await session.load(REPO_URL, view="tree")
        session.adapter.dispatch(InteractionEvent(EventType.CLICK, "src/app.py"))
        await session.selection.wait_idle()
        session.selection.request_explanation()
        session.selection.request_history()
        await session.selection.wait_idle()

    asyncio.run(scenario())

    state = session.selection.state
    assert state.phase is Phase.CONTENT_READY
    assert state.content.text == "print('hi')\n"
    assert state.explanation == "A greeting."
    assert state.history_phase is SubPhase.READY
    assert ("blob", "sha-app", "src/app.py") in fake_client.calls
    assert ("commits", "src/app.py", None) in fake_client.calls
    assert explainer.calls == [("print('hi')\n", "file", "openai", "sk")]


def test_root_history_uses_repository_path(fake_client) -> None:
    session = _session(fake_client)

    async def scenario() -> None:
        await session.load(REPO_URL, "main")
        session.selection.select("root")
        session.selection.request_history()
        await session.selection.wait_idle()

    asyncio.run(scenario())

    assert ("commits", "", "main") in fake_client.calls
    assert [c.id for c in session.selection.state.commits] == ["c2"]


def test_switching_view_keeps_selection(fake_client) -> None:
    session = _session(fake_client)

    async def scenario() -> None:
        await session.load(REPO_URL, view="graph")
        session.selection.select("src/app.py")
        await session.selection.wait_idle()

    asyncio.run(scenario())
    old_layout = session.layout
    session.set_view("tree")

    assert isinstance(session.layout, HierarchicalLayout)
    assert old_layout.active is False
    assert old_layout.step() is False
    assert session.adapter.layout is session.layout
    assert session.selection.state.selected_id == "src/app.py"
    scene = session.scene()
    assert scene.view == "tree"
    assert scene.node("src/app.py").bold is True


def test_reload_stops_previous_layout(fake_client) -> None:
    session = _session(fake_client)

    async def scenario() -> None:
        await session.load(REPO_URL, view="graph")
        first = session.layout
        await session.load(REPO_URL, view="graph")
        assert session.layout is not first
        assert first.step() is False

    asyncio.run(scenario())


def test_drag_events_reach_force_layout(fake_client) -> None:
    session = _session(fake_client)
    asyncio.run(session.load(REPO_URL, view="graph"))
    session.settle()

    session.adapter.dispatch(InteractionEvent(EventType.DRAG_START, "src", 10.0, 10.0))
    session.adapter.dispatch(InteractionEvent(EventType.DRAG_MOVE, "src", 30.0, 40.0))
    session.settle(5)

    position = session.frame()["src"]
    assert position.pinned is True
    assert (position.x, position.y) == (30.0, 40.0)
    session.close()
    assert session.layout.active is False
