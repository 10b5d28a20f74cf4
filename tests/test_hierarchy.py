"""Tests for the path hierarchy builder."""

from __future__ import annotations

from collections import Counter

from repoviz.hierarchy import build_hierarchy
from repoviz.models import ROOT_ID, RepoEntry


def _expected_ids(entries: list[RepoEntry]) -> set[str]:
    ids = {ROOT_ID}
    for entry in entries:
        parts = entry.path.split("/")
        for index in range(1, len(parts) + 1):
            ids.add("/".join(parts[:index]))
    return ids


def test_builder_produces_expected_nodes_and_edges_for_two_files() -> None:
    entries = [
        RepoEntry(path="a/b.txt", type="blob", size=10),
        RepoEntry(path="a/c.txt", type="blob", size=20),
    ]

    tree = build_hierarchy(entries)

    assert set(tree.nodes) == {"root", "a", "a/b.txt", "a/c.txt"}
    assert set(tree.edge_pairs()) == {("root", "a"), ("a", "a/b.txt"), ("a", "a/c.txt")}
    assert tree.nodes["a"].kind == "tree"
    assert tree.nodes["a/b.txt"].kind == "blob"
    assert tree.nodes["a/b.txt"].size == 10
    assert tree.nodes["a"].children == ["a/b.txt", "a/c.txt"]


def test_builder_returns_lone_root_for_empty_input() -> None:
    for entries in (None, []):
        tree = build_hierarchy(entries)
        assert list(tree.nodes) == [ROOT_ID]
        assert tree.edges == []
        assert tree.root.kind == "root"


def test_every_non_root_node_has_exactly_one_parent_edge(sample_entries) -> None:
    tree = build_hierarchy(sample_entries)

    child_counts = Counter(edge.child for edge in tree.edges)
    assert ROOT_ID not in child_counts
    assert set(child_counts) == set(tree.nodes) - {ROOT_ID}
    assert all(count == 1 for count in child_counts.values())
    assert set(tree.nodes) == _expected_ids(sample_entries)
    assert sum(1 for node in tree if node.kind == "root") == 1


def test_builder_synthesises_missing_intermediate_directories(sample_tree) -> None:
    assert "tests" in sample_tree
    assert sample_tree.nodes["tests"].kind == "tree"
    assert sample_tree.parent_of("tests/test_app.py") == "tests"
    assert sample_tree.parent_of("tests") == ROOT_ID
    assert sample_tree.root.children == ["README.md", "src", "tests"]


def test_builder_is_deterministic(sample_entries) -> None:
    first = build_hierarchy(sample_entries)
    second = build_hierarchy(list(sample_entries))

    assert first.order == second.order
    assert first.edge_pairs() == second.edge_pairs()
    for node_id in first.order:
        assert first.nodes[node_id].children == second.nodes[node_id].children


def test_children_follow_first_seen_order() -> None:
    entries = [
        RepoEntry(path="z.txt", type="blob"),
        RepoEntry(path="lib/b.py", type="blob"),
        RepoEntry(path="a.txt", type="blob"),
        RepoEntry(path="lib/a.py", type="blob"),
    ]

    tree = build_hierarchy(entries)

    assert tree.root.children == ["z.txt", "lib", "a.txt"]
    assert tree.nodes["lib"].children == ["lib/b.py", "lib/a.py"]


def test_shared_prefixes_do_not_duplicate_edges() -> None:
    entries = [
        RepoEntry(path="docs", type="tree"),
        RepoEntry(path="docs/guide/intro.md", type="blob"),
        RepoEntry(path="docs/guide/setup.md", type="blob"),
        RepoEntry(path="docs/guide", type="tree"),
    ]

    tree = build_hierarchy(entries)

    pairs = tree.edge_pairs()
    assert len(pairs) == len(set(pairs)) == 4
    assert tree.nodes["docs/guide"].children == ["docs/guide/intro.md", "docs/guide/setup.md"]


def test_conflicting_declaration_keeps_first_seen_kind() -> None:
    entries = [
        RepoEntry(path="src", type="tree", sha="tree-sha"),
        RepoEntry(path="src", type="blob", size=5, sha="blob-sha"),
        RepoEntry(path="src/main.py", type="blob"),
    ]

    tree = build_hierarchy(entries)

    node = tree.nodes["src"]
    assert node.kind == "tree"
    assert node.sha == "tree-sha"
    assert node.size is None
    assert tree.nodes["src"].children == ["src/main.py"]


def test_depth_and_leaf_counts(sample_tree) -> None:
    assert sample_tree.depth_of(ROOT_ID) == 0
    assert sample_tree.depth_of("src") == 1
    assert sample_tree.depth_of("src/utils/io.py") == 3

    leaves = sample_tree.leaf_counts()
    assert leaves["src/utils"] == 2
    assert leaves["src"] == 3
    assert leaves[ROOT_ID] == 5


def test_entry_status_is_carried_onto_nodes() -> None:
    tree = build_hierarchy(
        [RepoEntry.from_payload({"path": "a.py", "type": "blob", "size": 3, "sha": "x", "status": "added"})]
    )

    assert tree.nodes["a.py"].status == "added"
    assert tree.nodes["a.py"].sha == "x"


def test_top_level_directory_named_root_folds_into_root() -> None:
    entries = [
        RepoEntry(path="root/etc/passwd", type="blob", size=12),
        RepoEntry(path="README.md", type="blob", size=3),
    ]

    tree = build_hierarchy(entries)

    assert all(edge.parent != edge.child for edge in tree.edges)
    assert ROOT_ID not in tree.root.children
    assert tree.parent_of(ROOT_ID) is None
    parents = Counter(edge.child for edge in tree.edges)
    assert set(parents) == set(tree.nodes) - {ROOT_ID}
    assert all(count == 1 for count in parents.values())
    assert tree.descendants() == ["root", "root/etc", "root/etc/passwd", "README.md"]
    assert tree.depth_of("root/etc/passwd") == 2
    assert tree.leaf_counts()[ROOT_ID] == 2


def test_tree_layout_finishes_for_root_named_directory() -> None:
    from repoviz.cli import render_tree_lines
    from repoviz.layout import HierarchicalLayout

    tree = build_hierarchy([RepoEntry(path="root/etc/passwd", type="blob", size=12)])

    frame = HierarchicalLayout(tree, 800, 600).current_frame()

    assert set(frame) == set(tree.nodes)
    assert render_tree_lines(tree) == ["root", "└── etc/", "    └── passwd"]
