from __future__ import annotations

from typing import List

import pytest

from repoviz.hierarchy import RepoTree, build_hierarchy
from repoviz.models import CommitSummary, RepoEntry


@pytest.fixture
def sample_entries() -> List[RepoEntry]:
    """A small listing in the order the tree API returns it."""
    return [
        RepoEntry(path="README.md", type="blob", size=120, sha="sha-readme"),
        RepoEntry(path="src", type="tree", sha="sha-src"),
        RepoEntry(path="src/app.py", type="blob", size=2048, sha="sha-app"),
        RepoEntry(path="src/utils", type="tree", sha="sha-utils"),
        RepoEntry(path="src/utils/io.py", type="blob", size=512, sha="sha-io"),
        RepoEntry(path="src/utils/text.py", type="blob", size=64, sha="sha-text"),
        RepoEntry(path="tests/test_app.py", type="blob", size=300, sha="sha-test"),
    ]


@pytest.fixture
def sample_tree(sample_entries: List[RepoEntry]) -> RepoTree:
    return build_hierarchy(sample_entries)


@pytest.fixture
def sample_commits() -> List[CommitSummary]:
    return [
        CommitSummary(id="c2", author="Ada", timestamp="2024-02-01T10:00:00Z", message="Refine app"),
        CommitSummary(id="c1", author="Lin", timestamp="2024-01-01T10:00:00Z", message="Add app"),
    ]
