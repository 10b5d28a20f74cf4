"""In-memory stand-in for the GitHub client used by session and service tests."""

from __future__ import annotations

import base64
from typing import Dict, List, Mapping, Optional, Sequence

from repoviz.content import classify_blob
from repoviz.errors import RepoVizError
from repoviz.github.client import parse_repo_url
from repoviz.models import CommitSummary, FileContent, RepoEntry


class FakeGitHubClient:
    """Serves a fixed listing, blob texts and commit history while recording calls."""

    def __init__(
        self,
        entries: Sequence[RepoEntry],
        *,
        blobs: Mapping[str, str] | None = None,
        commits: Mapping[str, Sequence[CommitSummary]] | None = None,
        branches: Sequence[str] = ("main",),
        error: RepoVizError | None = None,
    ) -> None:
        self.entries = list(entries)
        self.blobs: Dict[str, str] = dict(blobs or {})
        self.commits = {path: list(items) for path, items in (commits or {}).items()}
        self.branches = list(branches)
        self.error = error
        self.calls: List[tuple] = []
        self.token: Optional[str] = None

    def fetch_tree(self, repo_url: str, branch: str | None = None) -> List[RepoEntry]:
        parse_repo_url(repo_url)
        self.calls.append(("tree", repo_url, branch))
        if self.error is not None:
            raise self.error
        return list(self.entries)

    def fetch_branches(self, repo_url: str) -> List[str]:
        parse_repo_url(repo_url)
        self.calls.append(("branches", repo_url))
        return list(self.branches)

    def fetch_blob(self, repo_url: str, sha: str, path: str | None = None) -> FileContent:
        self.calls.append(("blob", sha, path))
        text = self.blobs.get(sha, "")
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        return classify_blob(path or sha, encoded, size=len(text))

    def fetch_commits(
        self, repo_url: str, path: str, branch: str | None = None
    ) -> List[CommitSummary]:
        self.calls.append(("commits", path, branch))
        return list(self.commits.get(path, []))


__all__ = ["FakeGitHubClient"]
