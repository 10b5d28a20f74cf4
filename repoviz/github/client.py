"""Thin client for the GitHub REST endpoints repoviz depends on."""

from __future__ import annotations

import http.client
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..content import classify_blob
from ..errors import AuthRequired, InvalidInput, NetworkError, NotFound, RateLimited, RepoVizError
from ..logging import get_logger
from ..models import CommitSummary, FileContent, RepoEntry

logger = get_logger("github")

DEFAULT_API_URL = "https://api.github.com"

# Accepts https://github.com/owner/repo with optional .git, trailing slash,
# /tree/<branch> or /blob/<branch>/<path> suffixes.
_REPO_URL_PATTERN = re.compile(
    r"^https?://([^/]*\.)?github\.com/([^/]+)/([^/#?]+)(?:[/#?].*)?$", re.IGNORECASE
)


@dataclass(frozen=True)
class RepoRef:
    """Owner/name pair identifying a hosted repository."""

    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_url(repo_url: str | None) -> RepoRef:
    """Extract the owner and repository name, failing fast on malformed input."""
    if not repo_url or not isinstance(repo_url, str):
        raise InvalidInput("Invalid GitHub repository URL.")
    match = _REPO_URL_PATTERN.match(repo_url.strip())
    if not match:
        raise InvalidInput("Invalid GitHub repository URL.")
    repo = re.sub(r"\.git$", "", match.group(3), flags=re.IGNORECASE)
    if not repo:
        raise InvalidInput("Invalid GitHub repository URL.")
    return RepoRef(owner=match.group(2), repo=repo)


class GitHubClient:
    """Fetches trees, branches, blobs and commit history over HTTPS."""

    JSON_MEDIA_TYPE = "application/vnd.github.v3+json"

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: float = 30.0,
    ) -> None:
        self.token = token or None
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout

    def default_branch(self, repo_url: str) -> str:
        ref = parse_repo_url(repo_url)
        payload = self._get_json(f"/repos/{ref.owner}/{ref.repo}")
        branch = payload.get("default_branch") if isinstance(payload, dict) else None
        if not branch:
            raise NotFound(f"Repository {ref.slug} has no default branch.")
        return str(branch)

    def fetch_tree(self, repo_url: str, branch: str | None = None) -> List[RepoEntry]:
        """Return the recursive tree listing for ``branch`` (default branch when omitted)."""
        ref = parse_repo_url(repo_url)
        branch_name = branch or self.default_branch(repo_url)
        payload = self._get_json(
            f"/repos/{ref.owner}/{ref.repo}/git/trees/{quote(branch_name, safe='')}",
            params={"recursive": "1"},
        )
        items = payload.get("tree") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise NetworkError("Tree response did not contain a tree listing.")
        if payload.get("truncated"):
            logger.warning("Tree listing for %s@%s was truncated by the API", ref.slug, branch_name)
        entries = [RepoEntry.from_payload(item) for item in items if isinstance(item, dict)]
        logger.info("Fetched %d tree entries for %s@%s", len(entries), ref.slug, branch_name)
        return entries

    def fetch_branches(self, repo_url: str) -> List[str]:
        ref = parse_repo_url(repo_url)
        payload = self._get_json(f"/repos/{ref.owner}/{ref.repo}/branches")
        if not isinstance(payload, list):
            raise NetworkError("Branch response was not a list.")
        return [str(item["name"]) for item in payload if isinstance(item, dict) and item.get("name")]

    def fetch_blob(self, repo_url: str, sha: str, path: str | None = None) -> FileContent:
        """Fetch a blob by content id and classify it as text or binary."""
        ref = parse_repo_url(repo_url)
        if not sha:
            raise InvalidInput("File SHA is required.")
        payload = self._get_json(f"/repos/{ref.owner}/{ref.repo}/git/blobs/{sha}")
        if not isinstance(payload, dict):
            raise NetworkError("Blob response was not an object.")
        size = payload.get("size")
        return classify_blob(
            path or sha,
            payload.get("content") if isinstance(payload.get("content"), str) else None,
            encoding=payload.get("encoding"),
            size=size if isinstance(size, int) else None,
        )

    def fetch_commits(
        self, repo_url: str, path: str, branch: str | None = None
    ) -> List[CommitSummary]:
        """Return commits touching ``path``, newest first."""
        ref = parse_repo_url(repo_url)
        target = branch or self.default_branch(repo_url)
        payload = self._get_json(
            f"/repos/{ref.owner}/{ref.repo}/commits",
            params={"path": path, "sha": target},
        )
        if not isinstance(payload, list):
            raise NetworkError("Commit response was not a list.")
        return [CommitSummary.from_payload(item) for item in payload if isinstance(item, dict)]

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": self.JSON_MEDIA_TYPE, "User-Agent": "repoviz"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _get_json(self, path: str, params: Mapping[str, str] | None = None) -> Any:
        url = f"{self.api_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        request = Request(url, headers=self._headers(), method="GET")
        logger.debug("GET %s", url)
        try:
            with urlopen(request, timeout=self.request_timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            raise _error_from_http(exc) from exc
        except URLError as exc:
            raise NetworkError(f"GitHub request failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise NetworkError("GitHub request timed out") from exc
        except http.client.HTTPException as exc:
            raise NetworkError(f"GitHub response was incomplete: {exc!r}") from exc

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise NetworkError("GitHub returned invalid JSON") from exc


def _error_from_http(exc: HTTPError) -> RepoVizError:
    message = _error_message(exc) or str(exc.reason)
    remaining = exc.headers.get("X-RateLimit-Remaining") if exc.headers is not None else None
    if exc.code == 404:
        return NotFound(message)
    if exc.code == 429 or (exc.code == 403 and (remaining == "0" or "rate limit" in message.lower())):
        return RateLimited(message)
    if exc.code in (401, 403):
        return AuthRequired(message)
    return NetworkError(f"GitHub request failed with status {exc.code}: {message}")


def _error_message(exc: HTTPError) -> Optional[str]:
    try:
        body = exc.read()
    except (OSError, AttributeError):
        return None
    if not body:
        return None
    try:
        data = json.loads(body.decode("utf-8", errors="ignore"))
    except json.JSONDecodeError:
        return body.decode("utf-8", errors="ignore").strip() or None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return None


__all__ = ["DEFAULT_API_URL", "GitHubClient", "RepoRef", "parse_repo_url"]
