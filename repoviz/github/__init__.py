"""GitHub REST API client."""

from .client import GitHubClient, RepoRef, parse_repo_url

__all__ = ["GitHubClient", "RepoRef", "parse_repo_url"]
