"""Error kinds surfaced by the repository and explanation clients."""

from __future__ import annotations

from typing import Dict


class RepoVizError(RuntimeError):
    """Base class for failures the selection state machine captures."""

    kind = "error"


class InvalidInput(RepoVizError):
    """Malformed repository identifier or an operation issued in the wrong state."""

    kind = "invalid-input"


class NotFound(RepoVizError):
    kind = "not-found"


class RateLimited(RepoVizError):
    kind = "rate-limited"


class AuthRequired(RepoVizError):
    kind = "auth-required"


class NetworkError(RepoVizError):
    """Transport-level failure (DNS, connection reset, timeout, bad JSON)."""

    kind = "network-error"


class ProviderError(RepoVizError):
    kind = "provider-error"


class MissingCredential(RepoVizError):
    kind = "missing-credential"


class EmptyResponse(RepoVizError):
    kind = "empty-response"


_USER_MESSAGES: Dict[str, str] = {
    InvalidInput.kind: "Please enter a full GitHub repository URL like https://github.com/owner/repo",
    NotFound.kind: "Repository, branch or file not found.",
    RateLimited.kind: "GitHub API rate limit reached. Provide a token or try again later.",
    AuthRequired.kind: "Authentication required. Provide a valid GitHub token.",
    NetworkError.kind: "Network error while contacting the server.",
    ProviderError.kind: "Failed to get explanation from AI.",
    MissingCredential.kind: "Please enter your API Key to get an explanation.",
    EmptyResponse.kind: "The AI provider returned an empty response.",
}


def user_message(error: BaseException) -> str:
    """Return the short, kind-specific message shown next to a retry action."""
    kind = getattr(error, "kind", None)
    if kind in _USER_MESSAGES:
        return _USER_MESSAGES[kind]
    return "Something went wrong. Please try again."


__all__ = [
    "AuthRequired",
    "EmptyResponse",
    "InvalidInput",
    "MissingCredential",
    "NetworkError",
    "NotFound",
    "ProviderError",
    "RateLimited",
    "RepoVizError",
    "user_message",
]
