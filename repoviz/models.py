"""Core data models shared across repoviz components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

ROOT_ID = "root"


@dataclass(frozen=True)
class RepoEntry:
    """One flat record from the repository listing API."""

    path: str
    type: str
    size: Optional[int] = None
    sha: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RepoEntry":
        size = payload.get("size")
        status = payload.get("status")
        return cls(
            path=str(payload.get("path") or ""),
            type=str(payload.get("type") or "blob"),
            size=int(size) if isinstance(size, (int, float)) else None,
            sha=str(payload["sha"]) if payload.get("sha") else None,
            status=str(status) if status else None,
        )


@dataclass
class TreeNode:
    """Structural node of the materialised repository tree."""

    id: str
    name: str
    kind: str
    size: Optional[int] = None
    sha: Optional[str] = None
    status: Optional[str] = None
    children: List[str] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return self.kind == "blob"


@dataclass(frozen=True)
class Edge:
    """Parent/child link between two tree nodes."""

    parent: str
    child: str

    def as_tuple(self) -> Tuple[str, str]:
        return (self.parent, self.child)


@dataclass(frozen=True)
class CommitSummary:
    """Compact view of a commit touching a file."""

    id: str
    author: str
    timestamp: str
    message: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CommitSummary":
        commit = payload.get("commit") if isinstance(payload.get("commit"), dict) else {}
        author = commit.get("author") if isinstance(commit.get("author"), dict) else {}
        return cls(
            id=str(payload.get("sha") or ""),
            author=str(author.get("name") or "unknown"),
            timestamp=str(author.get("date") or ""),
            message=str(commit.get("message") or ""),
        )


@dataclass(frozen=True)
class FileContent:
    """Decoded blob payload ready for preview or download."""

    path: str
    text: Optional[str]
    is_binary: bool
    mime: str
    size: Optional[int] = None
    base64: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.text,
            "isBinary": self.is_binary,
            "mime": self.mime,
            "size": self.size,
            "base64": self.base64,
        }
