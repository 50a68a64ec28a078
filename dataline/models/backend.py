"""Object models exchanged with a version-control backend.

These mirror the backend's native object kinds (blob, tree, commit) closely
enough that a git repository and the in-memory store can both satisfy them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TreeEntry(BaseModel):
    """One entry of a recursive tree listing.

    ``path`` is the full slash-separated path from the tree root and ``mode``
    is the backend's native octal mode string (``"100644"``, ``"100755"``,
    ``"120000"`` ...).
    """

    model_config = ConfigDict(frozen=True)

    path: str
    mode: str
    id: str
    type: str = "blob"  # "blob", "tree" or "commit" (gitlink)
    size: int | None = None


class Signature(BaseModel):
    """Author/committer identity with an explicit, fixed timestamp."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    timestamp: int = 0  # seconds since the epoch
    timezone_offset: str = "+0000"

    def format(self) -> str:
        """Render as a git signature line: ``Name <email> 0 +0000``."""
        return f"{self.name} <{self.email}> {self.timestamp} {self.timezone_offset}"


class CommitInfo(BaseModel):
    """A commit as read back from the backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    tree: str
    parents: list[str] = []
    message: str = ""


class CommitRequest(BaseModel):
    """Everything needed to write a commit object."""

    model_config = ConfigDict(frozen=True)

    tree: str
    parents: list[str] = []
    author: Signature
    committer: Signature
    message: str
