"""Version-control backend protocol.

The projection core never touches a repository directly; it talks to an
object store with blob/tree/commit objects and a single compare-and-swap
ref update.  ``GitBackend`` and ``MemoryBackend`` both satisfy the protocol.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dataline.models.backend import CommitInfo, CommitRequest, TreeEntry

# Native git mode encoding.
MODE_FILE = "100644"
MODE_EXECUTABLE = "100755"
MODE_SYMLINK = "120000"
MODE_TREE = "040000"
MODE_GITLINK = "160000"


class BackendReadError(RuntimeError):
    """Raised when a referenced object, path, or ref cannot be read."""


class BackendWriteError(RuntimeError):
    """Raised when the backend refuses to store an object."""


@runtime_checkable
class VersionControlBackend(Protocol):
    """Content-addressed object store plus compare-and-swap refs."""

    def resolve_ref(self, name: str) -> str | None:
        """Return the object id a ref (or revision) points at, or None."""
        ...

    def read_commit(self, commit_id: str) -> CommitInfo:
        """Read a commit's tree and ordered parent list."""
        ...

    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        """Recursive listing of every non-tree entry under ``tree_id``."""
        ...

    def read_blob(self, blob_id: str) -> bytes:
        ...

    def hash_blob(self, data: bytes) -> str:
        """Content id ``data`` would be stored under, without storing it."""
        ...

    def write_blob(self, data: bytes) -> str:
        ...

    def write_tree(self, entries: list[TreeEntry]) -> str:
        """Store a tree from a flat, full-path listing and return its id."""
        ...

    def write_commit(self, request: CommitRequest) -> str:
        ...

    def compare_and_swap_ref(
        self, name: str, expected_old: str | None, new: str
    ) -> bool:
        """Point ``name`` at ``new`` only if it currently equals ``expected_old``.

        ``expected_old`` of None means the ref must not exist yet.  Returns
        False when the ref moved underneath the caller.
        """
        ...


def read_file_at(
    backend: VersionControlBackend, commit_id: str, path: str
) -> bytes | None:
    """Return the bytes of the blob at ``path`` in a commit, or None if absent."""
    commit = backend.read_commit(commit_id)
    for entry in backend.read_tree(commit.tree):
        if entry.path == path and entry.type == "blob":
            return backend.read_blob(entry.id)
    return None
