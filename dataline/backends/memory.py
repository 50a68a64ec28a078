"""In-process, content-addressed object store.

Object ids are computed the way git frames loose objects, so blob ids match
``git hash-object`` exactly; trees and commits are hashed over a canonical
JSON serialization.  Storing the same content twice is a no-op.  There is no
delete.
"""

from __future__ import annotations

import logging
import threading

from dataline.backends.base import BackendReadError, BackendWriteError
from dataline.core.hasher import canonical_json_bytes, git_object_id
from dataline.models.backend import CommitInfo, CommitRequest, TreeEntry

logger = logging.getLogger(__name__)


class MemoryBackend:
    """Dictionary-backed ``VersionControlBackend``.

    Safe to share between threads: object writes are idempotent and ref
    updates happen under a lock, so ``compare_and_swap_ref`` is atomic.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._trees: dict[str, list[TreeEntry]] = {}
        self._commits: dict[str, CommitInfo] = {}
        self._refs: dict[str, str] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def resolve_ref(self, name: str) -> str | None:
        with self._lock:
            return self._refs.get(name)

    def set_ref(self, name: str, target: str) -> None:
        """Unconditionally point a ref at an object (history building only)."""
        with self._lock:
            self._refs[name] = target

    def compare_and_swap_ref(
        self, name: str, expected_old: str | None, new: str
    ) -> bool:
        if new not in self._commits:
            raise BackendWriteError(f"Cannot point {name} at unknown commit {new}")
        with self._lock:
            current = self._refs.get(name)
            if current != expected_old:
                logger.debug(
                    "Ref %s compare-and-swap rejected: expected %s, found %s",
                    name,
                    expected_old,
                    current,
                )
                return False
            self._refs[name] = new
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_commit(self, commit_id: str) -> CommitInfo:
        try:
            return self._commits[commit_id]
        except KeyError:
            raise BackendReadError(f"Commit not found: {commit_id}") from None

    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        try:
            return list(self._trees[tree_id])
        except KeyError:
            raise BackendReadError(f"Tree not found: {tree_id}") from None

    def read_blob(self, blob_id: str) -> bytes:
        try:
            return self._blobs[blob_id]
        except KeyError:
            raise BackendReadError(f"Blob not found: {blob_id}") from None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def hash_blob(self, data: bytes) -> str:
        return git_object_id("blob", data)

    def write_blob(self, data: bytes) -> str:
        blob_id = self.hash_blob(data)
        self._blobs.setdefault(blob_id, bytes(data))
        return blob_id

    def write_tree(self, entries: list[TreeEntry]) -> str:
        normalized: dict[str, TreeEntry] = {}
        for entry in entries:
            if entry.type == "tree":
                raise BackendWriteError(
                    f"Flat tree listings carry no tree entries: {entry.path}"
                )
            if entry.type == "blob" and entry.id not in self._blobs:
                raise BackendWriteError(
                    f"Tree entry {entry.path} references unknown blob {entry.id}"
                )
            if entry.path in normalized:
                raise BackendWriteError(f"Duplicate tree path: {entry.path}")
            size = len(self._blobs[entry.id]) if entry.type == "blob" else None
            normalized[entry.path] = entry.model_copy(update={"size": size})

        listing = [normalized[path] for path in sorted(normalized)]
        payload = canonical_json_bytes(
            [[e.path, e.mode, e.type, e.id] for e in listing]
        )
        tree_id = git_object_id("tree", payload)
        self._trees.setdefault(tree_id, listing)
        return tree_id

    def write_commit(self, request: CommitRequest) -> str:
        if request.tree not in self._trees:
            raise BackendWriteError(f"Commit references unknown tree {request.tree}")
        for parent in request.parents:
            if parent not in self._commits:
                raise BackendWriteError(f"Commit references unknown parent {parent}")
        payload = canonical_json_bytes(
            {
                "tree": request.tree,
                "parents": list(request.parents),
                "author": request.author.format(),
                "committer": request.committer.format(),
                "message": request.message,
            }
        )
        commit_id = git_object_id("commit", payload)
        self._commits.setdefault(
            commit_id,
            CommitInfo(
                id=commit_id,
                tree=request.tree,
                parents=list(request.parents),
                message=request.message,
            ),
        )
        return commit_id

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def object_count(self) -> int:
        """Total number of stored objects of every kind."""
        return len(self._blobs) + len(self._trees) + len(self._commits)

    def commit_count(self) -> int:
        return len(self._commits)
