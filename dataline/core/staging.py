"""Compose-then-publish staging for a single projection.

A ``StagingArena`` collects the entries of the tree a projection is about to
commit.  It is owned by exactly one in-flight projection and released when
the ``with`` block exits, whatever the outcome.  Blobs written while staging
are content-addressed and inert if the projection never publishes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from dataline.backends.base import MODE_FILE, VersionControlBackend
from dataline.models.backend import TreeEntry

logger = logging.getLogger(__name__)


class StagingClosedError(RuntimeError):
    """Raised when a released staging arena is used again."""


class StagingArena:
    """Scoped work area that assembles one tree before it is published.

    Parameters
    ----------
    backend:
        Backend that receives blobs and the final tree.
    """

    def __init__(self, backend: VersionControlBackend) -> None:
        self._backend = backend
        self._entries: dict[str, TreeEntry] = {}
        self._closed = False

    def __enter__(self) -> StagingArena:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StagingClosedError("Staging arena has already been released")

    def stage_entry(self, entry: TreeEntry) -> TreeEntry:
        """Stage an existing object at ``entry.path``."""
        self._check_open()
        if entry.path in self._entries:
            raise ValueError(f"Path staged twice: {entry.path}")
        self._entries[entry.path] = entry
        return entry

    def stage_entries(self, entries: Iterable[TreeEntry], prefix: str = "") -> None:
        for entry in entries:
            self.stage_entry(entry.model_copy(update={"path": prefix + entry.path}))

    def stage_bytes(self, path: str, data: bytes, mode: str = MODE_FILE) -> TreeEntry:
        """Write ``data`` as a blob and stage it at ``path``."""
        self._check_open()
        blob_id = self._backend.write_blob(data)
        return self.stage_entry(
            TreeEntry(path=path, mode=mode, id=blob_id, type="blob", size=len(data))
        )

    def entries(self) -> list[TreeEntry]:
        return [self._entries[path] for path in sorted(self._entries)]

    def publish_tree(self) -> str:
        """Write the staged entries as a tree object and return its id."""
        self._check_open()
        tree_id = self._backend.write_tree(self.entries())
        logger.debug("Published staged tree %s (%d entries)", tree_id, len(self._entries))
        return tree_id

    def close(self) -> None:
        """Release the arena; idempotent."""
        self._entries.clear()
        self._closed = True
