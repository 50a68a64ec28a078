"""Snapshot hashing: a canonical fingerprint for a file set in a commit.

Selectors use directory-prefix matching: ``docs/`` (or ``docs``) selects
``docs`` itself and everything below it, ``README.md`` selects that file.
``""`` and ``"."`` select the whole tree.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from dataline.backends.base import BackendReadError, VersionControlBackend
from dataline.core.hasher import snapshot_hash
from dataline.models.backend import TreeEntry


def normalize_selector(selector: str) -> str:
    """Strip ``./`` prefixes and trailing slashes; the whole tree becomes ``""``."""
    value = selector.strip()
    while value.startswith("./"):
        value = value[2:]
    value = value.strip("/")
    return "" if value == "." else value


def matches_selector(path: str, selector: str) -> bool:
    """True if ``path`` equals the selector or sits beneath it."""
    prefix = normalize_selector(selector)
    return not prefix or path == prefix or path.startswith(prefix + "/")


def select_entries(
    entries: Iterable[TreeEntry], selectors: Sequence[str] | None
) -> list[TreeEntry]:
    """Restrict ``entries`` to blobs matched by ``selectors``.

    ``None`` selects every blob; an empty sequence selects nothing.  A
    selector that matches no blob at all is a missing path and raises
    ``BackendReadError``.
    """
    blobs = [entry for entry in entries if entry.type == "blob"]
    if selectors is None:
        return blobs

    selected: list[TreeEntry] = []
    matched: set[str] = set()
    for entry in blobs:
        hits = [s for s in selectors if matches_selector(entry.path, s)]
        if hits:
            selected.append(entry)
            matched.update(hits)

    missing = [s for s in selectors if s not in matched]
    if missing:
        raise BackendReadError(f"Selected paths not found: {', '.join(missing)}")
    return selected


def list_commit_files(
    backend: VersionControlBackend,
    commit_id: str,
    selectors: Sequence[str] | None = None,
) -> list[TreeEntry]:
    """Blob entries of a commit's tree restricted to ``selectors``."""
    commit = backend.read_commit(commit_id)
    return select_entries(backend.read_tree(commit.tree), selectors)


def compute_snapshot_hash(
    backend: VersionControlBackend,
    commit_id: str,
    selectors: Sequence[str] | None = None,
) -> str:
    """Canonical SHA-256 over the selected blobs of ``commit_id``.

    The listing is re-sorted by path before hashing, so the result never
    depends on the order the backend returns entries in.
    """
    return snapshot_hash(list_commit_files(backend, commit_id, selectors))


def strip_prefix(entries: Iterable[TreeEntry], prefix: str) -> list[TreeEntry]:
    """Entries under ``prefix`` with the prefix removed from their paths."""
    return [
        entry.model_copy(update={"path": entry.path[len(prefix):]})
        for entry in entries
        if entry.path.startswith(prefix)
    ]
