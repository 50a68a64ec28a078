"""Reading the data line: metadata, backward walks, and the projection index.

The data line is linear, so walking it is a matter of following the single
parent of each data commit from the head back to the root.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator

from pydantic import ValidationError

from dataline.backends.base import BackendReadError, VersionControlBackend, read_file_at
from dataline.core.registry import read_registry, update_registry
from dataline.models.config import ProjectionConfig
from dataline.models.projection import DataCommit, ProjectionMetadata
from dataline.models.registry import Registry

logger = logging.getLogger(__name__)


def parse_metadata(raw: bytes, *, source: str) -> ProjectionMetadata:
    try:
        return ProjectionMetadata.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise BackendReadError(f"Malformed metadata object {source}: {exc}") from exc


def load_data_commit(
    backend: VersionControlBackend, data_commit: str, config: ProjectionConfig
) -> DataCommit:
    """Read a data commit and decode its metadata object."""
    commit = backend.read_commit(data_commit)
    raw = read_file_at(backend, data_commit, config.metadata_path)
    if raw is None:
        raise BackendReadError(
            f"Data commit {data_commit} has no metadata at {config.metadata_path}"
        )
    return DataCommit(
        id=commit.id,
        tree=commit.tree,
        parent=commit.parents[0] if commit.parents else None,
        metadata=parse_metadata(raw, source=f"{data_commit}:{config.metadata_path}"),
    )


def read_metadata(
    backend: VersionControlBackend, data_commit: str, config: ProjectionConfig
) -> ProjectionMetadata:
    return load_data_commit(backend, data_commit, config).metadata


def iter_data_line(
    backend: VersionControlBackend, head: str | None, config: ProjectionConfig
) -> Iterator[DataCommit]:
    """Yield data commits from ``head`` back to the root, newest first."""
    current = head
    while current is not None:
        data_commit = load_data_commit(backend, current, config)
        yield data_commit
        current = data_commit.parent


def find_projection(
    backend: VersionControlBackend,
    head: str | None,
    source_commit: str,
    config: ProjectionConfig,
) -> str | None:
    """Scan backward from ``head`` for the data commit that projected ``source_commit``."""
    for data_commit in iter_data_line(backend, head, config):
        if data_commit.metadata.original_commit_sha == source_commit:
            return data_commit.id
    return None


def registry_as_of(
    backend: VersionControlBackend, data_commit: str, config: ProjectionConfig
) -> Registry:
    """Registry including ``data_commit``'s own artifacts.

    The stored registry excludes the commit that carries it; this is the
    view a reader wants when treating ``data_commit`` as the newest state.
    """
    stored = read_registry(backend, data_commit, config.registry_path)
    metadata = read_metadata(backend, data_commit, config)
    return update_registry(stored, metadata.artifact_names, data_commit)


class ProjectionIndex:
    """Side index ``original_commit_sha -> data commit id`` for one data line.

    Purely a cache: it is rebuilt from stored metadata by walking the line,
    and refreshing it against a new head only reads the commits that are
    not already indexed.

    Parameters
    ----------
    backend:
        Backend holding the data line.
    config:
        Where the metadata object lives in each data commit.
    """

    def __init__(self, backend: VersionControlBackend, config: ProjectionConfig) -> None:
        self._backend = backend
        self._config = config
        self._lock = threading.Lock()
        self._head: str | None = None
        # Newest first: (data commit id, original commit sha)
        self._chain: list[tuple[str, str]] = []
        self._positions: dict[str, int] = {}
        self._by_source: dict[str, str] = {}

    @property
    def head(self) -> str | None:
        return self._head

    def refresh(self, head: str | None) -> None:
        """Re-align the index with the data line ending at ``head``."""
        with self._lock:
            self._refresh_locked(head)

    def _refresh_locked(self, head: str | None) -> None:
        if head == self._head:
            return
        collected: list[tuple[str, str]] = []
        current = head
        while current is not None and current not in self._positions:
            data_commit = load_data_commit(self._backend, current, self._config)
            collected.append((data_commit.id, data_commit.metadata.original_commit_sha))
            current = data_commit.parent

        tail = self._chain[self._positions[current]:] if current is not None else []
        chain = collected + tail
        self._chain = chain
        self._positions = {data_id: i for i, (data_id, _) in enumerate(chain)}
        # Oldest first so the newest projection of a source wins.
        self._by_source = {source: data_id for data_id, source in reversed(chain)}
        self._head = head
        logger.debug(
            "Projection index at %s: %d data commit(s), %d newly read",
            head,
            len(chain),
            len(collected),
        )

    def lookup(self, head: str | None, source_commit: str) -> str | None:
        """Data commit on the line ending at ``head`` that projected ``source_commit``."""
        with self._lock:
            self._refresh_locked(head)
            return self._by_source.get(source_commit)

    def __len__(self) -> int:
        return len(self._chain)
