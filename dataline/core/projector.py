"""Projector: the central state machine of the data line.

One call projects one source commit into at most one new data commit:

    START -> RESOLVE_PARENT -> IDEMPOTENCY_CHECK -> PARTITION
          -> HASH_AND_STAGE -> COMMIT -> UPDATE_REF -> VALIDATE -> DONE

Enforces:
- Exactly-once projection per source commit on the data line (an already
  projected commit short-circuits at IDEMPOTENCY_CHECK)
- A linear data line: every data commit has at most one data parent, and a
  merge attaches to the projection of its first source parent
- Byte-identical commits for identical content (fixed identity, canonical
  metadata, no wall clock)
- The head ref is the only shared mutation, advanced by compare-and-swap
"""

from __future__ import annotations

import logging
import threading

from dataline.backends.base import VersionControlBackend
from dataline.core.data_line import ProjectionIndex, read_metadata
from dataline.core.hasher import pretty_json_bytes, snapshot_hash
from dataline.core.partitioner import partition
from dataline.core.registry import read_registry, serialize_registry, update_registry
from dataline.core.snapshot import select_entries, strip_prefix
from dataline.core.staging import StagingArena
from dataline.models.backend import CommitInfo, CommitRequest, TreeEntry
from dataline.models.config import ProjectionConfig
from dataline.models.manifest import ArtifactSpec
from dataline.models.projection import (
    ArtifactMetadata,
    FileRecord,
    ProjectionMetadata,
    ProjectionOutcome,
    ProjectionState,
)
from dataline.models.registry import Registry

logger = logging.getLogger(__name__)


class ConcurrentProjectionConflict(RuntimeError):
    """Raised when the data ref moved between reading it and updating it.

    Recoverable: retry the whole projection, since both the correct parent
    and the idempotency outcome may have changed.
    """

    def __init__(self, ref: str, expected_head: str | None, actual_head: str | None) -> None:
        super().__init__(
            f"Data ref {ref} moved during projection: "
            f"expected {expected_head or '(unset)'}, found {actual_head or '(unset)'}"
        )
        self.ref = ref
        self.expected_head = expected_head
        self.actual_head = actual_head


class IntegrityError(RuntimeError):
    """Raised when a written data commit does not hash to its own metadata.

    Fatal.  The offending commit stays on the data line as evidence and must
    be treated as untrusted.
    """

    def __init__(self, data_commit: str, artifact: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Data commit {data_commit} is untrusted: artifact {artifact!r} "
            f"hashes to {actual}, metadata records {expected}"
        )
        self.data_commit = data_commit
        self.artifact = artifact
        self.expected = expected
        self.actual = actual


class ProjectionCancelled(RuntimeError):
    """Raised when the caller cancels a projection before the ref update."""


class Projector:
    """Projects source commits onto the data line.

    A Projector instance keeps a ``ProjectionIndex`` cache and may be reused
    across calls.  Separate instances (or processes) may project concurrently
    against the same backend; losers of the ref race retry.

    Parameters
    ----------
    backend:
        Backend holding both the source history and the data line.
    config:
        Data-line layout and fixed write identity.  Uses defaults if not
        provided.
    index:
        Shared projection index.  A private one is created if not provided.
    """

    def __init__(
        self,
        backend: VersionControlBackend,
        config: ProjectionConfig | None = None,
        *,
        index: ProjectionIndex | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or ProjectionConfig()
        self.index = index or ProjectionIndex(backend, self.config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def project(self, source_commit: str, *, cancel: threading.Event | None = None) -> str:
        """Project ``source_commit`` and return the data commit id."""
        return self.project_outcome(source_commit, cancel=cancel).data_commit

    def project_outcome(
        self, source_commit: str, *, cancel: threading.Event | None = None
    ) -> ProjectionOutcome:
        """Project with the compare-and-swap retry loop.

        Up to ``config.max_retries`` extra attempts are made after a lost
        ref race; each attempt starts over from RESOLVE_PARENT.  Every other
        error propagates unchanged.
        """
        attempt = 1
        while True:
            try:
                outcome = self.project_once(source_commit, cancel=cancel)
            except ConcurrentProjectionConflict as exc:
                if attempt > self.config.max_retries:
                    logger.error(
                        "Giving up on %s after %d attempt(s): %s", source_commit, attempt, exc
                    )
                    raise
                logger.warning(
                    "Lost data-line race projecting %s (attempt %d of %d): %s",
                    source_commit,
                    attempt,
                    self.config.max_retries + 1,
                    exc,
                )
                attempt += 1
                continue
            return outcome.model_copy(update={"attempts": attempt})

    def project_once(
        self, source_commit: str, *, cancel: threading.Event | None = None
    ) -> ProjectionOutcome:
        """A single pass through the state machine, without retrying.

        Raises
        ------
        ConcurrentProjectionConflict
            If another writer advanced the data ref first.
        ProjectionCancelled
            If ``cancel`` was set before the ref update.
        """
        states = [ProjectionState.START]

        def enter(state: ProjectionState) -> None:
            states.append(state)
            logger.debug("Projection of %s: %s", source_commit, state.value)

        self._check_cancelled(cancel, source_commit)

        enter(ProjectionState.RESOLVE_PARENT)
        head = self.backend.resolve_ref(self.config.data_ref)
        source = self.backend.read_commit(source_commit)
        parent = self._resolve_parent(source, head)

        enter(ProjectionState.IDEMPOTENCY_CHECK)
        existing = self.index.lookup(head, source_commit)
        if existing is not None:
            logger.info("Source commit %s already projected as %s", source_commit, existing)
            existing_metadata = read_metadata(self.backend, existing, self.config)
            enter(ProjectionState.DONE)
            return ProjectionOutcome(
                source_commit=source_commit,
                data_commit=existing,
                parent_data_commit=existing_metadata.parent_data_commit_oid,
                created=False,
                artifacts=existing_metadata.artifact_names,
                states=states,
            )

        enter(ProjectionState.PARTITION)
        specs = partition(self.backend, source_commit, self.config.manifest_path)

        enter(ProjectionState.HASH_AND_STAGE)
        with StagingArena(self.backend) as arena:
            source_entries = self.backend.read_tree(source.tree)
            artifacts = [
                self._stage_artifact(arena, source_commit, spec, source_entries)
                for spec in specs
            ]
            metadata = ProjectionMetadata(
                original_commit_sha=source_commit,
                parent_data_commit_oid=parent,
                source_parent_shas=list(source.parents),
                artifacts=artifacts,
            )
            arena.stage_bytes(
                self.config.metadata_path, pretty_json_bytes(metadata.model_dump(mode="json"))
            )
            arena.stage_bytes(
                self.config.registry_path, serialize_registry(self._carry_registry(parent))
            )

            enter(ProjectionState.COMMIT)
            tree = arena.publish_tree()

        identity = self.config.identity.signature()
        data_commit = self.backend.write_commit(
            CommitRequest(
                tree=tree,
                parents=[parent] if parent is not None else [],
                author=identity,
                committer=identity,
                message=f"Projection of {source_commit}\n",
            )
        )

        self._check_cancelled(cancel, source_commit)

        enter(ProjectionState.UPDATE_REF)
        if not self.backend.compare_and_swap_ref(self.config.data_ref, head, data_commit):
            raise ConcurrentProjectionConflict(
                self.config.data_ref, head, self.backend.resolve_ref(self.config.data_ref)
            )
        logger.info(
            "Projected %s as %s on %s (parent %s, %d artifact(s))",
            source_commit,
            data_commit,
            self.config.data_ref,
            parent or "none",
            len(artifacts),
        )

        enter(ProjectionState.VALIDATE)
        self._verify_written(data_commit, metadata)

        enter(ProjectionState.DONE)
        return ProjectionOutcome(
            source_commit=source_commit,
            data_commit=data_commit,
            parent_data_commit=parent,
            created=True,
            artifacts=metadata.artifact_names,
            states=states,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve_parent(self, source: CommitInfo, head: str | None) -> str | None:
        """Pick the data parent for ``source``.

        Ordinary commits extend the current head.  A merge attaches to the
        projection of its first parent, the branch that was merged into, and
        becomes a new root when that parent was never projected.
        """
        if len(source.parents) < 2:
            return head
        first_parent = source.parents[0]
        projected = self.index.lookup(head, first_parent)
        if projected is None:
            logger.warning(
                "Merge %s: first parent %s was never projected; starting a new root",
                source.id,
                first_parent,
            )
            return None
        return projected

    def _stage_artifact(
        self,
        arena: StagingArena,
        source_commit: str,
        spec: ArtifactSpec,
        source_entries: list[TreeEntry],
    ) -> ArtifactMetadata:
        entries = [
            entry
            if entry.size is not None
            else entry.model_copy(update={"size": len(self.backend.read_blob(entry.id))})
            for entry in select_entries(source_entries, spec.selectors)
        ]
        arena.stage_entries(entries, prefix=self.config.artifact_prefix(spec.name))
        return ArtifactMetadata(
            name=spec.name,
            original_commit_sha=source_commit,
            snapshot_hash=snapshot_hash(entries),
            files=[
                FileRecord(path=e.path, content_id=e.id, mode=e.mode, size=e.size or 0)
                for e in sorted(entries, key=lambda e: e.path)
            ],
        )

    def _carry_registry(self, parent: str | None) -> Registry:
        """Registry to store in the new commit: the parent's, plus the parent's artifacts."""
        if parent is None:
            return Registry()
        stored = read_registry(self.backend, parent, self.config.registry_path)
        parent_metadata = read_metadata(self.backend, parent, self.config)
        return update_registry(stored, parent_metadata.artifact_names, parent)

    def _verify_written(self, data_commit: str, metadata: ProjectionMetadata) -> None:
        """Re-read the published tree and compare every artifact hash to metadata."""
        tree = self.backend.read_commit(data_commit).tree
        entries = self.backend.read_tree(tree)
        for artifact in metadata.artifacts:
            staged = strip_prefix(entries, self.config.artifact_prefix(artifact.name))
            actual = snapshot_hash(staged)
            if actual != artifact.snapshot_hash:
                logger.error(
                    "Integrity failure in %s: artifact %s hashes to %s, expected %s",
                    data_commit,
                    artifact.name,
                    actual,
                    artifact.snapshot_hash,
                )
                raise IntegrityError(data_commit, artifact.name, artifact.snapshot_hash, actual)

    @staticmethod
    def _check_cancelled(cancel: threading.Event | None, source_commit: str) -> None:
        if cancel is not None and cancel.is_set():
            logger.info("Projection of %s cancelled before the ref update", source_commit)
            raise ProjectionCancelled(f"Projection of {source_commit} was cancelled")


def project(
    backend: VersionControlBackend,
    source_commit: str,
    config: ProjectionConfig | None = None,
    *,
    cancel: threading.Event | None = None,
) -> str:
    """Project ``source_commit`` onto the data line; returns the data commit id."""
    return Projector(backend, config).project(source_commit, cancel=cancel)
