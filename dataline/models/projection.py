"""Projection metadata models: the record written into every data commit.

Field names are part of the on-disk format and must stay stable.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FileRecord(BaseModel):
    """A single projected file, recorded under its full source path."""

    model_config = ConfigDict(frozen=True)

    path: str
    content_id: str
    mode: str
    size: int


class ArtifactMetadata(BaseModel):
    """Integrity metadata for one named artifact inside a data commit."""

    model_config = ConfigDict(frozen=True)

    name: str
    original_commit_sha: str
    snapshot_hash: str  # SHA-256 over the canonical (mode, content_id, path) listing
    files: list[FileRecord] = []


class ProjectionMetadata(BaseModel):
    """The metadata object stored at a fixed path in each data commit."""

    model_config = ConfigDict(frozen=True)

    original_commit_sha: str
    parent_data_commit_oid: str | None = None
    source_parent_shas: list[str] = []
    artifacts: list[ArtifactMetadata] = []

    @property
    def artifact_names(self) -> list[str]:
        return [artifact.name for artifact in self.artifacts]

    def artifact(self, name: str) -> ArtifactMetadata | None:
        """Return the named artifact, or None if this commit does not carry it."""
        for artifact in self.artifacts:
            if artifact.name == name:
                return artifact
        return None


class DataCommit(BaseModel):
    """A commit on the data line together with its decoded metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    tree: str
    parent: str | None = None
    metadata: ProjectionMetadata


class ProjectionState(str, Enum):
    """States of a single projection attempt, in the order they are entered."""

    START = "start"
    RESOLVE_PARENT = "resolve_parent"
    IDEMPOTENCY_CHECK = "idempotency_check"
    PARTITION = "partition"
    HASH_AND_STAGE = "hash_and_stage"
    COMMIT = "commit"
    UPDATE_REF = "update_ref"
    VALIDATE = "validate"
    DONE = "done"


class ProjectionOutcome(BaseModel):
    """What a call to the projector did."""

    model_config = ConfigDict(frozen=True)

    source_commit: str
    data_commit: str
    parent_data_commit: str | None = None
    created: bool  # False when the source commit was already projected
    attempts: int = 1
    artifacts: list[str] = []
    states: list[ProjectionState] = []
