"""Projection engine: hashing, partitioning, registry, projection, and its inverses."""

from dataline.backends.base import BackendReadError, BackendWriteError
from dataline.core.partitioner import ManifestParseError, partition
from dataline.core.projector import (
    ConcurrentProjectionConflict,
    IntegrityError,
    ProjectionCancelled,
    Projector,
    project,
)
from dataline.core.reconstructor import ArtifactNotFoundError, Reconstructor, reconstruct
from dataline.core.snapshot import compute_snapshot_hash
from dataline.core.validator import Validator, validate

__all__ = [
    "ArtifactNotFoundError",
    "BackendReadError",
    "BackendWriteError",
    "ConcurrentProjectionConflict",
    "IntegrityError",
    "ManifestParseError",
    "ProjectionCancelled",
    "Projector",
    "Reconstructor",
    "Validator",
    "compute_snapshot_hash",
    "partition",
    "project",
    "reconstruct",
    "validate",
]
