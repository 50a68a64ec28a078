"""Dataline data models (Pydantic v2, frozen)."""

from dataline.models.backend import CommitInfo, CommitRequest, Signature, TreeEntry
from dataline.models.config import ProjectionConfig, ProjectionIdentity
from dataline.models.manifest import ArtifactManifest, ArtifactSpec, ManifestEntry
from dataline.models.projection import (
    ArtifactMetadata,
    DataCommit,
    FileRecord,
    ProjectionMetadata,
    ProjectionOutcome,
    ProjectionState,
)
from dataline.models.registry import Registry, RegistryEntry
from dataline.models.reports import ArtifactCheck, ValidationReport

__all__ = [
    # backend
    "CommitInfo",
    "CommitRequest",
    "Signature",
    "TreeEntry",
    # config
    "ProjectionConfig",
    "ProjectionIdentity",
    # manifest
    "ArtifactManifest",
    "ArtifactSpec",
    "ManifestEntry",
    # projection
    "ArtifactMetadata",
    "DataCommit",
    "FileRecord",
    "ProjectionMetadata",
    "ProjectionOutcome",
    "ProjectionState",
    # registry
    "Registry",
    "RegistryEntry",
    # reports
    "ArtifactCheck",
    "ValidationReport",
]
