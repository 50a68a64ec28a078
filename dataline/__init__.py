"""Dataline: a verifiable, append-only data line projected from source history.

Each source commit is projected at most once into a data commit that carries
named artifacts, their canonical snapshot hashes, and a per-artifact
registry.  Data commits can be reconstructed into plain file trees and
audited against their source at any time.
"""

__version__ = "0.1.0"

from dataline.backends import GitBackend, MemoryBackend
from dataline.core import Projector, Reconstructor, Validator, project, reconstruct, validate
from dataline.models import ProjectionConfig, ProjectionIdentity

__all__ = [
    "GitBackend",
    "MemoryBackend",
    "ProjectionConfig",
    "ProjectionIdentity",
    "Projector",
    "Reconstructor",
    "Validator",
    "project",
    "reconstruct",
    "validate",
    "__version__",
]
