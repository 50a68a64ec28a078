"""Validator: read-only audit of a data commit against its source origin.

For each artifact the validator computes three hashes and requires them to
agree: the source commit's tree over the recorded file set, the data
commit's staged ``artifacts/<name>/`` content, and the recorded
``snapshot_hash``.  Nothing is written and nothing is materialized.
"""

from __future__ import annotations

import logging

from dataline.backends.base import VersionControlBackend
from dataline.core.data_line import read_metadata
from dataline.core.hasher import snapshot_hash
from dataline.core.snapshot import compute_snapshot_hash, strip_prefix
from dataline.models.config import ProjectionConfig
from dataline.models.reports import ArtifactCheck, ValidationReport

logger = logging.getLogger(__name__)


class Validator:
    """Audit data commits; suitable as a CI gate.

    Parameters
    ----------
    backend:
        Backend holding both the source history and the data line.
    config:
        Data-line layout.  Uses defaults if not provided.
    """

    def __init__(
        self, backend: VersionControlBackend, config: ProjectionConfig | None = None
    ) -> None:
        self.backend = backend
        self.config = config or ProjectionConfig()

    def report(self, data_commit: str) -> ValidationReport:
        """Per-artifact hash comparison for ``data_commit``."""
        metadata = read_metadata(self.backend, data_commit, self.config)
        staged = self.backend.read_tree(self.backend.read_commit(data_commit).tree)

        checks: list[ArtifactCheck] = []
        for artifact in metadata.artifacts:
            recorded_paths = [record.path for record in artifact.files]
            source_hash = compute_snapshot_hash(
                self.backend, metadata.original_commit_sha, recorded_paths
            )
            staged_hash = snapshot_hash(
                strip_prefix(staged, self.config.artifact_prefix(artifact.name))
            )
            checks.append(
                ArtifactCheck(
                    name=artifact.name,
                    recorded_hash=artifact.snapshot_hash,
                    source_hash=source_hash,
                    staged_hash=staged_hash,
                )
            )

        report = ValidationReport(
            data_commit=data_commit,
            original_commit_sha=metadata.original_commit_sha,
            checks=checks,
        )
        if report.valid:
            logger.info("Data commit %s validates against %s", data_commit, metadata.original_commit_sha)
        else:
            logger.warning(
                "Data commit %s does not match %s: %s",
                data_commit,
                metadata.original_commit_sha,
                ", ".join(report.failed),
            )
        return report

    def validate(self, data_commit: str) -> bool:
        """True if every artifact of ``data_commit`` matches its source."""
        return self.report(data_commit).valid


def validate(
    backend: VersionControlBackend,
    data_commit: str,
    config: ProjectionConfig | None = None,
) -> bool:
    """True if ``data_commit``'s staged content hash-matches its source commit."""
    return Validator(backend, config).validate(data_commit)
