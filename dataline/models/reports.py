"""Audit report models produced by the validator."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ArtifactCheck(BaseModel):
    """Hash comparison for one artifact of a data commit."""

    model_config = ConfigDict(frozen=True)

    name: str
    recorded_hash: str  # snapshot_hash stored in metadata
    source_hash: str  # recomputed from the original source commit
    staged_hash: str  # recomputed from the data commit's artifacts/ tree

    @property
    def ok(self) -> bool:
        return self.source_hash == self.staged_hash == self.recorded_hash


class ValidationReport(BaseModel):
    """Result of validating a data commit against its source origin."""

    model_config = ConfigDict(frozen=True)

    data_commit: str
    original_commit_sha: str
    checks: list[ArtifactCheck] = []

    @property
    def valid(self) -> bool:
        return all(check.ok for check in self.checks)

    @property
    def failed(self) -> list[str]:
        return [check.name for check in self.checks if not check.ok]
