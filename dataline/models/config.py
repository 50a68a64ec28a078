"""Projection configuration models.

A ``ProjectionConfig`` is passed explicitly into every component that writes
to or reads from the data line.  Nothing in the core reads the process
environment; two machines given equal configs produce identical commits.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dataline.models.backend import Signature


class ProjectionIdentity(BaseModel):
    """Fixed author/committer identity and timestamp for data commits."""

    model_config = ConfigDict(frozen=True)

    name: str = "projection-bot"
    email: str = "projection@localhost"
    timestamp: int = 0
    timezone_offset: str = Field(default="+0000", pattern=r"^[+-]\d{4}$")

    def signature(self) -> Signature:
        return Signature(
            name=self.name,
            email=self.email,
            timestamp=self.timestamp,
            timezone_offset=self.timezone_offset,
        )


class ProjectionConfig(BaseModel):
    """Data-line layout and write identity."""

    model_config = ConfigDict(frozen=True)

    data_ref: str = "refs/heads/workspace/data"
    manifest_path: str = ".artifacts.yaml"
    metadata_path: str = "metadata.json"
    registry_path: str = ".llm-context/registry.yaml"
    artifacts_root: str = "artifacts"
    identity: ProjectionIdentity = ProjectionIdentity()
    max_retries: int = Field(default=3, ge=0)  # extra attempts after a lost ref race

    def artifact_prefix(self, name: str) -> str:
        """Tree prefix under which an artifact's files are staged."""
        return f"{self.artifacts_root}/{name}/"
