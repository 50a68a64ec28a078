"""Artifact manifest models.

The manifest is an optional YAML document in the source tree::

    artifacts:
      - name: docs
        files: [docs/]
      - name: code
        files: [src/, package.json]
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ManifestEntry(BaseModel):
    """One declared artifact as written in the manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    files: list[str] = Field(min_length=1)


class ArtifactManifest(BaseModel):
    """The whole manifest document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifacts: list[ManifestEntry] = Field(min_length=1)


class ArtifactSpec(BaseModel):
    """A resolved artifact: its name and the path selectors it covers.

    ``selectors`` of None selects the whole tree.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    selectors: list[str] | None = None
