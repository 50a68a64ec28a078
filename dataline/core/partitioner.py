"""Artifact partitioning: resolve a commit into named file-set specs.

The manifest is optional.  Without one, a commit projects as a single
``default`` artifact covering the whole tree.
"""

from __future__ import annotations

import logging

import yaml
from pydantic import ValidationError

from dataline.backends.base import VersionControlBackend, read_file_at
from dataline.models.manifest import ArtifactManifest, ArtifactSpec

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_NAME = "default"
DEFAULT_MANIFEST_PATH = ".artifacts.yaml"


class ManifestParseError(RuntimeError):
    """Raised when a manifest is malformed or declares conflicting artifacts."""


def _check_artifact_name(name: str) -> None:
    if "/" in name or "\\" in name or name in (".", "..") or name != name.strip():
        raise ManifestParseError(
            f"Artifact name {name!r} must be a single, non-relative path segment"
        )


def parse_manifest(text: str | bytes, *, source: str = DEFAULT_MANIFEST_PATH) -> list[ArtifactSpec]:
    """Parse manifest text into artifact specs in declaration order.

    Raises
    ------
    ManifestParseError
        On YAML syntax errors, a wrong document shape, invalid or duplicate
        artifact names.  Overlapping file coverage between artifacts is
        allowed.
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestParseError(f"{source}: invalid YAML: {exc}") from exc

    try:
        manifest = ArtifactManifest.model_validate(document)
    except ValidationError as exc:
        raise ManifestParseError(f"{source}: {exc}") from exc

    specs: list[ArtifactSpec] = []
    seen: set[str] = set()
    for entry in manifest.artifacts:
        _check_artifact_name(entry.name)
        if entry.name in seen:
            raise ManifestParseError(f"{source}: duplicate artifact name {entry.name!r}")
        seen.add(entry.name)
        specs.append(ArtifactSpec(name=entry.name, selectors=list(entry.files)))
    return specs


def partition(
    backend: VersionControlBackend,
    commit_id: str,
    manifest_path: str = DEFAULT_MANIFEST_PATH,
) -> list[ArtifactSpec]:
    """Resolve the artifacts a source commit projects into.

    A missing manifest is not an error: it yields one ``default`` artifact
    selecting the whole tree.
    """
    raw = read_file_at(backend, commit_id, manifest_path)
    if raw is None:
        logger.debug("No manifest at %s in %s; using default artifact", manifest_path, commit_id)
        return [ArtifactSpec(name=DEFAULT_ARTIFACT_NAME, selectors=None)]

    specs = parse_manifest(raw, source=f"{commit_id}:{manifest_path}")
    logger.debug(
        "Manifest in %s declares %d artifact(s): %s",
        commit_id,
        len(specs),
        ", ".join(spec.name for spec in specs),
    )
    return specs
