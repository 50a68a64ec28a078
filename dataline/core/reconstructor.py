"""Reconstructor: materialize a data commit's artifacts as a plain file tree.

The output directory is cleared, every selected blob is written with its
recorded mode, and the materialized files are hashed again.  The result is
trusted only if that hash equals the ``snapshot_hash`` stored in metadata.

Output layout:
- one named artifact: its files directly under the output directory
- all artifacts: each under ``<output>/<artifact name>/``
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

from dataline.backends.base import (
    MODE_EXECUTABLE,
    MODE_FILE,
    MODE_SYMLINK,
    VersionControlBackend,
)
from dataline.core.data_line import read_metadata
from dataline.core.hasher import snapshot_hash
from dataline.core.snapshot import strip_prefix
from dataline.models.backend import TreeEntry
from dataline.models.config import ProjectionConfig
from dataline.models.projection import ArtifactMetadata

logger = logging.getLogger(__name__)


class ArtifactNotFoundError(RuntimeError):
    """Raised when a requested artifact is absent from a data commit's metadata."""


def _safe_target(root: Path, relative: str) -> Path:
    parts = relative.split("/")
    if not relative or relative.startswith("/") or any(p in ("", ".", "..") for p in parts):
        raise ValueError(f"Refusing to materialize unsafe path {relative!r}")
    return root.joinpath(*parts)


def hash_directory(backend: VersionControlBackend, root: Path) -> str:
    """Snapshot hash of the files under ``root`` as they sit on disk.

    Content ids are computed with the backend's own blob hashing; modes are
    derived from the file type and the owner-executable bit.
    """
    entries: list[TreeEntry] = []
    for path in sorted(root.rglob("*")):
        if path.is_symlink():
            mode = MODE_SYMLINK
            data = os.readlink(path).encode("utf-8", "surrogateescape")
        elif path.is_file():
            mode = MODE_EXECUTABLE if path.stat().st_mode & stat.S_IXUSR else MODE_FILE
            data = path.read_bytes()
        else:
            continue
        entries.append(
            TreeEntry(
                path=path.relative_to(root).as_posix(),
                mode=mode,
                id=backend.hash_blob(data),
                size=len(data),
            )
        )
    return snapshot_hash(entries)


class Reconstructor:
    """Inverse of the projector.

    Parameters
    ----------
    backend:
        Backend holding the data line.
    config:
        Data-line layout.  Uses defaults if not provided.
    """

    def __init__(
        self, backend: VersionControlBackend, config: ProjectionConfig | None = None
    ) -> None:
        self.backend = backend
        self.config = config or ProjectionConfig()

    def reconstruct(
        self,
        data_commit: str,
        output_dir: Path,
        artifact_name: str | None = None,
    ) -> bool:
        """Rebuild artifacts of ``data_commit`` under ``output_dir``.

        Returns True only if every reconstructed artifact re-hashes to its
        recorded ``snapshot_hash``.

        Raises
        ------
        ArtifactNotFoundError
            If ``artifact_name`` is not in the commit's metadata.
        """
        output_dir = Path(output_dir)
        metadata = read_metadata(self.backend, data_commit, self.config)

        if artifact_name is not None:
            artifact = metadata.artifact(artifact_name)
            if artifact is None:
                raise ArtifactNotFoundError(
                    f"Artifact {artifact_name!r} not found in data commit {data_commit}; "
                    f"available: {', '.join(metadata.artifact_names) or '(none)'}"
                )
            targets = [(artifact, output_dir)]
        else:
            targets = [(a, output_dir / a.name) for a in metadata.artifacts]

        if output_dir.exists() or output_dir.is_symlink():
            if output_dir.is_dir() and not output_dir.is_symlink():
                shutil.rmtree(output_dir)
            else:
                output_dir.unlink()
        output_dir.mkdir(parents=True)

        tree = self.backend.read_commit(data_commit).tree
        staged = self.backend.read_tree(tree)

        results = [
            self._materialize(artifact, root, staged, data_commit)
            for artifact, root in targets
        ]
        return all(results)

    def _materialize(
        self,
        artifact: ArtifactMetadata,
        root: Path,
        staged: list[TreeEntry],
        data_commit: str,
    ) -> bool:
        root.mkdir(parents=True, exist_ok=True)
        entries = strip_prefix(staged, self.config.artifact_prefix(artifact.name))
        for entry in entries:
            if entry.type != "blob":
                continue
            target = _safe_target(root, entry.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            data = self.backend.read_blob(entry.id)
            if entry.mode == MODE_SYMLINK:
                os.symlink(data.decode("utf-8", "surrogateescape"), target)
                continue
            target.write_bytes(data)
            target.chmod(0o755 if entry.mode == MODE_EXECUTABLE else 0o644)

        actual = hash_directory(self.backend, root)
        matched = actual == artifact.snapshot_hash
        if matched:
            logger.info(
                "Reconstructed artifact %s of %s into %s (%d file(s))",
                artifact.name,
                data_commit,
                root,
                len(entries),
            )
        else:
            logger.warning(
                "Reconstructed artifact %s of %s hashes to %s, expected %s",
                artifact.name,
                data_commit,
                actual,
                artifact.snapshot_hash,
            )
        return matched


def reconstruct(
    backend: VersionControlBackend,
    data_commit: str,
    output_dir: Path,
    artifact_name: str | None = None,
    config: ProjectionConfig | None = None,
) -> bool:
    """Rebuild a data commit's artifacts under ``output_dir``; True if they verify."""
    return Reconstructor(backend, config).reconstruct(data_commit, output_dir, artifact_name)
