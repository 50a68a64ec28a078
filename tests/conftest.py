"""Shared test fixtures for Dataline."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from dataline.backends.base import MODE_FILE
from dataline.backends.memory import MemoryBackend
from dataline.core.projector import Projector
from dataline.models.backend import CommitRequest, Signature, TreeEntry
from dataline.models.config import ProjectionConfig

MULTI_ARTIFACT_MANIFEST = """\
artifacts:
  - name: docs
    files: [docs/]
  - name: code
    files: [src/, package.json]
"""


class SourceRepoBuilder:
    """Writes full-snapshot source commits into a backend.

    Every commit gets a distinct, deterministic author timestamp, so two
    builders replaying the same calls on two backends produce identical ids.
    """

    def __init__(self, backend) -> None:
        self.backend = backend
        self._clock = 1_700_000_000

    def tree(
        self,
        files: Mapping[str, str | bytes],
        modes: Mapping[str, str] | None = None,
    ) -> str:
        entries = []
        for path, content in sorted(files.items()):
            data = content.encode("utf-8") if isinstance(content, str) else content
            entries.append(
                TreeEntry(
                    path=path,
                    mode=(modes or {}).get(path, MODE_FILE),
                    id=self.backend.write_blob(data),
                )
            )
        return self.backend.write_tree(entries)

    def commit(
        self,
        files: Mapping[str, str | bytes],
        *,
        parents: list[str] | None = None,
        modes: Mapping[str, str] | None = None,
        message: str | None = None,
    ) -> str:
        self._clock += 60
        author = Signature(name="Dev", email="dev@example.com", timestamp=self._clock)
        return self.backend.write_commit(
            CommitRequest(
                tree=self.tree(files, modes),
                parents=list(parents or []),
                author=author,
                committer=author,
                message=message or f"source commit at {self._clock}\n",
            )
        )


@pytest.fixture
def backend() -> MemoryBackend:
    """Provide a fresh, empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def source(backend: MemoryBackend) -> SourceRepoBuilder:
    """Provide a source-history builder bound to the test backend."""
    return SourceRepoBuilder(backend)


@pytest.fixture
def config() -> ProjectionConfig:
    """Provide the default projection configuration."""
    return ProjectionConfig()


@pytest.fixture
def projector(backend: MemoryBackend, config: ProjectionConfig) -> Projector:
    """Provide a Projector over the test backend."""
    return Projector(backend, config)


@pytest.fixture
def make_builder() -> Callable[[object], SourceRepoBuilder]:
    """Factory fixture: a SourceRepoBuilder for any backend."""
    return SourceRepoBuilder


@pytest.fixture
def manifest_text() -> str:
    """Provide a two-artifact manifest: docs and code."""
    return MULTI_ARTIFACT_MANIFEST


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Provide a not-yet-existing output directory for reconstruction."""
    return tmp_path / "out"
