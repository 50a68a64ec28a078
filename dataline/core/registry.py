"""Registry tracker: append-only, per-artifact pointer log.

Each data commit carries the registry as it stood *before* that commit:
its parent's registry with the parent's own artifacts appended.  Readers can
therefore walk the data line without re-deriving history, and a commit never
refers to itself.

Design:
- ``update_registry`` is pure; the input registry is never modified.
- ``history`` only grows, and ``latest`` is always its newest entry.
"""

from __future__ import annotations

from collections.abc import Iterable

import yaml
from pydantic import ValidationError

from dataline.backends.base import BackendReadError, VersionControlBackend, read_file_at
from dataline.models.registry import Registry, RegistryEntry

DEFAULT_REGISTRY_PATH = ".llm-context/registry.yaml"


def update_registry(
    registry: Registry, artifact_names: Iterable[str], new_data_commit: str
) -> Registry:
    """Return a new registry with ``new_data_commit`` appended for each name.

    Names not in ``artifact_names`` are carried over untouched.
    """
    entries = dict(registry.entries)
    for name in artifact_names:
        previous = entries.get(name)
        history = list(previous.history) if previous else []
        history.append(new_data_commit)
        entries[name] = RegistryEntry(latest=new_data_commit, history=history)
    return Registry(entries=entries)


def serialize_registry(registry: Registry) -> bytes:
    """Deterministic YAML encoding of the registry mapping."""
    return yaml.safe_dump(
        registry.to_mapping(), sort_keys=True, default_flow_style=False
    ).encode("utf-8")


def parse_registry(raw: bytes, *, source: str = DEFAULT_REGISTRY_PATH) -> Registry:
    try:
        mapping = yaml.safe_load(raw) or {}
        return Registry.from_mapping(mapping)
    except (yaml.YAMLError, ValidationError, AttributeError) as exc:
        raise BackendReadError(f"Malformed registry object {source}: {exc}") from exc


def read_registry(
    backend: VersionControlBackend,
    data_commit: str | None,
    registry_path: str = DEFAULT_REGISTRY_PATH,
) -> Registry:
    """Read the registry stored in a data commit.

    Returns an empty registry when ``data_commit`` is None or the commit
    carries no registry object yet.
    """
    if data_commit is None:
        return Registry()
    raw = read_file_at(backend, data_commit, registry_path)
    if raw is None:
        return Registry()
    return parse_registry(raw, source=f"{data_commit}:{registry_path}")
