"""Artifact registry model: append-only pointer/history log per artifact.

The registry is carried forward through the data line: every data commit
stores the registry as it stood *before* that commit.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator


class RegistryEntry(BaseModel):
    """Pointer to the newest data commit for an artifact plus its history."""

    model_config = ConfigDict(frozen=True)

    latest: str
    history: list[str]

    @model_validator(mode="after")
    def _latest_is_newest(self) -> RegistryEntry:
        if not self.history or self.history[-1] != self.latest:
            raise ValueError("registry 'latest' must equal the newest 'history' entry")
        return self


class Registry(BaseModel):
    """Mapping of artifact name to its registry entry."""

    model_config = ConfigDict(frozen=True)

    entries: dict[str, RegistryEntry] = {}

    def get(self, name: str) -> RegistryEntry | None:
        return self.entries.get(name)

    def names(self) -> list[str]:
        return sorted(self.entries)

    def to_mapping(self) -> dict[str, dict[str, object]]:
        """Plain mapping in the persisted shape: ``{name: {latest, history}}``."""
        return {
            name: {"latest": entry.latest, "history": list(entry.history)}
            for name, entry in sorted(self.entries.items())
        }

    @classmethod
    def from_mapping(cls, mapping: dict[str, dict[str, object]]) -> Registry:
        return cls(
            entries={name: RegistryEntry.model_validate(value) for name, value in mapping.items()}
        )
