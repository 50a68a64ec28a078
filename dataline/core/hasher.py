"""Canonical hashing helpers for snapshots, metadata, and object identity.

Every hash the data line depends on is computed here so that two machines
with the same content always agree byte-for-byte.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

from dataline.models.backend import TreeEntry


def canonical_json_bytes(obj: Any) -> bytes:
    """Compact, key-sorted, ASCII-only JSON; used for object ids in the memory store."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def pretty_json_bytes(obj: Any) -> bytes:
    """Human-readable but still deterministic JSON, newline terminated."""
    return (
        json.dumps(obj, sort_keys=True, indent=2, ensure_ascii=True) + "\n"
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def git_object_id(kind: str, payload: bytes, algorithm: str = "sha1") -> str:
    """Object id in git's loose-object framing: ``<kind> <len>\\0<payload>``.

    ``algorithm`` is the repository's object format, ``sha1`` or ``sha256``.
    """
    header = f"{kind} {len(payload)}\0".encode("ascii")
    return hashlib.new(algorithm, header + payload).hexdigest()


def snapshot_listing(entries: Iterable[TreeEntry]) -> str:
    """Build the canonical listing text for a set of blob entries.

    One ``"<mode> <content_id> <path>"`` line per blob, sorted by path
    regardless of the order the entries arrive in, each line newline
    terminated.  An empty selection yields the empty string.
    """
    lines = sorted(
        (entry.path, f"{entry.mode} {entry.id} {entry.path}")
        for entry in entries
        if entry.type == "blob"
    )
    if not lines:
        return ""
    return "\n".join(line for _, line in lines) + "\n"


def snapshot_hash(entries: Iterable[TreeEntry]) -> str:
    """SHA-256 of the canonical listing of ``entries``.

    Paths carrying surrogate escapes hash as their original bytes.
    """
    return sha256_hex(snapshot_listing(entries).encode("utf-8", "surrogateescape"))
