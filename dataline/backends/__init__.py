"""Version-control backends for the data line."""

from dataline.backends.base import (
    MODE_EXECUTABLE,
    MODE_FILE,
    MODE_GITLINK,
    MODE_SYMLINK,
    MODE_TREE,
    BackendReadError,
    BackendWriteError,
    VersionControlBackend,
    read_file_at,
)
from dataline.backends.git import GitBackend
from dataline.backends.memory import MemoryBackend

__all__ = [
    "MODE_EXECUTABLE",
    "MODE_FILE",
    "MODE_GITLINK",
    "MODE_SYMLINK",
    "MODE_TREE",
    "BackendReadError",
    "BackendWriteError",
    "GitBackend",
    "MemoryBackend",
    "VersionControlBackend",
    "read_file_at",
]
