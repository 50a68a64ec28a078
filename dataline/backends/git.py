"""Git repository backend built on plumbing commands.

All reads and writes go through ``git`` subprocesses against a single
repository.  Commit identity and dates come from the ``CommitRequest`` and
are handed to git through an explicit environment mapping; the ambient
process environment contributes nothing but ``PATH``.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from dataline.backends.base import MODE_TREE, BackendReadError, BackendWriteError
from dataline.core.hasher import git_object_id
from dataline.models.backend import CommitInfo, CommitRequest, Signature, TreeEntry

logger = logging.getLogger(__name__)

_COMMAND_TIMEOUT_SECONDS = 120


def _signature_env(role: str, signature: Signature) -> dict[str, str]:
    return {
        f"GIT_{role}_NAME": signature.name,
        f"GIT_{role}_EMAIL": signature.email,
        f"GIT_{role}_DATE": f"@{signature.timestamp} {signature.timezone_offset}",
    }


class GitBackend:
    """``VersionControlBackend`` over an on-disk git repository.

    Parameters
    ----------
    repo_path:
        Working tree or bare repository directory.
    git_binary:
        Name or path of the git executable.
    """

    def __init__(self, repo_path: Path, *, git_binary: str = "git") -> None:
        self.repo_path = Path(repo_path)
        self._git = git_binary
        self._object_format: str | None = None

    def _base_env(self) -> dict[str, str]:
        """Locale, timezone and config isolation for every git invocation."""
        return {
            "PATH": os.environ.get("PATH", os.defpath),
            "LC_ALL": "C",
            "LANG": "C",
            "TZ": "UTC",
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_CONFIG_GLOBAL": os.devnull,
            "GIT_TERMINAL_PROMPT": "0",
        }

    def _run(
        self,
        args: list[str],
        *,
        input: bytes | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[bytes]:
        full_env = self._base_env()
        if env:
            full_env.update(env)
        logger.debug("git %s", " ".join(args))
        return subprocess.run(
            [self._git, "-C", str(self.repo_path), *args],
            input=input,
            capture_output=True,
            env=full_env,
            timeout=_COMMAND_TIMEOUT_SECONDS,
            check=False,
        )

    def _read(self, args: list[str], what: str) -> bytes:
        result = self._run(args)
        if result.returncode != 0:
            raise BackendReadError(
                f"Cannot read {what}: {result.stderr.decode('utf-8', 'replace').strip()}"
            )
        return result.stdout

    def _write(self, args: list[str], what: str, **kwargs) -> str:
        result = self._run(args, **kwargs)
        if result.returncode != 0:
            raise BackendWriteError(
                f"Cannot write {what}: {result.stderr.decode('utf-8', 'replace').strip()}"
            )
        return result.stdout.decode("ascii").strip()

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def resolve_ref(self, name: str) -> str | None:
        result = self._run(["rev-parse", "--verify", "--quiet", f"{name}^{{commit}}"])
        if result.returncode != 0:
            return None
        return result.stdout.decode("ascii").strip()

    def compare_and_swap_ref(
        self, name: str, expected_old: str | None, new: str
    ) -> bool:
        old = expected_old if expected_old is not None else "0" * len(new)
        result = self._run(["update-ref", name, new, old])
        if result.returncode != 0:
            logger.debug(
                "update-ref %s rejected: %s",
                name,
                result.stderr.decode("utf-8", "replace").strip(),
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_commit(self, commit_id: str) -> CommitInfo:
        raw = self._read(["cat-file", "commit", commit_id], f"commit {commit_id}")
        header, _, message = raw.decode("utf-8", "replace").partition("\n\n")
        tree = ""
        parents: list[str] = []
        for line in header.splitlines():
            key, _, value = line.partition(" ")
            if key == "tree":
                tree = value
            elif key == "parent":
                parents.append(value)
        if not tree:
            raise BackendReadError(f"Commit {commit_id} has no tree header")
        return CommitInfo(id=commit_id, tree=tree, parents=parents, message=message)

    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        raw = self._read(
            ["ls-tree", "-r", "-l", "-z", "--full-tree", tree_id], f"tree {tree_id}"
        )
        entries: list[TreeEntry] = []
        for record in raw.split(b"\0"):
            if not record:
                continue
            meta, _, path = record.partition(b"\t")
            mode, kind, object_id, size = meta.decode("ascii").split()
            entries.append(
                TreeEntry(
                    path=path.decode("utf-8", "surrogateescape"),
                    mode=mode,
                    id=object_id,
                    type=kind,
                    size=None if size == "-" else int(size),
                )
            )
        return entries

    def read_blob(self, blob_id: str) -> bytes:
        return self._read(["cat-file", "blob", blob_id], f"blob {blob_id}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def object_format(self) -> str:
        """The repository's hash algorithm, ``sha1`` unless git reports ``sha256``."""
        if self._object_format is None:
            result = self._run(["rev-parse", "--show-object-format"])
            reported = result.stdout.decode("ascii", "replace").strip()
            self._object_format = "sha256" if reported == "sha256" else "sha1"
        return self._object_format

    def hash_blob(self, data: bytes) -> str:
        return git_object_id("blob", data, self.object_format())

    def write_blob(self, data: bytes) -> str:
        return self._write(
            ["hash-object", "-w", "--no-filters", "--stdin"], "blob", input=data
        )

    def write_tree(self, entries: list[TreeEntry]) -> str:
        root: dict[str, object] = {}
        for entry in entries:
            *dirs, leaf = entry.path.split("/")
            node = root
            for part in dirs:
                child = node.setdefault(part, {})
                if not isinstance(child, dict):
                    raise BackendWriteError(f"Path conflicts with a file: {entry.path}")
                node = child
            if leaf in node:
                raise BackendWriteError(f"Duplicate tree path: {entry.path}")
            node[leaf] = entry
        return self._make_tree(root)

    def _make_tree(self, node: dict) -> str:
        lines: list[bytes] = []
        for name, child in node.items():
            if isinstance(child, TreeEntry):
                line = f"{child.mode} {child.type} {child.id}\t{name}"
            else:
                line = f"{MODE_TREE} tree {self._make_tree(child)}\t{name}"
            lines.append(line.encode("utf-8", "surrogateescape"))
        payload = b"".join(line + b"\0" for line in lines)
        return self._write(["mktree", "-z"], "tree", input=payload)

    def write_commit(self, request: CommitRequest) -> str:
        args = ["commit-tree", "--no-gpg-sign", request.tree]
        for parent in request.parents:
            args += ["-p", parent]
        args += ["-F", "-"]
        env = {
            **_signature_env("AUTHOR", request.author),
            **_signature_env("COMMITTER", request.committer),
        }
        return self._write(
            args, "commit", input=request.message.encode("utf-8"), env=env
        )
