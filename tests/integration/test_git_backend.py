"""End-to-end integration tests against a real git repository.

Source history is written through GitBackend plumbing with fixed
identities, so every run produces the same object ids.  Skipped when no
``git`` executable is available.
"""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dataline.backends.base import MODE_EXECUTABLE, MODE_SYMLINK, VersionControlBackend
from dataline.backends.git import GitBackend
from dataline.backends.memory import MemoryBackend
from dataline.cli.app import app
from dataline.core.data_line import iter_data_line, read_metadata
from dataline.core.projector import Projector
from dataline.core.reconstructor import reconstruct
from dataline.core.validator import validate
from dataline.models.config import ProjectionConfig

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

runner = CliRunner()


def _init_repo(path: Path) -> GitBackend:
    env = {
        "PATH": os.environ.get("PATH", os.defpath),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_CONFIG_GLOBAL": os.devnull,
    }
    subprocess.run(
        ["git", "init", "-q", str(path)], check=True, capture_output=True, env=env
    )
    return GitBackend(path)


@pytest.fixture
def git_backend(tmp_path: Path) -> GitBackend:
    return _init_repo(tmp_path / "repo")


def _history(builder, manifest_text: str) -> dict[str, str]:
    files = {
        ".artifacts.yaml": manifest_text,
        "README.md": "readme\n",
        "docs/guide.md": "# Guide\n",
        "package.json": "{}\n",
        "src/main.py": "print('main')\n",
        "src/bin/run.sh": "#!/bin/sh\necho run\n",
    }
    modes = {"src/bin/run.sh": MODE_EXECUTABLE}
    base = builder.commit(files, modes=modes)
    main = builder.commit({**files, "docs/guide.md": "# Guide v2\n"}, parents=[base], modes=modes)
    topic = builder.commit({**files, "src/extra.py": "x = 1\n"}, parents=[base], modes=modes)
    merge = builder.commit(
        {**files, "docs/guide.md": "# Guide v2\n", "src/extra.py": "x = 1\n"},
        parents=[main, topic],
        modes=modes,
    )
    return {"base": base, "main": main, "topic": topic, "merge": merge}


class TestGitBackendPlumbing:
    def test_satisfies_protocol(self, git_backend):
        assert isinstance(git_backend, VersionControlBackend)

    def test_blob_ids_match_memory_backend(self, git_backend):
        data = b"same bytes on both backends\n"
        assert git_backend.write_blob(data) == MemoryBackend().write_blob(data)
        assert git_backend.hash_blob(b"x") == MemoryBackend().hash_blob(b"x")

    def test_object_format_defaults_to_sha1(self, git_backend):
        assert git_backend.object_format() == "sha1"
        assert git_backend.hash_blob(b"local") == git_backend.write_blob(b"local")

    def test_nested_tree_roundtrip(self, git_backend, make_builder):
        builder = make_builder(git_backend)
        commit = builder.commit(
            {"a/b/c.txt": "c", "a/d.sh": "d", "e": "target", "top.txt": "t"},
            modes={"a/d.sh": MODE_EXECUTABLE, "e": MODE_SYMLINK},
        )
        info = git_backend.read_commit(commit)
        listing = {e.path: e for e in git_backend.read_tree(info.tree)}
        assert sorted(listing) == ["a/b/c.txt", "a/d.sh", "e", "top.txt"]
        assert listing["a/d.sh"].mode == MODE_EXECUTABLE
        assert listing["e"].mode == MODE_SYMLINK
        assert listing["a/b/c.txt"].size == 1
        assert git_backend.read_blob(listing["top.txt"].id) == b"t"

    def test_commit_parents_and_message(self, git_backend, make_builder):
        builder = make_builder(git_backend)
        c1 = builder.commit({"a": "1"}, message="first\n")
        c2 = builder.commit({"a": "2"}, parents=[c1], message="second\n")
        info = git_backend.read_commit(c2)
        assert info.parents == [c1]
        assert info.message == "second\n"

    def test_refs_compare_and_swap(self, git_backend, make_builder):
        builder = make_builder(git_backend)
        c1 = builder.commit({"a": "1"})
        c2 = builder.commit({"a": "2"}, parents=[c1])
        ref = "refs/heads/workspace/data"

        assert git_backend.resolve_ref(ref) is None
        assert git_backend.compare_and_swap_ref(ref, None, c1) is True
        assert git_backend.compare_and_swap_ref(ref, None, c2) is False
        assert git_backend.compare_and_swap_ref(ref, c2, c1) is False
        assert git_backend.compare_and_swap_ref(ref, c1, c2) is True
        assert git_backend.resolve_ref(ref) == c2

    def test_source_ids_are_reproducible(self, tmp_path, make_builder):
        first = make_builder(_init_repo(tmp_path / "one")).commit({"a": "1"})
        second = make_builder(_init_repo(tmp_path / "two")).commit({"a": "1"})
        assert first == second


class TestGitProjection:
    def test_full_history(self, git_backend, make_builder, manifest_text, tmp_path):
        config = ProjectionConfig()
        sources = _history(make_builder(git_backend), manifest_text)
        projector = Projector(git_backend, config)
        data = {name: projector.project(commit) for name, commit in sources.items()}

        merge_meta = read_metadata(git_backend, data["merge"], config)
        assert merge_meta.parent_data_commit_oid == data["main"]
        assert merge_meta.source_parent_shas == [sources["main"], sources["topic"]]
        assert git_backend.resolve_ref(config.data_ref) == data["merge"]
        for data_commit in data.values():
            assert validate(git_backend, data_commit, config) is True

        assert projector.project(sources["base"]) == data["base"]
        assert git_backend.resolve_ref(config.data_ref) == data["merge"]

        out = tmp_path / "out"
        assert reconstruct(git_backend, data["merge"], out, "code", config) is True
        assert (out / "src/extra.py").read_text() == "x = 1\n"
        assert (out / "src/bin/run.sh").stat().st_mode & stat.S_IXUSR

    def test_non_utf8_filename(self, git_backend, make_builder, tmp_path):
        config = ProjectionConfig()
        name = b"caf\xe9.txt".decode("utf-8", "surrogateescape")
        commit = make_builder(git_backend).commit({name: "latin-1\n", "plain.txt": "p\n"})

        data_commit = Projector(git_backend, config).project(commit)
        files = read_metadata(git_backend, data_commit, config).artifacts[0].files
        assert [f.path for f in files] == [name, "plain.txt"]
        assert validate(git_backend, data_commit, config) is True

        out = tmp_path / "out"
        assert reconstruct(git_backend, data_commit, out, "default", config) is True
        assert b"caf\xe9.txt" in os.listdir(os.fsencode(out))
        assert (out / name).read_text() == "latin-1\n"

    def test_data_commits_identical_across_repositories(
        self, tmp_path, make_builder, manifest_text
    ):
        config = ProjectionConfig()
        ids = []
        for name in ("one", "two"):
            backend = _init_repo(tmp_path / name)
            sources = _history(make_builder(backend), manifest_text)
            projector = Projector(backend, config)
            ids.append([projector.project(c) for c in sources.values()])
        assert ids[0] == ids[1]

    def test_snapshot_hashes_agree_with_memory_backend(
        self, git_backend, make_builder, manifest_text
    ):
        config = ProjectionConfig()
        memory = MemoryBackend()
        git_sources = _history(make_builder(git_backend), manifest_text)
        memory_sources = _history(make_builder(memory), manifest_text)

        for name in git_sources:
            on_git = read_metadata(
                git_backend, Projector(git_backend, config).project(git_sources[name]), config
            )
            in_memory = read_metadata(
                memory, Projector(memory, config).project(memory_sources[name]), config
            )
            assert [(a.name, a.snapshot_hash, a.files) for a in on_git.artifacts] == [
                (a.name, a.snapshot_hash, a.files) for a in in_memory.artifacts
            ]


class TestCliAgainstGit:
    @pytest.fixture
    def repo(self, git_backend, make_builder, manifest_text, monkeypatch, tmp_path):
        for key in list(os.environ):
            if key.startswith("DATALINE_"):
                monkeypatch.delenv(key)
        monkeypatch.chdir(tmp_path)
        sources = _history(make_builder(git_backend), manifest_text)
        git_backend.compare_and_swap_ref("HEAD", None, sources["merge"])
        return git_backend.repo_path, sources

    def test_project_validate_reconstruct(self, repo, tmp_path):
        repo_path, sources = repo
        result = runner.invoke(
            app,
            ["project", sources["base"], sources["main"], sources["topic"], "--repo", str(repo_path)],
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["project", "--repo", str(repo_path)])
        assert result.exit_code == 0, result.output

        backend = GitBackend(repo_path)
        config = ProjectionConfig()
        head = backend.resolve_ref(config.data_ref)
        line = [d.metadata.original_commit_sha for d in iter_data_line(backend, head, config)]
        assert line[0] == sources["merge"]

        result = runner.invoke(app, ["validate", "--all", "--repo", str(repo_path)])
        assert result.exit_code == 0, result.output

        out = tmp_path / "rebuilt"
        result = runner.invoke(
            app, ["reconstruct", "--repo", str(repo_path), "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert (out / "docs/docs/guide.md").read_text() == "# Guide v2\n"
        assert (out / "code/src/extra.py").exists()

        for args in (["log"], ["log", "-n", "1"], ["registry"], ["registry", "--stored"]):
            result = runner.invoke(app, [*args, "--repo", str(repo_path)])
            assert result.exit_code == 0, (args, result.output)

    def test_unknown_revision(self, repo):
        repo_path, _ = repo
        result = runner.invoke(app, ["project", "no-such-branch", "--repo", str(repo_path)])
        assert result.exit_code == 1
        assert "Unknown revision" in result.output

    def test_missing_artifact(self, repo, tmp_path):
        repo_path, sources = repo
        runner.invoke(app, ["project", sources["base"], "--repo", str(repo_path)])
        result = runner.invoke(
            app,
            ["reconstruct", "--repo", str(repo_path), "-o", str(tmp_path / "x"), "-a", "nope"],
        )
        assert result.exit_code == 1

    def test_no_data_line_yet(self, repo):
        repo_path, _ = repo
        result = runner.invoke(app, ["log", "--repo", str(repo_path)])
        assert result.exit_code == 1
        assert "does not exist yet" in result.output
