"""Tests for the git wrapper and the git-backed commit source."""

from __future__ import annotations

import os
import subprocess
from datetime import UTC, datetime
from pathlib import Path

import pytest

from perfcollector.errors import GitError
from perfcollector.git.commits import GitCommitSource, parse_log_line
from perfcollector.git.ops import GitRepository


def _git(cwd: Path, *args: str, env: dict[str, str] | None = None) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True, env=env
    )
    return result.stdout.strip()


def _commit(repo: Path, name: str, when: str) -> str:
    (repo / name).write_text(name)
    _git(repo, "add", "-A")
    env = {**os.environ, "GIT_COMMITTER_DATE": when, "GIT_AUTHOR_DATE": when}
    _git(repo, "commit", "-m", f"add {name}", env=env)
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture
def upstream(tmp_path: Path) -> tuple[Path, list[str]]:
    """An upstream repository on branch master with four commits."""
    repo = tmp_path / "upstream"
    repo.mkdir()
    _git(repo, "init", "-b", "master")
    shas = [
        _commit(repo, f"file{i}", f"2024-01-0{i}T12:00:00+00:00") for i in range(1, 5)
    ]
    return repo, shas


class TestGitRepository:
    def test_exists(self, tmp_path: Path, upstream: tuple[Path, list[str]]) -> None:
        assert GitRepository(upstream[0]).exists()
        assert not GitRepository(tmp_path / "nowhere").exists()
        (tmp_path / "plain").mkdir()
        assert not GitRepository(tmp_path / "plain").exists()

    def test_run_raises_on_failure(self, upstream: tuple[Path, list[str]]) -> None:
        with pytest.raises(GitError, match="git checkout nonexistent failed"):
            GitRepository(upstream[0]).run("checkout", "nonexistent")

    def test_init_and_commit_all(self, tmp_path: Path) -> None:
        repo = GitRepository(tmp_path / "new")
        repo.init()
        assert repo.commit_all("empty") is False
        (tmp_path / "new" / "a.txt").write_text("a")
        assert repo.commit_all("add a") is True
        assert repo.run("log", "--format=%s") == "add a"


class TestParseLogLine:
    def test_parses_fields(self) -> None:
        commit = parse_log_line("abc\t2024-01-02T03:04:05+02:00\tFix\tthings")
        assert commit.sha == "abc"
        assert commit.date == datetime(2024, 1, 2, 1, 4, 5, tzinfo=UTC)
        assert commit.summary == "Fix\tthings"

    def test_rejects_garbage(self) -> None:
        with pytest.raises(GitError):
            parse_log_line("just-a-sha")


class TestGitCommitSource:
    def test_sync_clones_then_lists_after_epoch(
        self, tmp_path: Path, upstream: tuple[Path, list[str]]
    ) -> None:
        remote, shas = upstream
        source = GitCommitSource(tmp_path / "rust.git", str(remote), "master", shas[0])
        source.sync()

        commits = source.get_commits()
        assert [c.sha for c in commits] == shas[1:]
        assert [c.date.day for c in commits] == [2, 3, 4]
        assert commits[0].summary == "add file2"

    def test_sync_fetches_new_commits(
        self, tmp_path: Path, upstream: tuple[Path, list[str]]
    ) -> None:
        remote, shas = upstream
        source = GitCommitSource(tmp_path / "rust.git", str(remote), "master", shas[0])
        source.sync()
        newest = _commit(remote, "file5", "2024-01-05T12:00:00+00:00")

        source.sync()

        assert source.get_commits()[-1].sha == newest

    def test_epoch_at_tip_yields_empty_history(
        self, tmp_path: Path, upstream: tuple[Path, list[str]]
    ) -> None:
        remote, shas = upstream
        source = GitCommitSource(remote, str(remote), "master", shas[-1])
        assert source.get_commits() == []
