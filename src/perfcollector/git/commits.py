"""Commit history read from a local clone of the compiler repository."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from perfcollector.domain.models import Commit
from perfcollector.errors import GitError
from perfcollector.git.ops import GitRepository

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%H%x09%cI%x09%s"


def parse_log_line(line: str) -> Commit:
    """Parse one ``sha<TAB>iso-date<TAB>summary`` line of git log output."""
    parts = line.split("\t", 2)
    if len(parts) < 2:
        raise GitError(f"unexpected git log line: {line!r}")
    sha, date = parts[0], parts[1]
    summary = parts[2] if len(parts) == 3 else ""
    return Commit(
        sha=sha,
        date=datetime.fromisoformat(date).astimezone(UTC),
        summary=summary,
    )


class GitCommitSource:
    """CommitSource backed by a (bare) clone of the compiler repository."""

    def __init__(self, repo_dir: Path, remote: str, branch: str, epoch: str) -> None:
        self._repo = GitRepository(repo_dir)
        self._remote = remote
        self._branch = branch
        self._epoch = epoch

    def sync(self) -> None:
        """Clone the remote if needed, otherwise fetch the tracked branch."""
        if not self._repo.exists():
            self._repo.clone_bare(self._remote)
            return
        logger.info("[git] Fetching %s from origin", self._branch)
        self._repo.fetch("origin", f"+{self._branch}:{self._branch}")

    def get_commits(self) -> list[Commit]:
        """Return the first-parent history after the epoch commit, oldest first."""
        out = self._repo.run(
            "log",
            "--first-parent",
            "--reverse",
            f"--format={_LOG_FORMAT}",
            f"{self._epoch}..{self._branch}",
        )
        commits = [parse_log_line(line) for line in out.splitlines() if line]
        logger.debug("Loaded %d commits since %s", len(commits), self._epoch[:12])
        return commits
