"""Synchronous git wrapper used by the commit source and the record store."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from perfcollector.errors import GitError

logger = logging.getLogger(__name__)


class GitRepository:
    """Runs git commands against one repository directory.

    Parameters
    ----------
    repo_dir:
        Root of the repository (a work tree or a bare repository). Every
        command runs with this as the working directory.

    """

    def __init__(self, repo_dir: Path) -> None:
        self._root = Path(repo_dir).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def run(self, *args: str, cwd: Path | None = None) -> str:
        """Run a git command and return its stripped stdout."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=cwd or self._root,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise GitError(f"git {' '.join(args)} could not run: {exc}") from exc
        if result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def exists(self) -> bool:
        """Return True if the directory holds a git repository."""
        if not self._root.is_dir():
            return False
        try:
            self.run("rev-parse", "--git-dir")
        except GitError:
            return False
        return True

    def init(self) -> None:
        """Create the directory and initialize an empty repository."""
        self._root.mkdir(parents=True, exist_ok=True)
        self.run("init")
        logger.info("[git] Initialized repository at %s", self._root)

    def clone_bare(self, remote: str) -> None:
        """Clone *remote* as a bare repository into the repository directory."""
        self._root.parent.mkdir(parents=True, exist_ok=True)
        self.run("clone", "--bare", remote, str(self._root), cwd=self._root.parent)
        logger.info("[git] Cloned %s into %s", remote, self._root)

    def fetch(self, remote: str, refspec: str) -> None:
        self.run("fetch", remote, refspec)

    def pull(self) -> None:
        self.run("pull", "--rebase")

    def push(self) -> None:
        self.run("push")

    def has_staged_changes(self) -> bool:
        try:
            self.run("diff", "--cached", "--quiet")
        except GitError:
            return True
        return False

    def commit_all(self, message: str) -> bool:
        """Stage everything and commit. Returns False if there was nothing to commit."""
        self.run("add", "-A")
        if not self.has_staged_changes():
            logger.debug("[git] nothing to commit for %r", message)
            return False
        self.run("commit", "-m", message)
        return True
