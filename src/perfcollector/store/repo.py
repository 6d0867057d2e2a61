"""Record store kept as JSON files in a git repository.

Layout of the output repository::

    times/<date>-<sha>-<triple>.json   one CommitRecord per commit and triple
    retries                            queued commit identifiers, one per line
    broken-commits-log                 JSON lines of commit-level failures
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from perfcollector.config import BROKEN_COMMITS_FILE, RETRIES_FILE, TIMES_DIR
from perfcollector.domain.models import (
    Benchmark,
    BenchmarkOutcome,
    BrokenCommit,
    Commit,
    CommitRecord,
)
from perfcollector.errors import GitError, RecordStoreError
from perfcollector.git.ops import GitRepository

logger = logging.getLogger(__name__)


def _commit_to_dict(commit: Commit) -> dict[str, str]:
    return {"sha": commit.sha, "date": commit.date.isoformat()}


def _outcome_to_dict(outcome: BenchmarkOutcome) -> dict[str, Any]:
    if outcome.is_success:
        return {"ok": outcome.metrics}
    return {"error": outcome.error}


def record_to_dict(record: CommitRecord) -> dict[str, Any]:
    """Serialize a record to the JSON-compatible form stored on disk."""
    return {
        "commit": _commit_to_dict(record.commit),
        "triple": record.triple,
        "benchmarks": {
            name: _outcome_to_dict(outcome) for name, outcome in sorted(record.benchmarks.items())
        },
    }


def _commit_from_dict(d: dict[str, Any]) -> Commit:
    if not isinstance(d, dict):
        raise TypeError(f"commit must be an object, got {type(d).__name__}")
    return Commit(sha=str(d["sha"]), date=datetime.fromisoformat(d["date"]))


def _outcome_from_dict(d: dict[str, Any]) -> BenchmarkOutcome:
    if not isinstance(d, dict):
        raise TypeError(f"benchmark outcome must be an object, got {type(d).__name__}")
    if "error" in d:
        return BenchmarkOutcome.failure(str(d["error"]))
    return BenchmarkOutcome.success(d["ok"])


def record_from_dict(d: dict[str, Any]) -> CommitRecord:
    """Inverse of :func:`record_to_dict`.

    Raises TypeError or KeyError when *d* does not have the record shape.
    """
    if not isinstance(d, dict):
        raise TypeError(f"record must be an object, got {type(d).__name__}")
    benchmarks_raw: dict[str, dict[str, Any]] = d.get("benchmarks", {})
    if not isinstance(benchmarks_raw, dict):
        raise TypeError(f"benchmarks must be an object, got {type(benchmarks_raw).__name__}")
    return CommitRecord(
        commit=_commit_from_dict(d["commit"]),
        triple=str(d["triple"]),
        benchmarks={name: _outcome_from_dict(v) for name, v in benchmarks_raw.items()},
    )


class GitRecordStore:
    """RecordStore implementation over a git-versioned directory.

    With ``use_remote`` the repository is rebased onto its upstream when
    opened, and every commit is pushed.
    """

    def __init__(self, path: Path, use_remote: bool = False) -> None:
        self._root = Path(path)
        self._git = GitRepository(self._root)
        self._use_remote = use_remote

    @classmethod
    def open(cls, path: Path, use_remote: bool = False) -> GitRecordStore:
        """Open the output repository, initializing it if it does not exist."""
        store = cls(path, use_remote)
        try:
            if not store._git.exists():
                store._git.init()
            elif use_remote:
                store._git.pull()
        except GitError as exc:
            raise RecordStoreError(f"cannot open output repository {path}: {exc}") from exc
        (store._root / TIMES_DIR).mkdir(parents=True, exist_ok=True)
        return store

    @property
    def root(self) -> Path:
        return self._root

    def record_path(self, commit: Commit, triple: str) -> Path:
        stamp = commit.date.astimezone(UTC).strftime("%Y-%m-%dT%H-%M-%SZ")
        return self._root / TIMES_DIR / f"{stamp}-{commit.sha}-{triple}.json"

    # -- Commit records -------------------------------------------------------

    def load_commit_record(self, commit: Commit, triple: str) -> CommitRecord | None:
        """Load the record for *commit* on *triple*, or None if absent."""
        path = self.record_path(commit, triple)
        if not path.exists():
            return None
        try:
            return record_from_dict(json.loads(path.read_text()))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise RecordStoreError(f"corrupt record {path.name}: {exc}") from exc

    def save_commit_record(self, record: CommitRecord) -> None:
        """Write the record file (atomically) without committing it."""
        path = self.record_path(record.commit, record.triple)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(record_to_dict(record), indent=2, sort_keys=True))
            tmp.rename(path)
        except (OSError, TypeError, ValueError) as exc:
            raise RecordStoreError(f"cannot write {path.name}: {exc}") from exc

    def record_success(self, record: CommitRecord) -> None:
        self.save_commit_record(record)
        self.commit_changes(f"{record.commit.sha} ({record.triple}) - success")

    def find_missing_commits(
        self, commits: list[Commit], benchmarks: list[Benchmark], triple: str
    ) -> list[Commit]:
        """Return commits without a record, or whose record lacks a benchmark."""
        names = [b.name for b in benchmarks]
        missing: list[Commit] = []
        for commit in commits:
            try:
                record = self.load_commit_record(commit, triple)
            except RecordStoreError as exc:
                logger.warning("treating %s as missing: %s", commit.sha, exc)
                record = None
            if record is None or record.missing(names):
                missing.append(commit)
        return missing

    # -- Retry queue ----------------------------------------------------------

    def _retries_path(self) -> Path:
        return self._root / RETRIES_FILE

    def pending_retries(self) -> list[str]:
        path = self._retries_path()
        if not path.exists():
            return []
        return [line.strip() for line in path.read_text().splitlines() if line.strip()]

    def next_retry(self) -> str | None:
        """Pop the first queued commit and persist the shortened queue."""
        queue = self.pending_retries()
        if not queue:
            return None
        head, rest = queue[0], queue[1:]
        self._retries_path().write_text("".join(f"{sha}\n" for sha in rest))
        self.commit_changes(f"remove {head} from retries")
        return head

    # -- Broken commits -------------------------------------------------------

    def write_broken_commit(self, commit: Commit, error: str) -> None:
        entry = {"commit": _commit_to_dict(commit), "error": error}
        try:
            with (self._root / BROKEN_COMMITS_FILE).open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry) + "\n")
        except OSError as exc:
            raise RecordStoreError(f"cannot append to {BROKEN_COMMITS_FILE}: {exc}") from exc
        self.commit_changes(f"{commit.sha} - broken")

    def broken_commits(self) -> list[BrokenCommit]:
        """Return the broken-commit log, oldest entry first."""
        path = self._root / BROKEN_COMMITS_FILE
        if not path.exists():
            return []
        entries: list[BrokenCommit] = []
        for line in path.read_text().splitlines():
            if not line.strip():
                continue
            try:
                d = json.loads(line)
                entries.append(BrokenCommit(_commit_from_dict(d["commit"]), str(d["error"])))
            except (ValueError, KeyError, TypeError) as exc:
                raise RecordStoreError(f"corrupt {BROKEN_COMMITS_FILE} entry: {exc}") from exc
        return entries

    # -- Versioning -----------------------------------------------------------

    def commit_changes(self, message: str) -> None:
        """Commit pending writes and push them when a remote is in use."""
        try:
            committed = self._git.commit_all(message)
            if committed and self._use_remote:
                self._git.push()
        except GitError as exc:
            raise RecordStoreError(f"cannot commit {message!r}: {exc}") from exc
