"""Protocol interfaces for the collector's external collaborators.

All collaborators are ``typing.Protocol`` classes: any object with matching
method signatures can be handed to the orchestrator, which is how the tests
substitute in-memory fakes for git, the network and cargo.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

from perfcollector.domain.models import (
    Benchmark,
    Commit,
    CommitRecord,
    RunMode,
    Toolchain,
)


class CommitSource(Protocol):
    """Supplies the time-ordered commit history."""

    def sync(self) -> None:
        """Bring the local history up to date with its remote."""
        ...

    def get_commits(self) -> list[Commit]:
        """Return every commit from the epoch to the tip, oldest first."""
        ...


class ToolchainProvider(Protocol):
    """Obtains a runnable toolchain for a commit."""

    def install(self, commit: Commit, triple: str) -> AbstractContextManager[Toolchain]:
        """Return a context manager yielding the toolchain.

        Temporary files are removed when the context exits, on every path.
        Raises ToolchainError when the toolchain cannot be obtained.
        """
        ...


class BenchmarkRunner(Protocol):
    """Executes a single benchmark against a toolchain."""

    def run(
        self,
        toolchain: Toolchain,
        benchmark: Benchmark,
        iterations: int,
        mode: RunMode,
    ) -> dict[str, Any]:
        """Run the benchmark and return its metrics.

        Raises BenchmarkError when the benchmark fails.
        """
        ...


class RecordStore(Protocol):
    """Durable storage of commit records, the retry queue and the broken log."""

    def load_commit_record(self, commit: Commit, triple: str) -> CommitRecord | None:
        """Return the stored record, or None if the pair was never processed."""
        ...

    def save_commit_record(self, record: CommitRecord) -> None:
        """Write a record without committing it."""
        ...

    def record_success(self, record: CommitRecord) -> None:
        """Persist a freshly processed record as a successful outcome."""
        ...

    def commit_changes(self, message: str) -> None:
        """Commit any pending writes."""
        ...

    def find_missing_commits(
        self, commits: list[Commit], benchmarks: list[Benchmark], triple: str
    ) -> list[Commit]:
        """Return the commits lacking a complete record, in input order."""
        ...

    def next_retry(self) -> str | None:
        """Pop the next queued commit identifier, or None when empty."""
        ...

    def write_broken_commit(self, commit: Commit, error: str) -> None:
        """Append a commit-level failure to the broken-commit log."""
        ...
