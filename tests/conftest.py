"""Shared pytest fixtures and fakes for the collector tests.

Provides:
- In-memory fakes for the RecordStore, ToolchainProvider and BenchmarkRunner ports
- Factory helpers for commits, benchmarks and records
- A git identity for tests that create throwaway repositories
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from perfcollector.config import CollectorConfig
from perfcollector.domain.models import (
    Benchmark,
    BenchmarkOutcome,
    Commit,
    CommitRecord,
    RunMode,
    Toolchain,
)
from perfcollector.errors import BenchmarkError, RecordStoreError, ToolchainError

TRIPLE = "x86_64-unknown-linux-gnu"
BASE_DATE = datetime(2024, 1, 1, tzinfo=UTC)


# ── Factories ─────────────────────────────────────────────────────────────


def make_commit(n: int) -> Commit:
    """Commit ``C<n>``, one hour after ``C<n-1>``."""
    return Commit(sha=f"C{n}", date=BASE_DATE + timedelta(hours=n), summary=f"commit {n}")


def make_commits(count: int) -> list[Commit]:
    return [make_commit(n) for n in range(1, count + 1)]


def make_benchmarks(*names: str) -> list[Benchmark]:
    return [Benchmark(name=name, path=Path("/benchmarks") / name) for name in names]


def make_record(commit: Commit, **outcomes: BenchmarkOutcome) -> CommitRecord:
    return CommitRecord(commit=commit, triple=TRIPLE, benchmarks=dict(outcomes))


OK = BenchmarkOutcome.success({"check": {"wall_time": [1.0], "min": 1.0, "mean": 1.0}})
FAILED = BenchmarkOutcome.failure("build failed")


# ── Fake Port Implementations ─────────────────────────────────────────────


class FakeRecordStore:
    """In-memory RecordStore recording every mutation."""

    def __init__(self) -> None:
        self.records: dict[tuple[str, str], CommitRecord] = {}
        self.retries: list[str] = []
        self.broken: list[tuple[str, str]] = []
        self.successes: list[str] = []
        self.commits: list[str] = []
        self.corrupt: set[str] = set()
        self.fail_success_for: set[str] = set()

    def load_commit_record(self, commit: Commit, triple: str) -> CommitRecord | None:
        if commit.sha in self.corrupt:
            raise RecordStoreError(f"corrupt record for {commit.sha}")
        record = self.records.get((commit.sha, triple))
        if record is None:
            return None
        return CommitRecord(record.commit, record.triple, dict(record.benchmarks))

    def save_commit_record(self, record: CommitRecord) -> None:
        self.records[(record.commit.sha, record.triple)] = CommitRecord(
            record.commit, record.triple, dict(record.benchmarks)
        )

    def record_success(self, record: CommitRecord) -> None:
        if record.commit.sha in self.fail_success_for:
            raise RecordStoreError(f"push rejected for {record.commit.sha}")
        self.save_commit_record(record)
        self.successes.append(record.commit.sha)

    def commit_changes(self, message: str) -> None:
        self.commits.append(message)

    def find_missing_commits(
        self, commits: list[Commit], benchmarks: list[Benchmark], triple: str
    ) -> list[Commit]:
        names = [b.name for b in benchmarks]
        missing = []
        for commit in commits:
            record = self.records.get((commit.sha, triple))
            if record is None or record.missing(names):
                missing.append(commit)
        return missing

    def next_retry(self) -> str | None:
        return self.retries.pop(0) if self.retries else None

    def write_broken_commit(self, commit: Commit, error: str) -> None:
        self.broken.append((commit.sha, error))


class FakeToolchainProvider:
    """Hands out fake toolchains; commits in ``failing`` raise ToolchainError."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.installed: list[str] = []
        self.cleaned: list[str] = []

    @contextmanager
    def install(self, commit: Commit, triple: str) -> Iterator[Toolchain]:
        if commit.sha in self.failing:
            raise ToolchainError(f"no artifacts for {commit.sha}")
        self.installed.append(commit.sha)
        try:
            yield Toolchain(commit_sha=commit.sha, triple=triple, rustc=Path("/fake/rustc"))
        finally:
            self.cleaned.append(commit.sha)


class ScriptedRunner:
    """BenchmarkRunner that fails the benchmarks named in ``failing``."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[tuple[str, str, int, RunMode]] = []

    def run(
        self,
        toolchain: Toolchain,
        benchmark: Benchmark,
        iterations: int,
        mode: RunMode,
    ) -> dict[str, Any]:
        self.calls.append((toolchain.commit_sha, benchmark.name, iterations, mode))
        if benchmark.name in self.failing:
            raise BenchmarkError(f"{benchmark.name} does not compile")
        return {"check": {"wall_time": [0.5] * iterations, "min": 0.5, "mean": 0.5}}

    def ran(self) -> list[str]:
        return [name for _, name, _, _ in self.calls]


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def config() -> CollectorConfig:
    return CollectorConfig(triple=TRIPLE)


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def toolchains() -> FakeToolchainProvider:
    return FakeToolchainProvider()


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture(autouse=True)
def _git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git commits made in throwaway repositories an author."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Collector Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "collector@test.invalid")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Collector Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "collector@test.invalid")
