"""Core data models for the collector."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class RunMode(Enum):
    """How thoroughly a benchmark run is carried out."""

    TEST = "test"
    NORMAL = "normal"


class CommitOrigin(Enum):
    """Where a commit handed to ``bench_commit`` came from."""

    KNOWN = "known"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class Commit:
    """An immutable point in the benchmarked history."""

    sha: str
    date: datetime
    summary: str = field(default="", compare=False)


@dataclass(frozen=True)
class ResolvedCommit:
    """A commit looked up by identifier, tagged with how it was obtained."""

    commit: Commit
    origin: CommitOrigin

    @property
    def is_placeholder(self) -> bool:
        return self.origin is CommitOrigin.PLACEHOLDER


@dataclass(frozen=True)
class Benchmark:
    """A discovered benchmark: a unique name and its directory."""

    name: str
    path: Path


@dataclass(frozen=True)
class BenchmarkOutcome:
    """Result of one benchmark run: metrics on success, a message on failure."""

    metrics: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def success(cls, metrics: dict[str, Any]) -> "BenchmarkOutcome":
        return cls(metrics=metrics)

    @classmethod
    def failure(cls, error: str) -> "BenchmarkOutcome":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None


@dataclass
class CommitRecord:
    """Benchmark outcomes for one commit on one target triple."""

    commit: Commit
    triple: str
    benchmarks: dict[str, BenchmarkOutcome] = field(
        default_factory=lambda: dict[str, BenchmarkOutcome]()
    )

    def missing(self, names: list[str]) -> list[str]:
        """Return the names that have no recorded outcome yet."""
        return [name for name in names if name not in self.benchmarks]

    def drop_failures(self) -> int:
        """Remove every failed outcome, returning how many were dropped."""
        failed = [name for name, outcome in self.benchmarks.items() if not outcome.is_success]
        for name in failed:
            del self.benchmarks[name]
        return len(failed)

    def remove_benchmark(self, name: str) -> bool:
        """Remove the outcome for *name*. Returns False if there was none."""
        return self.benchmarks.pop(name, None) is not None


@dataclass(frozen=True)
class BrokenCommit:
    """A commit whose whole-commit processing failed."""

    commit: Commit
    error: str


@dataclass(frozen=True)
class ProcessResult:
    """How processing one commit ended within a loop pass."""

    commit: Commit
    error: str | None = None
    retried: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Toolchain:
    """A runnable compiler build for one commit and triple."""

    commit_sha: str
    triple: str
    rustc: Path
    cargo: Path | None = None
