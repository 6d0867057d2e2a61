"""Orchestration: which commits to benchmark, and what to do when they fail."""

import logging

from perfcollector.config import CollectorConfig
from perfcollector.console import console
from perfcollector.domain.models import (
    Benchmark,
    Commit,
    CommitOrigin,
    CommitRecord,
    ProcessResult,
    ResolvedCommit,
    RunMode,
)
from perfcollector.domain.protocols import BenchmarkRunner, RecordStore, ToolchainProvider
from perfcollector.errors import CollectorError, RecordStoreError, UnknownCommitError
from perfcollector.scheduler.bench import bench_commit

logger = logging.getLogger(__name__)

# Failures isolated per commit; anything else is a bug and propagates.
COMMIT_FAILURES = (CollectorError, OSError)


def resolve_commit(commits: list[Commit], sha: str, config: CollectorConfig) -> ResolvedCommit:
    """Look *sha* up in the history, fabricating a placeholder if it is unknown."""
    for commit in commits:
        if commit.sha == sha:
            return ResolvedCommit(commit=commit, origin=CommitOrigin.KNOWN)
    logger.warning("utilizing placeholder commit for unknown %s", sha)
    return ResolvedCommit(
        commit=Commit(sha=sha, date=config.placeholder_date),
        origin=CommitOrigin.PLACEHOLDER,
    )


class Orchestrator:
    """Drives benchmarking of the commit history against the record store."""

    def __init__(
        self,
        config: CollectorConfig,
        store: RecordStore,
        toolchains: ToolchainProvider,
        runner: BenchmarkRunner,
        benchmarks: list[Benchmark],
    ) -> None:
        self._config = config
        self._store = store
        self._toolchains = toolchains
        self._runner = runner
        self._benchmarks = benchmarks

    @property
    def config(self) -> CollectorConfig:
        return self._config

    @property
    def benchmarks(self) -> list[Benchmark]:
        return self._benchmarks

    @property
    def triple(self) -> str:
        return self._config.triple

    # -- Selection ------------------------------------------------------------

    def select_commits(self, commits: list[Commit]) -> list[Commit]:
        """Pick the newest missing commits, newest first, bounded per run."""
        if not commits:
            return []
        missing = self._store.find_missing_commits(commits, self._benchmarks, self.triple)
        logger.info("%d commits missing data for %s", len(missing), self.triple)
        return list(reversed(missing))[: self._config.max_commits_per_run]

    # -- Single commit --------------------------------------------------------

    def _load_prior(self, commit: Commit) -> CommitRecord | None:
        try:
            return self._store.load_commit_record(commit, self.triple)
        except RecordStoreError as exc:
            logger.warning("ignoring unreadable record for %s: %s", commit.sha, exc)
            return None

    def process_commit(self, commit: Commit) -> CommitRecord:
        """Install a toolchain for *commit*, benchmark it and persist the record.

        Raises on toolchain or persistence failure; the caller decides
        whether the commit is logged as broken.
        """
        console.commit_header(commit.sha, commit.date.isoformat(), self.triple)
        with self._toolchains.install(commit, self.triple) as toolchain:
            record = bench_commit(
                commit,
                toolchain,
                self._benchmarks,
                self._runner,
                self._config.iterations,
                RunMode.NORMAL,
                prior=self._load_prior(commit),
            )
        self._store.record_success(record)
        failed = sum(1 for o in record.benchmarks.values() if not o.is_success)
        console.step_detail(f"{len(record.benchmarks)} benchmarks recorded, {failed} failed")
        return record

    def bench_unpersisted(self, commit: Commit, iterations: int, mode: RunMode) -> CommitRecord:
        """Benchmark *commit* from scratch without reading or writing the store."""
        console.commit_header(commit.sha, commit.date.isoformat(), self.triple)
        with self._toolchains.install(commit, self.triple) as toolchain:
            return bench_commit(
                commit, toolchain, self._benchmarks, self._runner, iterations, mode
            )

    def _isolate(self, commit: Commit, exc: BaseException, retried: bool = False) -> ProcessResult:
        error = f"{type(exc).__name__}: {exc}"
        logger.error("processing %s failed: %s", commit.sha, error)
        console.error(f"{commit.sha[:12]} broken: {exc}")
        self._store.write_broken_commit(commit, error)
        return ProcessResult(commit=commit, error=error, retried=retried)

    # -- Loops ----------------------------------------------------------------

    def process_commits(self, commits: list[Commit]) -> list[ProcessResult]:
        """Forward pass: process the selected commits, isolating failures."""
        if not commits:
            logger.info("Nothing to do; no commits.")
            return []
        results: list[ProcessResult] = []
        for commit in self.select_commits(commits):
            try:
                self.process_commit(commit)
            except COMMIT_FAILURES as exc:
                results.append(self._isolate(commit, exc))
                continue
            results.append(ProcessResult(commit=commit))
        return results

    def process_retries(self, commits: list[Commit]) -> list[ProcessResult]:
        """Drain the retry queue.

        Under the ``abort`` policy the first failure propagates and ends the
        pass; under ``isolate`` it is logged as broken like a forward failure.
        An entry naming an unknown commit always raises UnknownCommitError.
        """
        by_sha = {commit.sha: commit for commit in commits}
        results: list[ProcessResult] = []
        while (retry := self._store.next_retry()) is not None:
            logger.info("retrying %s", retry)
            commit = by_sha.get(retry)
            if commit is None:
                raise UnknownCommitError(retry)
            try:
                self.process_commit(commit)
            except COMMIT_FAILURES as exc:
                if self._config.retry_failure_policy == "abort":
                    raise
                results.append(self._isolate(commit, exc, retried=True))
                continue
            results.append(ProcessResult(commit=commit, retried=True))
        return results

    def process(self, commits: list[Commit]) -> list[ProcessResult]:
        """Drain retries, then make forward progress on missing commits."""
        results = self.process_retries(commits)
        results.extend(self.process_commits(commits))
        return results

    def test_benchmarks(self, commits: list[Commit]) -> CommitRecord:
        """Smoke-test the catalog on the newest commit; nothing is persisted."""
        if not commits:
            raise CollectorError("no commits")
        return self.bench_unpersisted(commits[-1], self._config.test_iterations, RunMode.TEST)

    # -- Purges ---------------------------------------------------------------

    def _records(self, commits: list[Commit]) -> list[CommitRecord]:
        records: list[CommitRecord] = []
        for commit in commits:
            record = self._load_prior(commit)
            if record is not None:
                records.append(record)
        return records

    def remove_errors(self, commits: list[Commit]) -> int:
        """Drop every failed outcome so the next pass retries those benchmarks.

        Returns the number of outcomes removed.
        """
        removed = 0
        for record in self._records(commits):
            removed += record.drop_failures()
            self._store.save_commit_record(record)
        self._store.commit_changes("remove errored data")
        return removed

    def remove_benchmark(self, commits: list[Commit], name: str) -> int:
        """Drop the outcome for benchmark *name* from every record.

        Records without the benchmark only produce a warning. Returns the
        number of records that had it.
        """
        removed = 0
        for record in self._records(commits):
            if record.remove_benchmark(name):
                removed += 1
            else:
                logger.warning("could not remove %s from %s", name, record.commit.sha)
            self._store.save_commit_record(record)
        self._store.commit_changes(f"remove benchmark {name}")
        return removed
