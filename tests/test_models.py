"""Tests for the domain models."""

from __future__ import annotations

from conftest import FAILED, OK, make_commit, make_record

from perfcollector.domain.models import (
    BenchmarkOutcome,
    Commit,
    CommitOrigin,
    ProcessResult,
    ResolvedCommit,
)


def test_commit_equality_ignores_summary() -> None:
    commit = make_commit(1)
    assert Commit(sha=commit.sha, date=commit.date) == commit


def test_outcomes() -> None:
    assert OK.is_success
    assert not FAILED.is_success
    assert BenchmarkOutcome.failure("boom").error == "boom"


def test_record_missing_preserves_order() -> None:
    record = make_record(make_commit(1), b=OK)
    assert record.missing(["c", "b", "a"]) == ["c", "a"]


def test_drop_failures() -> None:
    record = make_record(make_commit(1), a=OK, b=FAILED, c=FAILED)
    assert record.drop_failures() == 2
    assert record.benchmarks == {"a": OK}
    assert record.drop_failures() == 0


def test_remove_benchmark() -> None:
    record = make_record(make_commit(1), a=OK)
    assert record.remove_benchmark("a") is True
    assert record.remove_benchmark("a") is False


def test_resolved_commit_origin() -> None:
    commit = make_commit(1)
    assert ResolvedCommit(commit, CommitOrigin.PLACEHOLDER).is_placeholder
    assert not ResolvedCommit(commit, CommitOrigin.KNOWN).is_placeholder


def test_process_result_ok() -> None:
    assert ProcessResult(make_commit(1)).ok
    assert not ProcessResult(make_commit(1), error="ToolchainError: gone").ok
