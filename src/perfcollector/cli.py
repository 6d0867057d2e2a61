"""
perf-collector CLI -- collects compiler performance data per commit.

Usage:
  perf-collector --output-repo PATH [--filter S] [--sync-git] process
  perf-collector --output-repo PATH bench_commit <COMMIT>
  perf-collector --output-repo PATH bench_local --commit SHA --date RFC3339 <RUSTC>
  perf-collector --output-repo PATH remove_errs
  perf-collector --output-repo PATH remove_benchmark --benchmark NAME
  perf-collector --output-repo PATH test_benchmarks
  perf-collector --output-repo PATH status
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from perfcollector.benchmarks.catalog import get_benchmarks
from perfcollector.benchmarks.runner import CargoBenchmarkRunner
from perfcollector.config import CollectorConfig, load_config
from perfcollector.console import configure, console
from perfcollector.domain.models import Commit, ProcessResult, RunMode
from perfcollector.domain.protocols import CommitSource, ToolchainProvider
from perfcollector.errors import CollectorError, ConfigError
from perfcollector.git.commits import GitCommitSource
from perfcollector.scheduler.orchestrator import Orchestrator, resolve_commit
from perfcollector.store.repo import GitRecordStore, record_to_dict
from perfcollector.toolchain.provider import ArtifactToolchainProvider, LocalToolchainProvider

logger = logging.getLogger("perfcollector")

# Exit code when no recognized subcommand is given
USAGE_EXIT = 2


def _setup_logging(args: argparse.Namespace) -> None:
    """Configure the root logger: stderr always, plus --log-file if given."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if args.log_file:
        args.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(args.log_file, encoding="utf-8"))

    logging.basicConfig(
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        level=level,
        handlers=handlers,
        force=True,
    )


def _summary_rows(results: list[ProcessResult]) -> list[list[str]]:
    rows: list[list[str]] = []
    for r in results:
        outcome = "ok" if r.ok else f"broken: {(r.error or '')[:60]}"
        rows.append([r.commit.sha[:12], "retry" if r.retried else "new", outcome])
    return rows


# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------


def cmd_process(orch: Orchestrator, commits: list[Commit]) -> None:
    """Drain the retry queue, then benchmark the newest missing commits."""
    results = orch.process(commits)
    if not results:
        console.info("Nothing to process.")
        return
    console.table(["Commit", "Pass", "Outcome"], _summary_rows(results), title="Processed")
    broken = sum(1 for r in results if not r.ok)
    if broken:
        console.warning(f"{broken} of {len(results)} commits broken")
    else:
        console.success(f"Processed {len(results)} commits")


def cmd_bench_commit(orch: Orchestrator, commits: list[Commit], sha: str) -> None:
    """Benchmark one commit and persist it, even if it is not in the history."""
    resolved = resolve_commit(commits, sha, orch.config)
    if resolved.is_placeholder:
        console.warning(f"{sha} is not in the history; using a placeholder commit")
    orch.process_commit(resolved.commit)
    console.success(f"Recorded {sha}")


def cmd_bench_local(orch: Orchestrator, sha: str, date: str) -> None:
    """Benchmark a local rustc and print the record as JSON on stdout."""
    try:
        when = datetime.fromisoformat(date)
    except ValueError as exc:
        raise ConfigError(f"--date must be RFC3339, got {date!r}") from exc
    if when.tzinfo is None:
        raise ConfigError(f"--date must carry a UTC offset, got {date!r}")
    commit = Commit(sha=sha, date=when.astimezone(UTC))
    record = orch.bench_unpersisted(commit, orch.config.iterations, RunMode.NORMAL)
    json.dump(record_to_dict(record), sys.stdout)
    sys.stdout.write("\n")


def cmd_remove_errs(orch: Orchestrator, commits: list[Commit]) -> None:
    removed = orch.remove_errors(commits)
    console.success(f"Removed {removed} errored results")


def cmd_remove_benchmark(orch: Orchestrator, commits: list[Commit], name: str) -> None:
    removed = orch.remove_benchmark(commits, name)
    console.success(f"Removed {name} from {removed} records")


def cmd_test_benchmarks(orch: Orchestrator, commits: list[Commit]) -> None:
    """Run the catalog once against the newest commit, without persisting."""
    record = orch.test_benchmarks(commits)
    rows = [
        [name, "ok" if outcome.is_success else f"FAIL: {(outcome.error or '')[:80]}"]
        for name, outcome in sorted(record.benchmarks.items())
    ]
    console.table(["Benchmark", "Result"], rows, title=f"Smoke test of {record.commit.sha[:12]}")


def cmd_status(
    config: CollectorConfig,
    store: GitRecordStore,
    orch: Orchestrator,
    commits: list[Commit],
) -> None:
    """Show how much of the history still lacks data."""
    missing = store.find_missing_commits(commits, orch.benchmarks, config.triple)
    broken = store.broken_commits()
    console.kv(
        {
            "Triple": config.triple,
            "Benchmarks": str(len(orch.benchmarks)),
            "Commits": str(len(commits)),
            "Missing": str(len(missing)),
            "Pending retries": str(len(store.pending_retries())),
            "Broken commits": str(len(broken)),
        },
        title="Collector",
    )
    if broken:
        last = broken[-1]
        console.panel(last.error, title=f"Last broken: {last.commit.sha[:12]}", style="red")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perf-collector",
        description="Collects compiler performance data",
    )
    parser.add_argument("--filter", help="Run only benchmarks that contain this")
    parser.add_argument(
        "--sync-git", action="store_true", help="Synchronize repositories with their remotes"
    )
    parser.add_argument("--output-repo", type=Path, required=True, help="Repository to output to")
    parser.add_argument("--config", type=Path, default=None, help="Path to perf-collector.yaml")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--quiet", action="store_true", help="Only show warnings and errors")
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this file")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("process", help="Sync and collect performance data for missing commits")

    bench_p = sub.add_parser("bench_commit", help="Benchmark one commit and record it")
    bench_p.add_argument("commit", metavar="COMMIT", help="Commit hash to bench")

    local_p = sub.add_parser(
        "bench_local", help="Benchmark a local rustc and print the data to stdout"
    )
    local_p.add_argument(
        "--commit", required=True, help="Commit hash to associate benchmark results with"
    )
    local_p.add_argument(
        "--date",
        required=True,
        help='Date to associate the results with, RFC3339 ("YYYY-MM-DDTHH:MM:SS-HH:MM")',
    )
    local_p.add_argument("rustc", metavar="RUSTC", type=Path, help="Path to the local rustc")

    sub.add_parser("remove_errs", help="Remove errored data")

    remove_p = sub.add_parser("remove_benchmark", help="Remove data for a benchmark")
    remove_p.add_argument("--benchmark", required=True, help="Benchmark name to remove data for")

    sub.add_parser("test_benchmarks", help="Test the benchmarks selected by --filter")
    sub.add_parser("status", help="Show collection progress")
    return parser


def run(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the selected subcommand and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(backend="auto")
    _setup_logging(args)

    if args.command is None:
        parser.print_usage(sys.stderr)
        return USAGE_EXIT

    try:
        _dispatch(args)
    except CollectorError as exc:
        logger.error("%s", exc)
        console.error(str(exc))
        return 1
    return 0


def _dispatch(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    benchmarks = get_benchmarks(
        config.benchmark_dir,
        args.filter,
        config.test_exclude if args.command == "test_benchmarks" else None,
    )
    if args.command == "status":
        # Read-only: no init, no pull.
        store = GitRecordStore(args.output_repo)
    else:
        store = GitRecordStore.open(args.output_repo, use_remote=args.sync_git)

    toolchains: ToolchainProvider
    if args.command == "bench_local":
        toolchains = LocalToolchainProvider(args.rustc)
    else:
        toolchains = ArtifactToolchainProvider(
            config.artifact_url, config.artifact_components, config.download_timeout
        )
    orch = Orchestrator(config, store, toolchains, CargoBenchmarkRunner(), benchmarks)

    if args.command == "bench_local":
        cmd_bench_local(orch, args.commit, args.date)
        return

    source: CommitSource = GitCommitSource(
        config.commits_repo, config.commits_remote, config.branch, config.epoch_commit
    )
    if args.sync_git:
        source.sync()
    commits = source.get_commits()

    if args.command == "process":
        cmd_process(orch, commits)
    elif args.command == "bench_commit":
        cmd_bench_commit(orch, commits, args.commit)
    elif args.command == "remove_errs":
        cmd_remove_errs(orch, commits)
    elif args.command == "remove_benchmark":
        cmd_remove_benchmark(orch, commits, args.benchmark)
    elif args.command == "test_benchmarks":
        cmd_test_benchmarks(orch, commits)
    elif args.command == "status":
        cmd_status(config, store, orch, commits)


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
