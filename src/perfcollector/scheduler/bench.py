"""Benchmarking a single commit, reusing outcomes already on record."""

import logging

from perfcollector.domain.models import (
    Benchmark,
    BenchmarkOutcome,
    Commit,
    CommitRecord,
    RunMode,
    Toolchain,
)
from perfcollector.domain.protocols import BenchmarkRunner
from perfcollector.errors import BenchmarkError

logger = logging.getLogger(__name__)


def bench_commit(
    commit: Commit,
    toolchain: Toolchain,
    benchmarks: list[Benchmark],
    runner: BenchmarkRunner,
    iterations: int,
    mode: RunMode,
    prior: CommitRecord | None = None,
) -> CommitRecord:
    """Produce a complete record for *commit* on the toolchain's triple.

    Outcomes already present in *prior* (successes and failures alike) are
    copied forward for every benchmark still in the catalog; only the rest
    are run. A failing benchmark is recorded as a failure outcome and never
    stops the remaining ones.
    """
    logger.info(
        "benchmarking commit %s (%s) for triple %s",
        commit.sha,
        commit.date.isoformat(),
        toolchain.triple,
    )

    results: dict[str, BenchmarkOutcome] = {}
    if prior is not None:
        for benchmark in benchmarks:
            if benchmark.name in prior.benchmarks:
                results[benchmark.name] = prior.benchmarks[benchmark.name]

    for benchmark in benchmarks:
        if benchmark.name in results:
            continue
        try:
            outcome = BenchmarkOutcome.success(
                runner.run(toolchain, benchmark, iterations, mode)
            )
        except BenchmarkError as exc:
            logger.info("failure to benchmark %s, recorded: %s", benchmark.name, exc)
            outcome = BenchmarkOutcome.failure(str(exc))
        except Exception as exc:
            # A runner bug still only costs this benchmark's entry.
            logger.warning("runner crashed on %s", benchmark.name, exc_info=True)
            outcome = BenchmarkOutcome.failure(f"{type(exc).__name__}: {exc}")
        results[benchmark.name] = outcome
        logger.info("%d benchmarks left", len(benchmarks) - len(results))

    return CommitRecord(commit=commit, triple=toolchain.triple, benchmarks=results)
