"""Benchmark discovery from the benchmark directory."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from perfcollector.config import INFRASTRUCTURE_DIRS
from perfcollector.domain.models import Benchmark
from perfcollector.errors import CatalogError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def _entry_name(entry: os.DirEntry[str]) -> str:
    # Undecodable bytes come back as lone surrogates from os.scandir.
    try:
        entry.name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise CatalogError(f"non-utf8 benchmark name: {entry.name!r}") from exc
    return entry.name


def get_benchmarks(
    benchmark_dir: Path,
    filter: str | None = None,
    exclude: str | None = None,
) -> list[Benchmark]:
    """Return the benchmarks under *benchmark_dir*, sorted by name.

    Args:
        benchmark_dir: Directory holding one sub-directory per benchmark.
        filter: Keep only benchmarks whose name contains this substring.
        exclude: Drop benchmarks whose name contains this substring.

    Raises:
        CatalogError: If the directory cannot be listed or a name is not text.
    """
    benchmarks: list[Benchmark] = []
    try:
        with os.scandir(benchmark_dir) as entries:
            for entry in entries:
                name = _entry_name(entry)
                if name in INFRASTRUCTURE_DIRS or not entry.is_dir():
                    logger.debug("benchmark %s - ignored", name)
                    continue
                if filter is not None and filter not in name:
                    logger.debug("benchmark %s - filtered", name)
                    continue
                if exclude is not None and exclude in name:
                    logger.debug("benchmark %s - filtered", name)
                    continue
                logger.debug("benchmark `%s` - registered", name)
                benchmarks.append(Benchmark(name=name, path=benchmark_dir / name))
    except OSError as exc:
        raise CatalogError(f"failed to list benchmarks in {benchmark_dir}: {exc}") from exc

    benchmarks.sort(key=lambda b: b.name)
    return benchmarks
