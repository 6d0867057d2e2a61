"""Cargo-based benchmark runner.

Each benchmark directory is a cargo project. An optional ``perf-config.yaml``
selects the build profiles and adds cargo arguments or environment variables::

    profiles: [check, opt]
    cargo_args: ["--features", "fast"]
    env:
      CARGO_INCREMENTAL: "0"

Every profile is built ``iterations`` times, each time from a pristine copy of
the benchmark so no build state leaks between runs.
"""

from __future__ import annotations

import logging
import os
import shutil
import statistics
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any

import yaml

from perfcollector.domain.models import Benchmark, RunMode, Toolchain
from perfcollector.errors import BenchmarkError

logger = logging.getLogger(__name__)

PERF_CONFIG_FILE = "perf-config.yaml"

PROFILE_COMMANDS: dict[str, list[str]] = {
    "check": ["check"],
    "debug": ["build"],
    "opt": ["build", "--release"],
}
DEFAULT_PROFILES = ["check", "debug", "opt"]

# Tail of stderr kept in failure messages outside of test mode
STDERR_TAIL = 2000


def load_perf_config(benchmark: Benchmark) -> dict[str, Any]:
    """Read the benchmark's perf-config.yaml, or return an empty config."""
    cf = benchmark.path / PERF_CONFIG_FILE
    if not cf.exists():
        return {}
    try:
        data = yaml.safe_load(cf.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise BenchmarkError(f"unreadable {PERF_CONFIG_FILE}: {exc}") from exc
    if not isinstance(data, dict):
        raise BenchmarkError(f"{PERF_CONFIG_FILE} must contain a mapping")
    profiles = data.get("profiles", DEFAULT_PROFILES)
    unknown = [p for p in profiles if p not in PROFILE_COMMANDS]
    if unknown:
        raise BenchmarkError(f"unknown profiles in {PERF_CONFIG_FILE}: {', '.join(unknown)}")
    return data


class CargoBenchmarkRunner:
    """BenchmarkRunner that times cargo builds of the benchmark."""

    def run(
        self,
        toolchain: Toolchain,
        benchmark: Benchmark,
        iterations: int,
        mode: RunMode,
    ) -> dict[str, Any]:
        """Build every profile of *benchmark* and return wall-time statistics."""
        perf_config = load_perf_config(benchmark)
        profiles: list[str] = perf_config.get("profiles", DEFAULT_PROFILES)
        cargo_args = [str(a) for a in perf_config.get("cargo_args", [])]
        extra_env = {str(k): str(v) for k, v in perf_config.get("env", {}).items()}

        metrics: dict[str, Any] = {}
        for profile in profiles:
            timings: list[float] = []
            for i in range(iterations):
                logger.debug("%s: %s iteration %d/%d", benchmark.name, profile, i + 1, iterations)
                timings.append(
                    self._build_once(toolchain, benchmark, profile, cargo_args, extra_env, mode)
                )
            metrics[profile] = {
                "wall_time": timings,
                "min": min(timings),
                "mean": statistics.fmean(timings),
            }
        return metrics

    def _build_once(
        self,
        toolchain: Toolchain,
        benchmark: Benchmark,
        profile: str,
        cargo_args: list[str],
        extra_env: dict[str, str],
        mode: RunMode,
    ) -> float:
        cargo = str(toolchain.cargo) if toolchain.cargo else shutil.which("cargo")
        if cargo is None:
            raise BenchmarkError("cargo not found")

        with tempfile.TemporaryDirectory(prefix=f"perf-{benchmark.name}-") as tmp:
            workdir = Path(tmp) / benchmark.name
            shutil.copytree(benchmark.path, workdir)
            env = {
                **os.environ,
                **extra_env,
                "RUSTC": str(toolchain.rustc),
                "CARGO_TARGET_DIR": str(Path(tmp) / "target"),
            }
            cmd = [cargo, *PROFILE_COMMANDS[profile], *cargo_args]

            start = time.perf_counter()
            try:
                result = subprocess.run(
                    cmd,
                    cwd=workdir,
                    env=env,
                    capture_output=True,
                    text=True,
                )
            except OSError as exc:
                raise BenchmarkError(f"could not run {' '.join(cmd)}: {exc}") from exc
            elapsed = time.perf_counter() - start

        if result.returncode != 0:
            stderr = result.stderr if mode is RunMode.TEST else result.stderr[-STDERR_TAIL:]
            raise BenchmarkError(
                f"{' '.join(cmd)} failed with exit code {result.returncode}: {stderr.strip()}"
            )
        return elapsed
