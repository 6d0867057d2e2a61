"""Path constants and configuration loading."""

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from perfcollector.errors import ConfigError

CONFIG_FILE = "perf-collector.yaml"

# Record store layout
TIMES_DIR = "times"
RETRIES_FILE = "retries"
BROKEN_COMMITS_FILE = "broken-commits-log"

# Benchmark directory entries that are never benchmarks
INFRASTRUCTURE_DIRS = (".git", "scripts")

RETRY_POLICIES = ("isolate", "abort")


@dataclass(frozen=True)
class CollectorConfig:
    """Settings shared by every subcommand."""

    triple: str = "x86_64-unknown-linux-gnu"
    benchmark_dir: Path = Path("collector/benchmarks")
    commits_repo: Path = Path("rust.git")
    commits_remote: str = "https://github.com/rust-lang/rust.git"
    branch: str = "master"
    epoch_commit: str = "927c55d86b0be44337f37cf5b0a76fb8ba86e06c"
    artifact_url: str = "https://s3.amazonaws.com/rust-lang-ci/rustc-builds"
    artifact_components: tuple[str, ...] = ("rustc", "rust-std", "cargo")
    iterations: int = 3
    test_iterations: int = 1
    max_commits_per_run: int = 3
    test_exclude: str = "servo"
    retry_failure_policy: str = "isolate"
    placeholder_date: datetime = field(
        default_factory=lambda: datetime(2000, 1, 1, tzinfo=UTC)
    )
    download_timeout: int = 300


_PATH_FIELDS = {"benchmark_dir", "commits_repo"}
_INT_FIELDS = {
    "iterations",
    "test_iterations",
    "max_commits_per_run",
    "download_timeout",
}


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS:
        return Path(str(value))
    if name in _INT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        return value
    if name == "artifact_components":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError("artifact_components must be a list of strings")
        return tuple(value)
    if name == "placeholder_date":
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if not isinstance(value, datetime):
            raise ConfigError(f"placeholder_date must be a timestamp, got {value!r}")
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if name == "retry_failure_policy" and value not in RETRY_POLICIES:
        raise ConfigError(
            f"retry_failure_policy must be one of {', '.join(RETRY_POLICIES)}, got {value!r}"
        )
    return str(value)


def config_from_dict(data: dict[str, Any]) -> CollectorConfig:
    """Build a config from a parsed YAML mapping, rejecting unknown keys."""
    known = {f.name for f in fields(CollectorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
    return CollectorConfig(**{k: _coerce(k, v) for k, v in data.items()})


def load_config(path: Path | None = None) -> CollectorConfig:
    """Load configuration from *path*, or from ./perf-collector.yaml if present."""
    explicit = path is not None
    cf = path if path is not None else Path(CONFIG_FILE)
    if not cf.exists():
        if explicit:
            raise ConfigError(f"config file not found: {cf}")
        return CollectorConfig()
    try:
        data = yaml.safe_load(cf.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {cf}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{cf} must contain a mapping")
    return config_from_dict(data)
