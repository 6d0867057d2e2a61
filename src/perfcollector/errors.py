"""Exception taxonomy for the collector.

Benchmark-level failures (``BenchmarkError``) are captured as data by result
merging. Commit-level failures (toolchain, store, git) are isolated by the
processing loops. Everything else surfaces as a process-level error exit.
"""


class CollectorError(Exception):
    """Base class for all collector errors."""


class ConfigError(CollectorError):
    """Raised when the configuration file or a flag value is invalid."""


class CatalogError(CollectorError):
    """Raised when the benchmark directory cannot be discovered."""


class ToolchainError(CollectorError):
    """Raised when a toolchain cannot be obtained for a commit."""


class BenchmarkError(CollectorError):
    """Raised by a benchmark runner when a single benchmark fails."""


class RecordStoreError(CollectorError):
    """Raised when a record cannot be read or persisted."""


class GitError(CollectorError):
    """Raised when a git operation fails."""


class UnknownCommitError(CollectorError):
    """Raised when a queued retry names a commit missing from the history."""

    def __init__(self, sha: str) -> None:
        super().__init__(f"retry queue names unknown commit {sha}")
        self.sha = sha
