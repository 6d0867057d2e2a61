"""perfcollector.console._protocol -- ConsoleProtocol definition."""

from __future__ import annotations

from typing import Protocol


class ConsoleProtocol(Protocol):
    """Terminal output protocol.

    **General messages**::

        console.info("Found 42 benchmarks")
        console.success("Processed 3 commits")
        console.warning("Utilizing placeholder commit")
        console.error("Toolchain install failed")

    **Structured panels**::

        console.panel("text", title="Collector")
        console.table(["Commit", "Outcome"], [["abc", "ok"]], title="Results")
        console.kv({"Triple": "x86_64-unknown-linux-gnu"})

    **Commit lifecycle** -- used by the orchestrator::

        console.commit_header("abc123...", "2024-01-01T00:00:00+00:00", triple)
        console.step_detail("12 benchmarks recorded, 1 failed")
    """

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def success(self, message: str) -> None:
        """Success / positive-outcome message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...

    def panel(self, content: str, *, title: str = "", style: str = "") -> None:
        """Display *content* in a bordered panel."""
        ...

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        """Display a table with *headers* and *rows*."""
        ...

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        """Display key-value pairs."""
        ...

    def commit_header(self, sha: str, date: str, triple: str) -> None:
        """Display the banner shown before a commit is benchmarked."""
        ...

    def step_detail(self, message: str) -> None:
        """Display an indented detail line under the current commit."""
        ...
