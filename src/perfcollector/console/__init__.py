"""perfcollector.console -- terminal output for the collector.

Usage (any module)::

    from perfcollector.console import console

    console.info("Hello")
    console.commit_header(sha, date, triple)
    console.table(["Commit", "Outcome"], [["abc", "ok"]])

Configuration (call once in ``cli.py:main()``)::

    from perfcollector.console import configure

    configure(backend="auto")  # "rich" | "plain" | "auto"

All output goes to stderr so that stdout stays free for machine-readable
results (``bench_local``).
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from perfcollector.console._plain import PlainBackend

if TYPE_CHECKING:
    from perfcollector.console._protocol import ConsoleProtocol

# ---------------------------------------------------------------------------
# Global singleton -- defaults to PlainBackend (zero-dependency startup)
# ---------------------------------------------------------------------------

_backend: ConsoleProtocol = PlainBackend()


def configure(*, backend: str = "auto") -> None:
    """Select the console backend.

    Args:
        backend: ``"rich"`` -- always use Rich.
                 ``"plain"`` -- always use plain text.
                 ``"auto"`` (default) -- Rich when stderr is a TTY,
                 plain otherwise.
    """
    global _backend  # noqa: PLW0603

    if backend == "plain":
        _backend = PlainBackend()
        return

    if backend == "auto":
        if not sys.stderr.isatty():
            _backend = PlainBackend()
            return
        backend = "rich"

    if backend == "rich":
        from perfcollector.console._rich import RichBackend

        _backend = RichBackend()


def get_console() -> ConsoleProtocol:
    """Return the current backend instance."""
    return _backend


class _ConsoleProxy:
    """Transparent proxy that delegates to the current ``_backend``.

    Callers import ``console`` once at module level and still pick up any
    later ``configure()`` call.
    """

    def __getattr__(self, name: str) -> object:
        return getattr(_backend, name)


console: ConsoleProtocol = _ConsoleProxy()  # type: ignore[assignment]
