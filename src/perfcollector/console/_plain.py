"""perfcollector.console._plain -- plain-text backend.

Used when stderr is not a TTY (CI logs, cron mail, redirected output).
"""

from __future__ import annotations

import sys


def _out(text: str = "") -> None:
    print(text, file=sys.stderr)


class PlainBackend:
    """ConsoleProtocol implementation using only built-in print()."""

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        _out(f"  {message}")

    def success(self, message: str) -> None:
        _out(f"  [ok] {message}")

    def warning(self, message: str) -> None:
        _out(f"  [warn] {message}")

    def error(self, message: str) -> None:
        _out(f"  [error] {message}")

    # -- Structured panels --------------------------------------------------

    def panel(self, content: str, *, title: str = "", style: str = "") -> None:
        width = 60
        header = f" {title} " if title else ""
        _out(f"\n{header.center(width, '=')}")
        for line in content.splitlines():
            _out(f"  {line}")
        _out("=" * width)

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        if title:
            _out(f"\n  {title}:")

        if not headers and not rows:
            return

        all_rows = [headers, *rows]
        col_widths = [
            max(len(str(row[i])) if i < len(row) else 0 for row in all_rows)
            for i in range(len(headers))
        ]

        _out("  " + "  ".join(h.ljust(w) for h, w in zip(headers, col_widths, strict=True)))
        _out("  " + "  ".join("-" * w for w in col_widths))
        for row in rows:
            cells = [
                str(row[i]).ljust(col_widths[i]) if i < len(row) else " " * col_widths[i]
                for i in range(len(headers))
            ]
            _out("  " + "  ".join(cells))

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        if title:
            _out(f"\n  {title}:")
        if not data:
            return
        max_key = max(len(k) for k in data)
        for k, v in data.items():
            _out(f"  {k.rjust(max_key)}: {v}")

    # -- Commit lifecycle ---------------------------------------------------

    def commit_header(self, sha: str, date: str, triple: str) -> None:
        rule = "━" * 60
        _out(f"\n{rule}")
        _out(f"  {sha}  ─  {date}  ─  {triple}")
        _out(rule)

    def step_detail(self, message: str) -> None:
        _out(f"    {message}")
