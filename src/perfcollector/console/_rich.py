"""perfcollector.console._rich -- Rich-based backend.

Coloured, structured terminal output on stderr.
"""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "info": "blue",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "sha": "bold cyan",
        "dim": "dim",
    }
)


class RichBackend:
    """ConsoleProtocol implementation backed by Rich."""

    def __init__(self) -> None:
        self._con = Console(theme=_THEME, highlight=False, stderr=True)

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        self._con.print(f"  {message}", style="info", markup=False)

    def success(self, message: str) -> None:
        self._con.print(f"  ✓ {message}", style="success", markup=False)

    def warning(self, message: str) -> None:
        self._con.print(f"  ⚠ {message}", style="warning", markup=False)

    def error(self, message: str) -> None:
        self._con.print(f"  ✗ {message}", style="error", markup=False)

    # -- Structured panels --------------------------------------------------

    def panel(self, content: str, *, title: str = "", style: str = "") -> None:
        self._con.print(Panel(content, title=title or None, border_style=style or "dim"))

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        t = Table(title=title or None, box=box.SIMPLE, show_edge=False, pad_edge=True)
        for h in headers:
            t.add_column(h)
        for r in rows:
            t.add_row(*r)
        self._con.print(t)

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        t = Table(
            title=title or None,
            box=box.SIMPLE,
            show_header=False,
            show_edge=False,
            pad_edge=True,
        )
        t.add_column("Key", style="bold", justify="right")
        t.add_column("Value")
        for k, v in data.items():
            t.add_row(k, v)
        self._con.print(t)

    # -- Commit lifecycle ---------------------------------------------------

    def commit_header(self, sha: str, date: str, triple: str) -> None:
        self._con.print()
        self._con.print(Rule(f" {sha} ", style="sha", align="left"))
        self._con.print(f"  [dim]{date} · {triple}[/]")

    def step_detail(self, message: str) -> None:
        self._con.print(f"    {message}", style="dim", markup=False)
