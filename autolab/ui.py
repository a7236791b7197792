"""Terminal output for autolab commands.

Everything a user reads on screen goes through the shared :data:`console`;
log records reach the same console through the ``RichHandler`` installed by
:func:`autolab.logs.configure_logging`.  Rich drops colour on its own when
stdout is not a TTY.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

# marker and style per note level
_LEVELS = {
    "ok": ("✓", "green"),
    "warn": ("!", "yellow"),
    "fail": ("✗", "red"),
    "info": ("·", "dim"),
    "run": ("›", "cyan"),
}


def heading(title: str) -> None:
    """Start a new block of output (``PREFLIGHT``, ``CREATE``, ``DELETE``)."""
    console.print()
    console.rule(f"[bold]{escape(title)}[/]", align="left", style="blue")


def note(msg: str, level: str = "info") -> None:
    marker, style = _LEVELS[level]
    console.print(f"  [bold {style}]{marker}[/] [{style}]{escape(msg)}[/]", highlight=False)


def ok(msg: str) -> None:
    note(msg, "ok")


def warn(msg: str) -> None:
    note(msg, "warn")


def info(msg: str) -> None:
    note(msg, "info")


def step_started(title: str) -> None:
    note(f"{title}...", "run")


def step_result(title: str, succeeded: bool, message: str, resource_id: str = "") -> None:
    """One line per finished creation or deletion step."""
    text = f"{title}: {message}"
    if succeeded and resource_id:
        text += f" ({resource_id})"
    note(text, "ok" if succeeded else "fail")


def field(key: str, value: str) -> None:
    console.print(f"    [bold]{escape(key)}[/] = {escape(value)}", highlight=False)


def error(msg: str) -> None:
    """Unindented error line for CLI-level failures."""
    console.print(f"[bold red]ERROR:[/] {escape(msg)}")


def summary(title: str, body: str, *, succeeded: bool = True) -> None:
    """Boxed end-of-run summary, green on success and red otherwise."""
    colour = "green" if succeeded else "red"
    console.print()
    console.print(
        Panel(escape(body), title=f"[bold {colour}]{escape(title)}[/]", border_style=colour, padding=(1, 2))
    )


def table(title: str, columns: Sequence[str], rows: Iterable[Sequence[str]]) -> None:
    tbl = Table(title=title, title_style="bold", header_style="bold cyan")
    for col in columns:
        tbl.add_column(col)
    for row in rows:
        tbl.add_row(*(escape(str(cell)) for cell in row))
    console.print()
    console.print(tbl)


def format_elapsed(seconds: float) -> str:
    """``75.2`` becomes ``1m 15s``; under a minute only seconds are shown."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s" if minutes else f"{secs}s"
