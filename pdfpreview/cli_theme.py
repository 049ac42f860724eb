# pdfpreview/cli_theme.py
"""Terminal theme for the pdfpreview CLI.

Slate & amber palette:
  - One-line brand header with version
  - Numbered section headers ("01 · SECTION NAME")
  - Rounded tables with slate borders
  - Status badges with reverse styling
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator

from rich import box
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.style import Style
from rich.table import Table
from rich.text import Text

# ── Brand ─────────────────────────────────────────────────────────

BRAND = "P D F P R E V I E W"
TAGLINE = "First-page previews and metadata for PDF libraries"

# ── Palette ───────────────────────────────────────────────────────

AMBER = "#E0A526"
SLATE = "#7A8B99"
MUTED = "dim"

RULE_WIDTH = len(TAGLINE)


def print_banner(version: str, console: Console) -> None:
    console.print()
    console.print(f"  [bold {AMBER}]{BRAND}[/bold {AMBER}]")
    console.print(f"  [{SLATE}]{TAGLINE}[/{SLATE}]")
    console.print(f"  [{MUTED}]v{version}[/{MUTED}]")
    console.print()


def print_version(version: str, console: Console) -> None:
    """Print a compact branded version line."""
    t = Text()
    t.append(BRAND, style=f"bold {AMBER}")
    t.append(f"  v{version}", style=MUTED)
    console.print(t)


# ── Section headers ──────────────────────────────────────────────


def section(title: str, console: Console, number: str | None = None) -> None:
    """Print a numbered section header followed by a rule."""
    console.print()
    t = Text()
    if number:
        t.append(f"  {number}", style=f"bold {AMBER}")
        t.append(" · ", style=MUTED)
    else:
        t.append("  ")
    t.append(title.upper(), style="bold")
    console.print(t)
    console.print(f"  {'─' * RULE_WIDTH}", style=SLATE)


# ── Tables ───────────────────────────────────────────────────────


def make_table(title: str | None = None, **kwargs: object) -> Table:
    return Table(
        title=title,
        box=box.ROUNDED,
        border_style=SLATE,
        title_style=f"bold {AMBER}",
        header_style="bold",
        padding=(0, 1),
        **kwargs,
    )


def make_kv_table() -> Table:
    """Headerless two-column key/value table."""
    t = make_table(show_header=False)
    t.add_column("Key", style=f"bold {AMBER}", no_wrap=True)
    t.add_column("Value")
    return t


# ── Inline badges ───────────────────────────────────────────────


def badge(label: str, variant: str = "default") -> str:
    """Return Rich markup for a filled status badge."""
    colors = {
        "default": AMBER,
        "good": "green",
        "limited": "yellow",
        "unavailable": "red",
    }
    c = colors.get(variant, AMBER)
    return f"[reverse {c}] {label} [/reverse {c}]"


def yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[red]no[/red]"


# ── Status lines ─────────────────────────────────────────────────


def info(msg: str) -> str:
    return f"  [{AMBER}]›[/{AMBER}] [{MUTED}]{msg}[/{MUTED}]"


def ok(msg: str) -> str:
    return f"  [bold green]✓[/bold green] {msg}"


def warn(msg: str) -> str:
    return f"  [bold yellow]![/bold yellow] [yellow]{msg}[/yellow]"


def err(msg: str) -> str:
    return f"  [bold red]✗[/bold red] {msg}"


# ── Progress helpers ────────────────────────────────────────────


@contextmanager
def spinner(label: str, console: Console) -> Generator[None, None, None]:
    """Spinner for a single long-running render."""
    p = Progress(
        TextColumn(" "),
        SpinnerColumn("dots", style=Style(color=AMBER)),
        TextColumn(f"[{MUTED}]{label}[/{MUTED}]"),
        console=console,
        transient=True,
    )
    with p:
        p.add_task(label, total=None)
        yield


@contextmanager
def progress(total: int, label: str, console: Console) -> Generator[Callable[[], None], None, None]:
    """Progress bar for bulk runs; yields an ``advance()`` callable."""
    p = Progress(
        TextColumn(f"  [{AMBER}]▸[/{AMBER}]"),
        BarColumn(complete_style=Style(color=AMBER), finished_style=Style(color=AMBER)),
        MofNCompleteColumn(),
        TextColumn(f"[{MUTED}]{label}[/{MUTED}]"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    with p:
        task = p.add_task(label, total=total)
        yield lambda: p.advance(task)
