"""Rich Console factory and theme for poolctl output.

Consoles render into a StringIO buffer so formatting stays a pure
``ServiceResult -> str`` step. Rich drops colour codes on its own when
the output is not a terminal (pipes, CliRunner).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

POOL_THEME = Theme(
    {
        "pool.ok": "bold green",
        "pool.error": "bold red",
        "pool.warning": "bold yellow",
        "pool.op": "bold cyan",
        "pool.key": "dim",
        "pool.id": "bold blue",
        "pool.money": "magenta",
        "pool.status.open": "yellow",
        "pool.status.done": "green",
        "pool.status.closed": "dim",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "pending": "pool.status.open",
    "suggested": "pool.status.open",
    "sent": "pool.status.open",
    "quoted": "pool.status.open",
    "approved": "pool.status.done",
    "accepted": "pool.status.done",
    "applied": "pool.status.done",
    "paid": "pool.status.done",
    "rejected": "pool.status.closed",
    "overdue": "pool.error",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Console writing to an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=POOL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Text rendered so far by a console from :func:`create_console`."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    return _STATUS_STYLES.get(status, "")
