"""Pretty-print support for gentask conversations and results.

Uses rich library for formatted terminal output.
All functions accept their target object and print to a rich Console.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from gentask.models.messages import ChatMessage

_ROLE_STYLES: dict[str, tuple[str, str]] = {
    "system": ("System", "yellow"),
    "user": ("User", "blue"),
    "assistant": ("Assistant", "green"),
    "function": ("Function", "magenta"),
}


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=True, width=100)
    return Console()


def _abbreviate(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def pprint_history(
    messages: list[ChatMessage], *, abbreviate: bool = False, file: Any = None
) -> None:
    """Pretty-print a conversation history, one panel per message.

    Args:
        messages: Messages as returned by a history store.
        abbreviate: If True, truncate long text.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    for msg in messages:
        title, style = _ROLE_STYLES.get(msg.role, (msg.role, "white"))
        if msg.role == "function" and msg.name:
            title = f"{title}: {msg.name}"
        text = msg.content
        if abbreviate:
            text = _abbreviate(text)
        body = Text(text or "(empty)")
        for call in msg.function_calls or []:
            body.append("\n")
            body.append(call["name"], style="bold cyan")
            body.append(f"({call.get('arguments') or ''})", style="dim")
        console.print(Panel(body, title=f"[bold]{title}[/bold]", border_style=style))


def pprint_result(values: dict[str, Any], *, file: Any = None) -> None:
    """Pretty-print the output values of a generation task as a table."""
    console = _make_console(file)
    table = Table(show_header=True, header_style="bold")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in values.items():
        shown = value if isinstance(value, str) else json.dumps(value, default=str)
        table.add_row(name, shown)
    console.print(table)
