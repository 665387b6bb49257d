"""Rich console rendering of conversation results."""

from __future__ import annotations

import json

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.conversation import ConversationResult, RunStatus

console = Console()

STATUS_STYLE = {
    RunStatus.COMPLETED: ("✅ COMPLETED", "green"),
    RunStatus.ERROR: ("❌ ERROR", "red"),
    RunStatus.MAX_TURNS_REACHED: ("⏹ MAX TURNS", "yellow"),
}


def print_transcript(result: ConversationResult, *, show_tools: bool = True, out: Console | None = None) -> None:
    """Print a header panel, the message table and (optionally) tool calls."""
    out = out or console
    meta = result.metadata
    label, color = STATUS_STYLE.get(result.status, (result.status.value, "white"))
    tokens = meta.get("tokens") or {}

    out.print()
    out.print(Panel(
        f"[bold]{meta.get('execution_id', '?')}[/bold]  •  {meta.get('model', '?')}  •  {meta.get('protocol', '?')}\n"
        f"Turns: {result.total_turns}/{meta.get('max_turns', '?')}  •  "
        f"Time: {meta.get('response_time_ms', 0)} ms  •  Tokens: {tokens.get('total_tokens', 0)}\n"
        f"\nStatus: [{color}]{label}[/{color}]",
        title="[bold cyan]💬 Parley Conversation[/bold cyan]",
        border_style="cyan",
        padding=(1, 2),
    ))

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold magenta", show_lines=True)
    table.add_column("Turn", justify="center", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Content", style="white", overflow="fold")
    table.add_column("Tokens", justify="right", style="dim")
    for message in result.messages:
        used = str(message.usage.total_tokens) if message.usage is not None else ""
        table.add_row(str(message.turn), message.role.value, message.content, used)
    out.print(table)

    if show_tools:
        calls = [(m.turn, tc) for m in result.messages for tc in m.tool_calls]
        if calls:
            tools_table = Table(title="Function calls", box=box.SIMPLE, header_style="bold")
            tools_table.add_column("Turn", justify="center")
            tools_table.add_column("Function", style="cyan")
            tools_table.add_column("Call id", style="dim")
            tools_table.add_column("Arguments", overflow="fold")
            for turn, tc in calls:
                tools_table.add_row(str(turn), tc.function_name, tc.id, json.dumps(tc.arguments))
            out.print(tools_table)

    if result.is_error:
        out.print(f"[red]✗ {meta.get('error', 'unknown error')}[/red]")
