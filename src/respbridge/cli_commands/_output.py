"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from respbridge.core.interface.models import ChatCompletionsOutput, ToolCall  # noqa: TC001

console = Console()


class ConsoleSink:
    """Stream sink that prints text as it arrives."""

    def text(self, fragment: str) -> None:
        console.print(fragment, end="", markup=False, highlight=False, soft_wrap=True)

    def tool_call(self, call: ToolCall) -> None:
        # Tabulated from the final output by print_output.
        pass


def print_request_body(body: dict[str, Any]) -> None:
    """Pretty-print a request body as JSON."""
    console.print_json(json.dumps(body))


def print_output(output: ChatCompletionsOutput, *, show_text: bool = True) -> None:
    """Print assistant text, tool calls, and the usage footer."""
    if show_text and output.text:
        console.print(output.text, markup=False, highlight=False)

    if output.tool_calls:
        print_tool_calls(output.tool_calls)

    footer = [f"id: {output.response_id or '-'}"]
    if output.input_tokens is not None:
        footer.append(f"in: {output.input_tokens}")
    if output.output_tokens is not None:
        footer.append(f"out: {output.output_tokens}")
    console.print(f"[dim]{'  '.join(footer)}[/dim]")


def print_tool_calls(calls: list[ToolCall]) -> None:
    """Pretty-print tool calls as a table."""
    table = Table(title="Tool Calls")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Arguments")

    for call in calls:
        table.add_row(call.id or "-", call.name, _truncate(json.dumps(call.arguments)))

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
