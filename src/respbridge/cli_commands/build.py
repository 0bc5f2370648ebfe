"""``respbridge build`` — print the request body for a conversation file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from respbridge.cli_commands._input import load_conversation, resolve_config
from respbridge.cli_commands._output import console, print_request_body
from respbridge.core.interface.errors import AdapterError


@click.command()
@click.argument("conversation", type=click.Path(exists=True))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), default=None,
              help="Client config YAML.")
@click.option("--model", "-m", default=None, help="Model to address.")
@click.option("--stream", is_flag=True, help="Build the streaming variant of the request.")
def build(conversation: str, config_path: str | None, model: str | None, stream: bool) -> None:
    """Render CONVERSATION (YAML) as a Responses request body without sending it."""
    from respbridge.core.interface.client import ResponsesClient

    try:
        config = resolve_config(config_path, model)
        data = load_conversation(Path(conversation))
    except AdapterError as exc:
        console.print(f"[red]Input error:[/red] {exc}")
        sys.exit(1)

    client = ResponsesClient(config)
    body = client.build_body(data.model_copy(update={"stream": stream or data.stream}))
    print_request_body(body)
