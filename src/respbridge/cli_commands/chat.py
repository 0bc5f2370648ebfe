"""``respbridge chat`` — send one prompt and print the reply."""

from __future__ import annotations

import asyncio
import sys

import click

from respbridge.cli_commands._input import resolve_config
from respbridge.cli_commands._output import ConsoleSink, console, print_output
from respbridge.core.interface.errors import AdapterError
from respbridge.core.interface.models import (
    CanonicalMessage,
    ChatCompletionsData,
    ChatCompletionsOutput,
    SamplingParams,
)


@click.command()
@click.argument("prompt")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), default=None,
              help="Client config YAML.")
@click.option("--model", "-m", default=None, help="Model to address.")
@click.option("--system", "-s", default=None, help="Instructions for this exchange.")
@click.option("--previous-response-id", "-p", default=None,
              help="Continue from a previous response.")
@click.option("--temperature", type=float, default=None)
@click.option("--top-p", type=float, default=None)
@click.option("--stream", is_flag=True, help="Stream the reply as it is generated.")
def chat(
    prompt: str,
    config_path: str | None,
    model: str | None,
    system: str | None,
    previous_response_id: str | None,
    temperature: float | None,
    top_p: float | None,
    stream: bool,
) -> None:
    """Send PROMPT to the configured Responses endpoint."""
    from respbridge.core.interface.client import ResponsesClient
    from respbridge.protocols.http.transport import HttpxTransport

    messages: list[CanonicalMessage] = []
    if system:
        messages.append(CanonicalMessage.system(system))
    if previous_response_id:
        messages.append(CanonicalMessage.continuation(previous_response_id))
    messages.append(CanonicalMessage.user(prompt))

    data = ChatCompletionsData(
        messages=messages,
        sampling=SamplingParams(temperature=temperature, top_p=top_p),
    )

    try:
        config = resolve_config(config_path, model)
    except AdapterError as exc:
        console.print(f"[red]Input error:[/red] {exc}")
        sys.exit(1)

    async def _chat() -> ChatCompletionsOutput:
        async with HttpxTransport(
            proxy=config.extra.proxy,
            connect_timeout=config.extra.connect_timeout,
        ) as transport:
            client = ResponsesClient(config, transport)
            if stream:
                output = await client.chat_completions_streaming(data, ConsoleSink())
                console.print()
                return output
            return await client.chat_completions(data)

    try:
        output = asyncio.run(_chat())
    except AdapterError as exc:
        console.print(f"[red]Request error:[/red] {exc}")
        sys.exit(1)

    print_output(output, show_text=not stream)
