"""Responses transpiler — CMS <-> the vendor ``/responses`` wire format.

The endpoint keeps conversation state server-side: a request may name the
response it continues (``previous_response_id``) and then only carries the
turns the server has not seen yet. Instructions travel in their own field
rather than as a system turn.

Two reply shapes exist for the same endpoint version:

* ``rich`` — ``output[].content[]`` parts typed ``output_text`` / ``tool_code``;
* ``reduced`` — a single ``output[0].content[0].text`` string, no tool calls.

The shape is chosen once per transpiler instance and never guessed.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Literal

from respbridge.core.interface.errors import InvalidResponse, MalformedPayload
from respbridge.core.interface.models import (
    CanonicalMessage,
    ChatCompletionsOutput,
    ImageContent,
    SamplingParams,
    TextContent,
    ToolCall,
    ToolResults,
)

logger = logging.getLogger(__name__)

WireVariant = Literal["rich", "reduced"]

LEGACY_CONTINUATION_MARKER = "response_id:"


class ResponsesTranspiler:
    """Converts between CMS and the Responses request/reply format."""

    def __init__(
        self,
        variant: WireVariant = "rich",
        *,
        legacy_continuation_marker: bool = False,
    ) -> None:
        self.variant: WireVariant = variant
        self.legacy_continuation_marker = legacy_continuation_marker

    def to_provider(
        self,
        messages: list[CanonicalMessage],
        *,
        model: str,
        sampling: SamplingParams | None = None,
        tools: list[dict[str, Any]] | None = None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Build the request body for *messages*."""
        return build_request(
            messages,
            sampling,
            tools,
            stream,
            model,
            legacy_marker=self.legacy_continuation_marker,
        )

    def from_provider(self, response: Any) -> ChatCompletionsOutput:
        """Extract canonical output from a complete reply."""
        return extract_responses(response, self.variant)


# ---------------------------------------------------------------------------
# Request Body Builder
# ---------------------------------------------------------------------------


def build_request(
    messages: list[CanonicalMessage],
    sampling: SamplingParams | None,
    tools: list[dict[str, Any]] | None,
    stream: bool,
    model: str,
    *,
    legacy_marker: bool = False,
) -> dict[str, Any]:
    """Build a Responses request body.

    Optional fields are omitted rather than sent as ``null``/``false``. The
    result depends only on the arguments, which are never mutated.
    """
    instructions = _latest_instructions(messages)
    cut, previous_response_id = _find_continuation(messages, legacy_marker)

    pending = [m for m in messages[cut:] if m.role != "system"]

    body: dict[str, Any] = {
        "model": model,
        "input": _render_input(pending),
    }

    if instructions:
        body["instructions"] = instructions
    if previous_response_id:
        body["previous_response_id"] = previous_response_id
    if sampling is not None:
        if sampling.temperature is not None:
            body["temperature"] = sampling.temperature
        if sampling.top_p is not None:
            body["top_p"] = sampling.top_p
    if stream:
        body["stream"] = True
    if tools:
        body["tools"] = [{"type": "function", "function": copy.deepcopy(t)} for t in tools]

    return body


def _latest_instructions(messages: list[CanonicalMessage]) -> str | None:
    for message in reversed(messages):
        if message.role == "system":
            return message.text
    return None


def _find_continuation(
    messages: list[CanonicalMessage], legacy_marker: bool
) -> tuple[int, str | None]:
    """Locate the newest continuation carrier.

    Everything up to and including the carrier is history the server already
    holds; the returned index is where the pending turns start. Without a
    carrier the whole transcript is pending.
    """
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if message.role != "assistant":
            continue
        response_id = message.continuation_id
        if response_id is None and legacy_marker:
            response_id = _parse_legacy_marker(message)
        if response_id:
            return index + 1, response_id
    return 0, None


def _parse_legacy_marker(message: CanonicalMessage) -> str | None:
    if message.is_plain_text and message.text.startswith(LEGACY_CONTINUATION_MARKER):
        return message.text[len(LEGACY_CONTINUATION_MARKER) :].strip() or None
    return None


def _render_input(messages: list[CanonicalMessage]) -> str | list[dict[str, Any]]:
    # A lone plain-text user turn is sent as a bare string.
    if len(messages) == 1 and messages[0].role == "user" and messages[0].is_plain_text:
        return messages[0].text

    items: list[dict[str, Any]] = []
    for message in messages:
        item = _render_message(message)
        if item is not None:
            items.append(item)
    return items if items else ""


def _render_message(message: CanonicalMessage) -> dict[str, Any] | None:
    content = message.content

    if isinstance(content, ToolResults):
        return {
            "role": "user",
            "content": [
                {
                    "type": "tool_outputs",
                    "tool_outputs": [
                        {"tool_call_id": r.call_id, "output": r.output} for r in content.results
                    ],
                }
            ],
        }

    if isinstance(content, str):
        if not content and message.role == "assistant":
            return None
        return {"role": message.role, "content": content}

    prefix = "output_" if message.role == "assistant" else "input_"
    return {
        "role": message.role,
        "content": [_render_part(part, prefix) for part in content],
    }


def _render_part(part: TextContent | ImageContent, prefix: str) -> dict[str, Any]:
    if isinstance(part, TextContent):
        return {"type": f"{prefix}text", "text": part.text}
    return {"type": f"{prefix}image", "image_url": part.url}


# ---------------------------------------------------------------------------
# Synchronous Response Extractor
# ---------------------------------------------------------------------------


def extract_responses(data: Any, variant: WireVariant = "rich") -> ChatCompletionsOutput:
    """Reduce a complete reply into canonical output.

    Raises:
        MalformedPayload: If *data* is not a JSON object.
        InvalidResponse: If neither text nor tool calls were found.
    """
    if not isinstance(data, dict):
        raise MalformedPayload("expected a JSON object", data)

    if variant == "rich":
        text, tool_calls = _walk_rich_output(data)
    else:
        text, tool_calls = _reduced_text(data), []

    if not text and not tool_calls:
        raise InvalidResponse(data)

    response_id = data.get("id")
    return ChatCompletionsOutput(
        text=text,
        tool_calls=tool_calls,
        response_id=response_id if isinstance(response_id, str) else None,
        input_tokens=usage_count(data.get("usage"), "input_tokens"),
        output_tokens=usage_count(data.get("usage"), "output_tokens"),
    )


def _walk_rich_output(data: dict[str, Any]) -> tuple[str, list[ToolCall]]:
    text = ""
    tool_calls: list[ToolCall] = []
    outputs = data.get("output")
    if not isinstance(outputs, list):
        return text, tool_calls

    for output in outputs:
        content = output.get("content") if isinstance(output, dict) else None
        if not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict):
                continue
            if part.get("type") == "output_text":
                value = part.get("text")
                if isinstance(value, str):
                    text += value
            elif part.get("type") == "tool_code":
                call_id = part.get("id")
                function = part.get("function")
                if isinstance(call_id, str) and isinstance(function, dict):
                    name = function.get("name")
                    args = function.get("args")
                    tool_calls.append(
                        ToolCall(
                            name=name if isinstance(name, str) else "",
                            arguments=parse_arguments(args if isinstance(args, str) else ""),
                            id=call_id,
                        )
                    )
    return text, tool_calls


def _reduced_text(data: dict[str, Any]) -> str:
    try:
        value = data["output"][0]["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return value if isinstance(value, str) else ""


def usage_count(usage: Any, key: str) -> int | None:
    """Read a non-negative integer token counter, or ``None``."""
    if not isinstance(usage, dict):
        return None
    value = usage.get(key)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def parse_arguments(raw: str) -> Any:
    """Parse tool-call arguments, degrading to ``{}`` on invalid JSON."""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Unparseable tool-call arguments, using {}: %r", raw)
        return {}
