"""Streaming event reduction for the Responses endpoint.

A streamed reply is a sequence of server-sent events, each carrying a JSON
payload, ended by a literal ``[DONE]`` data line. :class:`StreamReducer` folds
those events into a :class:`ChatCompletionsOutput`:

* text deltas are forwarded to the sink as soon as they arrive;
* tool-call deltas are accumulated per item id and flushed into a
  :class:`ToolCall` when the item id changes or the stream ends;
* flushed tool calls reach the sink once the stream is over, in flush order.

The reducer is pure state: it never touches the network, so it can be driven
from a list of messages in tests.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from respbridge.core.interface.errors import InvalidResponse, MalformedPayload
from respbridge.core.interface.models import ChatCompletionsOutput, ToolCall
from respbridge.core.interface.transpilers.responses import parse_arguments, usage_count

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"

EVENT_TEXT_DELTA = "response.output_text.delta"
EVENT_TOOL_CODE_DELTA = "response.tool_code.delta"
EVENT_CREATED = "response.created"
EVENT_COMPLETED = "response.completed"


@dataclass(frozen=True)
class SseMessage:
    """One server-sent event: its ``event:`` name and its ``data:`` payload."""

    data: str
    event: str = "message"


class StreamSink(Protocol):
    """Receives incremental output while a stream is reduced."""

    def text(self, fragment: str) -> None: ...
    def tool_call(self, call: ToolCall) -> None: ...


class StreamState(enum.Enum):
    INITIAL = "initial"
    STREAMING = "streaming"
    TERMINAL = "terminal"


@dataclass
class StreamAccumulator:
    """The tool call currently being assembled from deltas."""

    item_id: str = ""
    name: str = ""
    arguments: str = ""

    def switch_to(self, item_id: str) -> ToolCall | None:
        """Start accumulating *item_id*; return the finished previous call, if any."""
        if item_id == self.item_id:
            return None
        finished = self.flush()
        self.item_id = item_id
        self.name = ""
        self.arguments = ""
        return finished

    def append(self, name: str | None = None, arguments: str | None = None) -> None:
        if name:
            self.name += name
        if arguments:
            self.arguments += arguments

    def flush(self) -> ToolCall | None:
        """Finalize the pending call. Nothing is pending until a name arrived."""
        if not self.name:
            return None
        return ToolCall(
            name=self.name,
            arguments=parse_arguments(self.arguments),
            id=self.item_id or None,
        )


@dataclass
class StreamReducer:
    """State machine folding Responses stream events into canonical output."""

    sink: StreamSink | None = None
    state: StreamState = StreamState.INITIAL
    accumulator: StreamAccumulator = field(default_factory=StreamAccumulator)
    tool_calls: list[ToolCall] = field(default_factory=list)
    response_id: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    _text: list[str] = field(default_factory=list)

    def feed(self, message: SseMessage) -> bool:
        """Process one event. Returns ``True`` once the terminator was seen.

        Raises:
            MalformedPayload: If the event data is not valid JSON.
        """
        if self.state is StreamState.TERMINAL:
            return True

        if message.data == DONE_SENTINEL:
            self._flush()
            self.state = StreamState.TERMINAL
            return True

        try:
            data: Any = json.loads(message.data)
        except json.JSONDecodeError as exc:
            raise MalformedPayload(f"stream event is not JSON: {exc}", message.data) from exc

        logger.debug("stream-data: %s", message.data)
        self.state = StreamState.STREAMING

        if not isinstance(data, dict):
            return False

        event_type = data.get("type", message.event)
        if event_type == EVENT_TEXT_DELTA:
            delta = data.get("delta")
            if isinstance(delta, str):
                self._text.append(delta)
                if self.sink is not None:
                    self.sink.text(delta)
        elif event_type == EVENT_TOOL_CODE_DELTA:
            self._on_tool_code_delta(data)
        elif event_type in (EVENT_CREATED, EVENT_COMPLETED):
            self._on_response_envelope(data.get("response"))
        return False

    def finish(self) -> ChatCompletionsOutput:
        """End the stream: flush, deliver tool calls, and return the output.

        Also used when the event source ended without a terminator.

        Raises:
            InvalidResponse: If the stream produced neither text nor tool calls.
        """
        if self.state is not StreamState.TERMINAL:
            self._flush()
            self.state = StreamState.TERMINAL

        if self.sink is not None:
            for call in self.tool_calls:
                self.sink.tool_call(call)

        output = ChatCompletionsOutput(
            text="".join(self._text),
            tool_calls=list(self.tool_calls),
            response_id=self.response_id,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )
        if output.is_empty:
            raise InvalidResponse("stream ended without text or tool calls")
        return output

    def _on_tool_code_delta(self, data: dict[str, Any]) -> None:
        item_id = data.get("item_id")
        if isinstance(item_id, str):
            finished = self.accumulator.switch_to(item_id)
            if finished is not None:
                self._complete(finished)

        part = data.get("part")
        if isinstance(part, dict):
            name = part.get("function_name")
            args_chunk = part.get("args_chunk")
            self.accumulator.append(
                name if isinstance(name, str) else None,
                args_chunk if isinstance(args_chunk, str) else None,
            )

    def _on_response_envelope(self, response: Any) -> None:
        if not isinstance(response, dict):
            return
        response_id = response.get("id")
        if isinstance(response_id, str):
            self.response_id = response_id
        usage = response.get("usage")
        input_tokens = usage_count(usage, "input_tokens")
        output_tokens = usage_count(usage, "output_tokens")
        if input_tokens is not None:
            self.input_tokens = input_tokens
        if output_tokens is not None:
            self.output_tokens = output_tokens

    def _flush(self) -> None:
        finished = self.accumulator.flush()
        if finished is not None:
            self._complete(finished)
        self.accumulator = StreamAccumulator()

    def _complete(self, call: ToolCall) -> None:
        logger.debug("flushed tool call %s (%s)", call.name, call.id)
        self.tool_calls.append(call)


async def reduce_stream(
    events: AsyncIterable[SseMessage],
    sink: StreamSink | None = None,
) -> ChatCompletionsOutput:
    """Consume *events* until the terminator (or their end) and reduce them.

    Cancelling the awaiting task propagates out of the event source; nothing
    is flushed on that path.
    """
    reducer = StreamReducer(sink=sink)
    iterator = aiter(events)
    try:
        async for message in iterator:
            if reducer.feed(message):
                break
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
    return reducer.finish()
