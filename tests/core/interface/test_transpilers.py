"""Tests for the Responses transpiler: request building and reply extraction."""

import json
from typing import Any

import pytest

from respbridge.core.interface.errors import InvalidResponse, MalformedPayload
from respbridge.core.interface.models import (
    CanonicalMessage,
    ContentPart,
    ImageContent,
    SamplingParams,
    TextContent,
    ToolCall,
    ToolResult,
)
from respbridge.core.interface.transpilers.responses import (
    ResponsesTranspiler,
    build_request,
    extract_responses,
    parse_arguments,
)

WEATHER_TOOL: dict[str, Any] = {
    "name": "get_weather",
    "description": "Look up the weather",
    "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
}


def _build(messages: list[CanonicalMessage], **kwargs: Any) -> dict[str, Any]:
    return build_request(
        messages,
        kwargs.pop("sampling", None),
        kwargs.pop("tools", None),
        kwargs.pop("stream", False),
        kwargs.pop("model", "gpt-4o"),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Request Body Builder
# ---------------------------------------------------------------------------


class TestBuildInput:
    def test_single_plain_message_is_bare_string(self) -> None:
        body = _build([CanonicalMessage.user("Hello")])
        assert body == {"model": "gpt-4o", "input": "Hello"}

    def test_single_message_with_parts_is_array(self) -> None:
        parts: list[ContentPart] = [
            TextContent(text="What's this?"),
            ImageContent(url="https://example.com/cat.png"),
        ]
        body = _build([CanonicalMessage.user(parts)])
        assert body["input"] == [
            {
                "role": "user",
                "content": [
                    {"type": "input_text", "text": "What's this?"},
                    {"type": "input_image", "image_url": "https://example.com/cat.png"},
                ],
            }
        ]

    def test_multi_turn_transcript(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("Hi"),
                CanonicalMessage.assistant("Hello!"),
                CanonicalMessage.user("How are you?"),
            ]
        )
        assert body["input"] == [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello!"},
            {"role": "user", "content": "How are you?"},
        ]

    def test_assistant_parts_use_output_prefix(self) -> None:
        parts: list[ContentPart] = [TextContent(text="Sure")]
        body = _build(
            [
                CanonicalMessage.user("Hi"),
                CanonicalMessage(role="assistant", content=parts),
                CanonicalMessage.user("Thanks"),
            ]
        )
        assert body["input"][1] == {
            "role": "assistant",
            "content": [{"type": "output_text", "text": "Sure"}],
        }

    def test_tool_results_become_synthetic_user_turn(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("Weather in SF?"),
                CanonicalMessage.assistant(
                    tool_calls=[ToolCall(name="get_weather", arguments={"city": "sf"}, id="a")]
                ),
                CanonicalMessage.tool(
                    [ToolResult(call_id="a", output="sunny"), ToolResult(call_id="b", output="72F")]
                ),
            ]
        )
        assert body["input"] == [
            {"role": "user", "content": "Weather in SF?"},
            {
                "role": "user",
                "content": [
                    {
                        "type": "tool_outputs",
                        "tool_outputs": [
                            {"tool_call_id": "a", "output": "sunny"},
                            {"tool_call_id": "b", "output": "72F"},
                        ],
                    }
                ],
            },
        ]

    def test_system_messages_never_rendered(self) -> None:
        body = _build([CanonicalMessage.system("Be brief."), CanonicalMessage.user("Hi")])
        assert body["input"] == "Hi"
        assert body["instructions"] == "Be brief."

    def test_empty_conversation(self) -> None:
        body = _build([])
        assert body == {"model": "gpt-4o", "input": ""}


class TestBuildInstructions:
    def test_most_recent_system_message_wins(self) -> None:
        body = _build(
            [
                CanonicalMessage.system("old"),
                CanonicalMessage.user("Hi"),
                CanonicalMessage.assistant("Hey"),
                CanonicalMessage.system("new"),
                CanonicalMessage.user("Again"),
            ]
        )
        assert body["instructions"] == "new"

    def test_no_system_message_omits_field(self) -> None:
        assert "instructions" not in _build([CanonicalMessage.user("Hi")])


class TestBuildContinuation:
    def test_metadata_continuation(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("Hi"),
                CanonicalMessage.continuation("resp_123"),
                CanonicalMessage.user("Next"),
            ]
        )
        assert body["previous_response_id"] == "resp_123"
        assert body["input"] == "Next"

    def test_recorded_assistant_turn_is_cut(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("Hi"),
                CanonicalMessage.assistant("Hello!", continuation_id="resp_1"),
                CanonicalMessage.user("Next"),
            ]
        )
        assert body["previous_response_id"] == "resp_1"
        assert body["input"] == "Next"

    def test_most_recent_carrier_wins(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("1"),
                CanonicalMessage.continuation("resp_1"),
                CanonicalMessage.user("2"),
                CanonicalMessage.continuation("resp_2"),
                CanonicalMessage.user("3"),
            ]
        )
        assert body["previous_response_id"] == "resp_2"
        assert body["input"] == "3"

    def test_legacy_marker_when_enabled(self) -> None:
        messages = [
            CanonicalMessage.user("Hi"),
            CanonicalMessage.assistant("response_id:resp_123"),
            CanonicalMessage.user("Next"),
        ]
        body = _build(messages, legacy_marker=True)
        assert body["previous_response_id"] == "resp_123"
        assert body["input"] == "Next"
        assert "response_id:" not in json.dumps(body["input"])

    def test_legacy_marker_ignored_by_default(self) -> None:
        messages = [
            CanonicalMessage.user("Hi"),
            CanonicalMessage.assistant("response_id:resp_123"),
            CanonicalMessage.user("Next"),
        ]
        body = _build(messages)
        assert "previous_response_id" not in body
        assert body["input"][1] == {"role": "assistant", "content": "response_id:resp_123"}

    def test_user_text_with_marker_is_never_a_continuation(self) -> None:
        body = _build([CanonicalMessage.user("response_id:resp_123")], legacy_marker=True)
        assert "previous_response_id" not in body
        assert body["input"] == "response_id:resp_123"

    def test_legacy_marker_only_in_plain_text(self) -> None:
        messages = [
            CanonicalMessage(role="assistant", content=[TextContent(text="response_id:resp_1")]),
            CanonicalMessage.user("Next"),
        ]
        body = _build(messages, legacy_marker=True)
        assert "previous_response_id" not in body
        assert body["input"][0]["content"] == [{"type": "output_text", "text": "response_id:resp_1"}]

    def test_tool_outputs_after_continuation(self) -> None:
        body = _build(
            [
                CanonicalMessage.user("Weather?"),
                CanonicalMessage.assistant(
                    tool_calls=[ToolCall(name="get_weather", id="a")], continuation_id="resp_7"
                ),
                CanonicalMessage.tool([ToolResult(call_id="a", output="sunny")]),
            ]
        )
        assert body["previous_response_id"] == "resp_7"
        assert body["input"] == [
            {
                "role": "user",
                "content": [
                    {
                        "type": "tool_outputs",
                        "tool_outputs": [{"tool_call_id": "a", "output": "sunny"}],
                    }
                ],
            }
        ]


class TestBuildOptionalFields:
    def test_sampling_and_stream(self) -> None:
        body = _build(
            [CanonicalMessage.user("Hi")],
            sampling=SamplingParams(temperature=0.2, top_p=0.9),
            stream=True,
        )
        assert body["temperature"] == 0.2
        assert body["top_p"] == 0.9
        assert body["stream"] is True

    def test_defaults_are_omitted(self) -> None:
        body = _build([CanonicalMessage.user("Hi")], sampling=SamplingParams())
        assert set(body) == {"model", "input"}

    def test_tools_wrapped(self) -> None:
        body = _build([CanonicalMessage.user("Hi")], tools=[WEATHER_TOOL])
        assert body["tools"] == [{"type": "function", "function": WEATHER_TOOL}]

    def test_tools_are_copied(self) -> None:
        tools = [{"name": "f", "parameters": {"type": "object"}}]
        body = _build([CanonicalMessage.user("Hi")], tools=tools)
        body["tools"][0]["function"]["parameters"]["type"] = "changed"
        assert tools[0]["parameters"] == {"type": "object"}


class TestBuildPurity:
    def test_identical_inputs_give_identical_bytes(self) -> None:
        messages = [
            CanonicalMessage.system("sys"),
            CanonicalMessage.user("Hi"),
            CanonicalMessage.assistant("Hey"),
            CanonicalMessage.user("Weather?"),
        ]
        kwargs: dict[str, Any] = {
            "sampling": SamplingParams(temperature=0.5),
            "tools": [WEATHER_TOOL],
            "stream": True,
        }
        first = json.dumps(_build(messages, **dict(kwargs)))
        second = json.dumps(_build(messages, **dict(kwargs)))
        assert first == second

    def test_inputs_not_mutated(self) -> None:
        messages = [CanonicalMessage.user("Hi"), CanonicalMessage.continuation("r")]
        snapshot = [m.model_dump() for m in messages]
        _build(messages + [CanonicalMessage.user("Next")])
        assert [m.model_dump() for m in messages] == snapshot


class TestTranspilerToProvider:
    def test_delegates_to_builder(self) -> None:
        transpiler = ResponsesTranspiler(legacy_continuation_marker=True)
        body = transpiler.to_provider(
            [
                CanonicalMessage.user("Hi"),
                CanonicalMessage.assistant("response_id:resp_5"),
                CanonicalMessage.user("More"),
            ],
            model="gpt-4o-mini",
        )
        assert body == {"model": "gpt-4o-mini", "input": "More", "previous_response_id": "resp_5"}


# ---------------------------------------------------------------------------
# Synchronous Response Extractor
# ---------------------------------------------------------------------------


def _rich_reply(*parts: dict[str, Any], usage: dict[str, Any] | None = None) -> dict[str, Any]:
    reply: dict[str, Any] = {
        "id": "resp_abc",
        "output": [{"type": "message", "content": list(parts)}],
    }
    if usage is not None:
        reply["usage"] = usage
    return reply


class TestExtractRich:
    def test_text_and_usage(self) -> None:
        reply = _rich_reply(
            {"type": "output_text", "text": "Hello "},
            {"type": "output_text", "text": "world"},
            usage={"input_tokens": 12, "output_tokens": 3},
        )
        output = extract_responses(reply)
        assert output.text == "Hello world"
        assert output.tool_calls == []
        assert output.response_id == "resp_abc"
        assert output.input_tokens == 12
        assert output.output_tokens == 3

    def test_usage_optional(self) -> None:
        output = extract_responses(_rich_reply({"type": "output_text", "text": "x"}))
        assert output.input_tokens is None
        assert output.output_tokens is None

    def test_tool_code(self) -> None:
        reply = _rich_reply(
            {
                "type": "tool_code",
                "id": "call_1",
                "function": {"name": "get_weather", "args": '{"city": "sf"}'},
            }
        )
        output = extract_responses(reply)
        assert output.text == ""
        assert output.tool_calls == [
            ToolCall(name="get_weather", arguments={"city": "sf"}, id="call_1")
        ]

    def test_tool_code_with_bad_args_degrades(self) -> None:
        reply = _rich_reply(
            {"type": "tool_code", "id": "call_1", "function": {"name": "f", "args": "{oops"}}
        )
        output = extract_responses(reply)
        assert output.tool_calls[0].arguments == {}

    def test_tool_code_without_id_is_skipped(self) -> None:
        reply = _rich_reply(
            {"type": "output_text", "text": "ok"},
            {"type": "tool_code", "function": {"name": "f", "args": "{}"}},
        )
        assert extract_responses(reply).tool_calls == []

    def test_walks_multiple_outputs(self) -> None:
        reply = {
            "id": "r",
            "output": [
                {"content": [{"type": "output_text", "text": "a"}]},
                {"type": "reasoning"},
                {"content": [{"type": "output_text", "text": "b"}]},
            ],
        }
        assert extract_responses(reply).text == "ab"

    def test_empty_reply_rejected_with_payload(self) -> None:
        reply = {"id": "r", "output": []}
        with pytest.raises(InvalidResponse) as exc_info:
            extract_responses(reply)
        assert exc_info.value.payload == reply

    def test_reduced_path_not_used_by_rich(self) -> None:
        reply = {"id": "r", "output": [{"content": [{"text": "untyped"}]}]}
        with pytest.raises(InvalidResponse):
            extract_responses(reply, "rich")

    def test_non_object_is_malformed(self) -> None:
        with pytest.raises(MalformedPayload):
            extract_responses("not json")


class TestExtractReduced:
    def test_single_text_path(self) -> None:
        reply = {
            "id": "r",
            "output": [{"content": [{"text": "Hi there"}]}],
            "usage": {"input_tokens": 1, "output_tokens": 2},
        }
        output = extract_responses(reply, "reduced")
        assert output.text == "Hi there"
        assert output.tool_calls == []
        assert output.output_tokens == 2

    def test_ignores_tool_code(self) -> None:
        reply = _rich_reply(
            {"type": "tool_code", "id": "c", "function": {"name": "f", "args": "{}"}}
        )
        with pytest.raises(InvalidResponse):
            extract_responses(reply, "reduced")

    def test_missing_path(self) -> None:
        with pytest.raises(InvalidResponse):
            extract_responses({"id": "r", "output": []}, "reduced")

    def test_transpiler_uses_configured_variant(self) -> None:
        reply = {"id": "r", "output": [{"content": [{"text": "plain"}]}]}
        assert ResponsesTranspiler("reduced").from_provider(reply).text == "plain"
        with pytest.raises(InvalidResponse):
            ResponsesTranspiler("rich").from_provider(reply)


class TestParseArguments:
    def test_valid(self) -> None:
        assert parse_arguments('{"a": 1}') == {"a": 1}

    def test_empty(self) -> None:
        assert parse_arguments("") == {}

    def test_invalid(self) -> None:
        assert parse_arguments("{not json") == {}
