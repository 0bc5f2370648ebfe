"""Canonical Message Schema (CMS) — the provider-agnostic conversation model.

Orchestration code only ever sees these types. The Responses transpiler
converts them to the vendor request body, and converts vendor replies back
into a :class:`ChatCompletionsOutput`.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

CONTINUATION_ID = "continuation_id"

# ---------------------------------------------------------------------------
# Content Parts — multimodal content building blocks
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    """Image content part referenced by URL."""

    type: Literal["image"] = "image"
    url: str


ContentPart = TextContent | ImageContent


# ---------------------------------------------------------------------------
# Tool Calling — structured tool invocations and results
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation requested by the assistant.

    ``id`` correlates the call with a later :class:`ToolResult`; the server
    assigns it, so it is absent for calls built locally.
    """

    name: str
    arguments: Any = Field(default_factory=dict)
    id: str | None = None


class ToolResult(BaseModel):
    """The output of one executed tool call."""

    call_id: str
    output: str


class ToolResults(BaseModel):
    """Tool-role content: the ordered outputs of a batch of tool calls."""

    type: Literal["tool_results"] = "tool_results"
    results: list[ToolResult] = []


MessageContent = str | list[ContentPart] | ToolResults


def content_to_text(content: MessageContent) -> str:
    """Flatten any content variant into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, ToolResults):
        return "\n".join(r.output for r in content.results)
    return "\n\n".join(part.text for part in content if isinstance(part, TextContent))


# ---------------------------------------------------------------------------
# Canonical Message — the core message type
# ---------------------------------------------------------------------------


class CanonicalMessage(BaseModel):
    """A single message in the canonical format.

    Roles:
    - system: instructions
    - user: human input
    - assistant: model output (may carry tool_calls and a continuation id)
    - tool: tool execution results (content is :class:`ToolResults`)
    """

    role: Literal["system", "user", "assistant", "tool"]
    content: MessageContent = ""
    tool_calls: list[ToolCall] | None = None
    metadata: dict[str, Any] = {}

    @model_validator(mode="after")
    def _check_role_content(self) -> "CanonicalMessage":
        if self.metadata.get(CONTINUATION_ID) is not None and self.role != "assistant":
            msg = f"only assistant messages may carry {CONTINUATION_ID!r}, got role {self.role!r}"
            raise ValueError(msg)
        if self.role == "tool" and not isinstance(self.content, ToolResults):
            msg = "tool messages must carry ToolResults content"
            raise ValueError(msg)
        return self

    @property
    def text(self) -> str:
        """Concatenated text of the message content."""
        return content_to_text(self.content)

    @property
    def continuation_id(self) -> str | None:
        """Server-assigned id of the response this message came from, if known."""
        value = self.metadata.get(CONTINUATION_ID)
        return str(value) if value is not None else None

    @property
    def is_plain_text(self) -> bool:
        """Whether the content is a plain string rather than parts or tool results."""
        return isinstance(self.content, str)

    @classmethod
    def system(cls, text: str, **metadata: Any) -> "CanonicalMessage":
        """Create a system message."""
        return cls(role="system", content=text, metadata=metadata)

    @classmethod
    def user(cls, content: str | list[ContentPart], **metadata: Any) -> "CanonicalMessage":
        """Create a user message from text or content parts."""
        return cls(role="user", content=content, metadata=metadata)

    @classmethod
    def assistant(
        cls,
        text: str = "",
        tool_calls: list[ToolCall] | None = None,
        **metadata: Any,
    ) -> "CanonicalMessage":
        """Create an assistant message."""
        return cls(role="assistant", content=text, tool_calls=tool_calls, metadata=metadata)

    @classmethod
    def continuation(cls, response_id: str) -> "CanonicalMessage":
        """Create a content-free assistant message that only records a response id."""
        return cls(role="assistant", content="", metadata={CONTINUATION_ID: response_id})

    @classmethod
    def tool(cls, results: list[ToolResult], **metadata: Any) -> "CanonicalMessage":
        """Create a tool-result message."""
        return cls(role="tool", content=ToolResults(results=results), metadata=metadata)


# ---------------------------------------------------------------------------
# Conversation History — ordered container of messages
# ---------------------------------------------------------------------------


class ConversationHistory(BaseModel):
    """An ordered sequence of canonical messages forming a conversation."""

    messages: list[CanonicalMessage] = []

    def append(self, message: CanonicalMessage) -> None:
        """Append a message to the history."""
        self.messages.append(message)

    def record_output(self, output: "ChatCompletionsOutput") -> CanonicalMessage:
        """Append the assistant turn for *output*, tagged with its response id."""
        metadata: dict[str, Any] = {}
        if output.response_id:
            metadata[CONTINUATION_ID] = output.response_id
        message = CanonicalMessage.assistant(
            output.text,
            tool_calls=list(output.tool_calls) or None,
            **metadata,
        )
        self.append(message)
        return message

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):  # type: ignore[override]
        return iter(self.messages)


# ---------------------------------------------------------------------------
# Request inputs and reply output
# ---------------------------------------------------------------------------


class SamplingParams(BaseModel):
    """Optional sampling controls forwarded to the endpoint."""

    temperature: float | None = None
    top_p: float | None = None


class ChatCompletionsData(BaseModel):
    """Everything needed to build one Responses request."""

    messages: list[CanonicalMessage]
    sampling: SamplingParams = Field(default_factory=SamplingParams)
    functions: list[dict[str, Any]] | None = None
    stream: bool = False


class EmbeddingsData(BaseModel):
    """Texts to embed through the sibling embeddings endpoint."""

    texts: list[str]


class ChatCompletionsOutput(BaseModel):
    """Canonical result of one exchange.

    An output with no text and no tool calls is not a valid result; producers
    raise :class:`~respbridge.core.interface.errors.InvalidResponse` instead of
    returning one.
    """

    text: str = ""
    tool_calls: list[ToolCall] = []
    response_id: str | None = None
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tool_calls
