"""Canonical conversation model and the Responses transpilation layer."""

from respbridge.core.interface.client import ResponsesClient
from respbridge.core.interface.config import ClientConfig, ModelConfig, load_client_config
from respbridge.core.interface.errors import (
    AdapterError,
    ApiError,
    ConfigError,
    InvalidResponse,
    MalformedPayload,
    MissingCredential,
    TransportFailure,
    UnsupportedCapability,
)
from respbridge.core.interface.models import (
    CanonicalMessage,
    ChatCompletionsData,
    ChatCompletionsOutput,
    ContentPart,
    ConversationHistory,
    EmbeddingsData,
    ImageContent,
    SamplingParams,
    TextContent,
    ToolCall,
    ToolResult,
    ToolResults,
)
from respbridge.core.interface.streaming import SseMessage, StreamReducer, StreamSink, reduce_stream
from respbridge.core.interface.transpiler import Transpiler
from respbridge.core.interface.transpilers.responses import ResponsesTranspiler, build_request, extract_responses

__all__ = [
    "AdapterError",
    "ApiError",
    "CanonicalMessage",
    "ChatCompletionsData",
    "ChatCompletionsOutput",
    "ClientConfig",
    "ConfigError",
    "ContentPart",
    "ConversationHistory",
    "EmbeddingsData",
    "ImageContent",
    "InvalidResponse",
    "MalformedPayload",
    "MissingCredential",
    "ModelConfig",
    "ResponsesClient",
    "ResponsesTranspiler",
    "SamplingParams",
    "SseMessage",
    "StreamReducer",
    "StreamSink",
    "TextContent",
    "ToolCall",
    "ToolResult",
    "ToolResults",
    "Transpiler",
    "TransportFailure",
    "UnsupportedCapability",
    "build_request",
    "extract_responses",
    "load_client_config",
    "reduce_stream",
]
