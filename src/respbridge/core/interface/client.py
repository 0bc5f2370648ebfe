"""ResponsesClient — async interface to the Responses endpoint.

Prepares requests with the :class:`ResponsesTranspiler`, hands them to a
caller-supplied transport, and turns replies into canonical output. The
transport owns connections, retries and timeouts; this layer never retries.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from respbridge.core.interface.config import ClientConfig
from respbridge.core.interface.errors import (
    MalformedPayload,
    UnsupportedCapability,
    catch_error,
    classify_response,
)
from respbridge.core.interface.models import (
    ChatCompletionsData,
    ChatCompletionsOutput,
    EmbeddingsData,
)
from respbridge.core.interface.streaming import StreamSink, reduce_stream
from respbridge.core.interface.transpilers.responses import ResponsesTranspiler
from respbridge.protocols.http.models import RequestData
from respbridge.utils.telemetry import (
    ATTR_CLIENT,
    ATTR_MODEL,
    ATTR_STATUS_CODE,
    ATTR_STREAM,
    ATTR_WIRE_VARIANT,
    get_tracer,
    record_output,
)

if TYPE_CHECKING:
    from respbridge.protocols.http.transport import Transport

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)

ORGANIZATION_HEADER = "OpenAI-Organization"


class ResponsesClient:
    """Client for one configured Responses endpoint.

    Usage::

        config = ClientConfig(api_key="sk-...")
        async with HttpxTransport() as transport:
            client = ResponsesClient(config, transport)
            output = await client.chat_completions(
                ChatCompletionsData(messages=[CanonicalMessage.user("Hello")])
            )
    """

    def __init__(self, config: ClientConfig, transport: Transport | None = None) -> None:
        self.config = config
        self._transport = transport
        self.transpiler = ResponsesTranspiler(
            config.wire_variant,
            legacy_continuation_marker=config.legacy_continuation_marker,
        )

    # -- chat -----------------------------------------------------------------

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            msg = "ResponsesClient needs a transport to send requests"
            raise RuntimeError(msg)
        return self._transport

    def build_body(self, data: ChatCompletionsData, model: str | None = None) -> dict[str, Any]:
        """Build the ``/responses`` body for *data*, patch included.

        Needs no credentials, so it also serves offline rendering.
        """
        entry = self.config.resolve_model(model)

        tools = data.functions if entry.supports_function_calling else None
        body = self.transpiler.to_provider(
            data.messages,
            model=entry.wire_name,
            sampling=data.sampling,
            tools=tools,
            stream=data.stream,
        )
        if self.config.patch:
            body = merge_patch(body, self.config.patch)
        return body

    def prepare_chat_completions(
        self, data: ChatCompletionsData, model: str | None = None
    ) -> RequestData:
        """Build the authenticated ``/responses`` request for *data*.

        Raises:
            MissingCredential: If no API key can be resolved.
        """
        api_key = self.config.get_api_key()
        body = self.build_body(data, model)
        return self._authorized(f"{self.config.get_api_base()}/responses", body, api_key)

    async def chat_completions(
        self, data: ChatCompletionsData, model: str | None = None
    ) -> ChatCompletionsOutput:
        """Run one non-streaming exchange."""
        with _tracer.start_as_current_span("responses.chat") as span:
            self._annotate(span, model, stream=False)
            request = self.prepare_chat_completions(data.model_copy(update={"stream": False}), model)

            response = await self.transport.send(request)
            span.set_attribute(ATTR_STATUS_CODE, response.status)
            logger.debug("non-stream-data: %s", response.body)

            output = classify_response(response.status, response.body, self.transpiler.from_provider)
            record_output(span, output)
            return output

    async def chat_completions_streaming(
        self,
        data: ChatCompletionsData,
        sink: StreamSink | None = None,
        model: str | None = None,
    ) -> ChatCompletionsOutput:
        """Run one streaming exchange, forwarding increments to *sink*."""
        with _tracer.start_as_current_span("responses.chat_stream") as span:
            self._annotate(span, model, stream=True)
            request = self.prepare_chat_completions(data.model_copy(update={"stream": True}), model)

            output = await reduce_stream(self.transport.stream(request), sink)
            record_output(span, output)
            return output

    # -- embeddings / rerank ----------------------------------------------------

    def prepare_embeddings(self, data: EmbeddingsData, model: str | None = None) -> RequestData:
        """Build the authenticated ``/embeddings`` request for *data*."""
        api_key = self.config.get_api_key()
        entry = self.config.resolve_model(model)
        body: dict[str, Any] = {"input": list(data.texts), "model": entry.wire_name}
        return self._authorized(f"{self.config.get_api_base()}/embeddings", body, api_key)

    async def embeddings(
        self, data: EmbeddingsData, model: str | None = None
    ) -> list[list[float]]:
        """Embed *data* through the sibling embeddings endpoint."""
        with _tracer.start_as_current_span("responses.embeddings") as span:
            span.set_attribute(ATTR_MODEL, self.config.resolve_model(model).wire_name)
            request = self.prepare_embeddings(data, model)
            response = await self.transport.send(request)
            span.set_attribute(ATTR_STATUS_CODE, response.status)
            catch_error(response.body, response.status)
            return _extract_embeddings(response.body)

    async def rerank(self, *_: Any, **__: Any) -> None:
        """Reranking is not offered by this endpoint."""
        raise UnsupportedCapability("rerank")

    # -- helpers --------------------------------------------------------------

    def _authorized(self, url: str, body: dict[str, Any], api_key: str) -> RequestData:
        request = RequestData(url=url, body=body)
        request.bearer_auth(api_key)
        if self.config.organization_id:
            request.header(ORGANIZATION_HEADER, self.config.organization_id)
        return request

    def _annotate(self, span: Any, model: str | None, *, stream: bool) -> None:
        span.set_attribute(ATTR_CLIENT, self.config.env_prefix.lower())
        span.set_attribute(ATTR_MODEL, self.config.resolve_model(model).wire_name)
        span.set_attribute(ATTR_WIRE_VARIANT, self.config.wire_variant)
        span.set_attribute(ATTR_STREAM, stream)


def merge_patch(body: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge *patch* into a copy of *body*; ``None`` values delete keys."""
    merged = copy.deepcopy(body)
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_patch(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _extract_embeddings(data: Any) -> list[list[float]]:
    entries = data.get("data") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise MalformedPayload("Invalid embeddings data", data)
    vectors: list[list[float]] = []
    for entry in entries:
        embedding = entry.get("embedding") if isinstance(entry, dict) else None
        if not isinstance(embedding, list):
            raise MalformedPayload("Invalid embeddings data", data)
        vectors.append([float(v) for v in embedding])
    return vectors
