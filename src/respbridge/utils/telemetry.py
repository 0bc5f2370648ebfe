"""OpenTelemetry tracing helpers for respbridge.

``get_tracer()`` works whether or not the SDK is installed: without a
configured SDK the API hands out no-op tracers, so instrumented exchanges cost
next to nothing unless tracing is switched on.

Usage::

    from respbridge.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("responses.chat") as span:
        span.set_attribute(ATTR_MODEL, "gpt-4o")

Real export needs :func:`configure_telemetry` (``pip install respbridge[otel]``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from respbridge.core.interface.models import ChatCompletionsOutput

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Semantic attribute keys
# ---------------------------------------------------------------------------

ATTR_MODEL = "respbridge.model"
ATTR_CLIENT = "respbridge.client"
ATTR_WIRE_VARIANT = "respbridge.wire_variant"
ATTR_STREAM = "respbridge.stream"
ATTR_RESPONSE_ID = "respbridge.response_id"
ATTR_TOKENS_INPUT = "respbridge.tokens.input"
ATTR_TOKENS_OUTPUT = "respbridge.tokens.output"
ATTR_TOOL_CALLS = "respbridge.tool_calls"
ATTR_STATUS_CODE = "respbridge.status_code"

_INSTRUMENTATION_NAME = "respbridge"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def record_output(span: Any, output: ChatCompletionsOutput) -> None:
    """Attach the response id, token counters and tool-call count to *span*."""
    if output.response_id is not None:
        span.set_attribute(ATTR_RESPONSE_ID, output.response_id)
    if output.input_tokens is not None:
        span.set_attribute(ATTR_TOKENS_INPUT, output.input_tokens)
    if output.output_tokens is not None:
        span.set_attribute(ATTR_TOKENS_OUTPUT, output.output_tokens)
    span.set_attribute(ATTR_TOOL_CALLS, len(output.tool_calls))


def configure_telemetry(
    *,
    service_name: str = "respbridge",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> Any:
    """Install an SDK tracer provider for respbridge spans.

    Console export writes each finished span as JSON to stdout as soon as it
    ends; OTLP export batches spans to *otlp_endpoint* over gRPC. Both may be
    active at once. Returns the installed provider.

    Raises:
        ImportError: If ``respbridge[otel]`` is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install respbridge[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for processor in _span_processors(export_to_console, otlp_endpoint):
        provider.add_span_processor(processor)

    trace.set_tracer_provider(provider)
    logger.info(
        "Tracing enabled for %s (console=%s, otlp=%s)",
        service_name,
        export_to_console,
        otlp_endpoint or "-",
    )
    return provider


def _span_processors(export_to_console: bool, otlp_endpoint: str | None) -> list[Any]:
    from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
                OTLPSpanExporter,
            )
        except ImportError as exc:
            msg = (
                "opentelemetry-exporter-otlp is required for OTLP export. "
                "Install it with: pip install respbridge[otel]"
            )
            raise ImportError(msg) from exc
        processors.append(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    return processors
