"""HTTP transport — JSON exchanges and server-sent event streams."""

from respbridge.protocols.http.models import RequestData, TransportResponse
from respbridge.protocols.http.transport import HttpxTransport, SseParser, Transport

__all__ = [
    "HttpxTransport",
    "RequestData",
    "SseParser",
    "Transport",
    "TransportResponse",
]
