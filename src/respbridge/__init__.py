"""respbridge — canonical chat/tool-calling model over the Responses wire format."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from respbridge.core.interface.client import ResponsesClient as ResponsesClient
    from respbridge.core.interface.config import ClientConfig as ClientConfig
    from respbridge.protocols.http.transport import HttpxTransport as HttpxTransport

_LAZY_EXPORTS = {
    "ResponsesClient": "respbridge.core.interface.client",
    "ClientConfig": "respbridge.core.interface.config",
    "HttpxTransport": "respbridge.protocols.http.transport",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'respbridge' has no attribute {name!r}")
