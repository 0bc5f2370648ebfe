"""Error taxonomy for the Responses adapter and the status/payload classifier.

Every error is terminal for the request it belongs to; this layer never
retries. Each error keeps enough of the original payload to diagnose the
failure without a second round trip.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdapterError(Exception):
    """Base error for all adapter failures."""


class TransportFailure(AdapterError):
    """The exchange failed at the transport level.

    ``status`` is ``None`` when no HTTP status was received at all
    (connection refused, timeout, ...).
    """

    def __init__(self, message: str, *, status: int | None = None, body: Any = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class ApiError(TransportFailure):
    """The vendor answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        code: str | None = None,
        body: Any = None,
    ) -> None:
        self.code = code
        self.message = message
        detail = f"{message} (code: {code})" if code else message
        super().__init__(f"{detail} [status: {status}]", status=status, body=body)


class MalformedPayload(AdapterError):
    """A body or event could not be parsed into the expected structure."""

    def __init__(self, detail: str, payload: Any = None) -> None:
        self.detail = detail
        self.payload = payload
        super().__init__(f"Malformed payload: {detail}")


class InvalidResponse(AdapterError):
    """A well-formed reply carried neither text nor tool calls."""

    def __init__(self, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(f"Invalid response data: {_render(payload)}")


class MissingCredential(AdapterError):
    """No API key could be resolved from config or environment."""

    def __init__(self, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(f"Missing API key: set 'api_key' in the client config or {env_var}")


class ConfigError(AdapterError):
    """The client configuration could not be read or validated."""


class UnsupportedCapability(AdapterError):
    """The client does not implement the requested capability."""

    def __init__(self, capability: str) -> None:
        self.capability = capability
        super().__init__(f"The client doesn't support the {capability} api")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def is_success(status: int) -> bool:
    return 200 <= status < 300


def catch_error(data: Any, status: int) -> None:
    """Raise :class:`ApiError` when *status* is not a success status.

    Recognised vendor envelopes are decoded into ``code``/``message``;
    anything else yields a generic error carrying the raw body.
    """
    if is_success(status):
        return

    logger.debug("Invalid response, status: %s, data: %s", status, data)
    code, message = _decode_envelope(data)
    if message is None:
        raise ApiError(f"Invalid response data: {_render(data)}", status=status, body=data)
    raise ApiError(message, status=status, code=code, body=data)


def classify_response(status: int, data: Any, extract: Callable[[Any], T]) -> T:
    """Apply the status check, then *extract*; the status always wins.

    *extract* is expected to raise :class:`InvalidResponse` when it finds no
    usable content.
    """
    catch_error(data, status)
    return extract(data)


def _decode_envelope(data: Any) -> tuple[str | None, str | None]:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        return None, None

    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str):
            code = error.get("type") or error.get("code")
            return (str(code) if code is not None else None), message
    if isinstance(error, str):
        return None, error

    errors = data.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        message = first.get("message")
        if isinstance(message, str):
            code = first.get("code")
            return (str(code) if code is not None else None), message

    detail = data.get("detail")
    if isinstance(detail, str) and data.get("status") is not None:
        return str(data["status"]), detail

    message = data.get("message")
    if isinstance(message, str):
        return None, message
    return None, None


def _render(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload)
    except (TypeError, ValueError):
        return repr(payload)
