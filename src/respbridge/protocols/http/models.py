"""HTTP exchange models — a prepared request and a completed reply."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class RequestData(BaseModel):
    """A fully prepared POST: target URL, headers, JSON body."""

    url: str
    body: dict[str, Any]
    headers: dict[str, str] = {}

    def bearer_auth(self, token: str) -> None:
        """Attach an ``Authorization: Bearer`` header."""
        self.headers["Authorization"] = f"Bearer {token}"

    def header(self, name: str, value: str) -> None:
        """Attach a custom header."""
        self.headers[name] = value


class TransportResponse(BaseModel):
    """A completed non-streaming exchange.

    ``body`` is the decoded JSON value, or the raw text when the body was not
    JSON.
    """

    status: int
    body: Any = None
