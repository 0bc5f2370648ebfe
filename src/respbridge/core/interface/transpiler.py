"""Transpiler protocol — converts between CMS and a provider wire format.

A transpiler is bidirectional: CMS conversation -> provider request body, and
provider reply -> :class:`ChatCompletionsOutput`. It performs no I/O.
"""

from typing import Any, Protocol

from respbridge.core.interface.models import (
    CanonicalMessage,
    ChatCompletionsOutput,
    SamplingParams,
)


class Transpiler(Protocol):
    """Protocol for provider-specific message format transpilers."""

    def to_provider(
        self,
        messages: list[CanonicalMessage],
        *,
        model: str,
        sampling: SamplingParams | None = None,
        tools: list[dict[str, Any]] | None = None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Convert a CMS conversation into a provider request body."""
        ...

    def from_provider(self, response: Any) -> ChatCompletionsOutput:
        """Convert a complete provider reply into canonical output.

        Raises ``InvalidResponse`` when the reply carries neither text nor
        tool calls.
        """
        ...
