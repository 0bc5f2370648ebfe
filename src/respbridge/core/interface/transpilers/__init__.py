"""Provider-specific transpiler implementations."""

from respbridge.core.interface.transpilers.responses import ResponsesTranspiler

__all__ = ["ResponsesTranspiler"]
