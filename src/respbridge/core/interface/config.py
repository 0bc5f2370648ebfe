"""Client configuration — credentials, endpoint, wire variant, request patch."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from respbridge.core.interface.errors import ConfigError, MissingCredential

DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_CLIENT_NAME = "openai-responses"


class ModelConfig(BaseModel):
    """A model the client may address.

    ``name`` is what callers ask for; ``real_name`` (when set) is what goes on
    the wire.
    """

    name: str
    real_name: str | None = None
    supports_function_calling: bool = True

    @property
    def wire_name(self) -> str:
        return self.real_name or self.name


class ExtraConfig(BaseModel):
    """Transport knobs handed to the HTTP layer."""

    proxy: str | None = None
    connect_timeout: float | None = None


class ClientConfig(BaseModel):
    """Configuration for one Responses client instance.

    ``api_key`` and ``api_base`` fall back to ``<NAME>_API_KEY`` and
    ``<NAME>_API_BASE`` in the environment, where ``NAME`` is the upper-snake
    form of ``name``.
    """

    name: str | None = None
    api_key: str | None = None
    api_base: str | None = None
    organization_id: str | None = None
    model: str = "gpt-4o"
    models: list[ModelConfig] = Field(default_factory=lambda: list[ModelConfig]())
    wire_variant: Literal["rich", "reduced"] = "rich"
    legacy_continuation_marker: bool = False
    patch: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())
    extra: ExtraConfig = Field(default_factory=ExtraConfig)

    @property
    def env_prefix(self) -> str:
        return (self.name or DEFAULT_CLIENT_NAME).upper().replace("-", "_")

    def get_api_key(self) -> str:
        """Resolve the API key from config, then environment.

        Raises:
            MissingCredential: If neither source provides a key.
        """
        env_var = f"{self.env_prefix}_API_KEY"
        key = self.api_key or os.environ.get(env_var)
        if not key:
            raise MissingCredential(env_var)
        return key

    def get_api_base(self) -> str:
        base = self.api_base or os.environ.get(f"{self.env_prefix}_API_BASE") or DEFAULT_API_BASE
        return base.rstrip("/")

    def resolve_model(self, name: str | None = None) -> ModelConfig:
        """Return the configured model entry for *name* (default: ``model``)."""
        wanted = name or self.model
        for entry in self.models:
            if entry.name == wanted:
                return entry
        return ModelConfig(name=wanted)


def load_client_config(path: Path) -> ClientConfig:
    """Read a YAML client config, expanding ``$VAR`` / ``${VAR}`` first.

    Raises:
        ConfigError: On read, YAML, or validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    expanded = os.path.expandvars(raw)

    try:
        data: Any = yaml.safe_load(expanded)
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Client config YAML must be a mapping")

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
