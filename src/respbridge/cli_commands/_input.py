"""Loading CLI inputs: client config and conversation files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from respbridge.core.interface.config import ClientConfig, load_client_config
from respbridge.core.interface.errors import ConfigError
from respbridge.core.interface.models import ChatCompletionsData


def resolve_config(path: str | None, model: str | None) -> ClientConfig:
    """Load *path* (or defaults) and apply a ``--model`` override."""
    config = load_client_config(Path(path)) if path else ClientConfig()
    if model:
        config = config.model_copy(update={"model": model})
    return config


def load_conversation(path: Path) -> ChatCompletionsData:
    """Read a conversation YAML file.

    The file is either a list of messages or a mapping with ``messages`` and
    optional ``functions``/``sampling``.

    Raises:
        ConfigError: On read, YAML, or validation failures.
    """
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error: {exc}") from exc

    if isinstance(data, list):
        data = {"messages": data}
    if not isinstance(data, dict):
        raise ConfigError("Conversation YAML must be a list of messages or a mapping")

    try:
        return ChatCompletionsData.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
