"""Selects the command source once at start-up."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hexview.kernel.exceptions import ConfigurationError
from hexview.kernel.logging import get_logger

if TYPE_CHECKING:
    from hexview.kernel.config.models import ProviderConfig
    from hexview.kernel.ports.command_source import CommandSource

logger = get_logger(__name__)


def create_command_source(config: ProviderConfig) -> CommandSource:
    """Build the command source named by ``config.kind``.

    Raises
    ------
    ConfigurationError
        If the kind is unknown or the Anthropic source has no API key
    """
    if config.kind == "scripted":
        from hexview.stdlib.adapters.mock import ScriptedCommandSource

        logger.info("Using scripted command source")
        return ScriptedCommandSource()

    if config.kind == "anthropic":
        from hexview.stdlib.adapters.anthropic.anthropic_source import AnthropicCommandSource

        try:
            source = AnthropicCommandSource(
                api_key=config.api_key, model=config.model, max_tokens=config.max_tokens
            )
        except ValueError as e:
            raise ConfigurationError("provider", str(e)) from e
        logger.info("Using Anthropic command source ({model})", model=config.model)
        return source

    raise ConfigurationError("provider", f"unknown kind {config.kind!r}")


__all__ = ["create_command_source"]
