"""Configuration for hexview."""

from hexview.kernel.config.loader import ConfigLoader, clear_config_cache, load_config
from hexview.kernel.config.models import (
    ExecutionMode,
    ExecutorConfig,
    HexViewConfig,
    LinkerConfig,
    LoggingConfig,
    PreviewConfig,
    ProviderConfig,
    RenamePolicy,
)

__all__ = [
    "ConfigLoader",
    "ExecutionMode",
    "ExecutorConfig",
    "HexViewConfig",
    "LinkerConfig",
    "LoggingConfig",
    "PreviewConfig",
    "ProviderConfig",
    "RenamePolicy",
    "clear_config_cache",
    "load_config",
]
