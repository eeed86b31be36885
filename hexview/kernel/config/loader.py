"""Configuration loader for hexview.

Config sources, in discovery order:

1. Explicit path (``hexview.toml``, a YAML file, or ``pyproject.toml``)
2. ``HEXVIEW_CONFIG_PATH`` env var
3. ``hexview.toml`` / ``.hexview.toml`` in the working directory
4. ``pyproject.toml [tool.hexview]`` in the working directory or a parent

When nothing is found the defaults are used.
"""

from __future__ import annotations

import os
import re
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

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
from hexview.kernel.exceptions import ConfigurationError, ValidationError
from hexview.kernel.logging import get_logger

_TRUTHY_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
_FALSY_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

_LOCAL_CONFIG_NAMES = ("hexview.toml", ".hexview.toml")

logger = get_logger(__name__)


def _parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable value.

    Raises
    ------
    ValueError
        If value is not a recognized boolean string
    """
    normalized = value.lower().strip()
    if normalized in _TRUTHY_VALUES:
        return True
    if normalized in _FALSY_VALUES:
        return False
    expected = sorted(_TRUTHY_VALUES | _FALSY_VALUES)
    raise ValueError(f"Invalid boolean value: {value!r}. Expected one of: {expected}")


class ConfigLoader:
    """Loads hexview configuration from TOML or YAML files."""

    ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def load(self, path: str | Path | None = None) -> HexViewConfig:
        """Load configuration.

        Parameters
        ----------
        path : str | Path | None
            Config file path. If None, searches using discovery order.

        Returns
        -------
        HexViewConfig
            Parsed configuration with environment variables substituted
        """
        config_path = self._find_config_file(path)
        if config_path is None:
            logger.debug("No hexview configuration found, using defaults")
            return self.parse({})
        return self._load_file(config_path)

    def _load_file(self, config_path: Path) -> HexViewConfig:
        logger.info("Loading configuration from {path}", path=config_path)

        if config_path.suffix in (".yaml", ".yml"):
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigurationError(
                    config_path.name, f"expected a mapping, got {type(data).__name__}"
                )
        else:
            with config_path.open("rb") as f:
                data = tomllib.load(f)

        if "tool" in data and "hexview" in data.get("tool", {}):
            data = data["tool"]["hexview"]
        elif config_path.name == "pyproject.toml":
            logger.warning("No [tool.hexview] section found in pyproject.toml, using defaults")
            data = {}

        return self.parse(self._substitute_env_vars(data))

    def _find_config_file(self, path: str | Path | None) -> Path | None:
        """Locate the configuration file.

        Raises
        ------
        ConfigurationError
            If an explicit path does not exist
        """
        if path:
            config_path = Path(path)
            if not config_path.exists():
                raise ConfigurationError("config", f"file not found: {config_path}")
            return config_path

        if env_path := os.getenv("HEXVIEW_CONFIG_PATH"):
            config_path = Path(env_path)
            if config_path.exists():
                return config_path
            logger.warning("HEXVIEW_CONFIG_PATH set but file not found: {}", config_path)

        for name in _LOCAL_CONFIG_NAMES:
            if Path(name).exists():
                return Path(name)

        current = Path.cwd()
        while True:
            pyproject = current / "pyproject.toml"
            if pyproject.exists():
                with pyproject.open("rb") as f:
                    data = tomllib.load(f)
                if "hexview" in data.get("tool", {}):
                    return pyproject
            if current == current.parent:
                return None
            current = current.parent

    def _substitute_env_vars(self, data: Any) -> Any:
        """Recursively replace ``${VAR}`` with environment values.

        Unknown variables keep their placeholder.
        """
        if isinstance(data, str):

            def replacer(match: re.Match[str]) -> str:
                value = os.environ.get(match.group(1))
                return match.group(0) if value is None else value

            return self.ENV_VAR_PATTERN.sub(replacer, data)

        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}

        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]

        return data

    def parse(self, data: dict[str, Any]) -> HexViewConfig:
        """Parse raw configuration data into :class:`HexViewConfig`.

        Raises
        ------
        ConfigurationError
            If a section holds an unknown key or an invalid value
        """
        try:
            provider = self._parse_provider_config(data.get("provider", {}))
            return HexViewConfig(
                logging=self._parse_logging_config(data.get("logging", {})),
                executor=self._parse_executor_config(data.get("executor", {}), provider.kind),
                linker=self._parse_linker_config(data.get("linker", {})),
                preview=self._parse_preview_config(data.get("preview", {})),
                provider=provider,
            )
        except (TypeError, ValueError, ValidationError) as e:
            raise ConfigurationError("config", str(e)) from e

    def _parse_logging_config(self, logging_data: dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration with environment variable overrides.

        - HEXVIEW_LOG_LEVEL: Log level
        - HEXVIEW_LOG_FORMAT: Output format
        - HEXVIEW_LOG_FILE: Optional file path for log output
        - HEXVIEW_LOG_COLOR: Use color output (true/false)
        """
        values = dict(logging_data)
        if env_level := os.getenv("HEXVIEW_LOG_LEVEL"):
            values["level"] = env_level.upper()
        if env_format := os.getenv("HEXVIEW_LOG_FORMAT"):
            values["format"] = env_format.lower()
        if env_file := os.getenv("HEXVIEW_LOG_FILE"):
            values["output_file"] = env_file
        if env_color := os.getenv("HEXVIEW_LOG_COLOR"):
            values["use_color"] = _parse_bool_env(env_color)
        return LoggingConfig(**values)

    def _parse_executor_config(
        self, executor_data: dict[str, Any], provider_kind: str = "scripted"
    ) -> ExecutorConfig:
        """Parse executor configuration.

        ``HEXVIEW_MODE`` overrides ``mode``. Without either, the Anthropic
        provider runs in full mode and the scripted one in constrained mode.
        """
        values = dict(executor_data)
        if env_mode := os.getenv("HEXVIEW_MODE"):
            values["mode"] = env_mode.lower()
        elif "mode" not in values and provider_kind == "anthropic":
            values["mode"] = ExecutionMode.FULL
        if "mode" in values:
            values["mode"] = ExecutionMode(values["mode"])
        if "rename_policy" in values:
            values["rename_policy"] = RenamePolicy(values["rename_policy"])
        return ExecutorConfig(**values)

    def _parse_linker_config(self, linker_data: dict[str, Any]) -> LinkerConfig:
        values = dict(linker_data)
        if "extensions" in values:
            values["extensions"] = tuple(values["extensions"])
        return LinkerConfig(**values)

    def _parse_preview_config(self, preview_data: dict[str, Any]) -> PreviewConfig:
        values = dict(preview_data)
        if "head_scripts" in values:
            values["head_scripts"] = tuple(values["head_scripts"])
        return PreviewConfig(**values)

    def _parse_provider_config(self, provider_data: dict[str, Any]) -> ProviderConfig:
        """Parse provider configuration.

        ``ANTHROPIC_API_KEY`` fills ``api_key`` when the file leaves it unset.
        """
        values = dict(provider_data)
        if env_kind := os.getenv("HEXVIEW_PROVIDER"):
            values["kind"] = env_kind.lower()
        if values.get("kind", "scripted") not in ("scripted", "anthropic"):
            raise ValueError(f"unknown provider kind {values['kind']!r}")
        if not values.get("api_key") and (env_key := os.getenv("ANTHROPIC_API_KEY")):
            values["api_key"] = env_key
        return ProviderConfig(**values)


@lru_cache(maxsize=32)
def _load_cached(path_str: str | None) -> HexViewConfig:
    return ConfigLoader().load(path_str)


def load_config(path: str | Path | None = None) -> HexViewConfig:
    """Load hexview configuration (cached per path).

    Examples
    --------
    >>> config = load_config()  # doctest: +SKIP
    >>> config.executor.max_steps  # doctest: +SKIP
    4
    """
    return _load_cached(str(path) if path else None)


def clear_config_cache() -> None:
    """Clear the configuration cache (for tests and config reloads)."""
    _load_cached.cache_clear()


__all__ = ["ConfigLoader", "clear_config_cache", "load_config"]
