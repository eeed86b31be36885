"""Configuration data models for hexview."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

from hexview.kernel.exceptions import ValidationError

TAILWIND_CDN = "https://cdn.tailwindcss.com"


class ExecutionMode(StrEnum):
    """Command-source capability level, which also selects the step ceiling."""

    CONSTRAINED = "constrained"
    FULL = "full"


class RenamePolicy(StrEnum):
    """What happens to import specifiers that reference a renamed file.

    ``PRESERVE`` leaves every other file untouched, so importers of the old
    path fail to resolve until they are edited. ``REWRITE`` updates local
    specifiers that resolved into the moved path within the same commit.
    """

    PRESERVE = "preserve"
    REWRITE = "rewrite"


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging configuration.

    Examples
    --------
    TOML configuration:

    ```toml
    [tool.hexview.logging]
    level = "DEBUG"
    format = "rich"
    ```

    Environment variable overrides:

    ```bash
    export HEXVIEW_LOG_LEVEL=DEBUG
    export HEXVIEW_LOG_FORMAT=json
    export HEXVIEW_LOG_FILE=/var/log/hexview/app.log
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "dual", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    """Tool executor configuration.

    Attributes
    ----------
    mode : ExecutionMode, default=ExecutionMode.CONSTRAINED
        Selects which step ceiling applies to a turn
    constrained_max_steps : int, default=4
        Step ceiling for the deterministic/scripted mode
    full_max_steps : int, default=40
        Step ceiling for the full-capability mode
    rename_policy : RenamePolicy, default=RenamePolicy.PRESERVE
        Import rewriting behaviour on rename
    """

    mode: ExecutionMode = ExecutionMode.CONSTRAINED
    constrained_max_steps: int = 4
    full_max_steps: int = 40
    rename_policy: RenamePolicy = RenamePolicy.PRESERVE

    def __post_init__(self) -> None:
        """Validate step ceilings.

        Raises
        ------
        ValidationError
            If a ceiling is not positive
        """
        if self.constrained_max_steps < 1:
            raise ValidationError(
                "constrained_max_steps", "must be positive", self.constrained_max_steps
            )
        if self.full_max_steps < 1:
            raise ValidationError("full_max_steps", "must be positive", self.full_max_steps)

    @property
    def max_steps(self) -> int:
        """Step ceiling for the configured mode."""
        if self.mode is ExecutionMode.FULL:
            return self.full_max_steps
        return self.constrained_max_steps


@dataclass(frozen=True, slots=True)
class LinkerConfig:
    """Module resolution settings."""

    entry: str = "/App.jsx"
    alias: str = "@/"
    extensions: tuple[str, ...] = (".jsx", ".js", ".mjs")

    def __post_init__(self) -> None:
        if not self.alias.endswith("/"):
            raise ValidationError("alias", "must end with '/'", self.alias)
        if not self.entry.startswith("/"):
            raise ValidationError("entry", "must be an absolute path", self.entry)


@dataclass(frozen=True, slots=True)
class PreviewConfig:
    """Preview artifact settings.

    Attributes
    ----------
    cdn_base : str
        ESM CDN that bare specifiers are mapped onto in the import map
    debounce_seconds : float
        Quiet period before a burst of VFS changes triggers one rebuild
    head_scripts : tuple[str, ...]
        Script URLs injected into the document head (Tailwind by default)
    title : str
        Document title
    """

    cdn_base: str = "https://esm.sh"
    debounce_seconds: float = 0.05
    head_scripts: tuple[str, ...] = (TAILWIND_CDN,)
    title: str = "Preview"

    def __post_init__(self) -> None:
        if self.debounce_seconds < 0:
            raise ValidationError("debounce_seconds", "must be >= 0", self.debounce_seconds)


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Command source (AI actor) selection."""

    kind: Literal["scripted", "anthropic"] = "scripted"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    api_key: str | None = None


@dataclass(slots=True)
class HexViewConfig:
    """Complete hexview configuration."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    linker: LinkerConfig = field(default_factory=LinkerConfig)
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)


__all__ = [
    "TAILWIND_CDN",
    "ExecutionMode",
    "ExecutorConfig",
    "HexViewConfig",
    "LinkerConfig",
    "LoggingConfig",
    "PreviewConfig",
    "ProviderConfig",
    "RenamePolicy",
]
