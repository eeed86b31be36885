"""Core exception hierarchy for hexview.

All hexview exceptions inherit from HexViewError. VFS failures carry the
offending path, module-scoped failures carry the module path, so callers can
turn any of them into a diagnostic without string parsing.
"""

from __future__ import annotations

# ============================================================================
# Base Exception
# ============================================================================


class HexViewError(Exception):
    """Base exception for all hexview errors.

    Catch this to handle every error raised by the core.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(HexViewError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("preview", "debounce_seconds must be >= 0")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(HexViewError):
    """Raised when data validation fails."""

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


class CommandParseError(HexViewError):
    """Raised when a raw ``{name, args}`` record is not a known tool command."""

    def __init__(self, name: str | None, reason: str) -> None:
        super().__init__(f"Invalid tool command '{name}': {reason}")
        self.name = name
        self.reason = reason


# ============================================================================
# Virtual Filesystem Errors
# ============================================================================


class VFSError(HexViewError):
    """Raised when a VFS operation fails.

    Examples
    --------
    Example usage::

        raise VFSError("/components", "is a directory")
    """

    def __init__(self, path: str, reason: str) -> None:
        """Initialize VFS error.

        Args
        ----
            path: The VFS path that caused the error
            reason: Explanation of what went wrong
        """
        super().__init__(f"VFS error at '{path}': {reason}")
        self.path = path
        self.reason = reason


class PathNotFoundError(VFSError):
    """Raised when a path does not exist in the VFS."""

    def __init__(self, path: str) -> None:
        super().__init__(path, "no such file or directory")


class PathConflictError(VFSError):
    """Raised when a create or rename target already exists, or a path is the wrong kind."""

    def __init__(self, path: str, reason: str = "path already exists") -> None:
        super().__init__(path, reason)


class CyclicMoveError(VFSError):
    """Raised when a directory would be moved into its own subtree."""

    def __init__(self, source: str, destination: str) -> None:
        super().__init__(source, f"cannot move into its own descendant '{destination}'")
        self.source = source
        self.destination = destination


class InvalidPathError(VFSError):
    """Raised when a path is relative, contains traversal segments, or is malformed."""


class AmbiguousEditError(VFSError):
    """Raised when an edit fragment does not occur exactly once.

    Examples
    --------
    Example usage::

        raise AmbiguousEditError("/App.jsx", occurrences=2)
    """

    def __init__(self, path: str, occurrences: int, reason: str | None = None) -> None:
        """Initialize ambiguous edit error.

        Args
        ----
            path: File the edit targeted
            occurrences: How many times the fragment was found
            reason: Overrides the generated explanation
        """
        if reason is None and occurrences == 0:
            reason = "fragment not found; provide text that occurs exactly once"
        elif reason is None:
            reason = (
                f"fragment occurs {occurrences} times; include more surrounding "
                "context so it occurs exactly once"
            )
        super().__init__(path, reason)
        self.occurrences = occurrences


# ============================================================================
# Module Pipeline Errors
# ============================================================================


class TransformSyntaxError(HexViewError):
    """Raised when a module's source cannot be transformed.

    Examples
    --------
    Example usage::

        raise TransformSyntaxError("/App.jsx", "unterminated JSX element", line=3, column=5)
    """

    def __init__(self, path: str, message: str, line: int = 1, column: int = 1) -> None:
        """Initialize transform syntax error.

        Args
        ----
            path: Module path
            message: What the transformer rejected
            line: 1-based line of the failure
            column: 1-based column of the failure
        """
        super().__init__(f"{path}:{line}:{column}: {message}")
        self.path = path
        self.message = message
        self.line = line
        self.column = column


class UnresolvedImportError(HexViewError):
    """Raised when a local import specifier does not resolve to a VFS file."""

    def __init__(self, importer: str, specifier: str) -> None:
        """Initialize unresolved import error.

        Args
        ----
            importer: Path of the module containing the import
            specifier: The raw specifier as written
        """
        super().__init__(f"Cannot resolve import '{specifier}' from '{importer}'")
        self.importer = importer
        self.specifier = specifier


class SandboxRuntimeError(HexViewError):
    """Raised when the preview artifact fails to load or run inside the sandbox."""

    def __init__(self, message: str, stack: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stack = stack


# ============================================================================
# Turn Control Errors
# ============================================================================


class StepLimitExceededError(HexViewError):
    """Raised when a turn issues more commands than its step ceiling allows."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Step limit of {limit} commands per turn exceeded")
        self.limit = limit


__all__ = [
    "AmbiguousEditError",
    "CommandParseError",
    "ConfigurationError",
    "CyclicMoveError",
    "HexViewError",
    "InvalidPathError",
    "PathConflictError",
    "PathNotFoundError",
    "SandboxRuntimeError",
    "StepLimitExceededError",
    "TransformSyntaxError",
    "UnresolvedImportError",
    "VFSError",
    "ValidationError",
]
