"""Event data classes emitted while driving a preview session."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Event:
    """Base class for all events - provides timestamp."""

    timestamp: datetime = field(default_factory=datetime.now, init=False)

    def log_message(self) -> str:
        """Get a formatted log message for this event.

        Returns
        -------
        str
            A formatted string suitable for logging
        """
        return f"{self.__class__.__name__} at {self.timestamp.isoformat()}"


# Command events
@dataclass(slots=True)
class CommandApplied(Event):
    """A tool command was applied to the VFS (or viewed it)."""

    name: str
    message: str
    changed_paths: frozenset[str] = frozenset()

    def log_message(self) -> str:
        return f"Command '{self.name}' applied: {self.message}"


@dataclass(slots=True)
class CommandRejected(Event):
    """A tool command failed without changing the VFS."""

    name: str
    error: str
    message: str

    def log_message(self) -> str:
        return f"Command '{self.name}' rejected ({self.error}): {self.message}"


# Turn events
@dataclass(slots=True)
class TurnStarted(Event):
    instruction: str
    max_steps: int

    def log_message(self) -> str:
        return f"Turn started (max {self.max_steps} steps): {self.instruction[:80]!r}"


@dataclass(slots=True)
class StepLimitReached(Event):
    """The turn hit its step ceiling; remaining commands were dropped."""

    limit: int
    dropped: int

    def log_message(self) -> str:
        return f"Step limit {self.limit} reached, {self.dropped} command(s) dropped"


@dataclass(slots=True)
class TurnCompleted(Event):
    """A turn ended.

    Attributes
    ----------
    steps : int
        Commands applied in the turn
    reason : str
        ``"done"``, ``"step_limit"`` or ``"cancelled"``
    """

    steps: int
    reason: str

    def log_message(self) -> str:
        return f"Turn completed after {self.steps} step(s): {self.reason}"


# Build events
@dataclass(slots=True)
class RebuildCompleted(Event):
    """The module graph was relinked into a new bundle."""

    revision: int
    invalidated: tuple[str, ...]
    reused: int
    failed: tuple[str, ...]
    duration_ms: float

    def log_message(self) -> str:
        failed = f", {len(self.failed)} failed" if self.failed else ""
        return (
            f"Bundle r{self.revision}: {len(self.invalidated)} rebuilt, "
            f"{self.reused} reused{failed} in {self.duration_ms:.1f}ms"
        )


@dataclass(slots=True)
class PreviewRendered(Event):
    """A render attempt finished (successfully or not)."""

    artifact_id: str | None
    ok: bool
    error: str | None = None

    def log_message(self) -> str:
        if self.ok:
            return f"Preview {self.artifact_id} rendered"
        return f"Preview render failed: {self.error}"


@dataclass(slots=True)
class SandboxErrorReported(Event):
    """The sandbox reported a runtime error for a loaded artifact."""

    artifact_id: str
    message: str

    def log_message(self) -> str:
        return f"Sandbox error in {self.artifact_id}: {self.message}"


__all__ = [
    "CommandApplied",
    "CommandRejected",
    "Event",
    "PreviewRendered",
    "RebuildCompleted",
    "SandboxErrorReported",
    "StepLimitReached",
    "TurnCompleted",
    "TurnStarted",
]
