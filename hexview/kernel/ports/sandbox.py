"""Sandbox port: isolated execution surface for preview artifacts.

The host never shares mutable state with the sandbox. It hands over a
finished :class:`PreviewArtifact` and gets back a :class:`SandboxReport`.
Runtime errors raised inside the sandbox are reported, never propagated.

Drivers
-------
- ``IframeSandbox``: serves the document to a browser iframe restricted to
  ``allow-scripts``; errors arrive later through ``postMessage``.
- ``MockSandbox``: deterministic in-process stand-in for tests.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

SANDBOX_POLICY = "allow-scripts"
MESSAGE_SOURCE = "hexview-preview"


@dataclass(frozen=True, slots=True)
class PreviewArtifact:
    """Self-contained preview document built from one bundle.

    Attributes
    ----------
    artifact_id : str
        Stable id derived from the bundle fingerprint
    html : str
        Complete HTML document
    import_map : dict[str, str]
        Import map embedded in the document
    entry : str
        Entry module path
    bundle_revision : int
        Revision of the bundle the artifact was built from
    entry_specifier : str
        Import map key of the entry module
    """

    artifact_id: str
    html: str
    import_map: dict[str, str]
    entry: str
    bundle_revision: int
    entry_specifier: str


@dataclass(frozen=True, slots=True)
class SandboxReport:
    """What the sandbox observed while loading an artifact."""

    ok: bool
    artifact_id: str
    error: str | None = None
    stack: str | None = None
    output: str | None = None


class SandboxEvent(BaseModel):
    """Message posted by a running artifact back to the host.

    ``ready`` is sent once the entry rendered; ``error`` and
    ``unhandledrejection`` carry runtime failures.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    source: Literal["hexview-preview"] = MESSAGE_SOURCE
    artifact: str
    kind: Literal["ready", "error", "unhandledrejection"]
    message: str | None = None
    stack: str | None = None

    @property
    def is_error(self) -> bool:
        return self.kind != "ready"


@runtime_checkable
class Sandbox(Protocol):
    """Isolated execution surface."""

    @abstractmethod
    async def aload(self, artifact: PreviewArtifact) -> SandboxReport:
        """Load ``artifact``, replacing whatever was running, and run its entry.

        Args
        ----
            artifact: The artifact to run.

        Returns
        -------
            Report of the load. Implementations must not raise for errors
            thrown by the artifact's own code.
        """
        ...


__all__ = [
    "MESSAGE_SOURCE",
    "SANDBOX_POLICY",
    "PreviewArtifact",
    "Sandbox",
    "SandboxEvent",
    "SandboxReport",
]
