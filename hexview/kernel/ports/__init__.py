"""Ports (interfaces) for hexview's external collaborators."""

from hexview.kernel.ports.command_source import CommandSource, TurnContext
from hexview.kernel.ports.observer_manager import Observer, ObserverManager
from hexview.kernel.ports.sandbox import (
    SANDBOX_POLICY,
    PreviewArtifact,
    Sandbox,
    SandboxEvent,
    SandboxReport,
)
from hexview.kernel.ports.vfs import VirtualFileSystem

__all__ = [
    "SANDBOX_POLICY",
    "CommandSource",
    "Observer",
    "ObserverManager",
    "PreviewArtifact",
    "Sandbox",
    "SandboxEvent",
    "SandboxReport",
    "TurnContext",
    "VirtualFileSystem",
]
