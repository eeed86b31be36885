"""Deterministic implementations for testing and the constrained mode."""

from .mock_sandbox import MockSandbox
from .scripted_source import ScriptedCommandSource, demo_script

__all__ = [
    "MockSandbox",
    "ScriptedCommandSource",
    "demo_script",
]
