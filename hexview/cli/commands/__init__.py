"""CLI command modules."""

from . import apply_cmd, build_cmd, demo_cmd, graph_cmd, serve_cmd

__all__ = ["apply_cmd", "build_cmd", "demo_cmd", "graph_cmd", "serve_cmd"]
