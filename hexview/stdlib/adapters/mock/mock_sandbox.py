"""Mock sandbox implementation for testing purposes."""

from __future__ import annotations

import base64
import json

from hexview.compiler import scan_module_syntax
from hexview.kernel.exceptions import SandboxRuntimeError, TransformSyntaxError
from hexview.kernel.ports.sandbox import PreviewArtifact, Sandbox, SandboxReport
from hexview.preview.renderer import STUB_MARKER

_DATA_PREFIX = "data:text/javascript;base64,"


class MockSandbox(Sandbox):
    """Deterministic in-process stand-in for a browser sandbox.

    Instead of executing JavaScript it walks the artifact's module graph the
    way a browser's module loader would: every specifier must be mapped by
    the import map, ``data:`` modules are decoded and scanned for their own
    imports, and importing a failed-module stub throws its message. The
    entry module must default-export.

    Parameters
    ----------
    fail_with : str | None
        Report this error for every load instead of evaluating

    Examples
    --------
    Example usage::

        sandbox = MockSandbox()
        report = await sandbox.aload(artifact)
        assert report.ok
        assert sandbox.current is artifact
    """

    def __init__(self, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.loads = 0
        self.current: PreviewArtifact | None = None

    async def aload(self, artifact: PreviewArtifact) -> SandboxReport:
        self.loads += 1
        self.current = artifact
        if self.fail_with is not None:
            return SandboxReport(ok=False, artifact_id=artifact.artifact_id, error=self.fail_with)
        try:
            evaluated = self._evaluate(artifact)
        except SandboxRuntimeError as e:
            return SandboxReport(
                ok=False, artifact_id=artifact.artifact_id, error=e.message, stack=e.stack
            )
        return SandboxReport(
            ok=True,
            artifact_id=artifact.artifact_id,
            output=f"rendered {artifact.entry} ({evaluated} module(s))",
        )

    def _evaluate(self, artifact: PreviewArtifact) -> int:
        """Load the entry's module graph; return how many local modules ran."""
        visited: set[str] = set()
        stack: list[str] = []

        def load(specifier: str) -> frozenset[str]:
            url = artifact.import_map.get(specifier)
            if url is None:
                raise SandboxRuntimeError(
                    f'Failed to resolve module specifier "{specifier}"', " <- ".join(stack)
                )
            if not url.startswith(_DATA_PREFIX) or specifier in visited:
                return frozenset()
            visited.add(specifier)
            code = base64.b64decode(url[len(_DATA_PREFIX) :]).decode()
            if code.startswith(STUB_MARKER):
                message = code[len(STUB_MARKER) :].removeprefix("throw new Error(")
                raise SandboxRuntimeError(json.loads(message.rsplit(")", 1)[0]), specifier)
            try:
                syntax = scan_module_syntax(code, specifier)
            except TransformSyntaxError as e:
                raise SandboxRuntimeError(f"SyntaxError: {e.message}", specifier) from e
            stack.append(specifier)
            for entry in syntax.imports:
                load(entry.specifier)
            stack.pop()
            return syntax.exports

        exports = load(artifact.entry_specifier)
        if "default" not in exports:
            raise SandboxRuntimeError(f"{artifact.entry} must default-export a component")
        return len(visited)


__all__ = ["MockSandbox"]
