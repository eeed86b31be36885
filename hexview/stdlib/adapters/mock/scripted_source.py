"""Scripted command source for the constrained (deterministic) mode."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from hexview.kernel.domain.commands import CreateFile, ToolCommand, parse_command
from hexview.kernel.logging import get_logger
from hexview.kernel.ports.command_source import CommandSource, TurnContext

logger = get_logger(__name__)

DEMO_BUTTON = """\
export default function Button({ label, onClick }) {
  return (
    <button
      onClick={onClick}
      className="px-4 py-2 rounded-lg bg-blue-500 text-white hover:bg-blue-600 transition-colors"
    >
      {label}
    </button>
  );
}
"""

DEMO_APP = """\
import { useState } from "react";
import Button from "@/components/Button";

export default function App() {
  const [count, setCount] = useState(0);
  return (
    <main className="min-h-screen flex flex-col items-center justify-center space-y-4">
      <h1 className="text-2xl font-semibold text-gray-800">Clicked {count} times</h1>
      <Button label="Click me" onClick={() => setCount(count + 1)} />
    </main>
  );
}
"""


def demo_script() -> list[list[ToolCommand]]:
    """Two batches: a Button component, then an App that imports it via the alias."""
    return [
        [CreateFile.of("/components/Button.jsx", DEMO_BUTTON)],
        [CreateFile.of("/App.jsx", DEMO_APP)],
    ]


class ScriptedCommandSource(CommandSource):
    """Replays a fixed sequence of command batches.

    Each call to :meth:`produce_next_commands` returns the next batch; once
    the script is exhausted the turn ends. The script restarts for every new
    turn (a turn starts when the context reports zero steps taken).

    Parameters
    ----------
    batches : Sequence[Sequence[ToolCommand | Mapping[str, Any]]] | None
        Batches in order; raw ``{name, args}`` records are parsed. The
        Button/App demo is used when omitted.
    """

    def __init__(
        self, batches: Sequence[Sequence[ToolCommand | Mapping[str, Any]]] | None = None
    ) -> None:
        raw = demo_script() if batches is None else batches
        self.batches: list[list[ToolCommand]] = [
            [c if not isinstance(c, Mapping) else parse_command(c) for c in batch]
            for batch in raw
        ]
        self._cursor = 0
        self.contexts: list[TurnContext] = []

    async def produce_next_commands(self, turn_context: TurnContext) -> Sequence[ToolCommand]:
        if turn_context.step == 0 and not turn_context.history:
            self._cursor = 0
        self.contexts.append(turn_context)
        if self._cursor >= len(self.batches):
            return []
        batch = self.batches[self._cursor]
        self._cursor += 1
        logger.debug("Scripted batch {n}: {count} command(s)", n=self._cursor, count=len(batch))
        return batch


__all__ = ["DEMO_APP", "DEMO_BUTTON", "ScriptedCommandSource", "demo_script"]
