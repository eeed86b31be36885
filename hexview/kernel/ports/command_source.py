"""Command source port: the external actor that decides which edits to issue.

One strategy is selected at start-up and injected into the turn runner.
It is asked repeatedly for its next commands, receiving the results of
the previous ones, until it returns an empty sequence.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hexview.kernel.domain.commands import CommandResult, ToolCommand
    from hexview.kernel.domain.vfs import VFSSnapshot


@dataclass(slots=True)
class TurnContext:
    """Everything a command source may look at when choosing commands.

    Attributes
    ----------
    instruction : str
        The user's natural-language request for this turn
    step : int
        Number of commands already applied in this turn
    max_steps : int
        Step ceiling for the turn
    files : VFSSnapshot
        Current project contents
    results : list[CommandResult]
        Results of the most recent batch, in command order
    history : list[tuple[ToolCommand, CommandResult]]
        Every command applied so far in this turn with its result
    """

    instruction: str
    step: int
    max_steps: int
    files: VFSSnapshot
    results: list[CommandResult] = field(default_factory=list)
    history: list[tuple[ToolCommand, CommandResult]] = field(default_factory=list)

    @property
    def remaining_steps(self) -> int:
        return max(self.max_steps - self.step, 0)


@runtime_checkable
class CommandSource(Protocol):
    """Strategy that produces tool commands for a turn."""

    @abstractmethod
    async def produce_next_commands(self, turn_context: TurnContext) -> Sequence[ToolCommand]:
        """Return the next commands to apply, or an empty sequence to end the turn.

        Args
        ----
            turn_context: Current turn state, including previous results.

        Returns
        -------
            Commands to apply in order.
        """
        ...


__all__ = ["CommandSource", "TurnContext"]
