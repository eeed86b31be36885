"""Drives one turn: asks the command source for commands and applies them in order.

Commands flow through an :class:`asyncio.Queue` drained by a single
consumer task, so at most one command touches the VFS at a time. The
producer waits for each batch to be fully applied before asking the
source again with the batch results.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hexview.kernel.exceptions import StepLimitExceededError
from hexview.kernel.logging import get_logger
from hexview.kernel.orchestration.events import (
    CommandApplied,
    CommandRejected,
    Event,
    StepLimitReached,
    TurnCompleted,
    TurnStarted,
)
from hexview.kernel.ports.command_source import TurnContext

if TYPE_CHECKING:
    from hexview.kernel.domain.commands import CommandResult, ToolCommand
    from hexview.kernel.orchestration.tool_executor import ToolExecutor, TurnSession
    from hexview.kernel.ports.command_source import CommandSource
    from hexview.kernel.ports.observer_manager import ObserverManager

logger = get_logger(__name__)


@dataclass(slots=True)
class TurnOutcome:
    """Summary of a finished (or interrupted) turn.

    Attributes
    ----------
    reason : str
        ``"done"`` when the source returned no more commands, ``"step_limit"``
        when the ceiling ended the turn, ``"cancelled"`` when the task was
        cancelled
    dropped : int
        Commands the source issued that were not applied
    """

    instruction: str
    max_steps: int
    history: list[tuple[ToolCommand, CommandResult]] = field(default_factory=list)
    reason: str = "done"
    dropped: int = 0

    @property
    def steps(self) -> int:
        return len(self.history)

    @property
    def results(self) -> list[CommandResult]:
        return [result for _, result in self.history]

    @property
    def changed_paths(self) -> frozenset[str]:
        return frozenset().union(*(result.changed_paths for _, result in self.history))


class TurnRunner:
    """Runs turns against one executor with one injected command source.

    Parameters
    ----------
    executor : ToolExecutor
        Applies the commands
    source : CommandSource
        Chooses the commands
    observer_manager : ObserverManager | None
        Receives turn and command events
    max_steps : int | None
        Step ceiling override; the executor's configured ceiling otherwise
    """

    def __init__(
        self,
        executor: ToolExecutor,
        source: CommandSource,
        observer_manager: ObserverManager | None = None,
        max_steps: int | None = None,
    ) -> None:
        self.executor = executor
        self.source = source
        self.observer_manager = observer_manager
        self.max_steps = max_steps

    async def run(self, instruction: str) -> TurnOutcome:
        """Run one turn to completion.

        The VFS keeps every command applied before a step limit or a
        cancellation; nothing is rolled back.
        """
        session = self.executor.begin_turn(self.max_steps)
        outcome = TurnOutcome(instruction=instruction, max_steps=session.max_steps)
        queue: asyncio.Queue[ToolCommand] = asyncio.Queue()
        await self._notify(TurnStarted(instruction=instruction, max_steps=session.max_steps))

        consumer = asyncio.create_task(self._consume(queue, session, outcome))
        try:
            context = self._context(instruction, session, outcome, batch_start=0)
            while True:
                commands = await self.source.produce_next_commands(context)
                if not commands:
                    break
                batch_start = outcome.steps
                for command in commands:
                    queue.put_nowait(command)
                await self._drain(queue, consumer)
                if outcome.dropped or session.exhausted:
                    outcome.reason = "step_limit"
                    await self._notify(
                        StepLimitReached(limit=session.max_steps, dropped=outcome.dropped)
                    )
                    break
                context = self._context(instruction, session, outcome, batch_start)
        except asyncio.CancelledError:
            outcome.reason = "cancelled"
            logger.info("Turn cancelled after {steps} step(s)", steps=outcome.steps)
            raise
        finally:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        await self._notify(TurnCompleted(steps=outcome.steps, reason=outcome.reason))
        return outcome

    @staticmethod
    async def _drain(queue: asyncio.Queue[ToolCommand], consumer: asyncio.Task[None]) -> None:
        """Wait until the batch is applied; re-raise if the consumer died instead."""
        joined = asyncio.ensure_future(queue.join())
        done, _ = await asyncio.wait({joined, consumer}, return_when=asyncio.FIRST_COMPLETED)
        if consumer in done:
            joined.cancel()
            consumer.result()

    async def _consume(
        self,
        queue: asyncio.Queue[ToolCommand],
        session: TurnSession,
        outcome: TurnOutcome,
    ) -> None:
        while True:
            command = await queue.get()
            try:
                try:
                    result = session.execute(command)
                except StepLimitExceededError:
                    outcome.dropped += 1
                    continue
                outcome.history.append((command, result))
                if result.ok:
                    event: Event = CommandApplied(
                        name=command.name,
                        message=result.message,
                        changed_paths=result.changed_paths,
                    )
                else:
                    event = CommandRejected(
                        name=command.name, error=result.error or "", message=result.message
                    )
                await self._notify(event)
            finally:
                queue.task_done()

    def _context(
        self, instruction: str, session: TurnSession, outcome: TurnOutcome, batch_start: int
    ) -> TurnContext:
        return TurnContext(
            instruction=instruction,
            step=session.steps,
            max_steps=session.max_steps,
            files=self.executor.vfs.snapshot(),
            results=outcome.results[batch_start:],
            history=list(outcome.history),
        )

    async def _notify(self, event: Event) -> None:
        logger.debug(event.log_message())
        if self.observer_manager is not None:
            await self.observer_manager.notify(event)


__all__ = ["TurnOutcome", "TurnRunner"]
