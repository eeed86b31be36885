"""Preview project session: one VFS wired to its executor, linker and renderer.

This is the surface the CLI and the studio server share. VFS change
notifications accumulate into a pending set; a debounced task relinks and
re-renders once the burst is over, and :meth:`PreviewProject.flush` forces
that rebuild at the end of a turn.

Usage::

    project = PreviewProject()
    report = await project.run_turn("Make a counter button")
    print(report.render.ok, project.bundle.load_order)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from hexview.drivers.observer_manager.local import LocalObserverManager
from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.config.models import HexViewConfig
from hexview.kernel.domain.commands import CommandResult, parse_command
from hexview.kernel.exceptions import HexViewError
from hexview.kernel.linking.linker import ModuleGraphLinker
from hexview.kernel.linking.resolver import ModuleResolver
from hexview.kernel.logging import get_logger, set_session_id
from hexview.kernel.orchestration.events import RebuildCompleted
from hexview.kernel.orchestration.tool_executor import ToolExecutor
from hexview.kernel.orchestration.turn_runner import TurnOutcome, TurnRunner
from hexview.preview.renderer import PreviewRenderer, RenderOutcome
from hexview.stdlib.adapters.factory import create_command_source
from hexview.stdlib.adapters.mock import MockSandbox

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hexview.kernel.domain.commands import ToolCommand
    from hexview.kernel.domain.modules import Bundle
    from hexview.kernel.domain.vfs import VFSChange, VFSSnapshot
    from hexview.kernel.ports.command_source import CommandSource
    from hexview.kernel.ports.observer_manager import ObserverManager
    from hexview.kernel.ports.sandbox import Sandbox
    from hexview.kernel.ports.vfs import VirtualFileSystem

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TurnReport:
    """A finished turn together with the render that followed it."""

    turn: TurnOutcome
    render: RenderOutcome | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.turn.reason,
            "steps": self.turn.steps,
            "max_steps": self.turn.max_steps,
            "dropped": self.turn.dropped,
            "results": [result.to_wire() for result in self.turn.results],
            "render": self.render.to_dict() if self.render else None,
        }


class PreviewProject:
    """Owns every component of one preview session.

    Parameters
    ----------
    config : HexViewConfig | None
        Full configuration; defaults everywhere when omitted
    vfs : VirtualFileSystem | None
        Store to work on; a fresh :class:`InMemoryVFS` by default
    sandbox : Sandbox | None
        Where artifacts run; :class:`MockSandbox` by default
    source : CommandSource | None
        Turn driver; built from ``config.provider`` when omitted
    observer_manager : ObserverManager | None
        Event fan-out; a :class:`LocalObserverManager` by default
    """

    def __init__(
        self,
        config: HexViewConfig | None = None,
        *,
        vfs: VirtualFileSystem | None = None,
        sandbox: Sandbox | None = None,
        source: CommandSource | None = None,
        observer_manager: ObserverManager | None = None,
    ) -> None:
        self.config = config or HexViewConfig()
        self.session_id = uuid.uuid4().hex[:8]
        self.vfs = vfs if vfs is not None else InMemoryVFS()
        self.observer_manager = observer_manager or LocalObserverManager()
        self.resolver = ModuleResolver(self.vfs, self.config.linker)
        self.executor = ToolExecutor(self.vfs, self.config.executor, self.resolver)
        self.linker = ModuleGraphLinker(self.vfs, self.config.linker, self.resolver)
        self.renderer = PreviewRenderer(
            sandbox if sandbox is not None else MockSandbox(),
            self.config.preview,
            self.config.linker,
            self.observer_manager,
        )
        self.source = source if source is not None else create_command_source(self.config.provider)
        self.runner = TurnRunner(self.executor, self.source, self.observer_manager)

        self.bundle: Bundle | None = None
        self.outcome: RenderOutcome | None = None
        self._pending: set[str] = set()
        self._full_rebuild = True
        self._rebuild_lock = asyncio.Lock()
        self._debounce_task: asyncio.Task[None] | None = None
        self._deadline = 0.0
        self._unsubscribe = self.vfs.subscribe(self._on_change)

    @classmethod
    def from_files(cls, files: Mapping[str, str], **kwargs: Any) -> PreviewProject:
        """Create a project whose VFS starts with ``files``."""
        return cls(vfs=InMemoryVFS(dict(files)), **kwargs)

    # ------------------------------------------------------------------
    # Change tracking and rebuilds
    # ------------------------------------------------------------------

    @property
    def pending_paths(self) -> frozenset[str]:
        return frozenset(self._pending)

    def _on_change(self, change: VFSChange) -> None:
        self._pending.update(change.paths)
        self._schedule()

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the next flush() picks the changes up
            return
        self._deadline = loop.time() + self.config.preview.debounce_seconds
        if self._debounce_task is None or self._debounce_task.done():
            self._debounce_task = loop.create_task(self._debounce())

    async def _debounce(self) -> None:
        loop = asyncio.get_running_loop()
        while (delay := self._deadline - loop.time()) > 0:
            await asyncio.sleep(delay)
        try:
            await self.rebuild()
        except Exception:
            logger.exception("Debounced rebuild failed")

    async def rebuild(self) -> RenderOutcome | None:
        """Relink pending changes and render the new bundle.

        Rebuilds are serialized. Returns the latest render outcome, which is
        the previous one when nothing changed.
        """
        async with self._rebuild_lock:
            if not self._full_rebuild and not self._pending:
                return self.outcome
            changed = None if self._full_rebuild else frozenset(self._pending)
            self._pending.clear()
            self._full_rebuild = False

            started = time.perf_counter()
            previous = dict(self.linker.records)
            bundle = self.linker.link(changed)
            reused = sum(
                1 for path, record in self.linker.records.items() if previous.get(path) is record
            )
            event = RebuildCompleted(
                revision=bundle.revision,
                invalidated=tuple(sorted(self.linker.last_invalidated)),
                reused=reused,
                failed=tuple(d.path for d in bundle.diagnostics),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            logger.info(event.log_message())
            await self.observer_manager.notify(event)

            self.bundle = bundle
            self.outcome = await self.renderer.render(bundle)
            return self.outcome

    async def flush(self) -> RenderOutcome | None:
        """Rebuild now instead of waiting for the debounce delay."""
        return await self.rebuild()

    # ------------------------------------------------------------------
    # Commands and turns
    # ------------------------------------------------------------------

    async def run_turn(self, instruction: str) -> TurnReport:
        """Run one turn with the configured command source, then rebuild."""
        set_session_id(self.session_id)
        turn = await self.runner.run(instruction)
        render = await self.flush()
        return TurnReport(turn=turn, render=render)

    def execute(self, command: ToolCommand | Mapping[str, Any]) -> CommandResult:
        """Apply one command outside any turn (no step ceiling)."""
        if isinstance(command, Mapping):
            try:
                command = parse_command(command)
            except HexViewError as e:
                return CommandResult(ok=False, message=f"Error: {e}", error=type(e).__name__)
        return self.executor.execute(command)

    async def apply(
        self, commands: Iterable[ToolCommand | Mapping[str, Any]]
    ) -> tuple[list[CommandResult], RenderOutcome | None]:
        """Apply ``commands`` in order, then rebuild once."""
        results = [self.execute(command) for command in commands]
        return results, await self.flush()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> VFSSnapshot:
        return self.vfs.snapshot()

    async def restore(self, snapshot: VFSSnapshot) -> RenderOutcome | None:
        """Replace the project state and rebuild from scratch."""
        self.vfs.restore(snapshot)
        self._full_rebuild = True
        return await self.flush()

    async def aclose(self) -> None:
        self._unsubscribe()
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._debounce_task
        close = getattr(self.source, "aclose", None)
        if close is not None:
            await close()


__all__ = ["PreviewProject", "TurnReport"]
