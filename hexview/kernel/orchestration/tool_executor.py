"""Applies tool commands to the VFS as atomic operations.

Each command maps to exactly one VFS transaction. Failures never leave a
partial change behind: they are raised by :meth:`ToolExecutor.apply` and
turned into ``{ok: false, message}`` results by :meth:`ToolExecutor.execute`.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from hexview.compiler import transform_module
from hexview.kernel.config.models import ExecutorConfig, RenamePolicy
from hexview.kernel.domain.commands import (
    CommandResult,
    CreateFile,
    DeleteFile,
    EditFile,
    InsertText,
    RenameOrMove,
    ViewFile,
    parse_command,
)
from hexview.kernel.domain.vfs import EntryType
from hexview.kernel.exceptions import (
    AmbiguousEditError,
    HexViewError,
    StepLimitExceededError,
    TransformSyntaxError,
    UnresolvedImportError,
    VFSError,
)
from hexview.kernel.linking.resolver import ModuleResolver, SpecifierKind
from hexview.kernel.logging import get_logger
from hexview.kernel.paths import normalize_path

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from hexview.kernel.domain.commands import ToolCommand
    from hexview.kernel.ports.vfs import VirtualFileSystem

logger = get_logger(__name__)


def count_occurrences(text: str, fragment: str) -> int:
    """Count occurrences of ``fragment`` in ``text``, overlapping ones included.

    >>> count_occurrences("aaa", "aa")
    2
    """
    count = 0
    index = text.find(fragment)
    while index != -1:
        count += 1
        index = text.find(fragment, index + 1)
    return count


def format_numbered(content: str, start: int = 1, end: int | None = None) -> str:
    """Render ``content`` with 1-based line numbers, like ``cat -n``."""
    lines = content.split("\n")
    last = len(lines) if end is None or end == -1 else min(end, len(lines))
    return "\n".join(f"{number:>6}\t{lines[number - 1]}" for number in range(start, last + 1))


class ToolExecutor:
    """Applies :data:`ToolCommand` records to one VFS.

    Parameters
    ----------
    vfs : VirtualFileSystem
        The store to mutate
    config : ExecutorConfig | None
        Step ceilings and rename policy
    resolver : ModuleResolver | None
        Used by the ``rewrite`` rename policy to find importers of moved files
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        config: ExecutorConfig | None = None,
        resolver: ModuleResolver | None = None,
    ) -> None:
        self.vfs = vfs
        self.config = config or ExecutorConfig()
        self.resolver = resolver or ModuleResolver(vfs)
        self._handlers: dict[str, Callable[[Any], CommandResult]] = {
            "create_file": self._create_file,
            "edit_file": self._edit_file,
            "delete_file": self._delete_file,
            "rename": self._rename,
            "view_file": self._view_file,
            "insert_text": self._insert_text,
        }

    def apply(self, command: ToolCommand) -> CommandResult:
        """Apply ``command``.

        Raises
        ------
        HexViewError
            Any VFS or edit failure; the VFS is left unchanged
        """
        result = self._handlers[command.name](command)
        logger.debug("Applied {name}: {message}", name=command.name, message=result.message)
        return result

    def execute(self, command: ToolCommand) -> CommandResult:
        """Apply ``command`` and report failures as a result instead of raising."""
        try:
            return self.apply(command)
        except HexViewError as e:
            logger.info("Command {name} failed: {error}", name=command.name, error=e)
            return CommandResult(
                ok=False, message=f"Error: {e}", error=type(e).__name__, call_id=command.call_id
            )

    def execute_raw(self, raw: Mapping[str, Any]) -> CommandResult:
        """Parse and execute a raw ``{name, args}`` record."""
        try:
            command = parse_command(raw)
        except HexViewError as e:
            return CommandResult(ok=False, message=f"Error: {e}", error=type(e).__name__)
        return self.execute(command)

    def begin_turn(self, max_steps: int | None = None) -> TurnSession:
        """Start a step-limited session for one turn."""
        return TurnSession(self, max_steps if max_steps is not None else self.config.max_steps)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _create_file(self, command: CreateFile) -> CommandResult:
        path = normalize_path(command.args.path)
        self.vfs.create(path, command.args.content)
        return CommandResult(
            True, f"File created: {path}", changed_paths=frozenset({path}), call_id=command.call_id
        )

    def _edit_file(self, command: EditFile) -> CommandResult:
        path = normalize_path(command.args.path)
        fragment = command.args.old_fragment
        content = self.vfs.read(path)
        if not fragment:
            raise AmbiguousEditError(path, occurrences=0, reason="fragment must not be empty")
        occurrences = count_occurrences(content, fragment)
        if occurrences != 1:
            raise AmbiguousEditError(path, occurrences)
        index = content.index(fragment)
        updated = content[:index] + command.args.new_fragment + content[index + len(fragment) :]
        self.vfs.write(path, updated)
        return CommandResult(
            True,
            f"Replaced text in {path}",
            changed_paths=frozenset({path}),
            call_id=command.call_id,
        )

    def _insert_text(self, command: InsertText) -> CommandResult:
        path = normalize_path(command.args.path)
        content = self.vfs.read(path)
        lines = content.split("\n")
        line = command.args.insert_line
        if line > len(lines):
            raise VFSError(path, f"insert_line {line} is past the end ({len(lines)} lines)")
        updated = "\n".join(lines[:line] + command.args.text.split("\n") + lines[line:])
        self.vfs.write(path, updated)
        return CommandResult(
            True,
            f"Text inserted at line {line} in {path}",
            changed_paths=frozenset({path}),
            call_id=command.call_id,
        )

    def _delete_file(self, command: DeleteFile) -> CommandResult:
        path = normalize_path(command.args.path)
        removed = self.vfs.delete(path)
        extra = len(removed) - 1
        suffix = f" and {extra} descendant(s)" if extra else ""
        return CommandResult(
            True, f"Deleted {path}{suffix}", changed_paths=removed, call_id=command.call_id
        )

    def _rename(self, command: RenameOrMove) -> CommandResult:
        source = normalize_path(command.args.source)
        destination = normalize_path(command.args.destination)
        if self.config.rename_policy is RenamePolicy.PRESERVE:
            moves = self.vfs.rename(source, destination)
            rewritten: list[str] = []
        else:
            with self.vfs.batch():
                edits = self._plan_import_rewrites(source, destination)
                moves = self.vfs.rename(source, destination)
                rewritten = []
                for old_path, replacements in edits.items():
                    new_path = moves.get(old_path, old_path)
                    content = self.vfs.read(new_path)
                    self.vfs.write(new_path, _replace_specifiers(content, replacements))
                    rewritten.append(new_path)

        message = f"Renamed {source} to {destination}"
        if rewritten:
            message += f"; updated imports in {', '.join(sorted(rewritten))}"
        changed = frozenset(moves) | frozenset(moves.values()) | frozenset(rewritten)
        return CommandResult(True, message, changed_paths=changed, call_id=command.call_id)

    def _view_file(self, command: ViewFile) -> CommandResult:
        path = normalize_path(command.args.path)
        node = self.vfs.stat(path)
        if node.kind is EntryType.DIRECTORY:
            entries = self.vfs.list(path)
            if not entries:
                return CommandResult(True, f"{path} is empty", call_id=command.call_id)
            listing = "\n".join(
                f"[DIR] {e.name}" if e.entry_type is EntryType.DIRECTORY else f"[FILE] {e.name}"
                for e in entries
            )
            return CommandResult(True, listing, call_id=command.call_id)

        if command.args.view_range is None:
            return CommandResult(True, format_numbered(node.content), call_id=command.call_id)
        start, end = command.args.view_range
        total = len(node.content.split("\n"))
        if start < 1 or start > total or (end != -1 and end < start):
            raise VFSError(path, f"invalid view_range [{start}, {end}] for {total} line(s)")
        numbered = format_numbered(node.content, start, end)
        return CommandResult(True, numbered, call_id=command.call_id)

    # ------------------------------------------------------------------
    # Import rewriting on rename
    # ------------------------------------------------------------------

    def _plan_import_rewrites(self, source: str, destination: str) -> dict[str, dict[str, str]]:
        """Work out specifier replacements for every module affected by a move.

        Runs against the pre-move state. Returns a mapping of importer path
        (old location) to ``{old_specifier: new_specifier}``.
        """
        if not self.vfs.exists(source):
            return {}

        def moved(path: str) -> str:
            if path == source or path.startswith(source + "/"):
                return destination + path[len(source) :]
            return path

        plan: dict[str, dict[str, str]] = {}
        for node in self.vfs.files():
            if not node.path.endswith(self.resolver.config.extensions):
                continue
            try:
                module = transform_module(node.path, node.content)
            except TransformSyntaxError:
                logger.debug("Skipping import rewrite for unparsable {path}", path=node.path)
                continue

            importer_new = moved(node.path)
            replacements: dict[str, str] = {}
            for entry in module.imports:
                kind = self.resolver.classify(entry.specifier)
                if kind is SpecifierKind.EXTERNAL or entry.specifier in replacements:
                    continue
                try:
                    resolution = self.resolver.resolve(node.path, entry.specifier)
                except UnresolvedImportError:
                    continue
                target_new = moved(resolution.target)
                if target_new == resolution.target and importer_new == node.path:
                    continue
                written = resolution.written or resolution.target
                suffix = resolution.target[len(written) :]
                new_written = target_new
                if suffix and target_new.endswith(suffix):
                    new_written = target_new[: -len(suffix)]
                specifier = self.resolver.format_specifier(importer_new, new_written, kind)
                if specifier != entry.specifier:
                    replacements[entry.specifier] = specifier
            if replacements:
                plan[node.path] = replacements
        return plan


def _replace_specifiers(content: str, replacements: dict[str, str]) -> str:
    """Rewrite quoted specifiers that appear in import/export/import() positions."""
    for old, new in replacements.items():
        pattern = re.compile(
            r"(\bfrom\s*|\bimport\s*\(\s*|\bimport\s+)(['\"])" + re.escape(old) + r"\2"
        )
        content = pattern.sub(lambda m, new=new: f"{m[1]}{m[2]}{new}{m[2]}", content)
    return content


class TurnSession:
    """Step-limited view of a :class:`ToolExecutor` for a single turn.

    The ceiling counts every command, including views and failed commands.
    """

    def __init__(self, executor: ToolExecutor, max_steps: int) -> None:
        self.executor = executor
        self.max_steps = max_steps
        self.steps = 0

    @property
    def exhausted(self) -> bool:
        return self.steps >= self.max_steps

    def execute(self, command: ToolCommand) -> CommandResult:
        """Execute one command within the ceiling.

        Raises
        ------
        StepLimitExceededError
            If the ceiling has already been reached; nothing is applied
        """
        if self.exhausted:
            raise StepLimitExceededError(self.max_steps)
        self.steps += 1
        return self.executor.execute(command)


__all__ = ["ToolExecutor", "TurnSession", "count_occurrences", "format_numbered"]
