"""Anthropic command source for the full-capability mode.

The model edits the project through two tools: ``str_replace_editor``
(view, create, str_replace, insert) and ``file_manager`` (rename, delete).
Each ``tool_use`` block becomes one :data:`ToolCommand` carrying the block id
as ``call_id``; the executor results go back as ``tool_result`` blocks on the
next request.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Literal

from anthropic import APIError, AsyncAnthropic

from hexview.kernel.domain.commands import (
    CreateFile,
    DeleteFile,
    EditFile,
    InsertText,
    RenameOrMove,
    ToolCommand,
    ViewFile,
)
from hexview.kernel.exceptions import CommandParseError
from hexview.kernel.logging import get_logger
from hexview.kernel.ports.command_source import CommandSource, TurnContext
from hexview.stdlib.prompts.generation import GENERATION_PROMPT, build_turn_message

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = get_logger(__name__)

AnthropicModel = Literal[
    "claude-sonnet-4-20250514",
    "claude-opus-4-20250514",
    "claude-3-5-haiku-20241022",
]

# Rounds in which every tool call was malformed before the turn is given up
MAX_REJECTED_ROUNDS = 3

STR_REPLACE_EDITOR: dict[str, Any] = {
    "name": "str_replace_editor",
    "description": (
        "View, create and edit files in the project's virtual file system. "
        "`str_replace` requires `old_str` to occur exactly once."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "command": {"type": "string", "enum": ["view", "create", "str_replace", "insert"]},
            "path": {"type": "string", "description": "Absolute path, e.g. /App.jsx"},
            "file_text": {"type": "string", "description": "Content for `create`"},
            "old_str": {"type": "string", "description": "Exact text to replace"},
            "new_str": {"type": "string", "description": "Replacement or inserted text"},
            "insert_line": {"type": "integer", "description": "Insert after this line (0 = top)"},
            "view_range": {
                "type": "array",
                "items": {"type": "integer"},
                "description": "[start, end] 1-based lines; end -1 reads to the end",
            },
        },
        "required": ["command", "path"],
    },
}

FILE_MANAGER: dict[str, Any] = {
    "name": "file_manager",
    "description": "Rename/move or delete files and directories. Directories move recursively.",
    "input_schema": {
        "type": "object",
        "properties": {
            "command": {"type": "string", "enum": ["rename", "delete"]},
            "path": {"type": "string", "description": "Existing file or directory"},
            "new_path": {"type": "string", "description": "Destination for `rename`"},
        },
        "required": ["command", "path"],
    },
}

TOOLS = [STR_REPLACE_EDITOR, FILE_MANAGER]


def command_from_tool_use(name: str, tool_input: Mapping[str, Any], call_id: str) -> ToolCommand:
    """Translate one ``tool_use`` block into a tool command.

    Raises
    ------
    CommandParseError
        If the tool or its command is unknown, or a required argument is missing
    """
    command = tool_input.get("command")
    try:
        if name == "str_replace_editor":
            path = tool_input["path"]
            if command == "view":
                view_range = tool_input.get("view_range")
                return ViewFile.of(path, tuple(view_range) if view_range else None, call_id)
            if command == "create":
                return CreateFile.of(path, tool_input.get("file_text", ""), call_id)
            if command == "str_replace":
                return EditFile.of(
                    path, tool_input["old_str"], tool_input.get("new_str", ""), call_id
                )
            if command == "insert":
                return InsertText.of(
                    path, int(tool_input["insert_line"]), tool_input["new_str"], call_id
                )
        elif name == "file_manager":
            if command == "rename":
                return RenameOrMove.of(tool_input["path"], tool_input["new_path"], call_id)
            if command == "delete":
                return DeleteFile.of(tool_input["path"], call_id)
        else:
            raise CommandParseError(name, "unknown tool")
    except KeyError as e:
        raise CommandParseError(name, f"missing argument {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise CommandParseError(name, str(e)) from e
    raise CommandParseError(name, f"unsupported command {command!r}")


class AnthropicCommandSource(CommandSource):
    """Claude-driven implementation of the CommandSource port.

    The conversation persists across turns, so follow-up instructions see
    earlier edits. API key resolution order:

    1. Explicit parameter: ``AnthropicCommandSource(api_key="sk-...")``
    2. Environment variable: ``ANTHROPIC_API_KEY``

    Parameters
    ----------
    api_key : str | None
        Anthropic API key
    model : str, default="claude-sonnet-4-20250514"
        Claude model to use
    max_tokens : int, default=4096
        Maximum tokens per response
    system_prompt : str
        System prompt; the built-in generation prompt by default
    timeout : float, default=60.0
        Request timeout in seconds
    max_retries : int, default=2
        Maximum retry attempts
    client : AsyncAnthropic | None
        Pre-built client (tests inject a fake here)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: AnthropicModel | str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        system_prompt: str = GENERATION_PROMPT,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        if client is None:
            api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError("api_key required (pass directly or set ANTHROPIC_API_KEY)")
            client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.client = client
        self.messages: list[dict[str, Any]] = []
        # tool_use ids of the last response that still need a tool_result
        self._awaiting: list[str] = []
        self._rejected: dict[str, str] = {}

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self.client.close()

    async def produce_next_commands(self, turn_context: TurnContext) -> Sequence[ToolCommand]:
        if turn_context.step == 0 and not turn_context.history:
            text = build_turn_message(
                turn_context.instruction, turn_context.files, turn_context.remaining_steps
            )
            content = [*self._tool_results(()), {"type": "text", "text": text}]
        else:
            content = self._tool_results(turn_context.results)
        self.messages.append({"role": "user", "content": content})

        for _ in range(MAX_REJECTED_ROUNDS):
            commands = await self._request()
            if commands is None:
                return []
            if commands or not self._rejected:
                return commands
            self.messages.append({"role": "user", "content": self._tool_results(())})
        logger.warning("Giving up after {n} rounds of malformed tool calls", n=MAX_REJECTED_ROUNDS)
        return []

    async def _request(self) -> list[ToolCommand] | None:
        """Send the conversation; return parsed commands, or None if the turn should end."""
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.system_prompt,
                tools=TOOLS,
                messages=self.messages,
            )
        except APIError as e:
            logger.error("Anthropic API error: {error}", error=e)
            self.messages.pop()
            return None

        self._awaiting.clear()
        self._rejected.clear()
        self.messages.append(
            {
                "role": "assistant",
                "content": [block.model_dump(exclude_none=True) for block in response.content],
            }
        )
        commands: list[ToolCommand] = []
        for block in response.content:
            if block.type != "tool_use":
                continue
            self._awaiting.append(block.id)
            try:
                commands.append(command_from_tool_use(block.name, block.input, block.id))
            except CommandParseError as e:
                self._rejected[block.id] = f"Error: {e}"
        logger.debug(
            "Model returned {n} command(s), stop_reason={reason}",
            n=len(commands),
            reason=response.stop_reason,
        )
        return commands

    def _tool_results(self, results: Sequence[Any]) -> list[dict[str, Any]]:
        """``tool_result`` blocks for every tool call still awaiting an answer."""
        by_id = {result.call_id: result for result in results if result.call_id}
        blocks: list[dict[str, Any]] = []
        for call_id in self._awaiting:
            result = by_id.get(call_id)
            if result is not None:
                message, is_error = result.message, not result.ok
            elif call_id in self._rejected:
                message, is_error = self._rejected[call_id], True
            else:
                message, is_error = "Not applied: the turn ended before this call ran", True
            blocks.append(
                {
                    "type": "tool_result",
                    "tool_use_id": call_id,
                    "content": message,
                    "is_error": is_error,
                }
            )
        return blocks


__all__ = ["TOOLS", "AnthropicCommandSource", "command_from_tool_use"]
