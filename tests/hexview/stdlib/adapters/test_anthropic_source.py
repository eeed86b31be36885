"""Tests for the Anthropic command source (with a fake client)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from anthropic import APIError
from anthropic.types import TextBlock, ToolUseBlock

from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.domain.commands import (
    CommandResult,
    CreateFile,
    DeleteFile,
    EditFile,
    InsertText,
    RenameOrMove,
    ViewFile,
)
from hexview.kernel.exceptions import CommandParseError
from hexview.kernel.ports.command_source import TurnContext
from hexview.stdlib.adapters.anthropic.anthropic_source import (
    TOOLS,
    AnthropicCommandSource,
    command_from_tool_use,
)


@dataclass
class FakeResponse:
    content: list[Any]
    stop_reason: str = "tool_use"


@dataclass
class FakeMessages:
    responses: list[Any]
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def create(self, **kwargs: Any) -> FakeResponse:
        self.calls.append({**kwargs, "messages": list(kwargs["messages"])})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClient:
    def __init__(self, *responses: Any) -> None:
        self.messages = FakeMessages(list(responses))
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def tool_use(call_id: str, name: str, **tool_input: Any) -> ToolUseBlock:
    return ToolUseBlock(id=call_id, name=name, input=tool_input, type="tool_use")


def context(step: int = 0, results: list[CommandResult] | None = None) -> TurnContext:
    vfs = InMemoryVFS({"/App.jsx": "export default () => null;"})
    return TurnContext(
        instruction="Add a button",
        step=step,
        max_steps=40,
        files=vfs.snapshot(),
        results=results or [],
        history=[],
    )


class TestCommandFromToolUse:
    def test_editor_commands(self) -> None:
        assert command_from_tool_use(
            "str_replace_editor", {"command": "view", "path": "/", "view_range": [1, 5]}, "t1"
        ) == ViewFile.of("/", (1, 5), "t1")
        assert command_from_tool_use(
            "str_replace_editor", {"command": "create", "path": "/a.jsx", "file_text": "x"}, "t2"
        ) == CreateFile.of("/a.jsx", "x", "t2")
        assert command_from_tool_use(
            "str_replace_editor",
            {"command": "str_replace", "path": "/a.jsx", "old_str": "x", "new_str": "y"},
            "t3",
        ) == EditFile.of("/a.jsx", "x", "y", "t3")
        assert command_from_tool_use(
            "str_replace_editor",
            {"command": "insert", "path": "/a.jsx", "insert_line": "2", "new_str": "z"},
            "t4",
        ) == InsertText.of("/a.jsx", 2, "z", "t4")

    def test_file_manager_commands(self) -> None:
        assert command_from_tool_use(
            "file_manager", {"command": "rename", "path": "/a", "new_path": "/b"}, "t5"
        ) == RenameOrMove.of("/a", "/b", "t5")
        assert command_from_tool_use(
            "file_manager", {"command": "delete", "path": "/a"}, "t6"
        ) == DeleteFile.of("/a", "t6")

    def test_missing_argument(self) -> None:
        with pytest.raises(CommandParseError, match="missing argument 'old_str'"):
            command_from_tool_use(
                "str_replace_editor", {"command": "str_replace", "path": "/a.jsx"}, "t"
            )

    def test_unknown_tool_and_command(self) -> None:
        with pytest.raises(CommandParseError, match="unknown tool"):
            command_from_tool_use("bash", {"command": "ls"}, "t")
        with pytest.raises(CommandParseError, match="unsupported command 'undo_edit'"):
            command_from_tool_use("str_replace_editor", {"command": "undo_edit", "path": "/"}, "t")

    def test_tool_schemas(self) -> None:
        assert [tool["name"] for tool in TOOLS] == ["str_replace_editor", "file_manager"]


class TestAnthropicCommandSource:
    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError, match="api_key required"):
            AnthropicCommandSource()

    @pytest.mark.asyncio
    async def test_turn_round_trip(self) -> None:
        client = FakeClient(
            FakeResponse(
                [
                    TextBlock(text="Creating the button.", type="text"),
                    tool_use(
                        "toolu_1",
                        "str_replace_editor",
                        command="create",
                        path="/components/Button.jsx",
                        file_text="export default () => null;",
                    ),
                ]
            ),
            FakeResponse([TextBlock(text="Done.", type="text")], stop_reason="end_turn"),
        )
        source = AnthropicCommandSource(client=client, model="claude-sonnet-4-20250514")

        commands = await source.produce_next_commands(context())
        assert commands == [
            CreateFile.of("/components/Button.jsx", "export default () => null;", "toolu_1")
        ]
        first = client.messages.calls[0]
        assert first["tools"] == TOOLS
        opening = first["messages"][0]["content"]
        assert opening[-1]["type"] == "text"
        assert "Add a button" in opening[-1]["text"]
        assert "- /App.jsx" in opening[-1]["text"]
        assert "at most 40 tool call(s)" in opening[-1]["text"]

        result = CommandResult(True, "File created: /components/Button.jsx", call_id="toolu_1")
        assert await source.produce_next_commands(context(1, [result])) == []
        reply = client.messages.calls[1]["messages"][-1]
        assert reply == {
            "role": "user",
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": "toolu_1",
                    "content": "File created: /components/Button.jsx",
                    "is_error": False,
                }
            ],
        }

    @pytest.mark.asyncio
    async def test_malformed_calls_are_answered_and_retried(self) -> None:
        client = FakeClient(
            FakeResponse(
                [tool_use("toolu_bad", "str_replace_editor", command="explode", path="/")]
            ),
            FakeResponse([tool_use("toolu_ok", "file_manager", command="delete", path="/x")]),
        )
        source = AnthropicCommandSource(client=client)
        commands = await source.produce_next_commands(context())
        assert commands == [DeleteFile.of("/x", "toolu_ok")]
        retry = client.messages.calls[1]["messages"][-1]["content"][0]
        assert retry["tool_use_id"] == "toolu_bad"
        assert retry["is_error"] is True
        assert retry["content"].startswith("Error: Invalid tool command")

    @pytest.mark.asyncio
    async def test_unanswered_calls_closed_on_next_turn(self) -> None:
        client = FakeClient(
            FakeResponse([tool_use("toolu_1", "file_manager", command="delete", path="/x")]),
            FakeResponse([TextBlock(text="ok", type="text")], stop_reason="end_turn"),
        )
        source = AnthropicCommandSource(client=client)
        await source.produce_next_commands(context())
        await source.produce_next_commands(context())
        opening = client.messages.calls[1]["messages"][-1]["content"]
        assert opening[0]["tool_use_id"] == "toolu_1"
        assert opening[0]["is_error"] is True
        assert opening[1]["type"] == "text"

    @pytest.mark.asyncio
    async def test_api_error_ends_turn(self) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = FakeClient(APIError("overloaded", request, body=None))
        source = AnthropicCommandSource(client=client)
        assert await source.produce_next_commands(context()) == []
        assert source.messages == []

    @pytest.mark.asyncio
    async def test_aclose(self) -> None:
        client = FakeClient()
        await AnthropicCommandSource(client=client).aclose()
        assert client.closed
