"""Tool command protocol.

A command is a tagged record ``{"name": ..., "args": {...}}`` issued by the
external actor. The executor answers each one with ``{"ok": ..., "message": ...}``.

Examples
--------
>>> cmd = parse_command({"name": "delete_file", "args": {"path": "/a.jsx"}})
>>> cmd.args.path
'/a.jsx'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from hexview.kernel.exceptions import CommandParseError


class _Args(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class CreateFileArgs(_Args):
    path: str
    content: str = ""


class EditFileArgs(_Args):
    path: str
    old_fragment: str = Field(validation_alias=AliasChoices("old_fragment", "oldFragment"))
    new_fragment: str = Field(validation_alias=AliasChoices("new_fragment", "newFragment"))


class DeleteFileArgs(_Args):
    path: str


class RenameArgs(_Args):
    source: str = Field(alias="from")
    destination: str = Field(alias="to")


class ViewFileArgs(_Args):
    path: str
    view_range: tuple[int, int] | None = None


class InsertTextArgs(_Args):
    path: str
    insert_line: int = Field(ge=0)
    text: str


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    call_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to ``{name, args}``."""
        args: BaseModel = self.args  # type: ignore[attr-defined]
        wire: dict[str, Any] = {
            "name": self.name,  # type: ignore[attr-defined]
            "args": args.model_dump(by_alias=True, exclude_none=True),
        }
        if self.call_id is not None:
            wire["call_id"] = self.call_id
        return wire


class CreateFile(_Command):
    """Create a new file; fails with a conflict if the path exists."""

    name: Literal["create_file"] = "create_file"
    args: CreateFileArgs

    @classmethod
    def of(cls, path: str, content: str = "", call_id: str | None = None) -> CreateFile:
        return cls(args=CreateFileArgs(path=path, content=content), call_id=call_id)


class EditFile(_Command):
    """Replace the single occurrence of ``old_fragment`` with ``new_fragment``."""

    name: Literal["edit_file"] = "edit_file"
    args: EditFileArgs

    @classmethod
    def of(
        cls, path: str, old_fragment: str, new_fragment: str, call_id: str | None = None
    ) -> EditFile:
        return cls(
            args=EditFileArgs(path=path, old_fragment=old_fragment, new_fragment=new_fragment),
            call_id=call_id,
        )


class DeleteFile(_Command):
    """Delete a file, or a directory with all its descendants."""

    name: Literal["delete_file"] = "delete_file"
    args: DeleteFileArgs

    @classmethod
    def of(cls, path: str, call_id: str | None = None) -> DeleteFile:
        return cls(args=DeleteFileArgs(path=path), call_id=call_id)


class RenameOrMove(_Command):
    """Rename or move a file or directory."""

    name: Literal["rename"] = "rename"
    args: RenameArgs

    @classmethod
    def of(cls, source: str, destination: str, call_id: str | None = None) -> RenameOrMove:
        return cls(args=RenameArgs(source=source, destination=destination), call_id=call_id)


class ViewFile(_Command):
    """Read a file (numbered lines) or list a directory."""

    name: Literal["view_file"] = "view_file"
    args: ViewFileArgs

    @classmethod
    def of(
        cls, path: str, view_range: tuple[int, int] | None = None, call_id: str | None = None
    ) -> ViewFile:
        return cls(args=ViewFileArgs(path=path, view_range=view_range), call_id=call_id)


class InsertText(_Command):
    """Insert text after line ``insert_line`` (0 inserts at the top)."""

    name: Literal["insert_text"] = "insert_text"
    args: InsertTextArgs

    @classmethod
    def of(cls, path: str, insert_line: int, text: str, call_id: str | None = None) -> InsertText:
        return cls(
            args=InsertTextArgs(path=path, insert_line=insert_line, text=text), call_id=call_id
        )


ToolCommand = Annotated[
    CreateFile | EditFile | DeleteFile | RenameOrMove | ViewFile | InsertText,
    Field(discriminator="name"),
]

_COMMAND_ADAPTER: TypeAdapter[ToolCommand] = TypeAdapter(ToolCommand)

COMMAND_NAMES = ("create_file", "edit_file", "delete_file", "rename", "view_file", "insert_text")


def parse_command(raw: Mapping[str, Any]) -> ToolCommand:
    """Validate a raw ``{name, args}`` mapping into a typed command.

    Raises
    ------
    CommandParseError
        If the name is unknown or the arguments do not match its schema
    """
    name = raw.get("name") if isinstance(raw, Mapping) else None
    if name not in COMMAND_NAMES:
        raise CommandParseError(name, f"expected one of {', '.join(COMMAND_NAMES)}")
    try:
        return _COMMAND_ADAPTER.validate_python(dict(raw))
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise CommandParseError(name, details) from e


def parse_commands(raw: Iterable[Mapping[str, Any]]) -> list[ToolCommand]:
    """Parse a sequence of raw commands, preserving order."""
    return [parse_command(item) for item in raw]


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one applied command.

    Attributes
    ----------
    ok : bool
        Whether the command was applied
    message : str
        Feedback for the issuing actor
    error : str | None
        Error class name when ``ok`` is False (e.g. ``"AmbiguousEditError"``)
    changed_paths : frozenset[str]
        Paths this command changed (empty for failures and views)
    call_id : str | None
        Echo of the command's ``call_id``
    """

    ok: bool
    message: str
    error: str | None = None
    changed_paths: frozenset[str] = field(default_factory=frozenset)
    call_id: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {"ok": self.ok, "message": self.message}


__all__ = [
    "COMMAND_NAMES",
    "CommandResult",
    "CreateFile",
    "CreateFileArgs",
    "DeleteFile",
    "DeleteFileArgs",
    "EditFile",
    "EditFileArgs",
    "InsertText",
    "InsertTextArgs",
    "RenameArgs",
    "RenameOrMove",
    "ToolCommand",
    "ViewFile",
    "ViewFileArgs",
    "parse_command",
    "parse_commands",
]
