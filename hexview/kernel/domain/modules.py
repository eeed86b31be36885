"""Derived module-graph models: transformed modules, records and bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

EXTERNAL = "external"


class ModuleStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"


class ModuleKind(StrEnum):
    """Executable script module or stylesheet pulled in by an import."""

    SCRIPT = "script"
    STYLE = "style"


class ImportKind(StrEnum):
    STATIC = "static"
    SIDE_EFFECT = "side_effect"
    REEXPORT = "reexport"
    DYNAMIC = "dynamic"


@dataclass(frozen=True, slots=True)
class ImportEntry:
    """One import specifier as written, with its location in the module code.

    ``start``/``end`` delimit the specifier text without its quotes, so the
    renderer can rewrite it in place.
    """

    specifier: str
    start: int
    end: int
    kind: ImportKind = ImportKind.STATIC


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A module-scoped problem surfaced to the preview."""

    path: str
    kind: str
    message: str
    line: int | None = None
    column: int | None = None

    def format(self) -> str:
        where = self.path if self.line is None else f"{self.path}:{self.line}:{self.column or 1}"
        return f"{self.kind}: {where}: {self.message}"


@dataclass(frozen=True, slots=True)
class TransformedModule:
    """Output of the module transformer for one file."""

    path: str
    code: str
    imports: tuple[ImportEntry, ...]
    exports: frozenset[str]

    @property
    def has_default_export(self) -> bool:
        return "default" in self.exports


@dataclass(frozen=True, slots=True)
class ModuleRecord:
    """Linked state of one module.

    Records are immutable; a rebuild either reuses the previous record object
    unchanged or replaces it. Dependents are not stored here: the reverse
    edges live in :class:`hexview.kernel.linking.graph.ModuleGraph`.

    Attributes
    ----------
    path : str
        Module path in the VFS
    source_revision : int
        VFS revision of the source file the record was built from
    transformed_code : str
        Executable code (or stylesheet text for style modules)
    imports : tuple[ImportEntry, ...]
        Import entries in written order
    resolved_imports : Mapping[str, str]
        Specifier to resolved path, or ``"external"``
    exports : frozenset[str]
        Exported names (``"default"`` for a default export)
    tried_paths : frozenset[str]
        Every VFS path inspected while resolving this module's imports
    status : ModuleStatus
        ``failed`` modules are excluded from the executable bundle
    diagnostic : Diagnostic | None
        Why the module failed
    kind : ModuleKind
        Script or style
    """

    path: str
    source_revision: int
    transformed_code: str
    imports: tuple[ImportEntry, ...] = ()
    resolved_imports: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    exports: frozenset[str] = frozenset()
    tried_paths: frozenset[str] = frozenset()
    status: ModuleStatus = ModuleStatus.OK
    diagnostic: Diagnostic | None = None
    kind: ModuleKind = ModuleKind.SCRIPT

    @property
    def import_specifiers(self) -> tuple[str, ...]:
        return tuple(entry.specifier for entry in self.imports)

    @property
    def local_dependencies(self) -> tuple[str, ...]:
        """Resolved local paths in written import order, without duplicates."""
        seen: dict[str, None] = {}
        for entry in self.imports:
            target = self.resolved_imports.get(entry.specifier)
            if target is not None and target != EXTERNAL:
                seen.setdefault(target, None)
        return tuple(seen)

    @property
    def ok(self) -> bool:
        return self.status is ModuleStatus.OK


@dataclass(frozen=True, slots=True)
class Bundle:
    """An immutable, fully linked build rooted at the entry module.

    ``modules`` is in load order (dependencies before dependents) and holds
    only script modules that transformed and linked successfully. Failed
    modules appear in ``diagnostics`` instead; stylesheets in ``styles``.
    """

    entry: str
    modules: tuple[ModuleRecord, ...]
    revision: int
    fingerprint: str
    styles: tuple[ModuleRecord, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    cycles: tuple[tuple[str, ...], ...] = ()

    @property
    def load_order(self) -> list[str]:
        return [record.path for record in self.modules]

    @property
    def entry_record(self) -> ModuleRecord | None:
        for record in self.modules:
            if record.path == self.entry:
                return record
        return None

    @property
    def ok(self) -> bool:
        return not self.diagnostics


__all__ = [
    "EXTERNAL",
    "Bundle",
    "Diagnostic",
    "ImportEntry",
    "ImportKind",
    "ModuleKind",
    "ModuleRecord",
    "ModuleStatus",
    "TransformedModule",
]
