"""Import specifier resolution against the virtual filesystem.

Specifier classes:

- ``@/components/Button``: alias, mapped onto the VFS root
- ``./Button`` / ``../lib/util``: relative to the importing module's directory
- ``/components/Button``: root-absolute local path
- anything else (``react``, ``lucide-react``): external, passed through

Local specifiers are tried as written, then with each known extension,
then as a directory containing ``index`` plus an extension.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from hexview.kernel.config.models import LinkerConfig
from hexview.kernel.domain.modules import EXTERNAL
from hexview.kernel.exceptions import InvalidPathError, UnresolvedImportError
from hexview.kernel.paths import join, parent_of

if TYPE_CHECKING:
    from hexview.kernel.ports.vfs import VirtualFileSystem

STYLE_EXTENSIONS = (".css",)


class SpecifierKind(StrEnum):
    ALIAS = "alias"
    RELATIVE = "relative"
    ROOT = "root"
    EXTERNAL = "external"


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of resolving one specifier.

    Attributes
    ----------
    target : str
        Resolved VFS path, or ``"external"``
    tried : tuple[str, ...]
        Every path checked before (and including) the hit
    written : str | None
        The lexical path the specifier names before probing
    """

    target: str
    tried: tuple[str, ...] = ()
    written: str | None = None

    @property
    def is_external(self) -> bool:
        return self.target == EXTERNAL


class ModuleResolver:
    """Resolves import specifiers to VFS paths."""

    def __init__(self, vfs: VirtualFileSystem, config: LinkerConfig | None = None) -> None:
        self.vfs = vfs
        self.config = config or LinkerConfig()

    def classify(self, specifier: str) -> SpecifierKind:
        if specifier.startswith(self.config.alias):
            return SpecifierKind.ALIAS
        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            return SpecifierKind.RELATIVE
        if specifier.startswith("/"):
            return SpecifierKind.ROOT
        return SpecifierKind.EXTERNAL

    def written_path(self, importer: str, specifier: str) -> str | None:
        """Lexical absolute path a local specifier names, or None for externals.

        Raises
        ------
        InvalidPathError
            If a relative specifier climbs above the project root
        """
        kind = self.classify(specifier)
        if kind is SpecifierKind.ALIAS:
            return join("/", specifier[len(self.config.alias) :])
        if kind is SpecifierKind.RELATIVE:
            return join(parent_of(importer), specifier)
        if kind is SpecifierKind.ROOT:
            return join("/", specifier)
        return None

    def candidates(self, base: str) -> list[str]:
        """Paths to try for a lexical base path, in priority order."""
        extensions = self.config.extensions
        result = [base]
        result.extend(base + ext for ext in extensions)
        index_dir = base.rstrip("/") if base != "/" else ""
        result.extend(f"{index_dir}/index{ext}" for ext in extensions)
        return result

    def resolve(self, importer: str, specifier: str) -> Resolution:
        """Resolve ``specifier`` as written in ``importer``.

        Raises
        ------
        UnresolvedImportError
            If a local specifier matches no file
        """
        try:
            base = self.written_path(importer, specifier)
        except InvalidPathError as e:
            raise UnresolvedImportError(importer, specifier) from e
        if base is None:
            return Resolution(EXTERNAL)

        tried: list[str] = []
        for candidate in self.candidates(base):
            tried.append(candidate)
            if self.vfs.exists(candidate) and not self.vfs.stat(candidate).is_directory:
                return Resolution(candidate, tuple(tried), base)
        raise UnresolvedImportError(importer, specifier)

    def candidate_paths(self, importer: str, specifier: str) -> tuple[str, ...]:
        """Every path whose appearance could change how ``specifier`` resolves."""
        try:
            base = self.written_path(importer, specifier)
        except InvalidPathError:
            return ()
        return () if base is None else tuple(self.candidates(base))

    def format_specifier(self, importer: str, written: str, kind: SpecifierKind) -> str:
        """Render ``written`` as a specifier of the given kind, as seen from ``importer``."""
        if kind is SpecifierKind.ALIAS:
            return self.config.alias + written.lstrip("/")
        if kind is SpecifierKind.ROOT:
            return written
        relative = posixpath.relpath(written, parent_of(importer))
        return relative if relative.startswith("../") else f"./{relative}"

    @staticmethod
    def is_style(path: str) -> bool:
        return path.endswith(STYLE_EXTENSIONS)


__all__ = ["STYLE_EXTENSIONS", "ModuleResolver", "Resolution", "SpecifierKind"]
