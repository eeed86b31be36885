"""Module graph linker: VFS contents in, immutable :class:`Bundle` out.

The linker keeps one :class:`ModuleRecord` per module reachable from the
entry. On each :meth:`ModuleGraphLinker.link` call only the invalidated
records are rebuilt; every other record object is carried over as is.

Example
-------
.. code-block:: python

    linker = ModuleGraphLinker(vfs)
    bundle = linker.link()
    vfs.write("/components/Button.jsx", new_source)
    bundle = linker.link({"/components/Button.jsx"})
    linker.last_invalidated  # {"/components/Button.jsx", "/App.jsx"}
"""

from __future__ import annotations

import hashlib
import time
from types import MappingProxyType
from typing import TYPE_CHECKING

from hexview.compiler import transform_module
from hexview.kernel.config.models import LinkerConfig
from hexview.kernel.domain.modules import (
    EXTERNAL,
    Bundle,
    Diagnostic,
    ModuleKind,
    ModuleRecord,
    ModuleStatus,
)
from hexview.kernel.exceptions import (
    PathNotFoundError,
    TransformSyntaxError,
    UnresolvedImportError,
    VFSError,
)
from hexview.kernel.linking.graph import ModuleGraph
from hexview.kernel.linking.resolver import ModuleResolver
from hexview.kernel.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from hexview.kernel.ports.vfs import VirtualFileSystem

logger = get_logger(__name__)

MISSING_ENTRY = "MissingEntryError"


class ModuleGraphLinker:
    """Incrementally links the modules reachable from the entry file.

    Parameters
    ----------
    vfs : VirtualFileSystem
        Source of module contents
    config : LinkerConfig | None
        Entry path, alias prefix and tried extensions
    resolver : ModuleResolver | None
        Shared resolver; built from ``config`` when omitted
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        config: LinkerConfig | None = None,
        resolver: ModuleResolver | None = None,
    ) -> None:
        self.vfs = vfs
        self.config = config or LinkerConfig()
        self.resolver = resolver or ModuleResolver(vfs, self.config)
        self.graph = ModuleGraph()
        self._records: dict[str, ModuleRecord] = {}
        self._revision = 0
        self.last_invalidated: frozenset[str] = frozenset()
        self.last_bundle: Bundle | None = None

    @property
    def records(self) -> Mapping[str, ModuleRecord]:
        return MappingProxyType(self._records)

    @property
    def entry(self) -> str:
        return self.config.entry

    def dependents(self, path: str) -> frozenset[str]:
        """Modules that currently import ``path``."""
        return self.graph.dependents(path)

    def invalidate(self, changed_paths: Iterable[str]) -> frozenset[str]:
        """Discard the records affected by ``changed_paths``.

        Returns
        -------
        frozenset[str]
            Paths whose records were discarded
        """
        affected = self.graph.invalidation_set(changed_paths) & self._records.keys()
        for path in affected:
            del self._records[path]
            self.graph.remove(path)
        return frozenset(affected)

    def link(self, changed_paths: Iterable[str] | None = None) -> Bundle:
        """Produce a bundle for the current VFS state.

        Args
        ----
            changed_paths: Paths modified since the previous link. ``None``
                discards every record and rebuilds from scratch.

        Returns
        -------
            A new bundle. Module-level failures are reported in
            ``bundle.diagnostics``; this method does not raise for them.
        """
        started = time.perf_counter()
        if changed_paths is None:
            self._records.clear()
            self.graph.clear()
        else:
            self.invalidate(changed_paths)
        self._revision += 1

        if not self._entry_exists():
            self._records.clear()
            self.graph.clear()
            self.last_invalidated = frozenset()
            diagnostic = Diagnostic(self.entry, MISSING_ENTRY, "entry module does not exist")
            bundle = self._bundle((), (), (diagnostic,), ())
            logger.warning("Entry {entry} is missing; bundle is empty", entry=self.entry)
            self.last_bundle = bundle
            return bundle

        rebuilt = self._build_reachable()
        self._drop_unreachable()

        order, cycles = self.graph.load_order(self.entry)
        ordered = [self._records[path] for path in order]
        modules = tuple(r for r in ordered if r.ok and r.kind is ModuleKind.SCRIPT)
        styles = tuple(r for r in ordered if r.ok and r.kind is ModuleKind.STYLE)
        diagnostics = tuple(r.diagnostic for r in ordered if r.diagnostic is not None)
        for cycle in cycles:
            logger.debug("Import cycle: {cycle}", cycle=" -> ".join(cycle))

        self.last_invalidated = frozenset(rebuilt)
        bundle = self._bundle(modules, styles, diagnostics, tuple(cycles))
        self.last_bundle = bundle
        logger.debug(
            "Linked r{revision}: {count} module(s), {rebuilt} rebuilt in {ms:.1f}ms",
            revision=bundle.revision,
            count=len(ordered),
            rebuilt=len(rebuilt),
            ms=(time.perf_counter() - started) * 1000,
        )
        return bundle

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _entry_exists(self) -> bool:
        return self.vfs.exists(self.entry) and not self.vfs.stat(self.entry).is_directory

    def _build_reachable(self) -> list[str]:
        """Build records for reachable modules that have none; return their paths."""
        rebuilt: list[str] = []
        seen: set[str] = set()
        stack = [self.entry]
        while stack:
            path = stack.pop()
            if path in seen:
                continue
            seen.add(path)
            record = self._records.get(path)
            if record is None:
                record = self._build(path)
                self._records[path] = record
                self.graph.set_module(path, record.local_dependencies, record.tried_paths)
                rebuilt.append(path)
            stack.extend(reversed(record.local_dependencies))
        return rebuilt

    def _drop_unreachable(self) -> None:
        reachable = self.graph.reachable(self.entry)
        for path in [p for p in self._records if p not in reachable]:
            del self._records[path]
            self.graph.remove(path)

    def _build(self, path: str) -> ModuleRecord:
        try:
            node = self.vfs.stat(path)
        except PathNotFoundError as e:
            return _failed(path, 0, "", Diagnostic(path, type(e).__name__, str(e)))
        if node.is_directory:
            diagnostic = Diagnostic(path, VFSError.__name__, "is a directory")
            return _failed(path, node.last_modified, "", diagnostic)

        if self.resolver.is_style(path):
            return ModuleRecord(
                path=path,
                source_revision=node.last_modified,
                transformed_code=node.content,
                kind=ModuleKind.STYLE,
            )

        try:
            module = transform_module(path, node.content)
        except TransformSyntaxError as e:
            diagnostic = Diagnostic(path, type(e).__name__, e.message, e.line, e.column)
            logger.info("Transform failed: {diagnostic}", diagnostic=diagnostic.format())
            return _failed(path, node.last_modified, "", diagnostic)

        resolved: dict[str, str] = {}
        tried: set[str] = set()
        diagnostic = None
        for entry in module.imports:
            if entry.specifier in resolved:
                continue
            try:
                resolution = self.resolver.resolve(path, entry.specifier)
            except UnresolvedImportError as e:
                tried.update(self.resolver.candidate_paths(path, entry.specifier))
                if diagnostic is None:
                    diagnostic = Diagnostic(path, type(e).__name__, str(e))
                    logger.info("Link failed: {diagnostic}", diagnostic=diagnostic.format())
                continue
            resolved[entry.specifier] = resolution.target
            if resolution.target != EXTERNAL:
                tried.update(resolution.tried)

        return ModuleRecord(
            path=path,
            source_revision=node.last_modified,
            transformed_code=module.code,
            imports=module.imports,
            resolved_imports=MappingProxyType(resolved),
            exports=module.exports,
            tried_paths=frozenset(tried),
            status=ModuleStatus.OK if diagnostic is None else ModuleStatus.FAILED,
            diagnostic=diagnostic,
        )

    def _bundle(
        self,
        modules: tuple[ModuleRecord, ...],
        styles: tuple[ModuleRecord, ...],
        diagnostics: tuple[Diagnostic, ...],
        cycles: tuple[tuple[str, ...], ...],
    ) -> Bundle:
        return Bundle(
            entry=self.entry,
            modules=modules,
            revision=self._revision,
            fingerprint=fingerprint(modules, styles, diagnostics),
            styles=styles,
            diagnostics=diagnostics,
            cycles=cycles,
        )


def _failed(path: str, revision: int, code: str, diagnostic: Diagnostic) -> ModuleRecord:
    return ModuleRecord(
        path=path,
        source_revision=revision,
        transformed_code=code,
        status=ModuleStatus.FAILED,
        diagnostic=diagnostic,
    )


def fingerprint(
    modules: Iterable[ModuleRecord],
    styles: Iterable[ModuleRecord] = (),
    diagnostics: Iterable[Diagnostic] = (),
) -> str:
    """Content hash of ordered module code, stylesheets and diagnostics."""
    digest = hashlib.sha256()
    for record in (*modules, *styles):
        digest.update(f"{record.kind}:{record.path}\0{record.transformed_code}\0".encode())
    for diagnostic in diagnostics:
        digest.update(f"!{diagnostic.format()}\0".encode())
    return digest.hexdigest()[:16]


__all__ = ["MISSING_ENTRY", "ModuleGraphLinker", "fingerprint"]
