"""Import resolution, dependency graph and incremental linking."""

from hexview.kernel.linking.graph import ModuleGraph
from hexview.kernel.linking.linker import ModuleGraphLinker, fingerprint
from hexview.kernel.linking.resolver import ModuleResolver, Resolution, SpecifierKind

__all__ = [
    "ModuleGraph",
    "ModuleGraphLinker",
    "ModuleResolver",
    "Resolution",
    "SpecifierKind",
    "fingerprint",
]
