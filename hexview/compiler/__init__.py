"""Module transformer: one file's JSX + module source in, executable code out.

``transform_module`` is a pure function of ``(path, source)``. It never looks
at other files; resolving the preserved import specifiers is the linker's job.
"""

from __future__ import annotations

import re

from hexview.compiler.jsx import clean_jsx_text, transform_jsx
from hexview.compiler.module_syntax import ModuleSyntax, scan_module_syntax
from hexview.kernel.domain.modules import TransformedModule

REACT_IMPORT = 'import React from "react";'

_LOCAL_REACT_BINDING = re.compile(r"\b(?:const|let|var|function|class)\s+React\b")


def transform_module(path: str, source: str) -> TransformedModule:
    """Transform one module.

    When the module uses JSX without binding ``React`` itself, a default
    ``react`` import is prepended on the first line so line numbers hold.

    Raises
    ------
    TransformSyntaxError
        If the source is malformed
    """
    code, used_jsx = transform_jsx(path, source)
    syntax = scan_module_syntax(code, path)
    if (
        used_jsx
        and "React" not in syntax.imported_names
        and not _LOCAL_REACT_BINDING.search(code)
    ):
        code = REACT_IMPORT + code
        syntax = scan_module_syntax(code, path)
    return TransformedModule(
        path=path,
        code=code,
        imports=syntax.imports,
        exports=syntax.exports,
    )


__all__ = [
    "REACT_IMPORT",
    "ModuleSyntax",
    "clean_jsx_text",
    "scan_module_syntax",
    "transform_module",
]
