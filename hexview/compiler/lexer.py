"""Lexical helpers shared by the JSX transformer and the module syntax scanner.

Each ``skip_*`` function takes the index of the token's first character and
returns the index just past it. Unterminated tokens raise
:class:`TransformSyntaxError` pointing at where the token started.
"""

from __future__ import annotations

import re

from hexview.kernel.exceptions import TransformSyntaxError

WHITESPACE = frozenset(" \t\r\n\f\v\u00a0\ufeff\u2028\u2029")

IDENT_START = re.compile(r"[A-Za-z_$\u0080-\U0010ffff]")
IDENT_PART = re.compile(r"[\w$\u0080-\U0010ffff]*")
IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")
NUMBER = re.compile(
    r"0[xXoObB][\da-fA-F_]+n?|(?:\d[\d_]*\.?[\d_]*|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?n?"
)

# Keywords after which an expression (and so a regex or JSX) may start
KEYWORDS_BEFORE_EXPRESSION = frozenset({
    "await",
    "case",
    "default",
    "delete",
    "do",
    "else",
    "in",
    "instanceof",
    "new",
    "of",
    "return",
    "throw",
    "typeof",
    "void",
    "yield",
})


def line_col(source: str, index: int) -> tuple[int, int]:
    """1-based line and column of ``index``."""
    line = source.count("\n", 0, index) + 1
    column = index - (source.rfind("\n", 0, index) + 1) + 1
    return line, column


def syntax_error(path: str, source: str, index: int, message: str) -> TransformSyntaxError:
    line, column = line_col(source, index)
    return TransformSyntaxError(path, message, line, column)


def read_identifier(source: str, index: int) -> int:
    """Index just past the identifier starting at ``index``."""
    match = IDENT_PART.match(source, index + 1)
    return match.end() if match else index + 1


def read_number(source: str, index: int) -> int:
    match = NUMBER.match(source, index)
    return match.end() if match and match.end() > index else index + 1


def skip_string(source: str, index: int, path: str) -> int:
    quote = source[index]
    i = index + 1
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            break
        i += 1
    raise syntax_error(path, source, index, "Unterminated string constant")


def skip_line_comment(source: str, index: int) -> int:
    end = source.find("\n", index)
    return len(source) if end == -1 else end


def skip_block_comment(source: str, index: int, path: str) -> int:
    end = source.find("*/", index + 2)
    if end == -1:
        raise syntax_error(path, source, index, "Unterminated comment")
    return end + 2


def skip_regex(source: str, index: int, path: str) -> int:
    i = index + 1
    n = len(source)
    in_class = False
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            break
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            # trailing flags
            return read_identifier(source, i)
        i += 1
    raise syntax_error(path, source, index, "Unterminated regular expression")


def skip_template_text(source: str, index: int, path: str, opening: int) -> tuple[int, bool]:
    """Scan template literal text starting at ``index``.

    Returns
    -------
        ``(next_index, True)`` just past a ``${`` or ``(next_index, False)``
        just past the closing backtick.
    """
    i = index
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1, False
        if ch == "$" and i + 1 < n and source[i + 1] == "{":
            return i + 2, True
        i += 1
    raise syntax_error(path, source, opening, "Unterminated template")


__all__ = [
    "IDENTIFIER",
    "IDENT_START",
    "KEYWORDS_BEFORE_EXPRESSION",
    "WHITESPACE",
    "line_col",
    "read_identifier",
    "read_number",
    "skip_block_comment",
    "skip_line_comment",
    "skip_regex",
    "skip_string",
    "skip_template_text",
    "syntax_error",
]
