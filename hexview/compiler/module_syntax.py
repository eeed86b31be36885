"""Import/export extraction for JSX-free module code.

The scanner tokenizes the module (skipping comments, strings, regexes and
template text) and recognizes:

- ``import x, {a as b} from "mod"`` / ``import * as ns from "mod"``
- ``import "mod"`` (side effect)
- ``export * from "mod"`` / ``export {a} from "mod"`` (re-export)
- ``import("mod")`` with a literal argument (dynamic)
- exported names of ``export default``, ``export {…}`` and declarations
"""

from __future__ import annotations

from dataclasses import dataclass

from hexview.compiler.lexer import (
    IDENT_START,
    KEYWORDS_BEFORE_EXPRESSION,
    WHITESPACE,
    read_identifier,
    read_number,
    skip_block_comment,
    skip_line_comment,
    skip_regex,
    skip_string,
    skip_template_text,
)
from hexview.kernel.domain.modules import ImportEntry, ImportKind

_DECLARATION_KEYWORDS = frozenset({"const", "let", "var"})


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # "ident", "string", "punct", "other"
    value: str
    start: int
    end: int
    depth: int


@dataclass(frozen=True, slots=True)
class ModuleSyntax:
    """Imports, exports and import bindings of one module."""

    imports: tuple[ImportEntry, ...]
    exports: frozenset[str]
    imported_names: frozenset[str]


def tokenize(code: str, path: str = "<module>") -> list[Token]:
    """Split module code into the tokens the scanner needs.

    Template literal text is dropped; tokens inside ``${...}`` are kept.
    ``depth`` is the curly-brace nesting level the token appears at.
    """
    tokens: list[Token] = []
    n = len(code)
    i = 0
    depth = 0
    # Brace depths at which an open template substitution resumes its template
    template_stack: list[int] = []
    expr_allowed = True
    after_dot = False

    def resume_template(index: int, opening: int) -> tuple[int, bool]:
        nonlocal depth
        index, substitution = skip_template_text(code, index, path, opening)
        if substitution:
            template_stack.append(depth)
            depth += 1
        return index, substitution

    while i < n:
        ch = code[i]
        nxt = code[i + 1] if i + 1 < n else ""

        if ch in WHITESPACE:
            i += 1
            continue
        if ch == "/" and nxt == "/":
            i = skip_line_comment(code, i)
            continue
        if ch == "/" and nxt == "*":
            i = skip_block_comment(code, i, path)
            continue

        start = i
        if ch in "'\"":
            i = skip_string(code, i, path)
            tokens.append(Token("string", code[start + 1 : i - 1], start, i, depth))
            expr_allowed = after_dot = False
        elif ch == "`":
            i, expr_allowed = resume_template(i + 1, start)
            after_dot = False
        elif ch == "}" and template_stack and template_stack[-1] == depth - 1:
            depth = template_stack.pop()
            i, expr_allowed = resume_template(i + 1, start)
            after_dot = False
        elif IDENT_START.match(ch):
            i = read_identifier(code, i)
            word = code[start:i]
            tokens.append(Token("ident", word, start, i, depth))
            expr_allowed = not after_dot and word in KEYWORDS_BEFORE_EXPRESSION
            after_dot = False
        elif ch.isdigit() or (ch == "." and nxt.isdigit()):
            i = read_number(code, i)
            tokens.append(Token("other", code[start:i], start, i, depth))
            expr_allowed = after_dot = False
        elif ch == "/" and expr_allowed:
            i = skip_regex(code, i, path)
            tokens.append(Token("other", code[start:i], start, i, depth))
            expr_allowed = after_dot = False
        elif code.startswith("...", i):
            i += 3
            tokens.append(Token("punct", "...", start, i, depth))
            expr_allowed, after_dot = True, False
        else:
            i += 1
            if ch == "{":
                tokens.append(Token("punct", ch, start, i, depth))
                depth += 1
            elif ch == "}":
                depth = max(depth - 1, 0)
                tokens.append(Token("punct", ch, start, i, depth))
            else:
                tokens.append(Token("punct", ch, start, i, depth))
            after_dot = ch == "."
            expr_allowed = ch not in ")]" and not after_dot

    return tokens


class _Scanner:
    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.imports: list[ImportEntry] = []
        self.exports: set[str] = set()
        self.imported_names: set[str] = set()

    def _at(self, index: int) -> Token | None:
        return self.tokens[index] if 0 <= index < len(self.tokens) else None

    def _is(self, index: int, kind: str, value: str | None = None) -> bool:
        token = self._at(index)
        return token is not None and token.kind == kind and (value is None or token.value == value)

    def _entry(self, token: Token, kind: ImportKind) -> None:
        self.imports.append(ImportEntry(token.value, token.start + 1, token.end - 1, kind))

    def scan(self) -> None:
        index = 0
        while index < len(self.tokens):
            token = self.tokens[index]
            previous = self._at(index - 1)
            is_member = previous is not None and previous.kind == "punct" and previous.value == "."
            if token.kind == "ident" and not is_member:
                if token.value == "import":
                    index = self._import(index)
                    continue
                if token.value == "export" and token.depth == 0:
                    index = self._export(index)
                    continue
            index += 1

    def _import(self, index: int) -> int:
        token = self.tokens[index]
        if self._is(index + 1, "punct", "("):
            if self._is(index + 2, "string") and (
                self._is(index + 3, "punct", ")") or self._is(index + 3, "punct", ",")
            ):
                self._entry(self.tokens[index + 2], ImportKind.DYNAMIC)
                return index + 3
            return index + 1
        if self._is(index + 1, "punct", ".") or token.depth != 0:
            return index + 1
        if self._is(index + 1, "string"):
            self._entry(self.tokens[index + 1], ImportKind.SIDE_EFFECT)
            return index + 2

        cursor = index + 1
        in_braces = False
        while cursor < len(self.tokens):
            current = self.tokens[cursor]
            if current.kind == "punct" and current.value == "{":
                in_braces = True
            elif current.kind == "punct" and current.value == "}":
                in_braces = False
            elif current.kind == "ident" and current.value == "from" and not in_braces:
                if self._is(cursor + 1, "string"):
                    self._entry(self.tokens[cursor + 1], ImportKind.STATIC)
                    return cursor + 2
                return cursor + 1
            elif current.kind == "ident" and current.value not in ("as", "type"):
                nxt = self._at(cursor + 1)
                if not (nxt and nxt.kind == "ident" and nxt.value == "as"):
                    self.imported_names.add(current.value)
            elif current.kind == "punct" and current.value == ";":
                return cursor + 1
            elif current.kind == "string":
                return cursor
            cursor += 1
        return cursor

    def _export(self, index: int) -> int:
        cursor = index + 1
        token = self._at(cursor)
        if token is None:
            return cursor

        if token.kind == "ident" and token.value == "default":
            self.exports.add("default")
            return cursor + 1

        if token.kind == "punct" and token.value == "*":
            cursor += 1
            if self._is(cursor, "ident", "as") and self._at(cursor + 1):
                self.exports.add(self.tokens[cursor + 1].value)
                cursor += 2
            if self._is(cursor, "ident", "from") and self._is(cursor + 1, "string"):
                self._entry(self.tokens[cursor + 1], ImportKind.REEXPORT)
                return cursor + 2
            return cursor

        if token.kind == "punct" and token.value == "{":
            cursor += 1
            names: list[str] = []
            while cursor < len(self.tokens) and not self._is(cursor, "punct", "}"):
                current = self.tokens[cursor]
                if current.kind in ("ident", "string"):
                    if self._is(cursor + 1, "ident", "as") and self._at(cursor + 2):
                        names.append(self.tokens[cursor + 2].value)
                        cursor += 3
                        continue
                    names.append(current.value)
                cursor += 1
            self.exports.update(names)
            cursor += 1
            if self._is(cursor, "ident", "from") and self._is(cursor + 1, "string"):
                self._entry(self.tokens[cursor + 1], ImportKind.REEXPORT)
                return cursor + 2
            return cursor

        if token.kind == "ident" and token.value == "async":
            cursor += 1
            token = self._at(cursor)
            if token is None:
                return cursor

        if token.kind == "ident" and token.value in ("function", "class"):
            cursor += 1
            if self._is(cursor, "punct", "*"):
                cursor += 1
            if self._is(cursor, "ident"):
                self.exports.add(self.tokens[cursor].value)
                return cursor + 1
            return cursor

        if token.kind == "ident" and token.value in _DECLARATION_KEYWORDS:
            return self._declarators(cursor + 1)

        return cursor

    def _declarators(self, cursor: int) -> int:
        """Collect names from ``const a = 1, b = 2`` style declarations."""
        nesting = 0
        expect_name = True
        while cursor < len(self.tokens):
            current = self.tokens[cursor]
            if current.kind == "punct":
                if current.value in "([{":
                    if expect_name and current.value in "[{":
                        return self._pattern(cursor)
                    nesting += 1
                elif current.value in ")]}":
                    if nesting == 0:
                        return cursor
                    nesting -= 1
                elif nesting == 0 and current.value == ",":
                    expect_name = True
                    cursor += 1
                    continue
                elif nesting == 0 and current.value == ";":
                    return cursor + 1
            elif current.kind == "ident" and nesting == 0:
                if current.value in ("export", "import") and not expect_name:
                    return cursor
                if expect_name:
                    self.exports.add(current.value)
            expect_name = False
            cursor += 1
        return cursor

    def _pattern(self, cursor: int) -> int:
        """Export names bound by a destructuring pattern (shorthand and renamed)."""
        nesting = 0
        while cursor < len(self.tokens):
            current = self.tokens[cursor]
            if current.kind == "punct" and current.value in "[{":
                nesting += 1
            elif current.kind == "punct" and current.value in "]}":
                nesting -= 1
                if nesting == 0:
                    return self._declarators(cursor + 1)
            elif current.kind == "ident":
                nxt = self._at(cursor + 1)
                if nxt is None or not (nxt.kind == "punct" and nxt.value == ":"):
                    self.exports.add(current.value)
                    # skip default values
                    if nxt is not None and nxt.kind == "punct" and nxt.value == "=":
                        cursor += 2
                        continue
            cursor += 1
        return cursor


def scan_module_syntax(code: str, path: str = "<module>") -> ModuleSyntax:
    """Extract import entries, exported names and import bindings from ``code``.

    Raises
    ------
    TransformSyntaxError
        If the code contains an unterminated string, comment, regex or template
    """
    scanner = _Scanner(tokenize(code, path))
    scanner.scan()
    return ModuleSyntax(
        imports=tuple(scanner.imports),
        exports=frozenset(scanner.exports),
        imported_names=frozenset(scanner.imported_names),
    )


__all__ = ["ModuleSyntax", "Token", "scan_module_syntax", "tokenize"]
