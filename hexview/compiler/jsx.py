"""JSX to ``React.createElement`` transformer.

Classic-runtime transform: ``<Button kind="primary">Hi</Button>`` becomes
``React.createElement(Button, {kind: "primary"}, "Hi")`` and fragments use
``React.Fragment``. Everything outside JSX is copied byte-for-byte, so
``import``/``export`` statements survive verbatim. Every newline consumed
inside an element is re-emitted inside the generated call, so line numbers of
the output match the source.

JSX text children follow React's whitespace rules: lines are trimmed,
whitespace-only lines are dropped, and the remaining lines are joined with a
single space. HTML character references are decoded.
"""

from __future__ import annotations

import json
import re
from html.entities import name2codepoint

from hexview.compiler.lexer import (
    IDENT_START,
    IDENTIFIER,
    KEYWORDS_BEFORE_EXPRESSION,
    WHITESPACE,
    read_identifier,
    read_number,
    skip_block_comment,
    skip_line_comment,
    skip_regex,
    skip_string,
    skip_template_text,
    syntax_error,
)
from hexview.kernel.exceptions import TransformSyntaxError

FRAGMENT = "React.Fragment"
CREATE_ELEMENT = "React.createElement"
_ENTITY = re.compile(r"&(?:#x([0-9a-fA-F]+)|#([0-9]+)|([A-Za-z][A-Za-z0-9]*));")


def _js_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def decode_entities(text: str) -> str:
    """Decode terminated character references; anything else stays literal.

    '© 2024 & AB'
    '© 2024 & AB'
    >>> decode_entities("&copy 2024 &bogus; &")
    '&copy 2024 &bogus; &'
    """

    def replace(match: re.Match[str]) -> str:
        hex_digits, digits, name = match.groups()
        if name is not None:
            codepoint = name2codepoint.get(name)
        else:
            codepoint = int(hex_digits, 16) if hex_digits is not None else int(digits)
            if not 0 < codepoint <= 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
                codepoint = None
        return match.group(0) if codepoint is None else chr(codepoint)

    return _ENTITY.sub(replace, text)


def clean_jsx_text(text: str) -> str:
    """Apply React's JSX whitespace rules to a raw text child.

    >>> clean_jsx_text("\\n    Hello\\n    world  \\n")
    'Hello world'
    >>> clean_jsx_text("  a  ")
    '  a  '
    """
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    last_non_empty = -1
    for index, line in enumerate(lines):
        if line.strip(" \t"):
            last_non_empty = index

    result = []
    for index, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if index != 0:
            trimmed = trimmed.lstrip(" ")
        if index != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if index != last_non_empty:
                trimmed += " "
            result.append(trimmed)
    return "".join(result)


class JSXTransformer:
    """Single-pass transformer for one module."""

    def __init__(self, path: str, source: str) -> None:
        self.path = path
        self.source = source
        self.used_jsx = False
        self._newlines = 0

    def transform(self) -> str:
        """Return the module code with every JSX element expanded.

        Raises
        ------
        TransformSyntaxError
            On malformed JSX or unterminated strings, comments and templates
        """
        code, _, _ = self._code(0, stop_at_brace=False)
        return code

    def _error(self, index: int, message: str) -> TransformSyntaxError:
        return syntax_error(self.path, self.source, index, message)

    def _flush(self) -> str:
        pending = "\n" * self._newlines
        self._newlines = 0
        return pending

    # ------------------------------------------------------------------
    # JavaScript
    # ------------------------------------------------------------------

    def _code(self, i: int, *, stop_at_brace: bool) -> tuple[str, int, bool]:
        """Copy JavaScript from ``i``, expanding JSX on the way.

        With ``stop_at_brace`` the scan ends at the ``}`` closing the current
        expression container or template substitution; the returned index
        points at that brace.

        Returns
        -------
            ``(code, index, significant)`` where ``significant`` tells whether
            anything but whitespace and comments was seen.
        """
        src = self.source
        n = len(src)
        out: list[str] = []
        chunk_start = i
        opening = i
        depth = 0
        expr_allowed = True
        after_dot = False
        significant = False

        while i < n:
            ch = src[i]
            nxt = src[i + 1] if i + 1 < n else ""

            if ch in WHITESPACE:
                i += 1
                continue
            if ch == "/" and nxt == "/":
                i = skip_line_comment(src, i)
                continue
            if ch == "/" and nxt == "*":
                i = skip_block_comment(src, i, self.path)
                continue
            if ch == "}" and depth == 0 and stop_at_brace:
                out.append(src[chunk_start:i])
                return "".join(out), i, significant

            significant = True

            if ch in "'\"":
                i = skip_string(src, i, self.path)
                expr_allowed = after_dot = False
            elif ch == "`":
                template_start = i
                i += 1
                while True:
                    i, substitution = skip_template_text(src, i, self.path, template_start)
                    if not substitution:
                        break
                    out.append(src[chunk_start:i])
                    inner, i, _ = self._code(i, stop_at_brace=True)
                    out.append(inner)
                    chunk_start = i
                    i += 1
                expr_allowed = after_dot = False
            elif ch == "<" and expr_allowed and (nxt == ">" or (nxt and IDENT_START.match(nxt))):
                out.append(src[chunk_start:i])
                element, i = self._element(i)
                out.append(element)
                chunk_start = i
                expr_allowed = after_dot = False
            elif IDENT_START.match(ch):
                end = read_identifier(src, i)
                word = src[i:end]
                expr_allowed = not after_dot and word in KEYWORDS_BEFORE_EXPRESSION
                after_dot = False
                i = end
            elif ch.isdigit() or (ch == "." and nxt.isdigit()):
                i = read_number(src, i)
                expr_allowed = after_dot = False
            elif ch == ".":
                if src.startswith("...", i):
                    i += 3
                    expr_allowed, after_dot = True, False
                else:
                    i += 1
                    after_dot = True
            elif ch == "/":
                if expr_allowed:
                    i = skip_regex(src, i, self.path)
                    expr_allowed = False
                else:
                    i += 1
                    expr_allowed = True
                after_dot = False
            elif ch in ")]":
                i += 1
                expr_allowed = after_dot = False
            else:
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    depth -= 1
                i += 1
                expr_allowed, after_dot = True, False

        if stop_at_brace:
            raise self._error(opening - 1, "Unexpected end of input, expected '}'")
        out.append(src[chunk_start:i])
        return "".join(out), i, significant

    # ------------------------------------------------------------------
    # JSX
    # ------------------------------------------------------------------

    def _skip_tag_space(self, i: int, *, count: bool = True) -> int:
        """Skip whitespace and comments inside a tag, counting newlines unless told not to."""
        src = self.source
        n = len(src)
        while i < n:
            ch = src[i]
            if ch in WHITESPACE:
                if count and ch == "\n":
                    self._newlines += 1
                i += 1
            elif src.startswith("//", i):
                i = skip_line_comment(src, i)
            elif src.startswith("/*", i):
                end = skip_block_comment(src, i, self.path)
                if count:
                    self._newlines += src.count("\n", i, end)
                i = end
            else:
                break
        return i

    def _read_name(self, i: int, *, allow_member: bool) -> tuple[str, int]:
        src = self.source
        if i >= len(src) or not IDENT_START.match(src[i]):
            raise self._error(i, "Expected a JSX identifier")
        end = i
        while end < len(src) and (
            IDENT_START.match(src[end]) or src[end].isdigit() or src[end] in "-:" or (
                allow_member and src[end] == "."
            )
        ):
            end += 1
        return src[i:end], end

    @staticmethod
    def _type_expression(name: str) -> str:
        if "." in name:
            return name
        if name[0].islower() or "-" in name or ":" in name:
            return _js_string(name)
        return name

    def _element(self, start: int) -> tuple[str, int]:
        """Expand the element (or fragment) whose ``<`` is at ``start``."""
        self.used_jsx = True
        src = self.source
        i = self._skip_tag_space(start + 1)

        if i < len(src) and src[i] == ">":
            children, i = self._children(i + 1, None, start)
            return self._call(FRAGMENT, "null", children), i

        name, i = self._read_name(i, allow_member=True)
        type_expr = self._flush() + self._type_expression(name)
        props, self_closing, i = self._attributes(i, name, start)
        children: list[str] = []
        if not self_closing:
            children, i = self._children(i, name, start)
        return self._call(type_expr, props, children), i

    def _call(self, type_expr: str, props: str, children: list[str]) -> str:
        args = "".join(f", {child}" for child in children)
        return f"{CREATE_ELEMENT}({type_expr}, {props}{args}{self._flush()})"

    def _attributes(self, i: int, tag: str, start: int) -> tuple[str, bool, int]:
        """Parse attributes up to the end of the opening tag.

        Returns
        -------
            ``(props_expression, self_closing, index_after_tag)``
        """
        src = self.source
        n = len(src)
        parts: list[str] = []

        while True:
            i = self._skip_tag_space(i)
            if i >= n:
                raise self._error(start, f"Unterminated JSX opening tag <{tag}>")
            ch = src[i]

            if ch == "/":
                i = self._skip_tag_space(i + 1)
                if i >= n or src[i] != ">":
                    raise self._error(i, "Expected '>' after '/' in JSX tag")
                return self._props(parts), True, i + 1

            if ch == ">":
                return self._props(parts), False, i + 1

            if ch == "{":
                i = self._skip_tag_space(i + 1)
                if not src.startswith("...", i):
                    raise self._error(i, "Expected '...' in JSX spread attribute")
                prefix = self._flush()
                expr, i, significant = self._code(i + 3, stop_at_brace=True)
                if not significant:
                    raise self._error(i, "Spread attribute needs an expression")
                parts.append(f"{prefix}...{expr}")
                i += 1
                continue

            if not IDENT_START.match(ch):
                raise self._error(i, f"Unexpected character {ch!r} in JSX tag <{tag}>")

            attr, i = self._read_name(i, allow_member=False)
            key = attr if IDENTIFIER.fullmatch(attr) else _js_string(attr)
            prefix = self._flush()
            i = self._skip_tag_space(i)

            if i >= n or src[i] != "=":
                parts.append(f"{prefix}{key}: true")
                continue

            i = self._skip_tag_space(i + 1)
            prefix += self._flush()
            ch = src[i] if i < n else ""
            if ch in ("'", '"'):
                end = src.find(ch, i + 1)
                if end == -1:
                    raise self._error(i, "Unterminated string constant")
                raw = src[i + 1 : end]
                parts.append(f"{prefix}{key}: {_js_string(decode_entities(raw))}")
                self._newlines += raw.count("\n")
                i = end + 1
            elif ch == "{":
                expr, i, significant = self._code(i + 1, stop_at_brace=True)
                if not significant:
                    raise self._error(
                        i, "JSX attributes must only be assigned a non-empty expression"
                    )
                parts.append(f"{prefix}{key}: {expr}")
                i += 1
            elif ch == "<":
                element, i = self._element(i)
                parts.append(f"{prefix}{key}: {element}")
            else:
                raise self._error(i, f"Expected a value for JSX attribute '{attr}'")

    @staticmethod
    def _props(parts: list[str]) -> str:
        return "{" + ", ".join(parts) + "}" if parts else "null"

    def _children(self, i: int, tag: str | None, start: int) -> tuple[list[str], int]:
        """Parse children up to and including the closing tag for ``tag``."""
        src = self.source
        n = len(src)
        children: list[str] = []
        label = f"<{tag}>" if tag else "fragment"

        while True:
            if i >= n:
                raise self._error(start, f"Unterminated JSX contents for {label}")
            ch = src[i]

            if ch == "<":
                j = self._skip_tag_space(i + 1, count=False)
                if j < n and src[j] == "/":
                    return children, self._closing_tag(j + 1, tag, start)
                prefix = self._flush()
                element, i = self._element(i)
                children.append(prefix + element)

            elif ch == "{":
                prefix = self._flush()
                expr, i, significant = self._code(i + 1, stop_at_brace=True)
                i += 1
                if significant:
                    children.append(prefix + expr)
                else:
                    self._newlines += prefix.count("\n") + expr.count("\n")

            else:
                end = i
                while end < n and src[end] not in "<{":
                    end += 1
                raw = src[i:end]
                text = clean_jsx_text(decode_entities(raw))
                if text:
                    children.append(self._flush() + _js_string(text))
                self._newlines += raw.count("\n")
                i = end

    def _closing_tag(self, i: int, tag: str | None, start: int) -> int:
        src = self.source
        i = self._skip_tag_space(i)
        name = None
        if i < len(src) and src[i] != ">":
            name, i = self._read_name(i, allow_member=True)
            i = self._skip_tag_space(i)
        if i >= len(src) or src[i] != ">":
            raise self._error(i, "Expected '>' to end JSX closing tag")
        if name != tag:
            expected = f"</{tag}>" if tag else "</>"
            raise self._error(start, f"Expected corresponding JSX closing tag {expected}")
        return i + 1


def transform_jsx(path: str, source: str) -> tuple[str, bool]:
    """Expand JSX in ``source``.

    Returns
    -------
        ``(code, used_jsx)``
    """
    transformer = JSXTransformer(path, source)
    code = transformer.transform()
    return code, transformer.used_jsx


__all__ = [
    "CREATE_ELEMENT",
    "FRAGMENT",
    "JSXTransformer",
    "clean_jsx_text",
    "decode_entities",
    "transform_jsx",
]
