"""Structural parser for recipe files.

Reads the top-level ``let name = value;`` bindings of a recipe without
executing it. Only a restricted literal grammar is understood:

- strings: ``"text"`` with ``\\\\ \\" \\' \\n \\t \\r \\0 \\u{XXXX}`` escapes
- booleans: ``true`` / ``false``
- integers: ``42``, ``-7``, ``1_000``
- arrays: ``[value, value, ...]`` (nested, trailing comma allowed)
- unit: ``()``

Line (``//``) and block (``/* */``, nested) comments are skipped everywhere.
Function bodies and any other statements are skipped by brace matching
that understands strings and comments, so a ``let`` inside a function is
never mistaken for a top-level binding.

Every binding records the character span of its value text so that the
writer can replace exactly that span and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# The closed set of values a recipe state variable can hold. ``None`` is the
# script's unit value ``()``.
Value = Union[str, bool, int, list, None]


class LiteralError(ValueError):
    """Raised when a value expression is not a supported literal."""


@dataclass(frozen=True)
class Binding:
    """A top-level ``let`` binding found in a recipe file.

    Attributes:
        name: The bound identifier.
        value: The parsed literal, or None when ``is_literal`` is False.
        is_literal: False when the right-hand side is a script expression.
        stmt_start: Offset of the ``let`` keyword.
        value_start: Offset of the first character of the value text.
        value_end: Offset one past the last character of the value text.
        stmt_end: Offset one past the terminating ``;``.
        error: Why the value is not a literal, when it is not.
    """

    name: str
    value: Value
    is_literal: bool
    stmt_start: int
    value_start: int
    value_end: int
    stmt_end: int
    error: str = ""


_IDENT_START = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_IDENT_CHARS = _IDENT_START | set("0123456789")

_SIMPLE_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
}


# ---------------------------------------------------------------------------
# Lexical helpers shared by the scanner and the literal parser
# ---------------------------------------------------------------------------


def _skip_block_comment(src: str, i: int) -> int:
    """Return the offset after a (possibly nested) block comment starting at *i*."""
    depth = 0
    n = len(src)
    while i < n:
        if src.startswith("/*", i):
            depth += 1
            i += 2
        elif src.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    return n


def _skip_trivia(src: str, i: int) -> int:
    """Skip whitespace and comments."""
    n = len(src)
    while i < n:
        ch = src[i]
        if ch.isspace():
            i += 1
        elif src.startswith("//", i):
            nl = src.find("\n", i)
            i = n if nl == -1 else nl + 1
        elif src.startswith("/*", i):
            i = _skip_block_comment(src, i)
        else:
            break
    return i


def _skip_string(src: str, i: int) -> int:
    """Return the offset after the quoted string or char literal starting at *i*."""
    quote = src[i]
    i += 1
    n = len(src)
    while i < n:
        ch = src[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def _skip_backtick(src: str, i: int) -> int:
    end = src.find("`", i + 1)
    return len(src) if end == -1 else end + 1


def _read_ident(src: str, i: int) -> tuple[str, int]:
    start = i
    while i < len(src) and src[i] in _IDENT_CHARS:
        i += 1
    return src[start:i], i


def _find_statement_end(src: str, i: int) -> int:
    """Find the ``;`` that ends the expression starting at *i*.

    Brackets, braces and parentheses are balanced; strings and comments are
    skipped. Returns the offset of the ``;`` or -1 if none is found.
    """
    depth = 0
    n = len(src)
    while i < n:
        ch = src[i]
        if ch in "\"'":
            i = _skip_string(src, i)
            continue
        if ch == "`":
            i = _skip_backtick(src, i)
            continue
        if src.startswith("//", i) or src.startswith("/*", i):
            i = _skip_trivia(src, i)
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == ";" and depth <= 0:
            return i
        i += 1
    return -1


# ---------------------------------------------------------------------------
# Literal parsing
# ---------------------------------------------------------------------------


class _LiteralParser:
    """Recursive-descent parser for a single value expression."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> Value:
        value = self._value()
        self.pos = _skip_trivia(self.text, self.pos)
        if self.pos != len(self.text):
            raise LiteralError(
                f"unexpected {self.text[self.pos:self.pos + 12]!r} after value"
            )
        return value

    def _value(self) -> Value:
        text = self.text
        self.pos = _skip_trivia(text, self.pos)
        if self.pos >= len(text):
            raise LiteralError("missing value")
        ch = text[self.pos]
        if ch == '"':
            return self._string()
        if ch == "[":
            return self._array()
        if text.startswith("()", self.pos):
            self.pos += 2
            return None
        if ch == "(":
            # Allow whitespace or comments inside the unit literal.
            after = _skip_trivia(text, self.pos + 1)
            if after < len(text) and text[after] == ")":
                self.pos = after + 1
                return None
            raise LiteralError("parenthesised expressions are not literals")
        if ch in "-+0123456789":
            return self._integer()
        if ch in _IDENT_START:
            word, end = _read_ident(text, self.pos)
            if word in ("true", "false"):
                self.pos = end
                return word == "true"
            raise LiteralError(f"identifier {word!r} is not a literal")
        raise LiteralError(f"unexpected character {ch!r}")

    def _integer(self) -> int:
        text = self.text
        start = self.pos
        if text[self.pos] in "+-":
            self.pos += 1
        digits_start = self.pos
        while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] == "_"):
            self.pos += 1
        digits = text[digits_start:self.pos].replace("_", "")
        if not digits:
            raise LiteralError(f"invalid integer {text[start:self.pos]!r}")
        if self.pos < len(text) and (text[self.pos] == "." or text[self.pos] in _IDENT_CHARS):
            raise LiteralError("only integer numbers are supported")
        return int(text[start:self.pos].replace("_", ""))

    def _string(self) -> str:
        text = self.text
        self.pos += 1
        out: list[str] = []
        while True:
            if self.pos >= len(text):
                raise LiteralError("unterminated string")
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(out)
            if ch == "\\":
                if self.pos + 1 >= len(text):
                    raise LiteralError("unterminated escape")
                esc = text[self.pos + 1]
                if esc in _SIMPLE_ESCAPES:
                    out.append(_SIMPLE_ESCAPES[esc])
                    self.pos += 2
                elif esc == "u" and text.startswith("{", self.pos + 2):
                    close = text.find("}", self.pos + 3)
                    if close == -1:
                        raise LiteralError("unterminated unicode escape")
                    try:
                        out.append(chr(int(text[self.pos + 3:close], 16)))
                    except ValueError as exc:
                        raise LiteralError(f"invalid unicode escape: {exc}") from exc
                    self.pos = close + 1
                else:
                    # Unknown escapes keep both characters.
                    out.append("\\" + esc)
                    self.pos += 2
                continue
            out.append(ch)
            self.pos += 1

    def _array(self) -> list:
        text = self.text
        self.pos += 1
        items: list = []
        while True:
            self.pos = _skip_trivia(text, self.pos)
            if self.pos >= len(text):
                raise LiteralError("unterminated array")
            if text[self.pos] == "]":
                self.pos += 1
                return items
            items.append(self._value())
            self.pos = _skip_trivia(text, self.pos)
            if self.pos < len(text) and text[self.pos] == ",":
                self.pos += 1
            elif self.pos < len(text) and text[self.pos] == "]":
                continue
            else:
                raise LiteralError("expected ',' or ']' in array")


def parse_literal(text: str) -> Value:
    """Parse a value expression into a Python value.

    Raises:
        LiteralError: If *text* is not a supported literal.
    """
    return _LiteralParser(text).parse()


def render_value(value: Value) -> str:
    """Render a Python value as recipe literal text.

    Raises:
        TypeError: For values outside the supported set.
    """
    if value is None:
        return "()"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\t", "\\t")
            .replace("\r", "\\r")
            .replace("\0", "\\0")
        )
        return f'"{escaped}"'
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    raise TypeError(f"Cannot store {type(value).__name__} in a recipe variable")


# ---------------------------------------------------------------------------
# Top-level scanner
# ---------------------------------------------------------------------------


def scan_bindings(src: str) -> list[Binding]:
    """Find every top-level ``let`` binding in recipe source text.

    Statements that are not bindings are skipped. A later binding of the
    same name shadows an earlier one; callers that build a mapping should
    let the last one win, as the script would.

    Raises:
        LiteralError: If a top-level ``let`` has no terminating ``;``.
    """
    bindings: list[Binding] = []
    depth = 0
    i = 0
    n = len(src)
    while i < n:
        i = _skip_trivia(src, i)
        if i >= n:
            break
        ch = src[i]
        if ch in "\"'":
            i = _skip_string(src, i)
            continue
        if ch == "`":
            i = _skip_backtick(src, i)
            continue
        if ch in "{([":
            depth += 1
            i += 1
            continue
        if ch in "})]":
            depth = max(0, depth - 1)
            i += 1
            continue
        if ch in _IDENT_START:
            word, end = _read_ident(src, i)
            if depth == 0 and word == "let" and (i == 0 or src[i - 1] not in _IDENT_CHARS):
                binding = _read_binding(src, i, end)
                if binding is not None:
                    bindings.append(binding)
                    i = binding.stmt_end
                    continue
            i = end
            continue
        i += 1
    return bindings


def _read_binding(src: str, let_start: int, after_let: int) -> Binding | None:
    j = _skip_trivia(src, after_let)
    if j >= len(src) or src[j] not in _IDENT_START:
        return None
    name, j = _read_ident(src, j)
    j = _skip_trivia(src, j)
    if j >= len(src) or src[j] != "=" or src.startswith("==", j):
        # ``let x;`` declares without a value; nothing to record.
        return None
    value_start = _skip_trivia(src, j + 1)
    semi = _find_statement_end(src, value_start)
    if semi == -1:
        raise LiteralError(f"binding {name!r} is missing its terminating ';'")
    # Trim trailing whitespace and comments so the span covers only the value.
    value_text = src[value_start:semi]
    value_end = value_start + len(_strip_trailing_trivia(value_text))
    text = src[value_start:value_end]
    try:
        value = parse_literal(text)
    except LiteralError as exc:
        return Binding(
            name=name,
            value=None,
            is_literal=False,
            stmt_start=let_start,
            value_start=value_start,
            value_end=value_end,
            stmt_end=semi + 1,
            error=str(exc),
        )
    return Binding(
        name=name,
        value=value,
        is_literal=True,
        stmt_start=let_start,
        value_start=value_start,
        value_end=value_end,
        stmt_end=semi + 1,
    )


def _strip_trailing_trivia(text: str) -> str:
    """Remove trailing whitespace and comments from a value expression."""
    # Walk forward, remembering the end of the last non-trivia token.
    last = 0
    i = 0
    n = len(text)
    while i < n:
        j = _skip_trivia(text, i)
        if j != i:
            i = j
            continue
        ch = text[i]
        if ch in "\"'":
            i = _skip_string(text, i)
        else:
            i += 1
        last = i
    return text[:last]
