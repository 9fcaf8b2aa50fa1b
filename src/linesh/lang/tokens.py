"""Tokenizer for the shell language.

Tokenizing never fails: characters that do not start any known token are
emitted as ``"error"`` tokens so that callers such as word motion and
highlighting always get a complete picture of the input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from linesh.lang.ast import Span

TokenKind = Literal[
    "identifier",
    "keyword",
    "local-var",
    "global-var",
    "pattern",
    "pattern-namespace",
    "pattern-member",
    "int",
    "float",
    "string",
    "path",
    "url",
    "host",
    "scheme",
    "punct",
    "operator",
    "newline",
    "comment",
    "error",
]

KEYWORDS = frozenset(
    {
        "if",
        "else",
        "for",
        "in",
        "walk",
        "break",
        "continue",
        "prune",
        "return",
        "assert",
        "true",
        "false",
        "nil",
        "and",
        "or",
        "match",
    }
)

# Keywords that may also appear as binary operators inside parentheses.
WORD_OPERATORS = frozenset({"and", "or", "match"})

PUNCTUATION = "[]{}(),:.;"

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
_SCHEME_RE = re.compile(r"[a-z][a-z0-9+.-]*://")
_NUMBER_RE = re.compile(r"-?[0-9]+(\.[0-9]+)?")
_OPERATOR_RE = re.compile(r"==|!=|<=|>=|<|>|\+|\*|=|-(?=\s)|/(?=\s)")

# Characters that end a path, URL or host literal.
_LITERAL_TERMINATORS = frozenset(" \t\r\n)]},;")
_HORIZONTAL_SPACE = " \t"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    span: Span
    error: str | None = None

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end


def _at_boundary(source: str, index: int) -> bool:
    """Whether *index* starts a fresh operand (not glued to a previous one)."""
    if index == 0:
        return True
    return source[index - 1] in " \t\r\n([{,=:"


def _scan_literal(source: str, index: int) -> int:
    end = index
    while end < len(source) and source[end] not in _LITERAL_TERMINATORS:
        end += 1
    return end


def _scan_string(source: str, index: int) -> tuple[int, str, str | None]:
    """Scan a double-quoted string starting at *index*.

    Returns ``(end, decoded value, error)``.
    """
    chars: list[str] = []
    i = index + 1
    escapes = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}
    while i < len(source):
        ch = source[i]
        if ch == '"':
            return i + 1, "".join(chars), None
        if ch == "\n":
            break
        if ch == "\\" and i + 1 < len(source):
            nxt = source[i + 1]
            chars.append(escapes.get(nxt, nxt))
            i += 2
            continue
        chars.append(ch)
        i += 1
    return i, "".join(chars), "unterminated string literal"


def decode_string(raw: str) -> str:
    """Decode the value of a string token's raw text."""
    _, value, _ = _scan_string(raw, 0)
    return value


def tokenize(source: str) -> list[Token]:  # noqa: C901
    """Split *source* into tokens. Whitespace other than newlines is skipped."""
    tokens: list[Token] = []
    paren_depth = 0
    i = 0
    n = len(source)

    def emit(kind: TokenKind, start: int, end: int, error: str | None = None) -> None:
        tokens.append(Token(kind, source[start:end], Span(start, end), error))

    while i < n:
        ch = source[i]

        if ch in _HORIZONTAL_SPACE or ch == "\r":
            i += 1
            continue

        if ch == "\n":
            emit("newline", i, i + 1)
            i += 1
            continue

        if ch == "#":
            end = source.find("\n", i)
            end = n if end < 0 else end
            emit("comment", i, end)
            i = end
            continue

        # URL, host and scheme literals
        m = _SCHEME_RE.match(source, i)
        if m is not None and _at_boundary(source, i):
            authority_start = m.end()
            end = authority_start
            while end < n and source[end] not in _LITERAL_TERMINATORS and source[end] != "/":
                end += 1
            if end == authority_start and (end >= n or source[end] != "/"):
                emit("scheme", i, end)
            elif end < n and source[end] == "/":
                end = _scan_literal(source, end)
                emit("url", i, end)
            else:
                emit("host", i, end)
            i = end
            continue

        if ch == "$":
            if source.startswith("$$", i):
                m = _IDENT_RE.match(source, i + 2)
                end = m.end() if m else i + 2
                emit("global-var", i, end, None if m else "missing global variable name")
            else:
                m = _IDENT_RE.match(source, i + 1)
                end = m.end() if m else i + 1
                emit("local-var", i, end, None if m else "missing variable name")
            i = end
            continue

        if ch == "%":
            m = _IDENT_RE.match(source, i + 1)
            if m is None:
                emit("pattern", i, i + 1, "missing pattern name")
                i += 1
                continue
            end = m.end()
            if end < n and source[end] == ".":
                member = _IDENT_RE.match(source, end + 1)
                if member is None:
                    emit("pattern-namespace", i, end + 1)
                    i = end + 1
                else:
                    emit("pattern-member", i, member.end())
                    i = member.end()
                continue
            emit("pattern", i, end)
            i = end
            continue

        if ch == '"':
            end, _, error = _scan_string(source, i)
            emit("string", i, end, error)
            i = end
            continue

        # Path literals: /abs, ./rel, ../rel
        if _at_boundary(source, i) and (
            source.startswith("./", i)
            or source.startswith("../", i)
            or (ch == "/" and not (paren_depth > 0 and source[i + 1 : i + 2] in ("", " ", "\t")))
        ):
            end = _scan_literal(source, i)
            emit("path", i, end)
            i = end
            continue

        m = _NUMBER_RE.match(source, i)
        if m is not None and (ch != "-" or _at_boundary(source, i)):
            emit("float" if m.group(1) else "int", i, m.end())
            i = m.end()
            continue

        m = _IDENT_RE.match(source, i)
        if m is not None:
            kind: TokenKind = "keyword" if m.group() in KEYWORDS else "identifier"
            emit(kind, i, m.end())
            i = m.end()
            continue

        m = _OPERATOR_RE.match(source, i)
        if m is not None:
            emit("operator", i, m.end())
            i = m.end()
            continue

        if ch in PUNCTUATION:
            if ch == "(":
                paren_depth += 1
            elif ch == ")":
                paren_depth = max(0, paren_depth - 1)
            emit("punct", i, i + 1)
            i += 1
            continue

        emit("error", i, i + 1, f"unexpected character {ch!r}")
        i += 1

    return tokens
