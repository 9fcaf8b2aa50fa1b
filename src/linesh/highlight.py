"""Syntax colouring of the input line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from linesh.lang.tokens import Token, TokenKind

RESET = "\x1b[0m"


def _fg(code: int) -> str:
    return f"\x1b[38;5;{code}m"


@dataclass(frozen=True)
class Theme:
    colors: dict[str, str]
    default: str = ""

    def color_for(self, kind: TokenKind) -> str:
        return self.colors.get(kind, self.default)


DARK_THEME = Theme(
    {
        "keyword": _fg(135),
        "local-var": _fg(117),
        "global-var": _fg(117),
        "pattern": _fg(78),
        "pattern-namespace": _fg(78),
        "pattern-member": _fg(78),
        "int": _fg(179),
        "float": _fg(179),
        "string": _fg(180),
        "path": _fg(74),
        "url": _fg(74),
        "host": _fg(74),
        "scheme": _fg(74),
        "comment": _fg(244),
        "error": _fg(196),
    }
)

LIGHT_THEME = Theme(
    {
        "keyword": _fg(90),
        "local-var": _fg(25),
        "global-var": _fg(25),
        "pattern": _fg(28),
        "pattern-namespace": _fg(28),
        "pattern-member": _fg(28),
        "int": _fg(130),
        "float": _fg(130),
        "string": _fg(94),
        "path": _fg(24),
        "url": _fg(24),
        "host": _fg(24),
        "scheme": _fg(24),
        "comment": _fg(242),
        "error": _fg(160),
    }
)


def get_theme(light: bool) -> Theme:
    return LIGHT_THEME if light else DARK_THEME


def colorize(text: str, tokens: Sequence[Token], theme: Theme) -> str:
    """Wrap each token of *text* in its colour; visible text is unchanged."""
    out: list[str] = []
    pos = 0
    for tok in tokens:
        if tok.start < pos or tok.end > len(text):
            continue
        out.append(text[pos : tok.start])
        color = theme.color_for(tok.kind)
        segment = text[tok.start : tok.end]
        out.append(f"{color}{segment}{RESET}" if color else segment)
        pos = tok.end
    out.append(text[pos:])
    return "".join(out)


Highlighter = Callable[[str], str]
