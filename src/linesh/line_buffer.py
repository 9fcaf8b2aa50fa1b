"""Editable input line with a cursor.

The cursor is stored as its distance from the end of the input, so that
``0`` always means "at the end" whatever the input length. Word motion and
word deletion jump between token boundaries given by a tokenizer, which
makes them follow the syntax of the language rather than whitespace only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

CLOSING_DELIMITERS = {"[": "]", "{": "}", "(": ")"}


class TokenLike(Protocol):
    @property
    def start(self) -> int: ...

    @property
    def end(self) -> int: ...


Tokenizer = Callable[[str], Sequence[TokenLike]]


@dataclass(frozen=True)
class _Word:
    start: int
    end: int


def whitespace_tokenize(text: str) -> list[_Word]:
    """Fallback tokenizer splitting on whitespace."""
    return [_Word(m.start(), m.end()) for m in re.finditer(r"\S+", text)]


class LineBuffer:
    def __init__(self, tokenize: Tokenizer | None = None) -> None:
        self.input: list[str] = []
        self.cursor_distance_from_end = 0
        self._tokenize = tokenize or whitespace_tokenize

    def __len__(self) -> int:
        return len(self.input)

    @property
    def text(self) -> str:
        return "".join(self.input)

    @property
    def cursor_index(self) -> int:
        return len(self.input) - self.cursor_distance_from_end

    def set_text(self, text: str) -> None:
        """Replace the whole input, cursor at the end."""
        self.input = list(text)
        self.cursor_distance_from_end = 0

    def reset(self) -> None:
        self.set_text("")

    # -- insertion and deletion ---------------------------------------------

    def insert(self, char: str, lookahead_pending: bool = False) -> None:
        """Insert *char* at the cursor.

        Opening delimiters get their closing counterpart when the user is
        typing live (no *lookahead_pending* input, i.e. not a paste); the
        cursor then sits between the two.
        """
        i = self.cursor_index
        inserted = [char]
        closing = CLOSING_DELIMITERS.get(char)
        if closing is not None and not lookahead_pending:
            inserted.append(closing)
            self.cursor_distance_from_end += 1
        self.input[i:i] = inserted

    def delete_backward(self) -> bool:
        i = self.cursor_index
        if i == 0:
            return False
        del self.input[i - 1]
        return True

    def delete_forward(self) -> bool:
        if self.cursor_distance_from_end == 0:
            return False
        del self.input[self.cursor_index]
        self.cursor_distance_from_end -= 1
        return True

    def replace_span(self, start: int, end: int, text: str) -> None:
        """Replace ``input[start:end]`` with *text*.

        *end* may run past the input. The distance between the cursor and
        the end of the input is preserved.
        """
        end = min(end, len(self.input))
        start = min(start, end)
        self.input[start:end] = list(text)
        self.cursor_distance_from_end = min(self.cursor_distance_from_end, len(self.input))

    # -- cursor motion ------------------------------------------------------

    def left(self) -> bool:
        if self.cursor_distance_from_end >= len(self.input):
            return False
        self.cursor_distance_from_end += 1
        return True

    def right(self) -> bool:
        if self.cursor_distance_from_end == 0:
            return False
        self.cursor_distance_from_end -= 1
        return True

    def home(self) -> bool:
        if self.cursor_distance_from_end == len(self.input):
            return False
        self.cursor_distance_from_end = len(self.input)
        return True

    def end(self) -> bool:
        if self.cursor_distance_from_end == 0:
            return False
        self.cursor_distance_from_end = 0
        return True

    def _move_to(self, index: int) -> bool:
        distance = len(self.input) - index
        if distance == self.cursor_distance_from_end:
            return False
        self.cursor_distance_from_end = distance
        return True

    # -- token-aware motion -------------------------------------------------

    def _last_token_starting_at_or_before(self, tokens: Sequence[TokenLike], cursor: int) -> int | None:
        found = None
        for i, tok in enumerate(tokens):
            if cursor < tok.start:
                break
            found = i
        return found

    def move_word_backward(self) -> bool:
        tokens = self._tokenize(self.text)
        if not tokens:
            return False
        if len(tokens) == 1:
            return self.home()

        cursor = self.cursor_index
        i = self._last_token_starting_at_or_before(tokens, cursor)
        if i is None or i == 0:
            return self.home()

        tok = tokens[i]
        if cursor == tok.start:
            return self._move_to(tokens[i - 1].start)
        return self._move_to(tok.start)

    def move_word_forward(self) -> bool:
        tokens = self._tokenize(self.text)
        if not tokens:
            return False
        if len(tokens) == 1:
            return self.end()

        cursor = self.cursor_index
        i = self._last_token_starting_at_or_before(tokens, cursor)
        if i is None:
            return self._move_to(tokens[0].end)

        tok = tokens[i]
        if cursor >= tok.end and i < len(tokens) - 1:
            return self._move_to(tokens[i + 1].end)
        return self._move_to(max(tok.end, cursor))

    def delete_word_backward(self) -> bool:
        """Remove from the start of the last token beginning before the
        cursor up to the cursor."""
        cursor = self.cursor_index
        if cursor == 0:
            return False
        tokens = [t for t in self._tokenize(self.text) if t.start < cursor]
        if not tokens:
            return False
        del self.input[tokens[-1].start : cursor]
        return True

    def delete_word_forward(self) -> bool:
        """Remove from the cursor up to the end of the first token ending
        after the cursor."""
        cursor = self.cursor_index
        if self.cursor_distance_from_end == 0:
            return False
        tokens = [t for t in self._tokenize(self.text) if t.end > cursor]
        if not tokens:
            return False
        end = tokens[0].end
        del self.input[cursor:end]
        self.cursor_distance_from_end -= end - cursor
        return True
