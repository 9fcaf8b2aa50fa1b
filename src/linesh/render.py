"""Incremental redraw of the prompt, the input and the suggestion strip.

``render`` is pure: given what is on screen (a ``RenderSnapshot``) and what
should be, it returns the bytes to write and the new snapshot. The caller
writes them in one go to avoid flicker.

Rows are counted from the first row of the prompt; the cursor is assumed to
sit on ``snapshot.row_index`` when ``render`` is called.
"""

from __future__ import annotations

from dataclasses import dataclass

from linesh.highlight import Highlighter
from linesh.utils import crlf, visible_width

_CLEAR_TO_EOL = "\x1b[K"
_CLEAR_LINE = "\x1b[2K"
_CURSOR_UP_FMT = "\x1b[{}A"
_CURSOR_DOWN_FMT = "\x1b[{}B"
_CURSOR_FORWARD_FMT = "\x1b[{}C"


@dataclass(frozen=True)
class RenderSnapshot:
    input_line_count: int = 1
    row_index: int = 0
    suggestion_line_count: int = 0
    suggestion_count: int = 0

    @property
    def total_rows(self) -> int:
        return self.input_line_count + self.suggestion_line_count


def input_line_count(prompt_width: int, input_width: int, width: int) -> int:
    return 1 + (prompt_width + input_width) // width


def suggestion_line_count(text: str, width: int) -> int:
    """Rows taken by *text* once wrapped at *width* columns."""
    return sum(max(1, -(-visible_width(line) // width)) for line in text.split("\n"))


def render(
    prompt: str,
    text: str,
    cursor_index: int,
    suggestions: list[str],
    snapshot: RenderSnapshot,
    width: int,
    highlight: Highlighter | None = None,
) -> tuple[str, RenderSnapshot]:
    """Redraw prompt + input (+ suggestions) and place the cursor."""
    width = max(width, 1)
    prompt_width = visible_width(prompt)
    text_width = visible_width(text)
    line_count = input_line_count(prompt_width, text_width, width)
    out: list[str] = []

    # back to the prompt's first row
    if snapshot.row_index > 0:
        out.append(_CURSOR_UP_FMT.format(snapshot.row_index))
    out.append("\r")

    out.append(prompt)
    out.append(highlight(text) if highlight is not None else text)
    out.append(_CLEAR_TO_EOL)
    total = prompt_width + text_width
    if total > 0 and total % width == 0:
        # the terminal waits on the last column; materialize the new row
        out.append("\r\n" + _CLEAR_TO_EOL)

    sug_lines = 0
    if suggestions:
        strip = " ".join(suggestions)
        sug_lines = suggestion_line_count(strip, width)
        out.append("\r\n")
        out.append(crlf(strip))
        out.append(_CLEAR_TO_EOL)

    rows_written = line_count + sug_lines
    # clear rows left over from a taller previous block
    for _ in range(snapshot.total_rows - rows_written):
        out.append("\r\n" + _CLEAR_LINE)
    current_row = max(rows_written, snapshot.total_rows) - 1

    cursor_pos = prompt_width + visible_width(text[:cursor_index])
    row_index = cursor_pos // width
    column = cursor_pos % width
    if current_row > row_index:
        out.append(_CURSOR_UP_FMT.format(current_row - row_index))
    out.append("\r")
    if column > 0:
        out.append(_CURSOR_FORWARD_FMT.format(column))

    new_snapshot = RenderSnapshot(
        input_line_count=line_count,
        row_index=row_index,
        suggestion_line_count=sug_lines,
        suggestion_count=len(suggestions),
    )
    return "".join(out), new_snapshot


def move_below(snapshot: RenderSnapshot) -> str:
    """Move from the cursor row to a fresh line after the input block."""
    out = []
    down = snapshot.input_line_count - 1 - snapshot.row_index
    if down > 0:
        out.append(_CURSOR_DOWN_FMT.format(down))
    out.append("\r\n")
    return "".join(out)
