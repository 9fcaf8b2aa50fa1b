"""Raw terminal input to key identifiers.

Two layers:

* ``sequence_status`` tells whether an accumulated run of input units is a
  complete key sequence, a prefix of one, or not an escape sequence at all.
* ``parse_key`` maps a complete sequence to a key id such as ``"left"``,
  ``"ctrl+left"``, ``"alt+b"`` or ``"a"``.

Only the legacy xterm/VT sequences are understood.
"""

from __future__ import annotations

from typing import Literal

ESC = "\x1b"

KeyId = str

SequenceStatus = Literal["complete", "incomplete", "not-escape"]

# ---------------------------------------------------------------------------
# Legacy sequence tables
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
}

LEGACY_SHIFT_SEQUENCES: dict[str, str] = {
    "\x1b[1;2A": "up",
    "\x1b[1;2B": "down",
    "\x1b[1;2C": "right",
    "\x1b[1;2D": "left",
    "\x1b[1;2H": "home",
    "\x1b[1;2F": "end",
    "\x1b[3;2~": "delete",
    "\x1b[Z": "tab",
}

LEGACY_ALT_SEQUENCES: dict[str, str] = {
    "\x1b[1;3A": "up",
    "\x1b[1;3B": "down",
    "\x1b[1;3C": "right",
    "\x1b[1;3D": "left",
    "\x1b[1;3H": "home",
    "\x1b[1;3F": "end",
    "\x1b[3;3~": "delete",
}

LEGACY_CTRL_SEQUENCES: dict[str, str] = {
    "\x1b[1;5A": "up",
    "\x1b[1;5B": "down",
    "\x1b[1;5C": "right",
    "\x1b[1;5D": "left",
    "\x1b[1;5H": "home",
    "\x1b[1;5F": "end",
    "\x1b[3;5~": "delete",
    # rxvt style
    "\x1bOc": "right",
    "\x1bOd": "left",
}

_MODIFIED_TABLES: list[tuple[dict[str, str], str]] = [
    (LEGACY_CTRL_SEQUENCES, "ctrl+"),
    (LEGACY_SHIFT_SEQUENCES, "shift+"),
    (LEGACY_ALT_SEQUENCES, "alt+"),
    (LEGACY_KEY_SEQUENCES, ""),
]


# ---------------------------------------------------------------------------
# Sequence completeness
# ---------------------------------------------------------------------------


def sequence_status(data: str) -> SequenceStatus:
    """Check whether *data* is a complete escape sequence or needs more input."""
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI: ESC [ params final, final byte in 0x40-0x7E
    if after_esc.startswith("["):
        return _csi_status(data)

    # SS3: ESC O x
    if after_esc.startswith("O"):
        return "complete" if len(after_esc) >= 2 else "incomplete"

    # Meta: ESC followed by a single character
    return "complete"


def _csi_status(data: str) -> SequenceStatus:
    if len(data) < 3:
        return "incomplete"
    last = ord(data[-1])
    if 0x40 <= last <= 0x7E:
        return "complete"
    return "incomplete"


# ---------------------------------------------------------------------------
# Key identification
# ---------------------------------------------------------------------------


def parse_key(data: str) -> KeyId | None:  # noqa: C901
    """Parse a complete input sequence into a key id, or ``None``.

    Printable characters map to themselves (``"a"``, ``"é"``), control
    characters to ``"ctrl+<letter>"``, ESC-prefixed characters to
    ``"alt+<key>"``.
    """
    if not data:
        return None

    for table, prefix in _MODIFIED_TABLES:
        if data in table:
            return prefix + table[data]

    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    if len(data) == 2 and data[0] == ESC:
        ch = data[1]
        if ch in ("\r", "\n"):
            return "alt+enter"
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if ch == "\x1b":
            return "alt+escape"
        if 1 <= ord(ch) <= 26:
            return "ctrl+alt+" + chr(ord(ch) + ord("a") - 1)
        if ch.isprintable():
            return "alt+" + ch.lower()

    if len(data) == 1 and data.isprintable():
        return data

    return None


def is_printable(data: str) -> bool:
    """Single printable character that should be inserted as-is."""
    return len(data) == 1 and data.isprintable()
