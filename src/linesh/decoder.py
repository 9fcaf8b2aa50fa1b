"""Key decoder: raw input units to editor actions.

The decoder is a small state machine over the pending-sequence accumulator::

    empty --ESC--> pending-escape --[ or O--> pending-csi --final byte--> resolved
      |                  |
      +--printable-------+--any other unit--> resolved

``decode`` is a pure function of the accumulated sequence; ``KeyDecoder``
feeds it one unit at a time and clears the accumulator once a sequence
resolves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from linesh.keybindings import EditorAction, KeybindingsManager
from linesh.keys import ESC, KeyId, is_printable, parse_key, sequence_status

logger = logging.getLogger(__name__)

DecoderState = Literal["empty", "pending-escape", "pending-csi", "resolved"]

# Longest sequence accepted before giving up on it.
MAX_PENDING_UNITS = 16


@dataclass(frozen=True)
class KeyEvent:
    """A resolved input sequence.

    ``action`` is ``None`` for no-action events; ``char`` is set for a
    printable character to insert.
    """

    action: EditorAction | None = None
    char: str | None = None
    key: KeyId | None = None

    @property
    def is_noop(self) -> bool:
        return self.action is None and self.char is None


NO_ACTION = KeyEvent()


def _resolve(sequence: str, keybindings: KeybindingsManager) -> KeyEvent:
    key = parse_key(sequence)
    if key is None:
        return NO_ACTION
    return KeyEvent(action=keybindings.action_for(key), key=key)


def decode(
    sequence: str, keybindings: KeybindingsManager | None = None
) -> tuple[DecoderState, KeyEvent | None]:
    """Decode an accumulated input sequence.

    Returns the decoder state and, when the state is ``"resolved"``, the
    resulting event.
    """
    if not sequence:
        return "empty", None

    bindings = keybindings or KeybindingsManager()
    status = sequence_status(sequence)

    if status == "not-escape":
        if is_printable(sequence):
            return "resolved", KeyEvent(char=sequence, key=sequence)
        return "resolved", _resolve(sequence, bindings)

    if status == "incomplete":
        if len(sequence) > MAX_PENDING_UNITS:
            return "resolved", NO_ACTION
        if sequence == ESC:
            return "pending-escape", None
        return "pending-csi", None

    return "resolved", _resolve(sequence, bindings)


class KeyDecoder:
    """Stateful wrapper around ``decode`` fed one input unit at a time."""

    def __init__(self, keybindings: KeybindingsManager | None = None) -> None:
        self._keybindings = keybindings or KeybindingsManager()
        self._pending = ""
        self._state: DecoderState = "empty"

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, unit: str) -> KeyEvent | None:
        """Append *unit* to the pending sequence.

        Returns ``None`` while the sequence is an incomplete prefix.
        """
        self._pending += unit
        self._state, event = decode(self._pending, self._keybindings)
        if self._state != "resolved":
            return None
        if event is not None and event.is_noop:
            logger.debug("unrecognized input sequence %r", self._pending)
        self.reset()
        return event

    def flush(self) -> KeyEvent | None:
        """Resolve whatever is pending as-is (a lone ESC becomes ``escape``).

        Used when no further input arrives to complete the sequence.
        """
        if not self._pending:
            return None
        sequence = self._pending
        self.reset()
        logger.debug("flushing pending input sequence %r", sequence)
        return _resolve(sequence, self._keybindings)

    def reset(self) -> None:
        self._pending = ""
        self._state = "empty"
