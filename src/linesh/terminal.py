"""Terminal abstraction for the line editor.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal`` backed by
the process' stdin/stdout that switches the input into raw mode and restores
it on exit. The input itself is not read here: ``linesh.input_reader`` reads
``input_fd`` from the event loop.
"""

from __future__ import annotations

import logging
import os
import sys
import termios
import threading
import tty
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

CLEAR_SCREEN = "\x1b[2J\x1b[H"

DEFAULT_COLUMNS = 80


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    lock: threading.RLock

    @property
    def input_fd(self) -> int | None: ...

    @property
    def columns(self) -> int: ...

    def is_tty(self) -> bool: ...

    def enter_raw(self) -> None: ...

    def restore(self) -> None: ...

    def write(self, data: str) -> None: ...

    def clear_screen(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by real input/output streams.

    ``lock`` serialises every write.
    """

    def __init__(
        self,
        input: TextIO | None = None,
        output: TextIO | None = None,
        default_columns: int = DEFAULT_COLUMNS,
    ) -> None:
        self._input = input or sys.stdin
        self._output = output or sys.stdout
        self._default_columns = default_columns
        self._original_termios: list | None = None
        self.lock = threading.RLock()

    # -- properties ---------------------------------------------------------

    @property
    def input_fd(self) -> int | None:
        return self._input.fileno()

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self._output.fileno()).columns or self._default_columns
        except (ValueError, OSError):
            return self._default_columns

    def is_tty(self) -> bool:
        return self._input.isatty() and self._output.isatty()

    # -- raw mode -----------------------------------------------------------

    def enter_raw(self) -> None:
        """Save the current attributes (once) and switch input to raw mode."""
        fd = self._input.fileno()
        if self._original_termios is None:
            self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)
        logger.debug("terminal in raw mode")

    def restore(self) -> None:
        """Restore the attributes saved by ``enter_raw``."""
        if self._original_termios is None:
            return
        termios.tcsetattr(self._input.fileno(), termios.TCSADRAIN, self._original_termios)
        logger.debug("terminal restored")

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        with self.lock:
            try:
                self._output.write(data)
                self._output.flush()
            except OSError as exc:
                logger.error("terminal write failed: %s", exc)

    def clear_screen(self) -> None:
        self.write(CLEAR_SCREEN)
