"""OS signals translated into REPL loop events."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable

logger = logging.getLogger(__name__)

# Job-control signals a raw-mode editor must not be stopped by.
IGNORED_SIGNALS = (signal.SIGTTOU, signal.SIGTTIN, signal.SIGTSTP)


class SignalListener:
    """Installs the session's signal handlers on the running event loop.

    * SIGINT interrupts the active foreground task.
    * SIGTERM ends the session (the terminal is restored on the way out).
    * SIGWINCH is only logged: the width is measured once per session.
    * SIGQUIT is ignored, as are the job-control signals.
    """

    def __init__(
        self,
        on_interrupt: Callable[[], None],
        on_terminate: Callable[[], None],
        on_resize: Callable[[], None] | None = None,
    ) -> None:
        self._on_interrupt = on_interrupt
        self._on_terminate = on_terminate
        self._on_resize = on_resize
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous: dict[signal.Signals, object] = {}

    def install(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._loop.add_signal_handler(signal.SIGINT, self._interrupt)
        self._loop.add_signal_handler(signal.SIGTERM, self._terminate)
        self._loop.add_signal_handler(signal.SIGWINCH, self._resize)
        self._loop.add_signal_handler(signal.SIGQUIT, self._quit)
        for sig in IGNORED_SIGNALS:
            self._previous[sig] = signal.signal(sig, signal.SIG_IGN)

    def uninstall(self) -> None:
        if self._loop is None:
            return
        for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGWINCH, signal.SIGQUIT):
            self._loop.remove_signal_handler(sig)
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()
        self._loop = None

    def _interrupt(self) -> None:
        logger.debug("SIGINT received")
        self._on_interrupt()

    def _terminate(self) -> None:
        logger.info("SIGTERM received, ending session")
        self._on_terminate()

    def _resize(self) -> None:
        logger.debug("SIGWINCH received")
        if self._on_resize is not None:
            self._on_resize()

    def _quit(self) -> None:
        logger.debug("SIGQUIT ignored")
