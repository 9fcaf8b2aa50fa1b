"""Background reader pulling raw input units from the terminal.

The reader is driven by the event loop (``loop.add_reader``), so it keeps
filling its queue while the REPL loop renders or waits on a foreground task.
Units come out in the exact order they were read.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
from collections import deque

from linesh.errors import InputError

logger = logging.getLogger(__name__)

READ_SIZE = 4096
DEFAULT_QUEUE_SIZE = 4096


class InputReader:
    """Pushes one character per slot into a bounded queue.

    When the queue is full the remaining characters are kept aside and the
    fd is no longer watched until the consumer drains the queue below half
    its capacity. A failed read is stored in ``error``; the consumer raises
    it.
    """

    def __init__(self, fd: int | None, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.fd = fd
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize)
        self.error: InputError | None = None
        self._backlog: deque[str] = deque()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._loop: asyncio.AbstractEventLoop | None = None
        self._watching = False
        self._paused = False
        self._suspended = False

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._watch()

    def stop(self) -> None:
        self._unwatch()
        self._loop = None

    def pause(self) -> None:
        """Stop reading so that another process can own the terminal input."""
        self._paused = True
        self._unwatch()

    def resume(self) -> None:
        self._paused = False
        if not self._suspended:
            self._watch()

    def pause_threadsafe(self) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.pause)

    def resume_threadsafe(self) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self.resume)

    @property
    def paused(self) -> bool:
        return self._paused

    def _watch(self) -> None:
        if self._watching or self.fd is None or self._loop is None:
            return
        self._loop.add_reader(self.fd, self._on_readable)
        self._watching = True

    def _unwatch(self) -> None:
        if not self._watching or self._loop is None:
            return
        self._loop.remove_reader(self.fd)
        self._watching = False

    # -- producer -----------------------------------------------------------

    def _on_readable(self) -> None:
        try:
            raw = os.read(self.fd, READ_SIZE)
        except OSError as exc:
            logger.error("terminal read failed: %s", exc)
            self.error = InputError(f"cannot read from the terminal: {exc}")
            self._unwatch()
            return
        if not raw:
            logger.error("terminal input closed")
            self.error = InputError("terminal input closed")
            self._unwatch()
            return
        self.feed(self._decoder.decode(raw))

    def feed(self, data: str) -> None:
        """Queue the characters of *data* as if they had been read."""
        for ch in data:
            if self._backlog or self.queue.full():
                self._backlog.append(ch)
            else:
                self.queue.put_nowait(ch)
        if self._backlog and not self._suspended:
            logger.debug("input queue full, suspending reads")
            self._suspended = True
            self._unwatch()

    # -- consumer -----------------------------------------------------------

    def poll(self) -> str | None:
        """Next unit, or ``None`` when nothing is buffered."""
        try:
            unit = self.queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if self._suspended and self.queue.qsize() < self.queue.maxsize // 2:
            self._refill()
        return unit

    def _refill(self) -> None:
        while self._backlog and not self.queue.full():
            self.queue.put_nowait(self._backlog.popleft())
        if not self._backlog:
            self._suspended = False
            if not self._paused:
                self._watch()

    def has_lookahead(self) -> bool:
        return not self.queue.empty() or bool(self._backlog)
