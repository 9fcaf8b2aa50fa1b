"""Background check of the input line once the user stops typing."""

from __future__ import annotations

import asyncio
import logging

from linesh.errors import CheckError, ParseError
from linesh.lang import Evaluator

logger = logging.getLogger(__name__)

QUEUE_SIZE = 10


class IdleChecker:
    """Parses and checks lines handed over by the REPL loop.

    ``offer`` never blocks: when the side queue is full the newest line is
    dropped. Diagnostics only go to the log.
    """

    def __init__(self, evaluator: Evaluator, maxsize: int = QUEUE_SIZE) -> None:
        self.evaluator = evaluator
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize)
        self.last_checked: str | None = None
        self.diagnostics: list[str] = []

    def offer(self, text: str) -> bool:
        try:
            self.queue.put_nowait(text)
        except asyncio.QueueFull:
            return False
        return True

    def check(self, text: str) -> list[str]:
        """Check *text* now; a repeat of the previous line is skipped."""
        if text == self.last_checked:
            return self.diagnostics
        self.last_checked = text
        try:
            self.evaluator.check(self.evaluator.parse(text))
        except ParseError as exc:
            self.diagnostics = [f"{span.start}:{span.end}: {msg}" for span, msg in exc.errors]
        except CheckError as exc:
            self.diagnostics = list(exc.messages)
        else:
            self.diagnostics = []
        for line in self.diagnostics:
            logger.debug("background check of %r: %s", text, line)
        return self.diagnostics

    async def run(self) -> None:
        while True:
            text = await self.queue.get()
            self.check(text)
