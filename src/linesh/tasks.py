"""Foreground task coordinator.

Runs the evaluation of one submitted command as an asyncio task while the
REPL loop keeps servicing input. Parsing and checking happen synchronously
in ``submit``; only evaluation is delegated. Cancellation is cooperative:
the coordinator flips the task's ``CancellationToken`` and forgets the task,
the evaluation stops at its next suspension point.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from linesh.errors import CancellationError, EvalError
from linesh.lang import CancellationToken, Chunk, Evaluator

logger = logging.getLogger(__name__)

TaskState = Literal["idle", "running", "completed"]


@dataclass
class ForegroundTask:
    """One submitted command.

    ``result`` and ``error`` are written once by the evaluation and read once
    by the loop after ``done`` is set.
    """

    source: str
    chunk: Chunk
    token: CancellationToken = field(default_factory=CancellationToken)
    done: asyncio.Event = field(default_factory=asyncio.Event)
    result: Any = None
    error: EvalError | None = None


class ForegroundTaskCoordinator:
    def __init__(self, evaluator: Evaluator) -> None:
        self.evaluator = evaluator
        self._active: ForegroundTask | None = None
        self._runners: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> TaskState:
        if self._active is None:
            return "idle"
        if self._active.done.is_set():
            return "completed"
        return "running"

    @property
    def active(self) -> ForegroundTask | None:
        return self._active

    def submit(self, source: str) -> ForegroundTask | None:
        """Parse, check and start evaluating *source*.

        Raises ``ParseError`` or ``CheckError`` without starting anything.
        Returns ``None`` when a task is already active.
        """
        if self._active is not None:
            logger.debug("submission ignored, a task is already %s", self.state)
            return None

        chunk = self.evaluator.parse(source)
        self.evaluator.check(chunk)

        task = ForegroundTask(source, chunk)
        runner = asyncio.create_task(self._run(task))
        self._runners.add(runner)
        runner.add_done_callback(self._runners.discard)
        self._active = task
        logger.info("task submitted: %r", source)
        return task

    async def _run(self, task: ForegroundTask) -> None:
        try:
            value = await self.evaluator.evaluate(task.chunk, task.token)
        except CancellationError as exc:
            task.error = exc
        except EvalError as exc:
            if not task.token.cancelled:
                task.error = exc
        except Exception as exc:
            logger.exception("evaluation of %r crashed", task.source)
            task.error = EvalError(f"internal error: {exc}")
        else:
            if not task.token.cancelled:
                task.result = value
        finally:
            task.done.set()

    def interrupt(self, detach: bool = True) -> ForegroundTask | None:
        """Cancel the running task.

        With *detach* the coordinator is idle right after. Otherwise the task
        stays ``running`` until its evaluation unwinds and ``poll`` hands it
        over with a ``CancellationError``.
        """
        task = self._active
        if task is None or task.done.is_set():
            return None
        task.token.cancel()
        if not detach:
            logger.info("task cancellation requested: %r", task.source)
            return task
        self._active = None
        logger.info("task cancelled: %r", task.source)
        return task

    def poll(self) -> ForegroundTask | None:
        """Hand over the finished task exactly once."""
        task = self._active
        if task is None or not task.done.is_set():
            return None
        self._active = None
        logger.info("task completed: %r", task.source)
        return task

    async def wait_cancelled(self) -> None:
        """Wait until every cancelled evaluation has unwound."""
        if self._runners:
            await asyncio.gather(*self._runners, return_exceptions=True)
