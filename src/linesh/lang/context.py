"""Cooperative cancellation and the context handed to callable values."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from linesh.errors import CancellationError
from linesh.lang.state import EvalState


class CancellationToken:
    """One-shot cancellation flag observed by a running evaluation.

    The evaluator yields to the event loop and checks it between statements
    and loop iterations, and waits on it inside blocking builtins and while a
    trusted command runs.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError("evaluation cancelled")

    async def checkpoint(self) -> None:
        """Yield to the event loop once, then raise if cancelled meanwhile."""
        await asyncio.sleep(0)
        self.raise_if_cancelled()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """Sleep for *seconds*, waking up early if the token is cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return
        raise CancellationError("evaluation cancelled")


@dataclass
class CallContext:
    state: EvalState
    token: CancellationToken
