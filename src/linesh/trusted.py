"""Trusted external commands: OS programs that take over the terminal."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Iterable

from linesh.errors import CancellationError, ConfigurationError, EvalError
from linesh.input_reader import InputReader
from linesh.lang import CancellationToken, EvalState, ExternalCommand
from linesh.terminal import Terminal

logger = logging.getLogger(__name__)

# Grace period between SIGTERM and SIGKILL for a cancelled command.
TERMINATE_TIMEOUT = 2.0


class TerminalCommandRunner:
    """Runs a program with the terminal handed over to it.

    The input reader is paused and the terminal put back in cooked mode for
    the lifetime of the process; both are restored afterwards, even when
    spawning fails. ``owns_terminal`` is true in between, and the REPL writes
    nothing while it is. Cancelling the token terminates the process.
    """

    def __init__(self, terminal: Terminal, reader: InputReader) -> None:
        self.terminal = terminal
        self.reader = reader
        self.owns_terminal = False

    async def __call__(self, name: str, argv: list[str], token: CancellationToken) -> int:
        self.owns_terminal = True
        self.reader.pause()
        self.terminal.restore()
        try:
            process = await asyncio.create_subprocess_exec(name, *argv, stdin=self.terminal.input_fd)
            returncode = await self._wait(name, process, token)
        except OSError as exc:
            raise EvalError(f"{name}: {exc.strerror or exc}") from exc
        finally:
            self.terminal.enter_raw()
            self.reader.resume()
            self.owns_terminal = False

        logger.info("trusted command %s exited with %d", name, returncode)
        if token.cancelled:
            raise CancellationError(f"{name} cancelled")
        if returncode == -signal.SIGINT:
            return returncode
        if returncode != 0:
            raise EvalError(f"{name} exited with status {returncode}")
        return returncode

    async def _wait(self, name: str, process: asyncio.subprocess.Process, token: CancellationToken) -> int:
        exited = asyncio.ensure_future(process.wait())
        cancelled = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({exited, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
        if exited.done():
            return exited.result()

        logger.info("terminating trusted command %s (pid %d)", name, process.pid)
        process.terminate()
        try:
            return await asyncio.wait_for(asyncio.shield(exited), TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("trusted command %s ignored SIGTERM, killing it", name)
            process.kill()
            return await exited


def configure_trusted_commands(
    state: EvalState, names: Iterable[str], terminal: Terminal, reader: InputReader
) -> TerminalCommandRunner | None:
    """Define each trusted command as a global constant and install the runner."""
    names = list(names)
    if not names:
        return None
    if not terminal.is_tty():
        raise ConfigurationError("trusted commands require both input and output to be terminals")
    for name in names:
        if name in state.globals:
            raise ConfigurationError(f"trusted command {name!r} would shadow the global {name!r}")
        state.define_constant(name, ExternalCommand(name))
    runner = TerminalCommandRunner(terminal, reader)
    state.command_runner = runner
    return runner
