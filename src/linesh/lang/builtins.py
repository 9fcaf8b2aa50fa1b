"""Builtin functions and trusted external commands."""

from __future__ import annotations

import getpass
import logging
import posixpath
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from linesh.errors import EvalError, PermissionDeniedError
from linesh.lang.context import CallContext
from linesh.lang.values import PathValue, format_value, is_simple_value, type_name

logger = logging.getLogger(__name__)

BuiltinFn = Callable[[CallContext, list[Any]], Awaitable[Any]]


@dataclass
class Builtin:
    name: str
    fn: BuiltinFn
    type_name = "function"

    async def call(self, ctx: CallContext, args: list[Any]) -> Any:
        return await self.fn(ctx, args)

    def __str__(self) -> str:
        return f"<builtin {self.name}>"


def _expect_args(name: str, args: list[Any], minimum: int, maximum: int) -> None:
    if not minimum <= len(args) <= maximum:
        if minimum == maximum:
            raise EvalError(f"{name}: expected {minimum} argument(s), got {len(args)}")
        raise EvalError(f"{name}: expected {minimum} to {maximum} arguments, got {len(args)}")


# ---------------------------------------------------------------------------
# Always available
# ---------------------------------------------------------------------------


async def _print(ctx: CallContext, args: list[Any]) -> None:
    parts = [a if type(a) is str else format_value(a) for a in args]
    ctx.state.write(" ".join(parts) + "\n")


async def _sleep(ctx: CallContext, args: list[Any]) -> None:
    _expect_args("sleep", args, 1, 1)
    duration = args[0]
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise EvalError(f"sleep: expected a duration in milliseconds, got {type_name(duration)}")
    await ctx.token.sleep(duration / 1000)


async def _len(ctx: CallContext, args: list[Any]) -> int:
    _expect_args("len", args, 1, 1)
    value = args[0]
    if not isinstance(value, (str, list, dict)):
        raise EvalError(f"len: cannot compute the length of a(n) {type_name(value)}")
    return len(value)


def _entry_path(directory: str, name: str, is_dir: bool) -> PathValue:
    path = posixpath.join(directory, name)
    if not path.startswith(("/", "./", "../")):
        path = "./" + path
    return PathValue(path + "/" if is_dir else path)


async def _ls(ctx: CallContext, args: list[Any]) -> list[PathValue]:
    _expect_args("ls", args, 0, 1)
    directory = args[0] if args else PathValue("./")
    if not isinstance(directory, PathValue):
        raise EvalError(f"ls: expected a path, got {type_name(directory)}")
    try:
        entries = ctx.state.filesystem.list_dir(directory)
    except OSError as exc:
        raise EvalError(f"ls: {exc.strerror or exc}: {directory}") from exc
    return [_entry_path(directory, e.name, e.is_dir) for e in entries]


# ---------------------------------------------------------------------------
# Opt-in builtin commands
# ---------------------------------------------------------------------------


async def _cd(ctx: CallContext, args: list[Any]) -> None:
    _expect_args("cd", args, 1, 1)
    if not isinstance(args[0], PathValue):
        raise EvalError(f"cd: expected a path, got {type_name(args[0])}")
    ctx.state.filesystem.chdir(args[0])


async def _pwd(ctx: CallContext, args: list[Any]) -> PathValue:
    _expect_args("pwd", args, 0, 0)
    cwd = ctx.state.filesystem.cwd
    return PathValue(cwd if cwd.endswith("/") else cwd + "/")


async def _whoami(ctx: CallContext, args: list[Any]) -> str:
    _expect_args("whoami", args, 0, 0)
    return getpass.getuser()


async def _hostname(ctx: CallContext, args: list[Any]) -> str:
    _expect_args("hostname", args, 0, 0)
    return socket.gethostname()


BUILTINS: dict[str, Builtin] = {
    "print": Builtin("print", _print),
    "sleep": Builtin("sleep", _sleep),
    "len": Builtin("len", _len),
    "ls": Builtin("ls", _ls),
}

BUILTIN_COMMANDS: dict[str, Builtin] = {
    "cd": Builtin("cd", _cd),
    "pwd": Builtin("pwd", _pwd),
    "whoami": Builtin("whoami", _whoami),
    "hostname": Builtin("hostname", _hostname),
}


# ---------------------------------------------------------------------------
# Trusted external commands
# ---------------------------------------------------------------------------


@dataclass
class ExternalCommand:
    """An OS program the user trusts to take over the terminal."""

    name: str
    type_name = "command"

    def authorize(self, ctx: CallContext, chain: tuple[str, ...]) -> None:
        """Walk from the most specific subcommand chain down to the bare
        command; the first granted permission authorises the call."""
        for i in range(len(chain), -1, -1):
            if ctx.state.has_command_permission(self.name, chain[:i]):
                return
        shown = " ".join((self.name, *chain))
        raise PermissionDeniedError(f"missing permission to run '{shown}'")

    async def call(self, ctx: CallContext, chain: tuple[str, ...], args: list[Any]) -> None:
        for arg in args:
            if not is_simple_value(arg):
                raise EvalError(
                    f"{self.name}: {type_name(arg)} values cannot be passed to an external command"
                )
        self.authorize(ctx, chain)
        runner = ctx.state.command_runner
        if runner is None:
            raise EvalError(f"{self.name}: external commands cannot be run in this session")

        argv = [*chain, *(_command_arg(a) for a in args)]
        ctx.token.raise_if_cancelled()
        logger.info("running trusted command %s %s", self.name, argv)
        await runner(self.name, argv, ctx.token)

    def __str__(self) -> str:
        return f"<command {self.name}>"


def _command_arg(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
