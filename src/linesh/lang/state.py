"""Evaluation state: scopes, permissions, patterns, hosts and filesystem.

The same ``EvalState`` lives for a whole session; the local scope persists
across submitted lines so that ``x = 1`` followed by ``print $x`` works.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Protocol

from linesh.errors import EvalError
from linesh.lang.values import DEFAULT_PATTERNS, Pattern, PatternNamespace

if TYPE_CHECKING:
    from linesh.lang.context import CancellationToken

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandPermission:
    """Grant to run command *name* with the subcommand chain *chain*.

    An empty chain authorises every invocation of the command.
    """

    name: str
    chain: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> CommandPermission:
        """Build a permission from ``"name sub1 sub2"``."""
        parts = text.split()
        if not parts:
            raise ValueError("empty command permission")
        return cls(parts[0], tuple(parts[1:]))

    def __str__(self) -> str:
        return " ".join((self.name, *self.chain))


# ---------------------------------------------------------------------------
# Filesystem provider
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool


class FileSystem(Protocol):
    @property
    def cwd(self) -> str: ...

    def resolve(self, path: str) -> str: ...

    def list_dir(self, path: str) -> list[DirEntry]: ...

    def is_dir(self, path: str) -> bool: ...

    def chdir(self, path: str) -> None: ...


class LocalFileSystem:
    """Filesystem provider backed by the OS, with its own working directory."""

    def __init__(self, cwd: str | None = None) -> None:
        self._cwd = os.path.abspath(cwd or os.getcwd())

    @property
    def cwd(self) -> str:
        return self._cwd

    def resolve(self, path: str) -> str:
        return posixpath.normpath(posixpath.join(self._cwd, path))

    def list_dir(self, path: str) -> list[DirEntry]:
        """List the entries of *path*, sorted by name."""
        with os.scandir(self.resolve(path)) as it:
            entries = [DirEntry(e.name, e.is_dir()) for e in it]
        entries.sort(key=lambda e: e.name)
        return entries

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(self.resolve(path))

    def chdir(self, path: str) -> None:
        target = self.resolve(path)
        if not os.path.isdir(target):
            raise EvalError(f"not a directory: {path}")
        self._cwd = target


# ---------------------------------------------------------------------------
# Evaluation state
# ---------------------------------------------------------------------------

CommandRunner = Callable[[str, list[str], "CancellationToken"], Awaitable[int]]


class EvalState:
    """Variables and capabilities visible to evaluation and completion."""

    def __init__(
        self,
        globals: dict[str, Any] | None = None,
        constants: Iterable[str] = (),
        permissions: Iterable[CommandPermission] = (),
        patterns: dict[str, Pattern] | None = None,
        pattern_namespaces: dict[str, PatternNamespace] | None = None,
        hosts: dict[str, str] | None = None,
        filesystem: FileSystem | None = None,
        write: Callable[[str], None] | None = None,
    ) -> None:
        self.globals: dict[str, Any] = dict(globals or {})
        self.constants: set[str] = set(constants)
        self.local_scope: dict[str, Any] = {}
        self.permissions: list[CommandPermission] = list(permissions)
        self.patterns: dict[str, Pattern] = dict(DEFAULT_PATTERNS)
        self.patterns.update(patterns or {})
        self.pattern_namespaces: dict[str, PatternNamespace] = dict(pattern_namespaces or {})
        # host -> resolution record (e.g. an address)
        self.hosts: dict[str, str] = dict(hosts or {})
        self.filesystem: FileSystem = filesystem or LocalFileSystem()
        self.write: Callable[[str], None] = write or (lambda _s: None)
        self.command_runner: CommandRunner | None = None

    # -- variables ----------------------------------------------------------

    def define_constant(self, name: str, value: Any) -> None:
        self.globals[name] = value
        self.constants.add(name)

    def is_constant(self, name: str) -> bool:
        return name in self.constants

    def lookup(self, name: str) -> tuple[Any, bool]:
        """Resolve a bare identifier: local scope first, then globals."""
        if name in self.local_scope:
            return self.local_scope[name], True
        if name in self.globals:
            return self.globals[name], True
        return None, False

    def set_global(self, name: str, value: Any) -> None:
        if self.is_constant(name):
            raise EvalError(f"cannot assign constant global '{name}'")
        self.globals[name] = value

    # -- capabilities -------------------------------------------------------

    def command_permissions(self, name: str | None = None) -> list[CommandPermission]:
        if name is None:
            return list(self.permissions)
        return [p for p in self.permissions if p.name == name]

    def has_command_permission(self, name: str, chain: tuple[str, ...]) -> bool:
        return CommandPermission(name, chain) in self.permissions

    def register_pattern(self, pattern: Pattern) -> None:
        self.patterns[pattern.name] = pattern

    def register_pattern_namespace(self, namespace: PatternNamespace) -> None:
        self.pattern_namespaces[namespace.name] = namespace
