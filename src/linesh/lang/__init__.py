"""Default evaluator: a small shell-flavoured expression language.

The editor only talks to it through ``Evaluator``: tokenize for word motion
and highlighting, parse for completion and submission, check before running,
evaluate inside the foreground task.
"""

from __future__ import annotations

from typing import Any

from linesh.errors import ParseError
from linesh.lang.ast import Chunk, Span
from linesh.lang.builtins import BUILTIN_COMMANDS, BUILTINS, Builtin, ExternalCommand
from linesh.lang.checker import CheckData, check
from linesh.lang.context import CallContext, CancellationToken
from linesh.lang.interpreter import Interpreter
from linesh.lang.parser import parse_chunk
from linesh.lang.state import CommandPermission, DirEntry, EvalState, LocalFileSystem
from linesh.lang.tokens import Token, tokenize
from linesh.lang.values import Pattern, PatternNamespace, format_value


class Evaluator:
    """Parse, check and evaluate source text against one ``EvalState``."""

    def __init__(self, state: EvalState | None = None) -> None:
        self.state = state if state is not None else EvalState()
        for name, builtin in BUILTINS.items():
            if name not in self.state.globals:
                self.state.define_constant(name, builtin)

    def tokenize(self, text: str) -> list[Token]:
        return [t for t in tokenize(text) if t.kind not in ("newline", "comment")]

    def parse(self, text: str) -> Chunk:
        """Parse *text*; raises ``ParseError`` carrying the partial tree."""
        chunk, errors = parse_chunk(text)
        if errors:
            raise ParseError(errors, chunk)
        return chunk

    def check(self, chunk: Chunk) -> CheckData:
        return check(chunk, self.state)

    async def evaluate(self, chunk: Chunk, token: CancellationToken | None = None) -> Any:
        interpreter = Interpreter(self.state, token or CancellationToken())
        return await interpreter.run(chunk)


__all__ = [
    "Builtin",
    "BUILTINS",
    "BUILTIN_COMMANDS",
    "CallContext",
    "CancellationToken",
    "CheckData",
    "Chunk",
    "CommandPermission",
    "DirEntry",
    "EvalState",
    "Evaluator",
    "ExternalCommand",
    "LocalFileSystem",
    "Pattern",
    "PatternNamespace",
    "Span",
    "Token",
    "format_value",
]
