"""Error taxonomy shared by the editor loop and the evaluator.

Per-command errors (parse, check, evaluation) are recovered at the REPL loop
boundary and rendered below the prompt. Only ``InputError`` and
``ConfigurationError`` end (or prevent) a session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from linesh.lang.ast import Chunk, Span


class LineshError(Exception):
    """Base class for every error raised by linesh."""


class InputError(LineshError):
    """Reading from the terminal failed; the session cannot continue."""


class ConfigurationError(LineshError):
    """The session configuration is invalid."""


class ParseError(LineshError):
    """The submitted text is not syntactically valid.

    The partial tree is kept so that callers can still highlight or
    complete the input.
    """

    def __init__(self, errors: list[tuple[Span, str]], chunk: Chunk | None = None) -> None:
        self.errors = errors
        self.chunk = chunk
        super().__init__(self._format())

    def _format(self) -> str:
        lines = []
        for span, message in self.errors:
            lines.append(f"{span.start}:{span.end}: {message}")
        return "\n".join(lines) or "parse error"


class CheckError(LineshError):
    """Static check of a parsed chunk failed."""

    def __init__(self, messages: list[str]) -> None:
        self.messages = messages
        super().__init__("\n".join(messages))


class EvalError(LineshError):
    """Evaluation of a command failed."""


class AssertionFailure(EvalError):
    """An ``assert`` statement evaluated to a falsy value."""

    def __init__(self, source: str, value: object = None) -> None:
        self.source = source
        self.value = value
        super().__init__(f"assertion failed: {source}")


class CancellationError(EvalError):
    """Evaluation observed its cancellation token."""


class PermissionDeniedError(EvalError):
    """A trusted command was invoked without a matching granted permission."""
