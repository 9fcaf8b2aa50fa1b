"""In-memory command history with a recall cursor."""

from __future__ import annotations


class CommandHistory:
    """Submitted lines, oldest first, plus a scroll index.

    A fresh history holds a single empty entry standing for the line being
    typed; it is dropped by the first submission.
    """

    def __init__(self) -> None:
        self.commands: list[str] = [""]
        self.index = 0

    def __len__(self) -> int:
        return len(self.commands)

    def current(self) -> str:
        return self.commands[self.index]

    def scroll(self, delta: int) -> None:
        """Move the index by *delta*, clamped to the existing entries."""
        self.index = max(0, min(self.index + delta, len(self.commands) - 1))

    def reset_index(self) -> None:
        self.index = len(self.commands) - 1

    def append(self, line: str) -> None:
        self.commands.append(line)
        if self.commands[0] == "":
            del self.commands[0]
        else:
            self.scroll(+1)

    def recall(self, delta: int) -> str:
        """Return the entry under the index, then scroll by *delta*.

        Called with ``-1`` for the up key and ``+1`` for the down key.
        """
        line = self.current()
        self.scroll(delta)
        return line
