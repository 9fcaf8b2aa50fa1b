"""The REPL loop.

``Repl`` owns the session state and is its only writer: it polls the input
reader, decodes units into actions, edits the line buffer, asks the
suggestion engine for completions, redraws through the renderer and hands
submitted lines to the foreground task coordinator. It never blocks on a
running command: each iteration polls input and task completion, then
sleeps for ``poll_interval_ms``.
"""

from __future__ import annotations

import asyncio
import contextlib
import getpass
import logging
import socket
from dataclasses import dataclass, field
from typing import Any

from linesh.completion import find_suggestions
from linesh.config import ReplConfig
from linesh.decoder import KeyDecoder, KeyEvent
from linesh.errors import AssertionFailure, CancellationError, CheckError, EvalError, ParseError
from linesh.highlight import colorize, get_theme
from linesh.history import CommandHistory
from linesh.idle import IdleChecker
from linesh.input_reader import InputReader
from linesh.keybindings import KeybindingsManager
from linesh.lang import BUILTIN_COMMANDS, Chunk, EvalState, Evaluator, format_value
from linesh.line_buffer import LineBuffer
from linesh.render import RenderSnapshot, move_below, render
from linesh.signals import SignalListener
from linesh.tasks import ForegroundTask, ForegroundTaskCoordinator
from linesh.terminal import ProcessTerminal, Terminal
from linesh.trusted import configure_trusted_commands
from linesh.utils import crlf, longest_common_prefix, strip_ansi

logger = logging.getLogger(__name__)

# A lone ESC is resolved once no unit follows it for this long.
ESCAPE_TIMEOUT = 0.01


@dataclass
class Session:
    """Editor state of one REPL session."""

    buffer: LineBuffer
    history: CommandHistory = field(default_factory=CommandHistory)
    snapshot: RenderSnapshot = field(default_factory=RenderSnapshot)
    width: int = 80
    prompt: str = ""
    suggestions: list[str] = field(default_factory=list)


def expand_prompt(template: str, state: EvalState) -> str:
    """Replace the ``{pwd}``, ``{whoami}`` and ``{hostname}`` placeholders."""
    prompt = template
    if "{pwd}" in prompt:
        prompt = prompt.replace("{pwd}", state.filesystem.cwd)
    if "{whoami}" in prompt:
        prompt = prompt.replace("{whoami}", getpass.getuser())
    if "{hostname}" in prompt:
        prompt = prompt.replace("{hostname}", socket.gethostname())
    return prompt


def format_result(value: Any) -> str:
    """Text printed for the value of a command; empty for ``nil``."""
    if value is None:
        return ""
    if type(value) is str:
        return strip_ansi(value)
    return format_value(value)


def format_error(error: EvalError) -> str:
    if isinstance(error, AssertionFailure):
        text = f"assertion failed\n  {error.source}"
        if error.value is not None:
            text += f"\n  evaluated to {format_value(error.value)}"
        return text
    return f"error: {error}"


def build_state(config: ReplConfig) -> EvalState:
    state = EvalState(globals=config.additional_globals, permissions=config.permissions)
    for name in config.builtin_commands:
        state.define_constant(name, BUILTIN_COMMANDS[name])
    return state


class Repl:
    """Interactive line editor running commands as foreground tasks.

    Raises ``ConfigurationError`` from the constructor when *config* is
    invalid.
    """

    def __init__(
        self,
        config: ReplConfig | None = None,
        terminal: Terminal | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        self.config = config or ReplConfig()
        self.config.validate()

        self.terminal = terminal or ProcessTerminal(default_columns=self.config.default_term_width)
        self.evaluator = evaluator or Evaluator(build_state(self.config))
        self.state = self.evaluator.state
        self.state.write = self._write_output

        self.reader = InputReader(self.terminal.input_fd, self.config.input_queue_size)
        self._runner = configure_trusted_commands(
            self.state, self.config.trusted_commands, self.terminal, self.reader
        )

        self.decoder = KeyDecoder(KeybindingsManager(self.config.keybindings))
        self.tasks = ForegroundTaskCoordinator(self.evaluator)
        self.checker = IdleChecker(self.evaluator)
        self.theme = get_theme(self.config.light_theme)
        self.session = Session(
            buffer=LineBuffer(self.evaluator.tokenize),
            width=self.terminal.columns or self.config.default_term_width,
        )

        self._running = False
        self._dirty = False
        self._idle_sent = False
        self._last_input = 0.0
        self._signals: SignalListener | None = None
        if self.config.handle_signals:
            self._signals = SignalListener(self.interrupt, self.stop, self._on_resize)

    # -- lifecycle ----------------------------------------------------------

    async def run(self) -> None:
        """Run until ``quit``, SIGTERM or a terminal read failure.

        ``InputError`` propagates once the terminal has been restored.
        """
        loop = asyncio.get_running_loop()
        self._running = True
        self.terminal.enter_raw()
        self.reader.start()
        if self._signals is not None:
            self._signals.install()
        checker = asyncio.create_task(self.checker.run())
        logger.info("session started (width %d)", self.session.width)

        try:
            self._new_prompt()
            self._last_input = loop.time()
            while self._running:
                if self.reader.error is not None:
                    raise self.reader.error
                self._process_input(loop.time())
                finished = self.tasks.poll()
                if finished is not None:
                    self._report(finished)
                self._check_when_idle(loop.time())
                await asyncio.sleep(self.config.poll_interval_ms / 1000)
        finally:
            checker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await checker
            if self._signals is not None:
                self._signals.uninstall()
            self.reader.stop()
            self.terminal.restore()
            logger.info("session stopped")

    def stop(self) -> None:
        self._running = False

    def _on_resize(self) -> None:
        logger.debug("terminal resized, keeping width %d", self.session.width)

    # -- input --------------------------------------------------------------

    def _process_input(self, now: float) -> None:
        got_input = False
        while self._running:
            unit = self.reader.poll()
            if unit is None:
                break
            got_input = True
            event = self.decoder.feed(unit)
            if event is not None:
                self.handle_event(event)

        if got_input:
            self._last_input = now
            self._idle_sent = False
        elif self.decoder.state != "empty" and now - self._last_input >= ESCAPE_TIMEOUT:
            event = self.decoder.flush()
            if event is not None:
                self.handle_event(event)

        if self._dirty:
            self.redraw()

    def handle_event(self, event: KeyEvent) -> None:
        """Apply one decoded event to the session."""
        if self.tasks.state == "running":
            if event.action == "stop":
                self.interrupt()
            else:
                logger.debug("ignoring %s while a task is running", event.action or event.char)
            return

        buffer = self.session.buffer
        history = self.session.history
        changed = True
        match event.action:
            case None:
                if event.char is None:
                    return
                buffer.insert(event.char, self.reader.has_lookahead())
            case "left":
                changed = buffer.left()
            case "right":
                changed = buffer.right()
            case "home":
                changed = buffer.home()
            case "end":
                changed = buffer.end()
            case "wordLeft":
                changed = buffer.move_word_backward()
            case "wordRight":
                changed = buffer.move_word_forward()
            case "up":
                buffer.set_text(history.recall(-1))
            case "down":
                buffer.set_text(history.recall(+1))
            case "deleteBackward":
                changed = buffer.delete_backward()
            case "deleteForward":
                changed = buffer.delete_forward()
            case "deleteWordBackward":
                changed = buffer.delete_word_backward()
            case "deleteWordForward":
                changed = buffer.delete_word_forward()
            case "suggestComplete":
                self.complete()
            case "enter":
                self.submit()
                return
            case "stop":
                self._abandon_line()
                return
            case "escape":
                changed = bool(self.session.suggestions)
                self.session.suggestions = []

        if changed:
            if event.action != "suggestComplete":
                self.session.suggestions = []
            self._dirty = True

    # -- completion ---------------------------------------------------------

    def _parse_partial(self, text: str) -> Chunk | None:
        try:
            return self.evaluator.parse(text)
        except ParseError as exc:
            return exc.chunk

    def complete(self) -> None:
        buffer = self.session.buffer
        text = buffer.text
        if not text.strip():
            self.session.suggestions = sorted(self.state.globals)
            return

        chunk = self._parse_partial(text)
        if chunk is None:
            return
        suggestions = find_suggestions(self.state, chunk, buffer.cursor_index)
        self.session.suggestions = []
        if not suggestions:
            return

        if len(suggestions) == 1:
            span = suggestions[0].span
            buffer.replace_span(span.start, span.end, suggestions[0].value)
            return

        self.session.suggestions = sorted(s.shown_string for s in suggestions)
        spans = {s.span for s in suggestions}
        if len(spans) != 1:
            return
        span = spans.pop()
        prefix = longest_common_prefix([s.value for s in suggestions])
        typed = text[span.start : span.end]
        if prefix != typed and prefix.startswith(typed):
            buffer.replace_span(span.start, span.end, prefix)

    # -- submission ---------------------------------------------------------

    def submit(self) -> None:
        session = self.session
        text = session.buffer.text
        session.suggestions = []
        self.redraw()
        self.terminal.write(move_below(session.snapshot))

        session.history.reset_index()
        session.buffer.reset()
        session.snapshot = RenderSnapshot()

        stripped = text.strip()
        if not stripped:
            self._new_prompt()
            return
        session.history.append(text)

        match stripped.split()[0]:
            case "quit":
                logger.info("quit requested")
                self.stop()
                return
            case "clear":
                self.terminal.clear_screen()
                self._new_prompt()
                return

        try:
            self.tasks.submit(text)
        except (ParseError, CheckError) as exc:
            self._write_output(f"{exc}\n")
            self._new_prompt()

    def interrupt(self) -> None:
        """Cancel the running command, if any, and give the prompt back."""
        if self.terminal_handed_over:
            # the prompt comes back once the command has given up the terminal
            self.tasks.interrupt(detach=False)
            return
        if self.tasks.interrupt() is None:
            return
        self.terminal.write("\r\n")
        self._new_prompt()

    def _abandon_line(self) -> None:
        session = self.session
        session.suggestions = []
        self.redraw()
        self.terminal.write(move_below(session.snapshot))
        session.buffer.reset()
        session.history.reset_index()
        session.snapshot = RenderSnapshot()
        self._new_prompt()

    def _report(self, task: ForegroundTask) -> None:
        if task.token.cancelled:
            self.terminal.write("\r\n")
        if task.error is not None:
            if not isinstance(task.error, CancellationError):
                self._write_output(format_error(task.error) + "\n")
        else:
            text = format_result(task.result)
            if text:
                self._write_output(text if text.endswith("\n") else text + "\n")
        self._new_prompt()

    # -- idle checking ------------------------------------------------------

    def _check_when_idle(self, now: float) -> None:
        if self._idle_sent or self.tasks.state != "idle":
            return
        if now - self._last_input < self.config.idle_check_ms / 1000 or self.reader.has_lookahead():
            return
        text = self.session.buffer.text
        self._idle_sent = True
        if text.strip():
            self.checker.offer(text)

    # -- output -------------------------------------------------------------

    def _write_output(self, text: str) -> None:
        self.terminal.write(crlf(text))

    def _highlight(self, text: str) -> str:
        return colorize(text, self.evaluator.tokenize(text), self.theme)

    def _new_prompt(self) -> None:
        self.session.prompt = expand_prompt(self.config.prompt, self.state)
        self.session.snapshot = RenderSnapshot()
        self.redraw()

    @property
    def terminal_handed_over(self) -> bool:
        return self._runner is not None and self._runner.owns_terminal

    def redraw(self) -> None:
        if self.terminal_handed_over:
            return
        session = self.session
        out, session.snapshot = render(
            session.prompt,
            session.buffer.text,
            session.buffer.cursor_index,
            session.suggestions,
            session.snapshot,
            session.width,
            self._highlight,
        )
        self.terminal.write(out)
        self._dirty = False
