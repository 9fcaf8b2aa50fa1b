"""Configuration of a REPL session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from linesh.errors import ConfigurationError
from linesh.keybindings import KeybindingsConfig, validate_keybindings
from linesh.lang import BUILTIN_COMMANDS, BUILTINS, CommandPermission


@dataclass
class ReplConfig:
    """Session configuration.

    ``prompt`` may contain the ``{pwd}``, ``{whoami}`` and ``{hostname}``
    placeholders, expanded before each prompt is drawn.
    """

    prompt: str = "{pwd}> "
    builtin_commands: list[str] = field(default_factory=list)
    trusted_commands: list[str] = field(default_factory=list)
    additional_globals: dict[str, Any] = field(default_factory=dict)
    permissions: list[CommandPermission] = field(default_factory=list)
    handle_signals: bool = True
    light_theme: bool = False
    idle_check_ms: int = 500
    poll_interval_ms: float = 0.5
    input_queue_size: int = 4096
    default_term_width: int = 80
    keybindings: KeybindingsConfig = field(default_factory=dict)

    def validate(self) -> None:
        """Raise ``ConfigurationError`` describing the first invalid setting."""
        for name in self.builtin_commands:
            if name not in BUILTIN_COMMANDS:
                known = ", ".join(sorted(BUILTIN_COMMANDS))
                raise ConfigurationError(f"unknown builtin command {name!r} (known: {known})")

        for attr in ("idle_check_ms", "poll_interval_ms", "input_queue_size", "default_term_width"):
            if getattr(self, attr) <= 0:
                raise ConfigurationError(f"{attr} must be positive, got {getattr(self, attr)!r}")

        validate_keybindings(self.keybindings)

        constants = set(BUILTINS) | set(self.builtin_commands)
        for name in self.additional_globals:
            if name in constants:
                raise ConfigurationError(f"global {name!r} would redefine a builtin")

        defined = constants | set(self.additional_globals)
        for name in self.trusted_commands:
            if name in defined:
                raise ConfigurationError(f"trusted command {name!r} would shadow the global {name!r}")
