"""linesh: terminal line-editing REPL with syntax-aware completion."""

# Completion
from linesh.completion import Suggestion, find_path_suggestions, find_suggestions

# Configuration
from linesh.config import ReplConfig

# Key decoding
from linesh.decoder import KeyDecoder, KeyEvent, decode

# Errors
from linesh.errors import (
    AssertionFailure,
    CancellationError,
    CheckError,
    ConfigurationError,
    EvalError,
    InputError,
    LineshError,
    ParseError,
    PermissionDeniedError,
)

# Editing state
from linesh.history import CommandHistory
from linesh.input_reader import InputReader
from linesh.keybindings import DEFAULT_KEYBINDINGS, EditorAction, KeybindingsManager
from linesh.line_buffer import LineBuffer

# Rendering
from linesh.render import RenderSnapshot, render

# REPL
from linesh.repl import Repl, Session
from linesh.tasks import ForegroundTask, ForegroundTaskCoordinator
from linesh.terminal import ProcessTerminal, Terminal

__all__ = [
    # Completion
    "Suggestion",
    "find_path_suggestions",
    "find_suggestions",
    # Configuration
    "ReplConfig",
    # Key decoding
    "DEFAULT_KEYBINDINGS",
    "EditorAction",
    "KeyDecoder",
    "KeyEvent",
    "KeybindingsManager",
    "decode",
    # Errors
    "AssertionFailure",
    "CancellationError",
    "CheckError",
    "ConfigurationError",
    "EvalError",
    "InputError",
    "LineshError",
    "ParseError",
    "PermissionDeniedError",
    # Editing state
    "CommandHistory",
    "InputReader",
    "LineBuffer",
    # Rendering
    "RenderSnapshot",
    "render",
    # REPL
    "ForegroundTask",
    "ForegroundTaskCoordinator",
    "ProcessTerminal",
    "Repl",
    "Session",
    "Terminal",
]
