"""Editor actions and the key ids bound to them."""

from __future__ import annotations

from typing import Literal, get_args

from linesh.errors import ConfigurationError
from linesh.keys import KeyId

EditorAction = Literal[
    # Cursor movement
    "left",
    "right",
    "home",
    "end",
    "wordLeft",
    "wordRight",
    # History
    "up",
    "down",
    # Deletion
    "deleteForward",
    "deleteBackward",
    "deleteWordBackward",
    "deleteWordForward",
    # Completion and submission
    "suggestComplete",
    "enter",
    # Control
    "stop",
    "escape",
]

EDITOR_ACTIONS: tuple[str, ...] = get_args(EditorAction)

KeybindingsConfig = dict[EditorAction, KeyId | list[KeyId]]

DEFAULT_KEYBINDINGS: dict[EditorAction, KeyId | list[KeyId]] = {
    "left": ["left", "ctrl+b"],
    "right": ["right", "ctrl+f"],
    "home": ["home", "ctrl+a"],
    "end": ["end", "ctrl+e"],
    "wordLeft": ["alt+left", "ctrl+left", "alt+b"],
    "wordRight": ["alt+right", "ctrl+right", "alt+f"],
    "up": "up",
    "down": "down",
    "deleteForward": ["delete", "ctrl+d"],
    "deleteBackward": "backspace",
    "deleteWordBackward": ["ctrl+w", "alt+backspace"],
    "deleteWordForward": ["alt+d", "ctrl+delete", "alt+delete"],
    "suggestComplete": "tab",
    "enter": "enter",
    "stop": "ctrl+c",
    "escape": ["escape", "alt+escape"],
}


class KeybindingsManager:
    """Resolves key ids to editor actions.

    Configured bindings replace the default keys of the actions they name;
    other actions keep their defaults.
    """

    def __init__(self, config: KeybindingsConfig | None = None) -> None:
        self._action_to_keys: dict[EditorAction, list[KeyId]] = {}
        self._key_to_action: dict[KeyId, EditorAction] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: KeybindingsConfig) -> None:
        validate_keybindings(config)
        self._action_to_keys.clear()
        self._key_to_action.clear()

        for action, keys in {**DEFAULT_KEYBINDINGS, **config}.items():
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)

        for action, keys in self._action_to_keys.items():
            for key in keys:
                self._key_to_action[key] = action

    def action_for(self, key: KeyId) -> EditorAction | None:
        return self._key_to_action.get(key)

    def get_keys(self, action: EditorAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

    def set_config(self, config: KeybindingsConfig) -> None:
        self._build_maps(config)


def validate_keybindings(config: KeybindingsConfig) -> None:
    for action in config:
        if action not in EDITOR_ACTIONS:
            raise ConfigurationError(f"unknown editor action in keybindings: {action!r}")
