"""Runtime values of the shell language.

Most values are plain Python objects (``int``, ``float``, ``str``, ``bool``,
``None`` for ``nil``, ``list`` and ``dict`` for objects). Paths, URLs and hosts
are ``str`` subclasses so that they keep their literal kind, and patterns are
small predicate objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from linesh.errors import EvalError


class PathValue(str):
    """Filesystem path; a trailing ``/`` marks a directory path."""

    def is_dir_path(self) -> bool:
        return self.endswith("/")


class URLValue(str):
    pass


class HostValue(str):
    pass


@dataclass
class Pattern:
    name: str
    predicate: Callable[[Any], bool]

    def test(self, value: Any) -> bool:
        return self.predicate(value)

    def __str__(self) -> str:
        return f"%{self.name}"


@dataclass
class PatternNamespace:
    name: str
    patterns: dict[str, Pattern] = field(default_factory=dict)

    def property_names(self) -> list[str]:
        return list(self.patterns)

    def prop(self, name: str) -> Any:
        return self.patterns[name]

    def __str__(self) -> str:
        return f"%{self.name}."


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


DEFAULT_PATTERNS: dict[str, Pattern] = {
    "int": Pattern("int", _is_int),
    "float": Pattern("float", lambda v: isinstance(v, float)),
    "str": Pattern("str", lambda v: type(v) is str),
    "bool": Pattern("bool", lambda v: isinstance(v, bool)),
    "list": Pattern("list", lambda v: isinstance(v, list)),
    "object": Pattern("object", lambda v: isinstance(v, dict)),
    "path": Pattern("path", lambda v: isinstance(v, PathValue)),
    "url": Pattern("url", lambda v: isinstance(v, URLValue)),
    "host": Pattern("host", lambda v: isinstance(v, HostValue)),
    "nil": Pattern("nil", lambda v: v is None),
}


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


def property_names(value: Any) -> list[str]:
    """Names of the properties of *value*, empty for values without any."""
    if isinstance(value, dict):
        return [str(k) for k in value]
    names = getattr(value, "property_names", None)
    if callable(names):
        return list(names())
    return []


def get_prop(value: Any, name: str) -> Any:
    if isinstance(value, dict):
        if name in value:
            return value[name]
    elif name in property_names(value):
        return value.prop(name)
    raise EvalError(f"{type_name(value)} has no property '{name}'")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def type_name(value: Any) -> str:
    match value:
        case None:
            return "nil"
        case bool():
            return "bool"
        case int():
            return "int"
        case float():
            return "float"
        case PathValue():
            return "path"
        case URLValue():
            return "url"
        case HostValue():
            return "host"
        case str():
            return "string"
        case list():
            return "list"
        case dict():
            return "object"
        case Pattern() | PatternNamespace():
            return "pattern"
    return getattr(value, "type_name", type(value).__name__)


def format_value(value: Any) -> str:
    """Render *value* the way it would be written in source."""
    match value:
        case None:
            return "nil"
        case bool():
            return "true" if value else "false"
        case PathValue() | URLValue() | HostValue():
            return str(value)
        case str():
            escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
            return f'"{escaped}"'
        case list():
            return "[" + ", ".join(format_value(v) for v in value) + "]"
        case dict():
            return "{" + ", ".join(f"{k}: {format_value(v)}" for k, v in value.items()) + "}"
    return str(value)


def is_simple_value(value: Any) -> bool:
    """Values that can be passed as arguments to an external process."""
    return value is not None and isinstance(value, (str, int, float, bool))
