"""Context-aware suggestions computed from the syntax tree at the cursor.

``find_suggestions`` locates the deepest node whose span contains the cursor
and dispatches on its kind. Candidates are returned in discovery order; the
editor sorts them for display.
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, replace
from typing import Any

from linesh.lang.ast import (
    AbsolutePathLiteral,
    Block,
    CallExpression,
    Chunk,
    ForStatement,
    GlobalVariable,
    HostLiteral,
    IdentifierLiteral,
    IdentifierMemberExpression,
    MemberExpression,
    Node,
    PatternIdentifierLiteral,
    PatternNamespaceIdentifierLiteral,
    PatternNamespaceMemberExpression,
    RelativePathLiteral,
    SchemeLiteral,
    Span,
    TraversalAction,
    URLLiteral,
    Variable,
    WalkStatement,
    is_scope_container,
    walk,
)
from linesh.lang.state import EvalState, FileSystem
from linesh.lang.values import get_prop, property_names

logger = logging.getLogger(__name__)

STATEMENT_KEYWORDS = ("if", "for", "walk", "return", "assert")
LOOP_KEYWORDS = ("break", "continue")
WALK_KEYWORDS = ("prune",)
EXPRESSION_KEYWORDS = ("true", "false", "nil")

LOCALHOST_SCHEMES = ("http", "https", "file", "ws", "wss")


def _has_prefix(name: str, prefix: str) -> bool:
    """Case-insensitive prefix test used for names and keywords."""
    return name.lower().startswith(prefix.lower())


@dataclass(frozen=True)
class Suggestion:
    """A completion candidate.

    ``span`` is the range of the input replaced by ``value``; ``None``
    stands for the span of the node at the cursor.
    """

    shown_string: str
    value: str
    span: Span | None = None


@dataclass
class _NodeAtCursor:
    node: Node
    parent: Node | None
    ancestors: list[Node]
    deepest_call: CallExpression | None


def _locate(chunk: Chunk, cursor: int) -> _NodeAtCursor | None:
    found: _NodeAtCursor | None = None

    def visit(node: Node, parent: Node | None, ancestors: list[Node]) -> TraversalAction:
        nonlocal found
        if not node.span.contains(cursor):
            return "prune"
        if found is not None and not node.span.included_in(found.node.span):
            return "continue"

        deepest_call = found.deepest_call if found is not None else None
        if isinstance(parent, (IdentifierMemberExpression, MemberExpression, PatternNamespaceMemberExpression)):
            # complete over the whole access chain, not the bare name
            node = parent
            parent = ancestors[-2] if len(ancestors) > 1 else None
            ancestors = ancestors[:-1]
        if isinstance(node, CallExpression):
            deepest_call = node
        found = _NodeAtCursor(node, parent, list(ancestors), deepest_call)
        return "continue"

    walk(chunk, visit)
    return found


def find_suggestions(state: EvalState, chunk: Chunk, cursor: int) -> list[Suggestion]:
    """Suggestions for the input parsed as *chunk* with the cursor at *cursor*."""
    at = _locate(chunk, cursor)
    if at is None:
        return []

    node = at.node
    match node:
        case PatternIdentifierLiteral():
            suggestions = _pattern_suggestions(state, node.name)
        case PatternNamespaceIdentifierLiteral():
            suggestions = _namespace_member_suggestions(state, node.name, "")
        case PatternNamespaceMemberExpression():
            suggestions = _namespace_member_suggestions(state, node.namespace.name, node.member_name.name)
        case Variable():
            suggestions = [
                Suggestion(name, "$" + name) for name in state.local_scope if _has_prefix(name, node.name)
            ]
        case GlobalVariable():
            suggestions = [
                Suggestion(name, "$$" + name) for name in state.globals if _has_prefix(name, node.name)
            ]
        case IdentifierLiteral():
            suggestions = _identifier_suggestions(state, node, at)
        case IdentifierMemberExpression():
            suggestions = _identifier_member_suggestions(state, node)
        case MemberExpression():
            suggestions = _member_suggestions(state, node)
        case CallExpression():
            # the call itself is at the cursor only outside of its arguments
            suggestions = _new_argument_suggestions(state, node, cursor)
        case RelativePathLiteral(raw=raw) | AbsolutePathLiteral(raw=raw):
            suggestions = find_path_suggestions(state.filesystem, raw)
        case URLLiteral(value=value):
            suggestions = _url_suggestions(state, value)
        case HostLiteral(value=value):
            suggestions = find_host_suggestions(state, value)
        case SchemeLiteral(name=name):
            suggestions = find_host_suggestions(state, name + "://")
        case _:
            suggestions = []

    result: list[Suggestion] = []
    seen: set[Suggestion] = set()
    for suggestion in suggestions:
        if suggestion.span is None:
            suggestion = replace(suggestion, span=node.span)
        if suggestion not in seen:
            seen.add(suggestion)
            result.append(suggestion)
    return result


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


def _pattern_suggestions(state: EvalState, prefix: str) -> list[Suggestion]:
    suggestions = [
        Suggestion(f"%{name}", f"%{name}") for name in state.patterns if _has_prefix(name, prefix)
    ]
    suggestions.extend(
        Suggestion(f"%{name}.", f"%{name}.") for name in state.pattern_namespaces if _has_prefix(name, prefix)
    )
    return suggestions


def _namespace_member_suggestions(state: EvalState, namespace_name: str, prefix: str) -> list[Suggestion]:
    namespace = state.pattern_namespaces.get(namespace_name)
    if namespace is None:
        return []
    return [
        Suggestion(f"%{namespace_name}.{name}", f"%{namespace_name}.{name}")
        for name in namespace.patterns
        if _has_prefix(name, prefix)
    ]


# ---------------------------------------------------------------------------
# Identifiers and keywords
# ---------------------------------------------------------------------------


def _leading_identifiers(arguments: list[Node]) -> list[IdentifierLiteral]:
    chain: list[IdentifierLiteral] = []
    for arg in arguments:
        if not isinstance(arg, IdentifierLiteral):
            break
        chain.append(arg)
    return chain


def _subcommand_suggestions(state: EvalState, ident: IdentifierLiteral, call: CallExpression) -> list[Suggestion]:
    if not isinstance(call.callee, IdentifierLiteral):
        return []
    typed = _leading_identifiers(call.arguments)
    arg_index = next((i for i, arg in enumerate(typed) if arg is ident), -1)
    if arg_index < 0:
        return []
    before = tuple(arg.name for arg in typed[:arg_index])

    suggestions = []
    for perm in state.command_permissions(call.callee.name):
        if len(perm.chain) <= arg_index or perm.chain[:arg_index] != before:
            continue
        name = perm.chain[arg_index]
        if name.startswith(ident.name):
            suggestions.append(Suggestion(name, name))
    return suggestions


def _identifier_suggestions(state: EvalState, ident: IdentifierLiteral, at: _NodeAtCursor) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    prefix = ident.name

    if at.deepest_call is not None:
        suggestions.extend(_subcommand_suggestions(state, ident, at.deepest_call))

    suggestions.extend(Suggestion(name, name) for name in state.local_scope if _has_prefix(name, prefix))
    suggestions.extend(Suggestion(name, name) for name in state.globals if _has_prefix(name, prefix))

    # keywords that only make sense in the block of a loop or a walk
    for ancestor in reversed(at.ancestors):
        if is_scope_container(ancestor):
            break
        if not isinstance(at.parent, Block):
            continue
        if isinstance(ancestor, ForStatement):
            keywords = LOOP_KEYWORDS
        elif isinstance(ancestor, WalkStatement):
            keywords = WALK_KEYWORDS
        else:
            continue
        suggestions.extend(Suggestion(k, k) for k in keywords if _has_prefix(k, prefix))

    if isinstance(at.parent, (Block, Chunk)):
        suggestions.extend(Suggestion(k, k) for k in STATEMENT_KEYWORDS if _has_prefix(k, prefix))

    suggestions.extend(Suggestion(k, k) for k in EXPRESSION_KEYWORDS if _has_prefix(k, prefix))
    return suggestions


def _new_argument_suggestions(state: EvalState, call: CallExpression, cursor: int) -> list[Suggestion]:
    if not isinstance(call.callee, IdentifierLiteral):
        return []
    typed = tuple(arg.name for arg in _leading_identifiers(call.arguments) if arg.span.end <= cursor)
    span = Span(cursor, cursor + 1)

    suggestions = []
    for perm in state.command_permissions(call.callee.name):
        if len(perm.chain) <= len(typed) or perm.chain[: len(typed)] != typed:
            continue
        name = perm.chain[len(typed)]
        suggestions.append(Suggestion(name, name, span))
    return suggestions


# ---------------------------------------------------------------------------
# Member access
# ---------------------------------------------------------------------------


def _property_suggestions(base: str, value: Any, typed: list[str], last_present: bool) -> list[Suggestion]:
    """Resolve the typed chain on *value* and list matching property paths.

    When *last_present* the final name of *typed* is a prefix still being
    typed; intermediate names must all exist.
    """
    intermediates = typed[:-1] if last_present else typed
    prefix = typed[-1] if last_present else ""

    path = base
    for name in intermediates:
        if name not in property_names(value):
            return []
        value = get_prop(value, name)
        path += "." + name

    return [
        Suggestion(f"{path}.{name}", f"{path}.{name}") for name in property_names(value) if _has_prefix(name, prefix)
    ]


def _identifier_member_suggestions(state: EvalState, node: IdentifierMemberExpression) -> list[Suggestion]:
    value, found = state.lookup(node.left.name)
    if not found:
        return []
    typed = [p.name for p in node.property_names]
    return _property_suggestions(node.left.name, value, typed, not node.unterminated)


def _member_suggestions(state: EvalState, node: MemberExpression) -> list[Suggestion]:
    last_present = node.property_name is not None
    typed: list[str] = [node.property_name.name] if node.property_name is not None else []

    left = node.left
    while isinstance(left, MemberExpression):
        if left.property_name is None:
            return []
        typed.insert(0, left.property_name.name)
        left = left.left

    match left:
        case Variable(name=name):
            if name not in state.local_scope:
                return []
            return _property_suggestions("$" + name, state.local_scope[name], typed, last_present)
        case GlobalVariable(name=name):
            if name not in state.globals:
                return []
            return _property_suggestions("$$" + name, state.globals[name], typed, last_present)
    return []


# ---------------------------------------------------------------------------
# Paths, URLs and hosts
# ---------------------------------------------------------------------------


def find_path_suggestions(fs: FileSystem, raw: str) -> list[Suggestion]:
    """Entries of the typed directory whose name starts with the typed base
    name. Directories get a trailing ``/``."""
    directory = posixpath.dirname(raw) or "."
    base = posixpath.basename(raw)

    try:
        entries = fs.list_dir(directory)
    except OSError as exc:
        logger.debug("cannot list %s for completion: %s", directory, exc)
        return []

    suggestions = []
    for entry in entries:
        if not entry.name.startswith(base):
            continue
        path = posixpath.join(directory, entry.name)
        if not path.startswith(("/", "./", "../")):
            path = "./" + path
        if entry.is_dir:
            path += "/"
        suggestions.append(Suggestion(entry.name, path))
    return suggestions


def find_host_suggestions(state: EvalState, prefix: str) -> list[Suggestion]:
    suggestions = [Suggestion(host, host) for host in state.hosts if host.startswith(prefix)]

    scheme, sep, real_host = prefix.partition("://")
    if sep and scheme in LOCALHOST_SCHEMES and real_host and "localhost".startswith(real_host):
        localhost = f"{scheme}://localhost"
        suggestions.append(Suggestion(localhost, localhost))
    return suggestions


def _url_suggestions(state: EvalState, url: str) -> list[Suggestion]:
    scheme, _, rest = url.partition("://")
    if scheme != "file" or not rest.startswith("/"):
        return []
    return [
        Suggestion(s.shown_string, "file://" + s.value) for s in find_path_suggestions(state.filesystem, rest)
    ]
