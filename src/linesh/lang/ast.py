"""Syntax tree of the shell language.

Every node is a small dataclass carrying a half-open ``Span`` of character
offsets into the source. The set of node classes is closed: consumers such as
the completion engine dispatch on them with ``match`` statements.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Callable, Iterator, Literal, Union

# ---------------------------------------------------------------------------
# Span
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` range of character offsets."""

    start: int
    end: int

    def contains(self, index: int) -> bool:
        """Inclusive on both ends: a cursor sitting right after a node is
        still considered to be "in" it."""
        return self.start <= index <= self.end

    def included_in(self, other: Span) -> bool:
        return other.start <= self.start and self.end <= other.end

    def __len__(self) -> int:
        return self.end - self.start


# ---------------------------------------------------------------------------
# Base node
# ---------------------------------------------------------------------------


@dataclass
class Node:
    span: Span


# ---------------------------------------------------------------------------
# Simple literals
# ---------------------------------------------------------------------------


@dataclass
class IdentifierLiteral(Node):
    name: str


@dataclass
class Variable(Node):
    """Local variable reference: ``$name``."""

    name: str


@dataclass
class GlobalVariable(Node):
    """Global variable reference: ``$$name``."""

    name: str


@dataclass
class PatternIdentifierLiteral(Node):
    """Named pattern: ``%name``."""

    name: str


@dataclass
class PatternNamespaceIdentifierLiteral(Node):
    """Pattern namespace followed by a dot and nothing else: ``%ns.``."""

    name: str


@dataclass
class PatternNamespaceMemberExpression(Node):
    """Pattern inside a namespace: ``%ns.member``."""

    namespace: PatternNamespaceIdentifierLiteral
    member_name: IdentifierLiteral


@dataclass
class IntLiteral(Node):
    value: int


@dataclass
class FloatLiteral(Node):
    value: float


@dataclass
class StringLiteral(Node):
    value: str
    raw: str


@dataclass
class BooleanLiteral(Node):
    value: bool


@dataclass
class NilLiteral(Node):
    pass


@dataclass
class RelativePathLiteral(Node):
    raw: str


@dataclass
class AbsolutePathLiteral(Node):
    raw: str


@dataclass
class URLLiteral(Node):
    value: str


@dataclass
class HostLiteral(Node):
    """Scheme and authority without a path: ``https://example.com``."""

    value: str


@dataclass
class SchemeLiteral(Node):
    """Scheme alone: ``https://``."""

    name: str


# ---------------------------------------------------------------------------
# Composite expressions
# ---------------------------------------------------------------------------


@dataclass
class ListLiteral(Node):
    elements: list[Node] = field(default_factory=list)


@dataclass
class ObjectProperty(Node):
    key: Union[IdentifierLiteral, StringLiteral]
    value: Node | None

    @property
    def name(self) -> str:
        if isinstance(self.key, IdentifierLiteral):
            return self.key.name
        return self.key.value


@dataclass
class ObjectLiteral(Node):
    properties: list[ObjectProperty] = field(default_factory=list)


@dataclass
class IdentifierMemberExpression(Node):
    """Member chain rooted at a bare identifier: ``obj.a.b``.

    ``unterminated`` is set when the chain ends with a dot (``obj.``).
    """

    left: IdentifierLiteral
    property_names: list[IdentifierLiteral] = field(default_factory=list)
    unterminated: bool = False


@dataclass
class MemberExpression(Node):
    """Single property access on any other expression: ``$obj.name``.

    ``property_name`` is ``None`` for a trailing dot (``$obj.``).
    """

    left: Node
    property_name: IdentifierLiteral | None


@dataclass
class CallExpression(Node):
    callee: Node
    arguments: list[Node] = field(default_factory=list)
    command_like: bool = False


BinaryOperator = Literal[
    "+", "-", "*", "/", "==", "!=", "<", "<=", ">", ">=", "and", "or", "match"
]


@dataclass
class BinaryExpression(Node):
    operator: BinaryOperator
    left: Node
    right: Node | None


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass
class Block(Node):
    statements: list[Node] = field(default_factory=list)


@dataclass
class Assignment(Node):
    left: Union[IdentifierLiteral, Variable, GlobalVariable]
    right: Node | None


@dataclass
class IfStatement(Node):
    test: Node | None
    consequent: Block | None
    alternate: Block | None = None


@dataclass
class ForStatement(Node):
    key_ident: IdentifierLiteral | None
    value_ident: IdentifierLiteral | None
    iterated: Node | None
    body: Block | None


@dataclass
class WalkStatement(Node):
    walked: Node | None
    entry_ident: IdentifierLiteral | None
    body: Block | None


@dataclass
class BreakStatement(Node):
    pass


@dataclass
class ContinueStatement(Node):
    pass


@dataclass
class PruneStatement(Node):
    pass


@dataclass
class ReturnStatement(Node):
    value: Node | None


@dataclass
class AssertionStatement(Node):
    expr: Node | None
    source: str = ""


@dataclass
class Chunk(Node):
    """Root of a parsed input."""

    statements: list[Node] = field(default_factory=list)
    source: str = ""


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

TraversalAction = Literal["continue", "prune", "stop"]

Visitor = Callable[[Node, "Node | None", list[Node]], TraversalAction]


def iter_children(node: Node) -> Iterator[Node]:
    """Yield the direct children of *node* in source order."""
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def walk(root: Node, visit: Visitor) -> None:
    """Depth-first pre-order traversal.

    *visit* receives ``(node, parent, ancestors)`` where ``ancestors`` runs
    from the root down to ``parent`` (excluded *node*). Returning ``"prune"``
    skips the node's descendants, ``"stop"`` ends the traversal.
    """

    def _walk(node: Node, parent: Node | None, ancestors: list[Node]) -> bool:
        action = visit(node, parent, ancestors)
        if action == "stop":
            return False
        if action == "prune":
            return True
        ancestors.append(node)
        try:
            for child in iter_children(node):
                if not _walk(child, node, ancestors):
                    return False
        finally:
            ancestors.pop()
        return True

    _walk(root, None, [])


def is_scope_container(node: Node) -> bool:
    return isinstance(node, Chunk)
