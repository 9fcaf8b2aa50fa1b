"""Static checks run on a parsed chunk before it is evaluated."""

from __future__ import annotations

from dataclasses import dataclass, field

from linesh.errors import CheckError
from linesh.lang.ast import (
    Assignment,
    BreakStatement,
    Chunk,
    ContinueStatement,
    ForStatement,
    GlobalVariable,
    IdentifierLiteral,
    Node,
    PatternIdentifierLiteral,
    PatternNamespaceIdentifierLiteral,
    PatternNamespaceMemberExpression,
    PruneStatement,
    ReturnStatement,
    TraversalAction,
    Variable,
    WalkStatement,
    walk,
)
from linesh.lang.state import EvalState


@dataclass
class CheckData:
    warnings: list[str] = field(default_factory=list)


def check(chunk: Chunk, state: EvalState) -> CheckData:
    """Check *chunk* against *state*, raising ``CheckError`` on problems."""
    errors: list[str] = []
    data = CheckData()
    local_names = set(state.local_scope)
    global_names = set(state.globals)

    def located(node: Node, message: str) -> str:
        return f"{node.span.start}:{node.span.end}: {message}"

    def visit(node: Node, parent: Node | None, ancestors: list[Node]) -> TraversalAction:
        match node:
            case Assignment(left=IdentifierLiteral(name=name) | Variable(name=name)):
                if state.is_constant(name):
                    errors.append(located(node, f"'{name}' is a constant global and cannot be shadowed"))
                local_names.add(name)
            case Assignment(left=GlobalVariable(name=name)):
                if state.is_constant(name):
                    errors.append(located(node, f"cannot assign constant global '{name}'"))
                global_names.add(name)
            case ForStatement():
                for ident in (node.key_ident, node.value_ident):
                    if ident is not None:
                        local_names.add(ident.name)
            case WalkStatement(entry_ident=IdentifierLiteral(name=name)):
                local_names.add(name)
            case Variable(name=name) if name and name not in local_names:
                errors.append(located(node, f"local variable '{name}' is not declared"))
            case GlobalVariable(name=name) if name and name not in global_names:
                errors.append(located(node, f"global variable '{name}' is not declared"))
            case BreakStatement() | ContinueStatement():
                if not any(isinstance(a, ForStatement) for a in ancestors):
                    keyword = "break" if isinstance(node, BreakStatement) else "continue"
                    errors.append(located(node, f"'{keyword}' outside of a for statement"))
            case PruneStatement():
                if not any(isinstance(a, WalkStatement) for a in ancestors):
                    errors.append(located(node, "'prune' outside of a walk statement"))
            case PatternIdentifierLiteral(name=name) if name:
                if name not in state.patterns:
                    errors.append(located(node, f"named pattern '%{name}' is not defined"))
            case PatternNamespaceMemberExpression():
                namespace = state.pattern_namespaces.get(node.namespace.name)
                if namespace is None:
                    errors.append(located(node, f"pattern namespace '%{node.namespace.name}.' is not defined"))
                elif node.member_name.name not in namespace.patterns:
                    errors.append(
                        located(node, f"pattern '%{node.namespace.name}.{node.member_name.name}' is not defined")
                    )
                return "prune"
            case PatternNamespaceIdentifierLiteral(name=name):
                if name not in state.pattern_namespaces:
                    errors.append(located(node, f"pattern namespace '%{name}.' is not defined"))
        return "continue"

    walk(chunk, visit)

    for i, stmt in enumerate(chunk.statements[:-1]):
        if isinstance(stmt, ReturnStatement):
            data.warnings.append(located(chunk.statements[i + 1], "unreachable code after return"))
            break

    if errors:
        raise CheckError(errors)
    return data
