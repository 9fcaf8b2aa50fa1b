"""Asynchronous tree-walk interpreter.

Evaluation runs as a coroutine so that it can share the event loop with the
editor. Before every statement and every loop iteration it yields to the
event loop and checks the ``CancellationToken``, so a busy loop never
starves input handling.
"""

from __future__ import annotations

import posixpath
from typing import Any, Iterable

from linesh.errors import AssertionFailure, EvalError
from linesh.lang.ast import (
    AbsolutePathLiteral,
    AssertionStatement,
    Assignment,
    BinaryExpression,
    Block,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    Chunk,
    ContinueStatement,
    FloatLiteral,
    ForStatement,
    GlobalVariable,
    HostLiteral,
    IdentifierLiteral,
    IdentifierMemberExpression,
    IfStatement,
    IntLiteral,
    ListLiteral,
    MemberExpression,
    NilLiteral,
    Node,
    ObjectLiteral,
    PatternIdentifierLiteral,
    PatternNamespaceIdentifierLiteral,
    PatternNamespaceMemberExpression,
    PruneStatement,
    RelativePathLiteral,
    ReturnStatement,
    SchemeLiteral,
    StringLiteral,
    URLLiteral,
    Variable,
    WalkStatement,
)
from linesh.lang.builtins import ExternalCommand
from linesh.lang.context import CallContext, CancellationToken
from linesh.lang.state import EvalState
from linesh.lang.values import (
    HostValue,
    Pattern,
    PathValue,
    URLValue,
    get_prop,
    type_name,
)


class _BreakSignal(Exception):
    pass


class _ContinueSignal(Exception):
    pass


class _PruneSignal(Exception):
    pass


class _ReturnSignal(Exception):
    def __init__(self, value: Any) -> None:
        super().__init__()
        self.value = value


class Interpreter:
    def __init__(self, state: EvalState, token: CancellationToken) -> None:
        self._state = state
        self._token = token
        self._ctx = CallContext(state, token)

    async def run(self, chunk: Chunk) -> Any:
        """Evaluate *chunk*.

        The result is the value of an executed ``return``, otherwise the value
        of the last statement when it is an expression, otherwise ``None``.
        """
        result: Any = None
        try:
            for stmt in chunk.statements:
                result = await self._exec(stmt)
        except _ReturnSignal as ret:
            return ret.value
        return result

    # -- statements ---------------------------------------------------------

    async def _exec_block(self, block: Block | None) -> None:
        if block is None:
            return
        for stmt in block.statements:
            await self._exec(stmt)

    async def _exec(self, node: Node) -> Any:  # noqa: C901
        await self._token.checkpoint()
        match node:
            case Assignment(left=left, right=right):
                value = await self._eval(right)
                match left:
                    case GlobalVariable(name=name):
                        self._state.set_global(name, value)
                    case IdentifierLiteral(name=name) | Variable(name=name):
                        if self._state.is_constant(name):
                            raise EvalError(f"'{name}' is a constant global and cannot be shadowed")
                        self._state.local_scope[name] = value
                return None
            case IfStatement():
                test = await self._eval(node.test)
                if not isinstance(test, bool):
                    raise EvalError(f"if condition should be a boolean, not a(n) {type_name(test)}")
                await self._exec_block(node.consequent if test else node.alternate)
                return None
            case ForStatement():
                await self._exec_for(node)
                return None
            case WalkStatement():
                await self._exec_walk(node)
                return None
            case BreakStatement():
                raise _BreakSignal()
            case ContinueStatement():
                raise _ContinueSignal()
            case PruneStatement():
                raise _PruneSignal()
            case ReturnStatement(value=value):
                raise _ReturnSignal(await self._eval(value) if value is not None else None)
            case AssertionStatement():
                ok = await self._eval(node.expr)
                if ok is not True:
                    raise AssertionFailure(node.source, ok)
                return None
        return await self._eval(node)

    async def _exec_for(self, node: ForStatement) -> None:
        iterated = await self._eval(node.iterated)
        pairs: Iterable[tuple[Any, Any]]
        match iterated:
            case list():
                pairs = list(enumerate(iterated))
            case dict():
                pairs = list(iterated.items())
            case str():
                pairs = list(enumerate(iterated))
            case int() if not isinstance(iterated, bool):
                pairs = ((i, i) for i in range(iterated))
            case _:
                raise EvalError(f"cannot iterate over a(n) {type_name(iterated)}")

        scope = self._state.local_scope
        for key, value in pairs:
            await self._token.checkpoint()
            if node.key_ident is not None:
                scope[node.key_ident.name] = key
            if node.value_ident is not None:
                scope[node.value_ident.name] = value
            try:
                await self._exec_block(node.body)
            except _ContinueSignal:
                continue
            except _BreakSignal:
                break

    async def _exec_walk(self, node: WalkStatement) -> None:
        walked = await self._eval(node.walked)
        if not isinstance(walked, PathValue) or not walked.is_dir_path():
            raise EvalError(f"walk expects a directory path, not a(n) {type_name(walked)}")
        fs = self._state.filesystem

        async def visit(path: PathValue) -> None:
            await self._token.checkpoint()
            if node.entry_ident is not None:
                self._state.local_scope[node.entry_ident.name] = path
            try:
                await self._exec_block(node.body)
            except _PruneSignal:
                return
            except _ContinueSignal:
                pass
            if path.is_dir_path():
                try:
                    entries = fs.list_dir(path)
                except OSError as exc:
                    raise EvalError(f"walk: cannot list {path}: {exc.strerror or exc}") from exc
                for entry in entries:
                    child = posixpath.join(path, entry.name) + ("/" if entry.is_dir else "")
                    await visit(PathValue(child))

        await visit(walked)

    # -- expressions --------------------------------------------------------

    async def _eval(self, node: Node | None) -> Any:  # noqa: C901
        if node is None:
            raise EvalError("missing expression")
        match node:
            case IntLiteral(value=v) | FloatLiteral(value=v) | BooleanLiteral(value=v):
                return v
            case StringLiteral(value=v):
                return v
            case NilLiteral():
                return None
            case RelativePathLiteral(raw=raw) | AbsolutePathLiteral(raw=raw):
                return PathValue(raw)
            case URLLiteral(value=v):
                return URLValue(v)
            case HostLiteral(value=v):
                return HostValue(v)
            case SchemeLiteral(name=name):
                return f"{name}://"
            case ListLiteral(elements=elements):
                return [await self._eval(e) for e in elements]
            case ObjectLiteral(properties=properties):
                return {p.name: await self._eval(p.value) for p in properties}
            case IdentifierLiteral(name=name):
                value, found = self._state.lookup(name)
                if not found:
                    raise EvalError(f"'{name}' is not declared")
                return value
            case Variable(name=name):
                if name not in self._state.local_scope:
                    raise EvalError(f"local variable '{name}' is not declared")
                return self._state.local_scope[name]
            case GlobalVariable(name=name):
                if name not in self._state.globals:
                    raise EvalError(f"global variable '{name}' is not declared")
                return self._state.globals[name]
            case PatternIdentifierLiteral(name=name):
                if name not in self._state.patterns:
                    raise EvalError(f"named pattern '%{name}' is not defined")
                return self._state.patterns[name]
            case PatternNamespaceIdentifierLiteral(name=name):
                if name not in self._state.pattern_namespaces:
                    raise EvalError(f"pattern namespace '%{name}.' is not defined")
                return self._state.pattern_namespaces[name]
            case PatternNamespaceMemberExpression():
                namespace = await self._eval(node.namespace)
                return get_prop(namespace, node.member_name.name)
            case IdentifierMemberExpression():
                if node.unterminated:
                    raise EvalError("unterminated member expression")
                value = await self._eval(node.left)
                for prop in node.property_names:
                    value = get_prop(value, prop.name)
                return value
            case MemberExpression(property_name=None):
                raise EvalError("unterminated member expression")
            case MemberExpression(left=left, property_name=prop):
                return get_prop(await self._eval(left), prop.name)
            case CallExpression():
                return await self._eval_call(node)
            case BinaryExpression():
                return await self._eval_binary(node)
        raise EvalError(f"{type(node).__name__} cannot be evaluated here")

    async def _eval_call(self, node: CallExpression) -> Any:
        callee = await self._eval(node.callee)
        if isinstance(callee, ExternalCommand):
            chain: list[str] = []
            args = list(node.arguments)
            while args and isinstance(args[0], IdentifierLiteral):
                chain.append(args.pop(0).name)
            values = [await self._eval(a) for a in args]
            return await callee.call(self._ctx, tuple(chain), values)

        call = getattr(callee, "call", None)
        if call is None:
            raise EvalError(f"a(n) {type_name(callee)} is not callable")
        values = [await self._eval(a) for a in node.arguments]
        await self._token.checkpoint()
        return await call(self._ctx, values)

    async def _eval_binary(self, node: BinaryExpression) -> Any:  # noqa: C901
        left = await self._eval(node.left)
        op = node.operator

        if op in ("and", "or"):
            if not isinstance(left, bool):
                raise EvalError(f"'{op}' expects booleans, got a(n) {type_name(left)}")
            if (op == "and" and not left) or (op == "or" and left):
                return left
            right = await self._eval(node.right)
            if not isinstance(right, bool):
                raise EvalError(f"'{op}' expects booleans, got a(n) {type_name(right)}")
            return right

        right = await self._eval(node.right)
        match op:
            case "match":
                if not isinstance(right, Pattern):
                    raise EvalError(f"right operand of 'match' should be a pattern, not a(n) {type_name(right)}")
                return right.test(left)
            case "==":
                return type(left) is type(right) and left == right
            case "!=":
                return not (type(left) is type(right) and left == right)

        if op == "+" and isinstance(left, str) and isinstance(right, str):
            return type(left)(left + right) if type(left) is type(right) else left + right
        if op == "+" and isinstance(left, list) and isinstance(right, list):
            return left + right

        for operand in (left, right):
            if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                raise EvalError(f"'{op}' is not supported for a(n) {type_name(operand)}")

        match op:
            case "+":
                return left + right
            case "-":
                return left - right
            case "*":
                return left * right
            case "/":
                if right == 0:
                    raise EvalError("division by zero")
                if isinstance(left, int) and isinstance(right, int):
                    return left // right
                return left / right
            case "<":
                return left < right
            case "<=":
                return left <= right
            case ">":
                return left > right
            case ">=":
                return left >= right
        raise EvalError(f"unknown operator '{op}'")
