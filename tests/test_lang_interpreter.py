"""Tests for the checker, the interpreter and the builtins."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from linesh.errors import CancellationError, CheckError, EvalError, PermissionDeniedError
from linesh.lang import (
    BUILTIN_COMMANDS,
    CancellationToken,
    CommandPermission,
    EvalState,
    Evaluator,
    ExternalCommand,
    LocalFileSystem,
    Pattern,
    PatternNamespace,
)
from linesh.lang.values import PathValue


@pytest.fixture
def state(tmp_path) -> EvalState:
    return EvalState(filesystem=LocalFileSystem(str(tmp_path)))


@pytest.fixture
def evaluator(state) -> Evaluator:
    return Evaluator(state)


async def run(evaluator: Evaluator, source: str, token: CancellationToken | None = None) -> Any:
    chunk = evaluator.parse(source)
    evaluator.check(chunk)
    return await evaluator.evaluate(chunk, token)


# ---------------------------------------------------------------------------
# Static checks
# ---------------------------------------------------------------------------


class TestCheck:
    def test_undeclared_local(self, evaluator):
        with pytest.raises(CheckError, match="local variable 'x' is not declared"):
            evaluator.check(evaluator.parse("print $x"))

    def test_assignment_declares_local(self, evaluator):
        evaluator.check(evaluator.parse("x = 1; print $x"))

    def test_for_declares_its_variables(self, evaluator):
        evaluator.check(evaluator.parse("for k, v in {a: 1} { print $k $v }"))

    def test_undeclared_global(self, evaluator):
        with pytest.raises(CheckError, match="global variable 'g' is not declared"):
            evaluator.check(evaluator.parse("print $$g"))

    def test_constant_cannot_be_shadowed(self, evaluator):
        with pytest.raises(CheckError, match="constant"):
            evaluator.check(evaluator.parse("print = 1"))

    def test_break_outside_loop(self, evaluator):
        with pytest.raises(CheckError, match="'break' outside"):
            evaluator.check(evaluator.parse("break"))

    def test_prune_outside_walk(self, evaluator):
        with pytest.raises(CheckError, match="'prune' outside"):
            evaluator.check(evaluator.parse("for [] { prune }"))

    def test_unknown_pattern(self, evaluator):
        with pytest.raises(CheckError, match="'%nope' is not defined"):
            evaluator.check(evaluator.parse("(1 match %nope)"))

    def test_unreachable_code_is_a_warning(self, evaluator):
        data = evaluator.check(evaluator.parse("return 1; len([])"))
        assert any("unreachable" in w for w in data.warnings)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


class TestExpressions:
    @pytest.mark.asyncio
    async def test_arithmetic(self, evaluator):
        assert await run(evaluator, "(1 + 2)") == 3
        assert await run(evaluator, "(7 / 2)") == 3
        assert await run(evaluator, "(7.0 / 2)") == 3.5
        assert await run(evaluator, "(2 * 3)") == 6

    @pytest.mark.asyncio
    async def test_division_by_zero(self, evaluator):
        with pytest.raises(EvalError, match="division by zero"):
            await run(evaluator, "(1 / 0)")

    @pytest.mark.asyncio
    async def test_concatenation(self, evaluator):
        assert await run(evaluator, '("a" + "b")') == "ab"
        assert await run(evaluator, "([1] + [2])") == [1, 2]

    @pytest.mark.asyncio
    async def test_equality_is_strict_about_types(self, evaluator):
        assert await run(evaluator, "(1 == 1)") is True
        assert await run(evaluator, "(1 == 1.0)") is False
        assert await run(evaluator, '(1 != "1")') is True

    @pytest.mark.asyncio
    async def test_logical_operators_short_circuit(self, evaluator):
        assert await run(evaluator, "(false and len(1))") is False
        assert await run(evaluator, "(true or len(1))") is True

    @pytest.mark.asyncio
    async def test_unsupported_operand(self, evaluator):
        with pytest.raises(EvalError, match="not supported"):
            await run(evaluator, '(1 - "a")')

    @pytest.mark.asyncio
    async def test_objects_and_members(self, evaluator, state):
        state.globals["obj"] = {"a": {"b": 7}}
        assert await run(evaluator, "obj.a.b") == 7
        assert await run(evaluator, "{x: 1, y: [true, nil]}") == {"x": 1, "y": [True, None]}
        with pytest.raises(EvalError, match="no property 'zz'"):
            await run(evaluator, "obj.zz")

    @pytest.mark.asyncio
    async def test_undeclared_identifier(self, evaluator):
        with pytest.raises(EvalError, match="'nope' is not declared"):
            await run(evaluator, "nope")

    @pytest.mark.asyncio
    async def test_patterns(self, evaluator, state):
        assert await run(evaluator, "(1 match %int)") is True
        assert await run(evaluator, '("a" match %int)') is False
        state.register_pattern_namespace(PatternNamespace("num", {"small": Pattern("small", lambda v: v < 10)}))
        assert await run(evaluator, "(3 match %num.small)") is True

    @pytest.mark.asyncio
    async def test_literal_kinds(self, evaluator):
        path = await run(evaluator, "./a/")
        assert isinstance(path, PathValue)
        assert path.is_dir_path()
        assert await run(evaluator, "https://") == "https://"


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


class TestStatements:
    @pytest.mark.asyncio
    async def test_if_else(self, evaluator):
        assert await run(evaluator, "if (1 < 2) { return 1 } else { return 2 }") == 1
        assert await run(evaluator, "if (1 > 2) { return 1 } else { return 2 }") == 2

    @pytest.mark.asyncio
    async def test_if_needs_a_boolean(self, evaluator):
        with pytest.raises(EvalError, match="boolean"):
            await run(evaluator, "if 1 { }")

    @pytest.mark.asyncio
    async def test_for_over_list(self, evaluator):
        source = "total = 0; for v in [1, 2, 3] { total = ($total + $v) }; return $total"
        assert await run(evaluator, source) == 6

    @pytest.mark.asyncio
    async def test_for_over_object_keys(self, evaluator):
        source = "keys = []; for k, v in {a: 1, b: 2} { keys = ($keys + [$k]) }; return $keys"
        assert await run(evaluator, source) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_break_and_continue(self, evaluator):
        source = "n = 0; for i in 10 { if ($i == 3) { break }; n = ($n + 1) }; return $n"
        assert await run(evaluator, source) == 3
        source = "n = 0; for i in 5 { if ($i == 1) { continue }; n = ($n + 1) }; return $n"
        assert await run(evaluator, source) == 4

    @pytest.mark.asyncio
    async def test_cannot_iterate_bool(self, evaluator):
        with pytest.raises(EvalError, match="cannot iterate"):
            await run(evaluator, "for true { }")

    @pytest.mark.asyncio
    async def test_globals_and_locals_persist(self, evaluator, state):
        await run(evaluator, "$$g = 5")
        assert state.globals["g"] == 5
        await run(evaluator, "x = 1")
        assert await run(evaluator, "$x") == 1

    @pytest.mark.asyncio
    async def test_last_expression_is_the_result(self, evaluator):
        assert await run(evaluator, "x = 2; ($x * 5)") == 10
        assert await run(evaluator, "x = 3") is None

    @pytest.mark.asyncio
    async def test_walk_and_prune(self, evaluator, tmp_path):
        (tmp_path / "a.txt").write_text("")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.txt").write_text("")

        source = "found = []; walk ./ e { found = ($found + [$e]) }; return $found"
        assert await run(evaluator, source) == ["./", "./a.txt", "./sub/", "./sub/b.txt"]

        source = "found = []; walk ./ e { if ($e == ./sub/) { prune }; found = ($found + [$e]) }; return $found"
        assert await run(evaluator, source) == ["./", "./a.txt"]

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_first_statement(self, evaluator, state):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancellationError):
            await run(evaluator, "$$g = 1", token)
        assert "g" not in state.globals

    @pytest.mark.asyncio
    async def test_busy_loop_yields_to_the_event_loop(self, evaluator):
        token = CancellationToken()
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        ticking = asyncio.create_task(ticker())
        evaluation = asyncio.create_task(run(evaluator, "for i in 1000000000 { x = $i }", token))
        try:
            await asyncio.sleep(0.05)
            assert ticks > 10
            token.cancel()
            with pytest.raises(CancellationError):
                await asyncio.wait_for(evaluation, timeout=1)
        finally:
            ticking.cancel()

    @pytest.mark.asyncio
    async def test_checkpoint_yields_before_checking(self):
        token = CancellationToken()
        asyncio.get_running_loop().call_soon(token.cancel)
        with pytest.raises(CancellationError):
            await token.checkpoint()


# ---------------------------------------------------------------------------
# Builtins
# ---------------------------------------------------------------------------


class TestBuiltins:
    @pytest.mark.asyncio
    async def test_print_writes_through_state(self, evaluator, state):
        written: list[str] = []
        state.write = written.append
        assert await run(evaluator, 'print "a" 1 [2]') is None
        assert written == ["a 1 [2]\n"]

    @pytest.mark.asyncio
    async def test_len(self, evaluator):
        assert await run(evaluator, 'len("abc")') == 3
        with pytest.raises(EvalError, match="expected 1 argument"):
            await run(evaluator, "len()")

    @pytest.mark.asyncio
    async def test_sleep_rejects_non_numbers(self, evaluator):
        with pytest.raises(EvalError, match="duration"):
            await run(evaluator, 'sleep "1"')

    @pytest.mark.asyncio
    async def test_ls(self, evaluator, tmp_path):
        (tmp_path / "b.txt").write_text("")
        (tmp_path / "a").mkdir()
        assert await run(evaluator, "ls ./") == ["./a/", "./b.txt"]
        assert await run(evaluator, "ls ./a/") == []

    @pytest.mark.asyncio
    async def test_cd_and_pwd(self, evaluator, state, tmp_path):
        (tmp_path / "sub").mkdir()
        state.define_constant("cd", BUILTIN_COMMANDS["cd"])
        state.define_constant("pwd", BUILTIN_COMMANDS["pwd"])
        await run(evaluator, "cd ./sub")
        assert await run(evaluator, "pwd()") == f"{tmp_path}/sub/"
        with pytest.raises(EvalError, match="not a directory"):
            await run(evaluator, "cd ./missing")

    @pytest.mark.asyncio
    async def test_not_callable(self, evaluator, state):
        state.globals["n"] = 1
        with pytest.raises(EvalError, match="not callable"):
            await run(evaluator, "n 2")


class TestExternalCommands:
    @pytest.fixture
    def calls(self, state) -> list[tuple[str, list[str]]]:
        recorded: list[tuple[str, list[str]]] = []

        async def runner(name: str, argv: list[str], token: CancellationToken) -> int:
            recorded.append((name, argv))
            return 0

        state.define_constant("git", ExternalCommand("git"))
        state.command_runner = runner
        return recorded

    @pytest.mark.asyncio
    async def test_subcommand_chain_and_arguments(self, evaluator, state, calls):
        state.permissions = [CommandPermission.parse("git log")]
        await run(evaluator, 'git log "-n" 3 true')
        assert calls == [("git", ["log", "-n", "3", "true"])]

    @pytest.mark.asyncio
    async def test_missing_permission(self, evaluator, state, calls):
        state.permissions = [CommandPermission.parse("git log")]
        with pytest.raises(PermissionDeniedError, match="'git push'"):
            await run(evaluator, "git push")
        assert calls == []

    @pytest.mark.asyncio
    async def test_bare_permission_allows_everything(self, evaluator, state, calls):
        state.permissions = [CommandPermission.parse("git")]
        await run(evaluator, "git push origin")
        assert calls == [("git", ["push", "origin"])]

    @pytest.mark.asyncio
    async def test_only_simple_values_are_passed(self, evaluator, state, calls):
        state.permissions = [CommandPermission.parse("git")]
        with pytest.raises(EvalError, match="list values cannot be passed"):
            await run(evaluator, "git log [1]")

    @pytest.mark.asyncio
    async def test_without_runner(self, evaluator, state):
        state.define_constant("git", ExternalCommand("git"))
        state.permissions = [CommandPermission.parse("git")]
        with pytest.raises(EvalError, match="cannot be run"):
            await run(evaluator, "git status")
