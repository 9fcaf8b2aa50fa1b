"""Tests for linesh.completion -- suggestions from the syntax tree at the cursor."""

from __future__ import annotations

import pytest

from linesh.completion import Suggestion, find_path_suggestions, find_suggestions
from linesh.lang import CommandPermission, EvalState, LocalFileSystem, Pattern, PatternNamespace, Span
from linesh.lang.parser import parse_chunk


def suggest(state: EvalState, text: str, cursor: int | None = None) -> list[Suggestion]:
    chunk, _ = parse_chunk(text)
    return find_suggestions(state, chunk, len(text) if cursor is None else cursor)


def by_shown(suggestions: list[Suggestion]) -> list[Suggestion]:
    return sorted(suggestions, key=lambda s: s.shown_string)


@pytest.fixture
def state(tmp_path) -> EvalState:
    return EvalState(filesystem=LocalFileSystem(str(tmp_path)))


# ---------------------------------------------------------------------------
# Member access
# ---------------------------------------------------------------------------


class TestMemberCompletion:
    def test_single_property(self, state):
        state.globals["obj"] = {"name": "linesh"}
        assert suggest(state, "obj.", 4) == [Suggestion("obj.name", "obj.name", Span(0, 4))]

    def test_prefix_filters_properties(self, state):
        state.globals["obj"] = {"name": 1, "nat": 2, "size": 3}
        values = [s.value for s in suggest(state, "obj.na")]
        assert values == ["obj.name", "obj.nat"]

    def test_nested_chain(self, state):
        state.globals["obj"] = {"a": {"b": 1, "c": 2}}
        values = [s.value for s in suggest(state, "obj.a.")]
        assert values == ["obj.a.b", "obj.a.c"]

    def test_missing_intermediate_gives_nothing(self, state):
        state.globals["obj"] = {"a": {"b": 1}}
        assert suggest(state, "obj.zz.") == []

    def test_unknown_base(self, state):
        assert suggest(state, "nope.") == []

    def test_local_variable_base(self, state):
        state.local_scope["obj"] = {"name": 1, "nat": 2, "x": 3}
        result = suggest(state, "$obj.na")
        assert [s.value for s in result] == ["$obj.name", "$obj.nat"]
        assert all(s.span == Span(0, 7) for s in result)

    def test_global_variable_base(self, state):
        state.globals["cfg"] = {"debug": True}
        assert [s.value for s in suggest(state, "$$cfg.")] == ["$$cfg.debug"]


# ---------------------------------------------------------------------------
# Commands and subcommands
# ---------------------------------------------------------------------------


class TestSubcommandCompletion:
    @pytest.fixture
    def cmd_state(self, state):
        state.permissions = [
            CommandPermission.parse("cmd help build"),
            CommandPermission.parse("cmd help run"),
        ]
        return state

    def test_new_argument_after_chain(self, cmd_state):
        result = by_shown(suggest(cmd_state, "cmd help ", 9))
        assert result == [
            Suggestion("build", "build", Span(9, 10)),
            Suggestion("run", "run", Span(9, 10)),
        ]

    def test_first_level_is_deduplicated(self, cmd_state):
        assert suggest(cmd_state, "cmd ") == [Suggestion("help", "help", Span(4, 5))]

    def test_partially_typed_subcommand(self, cmd_state):
        assert suggest(cmd_state, "cmd help b") == [Suggestion("build", "build", Span(9, 10))]

    def test_diverging_chain(self, cmd_state):
        assert suggest(cmd_state, "cmd other ") == []

    def test_other_command(self, cmd_state):
        assert suggest(cmd_state, "git ") == []


# ---------------------------------------------------------------------------
# Identifiers, variables and keywords
# ---------------------------------------------------------------------------


class TestIdentifierCompletion:
    def test_break_inside_loop_block(self, state):
        text = "for []{b}"
        assert suggest(state, text, 8) == [Suggestion("break", "break", Span(7, 8))]

    def test_no_break_outside_loop(self, state):
        assert all(s.value != "break" for s in suggest(state, "b"))

    def test_prune_inside_walk_block(self, state):
        assert suggest(state, "walk ./ e {pr}", 13) == [Suggestion("prune", "prune", Span(11, 13))]

    def test_statement_keyword_at_top_level(self, state):
        assert [s.value for s in suggest(state, "wa")] == ["walk"]

    def test_expression_keyword(self, state):
        assert [s.value for s in suggest(state, "tr")] == ["true"]

    def test_global_names(self, state):
        state.globals.update({"print": 1, "pwd": 2, "ls": 3})
        assert sorted(s.value for s in suggest(state, "p")) == ["print", "pwd"]

    def test_local_variable(self, state):
        state.local_scope.update({"count": 1, "color": 2, "x": 3})
        result = suggest(state, "$co")
        assert sorted(s.value for s in result) == ["$color", "$count"]
        assert {s.shown_string for s in result} == {"color", "count"}
        assert all(s.span == Span(0, 3) for s in result)

    def test_global_variable(self, state):
        state.globals["home"] = "/root"
        assert suggest(state, "$$h") == [Suggestion("home", "$$home", Span(0, 3))]

    def test_idempotent(self, state):
        state.globals["obj"] = {"a": 1, "b": 2}
        assert suggest(state, "obj.") == suggest(state, "obj.")

    def test_names_and_keywords_ignore_case(self, state):
        state.globals.update({"Path": 1, "pwd": 2})
        assert sorted(s.value for s in suggest(state, "P")) == ["Path", "pwd"]
        assert [s.value for s in suggest(state, "WA")] == ["walk"]

    def test_properties_ignore_case(self, state):
        state.globals["obj"] = {"Name": 1, "size": 2}
        assert [s.value for s in suggest(state, "obj.na")] == ["obj.Name"]


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


class TestPatternCompletion:
    def test_named_pattern(self, state):
        assert [s.value for s in suggest(state, "%in")] == ["%int"]

    def test_namespace_is_offered_with_dot(self, state):
        state.register_pattern_namespace(PatternNamespace("net", {"ip": Pattern("ip", bool)}))
        assert [s.value for s in suggest(state, "%ne")] == ["%net."]

    def test_namespace_members(self, state):
        ns = PatternNamespace("net", {"ip": Pattern("ip", bool), "port": Pattern("port", bool)})
        state.register_pattern_namespace(ns)
        assert [s.value for s in suggest(state, "%net.")] == ["%net.ip", "%net.port"]
        assert [s.value for s in suggest(state, "%net.p")] == ["%net.port"]


# ---------------------------------------------------------------------------
# Paths, hosts and URLs
# ---------------------------------------------------------------------------


class TestPathCompletion:
    def test_absolute_path(self, state, tmp_path):
        (tmp_path / "file1.txt").write_text("1")
        (tmp_path / "file2.txt").write_text("2")
        (tmp_path / "other").write_text("3")
        text = f"{tmp_path}/f"
        result = suggest(state, text)
        assert [s.value for s in result] == [f"{tmp_path}/file1.txt", f"{tmp_path}/file2.txt"]
        assert all(s.span == Span(0, len(text)) for s in result)

    def test_relative_path_and_directories(self, state, tmp_path):
        (tmp_path / "sample.txt").write_text("")
        (tmp_path / "sub").mkdir()
        assert [s.value for s in suggest(state, "./s")] == ["./sample.txt", "./sub/"]

    def test_missing_directory(self, state):
        assert suggest(state, "./missing/x") == []

    def test_find_path_suggestions_shown_string(self, state, tmp_path):
        (tmp_path / "notes.md").write_text("")
        result = find_path_suggestions(state.filesystem, "./no")
        assert result == [Suggestion("notes.md", "./notes.md")]


class TestHostCompletion:
    def test_known_host(self, state):
        state.hosts["https://example.com"] = "93.184.216.34"
        assert [s.value for s in suggest(state, "https://ex")] == ["https://example.com"]

    def test_localhost(self, state):
        assert [s.value for s in suggest(state, "https://lo")] == ["https://localhost"]

    def test_scheme_alone(self, state):
        state.hosts["https://example.com"] = "93.184.216.34"
        state.hosts["http://other.org"] = "10.0.0.1"
        assert [s.value for s in suggest(state, "https://")] == ["https://example.com"]

    def test_file_url(self, state, tmp_path):
        (tmp_path / "data.json").write_text("{}")
        text = f"file://{tmp_path}/da"
        assert [s.value for s in suggest(state, text)] == [f"file://{tmp_path}/data.json"]
