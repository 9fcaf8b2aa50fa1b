"""Tests for session configuration, the idle checker and the CLI surface."""

from __future__ import annotations

import logging

import pytest

from linesh.cli import build_parser, configure_logging
from linesh.config import ReplConfig
from linesh.errors import ConfigurationError
from linesh.idle import IdleChecker
from linesh.lang import EvalState, Evaluator, LocalFileSystem


class TestReplConfig:
    def test_defaults_are_valid(self):
        config = ReplConfig()
        config.validate()
        assert config.prompt == "{pwd}> "
        assert config.idle_check_ms == 500

    def test_unknown_builtin_command(self):
        with pytest.raises(ConfigurationError, match="unknown builtin command 'rm'"):
            ReplConfig(builtin_commands=["rm"]).validate()

    @pytest.mark.parametrize("attr", ["idle_check_ms", "poll_interval_ms", "input_queue_size", "default_term_width"])
    def test_numeric_settings_must_be_positive(self, attr):
        with pytest.raises(ConfigurationError, match=attr):
            ReplConfig(**{attr: 0}).validate()

    def test_unknown_keybinding_action(self):
        with pytest.raises(ConfigurationError, match="unknown editor action"):
            ReplConfig(keybindings={"explode": "ctrl+x"}).validate()

    def test_global_cannot_redefine_builtin(self):
        with pytest.raises(ConfigurationError, match="redefine"):
            ReplConfig(additional_globals={"print": 1}).validate()

    def test_global_cannot_redefine_enabled_builtin_command(self):
        ReplConfig(additional_globals={"pwd": 1}).validate()
        with pytest.raises(ConfigurationError, match="redefine"):
            ReplConfig(builtin_commands=["pwd"], additional_globals={"pwd": 1}).validate()

    def test_trusted_command_cannot_shadow(self):
        with pytest.raises(ConfigurationError, match="shadow"):
            ReplConfig(trusted_commands=["ls"]).validate()
        with pytest.raises(ConfigurationError, match="shadow"):
            ReplConfig(trusted_commands=["git"], additional_globals={"git": 1}).validate()


class TestIdleChecker:
    @pytest.fixture
    def checker(self, tmp_path) -> IdleChecker:
        return IdleChecker(Evaluator(EvalState(filesystem=LocalFileSystem(str(tmp_path)))), maxsize=2)

    def test_clean_line(self, checker):
        assert checker.check("len([])") == []
        assert checker.last_checked == "len([])"

    def test_parse_diagnostics(self, checker):
        assert checker.check("[1, 2") == ["5:5: missing ']'"]

    def test_check_diagnostics(self, checker):
        (message,) = checker.check("print $nope")
        assert "not declared" in message

    def test_repeat_is_skipped(self, checker):
        first = checker.check("print $nope")
        assert checker.check("print $nope") is first

    def test_offer_never_blocks(self, checker):
        assert checker.offer("a")
        assert checker.offer("b")
        assert not checker.offer("c")


class TestCli:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LINESH_LOG_FILE", raising=False)
        args = build_parser().parse_args([])
        assert args.prompt == "{pwd}> "
        assert args.trusted == []
        assert args.log_file is None
        assert not args.no_signals

    def test_repeatable_options(self):
        args = build_parser().parse_args(
            ["--trusted", "git", "--trusted", "make", "--allow-cmd", "git log", "--builtin", "cd", "--light"]
        )
        assert args.trusted == ["git", "make"]
        assert args.allow_cmd == ["git log"]
        assert args.builtin == ["cd"]
        assert args.light

    def test_log_file_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LINESH_LOG_FILE", str(tmp_path / "linesh.log"))
        assert build_parser().parse_args([]).log_file == str(tmp_path / "linesh.log")

    def test_configure_logging_to_file(self, tmp_path):
        root = logging.getLogger()
        saved, level = list(root.handlers), root.level
        for handler in saved:
            root.removeHandler(handler)
        try:
            log_file = tmp_path / "linesh.log"
            configure_logging("debug", str(log_file))
            logging.getLogger("linesh.test").debug("hello")
            for handler in root.handlers:
                handler.flush()
            assert "[DEBUG] linesh.test: hello" in log_file.read_text()
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            root.setLevel(level)
            for handler in saved:
                root.addHandler(handler)
