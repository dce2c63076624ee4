"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- print_json and print_table in each format
- Global instance management and convenience functions
"""

from __future__ import annotations

import json

import pytest

from helpspec import output as output_module
from helpspec.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("helpspec.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("helpspec.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("a message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "a message" in captured.err

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("payload")
        captured = capfd.readouterr()
        assert captured.out == "payload\n"
        assert captured.err == ""


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("info")
        mgr.success("done")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_and_errors(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "Warning: careful" in err
        assert "Error: broken" in err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("retrying")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("retrying")
        assert "[debug] retrying" in capfd.readouterr().err

    def test_progress_only_on_tty(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).progress("[1/3] --verbose")
        assert capfd.readouterr().err == ""

    def test_progress_shown_on_tty(self, capfd, tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).progress("[1/3] --verbose")
        assert "[1/3] --verbose" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Data renderers
# ------------------------------------------------------------------ #


class TestPrintJson:
    def test_plain_is_parseable(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_json({"command": "ls", "n": 1})
        assert json.loads(capfd.readouterr().out) == {"command": "ls", "n": 1}

    def test_json_mode_is_indented(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_json({"a": [1]})
        assert capfd.readouterr().out.startswith("{\n  ")

    def test_rich_mode_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_json({"flag": "--verbose"})
        assert "--verbose" in capfd.readouterr().out


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["Flag", "Value"], [["-o", "out.txt"]])
        assert json.loads(capfd.readouterr().out) == [{"Flag": "-o", "Value": "out.txt"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Flag", "Value"], [["-o", "out.txt"], ["-v", "true"]], title="ignored")
        assert capfd.readouterr().out.splitlines() == ["Flag\tValue", "-o\tout.txt", "-v\ttrue"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Flag", "Value"], [["--output", "out.txt"]], title="mytool")
        out = capfd.readouterr().out
        assert "--output" in out
        assert "mytool" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr

    def test_reset_output_clears(self):
        set_output(OutputManager(quiet=True))
        reset_output()
        assert get_output().is_quiet is False

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        output_module.info("hello")
        output_module.debug("details")
        output_module.print_data("data")
        captured = capfd.readouterr()
        assert "hello" in captured.err
        assert "[debug] details" in captured.err
        assert captured.out == "data\n"
