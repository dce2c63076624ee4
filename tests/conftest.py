"""Shared test fixtures for helpspec.

Provides reusable fixtures for isolating configuration, managing output
state, opening throwaway spec stores, faking the completion service, and
running CLI commands. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Callable, Optional

import pytest

from helpspec.cache.store import SpecStore
from helpspec.models import (
    ArgumentType,
    CommandOption,
    CommandSpec,
    DangerLevel,
    PositionalArg,
)
from helpspec.output import OutputFormat, OutputManager, reset_output, set_output
from helpspec.parser.docs import Documentation


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, and clears the HELPSPEC_* overrides and the API key.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "HELPSPEC_MODEL",
        "HELPSPEC_CACHE_PATH",
        "HELPSPEC_MAX_CONCURRENCY",
        "ANTHROPIC_API_KEY",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Spec and store fixtures
# ---------------------------------------------------------------------------


HELP_TEXT = """Usage: mytool [OPTIONS] SOURCE DEST

Copy SOURCE to DEST.

Options:
  -v, --verbose         Enable verbose output
  -o, --output <FILE>   Write the log to FILE
  --token=TOKEN         API token
"""

MANPAGE_TEXT = """MYTOOL(1)

OPTIONS
       --dry-run
              Show what would be copied.
"""


@pytest.fixture
def documentation() -> Documentation:
    """Help text with three option lines plus a man page adding ``--dry-run``."""
    return Documentation(help_text=HELP_TEXT, manpage_text=MANPAGE_TEXT)


@pytest.fixture
def sample_spec() -> CommandSpec:
    return CommandSpec(
        command="mytool",
        version_hash="a" * 64,
        description="Copy files",
        options=[
            CommandOption(flags=["-v", "--verbose"], argument_type=ArgumentType.BOOL),
            CommandOption(
                flags=["-o", "--output"],
                argument_type=ArgumentType.PATH,
                argument_name="FILE",
            ),
            CommandOption(flags=["--token"], sensitive=True),
        ],
        positional_args=[
            PositionalArg(name="SOURCE", required=True),
            PositionalArg(name="DEST", required=True),
        ],
        danger_level=DangerLevel.MEDIUM,
        examples=["mytool a b"],
    )


@pytest.fixture
def store(tmp_path: Path, quiet_output: OutputManager) -> SpecStore:
    """A SpecStore in a fresh temporary directory."""
    s = SpecStore(tmp_path / "store")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Fake completion service
# ---------------------------------------------------------------------------


_OPTION_LINE = re.compile(r"^OPTION: (.+)$", re.MULTILINE)
_ARGUMENT_LINE = re.compile(r"^ARGUMENT: (.+)$", re.MULTILINE)


class FakeCompleter:
    """In-memory stand-in for CompletionClient.

    Answers each kind of question with canned JSON, records every question
    asked, and tracks how many calls overlap.

    Args:
        positionals: Names returned by the positional-names query.
        metadata: Raw answer for the metadata query.
        names_answer: Raw answer for the positional-names query; overrides
            *positionals*.
        fail_on: Flag whose option query raises the given exception.
        delay: Seconds each call sleeps, to force overlap.
    """

    def __init__(
        self,
        positionals: tuple[str, ...] = (),
        metadata: Optional[str] = None,
        names_answer: Optional[str] = None,
        fail_on: Optional[tuple[str, Exception]] = None,
        option_answer: Optional[Callable[[list[str]], str]] = None,
        delay: float = 0.001,
    ) -> None:
        self.positionals = list(positionals)
        self.metadata = metadata or json.dumps(
            {
                "description": "Copy files",
                "danger_level": "medium",
                "subcommands": [],
                "examples": ["mytool a b"],
            }
        )
        self.names_answer = names_answer
        self.fail_on = fail_on
        self.option_answer = option_answer
        self.delay = delay
        self.questions: list[str] = []
        self.contexts: set[str] = set()
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def calls(self) -> int:
        return len(self.questions)

    async def ask(self, system: str, context: str, question: str, max_tokens: int) -> str:
        self.questions.append(question)
        self.contexts.add(context)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return self._answer(question)
        finally:
            self.in_flight -= 1

    def _answer(self, question: str) -> str:
        option = _OPTION_LINE.search(question)
        if option:
            flags = option.group(1).split(", ")
            if self.fail_on and self.fail_on[0] in flags:
                raise self.fail_on[1]
            if self.option_answer:
                return self.option_answer(flags)
            return json.dumps(
                {
                    "flags": flags,
                    "description": f"Option {flags[-1]}",
                    "argument_type": "bool",
                    "sensitive": "token" in flags[-1],
                }
            )

        argument = _ARGUMENT_LINE.search(question)
        if argument:
            name = argument.group(1)
            return json.dumps({"name": name, "description": f"The {name}", "required": True})

        if "positional arguments" in question:
            if self.names_answer is not None:
                return self.names_answer
            return json.dumps({"positional_args": self.positionals, "positionals_first": False})

        return self.metadata


@pytest.fixture
def fake_completer() -> FakeCompleter:
    return FakeCompleter(positionals=("SOURCE", "DEST"))


@pytest.fixture
def make_completer() -> Callable[..., FakeCompleter]:
    """Factory for FakeCompleter with custom answers."""
    return FakeCompleter
