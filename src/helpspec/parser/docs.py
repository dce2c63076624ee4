"""Documentation supplier -- collect ``--help`` and man-page text for a command.

:func:`fetch_documentation` runs the target command with a series of help
invocations and takes the first output long enough to be real documentation:

1. extended variants (``--help all``, ``--help=all``, ``--help-all``),
   accepted above :data:`MIN_EXTENDED_HELP_LENGTH` characters -- tools such
   as ``curl`` truncate their default help;
2. ``--help``, ``-h`` and ``help <subcommand...>``, accepted above
   :data:`MIN_HELP_LENGTH` characters.

The man page is fetched independently and is best-effort: any failure
yields an empty string.

The resulting :class:`Documentation` is hashed with :func:`content_hash`;
that digest is the version stamp the spec cache compares against.
"""

from __future__ import annotations

import hashlib
import os
import re
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from helpspec.exceptions import DocumentationUnavailableError, InvalidUsageError
from helpspec.output import debug

MIN_EXTENDED_HELP_LENGTH = 500
MIN_HELP_LENGTH = 50
MIN_MANPAGE_LENGTH = 100

_COMMAND_TIMEOUT = 10
_MANPAGE_SEPARATOR = "\n\n--- MANPAGE ---\n\n"
# ASCII unit separator; shell tokens such as `build:prod` may contain colons.
KEY_SEPARATOR = "\x1f"

_OVERSTRIKE = re.compile(r".\x08")
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


@dataclass(frozen=True)
class Documentation:
    """Help text plus optional man-page text for one command identity.

    Attributes:
        help_text: Output of the first successful help invocation.
        manpage_text: Rendered man page, or ``""`` when none exists.
    """

    help_text: str
    manpage_text: str = ""

    def combined_text(self) -> str:
        """Return the text that is hashed and shown to the completion service."""
        if not self.manpage_text:
            return self.help_text
        return f"{self.help_text}{_MANPAGE_SEPARATOR}{self.manpage_text}"

    @property
    def content_hash(self) -> str:
        """:func:`content_hash` of :meth:`combined_text`."""
        return content_hash(self.combined_text())


def content_hash(text: str) -> str:
    """Return the SHA-256 hex digest (64 characters) of *text*'s UTF-8 bytes."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def command_key(command: str, subcommands: Sequence[str] = ()) -> str:
    """Join a command and its subcommand path into one cache identity.

    Parts are joined with :data:`KEY_SEPARATOR`, so distinct argument
    vectors always map to distinct keys and :func:`display_name` can split
    the key back apart.

    Raises:
        InvalidUsageError: If the command is blank or a part contains the
            separator.
    """
    if not command or not command.strip():
        raise InvalidUsageError("No command specified")
    parts = [command, *subcommands]
    for part in parts:
        if KEY_SEPARATOR in part:
            raise InvalidUsageError(f"Invalid character in command argument: {part!r}")
    return KEY_SEPARATOR.join(parts)


def display_name(key: str) -> str:
    """Return the command line a key stands for (``git remote add``)."""
    return " ".join(key.split(KEY_SEPARATOR))


def fetch_documentation(command: str, subcommands: Sequence[str] = ()) -> Documentation:
    """Collect help and man-page text for ``command subcommands...``.

    Raises:
        DocumentationUnavailableError: If no help invocation produced usable
            output.
    """
    return Documentation(
        help_text=fetch_help_text(command, subcommands),
        manpage_text=fetch_manpage_text(command, subcommands),
    )


def fetch_help_text(command: str, subcommands: Sequence[str] = ()) -> str:
    """Return the first sufficiently long help output for the command.

    Raises:
        DocumentationUnavailableError: If every invocation failed or printed
            too little.
    """
    base = [command, *subcommands]

    for extra in (["--help", "all"], ["--help=all"], ["--help-all"]):
        output = _run([*base, *extra])
        if output and len(output) > MIN_EXTENDED_HELP_LENGTH:
            return output

    candidates = [
        [*base, "--help"],
        [*base, "-h"],
        [command, "help", *subcommands],
    ]
    for argv in candidates:
        output = _run(argv)
        if output and len(output) > MIN_HELP_LENGTH:
            return output

    raise DocumentationUnavailableError(
        f"Help text not available for: {' '.join(base)}"
    )


def fetch_manpage_text(command: str, subcommands: Sequence[str] = ()) -> str:
    """Return the rendered man page for the command, or ``""``.

    Subcommands use the ``git-commit`` naming convention.
    """
    page = "-".join([command, *subcommands])
    env = {
        **os.environ,
        "MANPAGER": "cat",
        "PAGER": "cat",
        "GROFF_NO_SGR": "1",
    }
    output = _run(["man", page], env=env)
    if not output:
        return ""
    text = _ANSI_ESCAPE.sub("", _OVERSTRIKE.sub("", output))
    if len(text) > MIN_MANPAGE_LENGTH:
        return text
    return ""


def _run(argv: list[str], env: Optional[dict[str, str]] = None) -> Optional[str]:
    """Run *argv* and return stdout, or stderr when stdout is empty.

    Returns ``None`` when the program is missing, times out, or cannot be
    started. The exit status is ignored: many tools exit non-zero after
    printing their help.
    """
    try:
        result = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=_COMMAND_TIMEOUT,
            env=env,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        debug(f"{' '.join(argv)}: {exc}")
        return None
    return result.stdout or result.stderr
