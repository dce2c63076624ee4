"""Prompt construction for the extraction sub-tasks.

Every request of one synthesis run shares the same documentation blob built
by :func:`build_context`; only the short question after it changes. Sending
the blob as its own (cacheable) content block lets the completion service
reuse it across the whole fan-out, and guarantees that every per-flag query
sees identical documentation.
"""

from __future__ import annotations

from helpspec.parser.docs import Documentation, display_name

SYSTEM_PROMPT = """You are a CLI command parser. You read the help text and man page of a \
shell command and answer questions about its options and arguments.

Respond with valid JSON only, no markdown formatting."""


def build_context(command_key: str, documentation: Documentation) -> str:
    """Return the documentation blob shared by every request for *command_key*."""
    parts = [
        f"COMMAND: {display_name(command_key)}",
        f"HELP TEXT:\n{documentation.help_text}",
    ]
    if documentation.manpage_text:
        parts.append(f"MANPAGE:\n{documentation.manpage_text}")
    return "\n\n".join(parts)


def metadata_question(command_key: str) -> str:
    return f"""Summarize the command {display_name(command_key)} described above.

Return a JSON object with this structure:
{{
  "description": "Brief description of what the command does",
  "danger_level": "low",
  "subcommands": [],
  "examples": ["{display_name(command_key)} --help"]
}}

Guidelines:
- danger_level: low, medium, high or critical, based on the potential for data loss
  or destructive side effects
- subcommands: names of documented subcommands, empty if there are none
- examples: a few realistic invocations

Respond with only JSON, no other text."""


def positional_names_question(command_key: str) -> str:
    return f"""List the positional arguments of {display_name(command_key)}.

Return a JSON object with this structure:
{{
  "positional_args": ["SOURCE", "DEST"],
  "positionals_first": false
}}

Guidelines:
- positional_args: argument placeholder names in the order they appear on the command
  line; empty if the command takes none
- positionals_first: true only if positional arguments must come before options
  (as in `find PATH -name X`)

Respond with only JSON, no other text."""


def option_question(command_key: str, flags: list[str]) -> str:
    return f"""Extract detailed information about this specific option.

COMMAND: {display_name(command_key)}
OPTION: {", ".join(flags)}

Return a JSON object with this structure:
{{
  "flags": ["-v", "--verbose"],
  "description": "Detailed description of what this option does",
  "argument_type": "bool",
  "argument_name": null,
  "required": false,
  "sensitive": false,
  "repeatable": false,
  "conflicts_with": [],
  "requires": [],
  "default": null,
  "enum_values": []
}}

Guidelines:
- argument_type: bool, string, int, float, path, or enum
- argument_name: the placeholder name (e.g. "FILE", "N") or null for booleans
- sensitive: true if the value typically contains secrets, tokens or passwords
- conflicts_with / requires: other flags that cannot / must be used with this one
- enum_values: the allowed values when argument_type is "enum"
- default: the default value if the documentation states one

Respond with only JSON, no other text."""


def positional_question(command_key: str, name: str) -> str:
    return f"""Extract detailed information about this positional argument.

COMMAND: {display_name(command_key)}
ARGUMENT: {name}

Return a JSON object with this structure:
{{
  "name": "{name}",
  "description": "Detailed description",
  "required": true,
  "sensitive": false,
  "argument_type": "string",
  "default": null
}}

Respond with only JSON, no other text."""
