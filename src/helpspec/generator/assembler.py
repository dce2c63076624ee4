"""Merge extracted pieces into a :class:`~helpspec.models.CommandSpec`."""

from __future__ import annotations

from typing import Collection, Mapping, Optional, Sequence

from helpspec.models import (
    CommandOption,
    CommandSpec,
    OptionLevel,
    PositionalArg,
    SpecMetadata,
)


def assemble_spec(
    command: str,
    version_hash: str,
    metadata: SpecMetadata,
    options: Sequence[CommandOption],
    positionals: Mapping[str, PositionalArg],
    *,
    positional_order: Optional[Sequence[str]] = None,
    positionals_first: bool = False,
    basic_flags: Optional[Collection[str]] = None,
) -> CommandSpec:
    """Build the final spec. Pure: no I/O, inputs are not mutated.

    Args:
        command: Display name of the command (``git commit``).
        version_hash: Content hash of the documentation the pieces came from.
        metadata: Description, danger level, subcommands and examples.
        options: Option details, kept in the given order.
        positionals: Positional details keyed by name.
        positional_order: Discovery order of positional names. Names without
            details are skipped. Defaults to the mapping's own order.
        positionals_first: Whether positionals precede options.
        basic_flags: Flags seen in the plain help text. When given, options
            with no spelling in this set are marked ``advanced`` and all
            others ``basic``; when omitted, option levels are left as-is.
    """
    order = positional_order if positional_order is not None else list(positionals)
    ordered_positionals = [positionals[name] for name in order if name in positionals]

    if basic_flags is not None:
        options = [_with_level(option, basic_flags) for option in options]

    return CommandSpec(
        command=command,
        version_hash=version_hash,
        description=metadata.description,
        options=list(options),
        positional_args=ordered_positionals,
        subcommands=list(metadata.subcommands),
        danger_level=metadata.danger_level,
        examples=list(metadata.examples),
        positionals_first=positionals_first,
    )


def _with_level(option: CommandOption, basic_flags: Collection[str]) -> CommandOption:
    level = (
        OptionLevel.BASIC
        if any(flag in basic_flags for flag in option.flags)
        else OptionLevel.ADVANCED
    )
    return option.model_copy(update={"level": level})
