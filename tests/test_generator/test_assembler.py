"""Tests for helpspec.generator.assembler."""

from __future__ import annotations

from helpspec.generator.assembler import assemble_spec
from helpspec.models import (
    CommandOption,
    DangerLevel,
    OptionLevel,
    PositionalArg,
    SpecMetadata,
    decode_spec,
    encode_spec,
)

METADATA = SpecMetadata(
    description="Copy files",
    danger_level=DangerLevel.HIGH,
    subcommands=["sync"],
    examples=["mytool a b"],
)
OPTIONS = [
    CommandOption(flags=["-v", "--verbose"]),
    CommandOption(flags=["--dry-run"]),
]
POSITIONALS = {
    "DEST": PositionalArg(name="DEST"),
    "SOURCE": PositionalArg(name="SOURCE"),
}


class TestAssembleSpec:
    def test_carries_metadata_and_hash(self) -> None:
        spec = assemble_spec("mytool", "h" * 64, METADATA, OPTIONS, POSITIONALS)

        assert spec.command == "mytool"
        assert spec.version_hash == "h" * 64
        assert spec.description == "Copy files"
        assert spec.danger_level is DangerLevel.HIGH
        assert spec.subcommands == ["sync"]
        assert spec.examples == ["mytool a b"]
        assert [o.flags for o in spec.options] == [["-v", "--verbose"], ["--dry-run"]]

    def test_positional_order_from_discovery(self) -> None:
        spec = assemble_spec(
            "mytool", "h", METADATA, [], POSITIONALS, positional_order=["SOURCE", "DEST"]
        )
        assert [p.name for p in spec.positional_args] == ["SOURCE", "DEST"]

    def test_names_without_details_are_skipped(self) -> None:
        spec = assemble_spec(
            "mytool", "h", METADATA, [], POSITIONALS, positional_order=["SOURCE", "EXTRA", "DEST"]
        )
        assert [p.name for p in spec.positional_args] == ["SOURCE", "DEST"]

    def test_positionals_first_is_carried(self) -> None:
        spec = assemble_spec("find", "h", METADATA, [], {}, positionals_first=True)
        assert spec.positionals_first is True

    def test_levels_from_basic_flags(self) -> None:
        spec = assemble_spec(
            "mytool", "h", METADATA, OPTIONS, {}, basic_flags={"-v", "--verbose"}
        )
        levels = {o.primary_flag: o.level for o in spec.options}
        assert levels == {"--verbose": OptionLevel.BASIC, "--dry-run": OptionLevel.ADVANCED}

    def test_levels_untouched_without_basic_flags(self) -> None:
        option = CommandOption(flags=["--deep"], level=OptionLevel.ADVANCED)
        spec = assemble_spec("mytool", "h", METADATA, [option], {})
        assert spec.options[0].level is OptionLevel.ADVANCED

    def test_inputs_are_not_mutated(self) -> None:
        assemble_spec("mytool", "h", METADATA, OPTIONS, {}, basic_flags=set())
        assert all(o.level is OptionLevel.BASIC for o in OPTIONS)

    def test_result_round_trips(self) -> None:
        spec = assemble_spec(
            "mytool", "h", METADATA, OPTIONS, POSITIONALS, positional_order=["SOURCE", "DEST"]
        )
        assert decode_spec(encode_spec(spec)) == spec
