"""Tests for helpspec.models -- tolerant coercions, enums, spec helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from helpspec.models import (
    ArgumentType,
    CommandOption,
    CommandSpec,
    DangerLevel,
    OptionLevel,
    PositionalArg,
    PositionalNames,
    SpecRecord,
    SynthesisConfig,
    coerce_optional_string,
    coerce_string,
    coerce_string_list,
    decode_spec,
    encode_spec,
)


class TestCoercions:
    @pytest.mark.parametrize(
        "value, expected",
        [(None, None), (False, None), ("", None), (True, "true"), (3, "3"), (2.5, "2.5"), ("x", "x")],
    )
    def test_optional_string(self, value, expected) -> None:
        assert coerce_optional_string(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(None, ""), (False, "false"), (True, "true"), (10, "10"), ("text", "text")],
    )
    def test_string(self, value, expected) -> None:
        assert coerce_string(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(None, []), ("-v", ["-v"]), (["-a", None, "-b"], ["-a", "-b"]), ([1, True], ["1", "true"])],
    )
    def test_string_list(self, value, expected) -> None:
        assert coerce_string_list(value) == expected


class TestArgumentType:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Boolean", ArgumentType.BOOL),
            ("flag", ArgumentType.BOOL),
            ("TEXT", ArgumentType.STRING),
            ("number", ArgumentType.INT),
            ("double", ArgumentType.FLOAT),
            ("filepath", ArgumentType.PATH),
            ("dir", ArgumentType.PATH),
            ("select", ArgumentType.ENUM),
            ("list", ArgumentType.STRING),
            (None, ArgumentType.STRING),
        ],
    )
    def test_synonyms(self, name, expected) -> None:
        assert ArgumentType.parse(name) is expected


class TestDangerLevel:
    def test_case_insensitive(self) -> None:
        assert DangerLevel.parse(" Medium ") is DangerLevel.MEDIUM

    def test_unknown_is_low(self) -> None:
        assert DangerLevel.parse("apocalyptic") is DangerLevel.LOW

    def test_str_is_value(self) -> None:
        assert str(DangerLevel.CRITICAL) == "critical"


class TestCommandOption:
    def test_flags_required_and_non_empty(self) -> None:
        with pytest.raises(ValidationError):
            CommandOption(flags=[])
        with pytest.raises(ValidationError):
            CommandOption.model_validate({"description": "no flags"})

    def test_flags_deduplicated_in_order(self) -> None:
        option = CommandOption(flags=["-v", " --verbose ", "-v", ""])
        assert option.flags == ["-v", "--verbose"]

    def test_primary_and_short_flag(self) -> None:
        option = CommandOption(flags=["-n", "--dry-run", "--simulate"])
        assert option.primary_flag == "--simulate"
        assert option.short_flag == "-n"

    def test_primary_flag_first_wins_on_ties(self) -> None:
        assert CommandOption(flags=["--abc", "--xyz"]).primary_flag == "--abc"

    def test_no_short_flag(self) -> None:
        assert CommandOption(flags=["--all"]).short_flag is None

    def test_enum_values_cleared_for_non_enum(self) -> None:
        option = CommandOption(flags=["--mode"], argument_type="string", enum_values=["a"])
        assert option.enum_values == []

    def test_level_parsing(self) -> None:
        assert CommandOption(flags=["-x"], level="ADVANCED").level is OptionLevel.ADVANCED
        assert CommandOption(flags=["-x"], level="expert").level is OptionLevel.BASIC


class TestCommandSpec:
    def test_round_trip(self) -> None:
        spec = CommandSpec(
            command="tar",
            version_hash="f" * 64,
            description="Archive files",
            options=[
                CommandOption(
                    flags=["-f", "--file"],
                    argument_type=ArgumentType.PATH,
                    argument_name="ARCHIVE",
                    required=True,
                ),
                CommandOption(
                    flags=["--format"],
                    argument_type=ArgumentType.ENUM,
                    enum_values=["gnu", "posix"],
                    default="gnu",
                    level=OptionLevel.ADVANCED,
                ),
            ],
            positional_args=[PositionalArg(name="FILE", sensitive=False)],
            subcommands=[],
            danger_level=DangerLevel.HIGH,
            examples=["tar -cf a.tar dir"],
            positionals_first=False,
        )
        assert decode_spec(encode_spec(spec)) == spec

    def test_find_option(self) -> None:
        spec = CommandSpec(command="ls", options=[CommandOption(flags=["-a", "--all"])])
        assert spec.find_option("--all") is spec.options[0]
        assert spec.find_option("-l") is None


class TestSpecRecord:
    def test_from_stored_dict(self) -> None:
        record = SpecRecord.model_validate(
            {
                "command_key": "ls",
                "version_hash": "h",
                "spec_json": "{}",
                "danger_level": "low",
                "created_at": 1.0,
                "last_used": 2.0,
            }
        )
        assert record.use_count == 1
        assert record.danger_level is DangerLevel.LOW


class TestSynthesisConfig:
    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            SynthesisConfig(max_concurrency=0)


class TestPositionalNames:
    def test_accepts_objects_and_strings(self) -> None:
        names = PositionalNames.model_validate(
            {"positional_args": [{"name": "SRC"}, "DEST", " SRC ", ""]}
        )
        assert names.positional_args == ["SRC", "DEST"]

    def test_null_flag_is_false(self) -> None:
        names = PositionalNames.model_validate({"positional_args": None, "positionals_first": None})
        assert names.positional_args == []
        assert names.positionals_first is False
