"""Canonical Pydantic models shared across all helpspec modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`LLMConfig`, :class:`SynthesisConfig`, :class:`CacheConfig`, and
    :class:`GlobalConfig`.

**Spec models** -- the structured description of one command, produced by the
synthesis pipeline and persisted by the store:
    :class:`ArgumentType`, :class:`DangerLevel`, :class:`OptionLevel`,
    :class:`CommandOption`, :class:`PositionalArg`, :class:`CommandSpec`, and
    the cache row :class:`SpecRecord`.

**Extraction models** -- the partial answers returned by the completion
service before assembly:
    :class:`SpecMetadata` and :class:`PositionalNames`.

The completion service sometimes emits off-schema but recoverable values
(``false`` where ``null`` was asked for, ``"file"`` where ``"path"`` was
asked for, a number where a string was expected). The spec and extraction
models therefore coerce those values in ``mode="before"`` validators instead
of failing; only structurally wrong input (an array where an object belongs,
a missing ``flags`` list) is rejected.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# --- Tolerant coercions ---


def coerce_optional_string(value: Any) -> Any:
    """Coerce a loosely-typed optional string.

    ``None``, ``False`` and ``""`` become ``None``; ``True`` becomes
    ``"true"``; numbers become their decimal text. Anything else is returned
    unchanged so that the field's own validation can accept or reject it.
    """
    if value is None or value is False:
        return None
    if value is True:
        return "true"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value or None
    return value


def coerce_string(value: Any) -> Any:
    """Coerce a loosely-typed required string.

    Booleans become ``"true"``/``"false"`` and numbers their decimal text.
    ``None`` becomes ``""``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def coerce_string_list(value: Any) -> Any:
    """Coerce a loosely-typed list of strings.

    ``None`` becomes ``[]``, a lone scalar becomes a one-element list, and
    ``null`` items are dropped.
    """
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    if isinstance(value, list):
        return [coerce_string(item) for item in value if item is not None]
    return value


def _coerce_bool(value: Any) -> Any:
    return False if value is None else value


# --- Enumerations ---


class ArgumentType(str, enum.Enum):
    """The kind of value a flag or positional argument takes."""

    BOOL = "bool"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    PATH = "path"
    ENUM = "enum"

    @classmethod
    def parse(cls, value: Any) -> ArgumentType:
        """Map a free-form type name onto a member, case-insensitively.

        Unknown or non-string values map to :attr:`STRING`.

        Example::

            >>> ArgumentType.parse("Filename")
            <ArgumentType.PATH: 'path'>
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.STRING
        return _ARGUMENT_TYPE_SYNONYMS.get(value.strip().lower(), cls.STRING)


_ARGUMENT_TYPE_SYNONYMS: dict[str, ArgumentType] = {
    **dict.fromkeys(("bool", "boolean", "flag"), ArgumentType.BOOL),
    **dict.fromkeys(("string", "str", "text"), ArgumentType.STRING),
    **dict.fromkeys(("int", "integer", "number"), ArgumentType.INT),
    **dict.fromkeys(("float", "decimal", "double"), ArgumentType.FLOAT),
    **dict.fromkeys(
        ("path", "file", "filename", "filepath", "directory", "dir"),
        ArgumentType.PATH,
    ),
    **dict.fromkeys(("enum", "choice", "select", "option"), ArgumentType.ENUM),
}


class DangerLevel(str, enum.Enum):
    """Coarse classification of how destructive a command may be."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> DangerLevel:
        """Case-insensitive lookup; unknown values map to :attr:`LOW`."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.LOW

    def __str__(self) -> str:
        return self.value


class OptionLevel(str, enum.Enum):
    """UI-relevance hint for an option.

    ``BASIC`` options appear in the plain ``--help`` output; ``ADVANCED``
    ones were only found in extended help or the man page.
    """

    BASIC = "basic"
    ADVANCED = "advanced"

    @classmethod
    def parse(cls, value: Any) -> OptionLevel:
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() == "advanced":
            return cls.ADVANCED
        return cls.BASIC


# --- Configuration models ---


class LLMConfig(BaseModel):
    """Completion-service settings stored in :class:`GlobalConfig`.

    The API key itself is never stored; ``api_key_source`` names where to
    read it from, using the same ``env:VAR`` / ``file:/path`` descriptors
    accepted by :func:`~helpspec.config.resolve_credential`.
    """

    provider: str = Field(default="anthropic", description="Completion provider")
    api_key_source: str = Field(
        default="env:ANTHROPIC_API_KEY",
        description="Credential source: env:VAR or file:/path",
    )
    model: str = Field(default="claude-sonnet-4-5-20250929")
    base_url: str = Field(default="https://api.anthropic.com")
    api_version: str = Field(default="2023-06-01")
    timeout: float = Field(default=120.0, description="Request timeout in seconds")
    prompt_caching: bool = Field(
        default=True,
        description="Mark the shared documentation block as cacheable server-side",
    )


class SynthesisConfig(BaseModel):
    """Concurrency, retry and token limits for one synthesis run."""

    max_concurrency: int = Field(
        default=10, ge=1, description="Maximum in-flight extraction requests"
    )
    retry_delays: list[float] = Field(
        default_factory=lambda: [2.0, 4.0, 8.0, 16.0],
        description="Back-off delay in seconds before retry N",
    )
    priming_pause: float = Field(
        default=0.5, ge=0, description="Pause after the priming request, in seconds"
    )
    detail_max_tokens: int = Field(default=1024, ge=1)
    metadata_max_tokens: int = Field(default=1024, ge=1)
    debug_dumps: bool = Field(
        default=True, description="Write undecodable payloads to the debug directory"
    )


class CacheConfig(BaseModel):
    """Spec store settings stored in :class:`GlobalConfig`.

    ``ttl_days`` is informational only: cached specs are invalidated by
    documentation hash, never by age.
    """

    path: Optional[str] = Field(
        default=None, description="Store directory (defaults to <data dir>/specs)"
    )
    ttl_days: int = Field(default=30, ge=0)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/helpspec/config.json``.

    Loaded and saved by :func:`~helpspec.config.load_global_config` and
    :func:`~helpspec.config.save_global_config`. See
    :func:`~helpspec.config.resolve_config` for the full precedence chain.
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Spec models ---


class CommandOption(BaseModel):
    """One flag group: every spelling of a single logical option.

    ``flags`` holds the equivalent spellings (e.g. ``["-v", "--verbose"]``);
    :attr:`primary_flag` picks the one used as the option's identity
    everywhere downstream.
    """

    flags: list[str] = Field(min_length=1)
    description: str = ""
    argument_type: ArgumentType = ArgumentType.STRING
    argument_name: Optional[str] = None
    required: bool = False
    sensitive: bool = False
    repeatable: bool = False
    conflicts_with: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    default: Optional[str] = None
    enum_values: list[str] = Field(default_factory=list)
    level: OptionLevel = OptionLevel.BASIC

    @field_validator("flags", mode="before")
    @classmethod
    def _unique_flags(cls, value: Any) -> Any:
        value = coerce_string_list(value)
        if not isinstance(value, list):
            return value
        seen: list[str] = []
        for flag in value:
            if isinstance(flag, str):
                flag = flag.strip()
                if not flag or flag in seen:
                    continue
            seen.append(flag)
        return seen

    @field_validator("description", mode="before")
    @classmethod
    def _flexible_description(cls, value: Any) -> Any:
        return coerce_string(value)

    @field_validator("argument_name", "default", mode="before")
    @classmethod
    def _optional_strings(cls, value: Any) -> Any:
        return coerce_optional_string(value)

    @field_validator("argument_type", mode="before")
    @classmethod
    def _argument_type(cls, value: Any) -> ArgumentType:
        return ArgumentType.parse(value)

    @field_validator("level", mode="before")
    @classmethod
    def _level(cls, value: Any) -> OptionLevel:
        return OptionLevel.parse(value)

    @field_validator("conflicts_with", "requires", "enum_values", mode="before")
    @classmethod
    def _string_lists(cls, value: Any) -> Any:
        return coerce_string_list(value)

    @field_validator("required", "sensitive", "repeatable", mode="before")
    @classmethod
    def _bools(cls, value: Any) -> Any:
        return _coerce_bool(value)

    @model_validator(mode="after")
    def _enum_values_only_for_enums(self) -> CommandOption:
        if self.argument_type != ArgumentType.ENUM:
            self.enum_values = []
        return self

    @property
    def primary_flag(self) -> str:
        """The longest spelling (typically the ``--long`` form); first wins on ties."""
        return max(self.flags, key=len)

    @property
    def short_flag(self) -> Optional[str]:
        """The first single-dash spelling, or ``None``."""
        for flag in self.flags:
            if flag.startswith("-") and not flag.startswith("--"):
                return flag
        return None


class PositionalArg(BaseModel):
    """One positional slot. Identified by ``name``."""

    name: str
    description: str = ""
    required: bool = False
    sensitive: bool = False
    argument_type: ArgumentType = ArgumentType.STRING
    default: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _flexible_strings(cls, value: Any) -> Any:
        return coerce_string(value)

    @field_validator("default", mode="before")
    @classmethod
    def _optional_default(cls, value: Any) -> Any:
        return coerce_optional_string(value)

    @field_validator("argument_type", mode="before")
    @classmethod
    def _argument_type(cls, value: Any) -> ArgumentType:
        return ArgumentType.parse(value)

    @field_validator("required", "sensitive", mode="before")
    @classmethod
    def _bools(cls, value: Any) -> Any:
        return _coerce_bool(value)


class CommandSpec(BaseModel):
    """The structured description of one command.

    ``version_hash`` is the content hash of the documentation the spec was
    derived from. A cached spec whose hash disagrees with a freshly computed
    one is stale and is regenerated as a whole.

    See Also:
        :func:`~helpspec.generator.assembler.assemble_spec`: Builds instances.
        :class:`~helpspec.cache.store.SpecStore`: Persists them.
    """

    command: str
    version_hash: str = ""
    description: str = ""
    options: list[CommandOption] = Field(default_factory=list)
    positional_args: list[PositionalArg] = Field(default_factory=list)
    subcommands: list[str] = Field(default_factory=list)
    danger_level: DangerLevel = DangerLevel.LOW
    examples: list[str] = Field(default_factory=list)
    positionals_first: bool = Field(
        default=False,
        description="Whether positionals precede flags (e.g. `find PATH -name X`)",
    )

    @field_validator("description", mode="before")
    @classmethod
    def _flexible_description(cls, value: Any) -> Any:
        return coerce_string(value)

    @field_validator("subcommands", "examples", mode="before")
    @classmethod
    def _string_lists(cls, value: Any) -> Any:
        return coerce_string_list(value)

    @field_validator("danger_level", mode="before")
    @classmethod
    def _danger_level(cls, value: Any) -> DangerLevel:
        return DangerLevel.parse(value)

    @field_validator("positionals_first", mode="before")
    @classmethod
    def _bools(cls, value: Any) -> Any:
        return _coerce_bool(value)

    def find_option(self, flag: str) -> Optional[CommandOption]:
        """Return the option that has *flag* among its spellings, if any."""
        for option in self.options:
            if flag in option.flags:
                return option
        return None


def encode_spec(spec: CommandSpec) -> str:
    """Serialise *spec* to the JSON text stored in the cache."""
    return spec.model_dump_json()


def decode_spec(text: str) -> CommandSpec:
    """Inverse of :func:`encode_spec`."""
    return CommandSpec.model_validate_json(text)


class SpecRecord(BaseModel):
    """One row of the spec table.

    ``danger_level`` and ``version_hash`` are denormalised copies of the
    fields inside ``spec_json`` so they can be inspected without decoding
    the whole spec. Timestamps are seconds since the epoch.
    """

    command_key: str
    version_hash: str
    spec_json: str
    danger_level: DangerLevel
    created_at: float
    last_used: float
    use_count: int = 1


# --- Extraction models ---


class SpecMetadata(BaseModel):
    """Command-level facts returned by the metadata query."""

    description: str = ""
    danger_level: DangerLevel = DangerLevel.LOW
    subcommands: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _flexible_description(cls, value: Any) -> Any:
        return coerce_string(value)

    @field_validator("danger_level", mode="before")
    @classmethod
    def _danger_level(cls, value: Any) -> DangerLevel:
        return DangerLevel.parse(value)

    @field_validator("subcommands", "examples", mode="before")
    @classmethod
    def _string_lists(cls, value: Any) -> Any:
        return coerce_string_list(value)


class PositionalNames(BaseModel):
    """Positional argument names, in invocation order, from the discovery query."""

    positional_args: list[str] = Field(default_factory=list)
    positionals_first: bool = False

    @field_validator("positional_args", mode="before")
    @classmethod
    def _names(cls, value: Any) -> Any:
        # Accept [{"name": "FILE", ...}] as well as ["FILE"].
        if isinstance(value, list):
            value = [
                item.get("name") if isinstance(item, dict) else item
                for item in value
            ]
        value = coerce_string_list(value)
        if not isinstance(value, list):
            return value
        names: list[str] = []
        for name in value:
            if isinstance(name, str):
                name = name.strip()
                if not name or name in names:
                    continue
            names.append(name)
        return names

    @field_validator("positionals_first", mode="before")
    @classmethod
    def _bools(cls, value: Any) -> Any:
        return _coerce_bool(value)
