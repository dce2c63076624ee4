"""Config commands -- view and modify the global configuration file.

Provides the ``helpspec config`` sub-command group. ``show`` prints the
configuration stored on disk; ``set`` changes one value addressed with dot
notation (``synthesis.max_concurrency``) and writes the file back through
:func:`~helpspec.config.save_global_config`.

Environment variables and CLI flags are not reflected here: they override
the file at run time only (see :func:`~helpspec.config.resolve_config`).
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from helpspec.config import get_config_dir, load_global_config, save_global_config
from helpspec.exceptions import HelpspecError, InvalidUsageError
from helpspec.models import GlobalConfig
from helpspec.output import error, info, print_json, success

config_app = typer.Typer(no_args_is_help=True)

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _coerce(key: str, current: Any, value: str) -> Any:
    """Convert *value* to the type of the field's *current* value."""
    if isinstance(current, bool):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise InvalidUsageError(f"Expected true or false for {key}, got: {value}")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            raise InvalidUsageError(f"Expected integer for {key}, got: {value}") from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            raise InvalidUsageError(f"Expected number for {key}, got: {value}") from None
    if isinstance(current, list):
        # Comma-separated; an empty string clears the list.
        return [item.strip() for item in value.split(",") if item.strip()]
    if current is None and value == "":
        return None
    return value


def apply_setting(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *value*.

    Raises:
        InvalidUsageError: If the key does not exist or the value does not
            validate.
    """
    data = config.model_dump(mode="json")
    *parents, final_key = key.split(".")

    target = data
    for part in parents:
        if not isinstance(target.get(part), dict):
            raise InvalidUsageError(f"Invalid config key: {key}")
        target = target[part]
    if final_key not in target or isinstance(target[final_key], dict):
        raise InvalidUsageError(f"Unknown config key: {key}")

    target[final_key] = _coerce(key, target[final_key], value)

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid value for {key}: {exc}") from exc


@config_app.command("show")
def config_show() -> None:
    """Show the configuration stored on disk.

    Example::

        helpspec config show
        helpspec --json config show
    """
    try:
        config = load_global_config()
    except HelpspecError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config directory: {get_config_dir()}")
    print_json(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        ..., help="Config key in dot notation, e.g. synthesis.max_concurrency."
    ),
    value: str = typer.Argument(..., help="Value to set. Lists are comma-separated."),
) -> None:
    """Set one configuration value.

    The value is converted to the type of the existing field, and the whole
    configuration is validated before it is saved.

    Example::

        helpspec config set llm.model claude-sonnet-4-5-20250929
        helpspec config set synthesis.max_concurrency 4
        helpspec config set synthesis.retry_delays 1,2,4
    """
    try:
        config = apply_setting(load_global_config(), key, value)
        save_global_config(config)
    except HelpspecError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Set {key} = {value}")
