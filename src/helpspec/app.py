"""Typer application and CLI entry point for helpspec.

Commands:

* ``show COMMAND [SUB...]`` -- fetch the command's help and man page,
  synthesize its spec (reusing the cached one while the documentation is
  unchanged) and print it as JSON.
* ``values COMMAND [SUB...]`` -- list, or with ``--set FLAG=VALUE`` update,
  the flag values remembered for a command.
* ``clear-values COMMAND [SUB...]`` -- forget those values.
* ``cache-info`` -- show where the spec store lives and what it holds.
* ``config show`` / ``config set KEY VALUE`` -- inspect or edit the global
  configuration file.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a signal handler, invokes the Typer app and
maps :class:`~helpspec.exceptions.HelpspecError` to its exit code.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`helpspec.config`: Configuration resolution.
    :mod:`helpspec.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, NoReturn, Optional

import typer

from helpspec import __version__
from helpspec.cache.store import SpecStore
from helpspec.client.completion import CompletionClient
from helpspec.commands.config import config_app
from helpspec.config import get_data_dir, get_debug_dir, get_store_path, resolve_config
from helpspec.exceptions import HelpspecError, InvalidUsageError
from helpspec.exit_codes import EXIT_GENERIC_FAILURE
from helpspec.generator.synthesizer import Synthesizer
from helpspec.models import CommandSpec, GlobalConfig
from helpspec.output import error, info, print_json, print_table, success, warning
from helpspec.parser.decoder import DiagnosticSink, FileDiagnosticSink, NullDiagnosticSink
from helpspec.parser.docs import Documentation, command_key, display_name, fetch_documentation


app = typer.Typer(
    name="helpspec",
    help="Turn a command's --help and man page into a structured spec.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config", help="Configuration management.")

_COMMAND_ARGUMENT = typer.Argument(..., help="Command name, e.g. git.")
_SUBCOMMANDS_ARGUMENT = typer.Argument(None, help="Subcommand path, e.g. remote add.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"helpspec {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output (retries, payload dumps)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~helpspec.output.OutputManager` from
    CLI flags.
    """
    from helpspec.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


def _fail(exc: HelpspecError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


# ------------------------------------------------------------------ #
# show
# ------------------------------------------------------------------ #


async def _synthesize(
    config: GlobalConfig,
    store: SpecStore,
    key: str,
    documentation: Documentation,
    refresh: bool,
) -> CommandSpec:
    sink: DiagnosticSink = NullDiagnosticSink()
    if config.synthesis.debug_dumps:
        sink = FileDiagnosticSink(get_debug_dir())

    async with CompletionClient(config.llm, config.synthesis) as client:
        synthesizer = Synthesizer(store, client, config.synthesis, sink=sink)
        return await synthesizer.synthesize(key, documentation, force_refresh=refresh)


@app.command("show")
def show_command(
    command: str = _COMMAND_ARGUMENT,
    subcommands: Optional[list[str]] = _SUBCOMMANDS_ARGUMENT,
    refresh: bool = typer.Option(
        False, "--refresh", help="Regenerate even if a fresh spec is cached."
    ),
    model: Optional[str] = typer.Option(
        None, "--model", help="Completion model to use."
    ),
    max_concurrency: Optional[int] = typer.Option(
        None, "--max-concurrency", help="Maximum in-flight extraction requests."
    ),
) -> None:
    """Print the spec for COMMAND, synthesizing it if needed.

    Example::

        helpspec show git commit
        helpspec --json show tar --refresh
    """
    subs = subcommands or []
    try:
        config = resolve_config(cli_model=model, cli_max_concurrency=max_concurrency)
        key = command_key(command, subs)
        documentation = fetch_documentation(command, subs)
        with SpecStore(get_store_path(config)) as store:
            spec = asyncio.run(_synthesize(config, store, key, documentation, refresh))
    except HelpspecError as exc:
        _fail(exc)

    print_json(spec.model_dump(mode="json"))


# ------------------------------------------------------------------ #
# values / clear-values
# ------------------------------------------------------------------ #


def _parse_assignments(assignments: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for item in assignments:
        flag, sep, value = item.partition("=")
        if not sep or not flag.startswith("-"):
            raise InvalidUsageError(f"Expected FLAG=VALUE, got: {item}")
        values[flag] = value
    return values


@app.command("values")
def values_command(
    command: str = _COMMAND_ARGUMENT,
    subcommands: Optional[list[str]] = _SUBCOMMANDS_ARGUMENT,
    assignments: Optional[list[str]] = typer.Option(
        None, "--set", help="Remember a value, as FLAG=VALUE. Repeatable."
    ),
) -> None:
    """Show the flag values remembered for COMMAND.

    With ``--set``, first remember new values. Values for sensitive flags
    and empty values are never stored.

    Example::

        helpspec values curl --set=--user-agent=helpspec/1.0
    """
    subs = subcommands or []
    try:
        config = resolve_config()
        key = command_key(command, subs)
        with SpecStore(get_store_path(config)) as store:
            if assignments:
                requested = _parse_assignments(assignments)
                spec = store.get(key)
                if spec is None:
                    raise InvalidUsageError(
                        f"No cached spec for {display_name(key)}. "
                        f"Run: helpspec show {display_name(key)}"
                    )
                stored = store.put_values(key, requested, spec.options)
                skipped = sorted(set(requested) - set(stored))
                if skipped:
                    warning(f"Not stored (sensitive or empty): {', '.join(skipped)}")
            values = store.get_values(key)
    except HelpspecError as exc:
        _fail(exc)

    if not values:
        info(f"No cached values for {display_name(key)}")
        return
    rows = [[flag, value] for flag, value in sorted(values.items())]
    print_table(["Flag", "Value"], rows, title=display_name(key))


@app.command("clear-values")
def clear_values_command(
    command: str = _COMMAND_ARGUMENT,
    subcommands: Optional[list[str]] = _SUBCOMMANDS_ARGUMENT,
) -> None:
    """Forget the flag values remembered for COMMAND."""
    subs = subcommands or []
    try:
        config = resolve_config()
        key = command_key(command, subs)
        with SpecStore(get_store_path(config)) as store:
            removed = store.clear_values(key)
    except HelpspecError as exc:
        _fail(exc)

    if removed:
        success(f"Cleared cached values for {display_name(key)}")
    else:
        info(f"No cached values for {display_name(key)}")


# ------------------------------------------------------------------ #
# cache-info
# ------------------------------------------------------------------ #


@app.command("cache-info")
def cache_info_command() -> None:
    """Show the spec store location and size."""
    try:
        config = resolve_config()
        with SpecStore(get_store_path(config)) as store:
            stats = store.stats()
    except HelpspecError as exc:
        _fail(exc)

    rows = [
        ["Directory", stats["directory"]],
        ["Specs", str(stats["specs"])],
        ["Value sets", str(stats["value_sets"])],
        ["Size (bytes)", str(stats["size_bytes"])],
        ["TTL (days, informational)", str(config.cache.ttl_days)],
    ]
    print_table(["Property", "Value"], rows, title="Spec store")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``helpspec`` console script.

    :class:`~helpspec.exceptions.HelpspecError` instances that escape a
    command cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except HelpspecError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
