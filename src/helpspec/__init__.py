"""helpspec -- Turn a shell command's ``--help`` and man page into a structured spec.

This package asks a remote language model to describe every flag and
positional argument of an arbitrary command, assembles the answers into a
:class:`~helpspec.models.CommandSpec`, and caches the result keyed by a hash
of the documentation so the extraction runs at most once per documentation
revision.

Typical workflow::

    helpspec show tar             # synthesize (or reuse) the spec for tar
    helpspec show git commit      # subcommands are part of the identity
    helpspec show tar --refresh   # force a fresh extraction

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    parser: Documentation supplier, flag extraction, tolerant decoding.
    client: Completion-service client and prompt construction.
    generator: Fan-out scheduling, spec assembly, and the synthesis entry point.
    cache: Persistent spec and flag-value store.
"""

__version__ = "0.1.0"
