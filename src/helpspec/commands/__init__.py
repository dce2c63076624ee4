"""CLI sub-command groups for helpspec.

* :mod:`~helpspec.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application that
:mod:`helpspec.app` mounts on the root app.
"""
