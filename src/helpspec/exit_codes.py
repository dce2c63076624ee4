"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~helpspec.exceptions.HelpspecError` subclass.
Shell wrappers can inspect the exit code to tell a missing ``--help`` apart
from an unreachable completion service without parsing stderr.

Example::

    $ helpspec show not-a-command
    $ echo $?
    4   # EXIT_NO_DOCUMENTATION -- no help text could be obtained
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NO_DOCUMENTATION = 4
"""No help text could be obtained for the target command."""

EXIT_SERVICE_ERROR = 5
"""The completion service rejected the request or stayed overloaded."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_MALFORMED_RESPONSE = 7
"""The completion service returned a payload that could not be decoded."""

EXIT_STORAGE_ERROR = 8
"""The spec cache could not be read or written."""
