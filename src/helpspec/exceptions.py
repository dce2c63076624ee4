"""Exception hierarchy for helpspec.

All exceptions inherit from :class:`HelpspecError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`helpspec.exit_codes`.
The top-level error handler in :func:`helpspec.app.main` catches
``HelpspecError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    HelpspecError (exit 1)
    +-- InvalidUsageError               (exit 2)
    +-- ConfigError                     (exit 1)
    +-- DocumentationUnavailableError   (exit 4)
    +-- ServiceError                    (exit 5)
    |   +-- ServiceOverloadedError
    |   +-- ServiceRejectedError
    +-- TransportError                  (exit 6)
    +-- MalformedResponseError          (exit 7)
    +-- StorageError                    (exit 8)

Only :class:`TransportError` and :class:`ServiceOverloadedError` are
retried, and only inside :class:`~helpspec.client.completion.CompletionClient`.
Every other error aborts the synthesis in progress.
"""

from __future__ import annotations

from typing import Optional

from helpspec.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MALFORMED_RESPONSE,
    EXIT_NO_DOCUMENTATION,
    EXIT_SERVICE_ERROR,
    EXIT_STORAGE_ERROR,
)


class HelpspecError(Exception):
    """Base exception for all helpspec errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`helpspec.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(HelpspecError):
    """Raised for invalid CLI arguments (e.g. an empty command name)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(HelpspecError):
    """Raised for configuration problems (invalid JSON, unknown provider, missing API key)."""

    exit_code = EXIT_GENERIC_FAILURE


class DocumentationUnavailableError(HelpspecError):
    """Raised when no help text could be obtained for a command.

    Surfaced before any network call is made.
    """

    exit_code = EXIT_NO_DOCUMENTATION


class ServiceError(HelpspecError):
    """Base class for HTTP-level failures reported by the completion service.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status of the failing response.
        body: The (possibly truncated) response body.
    """

    exit_code = EXIT_SERVICE_ERROR

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ServiceOverloadedError(ServiceError):
    """Raised when the service kept answering "try later" after all retries."""


class ServiceRejectedError(ServiceError):
    """Raised for any non-2xx response that is not an overload signal. Never retried."""


class TransportError(HelpspecError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)
    once the retry table is exhausted."""

    exit_code = EXIT_CONNECTION_ERROR


class MalformedResponseError(HelpspecError):
    """Raised when a completion payload cannot be decoded into the expected shape.

    Args:
        message: Human-readable error description.
        payload: The raw text that failed to decode, kept for postmortems.
    """

    exit_code = EXIT_MALFORMED_RESPONSE

    def __init__(self, message: str, payload: Optional[str] = None):
        super().__init__(message)
        self.payload = payload


class StorageError(HelpspecError):
    """Raised when the spec cache is unreachable or rejects a write."""

    exit_code = EXIT_STORAGE_ERROR
