"""Tolerant decoding of completion-service answers into spec models.

Each extraction sub-task gets back raw text that should hold one JSON
object. The decoders here turn that text into the matching model from
:mod:`helpspec.models`, whose validators absorb the recoverable oddities
(``false`` for ``null``, ``"file"`` for ``"path"``, numbers for strings).

What cannot be recovered -- text that is not JSON at all, or JSON of the
wrong shape -- raises :class:`~helpspec.exceptions.MalformedResponseError`
after the raw payload has been handed to a :class:`DiagnosticSink` for
postmortem inspection.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from helpspec.exceptions import MalformedResponseError
from helpspec.models import CommandOption, PositionalArg, PositionalNames, SpecMetadata
from helpspec.output import debug, warning

ModelT = TypeVar("ModelT", bound=BaseModel)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


# --- Diagnostic sinks ---


class DiagnosticSink(Protocol):
    """Receives payloads that failed to decode."""

    def record_failure(self, context: str, payload: str) -> None:
        ...


class NullDiagnosticSink:
    """Discards every failure."""

    def record_failure(self, context: str, payload: str) -> None:
        return None


class FileDiagnosticSink:
    """Writes each failed payload to its own file under *directory*.

    File names are ``<timestamp>-<context>.txt``. A failed write is reported
    as a warning and never interrupts the synthesis.

    Writes are blocking; :class:`~helpspec.generator.scheduler.FanOutScheduler`
    runs decoding in worker threads so they stay off the event loop.

    Args:
        directory: Destination directory, created on first use.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def record_failure(self, context: str, payload: str) -> None:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        slug = _UNSAFE_FILENAME_CHARS.sub("_", context).strip("_")[:80] or "payload"
        path = self._directory / f"{timestamp}-{slug}.txt"
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_text(f"# {context}\n{payload}", encoding="utf-8")
        except OSError as exc:
            warning(f"Could not write debug payload to {path}: {exc}")
            return
        debug(f"Undecodable payload for {context} saved to {path}")


# --- Decoders ---


def decode_json(
    raw: str,
    model: type[ModelT],
    *,
    context: str,
    sink: DiagnosticSink,
    overrides: dict[str, Any] | None = None,
) -> ModelT:
    """Decode *raw* into *model*.

    Prose around the JSON object (``Here is the JSON: {...}``) is ignored.

    Args:
        raw: Text returned by the completion service.
        model: Target Pydantic model.
        context: Short label for diagnostics (e.g. ``"option --verbose"``).
        sink: Receives *raw* if decoding fails.
        overrides: Keys forced onto the decoded object before validation.

    Raises:
        MalformedResponseError: If *raw* holds no JSON object or the object
            cannot be validated against *model*.
    """
    try:
        data = _load_object(raw)
        if overrides:
            data.update(overrides)
        return model.model_validate(data)
    except (ValueError, ValidationError) as exc:
        sink.record_failure(context, raw)
        raise MalformedResponseError(
            f"Failed to decode {context}: {exc}", payload=raw
        ) from exc


def decode_option(
    raw: str, group: list[str], *, sink: DiagnosticSink
) -> CommandOption:
    """Decode one option's details. ``flags`` is always the requested *group*."""
    return decode_json(
        raw,
        CommandOption,
        context=f"option {', '.join(group)}",
        sink=sink,
        overrides={"flags": list(group)},
    )


def decode_positional(raw: str, name: str, *, sink: DiagnosticSink) -> PositionalArg:
    """Decode one positional argument's details. ``name`` is always *name*."""
    return decode_json(
        raw,
        PositionalArg,
        context=f"positional {name}",
        sink=sink,
        overrides={"name": name},
    )


def decode_metadata(raw: str, *, sink: DiagnosticSink) -> SpecMetadata:
    """Decode the command description / danger level answer."""
    return decode_json(raw, SpecMetadata, context="metadata", sink=sink)


def decode_positional_names(raw: str, *, sink: DiagnosticSink) -> PositionalNames:
    """Decode the positional-argument discovery answer."""
    return decode_json(raw, PositionalNames, context="positional names", sink=sink)


def _load_object(raw: str) -> dict[str, Any]:
    text = raw.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data
