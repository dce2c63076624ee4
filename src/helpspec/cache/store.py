"""Persistent spec and flag-value store backed by :mod:`diskcache`.

Two kinds of entries live in one :class:`diskcache.Cache` directory:

* ``("spec", command_key)`` -- a :class:`~helpspec.models.SpecRecord`
  dumped to a plain dict;
* ``("values", command_key)`` -- ``{flag: {"value": str, "last_used": float}}``,
  the values a user last supplied for that command's flags.

Every read-modify-write runs inside :meth:`diskcache.Cache.transact`, so two
processes updating the same command serialize on the backend rather than
losing an update.

Backend failures (:class:`sqlite3.Error`, :class:`OSError`,
:class:`diskcache.Timeout`) surface as
:class:`~helpspec.exceptions.StorageError`. An entry that no longer decodes
(for instance after a model change) is reported as a miss with a warning, so
the caller simply regenerates it.
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

import diskcache
from pydantic import ValidationError

from helpspec.exceptions import StorageError
from helpspec.models import CommandOption, CommandSpec, SpecRecord, decode_spec, encode_spec
from helpspec.output import warning
from helpspec.parser.docs import display_name

_SPEC = "spec"
_VALUES = "values"

_BACKEND_ERRORS = (sqlite3.Error, OSError, diskcache.Timeout)


class SpecStore:
    """Cache of synthesized specs and remembered flag values.

    Args:
        path: Store directory, created if missing.
        clock: Returns the current time in seconds since the epoch.

    Raises:
        StorageError: If the directory cannot be opened as a store.

    Example::

        with SpecStore(get_store_path(config)) as store:
            spec = store.get(command_key("git", ["commit"]))
            if spec is None or spec.version_hash != docs.content_hash:
                ...
    """

    def __init__(
        self,
        path: str | Path,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path)
        self._clock = clock
        try:
            self._cache = diskcache.Cache(str(self._path))
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Cannot open spec store at {self._path}: {exc}") from exc

    def __enter__(self) -> SpecStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def path(self) -> Path:
        return self._path

    # --- Specs ---

    def get(self, command_key: str) -> Optional[CommandSpec]:
        """Return the cached spec for *command_key*, or ``None``.

        The caller decides freshness by comparing ``version_hash``.
        """
        record = self.record(command_key)
        if record is None:
            return None
        try:
            return decode_spec(record.spec_json)
        except ValidationError as exc:
            warning(f"Ignoring undecodable cached spec for {display_name(command_key)}: {exc}")
            return None

    def record(self, command_key: str) -> Optional[SpecRecord]:
        """Return the raw store row (hash, timestamps, use count) for *command_key*."""
        with self._backend("read spec"):
            raw = self._cache.get((_SPEC, command_key))
        return self._load_record(command_key, raw)

    def put(self, command_key: str, spec: CommandSpec) -> SpecRecord:
        """Insert or replace the spec for *command_key*.

        A new entry starts at ``use_count == 1``. Replacing an existing entry
        keeps its ``created_at`` and increments ``use_count``.

        Returns:
            The row as written.
        """
        spec_json = encode_spec(spec)
        with self._backend("write spec"):
            with self._cache.transact(retry=True):
                now = self._clock()
                existing = self._load_record(
                    command_key, self._cache.get((_SPEC, command_key))
                )
                record = SpecRecord(
                    command_key=command_key,
                    version_hash=spec.version_hash,
                    spec_json=spec_json,
                    danger_level=spec.danger_level,
                    created_at=existing.created_at if existing else now,
                    last_used=now,
                    use_count=existing.use_count + 1 if existing else 1,
                )
                self._cache.set((_SPEC, command_key), record.model_dump(mode="json"))
        return record

    def touch(self, command_key: str) -> None:
        """Bump ``last_used`` and ``use_count`` of an entry. Missing keys are ignored."""
        with self._backend("update spec"):
            with self._cache.transact(retry=True):
                existing = self._load_record(
                    command_key, self._cache.get((_SPEC, command_key))
                )
                if existing is None:
                    return
                updated = existing.model_copy(
                    update={
                        "last_used": self._clock(),
                        "use_count": existing.use_count + 1,
                    }
                )
                self._cache.set((_SPEC, command_key), updated.model_dump(mode="json"))

    # --- Flag values ---

    def get_values(self, command_key: str) -> dict[str, str]:
        """Return the remembered ``{flag: value}`` map for *command_key*."""
        with self._backend("read values"):
            raw = self._cache.get((_VALUES, command_key))
        return {flag: entry["value"] for flag, entry in _value_entries(raw).items()}

    def put_values(
        self,
        command_key: str,
        values: Mapping[str, str],
        options: Sequence[CommandOption],
    ) -> dict[str, str]:
        """Remember *values* for *command_key*, merging with earlier ones.

        Values for flags belonging to a sensitive option, and empty values,
        are never written.

        Args:
            command_key: Command identity.
            values: ``{flag: value}`` as supplied by the user.
            options: The command's options, used to recognise sensitive flags.

        Returns:
            The subset of *values* that was actually stored.
        """
        sensitive = {flag for option in options if option.sensitive for flag in option.flags}
        accepted = {
            flag: value
            for flag, value in values.items()
            if value and flag not in sensitive
        }
        if not accepted:
            return {}

        with self._backend("write values"):
            with self._cache.transact(retry=True):
                now = self._clock()
                entries = _value_entries(self._cache.get((_VALUES, command_key)))
                for flag, value in accepted.items():
                    entries[flag] = {"value": value, "last_used": now}
                self._cache.set((_VALUES, command_key), entries)
        return accepted

    def clear_values(self, command_key: str) -> bool:
        """Forget every remembered value for *command_key*.

        Returns:
            ``True`` if anything was removed.
        """
        with self._backend("clear values"):
            return bool(self._cache.delete((_VALUES, command_key)))

    # --- Maintenance ---

    def stats(self) -> dict[str, Any]:
        """Return store location, entry counts and on-disk size in bytes."""
        specs = value_sets = 0
        with self._backend("read statistics"):
            for key in self._cache.iterkeys():
                if isinstance(key, tuple) and key and key[0] == _SPEC:
                    specs += 1
                elif isinstance(key, tuple) and key and key[0] == _VALUES:
                    value_sets += 1
            size = self._cache.volume()
        return {
            "directory": str(self._path),
            "specs": specs,
            "value_sets": value_sets,
            "size_bytes": size,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        self._cache.close()

    # --- Internals ---

    @contextmanager
    def _backend(self, action: str) -> Iterator[None]:
        try:
            yield
        except _BACKEND_ERRORS as exc:
            raise StorageError(f"Spec store failed to {action}: {exc}") from exc

    @staticmethod
    def _load_record(command_key: str, raw: Any) -> Optional[SpecRecord]:
        if raw is None:
            return None
        try:
            return SpecRecord.model_validate(raw)
        except ValidationError as exc:
            warning(f"Ignoring corrupt cache entry for {display_name(command_key)}: {exc}")
            return None


def _value_entries(raw: Any) -> dict[str, dict[str, Any]]:
    if not isinstance(raw, dict):
        return {}
    return {
        flag: entry
        for flag, entry in raw.items()
        if isinstance(entry, dict) and isinstance(entry.get("value"), str)
    }
