"""Persistent storage for helpspec.

This package provides :class:`SpecStore`, which keeps synthesized
:class:`~helpspec.models.CommandSpec` objects and remembered flag values in
a :mod:`diskcache` directory. Specs are keyed by command identity and are
considered fresh only while their ``version_hash`` matches the current
documentation.

The store is opened by :func:`helpspec.app.main` commands at the path
returned by :func:`~helpspec.config.get_store_path`.
"""

from helpspec.cache.store import SpecStore

__all__ = ["SpecStore"]
