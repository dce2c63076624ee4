"""Documentation parsing -- collect help text, find flag candidates, decode answers.

This sub-package holds the local, synchronous half of the pipeline:

* :mod:`~helpspec.parser.docs` -- runs ``--help``/``man`` and hashes the
  resulting :class:`~helpspec.parser.docs.Documentation`.
* :mod:`~helpspec.parser.flags` -- heuristic flag-group extraction behind the
  :class:`~helpspec.parser.flags.FlagExtractor` protocol.
* :mod:`~helpspec.parser.decoder` -- tolerant JSON decoding of completion
  answers, with pluggable diagnostic sinks.

Typical usage::

    from helpspec.parser import fetch_documentation, extract_flag_groups

    docs = fetch_documentation("tar")
    groups = extract_flag_groups(docs.combined_text())
"""

from helpspec.parser.docs import (
    Documentation,
    command_key,
    content_hash,
    display_name,
    fetch_documentation,
)
from helpspec.parser.flags import FlagExtractor, HeuristicFlagExtractor, extract_flag_groups

__all__ = [
    "Documentation",
    "FlagExtractor",
    "HeuristicFlagExtractor",
    "command_key",
    "content_hash",
    "display_name",
    "extract_flag_groups",
    "fetch_documentation",
]
