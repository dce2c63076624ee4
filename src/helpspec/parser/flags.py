"""Heuristic flag-candidate extraction from raw help and man-page text.

The extractor scans documentation line by line and groups the dash-prefixed
tokens it finds into *flag groups* -- small ordered lists of spellings that
are believed to denote the same option::

    >>> HeuristicFlagExtractor().extract(
    ...     "  -v, --verbose  Enable verbose output\\n"
    ...     "  --output <FILE>  Output path"
    ... )
    [['-v', '--verbose'], ['--output']]

This is a recall-oriented heuristic, not a parser. False positives are
harmless: the completion service simply returns a thin description for a
token that turns out not to be an option.

Strategies implement the :class:`FlagExtractor` protocol so an alternative
tokenizer can be passed to :class:`~helpspec.generator.synthesizer.Synthesizer`
without touching the scheduler.
"""

from __future__ import annotations

import re
from typing import Protocol

# A line that begins with whitespace and then a dash: the classic option listing.
_INDENTED_OPTION_LINE = re.compile(r"^[ \t]+-")

# Flags and their description are separated by a run of two or more spaces or a tab.
_COLUMN_GAP = re.compile(r" {2,}|\t")

# One dash-prefixed token; stops before "=VALUE", "[=VALUE]", "<PLACEHOLDER>", "," etc.
_FLAG_TOKEN = re.compile(r"(?:^|(?<=[\s,/|(\[]))(--?[A-Za-z0-9?@#][A-Za-z0-9_.?@#+-]*)")

# An un-indented line holding nothing but a long option and an optional placeholder.
_STANDALONE_LONG_OPTION = re.compile(
    r"^(--[A-Za-z0-9][A-Za-z0-9_.-]*)(?:(?:\[?=|\s+)\S*\]?)?\s*$"
)


class FlagExtractor(Protocol):
    """Strategy interface for turning documentation into flag groups."""

    def extract(self, text: str) -> list[list[str]]:
        """Return flag groups in documentation order, each group non-empty."""
        ...


class HeuristicFlagExtractor:
    """Default :class:`FlagExtractor` based on indentation patterns.

    Lines are scanned in order with one de-duplication set, so a token is
    assigned to the first group that mentions it and dropped from later ones:

    * an indented line starting with ``-`` contributes every dash-prefixed
      token of its flag column as one group;
    * an un-indented line consisting of a single long option (e.g. the
      terse ``--verbose`` listings some tools print) contributes that option.
    """

    def extract(self, text: str) -> list[list[str]]:
        groups: list[list[str]] = []
        seen: set[str] = set()

        for line in text.splitlines():
            tokens = self._line_tokens(line)
            group: list[str] = []
            for token in tokens:
                if token in seen:
                    continue
                seen.add(token)
                group.append(token)
            if group:
                groups.append(group)

        return groups

    def _line_tokens(self, line: str) -> list[str]:
        if _INDENTED_OPTION_LINE.match(line):
            flag_column = _COLUMN_GAP.split(line.strip(), maxsplit=1)[0]
            return [_clean(match) for match in _FLAG_TOKEN.findall(flag_column)]

        match = _STANDALONE_LONG_OPTION.match(line)
        if match:
            return [_clean(match.group(1))]
        return []


def _clean(token: str) -> str:
    return token.rstrip(".")


def extract_flag_groups(text: str) -> list[list[str]]:
    """Run the default :class:`HeuristicFlagExtractor` over *text*."""
    return HeuristicFlagExtractor().extract(text)
