"""Record entity and the on-disk line layout.

Each record occupies exactly one line of its database file:

    <key>:<encoded value>\\n

The key never contains the separator (the address charset allows ``:``
only as the action delimiter) and the encoded value never contains the
separator or a newline, so splitting at the first separator is lossless.
"""

from __future__ import annotations

from dataclasses import dataclass

from flatdb.domain.value_objects import Value

FIELD_SEPARATOR = ":"
LINE_TERMINATOR = "\n"


def format_line(key: str, token: str) -> str:
    """Join a key and an encoded value into one terminated line."""
    return f"{key}{FIELD_SEPARATOR}{token}{LINE_TERMINATOR}"


def split_line(line: str) -> tuple[str, str]:
    """Split a raw line into ``(key, token)``.

    A line without a separator yields an empty token.
    """
    key, _, token = line.rstrip(LINE_TERMINATOR).partition(FIELD_SEPARATOR)
    return key, token


def line_key(line: str) -> str:
    """Return only the key segment of a raw line."""
    return split_line(line)[0]


@dataclass(frozen=True)
class Record:
    """A decoded key/value pair."""

    key: str
    value: Value
