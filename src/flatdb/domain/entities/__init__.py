"""Domain entities for the store.

Exports:
    Record:
        - Record: Decoded key/value pair
        - format_line, split_line, line_key: On-disk line layout helpers
        - FIELD_SEPARATOR, LINE_TERMINATOR: Layout constants
"""

from flatdb.domain.entities.record import (
    FIELD_SEPARATOR,
    LINE_TERMINATOR,
    Record,
    format_line,
    line_key,
    split_line,
)

__all__ = [
    "Record",
    "format_line",
    "split_line",
    "line_key",
    "FIELD_SEPARATOR",
    "LINE_TERMINATOR",
]
