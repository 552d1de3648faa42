"""Record codec: value <-> line-safe token.

Values are serialized to JSON and passed through standard base64. The
base64 alphabet (``A-Z a-z 0-9 + / =``) contains neither the field
separator nor a newline, so a token can be embedded in a record line
without escaping.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from flatdb.domain.entities import Record, format_line, split_line
from flatdb.domain.exceptions import CorruptRecordError, UnsupportedTypeError
from flatdb.domain.value_objects import Value

ALLOWED_TYPES = "dict, float, int, list, str"


def _check_value(value: Any) -> None:
    """Raise UnsupportedTypeError unless ``value`` is a storable Value."""
    # bool is an int subclass but is not a storable value
    if isinstance(value, bool):
        raise UnsupportedTypeError(
            f"Invalid data type bool (allowed types: {ALLOWED_TYPES})"
        )
    if isinstance(value, (str, int, float)):
        return
    if isinstance(value, list):
        for item in value:
            _check_value(item)
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(
                    f"Invalid mapping key type {type(key).__name__} (mapping keys must be str)"
                )
            _check_value(item)
        return
    raise UnsupportedTypeError(
        f"Invalid data type {type(value).__name__} (allowed types: {ALLOWED_TYPES})"
    )


class RecordCodec:
    """Encodes values into tokens and record lines, and back.

    Example:
        >>> codec = RecordCodec()
        >>> token = codec.encode({"name": "Alice", "tags": [1, 2.5]})
        >>> codec.decode(token)
        {'name': 'Alice', 'tags': [1, 2.5]}
    """

    def encode(self, value: Value) -> str:
        """Encode a value into a token free of separators and newlines.

        Raises:
            UnsupportedTypeError: If ``value`` is not a storable Value.
        """
        _check_value(value)
        payload = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")

    def decode(self, token: str) -> Value:
        """Decode a token produced by ``encode``.

        Raises:
            CorruptRecordError: If the token is not valid base64, UTF-8 or
                JSON, or decodes to an unsupported type.
        """
        try:
            payload = base64.b64decode(token.strip(), validate=True).decode("utf-8")
            value = json.loads(payload)
            _check_value(value)
        except (binascii.Error, UnicodeDecodeError, ValueError, UnsupportedTypeError) as e:
            raise CorruptRecordError(f"Corrupt record value {token[:32]!r}: {e}") from e
        return value

    def encode_line(self, key: str, value: Value) -> str:
        """Encode a full record line, newline included."""
        return format_line(key, self.encode(value))

    def decode_line(self, line: str) -> Record:
        """Decode a raw record line into a Record."""
        key, token = split_line(line)
        return Record(key=key, value=self.decode(token))
