"""Address and action value objects.

An address names a database, an optional record key and an optional
action using the grammar ``database['.' key][':' action]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Action(Enum):
    """Named query and mutation operations.

    The enumeration is closed: the address parser rejects any other name
    and the engine facade installs exactly one handler per member.
    """

    COUNT = "count"
    DELETE = "delete"
    DROP = "drop"
    ERROR = "error"
    ERRORS = "errors"
    KEY = "key"
    KEYS = "keys"
    MAX = "max"
    SELECT = "select"
    UPDATE = "update"

    @property
    def requires_key(self) -> bool:
        """Whether the action operates on one record and needs a key."""
        return self in (Action.DELETE, Action.KEY, Action.UPDATE)

    @property
    def reads_error_log(self) -> bool:
        """Whether the action is served from the error log, not a file."""
        return self in (Action.ERROR, Action.ERRORS)


@dataclass(frozen=True, slots=True)
class Address:
    """A parsed request address.

    Attributes:
        database: Database name (the ``tag``).
        key: Explicit record key, or None.
        action: Requested action, or None for a plain get/set.
    """

    database: str
    key: str | None = None
    action: Action | None = None

    @property
    def auto_key(self) -> bool:
        """True when the address asks for an auto-increment insert."""
        return self.key is None and self.action is None

    def __str__(self) -> str:
        text = self.database
        if self.key is not None:
            text += f".{self.key}"
        if self.action is not None:
            text += f":{self.action.value}"
        return text
