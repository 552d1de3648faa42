"""Key address parser.

Grammar::

    address  := database [ "." key ] [ ":" action ]
    charset  := [A-Za-z0-9_.:]

The action is everything after the first ``:``; the key is everything
after the first ``.`` of the remainder. An address with neither a key nor
an action requests an auto-increment insert.
"""

from __future__ import annotations

import re

from flatdb.domain.exceptions import InvalidAddressError, UnknownActionError
from flatdb.domain.value_objects import Action, Address

ALLOWED_CHARACTERS = "a-zA-Z0-9_:."
_INVALID_CHARACTER = re.compile(r"[^A-Za-z0-9_.:]")


def parse_action(name: str) -> Action | None:
    """Map an action name to its Action; an empty name means no action."""
    if not name:
        return None
    try:
        return Action(name)
    except ValueError:
        raise UnknownActionError(f'Invalid action "{name}" (unknown action)') from None


def parse_address(text: str) -> Address:
    """Parse an address string.

    Args:
        text: Address such as ``"users"``, ``"users.42"`` or ``"users:count"``.

    Returns:
        The parsed Address.

    Raises:
        InvalidAddressError: On empty input, characters outside the allowed
            set, an empty database name or an empty explicit key.
        UnknownActionError: If the action name is not a known Action.
    """
    if not isinstance(text, str) or not text:
        raise InvalidAddressError(f"Invalid key {text!r} (empty or not a string)")

    if _INVALID_CHARACTER.search(text):
        raise InvalidAddressError(
            f'Invalid key "{text}" (key allowed characters: "{ALLOWED_CHARACTERS}")'
        )

    target, _, action_name = text.partition(":")
    action = parse_action(action_name)

    database, dot, key = target.partition(".")
    if not database:
        raise InvalidAddressError(f'Invalid key "{text}" (missing database name)')
    if dot and not key:
        raise InvalidAddressError(f'Invalid key "{text}" (empty record key)')

    return Address(database=database, key=key if dot else None, action=action)
