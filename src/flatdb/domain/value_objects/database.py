"""Database value object and the stored value type."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

Value = Union[str, int, float, list["Value"], dict[str, "Value"]]
"""A storable value: string, integer, float, or a list/dict built from those."""

KEY_SEPARATOR = "."
"""Separator between database name and key in a fully-qualified key."""

TEMP_SUFFIX = ".tmp"


@dataclass(frozen=True, slots=True)
class Database:
    """A named database backed by exactly one file.

    Attributes:
        name: Database name as it appears in addresses.
        path: Primary data file.
    """

    name: str
    path: Path

    @classmethod
    def at(cls, root: Path, name: str, ext: str, gzip: bool = False) -> Database:
        """Build the database rooted at ``root``.

        The file is named ``<name><ext>``, with ``.gz`` appended when the
        store is gzip-compressed.
        """
        filename = f"{name}{ext}{'.gz' if gzip else ''}"
        return cls(name=name, path=Path(root) / filename)

    @property
    def temp_path(self) -> Path:
        """Sibling file used while a replace is in progress."""
        return self.path.with_name(self.path.name + TEMP_SUFFIX)

    def qualify(self, key: str) -> str:
        """Return the fully-qualified ``database.key`` form of ``key``."""
        return f"{self.name}{KEY_SEPARATOR}{key}"
