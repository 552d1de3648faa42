"""Value objects for the store domain.

Exports:
    Addressing:
        - Action: Closed enumeration of named operations
        - Address: Parsed ``database[.key][:action]`` request

    Databases:
        - Database: Name plus backing file paths
        - Value: Union of storable value types
        - KEY_SEPARATOR, TEMP_SUFFIX: Naming constants
"""

from flatdb.domain.value_objects.address import Action, Address
from flatdb.domain.value_objects.database import (
    KEY_SEPARATOR,
    TEMP_SUFFIX,
    Database,
    Value,
)

__all__ = [
    "Action",
    "Address",
    "Database",
    "Value",
    "KEY_SEPARATOR",
    "TEMP_SUFFIX",
]
