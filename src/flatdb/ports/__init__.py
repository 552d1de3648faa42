"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: services offered to the engine facade (ReadCache)
- Outbound ports: dependencies on the file system (Storage)

Adapters implement these ports with concrete functionality.
"""

from flatdb.ports.inbound import DEFAULT_CAPACITY, ReadCache, ReadCacheStats
from flatdb.ports.outbound import LockMode, OpenMode, Storage, StorageHandle

__all__ = [
    # Inbound ports
    "ReadCache",
    "ReadCacheStats",
    "DEFAULT_CAPACITY",
    # Outbound ports
    "Storage",
    "StorageHandle",
    "OpenMode",
    "LockMode",
]
