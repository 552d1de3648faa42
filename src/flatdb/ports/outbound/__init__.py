"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for the file system that the store
depends on.
"""

from flatdb.ports.outbound.storage import LockMode, OpenMode, Storage, StorageHandle

__all__ = [
    "Storage",
    "StorageHandle",
    "OpenMode",
    "LockMode",
]
