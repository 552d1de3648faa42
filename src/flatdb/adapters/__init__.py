"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Outbound adapters: file access and the in-process read cache
"""

from flatdb.adapters.outbound import FileHandle, FileStorage, InsertionOrderCache

__all__ = [
    # Outbound adapters
    "FileHandle",
    "FileStorage",
    "InsertionOrderCache",
]
