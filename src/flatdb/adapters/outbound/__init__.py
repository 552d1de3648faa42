"""Outbound adapters - implementations of the storage and cache ports."""

from flatdb.adapters.outbound.file_storage import FileHandle, FileStorage
from flatdb.adapters.outbound.insertion_order_cache import InsertionOrderCache

__all__ = [
    "FileHandle",
    "FileStorage",
    "InsertionOrderCache",
]
