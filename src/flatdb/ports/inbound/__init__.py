"""Inbound ports - services the engine facade builds on."""

from flatdb.ports.inbound.read_cache import DEFAULT_CAPACITY, ReadCache, ReadCacheStats

__all__ = [
    "ReadCache",
    "ReadCacheStats",
    "DEFAULT_CAPACITY",
]
