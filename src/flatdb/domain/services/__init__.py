"""Domain services for the store.

Exports:
    - RecordCodec: Value <-> line-safe token
    - parse_address, parse_action: Address grammar
    - QueryEngine: Read-only scans (count, key, keys, max, select, find)
    - MutationEngine: Insert and the copy-filter-rename replace protocol
"""

from flatdb.domain.services.address_parser import parse_action, parse_address
from flatdb.domain.services.mutation_engine import MutationEngine
from flatdb.domain.services.query_engine import QueryEngine, numeric_key
from flatdb.domain.services.record_codec import RecordCodec

__all__ = [
    "RecordCodec",
    "parse_address",
    "parse_action",
    "QueryEngine",
    "MutationEngine",
    "numeric_key",
]
