"""Application layer for the flat-file store.

The application layer orchestrates domain logic to fulfill use cases.

Exports:
    StoreEngine:
        - StoreEngine: Facade over parsing, cache, queries and mutations
        - EngineState: Engine lifecycle states
        - get_engine, reset_engine: Process-wide engine
        - configure, store: Calls on the process-wide engine
    Result:
        - Result: Explicit value-or-error outcome of a call
        - FAILURE: Falsy sentinel for failed calls when errors are not raised
"""

from flatdb.application.result import FAILURE, Result
from flatdb.application.store_engine import (
    EngineState,
    StoreEngine,
    configure,
    get_engine,
    reset_engine,
    store,
)

__all__ = [
    "StoreEngine",
    "EngineState",
    "get_engine",
    "reset_engine",
    "configure",
    "store",
    "Result",
    "FAILURE",
]
