"""
flatdb - Flat-file key/value store

Each database is one text file holding one record per line, addressed
as ``database.key``. Mutations go through a copy-filter-rename protocol
under advisory file locks, so readers only ever see complete files.
"""

__version__ = "0.1.0"

from flatdb.application import (  # noqa: E402
    FAILURE,
    EngineState,
    Result,
    StoreEngine,
    configure,
    get_engine,
    reset_engine,
    store,
)
from flatdb.domain.exceptions import (  # noqa: E402
    ConfigurationError,
    CorruptRecordError,
    DatabaseNotRegisteredError,
    ErrorKind,
    InvalidAddressError,
    InvalidArgumentError,
    KeyAlreadyExistsError,
    KeyNotFoundError,
    StorageIOError,
    StoreError,
    UnknownActionError,
    UnsupportedTypeError,
)

__all__ = [
    "__version__",
    "StoreEngine",
    "EngineState",
    "Result",
    "FAILURE",
    "configure",
    "get_engine",
    "reset_engine",
    "store",
    "StoreError",
    "ErrorKind",
    "ConfigurationError",
    "CorruptRecordError",
    "DatabaseNotRegisteredError",
    "InvalidAddressError",
    "InvalidArgumentError",
    "KeyAlreadyExistsError",
    "KeyNotFoundError",
    "StorageIOError",
    "UnknownActionError",
    "UnsupportedTypeError",
]
