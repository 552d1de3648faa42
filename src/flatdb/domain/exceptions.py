"""Errors raised by the store.

Every failure carries an ``ErrorKind`` so callers can branch on the kind
while the error log keeps only the human-readable message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Kinds of store failure."""

    INVALID_ADDRESS = "invalid_address"
    DATABASE_NOT_REGISTERED = "database_not_registered"
    IO_ERROR = "io_error"
    KEY_ALREADY_EXISTS = "key_already_exists"
    KEY_NOT_FOUND = "key_not_found"
    UNSUPPORTED_TYPE = "unsupported_type"
    CORRUPT_RECORD = "corrupt_record"
    UNKNOWN_ACTION = "unknown_action"
    INVALID_ARGUMENT = "invalid_argument"
    CONFIGURATION = "configuration"


class StoreError(Exception):
    """Base class for all store failures."""

    kind: ErrorKind

    @property
    def message(self) -> str:
        return str(self)


class InvalidAddressError(StoreError):
    """Raised when an address string cannot be parsed."""

    kind = ErrorKind.INVALID_ADDRESS


class DatabaseNotRegisteredError(StoreError):
    """Raised when a database name is missing from the ``create`` option."""

    kind = ErrorKind.DATABASE_NOT_REGISTERED


class StorageIOError(StoreError):
    """Raised when a database file cannot be created, opened, written,
    renamed or removed."""

    kind = ErrorKind.IO_ERROR


class KeyAlreadyExistsError(StoreError):
    """Raised when inserting a key that is already stored."""

    kind = ErrorKind.KEY_ALREADY_EXISTS


class KeyNotFoundError(StoreError):
    """Raised when a key is read, updated or deleted but not stored."""

    kind = ErrorKind.KEY_NOT_FOUND


class UnsupportedTypeError(StoreError):
    """Raised when a value cannot be encoded."""

    kind = ErrorKind.UNSUPPORTED_TYPE


class CorruptRecordError(StoreError):
    """Raised when a stored line cannot be decoded."""

    kind = ErrorKind.CORRUPT_RECORD


class UnknownActionError(StoreError):
    """Raised for an action name outside the action grammar."""

    kind = ErrorKind.UNKNOWN_ACTION


class InvalidArgumentError(StoreError):
    """Raised when an action receives an argument it cannot use."""

    kind = ErrorKind.INVALID_ARGUMENT


class ConfigurationError(StoreError):
    """Raised when the storage configuration is unusable or locked."""

    kind = ErrorKind.CONFIGURATION
