"""Explicit result type for engine calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flatdb.domain.exceptions import StoreError


class _Failure:
    """Falsy sentinel returned by a failed call when errors are not raised."""

    _instance: _Failure | None = None

    def __new__(cls) -> _Failure:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "FAILURE"


FAILURE = _Failure()


@dataclass(frozen=True)
class Result:
    """Outcome of one engine call: a value or a StoreError, never both."""

    value: Any = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> Result:
        return cls(value=value)

    @classmethod
    def failure(cls, error: StoreError) -> Result:
        return cls(error=error)

    def unwrap(self) -> Any:
        """Return the value, raising the error of a failed call."""
        if self.error is not None:
            raise self.error
        return self.value
