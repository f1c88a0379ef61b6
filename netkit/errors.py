"""Exception types and small checking helpers for system-level operations."""

from __future__ import annotations

import os
from typing import TypeVar

T = TypeVar("T")


class TaggedError(RuntimeError):
    """An error tagged with the operation that was attempted."""

    def __init__(self, attempt: str, error_code: int, message: str) -> None:
        super().__init__(f"{attempt}: {message}")
        self.attempt = attempt
        self.error_code = error_code
        self.message = message


class UnixError(TaggedError):
    """A failed system call, described by its errno value."""

    def __init__(self, attempt: str, error_code: int) -> None:
        super().__init__(attempt, error_code, os.strerror(error_code))

    @property
    def errno(self) -> int:
        return self.error_code


def check_system_call(attempt: str, return_value: int) -> int:
    """Return a non-negative result unchanged; raise UnixError otherwise.

    A negative return value is taken to be a negated errno value.
    """
    if return_value >= 0:
        return return_value
    raise UnixError(attempt, -return_value)


def notnull(context: str, value: T | None) -> T:
    """Return ``value``, raising RuntimeError if it is None."""
    if value is None:
        raise RuntimeError(f"{context}: returned null pointer")
    return value