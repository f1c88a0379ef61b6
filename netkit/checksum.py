"""The Internet checksum (one's-complement sum of 16-bit words)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

Chunk = Union[bytes, bytearray, memoryview, str]

_MASK32 = 0xFFFFFFFF


class InternetChecksum:
    """Accumulates data and yields its Internet checksum."""

    def __init__(self, initial_sum: int = 0) -> None:
        self._sum = initial_sum & _MASK32
        self._odd = False

    def add(self, data: Chunk | Iterable[Chunk]) -> None:
        """Add bytes, or every chunk of an iterable of byte strings."""
        if isinstance(data, str):
            data = data.encode("latin-1")
        if isinstance(data, (bytes, bytearray, memoryview)):
            for byte in bytes(data):
                self._sum = (self._sum + (byte if self._odd else byte << 8)) & _MASK32
                self._odd = not self._odd
            return
        for chunk in data:
            self.add(chunk)

    def value(self) -> int:
        """The checksum of everything added so far."""
        total = self._sum
        while total > 0xFFFF:
            total = (total >> 16) + (total & 0xFFFF)
        return ~total & 0xFFFF