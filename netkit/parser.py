"""Big-endian parsing from, and serialisation to, lists of byte strings."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any, Union

BytesLike = Union[bytes, bytearray, memoryview]


def _is_bytes_like(value: object) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview))


class Parser:
    """Reads big-endian integers and byte strings from a list of buffers.

    Running past the end of the input sets an error flag instead of raising.
    """

    def __init__(self, buffers: BytesLike | Iterable[BytesLike]) -> None:
        if _is_bytes_like(buffers):
            buffers = [buffers]  # type: ignore[list-item]
        self._chunks: deque[bytes] = deque(bytes(b) for b in buffers if len(b))  # type: ignore[union-attr]
        self._skip = 0
        self._size = sum(len(b) for b in self._chunks)
        self._error = False

    def __len__(self) -> int:
        return self._size

    def has_error(self) -> bool:
        return self._error

    def set_error(self) -> None:
        self._error = True

    def remove_prefix(self, n: int) -> None:
        """Discard up to ``n`` bytes from the front of the input."""
        while n and self._chunks:
            front = self._chunks[0]
            take = min(n, len(front) - self._skip)
            self._skip += take
            self._size -= take
            n -= take
            if self._skip == len(front):
                self._chunks.popleft()
                self._skip = 0

    def _check_size(self, size: int) -> None:
        if size > self._size:
            self._error = True

    def string(self, length: int) -> bytes:
        """Read exactly ``length`` bytes, or return b"" and flag an error."""
        self._check_size(length)
        if self._error:
            return b""
        out = bytearray()
        while len(out) < length:
            front = self._chunks[0]
            view = front[self._skip : self._skip + (length - len(out))]
            out += view
            self.remove_prefix(len(view))
        return bytes(out)

    def integer(self, size: int) -> int:
        """Read an unsigned big-endian integer of ``size`` bytes (0 on error)."""
        data = self.string(size)
        if self._error:
            return 0
        return int.from_bytes(data, "big")

    def all_remaining(self) -> list[bytes]:
        """Consume and return everything left, as a list of buffers."""
        out = list(self.buffer())
        self._chunks.clear()
        self._skip = 0
        self._size = 0
        return out

    def buffer(self) -> list[bytes]:
        """The unread input, without consuming it."""
        out = []
        skip = self._skip
        for chunk in self._chunks:
            out.append(chunk[skip:])
            skip = 0
        return out


class Serializer:
    """Writes big-endian integers and byte strings into a list of buffers."""

    def __init__(self, initial: BytesLike = b"") -> None:
        self._output: list[bytes] = []
        self._buffer = bytearray(initial)

    def integer(self, value: int, size: int) -> None:
        """Append ``value`` truncated to ``size`` bytes, big-endian."""
        mask = (1 << (8 * size)) - 1
        self._buffer += (value & mask).to_bytes(size, "big")

    def buffer(self, data: BytesLike | Iterable[BytesLike]) -> None:
        """Append a whole buffer, or each buffer of an iterable."""
        if _is_bytes_like(data):
            self.flush()
            self._output.append(bytes(data))  # type: ignore[arg-type]
            return
        for chunk in data:  # type: ignore[union-attr]
            self.buffer(chunk)

    def flush(self) -> None:
        self._output.append(bytes(self._buffer))
        self._buffer.clear()

    def output(self) -> list[bytes]:
        self.flush()
        return list(self._output)


def serialize(obj: Any) -> list[bytes]:
    """Serialise any object that has a ``serialize(serializer)`` method."""
    serializer = Serializer()
    obj.serialize(serializer)
    return serializer.output()


def parse(obj: Any, buffers: BytesLike | Iterable[BytesLike], *args: Any) -> bool:
    """Parse ``buffers`` into ``obj``; True when parsing succeeded."""
    parser = Parser(buffers)
    obj.parse(parser, *args)
    return not parser.has_error()