"""Reference-counted handles to kernel file descriptors."""

from __future__ import annotations

import errno
import fcntl
import os
import sys
from collections.abc import Iterable
from typing import Union

from netkit.errors import UnixError

BytesLike = Union[bytes, bytearray, memoryview]

READ_BUFFER_SIZE = 16384

_WOULD_BLOCK = (errno.EAGAIN, errno.EINPROGRESS)


class _FDWrapper:
    """The shared state behind one kernel file descriptor; closes it when collected."""

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise RuntimeError(f"invalid fd number:{fd}")
        try:
            flags = fcntl.fcntl(fd, fcntl.F_GETFL)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno) from exc
        self.fd = fd
        self.non_blocking = bool(flags & os.O_NONBLOCK)
        self.eof = False
        self.read_count = 0
        self.write_count = 0
        self.closed = False

    def would_block(self, exc: OSError) -> bool:
        return self.non_blocking and exc.errno in _WOULD_BLOCK

    def close(self) -> None:
        try:
            os.close(self.fd)
        except OSError as exc:
            if not self.would_block(exc):
                raise UnixError("close", exc.errno) from exc
        self.eof = True
        self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except Exception as exc:  # never raise from a finaliser
            print(f"Exception while closing file descriptor: {exc}", file=sys.stderr)


class FileDescriptor:
    """A handle to a kernel file descriptor.

    Handles made with :meth:`duplicate` share the descriptor, its flags and
    its counters; the descriptor is closed when the last handle goes away.
    """

    def __init__(self, fd: int) -> None:
        self._wrapper = _FDWrapper(fd)

    @classmethod
    def _sharing(cls, wrapper: _FDWrapper) -> FileDescriptor:
        handle = cls.__new__(cls)
        handle._wrapper = wrapper
        return handle

    def _set_eof(self) -> None:
        self._wrapper.eof = True

    def _register_read(self) -> None:
        self._wrapper.read_count += 1

    def _register_write(self) -> None:
        self._wrapper.write_count += 1

    def _would_block(self, exc: OSError) -> bool:
        return self._wrapper.would_block(exc)

    def read(self, size: int = READ_BUFFER_SIZE) -> bytes:
        """Read up to ``size`` bytes (a zero size means the default buffer size).

        Returns b"" at end of file, and also when a non-blocking descriptor
        has nothing to read; only the former sets :meth:`eof`.
        """
        size = size or READ_BUFFER_SIZE
        try:
            data = os.read(self.fd_num(), size)
        except OSError as exc:
            if self._would_block(exc):
                return b""
            raise UnixError("read", exc.errno) from exc
        self._register_read()
        if not data:
            self._set_eof()
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        return data

    def readv(self, sizes: Iterable[int]) -> list[bytes]:
        """Scatter-read into one buffer per entry of ``sizes``.

        Every buffer but the last has the size given for it; the last can take
        up to the default buffer size. Returns the filled part of each buffer.
        """
        sizes = list(sizes)
        if not sizes:
            return []
        buffers = [bytearray(n) for n in sizes[:-1]]
        buffers.append(bytearray(READ_BUFFER_SIZE))
        try:
            count = os.readv(self.fd_num(), buffers)
        except OSError as exc:
            if self._would_block(exc):
                return [b"" for _ in buffers]
            raise UnixError("read", exc.errno) from exc
        self._register_read()

        total = sum(len(buf) for buf in buffers)
        if count > total:
            raise RuntimeError("read() read more than requested")

        result = []
        remaining = count
        for buf in buffers:
            take = min(remaining, len(buf))
            result.append(bytes(buf[:take]))
            remaining -= take
        return result

    def write(self, data: BytesLike | Iterable[BytesLike]) -> int:
        """Write a buffer, or gather-write several; returns the bytes written."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            chunks = [data]
        else:
            chunks = list(data)
        total = sum(len(chunk) for chunk in chunks)

        try:
            written = os.writev(self.fd_num(), chunks)
        except OSError as exc:
            if not self._would_block(exc):
                raise UnixError("writev", exc.errno) from exc
            written = 0
        self._register_write()

        if written == 0 and total != 0:
            raise RuntimeError("write returned 0 given non-empty input buffer")
        if written > total:
            raise RuntimeError("write wrote more than length of input buffer")
        return written

    def close(self) -> None:
        """Close the underlying descriptor for every handle that shares it."""
        self._wrapper.close()

    def duplicate(self) -> FileDescriptor:
        """Another handle sharing this descriptor (no new kernel descriptor)."""
        return FileDescriptor._sharing(self._wrapper)

    def set_blocking(self, blocking: bool) -> None:
        """Switch between blocking (True) and non-blocking (False) mode."""
        try:
            flags = fcntl.fcntl(self.fd_num(), fcntl.F_GETFL)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno) from exc
        if blocking:
            flags &= ~os.O_NONBLOCK
        else:
            flags |= os.O_NONBLOCK
        try:
            fcntl.fcntl(self.fd_num(), fcntl.F_SETFL, flags)
        except OSError as exc:
            raise UnixError("fcntl", exc.errno) from exc
        self._wrapper.non_blocking = not blocking

    def fd_num(self) -> int:
        return self._wrapper.fd

    def eof(self) -> bool:
        return self._wrapper.eof

    def closed(self) -> bool:
        return self._wrapper.closed

    def read_count(self) -> int:
        return self._wrapper.read_count

    def write_count(self) -> int:
        return self._wrapper.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, *args: object) -> None:
        if not self.closed():
            self.close()