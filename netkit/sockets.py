"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Union

from netkit.address import Address
from netkit.errors import UnixError
from netkit.file_descriptor import READ_BUFFER_SIZE, FileDescriptor

BytesLike = Union[bytes, bytearray, memoryview]

AF_PACKET = getattr(socket, "AF_PACKET", 17)
_SO_PROTOCOL = getattr(socket, "SO_PROTOCOL", 38)
_SO_DOMAIN = getattr(socket, "SO_DOMAIN", 39)
_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_SOL_PACKET = 263
_PACKET_ADD_MEMBERSHIP = 1
_PACKET_MR_PROMISC = 1


class Socket(FileDescriptor):
    """A network socket.

    Without ``fd`` a new socket is created; with ``fd`` the given descriptor
    is taken over after checking that its domain, type and protocol match.
    """

    def __init__(
        self,
        domain: int,
        type_: int,
        protocol: int = 0,
        fd: FileDescriptor | None = None,
    ) -> None:
        if fd is None:
            try:
                number = socket.socket(domain, type_, protocol).detach()
            except OSError as exc:
                raise UnixError("socket", exc.errno) from exc
            super().__init__(number)
            return

        self._wrapper = fd._wrapper
        if self._getsockopt(socket.SOL_SOCKET, _SO_DOMAIN) != domain:
            raise RuntimeError("socket domain mismatch")
        if self._getsockopt(socket.SOL_SOCKET, socket.SO_TYPE) != type_:
            raise RuntimeError("socket type mismatch")
        if self._getsockopt(socket.SOL_SOCKET, _SO_PROTOCOL) != protocol:
            raise RuntimeError("socket protocol mismatch")

    @contextmanager
    def _socket(self) -> Iterator[socket.socket]:
        """A temporary socket object over this descriptor; it never closes it."""
        sock = socket.socket(fileno=self.fd_num())
        try:
            yield sock
        finally:
            sock.detach()

    def _check(self, attempt: str, exc: OSError) -> None:
        """Swallow would-block errors on non-blocking sockets; raise the rest."""
        if not self._would_block(exc):
            raise UnixError(attempt, exc.errno) from exc

    def _getsockopt(self, level: int, option: int) -> int:
        with self._socket() as sock:
            try:
                return sock.getsockopt(level, option)
            except OSError as exc:
                raise UnixError("getsockopt", exc.errno) from exc

    def _setsockopt(self, level: int, option: int, value: int | bytes) -> None:
        with self._socket() as sock:
            try:
                sock.setsockopt(level, option, value)
            except OSError as exc:
                raise UnixError("setsockopt", exc.errno) from exc

    def _get_address(self, name: str) -> Address:
        with self._socket() as sock:
            try:
                raw = sock.getsockname() if name == "getsockname" else sock.getpeername()
            except OSError as exc:
                raise UnixError(name, exc.errno) from exc
            return Address.from_sockaddr(sock.family, raw)

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        with self._socket() as sock:
            try:
                sock.bind(address.sockaddr())
            except OSError as exc:
                self._check("bind", exc)

    def bind_to_device(self, device_name: str) -> None:
        """Bind the socket to a network device."""
        self._setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, device_name.encode())

    def connect(self, address: Address) -> None:
        """Connect to a peer address."""
        with self._socket() as sock:
            try:
                sock.connect(address.sockaddr())
            except OSError as exc:
                self._check("connect", exc)

    def shutdown(self, how: int) -> None:
        """Shut down reading (SHUT_RD), writing (SHUT_WR) or both (SHUT_RDWR)."""
        with self._socket() as sock:
            try:
                sock.shutdown(how)
            except OSError as exc:
                self._check("shutdown", exc)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket.shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        return self._get_address("getsockname")

    def peer_address(self) -> Address:
        return self._get_address("getpeername")

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

    def raise_if_error(self) -> None:
        """Raise UnixError if the socket has a pending error."""
        socket_error = self._getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if socket_error:
            raise UnixError("socket error", socket_error)


class DatagramSocket(Socket):
    """A socket that sends and receives whole datagrams."""

    def recv(self) -> tuple[Address | None, bytes]:
        """Receive a datagram and its sender's address.

        Raises RuntimeError if the datagram is larger than the read buffer.
        A non-blocking socket with nothing waiting gives ``(None, b"")``.
        """
        buf = bytearray(READ_BUFFER_SIZE)
        with self._socket() as sock:
            family = sock.family
            try:
                count, source = sock.recvfrom_into(buf, 0, socket.MSG_TRUNC)
            except OSError as exc:
                self._check("recvfrom", exc)
                self._register_read()
                return None, b""
        if count > len(buf):
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return Address.from_sockaddr(family, source), bytes(buf[:count])

    def sendto(self, destination: Address, payload: BytesLike) -> None:
        """Send a datagram to ``destination``."""
        with self._socket() as sock:
            try:
                sock.sendto(payload, destination.sockaddr())
            except OSError as exc:
                self._check("sendto", exc)
        self._register_write()

    def send(self, payload: BytesLike) -> None:
        """Send a datagram to the connected peer."""
        with self._socket() as sock:
            try:
                sock.send(payload)
            except OSError as exc:
                self._check("send", exc)
        self._register_write()


class UDPSocket(DatagramSocket):
    """An unbound, unconnected UDP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM)


class TCPSocket(Socket):
    """A TCP socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM)

    @classmethod
    def _from_fd(cls, fd: FileDescriptor) -> TCPSocket:
        conn = cls.__new__(cls)
        Socket.__init__(conn, socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, fd)
        return conn

    def listen(self, backlog: int = 16) -> None:
        """Mark the socket as accepting incoming connections."""
        with self._socket() as sock:
            try:
                sock.listen(backlog)
            except OSError as exc:
                self._check("listen", exc)

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        with self._socket() as sock:
            try:
                conn, _ = sock.accept()
            except OSError as exc:
                raise UnixError("accept", exc.errno) from exc
        return TCPSocket._from_fd(FileDescriptor(conn.detach()))


class PacketSocket(DatagramSocket):
    """A link-layer packet socket."""

    def __init__(self, type_: int, protocol: int) -> None:
        super().__init__(AF_PACKET, type_, protocol)

    def set_promiscuous(self) -> None:
        """Put the bound interface into promiscuous mode."""
        local = self.local_address()
        if local.family() != AF_PACKET:
            raise RuntimeError("Address conversion failure")
        ifindex = socket.if_nametoindex(local.sockaddr()[0])
        request = struct.pack("iHH8s", ifindex, _PACKET_MR_PROMISC, 0, b"")
        self._setsockopt(_SOL_PACKET, _PACKET_ADD_MEMBERSHIP, request)


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket made from an existing descriptor."""

    def __init__(self, fd: FileDescriptor) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, 0, fd)


class LocalDatagramSocket(DatagramSocket):
    """An unbound, unconnected Unix-domain datagram socket."""

    def __init__(self) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_DGRAM)