"""Socket addresses and name resolution."""

from __future__ import annotations

import ipaddress
import socket
from typing import Any

from netkit.errors import TaggedError

_INTERNET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


class GaiError(TaggedError):
    """A failure reported by address or name resolution."""


def _resolve(node: str, service: str, flags: int) -> tuple[int, Any]:
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as exc:
        raise GaiError(f"getaddrinfo({node}, {service})", exc.errno, exc.strerror) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _, _, _, sockaddr = results[0]
    return family, sockaddr


class Address:
    """An IPv4 socket address, or any socket address built from raw parts.

    With an integer ``service`` the host must be a dotted quad and nothing
    is looked up; with a string ``service`` both host and service are
    resolved (e.g. "http" is port 80).
    """

    def __init__(self, host: str, service: str | int = 0) -> None:
        if isinstance(service, int):
            if not 0 <= service <= 0xFFFF:
                raise ValueError(f"port out of range: {service}")
            flags = socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
            family, sockaddr = _resolve(host, str(service), flags)
        else:
            family, sockaddr = _resolve(host, service, socket.AI_ALL)
        self._family = family
        self._sockaddr = sockaddr

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> Address:
        """Wrap an address family and a socket-module address value."""
        address = cls.__new__(cls)
        address._family = family
        address._sockaddr = tuple(sockaddr) if isinstance(sockaddr, list) else sockaddr
        return address

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """An IPv4 address (port 0) from its 32-bit numeric value."""
        return cls.from_sockaddr(socket.AF_INET, (str(ipaddress.IPv4Address(ip_address)), 0))

    def ip_port(self) -> tuple[str, int]:
        """The numeric IP address string and the port."""
        if self._family not in _INTERNET_FAMILIES:
            raise RuntimeError("Address.ip_port() called on non-Internet address")
        flags = socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
        try:
            host, port = socket.getnameinfo(self._sockaddr, flags)
        except socket.gaierror as exc:
            raise GaiError("getnameinfo", exc.errno, exc.strerror) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as an integer in host order."""
        if self._family != socket.AF_INET:
            raise RuntimeError("ipv4_numeric called on non-IPV4 address")
        return int(ipaddress.IPv4Address(self._sockaddr[0]))

    def family(self) -> int:
        return self._family

    def sockaddr(self) -> Any:
        """The address in the form the socket module takes."""
        return self._sockaddr

    def __str__(self) -> str:
        if self._family in _INTERNET_FAMILIES:
            host, port = self.ip_port()
            return f"{host}:{port}"
        return "(non-Internet address)"

    def __repr__(self) -> str:
        return f"Address({self._family!r}, {self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))