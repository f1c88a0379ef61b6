"""Networking primitives: checksums, wire parsing, IPv4 headers, file descriptors, addresses, sockets, TUN/TAP and an event loop."""

__version__ = "0.1.0"