"""Handles to existing persistent TUN and TAP devices."""

from __future__ import annotations

import fcntl
import os
import struct

from netkit.errors import UnixError
from netkit.file_descriptor import FileDescriptor

CLONEDEV = "/dev/net/tun"

TUNSETIFF = 0x400454CA
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000
IFNAMSIZ = 16


def _make_ifreq(devname: str, is_tun: bool) -> bytes:
    """A ``struct ifreq`` naming the device, with the TUN/TAP flags set."""
    name = os.fsencode(devname)[: IFNAMSIZ - 1]
    flags = (IFF_TUN if is_tun else IFF_TAP) | IFF_NO_PI
    return struct.pack(f"{IFNAMSIZ}sH22x", name, flags)


class TunTapFD(FileDescriptor):
    """A descriptor for a TUN (IP datagrams) or TAP (Ethernet frames) device."""

    def __init__(self, devname: str, is_tun: bool) -> None:
        try:
            number = os.open(CLONEDEV, os.O_RDWR | os.O_CLOEXEC)
        except OSError as exc:
            raise UnixError("open", exc.errno) from exc
        super().__init__(number)
        try:
            fcntl.ioctl(self.fd_num(), TUNSETIFF, _make_ifreq(devname, is_tun))
        except OSError as exc:
            self.close()
            raise UnixError("ioctl", exc.errno) from exc


class TunFD(TunTapFD):
    """A descriptor for a TUN device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, True)


class TapFD(TunTapFD):
    """A descriptor for a TAP device."""

    def __init__(self, devname: str) -> None:
        super().__init__(devname, False)