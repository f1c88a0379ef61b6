# netkit

Building blocks for user-space networking on Linux.

| Module | What it provides |
| --- | --- |
| `netkit.errors` | `TaggedError`, `UnixError` (carries an errno value), `check_system_call()` and `notnull()` |
| `netkit.checksum` | `InternetChecksum`, the one's-complement Internet checksum |
| `netkit.parser` | `Parser` and `Serializer` for big-endian fields over lists of byte buffers, plus the `parse(obj, buffers)` and `serialize(obj)` helpers |
| `netkit.ipv4` | `IPv4Header` and `IPv4Datagram` (also available as `InternetDatagram`) |
| `netkit.rng` | `get_random_engine()`, a `random.Random` seeded from OS entropy |
| `netkit.file_descriptor` | `FileDescriptor`, a shared handle on a kernel descriptor that counts reads and writes and tracks EOF |
| `netkit.address` | `Address` for IPv4 socket addresses and name resolution, and `GaiError` |
| `netkit.sockets` | `UDPSocket`, `TCPSocket`, `PacketSocket`, `LocalStreamSocket`, `LocalDatagramSocket` |
| `netkit.tun` | `TunFD` and `TapFD` for existing persistent TUN/TAP devices |
| `netkit.eventloop` | `EventLoop`, `Direction`, `Result` and `RuleHandle` |

The package uses only the standard library. It relies on Linux interfaces
(`fcntl`, `poll`, packet sockets, `/dev/net/tun`).

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

Requires Python 3.10 or later.

## Checksums and parsing

`InternetChecksum.add()` accepts bytes, or an iterable of byte strings.
`value()` returns the 16-bit checksum.

A `Parser` does not raise when it runs out of input. It sets an error flag
instead, which `has_error()` reports. `Parser.integer(size)` reads an unsigned
big-endian integer. `Parser.string(length)` reads raw bytes.
`all_remaining()` consumes whatever input is left.

`Serializer.integer(value, size)` appends a big-endian integer.
`Serializer.buffer(data)` appends whole buffers. `output()` returns the list of
buffers written.

## Example: building and parsing an IPv4 header

```python
from netkit.ipv4 import IPv4Header
from netkit.parser import parse, serialize

header = IPv4Header(length=40, src=0x0A000001, dst=0x0A000002)
header.compute_checksum()
wire = serialize(header)

decoded = IPv4Header()
assert parse(decoded, wire)
print(decoded)  # IPv4 len=40 protocol=6 ttl=128 src=10.0.0.1 dst=10.0.0.2
```

IP options are skipped when a header is parsed, and they are not kept.
Parsing flags an error when any of these hold:

- the version is not 4;
- the header length is below 5 words;
- the checksum does not match.

`serialize()` writes the checksum field as it stands. Call `compute_checksum()`
first to set it.

## File descriptors and sockets

`FileDescriptor.duplicate()` returns another handle on the same kernel
descriptor, with the same flags and counters. The descriptor is closed when the
last handle is collected, or earlier by `close()`. A handle also works as a
context manager.

- `read(size)` returns `b""` at end of file, and `eof()` then becomes true.
- On a non-blocking descriptor, `read(size)` also returns `b""` when nothing is
  ready to read.
- `readv(sizes)` is a scatter read.
- `write(data)` writes one buffer, or gather-writes several, and returns the
  number of bytes written.
- `set_blocking()` switches between blocking and non-blocking mode.

An `Address` is built in one of three ways:

- From a dotted quad and a numeric port, as in `Address("127.0.0.1", 8080)`.
  Nothing is looked up.
- From a host name and a service name, as in `Address("localhost", "http")`.
  Both are resolved.
- With `Address.from_ipv4_numeric()` or `Address.from_sockaddr()`.

Name resolution is restricted to IPv4. Resolution failures raise `GaiError`.

The sockets are `FileDescriptor`s, so they have all of the calls above. They
also provide:

- `bind()`, `connect()`, `shutdown()`;
- `local_address()`, `peer_address()`;
- `set_reuseaddr()`, `bind_to_device()`;
- `raise_if_error()`.

On datagram sockets, `recv()` returns `(source_address, payload)`.
`TCPSocket` adds `listen()` and `accept()`.

## Example: an event loop over a UDP socket

```python
from netkit.address import Address
from netkit.eventloop import Direction, EventLoop
from netkit.sockets import UDPSocket

sock = UDPSocket()
sock.bind(Address("127.0.0.1", 0))

loop = EventLoop()
category = loop.add_category("udp")


def on_readable():
    source, payload = sock.recv()
    print(source, payload)


loop.add_fd_rule(category, sock, Direction.IN, on_readable)
print(loop.wait_next_event(1000))  # Result.SUCCESS or Result.TIMEOUT
```

Each call to `wait_next_event()` serves at most one rule and returns a
`Result`:

- `SUCCESS` when a rule was served;
- `TIMEOUT` when nothing happened before the timeout;
- `EXIT` when no remaining rule is interested in anything.

`add_rule()` adds a rule that is not tied to a descriptor. The loop runs its
callback for as long as its interest function returns true.

The loop raises `RuntimeError` when it detects a busy wait:

- a plain rule is still interested after 128 runs;
- a descriptor rule's callback neither read nor wrote while the rule stayed
  interested.

`RuleHandle.cancel()` removes a rule without calling its cancel callback.

## What this package does not include

This package provides the primitives listed above and nothing built on top of
them. In particular:

- there is no TCP implementation: no sender, receiver, reassembler or
  sequence-number arithmetic;
- there is no command-line program;
- IPv6 resolution is not supported.

## Running the tests

```
pytest
```