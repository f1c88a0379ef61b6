import socket

import pytest

from netkit.address import Address, GaiError


def test_numeric_address():
    address = Address("127.0.0.1", 80)
    assert address.ip() == "127.0.0.1"
    assert address.port() == 80
    assert address.ip_port() == ("127.0.0.1", 80)
    assert address.family() == socket.AF_INET


def test_to_string():
    assert str(Address("8.8.8.8", 53)) == "8.8.8.8:53"


def test_default_port_is_zero():
    assert Address("10.0.0.1").port() == 0


def test_zero_host_is_any():
    assert Address("0", 0).ip() == "0.0.0.0"


def test_resolve_numeric_service_string():
    assert Address("127.0.0.1", "80") == Address("127.0.0.1", 80)


def test_bad_numeric_host_raises_gai_error():
    with pytest.raises(GaiError) as info:
        Address("not-an-ip", 0)
    assert info.value.attempt == "getaddrinfo(not-an-ip, 0)"
    assert str(info.value).startswith("getaddrinfo(not-an-ip, 0): ")


def test_port_out_of_range():
    with pytest.raises(ValueError):
        Address("127.0.0.1", 70000)


def test_ipv4_numeric_round_trip():
    address = Address("18.243.0.1", 0)
    assert Address.from_ipv4_numeric(address.ipv4_numeric()) == address


def test_ipv4_numeric_value():
    assert Address("1.1.1.1", 0).ipv4_numeric() == 0x01010101


def test_from_ipv4_numeric_gives_dotted_quad():
    assert str(Address.from_ipv4_numeric(0x7F000001)) == "127.0.0.1:0"


def test_equality_and_hash():
    first = Address("192.168.0.1", 443)
    second = Address.from_sockaddr(socket.AF_INET, ("192.168.0.1", 443))
    assert first == second
    assert hash(first) == hash(second)
    assert Address("192.168.0.1", 444) != first
    assert len({first, second}) == 1


def test_sockaddr_usable_by_socket_module():
    address = Address("127.0.0.1", 0)
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(address.sockaddr())
        bound = Address.from_sockaddr(socket.AF_INET, sock.getsockname())
    assert bound.ip() == "127.0.0.1"
    assert bound.port() > 0


def test_ipv6_address():
    address = Address.from_sockaddr(socket.AF_INET6, ("::1", 53, 0, 0))
    assert address.ip_port() == ("::1", 53)
    assert str(address) == "::1:53"
    with pytest.raises(RuntimeError, match="non-IPV4"):
        address.ipv4_numeric()


def test_non_internet_address():
    address = Address.from_sockaddr(socket.AF_UNIX, "/tmp/netkit-test.sock")
    assert str(address) == "(non-Internet address)"
    with pytest.raises(RuntimeError, match="non-Internet"):
        address.ip_port()
    with pytest.raises(RuntimeError, match="non-IPV4"):
        address.ipv4_numeric()


def test_from_ipv4_numeric_out_of_range():
    with pytest.raises(ValueError):
        Address.from_ipv4_numeric(1 << 32)