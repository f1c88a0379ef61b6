import pytest

from netkit.checksum import InternetChecksum


def _checksum(*chunks, initial=0):
    check = InternetChecksum(initial)
    for chunk in chunks:
        check.add(chunk)
    return check.value()


def test_empty_checksum_is_all_ones():
    assert InternetChecksum().value() == 0xFFFF


def test_rfc1071_example():
    data = b"\x00\x01\xf2\x03\xf4\xf5\xf6\xf7"
    assert _checksum(data) == 0x220D


@pytest.mark.parametrize("split", [1, 2, 3, 5, 7])
def test_split_does_not_change_result(split):
    data = bytes(range(17, 60))
    whole = _checksum(data)
    parts = [data[i : i + split] for i in range(0, len(data), split)]
    assert _checksum(parts) == whole
    assert _checksum(*parts) == whole


@pytest.mark.parametrize(
    "data", [b"", b"\x00\x00", b"\xff\xff\xff\xff", bytes(range(64)), b"hello world!"]
)
def test_appending_checksum_gives_zero(data):
    ck = _checksum(data)
    assert _checksum(data + ck.to_bytes(2, "big")) == 0


def test_initial_sum_equals_adding_word():
    assert _checksum(initial=0x1234) == _checksum(b"\x12\x34")
    assert _checksum(b"ab", initial=0xBEEF) == _checksum(b"\xbe\xef", b"ab")


def test_str_and_bytes_agree():
    assert _checksum("abc\x00d") == _checksum(b"abc\x00d")


def test_odd_length_pads_high_byte():
    assert _checksum(b"\x12") == _checksum(b"\x12\x00")


def test_mixed_iterables():
    data = [b"ab", bytearray(b"cd"), memoryview(b"ef")]
    assert _checksum(data) == _checksum(b"abcdef")