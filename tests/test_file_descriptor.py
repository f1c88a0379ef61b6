import errno
import gc
import os

import pytest

from netkit.errors import UnixError
from netkit.file_descriptor import READ_BUFFER_SIZE, FileDescriptor


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    reader = FileDescriptor(read_fd)
    writer = FileDescriptor(write_fd)
    yield reader, writer
    for handle in (reader, writer):
        if not handle.closed():
            handle.close()


def test_default_read_is_limited_to_buffer_size(pipe):
    reader, writer = pipe
    data = b"z" * 20000
    assert writer.write(data) == len(data)
    first = reader.read()
    assert len(first) == 16384 == READ_BUFFER_SIZE
    assert first + reader.read() == data
    assert reader.read_count() == 2


def test_write_then_read(pipe):
    reader, writer = pipe
    assert writer.write(b"hello") == 5
    assert reader.read() == b"hello"
    assert reader.read_count() == 1
    assert writer.write_count() == 1
    assert not reader.eof()


def test_read_respects_size(pipe):
    reader, writer = pipe
    writer.write(b"abcdef")
    assert reader.read(4) == b"abcd"
    assert reader.read(4) == b"ef"
    assert reader.read_count() == 2


def test_gather_write(pipe):
    reader, writer = pipe
    assert writer.write([b"ab", b"", b"cde"]) == 5
    assert reader.read() == b"abcde"


def test_eof_after_writer_closes(pipe):
    reader, writer = pipe
    writer.close()
    assert reader.read() == b""
    assert reader.eof()
    assert reader.read_count() == 1


def test_close_sets_flags(pipe):
    reader, _ = pipe
    reader.close()
    assert reader.closed()
    assert reader.eof()


def test_duplicate_shares_state(pipe):
    reader, writer = pipe
    copy = writer.duplicate()
    assert copy.fd_num() == writer.fd_num()
    copy.write(b"x")
    assert writer.write_count() == 1
    copy.close()
    assert writer.closed()
    assert reader.read() == b"x"


def test_negative_fd_rejected():
    with pytest.raises(RuntimeError, match="invalid fd number"):
        FileDescriptor(-1)


def test_bad_fd_raises_unix_error():
    read_fd, write_fd = os.pipe()
    os.close(read_fd)
    os.close(write_fd)
    with pytest.raises(UnixError) as info:
        FileDescriptor(read_fd)
    assert info.value.error_code == errno.EBADF


def test_non_blocking_read_returns_empty(pipe):
    reader, _ = pipe
    reader.set_blocking(False)
    assert reader.read() == b""
    assert reader.read_count() == 0
    assert not reader.eof()


def test_set_blocking_round_trip(pipe):
    reader, _ = pipe
    reader.set_blocking(False)
    assert os.get_blocking(reader.fd_num()) is False
    reader.set_blocking(True)
    assert os.get_blocking(reader.fd_num()) is True


def test_readv_splits_into_buffers(pipe):
    reader, writer = pipe
    writer.write(b"abcdef")
    assert reader.readv([2, 2]) == [b"ab", b"cdef"]
    assert reader.read_count() == 1


def test_readv_short_read_truncates_later_buffers(pipe):
    reader, writer = pipe
    writer.write(b"abc")
    assert reader.readv([2, 2, 2]) == [b"ab", b"c", b""]


def test_readv_empty_sizes(pipe):
    reader, _ = pipe
    assert reader.readv([]) == []
    assert reader.read_count() == 0


def test_write_to_broken_pipe_raises(pipe):
    reader, writer = pipe
    reader.close()
    with pytest.raises(UnixError) as info:
        writer.write(b"data")
    assert info.value.error_code == errno.EPIPE
    assert info.value.attempt == "writev"


def test_context_manager_closes():
    read_fd, write_fd = os.pipe()
    os.close(write_fd)
    with FileDescriptor(read_fd) as handle:
        assert handle.fd_num() == read_fd
    assert handle.closed()


def test_collected_handle_closes_descriptor():
    read_fd, write_fd = os.pipe()
    os.close(write_fd)
    handle = FileDescriptor(read_fd)
    del handle
    gc.collect()
    with pytest.raises(OSError) as info:
        os.fstat(read_fd)
    assert info.value.errno == errno.EBADF