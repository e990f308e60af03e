"""
Unit tests for BufferedSocket, driven by a scripted socket.
"""

import pytest

from netline.core.buffered import DEFAULT_CHUNK_SIZE, BufferedSocket
from netline.errors import SocketError


class TestWriting:
    """Tests for write_text / write_bytes / flush."""

    def test_small_write_is_buffered(self, scripted):
        sock = scripted()
        conn = BufferedSocket(sock)

        conn.write_text("hello\n")

        assert sock.sent == []
        assert conn.pending_output == 6

    def test_flush_sends_buffer(self, scripted):
        sock = scripted()
        conn = BufferedSocket(sock)

        conn.write_text("hello\n")
        conn.flush()

        assert sock.total_sent == b"hello\n"
        assert conn.pending_output == 0

    def test_flush_on_empty_buffer_sends_nothing(self, scripted):
        sock = scripted()
        BufferedSocket(sock).flush()

        assert sock.sent == []

    def test_threshold_reached_cumulatively(self, scripted):
        sock = scripted()
        conn = BufferedSocket(sock, chunk_size=10)

        conn.write_text("abcd")
        conn.write_text("efgh")
        assert sock.sent == []

        conn.write_text("ij")  # 10 bytes: threshold reached

        assert sock.total_sent == b"abcdefghij"
        assert conn.pending_output == 0

    def test_default_threshold(self, scripted):
        sock = scripted()
        conn = BufferedSocket(sock)

        conn.write_bytes(b"x" * (DEFAULT_CHUNK_SIZE - 1))
        assert sock.sent == []

        conn.write_bytes(b"x")
        assert len(sock.total_sent) == DEFAULT_CHUNK_SIZE

    def test_partial_sends_are_resent(self, scripted):
        sock = scripted(send_limits=[3, 1, 2])
        conn = BufferedSocket(sock)

        conn.write_text("hello world\n")
        conn.flush()

        assert sock.sent == [b"hel", b"l", b"o ", b"world\n"]
        assert sock.total_sent == b"hello world\n"
        assert conn.pending_output == 0

    def test_failed_send_keeps_remainder(self, scripted):
        sock = scripted(send_limits=[2])
        conn = BufferedSocket(sock)
        conn.write_text("abcdef")

        original_send = sock.send

        def send_then_fail(data):
            sent = original_send(data)
            sock.fail_send = True
            return sent

        sock.send = send_then_fail

        with pytest.raises(SocketError):
            conn.flush()

        assert sock.total_sent == b"ab"
        assert conn.pending_output == 4

        sock.fail_send = False
        sock.send = original_send
        conn.flush()
        assert sock.total_sent == b"abcdef"

    def test_write_text_uses_encoding(self, scripted):
        sock = scripted()
        conn = BufferedSocket(sock, encoding="latin-1")

        conn.write_text("caf\xe9\n")
        conn.flush()

        assert sock.total_sent == b"caf\xe9\n"


class TestReading:
    """Tests for read_line / read_line_bytes."""

    def test_single_line(self, scripted):
        conn = BufferedSocket(scripted(incoming=[b"hello\n"]))

        assert conn.read_line() == "hello\n"

    def test_line_split_across_recvs(self, scripted):
        sock = scripted(incoming=[b"hel", b"lo wor", b"ld\nnext"])
        conn = BufferedSocket(sock)

        assert conn.read_line() == "hello world\n"
        assert len(sock.recv_sizes) == 3
        assert conn.buffered_input == 4

    def test_multiple_lines_in_one_recv(self, scripted):
        sock = scripted(incoming=[b"one\ntwo\nthree\n"])
        conn = BufferedSocket(sock)

        assert conn.read_line() == "one\n"
        assert conn.read_line() == "two\n"
        assert conn.read_line() == "three\n"
        assert len(sock.recv_sizes) == 1

    def test_recv_uses_chunk_size(self, scripted):
        sock = scripted(incoming=[b"a\n"])
        conn = BufferedSocket(sock, chunk_size=64)

        conn.read_line()

        assert sock.recv_sizes == [64]

    def test_empty_line_is_not_eof(self, scripted):
        conn = BufferedSocket(scripted(incoming=[b"\nafter\n"]))

        assert conn.read_line() == "\n"
        assert conn.read_line() == "after\n"

    def test_final_unterminated_fragment(self, scripted):
        conn = BufferedSocket(scripted(incoming=[b"first\nlast"]))

        assert conn.read_line() == "first\n"
        assert conn.read_line() == "last"
        assert conn.at_eof
        assert conn.read_line() == ""

    def test_eof_is_sticky(self, scripted):
        sock = scripted(incoming=[])
        conn = BufferedSocket(sock)

        assert conn.read_line() == ""
        assert conn.read_line() == ""
        assert conn.read_line_bytes() == b""
        assert len(sock.recv_sizes) == 1

    def test_line_longer_than_chunk(self, scripted):
        payload = b"y" * 50 + b"\n"
        chunks = [payload[i:i + 8] for i in range(0, len(payload), 8)]
        conn = BufferedSocket(scripted(incoming=chunks), chunk_size=8)

        assert conn.read_line_bytes() == payload

    def test_read_line_bytes_keeps_raw_bytes(self, scripted):
        conn = BufferedSocket(scripted(incoming=[b"\xff\xfe\n"]))

        assert conn.read_line_bytes() == b"\xff\xfe\n"

    def test_recv_error_propagates(self, scripted):
        sock = scripted()

        def broken_recv(max_bytes):
            raise SocketError("recv failed: Connection reset by peer")

        sock.recv = broken_recv
        conn = BufferedSocket(sock)

        with pytest.raises(SocketError):
            conn.read_line()


class TestLifecycle:
    """Tests for construction and release."""

    def test_make_starts_empty(self, scripted):
        conn = BufferedSocket.make(scripted())

        assert conn.pending_output == 0
        assert conn.buffered_input == 0
        assert not conn.at_eof

    def test_make_passes_encoding(self, scripted):
        sock = scripted()
        conn = BufferedSocket.make(sock, chunk_size=8, encoding="latin-1")

        conn.write_text("caf\xe9\n")
        conn.flush()

        assert conn.encoding == "latin-1"
        assert sock.total_sent == b"caf\xe9\n"

    def test_invalid_chunk_size(self, scripted):
        with pytest.raises(ValueError):
            BufferedSocket(scripted(), chunk_size=0)

    def test_context_manager_closes_socket(self, scripted):
        sock = scripted()

        with BufferedSocket(sock) as conn:
            conn.write_text("unsent")

        assert sock.closed
        assert sock.sent == []
