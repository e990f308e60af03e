"""
=============================================================================
BUFFERED LINE-ORIENTED SOCKET
=============================================================================

TCP is a byte stream, not a message protocol. What the peer sent as one
line may arrive as several recv() results, and several lines may arrive in
one. BufferedSocket hides that behind two buffers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        BufferedSocket                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   write_text("GET /")  ──►  ┌──────────────┐                         │
    │   write_text(" HTTP")  ──►  │ write buffer │ ── flush() ──► send()   │
    │                             └──────────────┘   (loops on partial     │
    │                                                 writes)              │
    │                                                                      │
    │                             ┌──────────────┐                         │
    │   read_line()  ◄── scan ──  │ read buffer  │ ◄── recv(chunk) on miss │
    │                             └──────────────┘                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One CHUNK SIZE (1024 bytes by default) drives both sides:
- the write buffer is flushed automatically once it holds a chunk or more
- each refill of the read buffer asks recv() for one chunk

=============================================================================
read_line() FLOW
=============================================================================

    ┌──────────────────────────┐
    │ '\\n' in read buffer?     │── yes ──► return bytes through '\\n',
    └────────────┬─────────────┘           keep the rest buffered
                 │ no
    ┌────────────▼─────────────┐
    │ peer already closed?     │── yes ──► return EVERYTHING left and
    └────────────┬─────────────┘           clear the buffer ("" = done)
                 │ no
    ┌────────────▼─────────────┐
    │ recv(chunk)              │   b"" ──► remember end-of-stream
    │ append to read buffer    │
    └────────────┬─────────────┘
                 └──► scan again

An empty line from read_line() therefore means the connection is closed
and fully drained. A real empty line on the wire still reads as "\\n".

=============================================================================
"""

import logging

from .tcp_socket import Socket


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024
LINE_TERMINATOR = b"\n"


class BufferedSocket:
    """
    Line reader and buffered writer over an owned, connected Socket.

    Closing the BufferedSocket closes the Socket it owns. Not thread-safe:
    give each connection its own BufferedSocket on its own thread.
    """

    def __init__(
        self,
        sock: Socket,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        encoding: str = "utf-8",
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.socket = sock
        self.chunk_size = chunk_size
        self.encoding = encoding
        self._write_buffer = bytearray()
        self._read_buffer = bytearray()
        self._eof = False

    @classmethod
    def make(cls, sock: Socket, chunk_size: int = DEFAULT_CHUNK_SIZE,
             encoding: str = "utf-8") -> "BufferedSocket":
        return cls(sock, chunk_size=chunk_size, encoding=encoding)

    @property
    def at_eof(self) -> bool:
        """True once recv() has reported that the peer closed its side."""
        return self._eof

    @property
    def pending_output(self) -> int:
        """Bytes written but not yet sent."""
        return len(self._write_buffer)

    @property
    def buffered_input(self) -> int:
        """Bytes received but not yet returned by read_line()."""
        return len(self._read_buffer)

    # =========================================================================
    # WRITING
    # =========================================================================

    def write_text(self, text: str) -> None:
        """Encode `text` and buffer it; see write_bytes()."""
        self.write_bytes(text.encode(self.encoding))

    def write_bytes(self, data: bytes) -> None:
        """
        Append raw bytes to the write buffer.

        Nothing is sent until the buffer holds at least one chunk, or
        flush() is called.
        """
        self._write_buffer += data
        if len(self._write_buffer) >= self.chunk_size:
            self.flush()

    def flush(self) -> None:
        """
        Send everything in the write buffer.

        send() may accept only part of what we hand it, so we loop,
        dropping exactly the bytes each call accepted. If a send fails, the
        unsent bytes stay buffered and the SocketError propagates.
        """
        while self._write_buffer:
            sent = self.socket.send(bytes(self._write_buffer))
            del self._write_buffer[:sent]
            if self._write_buffer:
                logger.debug(f"Partial send: {sent} bytes, {len(self._write_buffer)} left")

    # =========================================================================
    # READING
    # =========================================================================

    def read_line_bytes(self) -> bytes:
        """
        Read one line, including its b"\\n" terminator.

        BLOCKS, possibly across several recv() calls, until a full line is
        buffered or the peer closes. After the peer closes, the final
        unterminated fragment is returned once, then b"" forever.
        """
        while True:
            index = self._read_buffer.find(LINE_TERMINATOR)
            if index >= 0:
                line = bytes(self._read_buffer[:index + 1])
                del self._read_buffer[:index + 1]
                return line

            if self._eof:
                line = bytes(self._read_buffer)
                self._read_buffer.clear()
                return line

            chunk = self.socket.recv(self.chunk_size)
            if chunk:
                self._read_buffer += chunk
            else:
                logger.debug("Peer closed the connection")
                self._eof = True

    def read_line(self) -> str:
        """Read one line and decode it. "" means the stream is closed and drained."""
        return self.read_line_bytes().decode(self.encoding, errors="replace")

    # =========================================================================
    # RELEASE
    # =========================================================================

    def close(self) -> None:
        """
        Close the owned Socket.

        Buffered output is NOT flushed; call flush() first if it matters.
        """
        if self._write_buffer:
            logger.debug(f"Discarding {len(self._write_buffer)} unsent bytes on close")
        self.socket.close()

    def __enter__(self) -> "BufferedSocket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
