"""
pytest configuration and fixtures.
"""

import errno
from typing import Generator, List, Optional, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from netline import BufferedSocket, Socket, SocketAddress, SocketError


class ScriptedSocket:
    """
    Stand-in for netline.Socket that never touches the network.

    send() accepts at most the next value of `send_limits` bytes per call
    (everything when the list runs out) and records what was sent.
    recv() returns the queued `incoming` chunks in order, then b"".
    """

    def __init__(self, incoming: Optional[List[bytes]] = None,
                 send_limits: Optional[List[int]] = None):
        self.incoming = list(incoming or [])
        self.send_limits = list(send_limits or [])
        self.sent: List[bytes] = []
        self.recv_sizes: List[int] = []
        self.fail_send = False
        self.closed = False

    def send(self, data: bytes) -> int:
        if self.fail_send:
            raise SocketError("send failed: Broken pipe", errno=errno.EPIPE)
        limit = self.send_limits.pop(0) if self.send_limits else len(data)
        accepted = data[:limit]
        self.sent.append(accepted)
        return len(accepted)

    def recv(self, max_bytes: int) -> bytes:
        self.recv_sizes.append(max_bytes)
        if not self.incoming:
            return b""
        chunk = self.incoming.pop(0)
        assert len(chunk) <= max_bytes
        return chunk

    def close(self):
        self.closed = True

    @property
    def total_sent(self) -> bytes:
        return b"".join(self.sent)


@pytest.fixture
def scripted():
    """Factory for ScriptedSocket: scripted(incoming=[...], send_limits=[...])."""
    return ScriptedSocket


@pytest.fixture
def listener() -> Generator[Socket, None, None]:
    """A loopback listening socket on an ephemeral port, backlog 1."""
    sock = Socket.create_tcp()
    sock.set_reuse_address()
    sock.bind(SocketAddress.resolve("127.0.0.1:0"))
    sock.listen(1)
    yield sock
    sock.close()


@pytest.fixture
def connected_pair(listener: Socket) -> Generator[Tuple[BufferedSocket, BufferedSocket], None, None]:
    """
    (client, server) BufferedSockets joined over loopback.

    connect() completes against the listen backlog, so accept() can run
    afterwards on the same thread.
    """
    client_sock = Socket.create_tcp()
    client_sock.connect(listener.local_address())
    server_sock, _peer = listener.accept()

    client = BufferedSocket(client_sock)
    server = BufferedSocket(server_sock)
    yield client, server
    client.close()
    server.close()
