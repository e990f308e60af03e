"""
=============================================================================
OWNED TCP SOCKET
=============================================================================

A Socket owns exactly ONE operating-system descriptor and closes it exactly
once. Every syscall failure is raised as SocketError, so callers never have
to know about OSError, errno tables or platform quirks.

=============================================================================
SOCKET STATE MACHINE
=============================================================================

    SERVER:

        create_tcp() ──► UNBOUND ──bind()──► BOUND ──listen()──► LISTENING
                                                                    │
                                                     accept() ──────┤ (repeat)
                                                                    ▼
                                                       new Socket: CONNECTED

    CLIENT:

        create_tcp() ──► UNBOUND ──connect()──► CONNECTED

    CONNECTED:  send() / recv() until either side closes

    ANY STATE ──close()──► CLOSED   (descriptor released, never reused)

The transitions are not idempotent: calling listen() twice, or connect()
on a listening socket, does whatever the OS does.

=============================================================================
OWNERSHIP
=============================================================================

    with Socket.create_tcp() as sock:
        sock.connect(address)
        ...
    # descriptor closed here, on every exit path, even on exceptions

close() never raises. If the OS reports a failure while closing, it is
logged and the Socket is still marked closed: releasing a resource must
not fail in the caller's face.

=============================================================================
"""

import errno
import logging
import socket
from typing import Optional, Tuple

from ..errors import ParseError, ProtocolError, SocketError
from .address import AddressLike, SocketAddress, as_socket_address


logger = logging.getLogger(__name__)


class Socket:
    """
    Exclusive owner of one blocking IPv4/TCP socket.

    Usage (client):
        with Socket.create_tcp() as sock:
            sock.connect(SocketAddress.resolve("127.0.0.1:8080"))
            sock.send(b"hello\\n")
            reply = sock.recv(1024)

    Usage (server):
        with Socket.create_tcp() as listener:
            listener.set_reuse_address()
            listener.bind(SocketAddress.resolve("0.0.0.0:8080"))
            listener.listen(128)
            conn, peer = listener.accept()
            with conn:
                ...
    """

    def __init__(self, sock: socket.socket):
        """
        Take ownership of an already-created socket object.

        Prefer create_tcp() or accept(); this is the seam they both use.
        """
        self._sock: Optional[socket.socket] = sock

    # =========================================================================
    # CREATION
    # =========================================================================

    @classmethod
    def create_tcp(cls) -> "Socket":
        """
        Ask the OS for a new IPv4/TCP descriptor.

        Raises:
            SocketError: If the OS refuses (e.g. out of descriptors).
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise SocketError.from_os_error("socket", e) from e
        logger.debug(f"Created socket fd={sock.fileno()}")
        return cls(sock)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._sock is None

    def _require_open(self, action: str) -> socket.socket:
        if self._sock is None:
            raise SocketError(
                f"{action} failed: socket is closed", errno=errno.EBADF
            )
        return self._sock

    def fileno(self) -> int:
        return self._require_open("fileno").fileno()

    def local_address(self) -> SocketAddress:
        """The address this socket is bound to (handy after binding port 0)."""
        sock = self._require_open("getsockname")
        try:
            return SocketAddress.from_sockaddr(sock.getsockname())
        except OSError as e:
            raise SocketError.from_os_error("getsockname", e) from e

    def peer_address(self) -> SocketAddress:
        """The address of the remote end of a connected socket."""
        sock = self._require_open("getpeername")
        try:
            return SocketAddress.from_sockaddr(sock.getpeername())
        except OSError as e:
            raise SocketError.from_os_error("getpeername", e) from e

    # =========================================================================
    # SERVER SIDE: setsockopt / bind / listen / accept
    # =========================================================================

    def set_reuse_address(self) -> None:
        """
        Enable SO_REUSEADDR.

        Lets a restarted server bind the same port while old connections
        are still in TIME_WAIT, instead of failing with "Address already
        in use" for a minute or so.
        """
        sock = self._require_open("setsockopt(SO_REUSEADDR)")
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as e:
            raise SocketError.from_os_error("setsockopt(SO_REUSEADDR)", e) from e

    def bind(self, address: AddressLike) -> None:
        """
        Associate the socket with a local address.

        Raises:
            SocketError: Naming the address, e.g. when the port is taken
                or below 1024 without privileges.
        """
        address = as_socket_address(address)
        sock = self._require_open("bind")
        try:
            sock.bind(address.to_sockaddr())
        except OSError as e:
            raise SocketError.from_os_error("bind", e, address) from e
        logger.debug(f"Bound fd={sock.fileno()} to {address}")

    def listen(self, backlog: int) -> None:
        """
        Mark the socket passive.

        The OS queues up to `backlog` connections that have completed the
        handshake but have not been accept()ed yet.
        """
        sock = self._require_open("listen")
        try:
            sock.listen(backlog)
        except OSError as e:
            raise SocketError.from_os_error("listen", e) from e
        logger.debug(f"Listening on fd={sock.fileno()} (backlog={backlog})")

    def accept(self) -> Tuple["Socket", SocketAddress]:
        """
        Wait for an inbound connection.

        BLOCKS until a client connects. The listening socket keeps
        listening; the returned Socket is a NEW descriptor owned by the
        caller, talking to just that one client.

        Returns:
            (connected socket, remote address)

        Raises:
            SocketError: If the OS accept() fails.
            ProtocolError: If the OS reports success without a peer address.
        """
        sock = self._require_open("accept")
        try:
            client, record = sock.accept()
        except OSError as e:
            raise SocketError.from_os_error("accept", e) from e

        # Own the descriptor before inspecting anything, so it gets closed
        # if the checks below fail.
        accepted = Socket(client)
        if not record:
            accepted.close()
            raise ProtocolError("accept succeeded but returned no peer address")

        try:
            peer = SocketAddress.from_sockaddr(record)
        except (ParseError, ValueError, IndexError, TypeError) as e:
            accepted.close()
            raise ProtocolError(f"accept returned an unusable peer address: {record!r}") from e

        logger.debug(f"Accepted fd={client.fileno()} from {peer}")
        return accepted, peer

    # =========================================================================
    # CLIENT SIDE: connect
    # =========================================================================

    def connect(self, address: AddressLike) -> None:
        """
        Open a connection to a remote address.

        BLOCKS for the TCP three-way handshake.

        Raises:
            SocketError: Naming the target, e.g. "Connection refused".
        """
        address = as_socket_address(address)
        sock = self._require_open("connect")
        try:
            sock.connect(address.to_sockaddr())
        except OSError as e:
            raise SocketError.from_os_error("connect", e, address) from e
        logger.debug(f"Connected fd={sock.fileno()} to {address}")

    # =========================================================================
    # DATA TRANSFER
    # =========================================================================

    def send(self, data: bytes) -> int:
        """
        Send as much of `data` as the OS will take right now.

        BLOCKS until at least some bytes are accepted. The return value may
        be LESS than len(data) (a partial write); the caller must resend the
        rest. BufferedSocket.flush() does exactly that.
        """
        sock = self._require_open("send")
        try:
            return sock.send(data)
        except OSError as e:
            raise SocketError.from_os_error("send", e) from e

    def recv(self, max_bytes: int) -> bytes:
        """
        Receive up to `max_bytes` bytes.

        BLOCKS until data arrives. An empty result means the peer closed
        its side of the connection (end-of-stream); it is not an error.
        """
        sock = self._require_open("recv")
        try:
            return sock.recv(max_bytes)
        except OSError as e:
            raise SocketError.from_os_error("recv", e) from e

    def shutdown_write(self) -> None:
        """Half-close: send FIN, keep reading what the peer still sends."""
        sock = self._require_open("shutdown")
        try:
            sock.shutdown(socket.SHUT_WR)
        except OSError as e:
            raise SocketError.from_os_error("shutdown", e) from e

    # =========================================================================
    # RELEASE
    # =========================================================================

    def close(self) -> None:
        """
        Close the descriptor. Safe to call any number of times.

        The descriptor is released exactly once. An OS error during close
        is logged, never raised.
        """
        sock, self._sock = self._sock, None
        if sock is None:
            return

        fd = sock.fileno()
        try:
            sock.close()
        except OSError as e:
            logger.warning(f"Error closing socket fd={fd}: {e}")
        else:
            logger.debug(f"Closed socket fd={fd}")

    def __enter__(self) -> "Socket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        if self._sock is None:
            return "<Socket closed>"
        return f"<Socket fd={self._sock.fileno()}>"
