"""
=============================================================================
netline: BLOCKING IPv4 TCP WITH LINE-ORIENTED BUFFERING
=============================================================================

A small, synchronous networking layer to build line-based protocols on
(HTTP/1.x request heads, SMTP, Redis inline commands, chat servers...).

=============================================================================
PROJECT STRUCTURE
=============================================================================

    netline/
    ├── __init__.py          # This file
    ├── __main__.py          # python -m netline (echo server / client)
    ├── config.py            # NetConfig
    ├── errors.py            # NetError and friends
    ├── server.py            # SocketServer, thread per connection
    └── core/
        ├── address.py       # IpAddress, Port, SocketAddress
        ├── tcp_socket.py    # Socket: owns one descriptor
        └── buffered.py      # BufferedSocket: read_line / write_text / flush

=============================================================================
QUICK START
=============================================================================

    from netline import BufferedSocket, Socket, SocketAddress

    address = SocketAddress.resolve("127.0.0.1:9000")

    with Socket.create_tcp() as sock:
        sock.connect(address)
        conn = BufferedSocket(sock)
        conn.write_text("hello\\n")
        conn.flush()
        print(conn.read_line())

=============================================================================
"""

__version__ = "1.0.0"

from .config import NetConfig
from .core import BufferedSocket, IpAddress, Port, Socket, SocketAddress
from .errors import (
    FormatError,
    NetError,
    ParseError,
    ProtocolError,
    ResolutionError,
    SocketError,
)
from .server import SocketServer

__all__ = [
    "IpAddress",
    "Port",
    "SocketAddress",
    "Socket",
    "BufferedSocket",
    "SocketServer",
    "NetConfig",
    "NetError",
    "ParseError",
    "FormatError",
    "ResolutionError",
    "SocketError",
    "ProtocolError",
    "__version__",
]
