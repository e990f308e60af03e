"""
=============================================================================
CORE SOCKET LAYER
=============================================================================

The building blocks, leaf-first:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ADDRESS                                                             │
    │  IpAddress, Port, SocketAddress: immutable values, parsed and        │
    │  validated before they ever reach a syscall                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET                                                              │
    │  Owns one descriptor; bind / listen / accept / connect / send /      │
    │  recv; closed exactly once                                           │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  BUFFERED SOCKET                                                     │
    │  Threshold-flushed writes, line-delimited reads, end-of-stream       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .address import DEFAULT_PORT, IpAddress, Port, SocketAddress
from .tcp_socket import Socket
from .buffered import DEFAULT_CHUNK_SIZE, BufferedSocket

__all__ = [
    "IpAddress",          # 4-byte IPv4 address value
    "Port",               # 16-bit port value
    "SocketAddress",      # IP + port, resolvable from "host:port"
    "Socket",             # Owns one TCP descriptor
    "BufferedSocket",     # Line reader / buffered writer over a Socket
    "DEFAULT_PORT",
    "DEFAULT_CHUNK_SIZE",
]
