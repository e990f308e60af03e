"""
=============================================================================
CONFIGURATION
=============================================================================

Centralized settings for the line server and the CLI.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m netline serve 0.0.0.0:9000                       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── NETLINE_PORT=9000 python -m netline serve                  │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Values are validated eagerly: a bad port fails at startup, not on the
first accept().

=============================================================================
"""

import codecs
import os
from dataclasses import dataclass

from .core.address import DEFAULT_PORT, SocketAddress
from .core.buffered import DEFAULT_CHUNK_SIZE


@dataclass
class NetConfig:
    """
    Settings for SocketServer and the netline CLI.

    Development:
        NetConfig(host="127.0.0.1", port=9000, log_level="DEBUG")

    All interfaces:
        NetConfig(host="0.0.0.0", port=9000, backlog=128)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """IPv4 literal or hostname to bind to."""

    port: int = 9000
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 16
    """Maximum queued connections not yet accept()ed."""

    reuse_address: bool = True
    """Set SO_REUSEADDR before binding, so restarts don't hit TIME_WAIT."""

    default_port: int = DEFAULT_PORT
    """Port assumed when an address string omits one."""

    # ─────────────────────────────────────────────────────────────────────
    # BUFFERING
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Write-flush threshold and recv() size for BufferedSocket."""

    encoding: str = "utf-8"
    """Text encoding used by write_text() and read_line()."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "NetConfig":
        """
        Create configuration from environment variables.

        NETLINE_HOST        Bind host (default: 127.0.0.1)
        NETLINE_PORT        Bind port (default: 9000)
        NETLINE_BACKLOG     Listen backlog (default: 16)
        NETLINE_CHUNK_SIZE  Buffer chunk size (default: 1024)
        NETLINE_LOG_LEVEL   Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("NETLINE_HOST", "127.0.0.1"),
            port=int(os.getenv("NETLINE_PORT", "9000")),
            backlog=int(os.getenv("NETLINE_BACKLOG", "16")),
            chunk_size=int(os.getenv("NETLINE_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))),
            log_level=os.getenv("NETLINE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast on values that could never work."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not 0 < self.default_port < 65536:
            raise ValueError(f"Invalid default_port: {self.default_port}. Must be 1-65535.")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding: {self.encoding}") from None

    @property
    def bind_address(self) -> str:
        """The "host:port" text for the listening address."""
        return f"{self.host}:{self.port}"

    def resolve_bind_address(self) -> SocketAddress:
        """Resolve host:port into a SocketAddress. May block on DNS."""
        return SocketAddress.resolve(self.bind_address, default_port=self.default_port)
