"""
=============================================================================
ERRORS
=============================================================================

Every failure in netline is raised as a subclass of NetError, so callers
can catch the whole family with one except clause or pick out the kind
they care about.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR HIERARCHY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NetError                                                           │
    │   ├── ParseError       "1.2.3" is not an IP, "abc" is not a port     │
    │   ├── FormatError      "a:b:c" is not a host:port string             │
    │   ├── ResolutionError  the OS resolver could not find the host       │
    │   ├── SocketError      a socket syscall failed (carries errno)       │
    │   └── ProtocolError    the OS told us something impossible           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

ParseError and FormatError are caller mistakes and never worth retrying.
SocketError wraps the OSError raised by the socket module; the original
exception stays reachable through __cause__.

=============================================================================
"""

import os
from typing import Optional


class NetError(Exception):
    """Base class for all netline errors."""


class ParseError(NetError):
    """
    Raised when address or port text is malformed.

    Attributes:
        text: The offending input.
    """

    def __init__(self, message: str, text: str):
        super().__init__(message)
        self.text = text


class FormatError(NetError):
    """Raised when a "host:port" string has the wrong shape."""

    def __init__(self, message: str, text: str):
        super().__init__(message)
        self.text = text


class ResolutionError(NetError):
    """Raised when a hostname cannot be resolved to an IPv4 address."""

    def __init__(self, message: str, host: str):
        super().__init__(message)
        self.host = host


class SocketError(NetError):
    """
    Raised when a socket syscall fails.

    Carries the OS error number (None when the OS gave none) and the
    address that was being bound or connected to, if any.
    """

    def __init__(self, message: str, errno: Optional[int] = None,
                 address: Optional[object] = None):
        super().__init__(message)
        self.errno = errno
        self.address = address

    @classmethod
    def from_os_error(cls, action: str, exc: OSError,
                      address: Optional[object] = None) -> "SocketError":
        """
        Build a SocketError describing a failed OSError.

        The message reads "<action> failed: <OS description>", with
        " (<address>)" appended when an address was involved.
        """
        description = exc.strerror or (os.strerror(exc.errno) if exc.errno else str(exc))
        message = f"{action} failed: {description}"
        if address is not None:
            message += f" ({address})"
        return cls(message, errno=exc.errno, address=address)


class ProtocolError(NetError):
    """Raised when the OS reports success but hands back inconsistent data."""
