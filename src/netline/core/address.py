"""
=============================================================================
IPv4 ADDRESSES, PORTS AND SOCKET ADDRESSES
=============================================================================

Before a socket can bind or connect it needs to know WHERE. For IPv4 TCP
that is two numbers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET ADDRESS                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │     IP ADDRESS  (4 bytes)              PORT  (2 bytes)               │
    │     ┌─────┬─────┬─────┬─────┐          ┌───────────┐                 │
    │     │ 127 │  0  │  0  │  1  │    :     │   8080    │                 │
    │     └─────┴─────┴─────┴─────┘          └───────────┘                 │
    │     byte 0 = most significant          0 .. 65535                    │
    │                                                                      │
    │     "Which machine?"                   "Which program on it?"        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The socket module wants the pair as a ("127.0.0.1", 8080) tuple. We keep
typed, immutable values instead and only build the tuple at the syscall
boundary (SocketAddress.to_sockaddr). That way a port of 70000 or an IP of
"1.2.3" can never reach the OS.

=============================================================================
NETWORK BYTE ORDER
=============================================================================

An IPv4 address is also a 32-bit unsigned integer, packed BIG-ENDIAN:

    127.0.0.1  →  0x7F 0x00 0x00 0x01  →  0x7F000001  →  2130706433

=============================================================================
RESOLUTION
=============================================================================

IpAddress.resolve() first tries to read the text as a dotted-decimal
literal. Only when that fails does it ask the OS resolver (DNS, /etc/hosts)
for an IPv4 address. So "127.0.0.1" never touches the network, while
"localhost" does.

=============================================================================
"""

import logging
import re
import socket
from dataclasses import dataclass
from typing import ClassVar, Tuple, Union

from ..errors import FormatError, ParseError, ResolutionError


logger = logging.getLogger(__name__)

DEFAULT_PORT = 80

_DECIMAL = re.compile(r"[0-9]+\Z")


def _parse_decimal(text: str) -> int:
    """Parse ASCII decimal digits; raise ValueError on anything else."""
    # int() alone would accept " 12", "+12", "1_2" and non-ASCII digits
    if not _DECIMAL.match(text):
        raise ValueError(f"not a decimal number: {text!r}")
    return int(text)


@dataclass(frozen=True)
class IpAddress:
    """
    An immutable IPv4 address.

    Always exactly 4 octets in network order. Build one with parse(),
    from_bytes(), from_u32() or resolve().
    """

    octets: bytes

    ANY: ClassVar["IpAddress"]
    LOOPBACK: ClassVar["IpAddress"]

    def __post_init__(self):
        if not isinstance(self.octets, (bytes, bytearray)) or len(self.octets) != 4:
            raise ValueError(f"IPv4 address needs exactly 4 bytes, got {self.octets!r}")
        object.__setattr__(self, "octets", bytes(self.octets))

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def parse(cls, text: str) -> "IpAddress":
        """
        Parse dotted-decimal text such as "192.168.1.10".

        Exactly four components, each a decimal number from 0 to 255.

        Raises:
            ParseError: On any other shape, naming the input.
        """
        parts = text.split(".")
        if len(parts) != 4:
            raise ParseError(f"Invalid IPv4 address {text!r}: expected 4 components", text)

        octets = []
        for part in parts:
            try:
                value = _parse_decimal(part)
            except ValueError:
                raise ParseError(
                    f"Invalid IPv4 address {text!r}: {part!r} is not a number", text
                ) from None
            if value > 255:
                raise ParseError(
                    f"Invalid IPv4 address {text!r}: {part} is out of range 0-255", text
                )
            octets.append(value)

        return cls(bytes(octets))

    @classmethod
    def from_bytes(cls, data: bytes) -> "IpAddress":
        """Build an address from exactly 4 raw bytes (ValueError otherwise)."""
        return cls(bytes(data))

    @classmethod
    def from_u32(cls, value: int) -> "IpAddress":
        """Build an address from a 32-bit unsigned integer, big-endian."""
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"IPv4 address integer out of range: {value}")
        return cls(value.to_bytes(4, "big"))

    @classmethod
    def resolve(cls, host: str) -> "IpAddress":
        """
        Turn a literal or a hostname into an IPv4 address.

        BLOCKS while the OS resolver works. Literal addresses return
        immediately without any lookup.

        Text that looks like a malformed literal ("1.2.3.999") is handed to
        the resolver like any other hostname, which normally fails.

        Raises:
            ResolutionError: If the resolver fails or returns something that
                is not a 4-byte address.
        """
        try:
            return cls.parse(host)
        except ParseError:
            pass

        if not host:
            raise ResolutionError("Cannot resolve an empty hostname", host)

        logger.debug(f"Resolving {host!r}")
        try:
            infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
        except (OSError, UnicodeError) as e:
            raise ResolutionError(f"Failed to resolve {host!r}: {e}", host) from e

        for family, _type, _proto, _canonname, sockaddr in infos:
            if family != socket.AF_INET:
                continue
            try:
                packed = socket.inet_aton(sockaddr[0])
            except OSError:
                continue
            if len(packed) == 4:
                address = cls(packed)
                logger.debug(f"Resolved {host!r} to {address}")
                return address

        raise ResolutionError(f"Resolver returned no IPv4 address for {host!r}", host)

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def to_u32(self) -> int:
        """The address as a 32-bit unsigned integer, byte 0 most significant."""
        return int.from_bytes(self.octets, "big")

    @property
    def packed(self) -> bytes:
        """The 4 raw bytes, network order."""
        return self.octets

    def __int__(self) -> int:
        return self.to_u32()

    def __str__(self) -> str:
        return ".".join(str(octet) for octet in self.octets)

    def __repr__(self) -> str:
        return f"IpAddress('{self}')"


IpAddress.ANY = IpAddress(b"\x00\x00\x00\x00")
IpAddress.LOOPBACK = IpAddress(b"\x7f\x00\x00\x01")


@dataclass(frozen=True)
class Port:
    """An immutable TCP port number, 0 to 65535."""

    value: int

    def __post_init__(self):
        if not 0 <= self.value <= 0xFFFF:
            raise ValueError(f"Port out of range 0-65535: {self.value}")

    @classmethod
    def parse(cls, text: str) -> "Port":
        """
        Parse a decimal port number.

        Raises:
            ParseError: If the text is not an unsigned 16-bit integer.
        """
        try:
            value = _parse_decimal(text)
        except ValueError:
            raise ParseError(f"Invalid port {text!r}: not a number", text) from None
        if value > 0xFFFF:
            raise ParseError(f"Invalid port {text!r}: out of range 0-65535", text)
        return cls(value)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class SocketAddress:
    """
    An IPv4 address plus a port: everything bind() and connect() need.

    The native record the socket module understands is the
    (dotted-ip, port) tuple returned by to_sockaddr().
    """

    ip_address: IpAddress
    port: Port

    @classmethod
    def make(cls, ip: IpAddress, port: Port) -> "SocketAddress":
        return cls(ip, port)

    @classmethod
    def resolve(cls, text: str, default_port: int = DEFAULT_PORT) -> "SocketAddress":
        """
        Resolve "host:port" or just "host" into a SocketAddress.

        BLOCKS if the host is a name rather than a literal.

            "127.0.0.1:8080"  →  127.0.0.1:8080
            "127.0.0.1"       →  127.0.0.1:80
            "localhost:9000"  →  127.0.0.1:9000   (via the OS resolver)
            "a:b:c"           →  FormatError

        Raises:
            FormatError: If the text has more than one colon.
            ResolutionError: If the host cannot be resolved.
            ParseError: If the port is not a valid port number.
        """
        pieces = text.split(":")
        if len(pieces) == 1:
            host, port = pieces[0], Port(default_port)
        elif len(pieces) == 2:
            host, port = pieces[0], Port.parse(pieces[1])
        else:
            raise FormatError(
                f"Invalid address {text!r}: expected 'host' or 'host:port'", text
            )

        return cls(IpAddress.resolve(host), port)

    @classmethod
    def from_sockaddr(cls, record: Tuple[str, int]) -> "SocketAddress":
        """Build from an (ip, port) tuple as returned by accept() or getsockname()."""
        host, port = record[0], record[1]
        return cls(IpAddress.parse(host), Port(port))

    def to_sockaddr(self) -> Tuple[str, int]:
        """The (ip, port) tuple the socket module expects."""
        return (str(self.ip_address), self.port.value)

    def get_ip_address(self) -> IpAddress:
        return self.ip_address

    def get_port(self) -> Port:
        return self.port

    def __str__(self) -> str:
        return f"{self.ip_address}:{self.port}"


AddressLike = Union[SocketAddress, str]


def as_socket_address(address: AddressLike) -> SocketAddress:
    """Accept either a SocketAddress or "host:port" text."""
    if isinstance(address, SocketAddress):
        return address
    return SocketAddress.resolve(address)
