"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m netline serve [ADDRESS]          # Line echo server
    python -m netline send ADDRESS LINE...     # Send lines, print replies

ADDRESS is "host:port" or "host" (port defaults to 80). Without an address,
serve uses NETLINE_HOST / NETLINE_PORT from the environment.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import NetConfig
from .core import BufferedSocket, Socket, SocketAddress
from .errors import NetError
from .server import SocketServer


logger = logging.getLogger("netline")


def echo_handler(conn: BufferedSocket, peer: SocketAddress) -> None:
    """Send every line straight back until the client hangs up."""
    while True:
        line = conn.read_line_bytes()
        if not line:
            return
        conn.write_bytes(line)
        conn.flush()


def setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("netline").setLevel(level)


def run_serve(args: argparse.Namespace, config: NetConfig) -> int:
    if args.address:
        address = SocketAddress.resolve(args.address, default_port=config.default_port)
        config.host = str(address.ip_address)
        config.port = int(address.port)
    if args.backlog is not None:
        config.backlog = args.backlog

    server = SocketServer(config)
    server.serve_forever(echo_handler)
    return 0


def run_send(args: argparse.Namespace, config: NetConfig) -> int:
    address = SocketAddress.resolve(args.address, default_port=config.default_port)
    lines = args.lines or [line.rstrip("\n") for line in sys.stdin]

    with Socket.create_tcp() as sock:
        sock.connect(address)
        conn = BufferedSocket(sock, chunk_size=config.chunk_size, encoding=config.encoding)
        for line in lines:
            conn.write_text(line + "\n")
            conn.flush()
            reply = conn.read_line()
            if not reply:
                logger.warning(f"{address} closed the connection")
                return 1
            sys.stdout.write(reply)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netline",
        description="Line-oriented TCP echo server and client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m netline serve 127.0.0.1:9000
  python -m netline send 127.0.0.1:9000 hello world
  printf 'a\\nb\\n' | python -m netline send localhost:9000
        """,
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: NETLINE_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"netline {__version__}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run a line echo server")
    serve.add_argument("address", nargs="?", help="host:port to listen on")
    serve.add_argument(
        "--backlog", "-b",
        type=int,
        default=None,
        help="Pending connection queue size (default: NETLINE_BACKLOG or 16)",
    )

    send = commands.add_parser("send", help="Send lines and print the replies")
    send.add_argument("address", help="host:port to connect to")
    send.add_argument("lines", nargs="*", help="Lines to send (default: read stdin)")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = NetConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config.log_level)

    try:
        if args.command == "serve":
            return run_serve(args, config)
        return run_send(args, config)
    except (NetError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
