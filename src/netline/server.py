"""
=============================================================================
THREAD-PER-CONNECTION LINE SERVER
=============================================================================

SocketServer glues the pieces together for the common server shape:
one listening socket, one thread per accepted client, each thread owning
its own BufferedSocket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    serve_forever(handler)                                            │
    │        │                                                             │
    │        ├──► create_tcp() / set_reuse_address() / bind() / listen()   │
    │        ├──► _setup_signals()   SIGINT/SIGTERM → shutdown()           │
    │        │                                                             │
    │        └──► accept loop (BLOCKS HERE)                                │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         accept()          new Socket                 │
    │                         BufferedSocket()  wrap it                    │
    │                         Thread(handler)   hand it off                │
    │                                                                      │
    │    shutdown()  (any thread, or a signal handler)                     │
    │        └──► running = False                                          │
    │        └──► connect to ourselves so accept() returns                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each connection is closed when its handler returns, whether it returned
normally or raised.

=============================================================================
WAKING A BLOCKED accept()
=============================================================================

accept() has no timeout here, and closing the listening socket from another
thread while accept() is blocked on it is undefined. Instead shutdown()
opens a throwaway connection to the listening address: accept() returns,
the loop sees running == False, and the listener is closed by the thread
that owns it.

=============================================================================
"""

import logging
import signal
import threading
from typing import Callable, List, Optional

from .config import NetConfig
from .core import BufferedSocket, IpAddress, Socket, SocketAddress
from .errors import NetError


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[BufferedSocket, SocketAddress], None]


class SocketServer:
    """
    Blocking TCP server that runs one handler thread per connection.

    Usage:
        def echo(conn: BufferedSocket, peer: SocketAddress):
            while True:
                line = conn.read_line()
                if not line:
                    return
                conn.write_text(line)
                conn.flush()

        server = SocketServer(NetConfig(port=9000))
        server.serve_forever(echo)   # Blocks until shutdown()
    """

    def __init__(self, config: Optional[NetConfig] = None):
        self.config = config or NetConfig()
        self.config.validate()

        self._listener: Optional[Socket] = None
        self._address: Optional[SocketAddress] = None
        self._running = False
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._stop_requested = threading.Event()
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Optional[SocketAddress]:
        """The bound listening address, once listening (real port if 0 was asked)."""
        return self._address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening. Returns False on timeout."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until serve_forever() has returned. Returns False on timeout."""
        return self._stopped.wait(timeout)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _open_listener(self) -> Socket:
        address = self.config.resolve_bind_address()
        listener = Socket.create_tcp()
        try:
            if self.config.reuse_address:
                listener.set_reuse_address()
            listener.bind(address)
            listener.listen(self.config.backlog)
            self._address = listener.local_address()
        except NetError:
            listener.close()
            raise
        return listener

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers that call shutdown().

        Python only allows this from the main thread; elsewhere we skip it
        and rely on shutdown() being called explicitly.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def serve_forever(self, handler: ConnectionHandler) -> None:
        """
        Listen and dispatch connections until shutdown() is called.

        Raises:
            NetError: If the listening socket cannot be set up.
        """
        self._stopped.clear()
        try:
            self._listener = self._open_listener()
        except NetError as e:
            logger.error(f"Failed to listen on {self.config.bind_address}: {e}")
            self._stopped.set()
            raise

        self._running = True
        if self._stop_requested.is_set():
            # shutdown() arrived before we were listening
            logger.info("Shutdown requested before start")
            self._running = False
        self._setup_signals()
        logger.info(f"Server listening on {self._address}")
        self._ready.set()

        try:
            self._accept_loop(handler)
        finally:
            self._cleanup()

    def _accept_loop(self, handler: ConnectionHandler):
        while self._running:
            try:
                sock, peer = self._listener.accept()
            except NetError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            if not self._running:
                # The wake-up connection from shutdown(), or a client that
                # raced it. Either way we are done.
                sock.close()
                break

            conn = BufferedSocket(
                sock,
                chunk_size=self.config.chunk_size,
                encoding=self.config.encoding,
            )
            thread = threading.Thread(
                target=self._run_handler,
                args=(handler, conn, peer),
                name=f"netline-{peer}",
                daemon=True,
            )
            with self._lock:
                self._threads = [t for t in self._threads if t.is_alive()]
                self._threads.append(thread)
            thread.start()

    def _run_handler(self, handler: ConnectionHandler, conn: BufferedSocket,
                     peer: SocketAddress):
        logger.debug(f"Handling connection from {peer}")
        try:
            with conn:
                handler(conn, peer)
        except NetError as e:
            logger.warning(f"Connection from {peer} failed: {e}")
        except Exception:
            logger.exception(f"Handler crashed for connection from {peer}")
        finally:
            logger.debug(f"Connection from {peer} closed")

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop accepting connections. Safe to call more than once and from
        any thread; returns without waiting (see wait_for_shutdown()).

        A call made before serve_forever() is listening is remembered:
        serve_forever() then returns as soon as its listener is up.
        """
        self._stop_requested.set()
        if not self._running:
            return
        logger.info("Shutting down server...")
        self._running = False

        address = self._address
        if address is None:
            return
        if address.ip_address.to_u32() == 0:
            # Bound to 0.0.0.0: reach ourselves over loopback
            address = SocketAddress.make(IpAddress.LOOPBACK, address.port)
        try:
            with Socket.create_tcp() as waker:
                waker.connect(address)
        except NetError as e:
            logger.debug(f"Wake-up connection failed: {e}")

    def join_connections(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight handler threads to finish."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)

    def _cleanup(self):
        self._running = False
        self._restore_signals()
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        self._ready.clear()
        self._stop_requested.clear()
        logger.info("Server stopped")
        self._stopped.set()
