"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind once at startup, accept in a loop, hand
each accepted client to a callback wrapped in a Connection.

=============================================================================
LIFECYCLE
=============================================================================

    bind()         socket(), SO_REUSEADDR, TCP_NODELAY, bind(), listen()
        │          A failure here is fatal: OSError propagates to the
        │          caller and the process exits.
        ▼
    serve()        install SIGINT/SIGTERM handlers (main thread only),
        │          then accept until shutdown() is called
        ▼
    _cleanup()     restore signal handlers, close the listening socket

serve() binds first if needed. Calling bind() separately lets a caller learn
the real port when the configured one is 0 (tests do this):

    server = SocketServer(config)            # config.port == 0
    server.bind()
    host, port = server.address              # port picked by the OS
    server.serve(handle_connection)

=============================================================================
POLLING ACCEPT
=============================================================================

The listening socket has a 1 second timeout. accept() therefore wakes
up at least once a second to check the running flag, which is how a
signal handler or another thread stops the loop:

    while running:
        try:
            accept()          # at most 1s
        except timeout:
            continue          # re-check running

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()
        server.serve(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, cleared again on cleanup
        self._ready = threading.Event()

        self._original_handlers: dict = {}

    @property
    def ready(self) -> threading.Event:
        """Event set once the server accepts connections."""
        return self._ready

    @property
    def address(self) -> tuple[str, int]:
        """
        The bound (host, port).

        After bind() this is the real address, so a configured port of
        0 shows up as the port the OS assigned.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting must not fail with "Address already in use" while
        # the previous socket sits in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses go out in one sendall(); no point delaying the tail
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """
        Turn SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) into a
        graceful shutdown.

        signal.signal() only works on the main thread. When the server
        runs in a background thread (tests), shutdown() is called
        directly instead.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # BIND / SERVE
    # =========================================================================

    def bind(self):
        """
        Create the listening socket.

        Raises:
            OSError: If the address cannot be bound (in use, no
                     permission). This is the one fatal error.
        """
        if self._socket is not None:
            return

        sock = self._create_socket()

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Blocks. Binds first if bind() has not been called yet.
        """
        self.bind()

        self._running = True
        self._setup_signals()
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Closed under us during shutdown, or a fatal socket error
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            connection_handler(conn)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler, another thread, or more than
        once. The loop notices within ACCEPT_POLL_INTERVAL seconds.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready.clear()
        logger.info("Socket server stopped")
