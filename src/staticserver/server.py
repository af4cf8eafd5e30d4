"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The orchestrator: owns the listening socket, the worker pool and the
static file handler, and runs one task per accepted connection.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        StaticFileServer                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    ┌──────────────┐    ┌──────────────┐    ┌───────────────────┐    │
    │    │ SocketServer │───►│  ThreadPool  │───►│ StaticFileHandler │    │
    │    │ accept loop  │    │ N workers    │    │ resolve + build   │    │
    │    └──────────────┘    └──────────────┘    └───────────────────┘    │
    │                               │                                      │
    │                               ▼                                      │
    │                      ConnectionCounter, AccessLogger                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION
=============================================================================

    accept ──► queue full? ──yes──► 503, close
                  │
                  no
                  ▼
    worker:  read one buffer
               │  nothing / reset / timeout ──► close, no response
               ▼
             parse request line
               │  HTTPParseError ──► 400 / 413 / 505
               ▼
             resolve + build
               │  AccessDenied ──► 403
               │  OSError      ──► 500, "Failed to handle client"
               ▼
             write response, close
               │
               ▼
             counter += 1, access log line

Every error response is a fixed HTML page. None of them carries file
content, request data or filesystem paths.

=============================================================================
"""

import logging
import time
from typing import Optional

from .config import ServerConfig
from .access_log import AccessLogger
from .core import SocketServer, Connection, ThreadPool, ConnectionCounter
from .http import (
    HTTPRequest, RequestParser, HTTPParseError, HTTPResponse, HTTPStatus,
    error_page, forbidden, internal_error, service_unavailable,
)
from .handlers import StaticFileHandler, AccessDenied


logger = logging.getLogger(__name__)

# Deadlines for 503 replies written on the accept thread
REJECT_SEND_TIMEOUT = 0.5
REJECT_DRAIN_TIMEOUT = 0.1


class StaticFileServer:
    """
    Multi-threaded static file server.

    Usage:
        server = StaticFileServer(ServerConfig(root_dir="./public"))
        server.run()  # Blocks until SIGINT/SIGTERM

    In tests, bind first to learn the port, then serve from a thread:

        server = StaticFileServer(ServerConfig(port=0, root_dir=tmp_path))
        host, port = server.bind()
        threading.Thread(target=server.run, daemon=True).start()
        server.ready.wait()
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults serve the working
                    directory on 127.0.0.1:5500.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # The root is canonicalized here, once, for the life of the server
        self._handler = StaticFileHandler(self.config.root_path)

        self._counter = ConnectionCounter()
        self._access_log = AccessLogger(log_format=self.config.log_format)

        self._running = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def root_dir(self):
        return self._handler.root_dir

    @property
    def address(self) -> tuple[str, int]:
        return self._socket_server.address

    @property
    def ready(self):
        """threading.Event set once connections are being accepted."""
        return self._socket_server.ready

    @property
    def connections_handled(self) -> int:
        return self._counter.value

    @property
    def stats(self) -> dict:
        return {
            "connections_handled": self._counter.value,
            "pool": self._thread_pool.stats,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self) -> tuple[str, int]:
        """
        Bind the listening socket without serving yet.

        Returns:
            The bound (host, port).

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket_server.bind()
        return self.address

    def run(self, configure_logging: bool = True):
        """
        Serve until shutdown() is called or a signal arrives. Blocks.

        Args:
            configure_logging: Install the basicConfig root handler.
                               Embedders with their own logging pass False.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        if configure_logging:
            self._setup_logging()

        if self.config.timeout is None:
            logger.warning(
                "No socket timeout configured: a client that never sends "
                "holds a worker indefinitely (set --timeout)"
            )

        self._socket_server.bind()

        self._running = True
        self._thread_pool.start()

        host, port = self.address
        logger.info(
            f"Serving {self.root_dir} on http://{host}:{port} "
            f"with {self.config.workers} workers"
        )

        try:
            self._socket_server.serve(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask the accept loop to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False

        # Queued connections are still answered before workers stop
        self._thread_pool.shutdown(wait=True, timeout=30.0)

        logger.info(f"Server stopped after {self._counter.value} connections")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a connection for a worker. Runs on the accept thread."""
        start_time = time.time()

        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn, start_time),
            )
        except RuntimeError:
            # Pool already shutting down
            submitted = False

        if not submitted:
            self._reject(conn, start_time)

    def _reject(self, conn: Connection, start_time: float):
        """
        Answer 503 on the accept thread.

        Bounded in time whatever the client does: both the send and the
        drain in close() have short deadlines.
        """
        logger.warning(f"[{conn.id}] Worker queue full, rejecting connection")
        response = service_unavailable()

        try:
            conn.socket.settimeout(REJECT_SEND_TIMEOUT)
            conn.send_response(response.to_bytes(self.config.server_name))
        finally:
            conn.close(drain_timeout=REJECT_DRAIN_TIMEOUT)

        self._access_log.log(conn.id, conn.address, None, response, start_time)

    def _process_connection(self, conn: Connection, start_time: Optional[float] = None):
        """
        Handle one connection from read to close. Runs on a worker thread.

        Never raises: every failure is either answered with an error page
        or, for transport failures, ends the connection silently.
        """
        if start_time is None:
            start_time = time.time()

        with conn:
            try:
                data = conn.read_request()
            except OSError as e:
                # Reset, timeout: there is nobody to answer
                logger.error(f"Failed to handle client: {e}")
                return

            if not data:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            request, response = self._respond(conn, data)

            sent = conn.send_response(response.to_bytes(self.config.server_name))

        self._access_log.log(conn.id, conn.address, request, response, start_time)

        if sent:
            handled = self._counter.increment()
            logger.info(f"Connected stream... {handled}")

    def _respond(
        self,
        conn: Connection,
        data: bytes
    ) -> tuple[Optional[HTTPRequest], HTTPResponse]:
        """Turn the raw request bytes into a response, mapping errors."""
        try:
            request = self._parser.parse(data, conn.address)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
            return None, error_page(HTTPStatus(e.status_code))

        version = request.version.response_version

        try:
            return request, self._handler.handle(request)

        except AccessDenied as e:
            logger.warning(f"[{conn.id}] {e}")
            return request, forbidden(version)

        except OSError as e:
            logger.error(f"Failed to handle client: {e}", exc_info=True)
            return request, internal_error(version)

        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return request, internal_error(version)


def create_server(config: Optional[ServerConfig] = None) -> StaticFileServer:
    """Factory for StaticFileServer instances."""
    return StaticFileServer(config)
