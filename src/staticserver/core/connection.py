"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response
exchange.

=============================================================================
ONE READ, ONE WRITE, CLOSE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │                  Lifetime of a Connection                        │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   accept()                                                       │
    │      │                                                           │
    │      ▼                                                           │
    │   read_request()     one recv(buffer_size), default 4096 bytes   │
    │      │                                                           │
    │      ▼                                                           │
    │   (parse, resolve, build happen elsewhere)                       │
    │      │                                                           │
    │      ▼                                                           │
    │   send_response()    sendall() of the whole serialized response  │
    │      │                                                           │
    │      ▼                                                           │
    │   close()            SHUT_WR, bounded drain, close               │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

TCP is a byte stream and does not preserve message boundaries, so a
single recv() is not guaranteed to hold the whole request. Only the
request line matters here, and real clients send it in their first
segment. A request line that does not fit in the first read is
rejected by the parser as truncated; anything past the first read is
never looked at.

Every response carries "Connection: close". There is no keep-alive
and no pipelining: one connection, one request.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
     │             │                                  │
     │             ▼                                  │
     └──────────► CLOSING ◄───────────────────────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)

# Upper bounds on reading leftover client bytes before close()
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and cleanup."""
    NEW = "new"                # Just accepted
    READING = "reading"        # Waiting on the single recv()
    PROCESSING = "processing"  # Request handed to the handler
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Usage:
        with Connection(client_socket, address, timeout=30.0) as conn:
            data = conn.read_request()
            conn.send_response(response_bytes)
        # closed here, even if the handler raised

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short connection identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Size of the single read.
        timeout: Socket timeout in seconds. None blocks forever.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 4096
    timeout: Optional[float] = None

    bytes_received: int = 0
    bytes_sent: int = 0

    def __post_init__(self):
        # The listening socket polls with a timeout; accepted sockets
        # may inherit it on some platforms, so set ours explicitly
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read the request with a single recv().

        Returns:
            Up to buffer_size bytes. Empty if the client closed the
            connection without sending anything.

        Raises:
            TimeoutError: If the configured timeout expires first.
            OSError: If the connection was reset.
        """
        self.state = ConnectionState.READING

        data = self.socket.recv(self.buffer_size)
        self.bytes_received += len(data)

        self.state = ConnectionState.PROCESSING
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a complete serialized response.

        sendall() loops until every byte is written, so the declared
        Content-Length is always matched on the wire unless the peer
        goes away.

        Returns:
            True if the response was sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            # Reset, broken pipe or timeout: nothing more can be said
            logger.warning(f"[{self.id}] Send to {self.client_ip}:{self.client_port} failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self, drain_timeout: float = DRAIN_TIMEOUT):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end-of-body.
        2. Drain whatever the client still sent (headers past the first
           read) so the kernel does not answer with RST and cut off the
           response. The drain stops after drain_timeout seconds or
           DRAIN_LIMIT bytes, whichever comes first, even if the client
           keeps sending. A drain_timeout of 0 takes only what is
           already buffered and never waits.
        3. close() releases the descriptor.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain(drain_timeout)

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.age * 1000:.1f}ms "
            f"({self.bytes_received} in, {self.bytes_sent} out)"
        )

    def _drain(self, drain_timeout: float):
        deadline = time.monotonic() + drain_timeout
        drained = 0

        try:
            while drained < DRAIN_LIMIT:
                # A timeout of 0 makes recv() non-blocking
                self.socket.settimeout(max(deadline - time.monotonic(), 0.0))
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout, would-block or reset

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
