"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the static file handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Binds the listening socket once at startup                       │
    │  • Runs the accept() loop on the main thread                        │
    │  • Turns SIGINT/SIGTERM into a graceful shutdown                    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one task per accepted connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Fixed number of long-lived workers                               │
    │  • Bounded queue; a full queue rejects instead of growing           │
    │  • ConnectionCounter shared by all workers                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker runs the task
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • One read, one write, close                                       │
    │  • NEW → READING → PROCESSING → WRITING → CLOSED                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool, ConnectionCounter

__all__ = [
    "SocketServer",       # Listening socket and accept loop
    "Connection",         # Client socket wrapper
    "ConnectionState",    # Connection lifecycle states
    "ThreadPool",         # Fixed worker pool with bounded queue
    "ConnectionCounter",  # Lock-protected handled-connection count
]
