"""
=============================================================================
STATICSERVER - A Small Multi-threaded Static File Server
=============================================================================

Serves the files and directories under one root over plain HTTP/1.x,
built directly on sockets and a fixed pool of worker threads.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserver)
    ├── server.py            # StaticFileServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One log line per connection
    ├── core/                # Networking
    │   ├── socket_server.py # Listening socket, accept loop, signals
    │   ├── connection.py    # One read, one write, close
    │   └── thread_pool.py   # Fixed workers, bounded queue, counter
    ├── http/                # Protocol
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response model and serialization
    │   ├── status_codes.py  # HTTPStatus enum
    │   └── mime_types.py    # Content sniffing and extension table
    └── handlers/            # Filesystem
        ├── resolver.py      # Request path → path inside the root
        ├── listing.py       # Directory index pages
        └── static.py        # Resolution → response

=============================================================================
QUICK START
=============================================================================

    from staticserver import StaticFileServer, ServerConfig

    server = StaticFileServer(ServerConfig(root_dir="./public", port=8000))
    server.run()

Or from a shell:

    staticserver --root ./public --port 8000

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StaticFileServer, create_server
from .handlers import StaticFileHandler, PathResolver, AccessDenied
from .http import HTTPRequest, HTTPResponse, HTTPStatus, RequestParser, HTTPParseError

__all__ = [
    "__version__",
    "ServerConfig",
    "StaticFileServer",
    "create_server",
    "StaticFileHandler",
    "PathResolver",
    "AccessDenied",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "RequestParser",
    "HTTPParseError",
]
