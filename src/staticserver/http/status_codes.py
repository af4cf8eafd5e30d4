"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can answer with, and their reason phrases.

=============================================================================
WHICH CODES DOES A STATIC FILE SERVER NEED?
=============================================================================

Far fewer than a general-purpose framework. Every response we send is
one of these:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    STATUS CODES IN USE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                      File bytes or a directory listing     │
    │                                                                      │
    │   400 Bad Request             Request line could not be parsed      │
    │   403 Forbidden               Path resolved outside the root        │
    │   404 Not Found               Path does not exist                   │
    │   413 Payload Too Large       Request exceeded max_request_size     │
    │                                                                      │
    │   500 Internal Server Error   Filesystem failure while serving      │
    │   503 Service Unavailable     Worker queue full, connection shed    │
    │   505 HTTP Version Not        Request line used an unknown version  │
    │       Supported                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK
        <HTTPStatus.OK: 200>
        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400                   # Malformed request line
    FORBIDDEN = 403                     # Traversal outside the server root
    NOT_FOUND = 404                     # Nothing at that path
    PAYLOAD_TOO_LARGE = 413             # Request larger than allowed

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500         # Unexpected filesystem failure
    SERVICE_UNAVAILABLE = 503           # Worker queue is full
    HTTP_VERSION_NOT_SUPPORTED = 505    # Unknown protocol version

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
