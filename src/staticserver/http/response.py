"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds and serializes every response the server sends.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                    ← Status line             │
    │    Content-Length: 11\r\n                 ┐                         │
    │    Content-Type: text/html\r\n            │                         │
    │    Accept-Ranges: none\r\n                │  ONE header block,      │
    │    Connection: close\r\n                  │  always written by      │
    │    Date: Sun, 18 Oct 2026 10:00:00 GMT\r\n│  HTTPResponse.to_bytes  │
    │    Server: staticserver/1.0\r\n           ┘                         │
    │    \r\n                                   ← Blank line              │
    │    <h1>hi</h1>                            ← Body (exactly 11 bytes) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE SERIALIZATION ROUTINE
=============================================================================

Every response kind (file, directory listing, 404, error pages) is an
HTTPResponse and goes through to_bytes(). Error pages are plain HTML
bodies; no response ever carries a second copy of its headers inside
the body.

Content-Length is not stored: it is computed from the body at
serialization time, so it cannot disagree with what is sent.

=============================================================================
ACCEPT-RANGES
=============================================================================

Range requests are not implemented. Every response therefore says
"Accept-Ranges: none" so clients (download managers, video players)
do not try to resume or seek with Range headers we would ignore.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Union

from .request import HTTPVersion
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "staticserver/1.0"

# Fixed body of every 404 response
NOT_FOUND_BODY = (
    "<html>\n"
    "<body>\n"
    "<h1>404 Not Found</h1>\n"
    "</body>\n"
    "</html>\n"
)


class AcceptRanges(Enum):
    """Values of the Accept-Ranges header."""

    BYTES = "bytes"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a socket.

    Use ResponseBuilder for a more convenient way to construct responses.

    Attributes:
        status:        HTTP status (enum)
        content_type:  Value of the Content-Type header
        body:          Response body bytes
        version:       Protocol version for the status line
        accept_ranges: Value of the Accept-Ranges header
        headers:       Extra headers, written after the standard ones
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = "text/plain"
    body: bytes = b""
    version: HTTPVersion = HTTPVersion.HTTP_1_1
    accept_ranges: AcceptRanges = AcceptRanges.NONE
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_length(self) -> int:
        """Body length in bytes. Always equal to len(body)."""
        return len(self.body)

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set an extra response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def header_block(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Args:
            server_name: Value for the Server header.
        """
        lines = [
            self.status_line,
            f"Content-Length: {self.content_length}",
            f"Content-Type: {self.content_type}",
            f"Accept-Ranges: {self.accept_ranges}",
            # One request per connection; tell the client up front
            "Connection: close",
            f"Date: {format_http_date(datetime.now(timezone.utc))}",
            f"Server: {server_name}",
        ]

        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")
        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the whole response for socket.sendall().

        Args:
            server_name: Value for the Server header.

        Returns:
            Header block followed by the body.
        """
        return self.header_block(server_name) + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .version(request.version.response_version)
            .content_type("image/png")
            .body(data)
            .build())

    Each method returns `self`, except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._version = HTTPVersion.HTTP_1_1
        self._content_type = "text/plain"
        self._accept_ranges = AcceptRanges.NONE
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    def version(self, version: HTTPVersion) -> "ResponseBuilder":
        """Set the protocol version written on the status line."""
        self._version = version
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        self._content_type = content_type
        return self

    def accept_ranges(self, accept_ranges: AcceptRanges) -> "ResponseBuilder":
        """Set the Accept-Ranges header."""
        self._accept_ranges = accept_ranges
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add an extra response header."""
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body (raw bytes or string).

        Strings are encoded to UTF-8.
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """Set an HTML body and Content-Type: text/html."""
        self._content_type = "text/html"
        return self.body(html)

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            content_type=self._content_type,
            body=self._body,
            version=self._version,
            accept_ranges=self._accept_ranges,
            headers=dict(self._headers),
        )

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Build and serialize the response in one step."""
        return self.build().to_bytes(server_name)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format datetime as HTTP-date (RFC 7231).

    Example: "Sun, 18 Oct 2026 10:00:00 GMT"

    English day and month names are hard-coded; strftime would follow
    the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_page(
    status: HTTPStatus,
    version: Optional[HTTPVersion] = None
) -> HTTPResponse:
    """
    Build a fixed HTML error page for a status code.

    The body never echoes request data back to the client.
    """
    body = (
        "<html>\n"
        "<body>\n"
        f"<h1>{int(status)} {status.phrase}</h1>\n"
        "</body>\n"
        "</html>\n"
    )
    return (ResponseBuilder()
        .status(status)
        .version(version or HTTPVersion.HTTP_1_1)
        .html(body)
        .build())


def not_found(version: Optional[HTTPVersion] = None) -> HTTPResponse:
    """
    404 Not Found with the fixed NOT_FOUND_BODY page.

    Sent as text/html rather than text/plain: the body is an HTML
    document, and a browser given text/plain would show the tags.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .version(version or HTTPVersion.HTTP_1_1)
        .html(NOT_FOUND_BODY)
        .build())


def bad_request(version: Optional[HTTPVersion] = None) -> HTTPResponse:
    """400 Bad Request."""
    return error_page(HTTPStatus.BAD_REQUEST, version)


def forbidden(version: Optional[HTTPVersion] = None) -> HTTPResponse:
    """403 Forbidden."""
    return error_page(HTTPStatus.FORBIDDEN, version)


def internal_error(version: Optional[HTTPVersion] = None) -> HTTPResponse:
    """500 Internal Server Error."""
    return error_page(HTTPStatus.INTERNAL_SERVER_ERROR, version)


def service_unavailable() -> HTTPResponse:
    """503 Service Unavailable, sent when the worker queue is full."""
    return error_page(HTTPStatus.SERVICE_UNAVAILABLE)
