"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the first bytes read from a connection into an HTTPRequest.

=============================================================================
WHAT WE ACTUALLY NEED FROM A REQUEST
=============================================================================

A static file server only cares about the REQUEST LINE:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /docs/read%20me.txt HTTP/1.1\r\n      ◄── parsed            │
    │    ─┬─ ────────┬─────────── ────┬────                               │
    │     │          │                │                                    │
    │   Method    Target           Version                                 │
    │            (still URL-encoded, untrusted)                           │
    │                                                                      │
    │    Host: localhost:5500\r\n                  ◄── ignored            │
    │    User-Agent: curl/8.0\r\n                  ◄── ignored            │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Headers are read off the socket along with the request line but never
interpreted. The target is kept exactly as received: decoding it is the
resolver's job, and decoding twice is how traversal filters get bypassed.

=============================================================================
KNOWN LIMITATION: ONE READ, ONE REQUEST
=============================================================================

The parser receives the bytes of a SINGLE recv() of buffer_size bytes.
Nothing is accumulated across reads:

    - A request line split across TCP segments so that the first read
      does not contain its line terminator is rejected as truncated.
    - Requests larger than the buffer are undefined behaviour: only the
      first buffer_size bytes are ever seen.

This is fine for browsers and curl (request lines are tiny and arrive
in the first segment) but is not a general HTTP/1.1 message parser.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
import re


class HTTPParseError(Exception):
    """
    Raised when the request line cannot be parsed.

    Carries the HTTP status code to answer with:

        400 Bad Request                 - Malformed or truncated request line
        413 Payload Too Large           - Read exceeded max_request_size
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return


class HTTPVersion(Enum):
    """Protocol versions accepted on the request line."""

    HTTP_1_0 = "HTTP/1.0"
    HTTP_1_1 = "HTTP/1.1"
    HTTP_2_0 = "HTTP/2.0"

    @property
    def response_version(self) -> "HTTPVersion":
        """
        Version to put on the response status line.

        Responses are always plain-text HTTP/1.x framing, so a client
        claiming HTTP/2.0 on a text request line gets an HTTP/1.1 answer.
        """
        if self is HTTPVersion.HTTP_2_0:
            return HTTPVersion.HTTP_1_1
        return self

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Immutable: created once per accepted connection and thrown away
    after the response has been written.

    Attributes:
        method:         Request method token (GET, HEAD, ...). Every
                        method resolves the path the same way.
        path:           Request target exactly as received: URL-encoded
                        and attacker-controlled.
        version:        Protocol version from the request line.
        client_address: (ip, port) of the client, for logging.
        raw:            The bytes the request was parsed from.
    """

    method: str
    path: str
    version: HTTPVersion = HTTPVersion.HTTP_1_1
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)


class RequestParser:
    """
    Parser for the request line of an HTTP request.

    Usage:
        parser = RequestParser(max_request_size=4096)
        request = parser.parse(b"GET / HTTP/1.1\\r\\n\\r\\n", ("127.0.0.1", 5000))
    """

    # METHOD SP "/" TARGET SP VERSION
    # The target may not contain spaces; origin-form only ("/...").
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) (/[^ ]*) (HTTP/\d\.\d)$")

    SUPPORTED_VERSIONS = {version.value: version for version in HTTPVersion}

    def __init__(self, max_request_size: int = 4096):
        """
        Args:
            max_request_size: Largest chunk accepted. Longer input is
                              rejected with 413 Payload Too Large.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes into an HTTPRequest.

        Args:
            data: Bytes from a single read of the connection.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request line is empty, truncated,
                            malformed or uses an unknown version.
        """
        if not data:
            raise HTTPParseError("Empty request")

        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        # Lenient decode: invalid UTF-8 becomes U+FFFD and then fails the
        # pattern below if it landed in the method or version
        text = data.decode("utf-8", errors="replace")

        line_end = text.find("\n")
        if line_end == -1:
            raise HTTPParseError("Truncated request line: no line terminator")

        request_line = text[:line_end].rstrip("\r")
        method, path, version = self._parse_request_line(request_line)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, HTTPVersion]:
        """
        Split a request line into (method, target, version).

        Raises:
            HTTPParseError: If line is malformed or the version unknown
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version_text = match.groups()

        version = self.SUPPORTED_VERSIONS.get(version_text)
        if version is None:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version_text}",
                status_code=505
            )

        return method, target, version


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 4096
) -> HTTPRequest:
    """
    Convenience function to parse a request in one call.

    Use RequestParser directly to parse many requests with the same
    settings.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
