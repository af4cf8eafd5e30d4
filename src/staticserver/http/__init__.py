"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The protocol side of the server: everything that knows about HTTP
syntax but nothing about the filesystem.

    request.py       Request line parsing (RequestParser, HTTPRequest)
    response.py      Response model and the single serializer
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    Content classification (sniffing + extension table)

=============================================================================
"""

from .request import HTTPRequest, HTTPVersion, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    AcceptRanges,
    NOT_FOUND_BODY,
    not_found,      # 404 Not Found
    bad_request,    # 400 Bad Request
    forbidden,      # 403 Forbidden
    internal_error,       # 500 Internal Server Error
    service_unavailable,  # 503 Service Unavailable
    error_page,
)
from .status_codes import HTTPStatus
from .mime_types import classify_content, sniff_mime_type, get_mime_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "HTTPVersion",
    "RequestParser",
    "HTTPParseError",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "AcceptRanges",
    "NOT_FOUND_BODY",
    "not_found",
    "bad_request",
    "forbidden",
    "internal_error",
    "service_unavailable",
    "error_page",

    # Status codes
    "HTTPStatus",

    # Content classification
    "classify_content",
    "sniff_mime_type",
    "get_mime_type",
]
