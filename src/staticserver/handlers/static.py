"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a parsed request into a response: resolve the path, then serve a
file, a directory listing, or the 404 page.

=============================================================================
FLOW
=============================================================================

    HTTPRequest(path="/img/cat.png")
            │
            ▼
    PathResolver.resolve()  ───── AccessDenied ──► raised to the server
            │                                       (answers 403)
            │ ResolvedPath
            ▼
    ┌───────────────┬──────────────────────┬──────────────────────────┐
    │ FILE          │ DIRECTORY            │ MISSING                  │
    ├───────────────┼──────────────────────┼──────────────────────────┤
    │ read bytes    │ DirectoryRenderer    │ log "Path does not       │
    │ classify_     │   .render()          │   exist"                 │
    │   content()   │                      │                          │
    │               │                      │                          │
    │ 200           │ 200 text/html        │ 404 text/html            │
    │ <sniffed>     │ <listing>            │ NOT_FOUND_BODY           │
    └───────────────┴──────────────────────┴──────────────────────────┘

OSError from reading or listing is raised to the server as well
(answers 500). Neither error kind is turned into a body here, so a
failure can never be mistaken for content.

=============================================================================
"""

import logging
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus, AcceptRanges,
    not_found,
)
from ..http.mime_types import classify_content
from .resolver import PathResolver, PathKind, ResolvedPath
from .listing import DirectoryRenderer


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files and directory listings from a server root.

    Usage:
        handler = StaticFileHandler("/srv/www")
        response = handler.handle(request)
        conn.send_response(response.to_bytes())
    """

    def __init__(self, root_dir: str | Path):
        """
        Args:
            root_dir: Directory to serve. Canonicalized once.

        Raises:
            ValueError: If root_dir is not an existing directory.
        """
        self.resolver = PathResolver(root_dir)
        self.renderer = DirectoryRenderer(self.resolver.root)

    @property
    def root_dir(self) -> Path:
        return self.resolver.root

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response for a request.

        Raises:
            AccessDenied: The path escapes the root.
            OSError: The file or directory could not be read.
        """
        resolved = self.resolver.resolve(request.path)
        return self.respond(resolved, request)

    def respond(self, resolved: ResolvedPath, request: HTTPRequest) -> HTTPResponse:
        """Build the response for an already-resolved path."""
        version = request.version.response_version

        if resolved.kind is PathKind.FILE:
            return self._serve_file(resolved.absolute_path, request)

        if resolved.kind is PathKind.DIRECTORY:
            return self._serve_directory(resolved.absolute_path, request)

        logger.warning(f"Path does not exist: {resolved.absolute_path}")
        return not_found(version)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        # Whole file in memory: bodies are sent with one sendall()
        content = path.read_bytes()

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .version(request.version.response_version)
            .content_type(classify_content(content, path))
            .accept_ranges(AcceptRanges.NONE)
            .body(content)
            .build())

    def _serve_directory(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        listing = self.renderer.render(path)

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .version(request.version.response_version)
            .html(listing.body)
            .build())
