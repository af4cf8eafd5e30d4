"""
Unit tests for the static file handler.
"""

import logging
from pathlib import Path

import pytest

from staticserver.handlers import StaticFileHandler, AccessDenied
from staticserver.http import (
    HTTPRequest,
    HTTPVersion,
    HTTPStatus,
    AcceptRanges,
    NOT_FOUND_BODY,
)


@pytest.fixture
def handler(served_root: Path) -> StaticFileHandler:
    return StaticFileHandler(served_root)


def get(path: str, version: HTTPVersion = HTTPVersion.HTTP_1_1) -> HTTPRequest:
    return HTTPRequest(method="GET", path=path, version=version)


class TestFiles:

    def test_index_html(self, handler: StaticFileHandler):
        response = handler.handle(get("/index.html"))

        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/html"
        assert response.body == b"<h1>hi</h1>"
        assert response.content_length == 11
        assert response.accept_ranges is AcceptRanges.NONE

    def test_body_is_byte_identical(self, handler: StaticFileHandler, served_root: Path):
        data = bytes(range(256)) * 64
        (served_root / "blob.bin").write_bytes(data)

        response = handler.handle(get("/blob.bin"))

        assert response.body == data
        assert response.content_length == len(data)

    def test_sniffed_type(self, handler: StaticFileHandler):
        assert handler.handle(get("/image.png")).content_type == "image/png"

    def test_empty_file(self, handler: StaticFileHandler, served_root: Path):
        (served_root / "empty.txt").write_bytes(b"")
        response = handler.handle(get("/empty.txt"))

        assert response.status == HTTPStatus.OK
        assert response.content_length == 0

    def test_version_echoed(self, handler: StaticFileHandler):
        response = handler.handle(get("/index.html", HTTPVersion.HTTP_1_0))
        assert response.status_line == "HTTP/1.0 200 OK"

    def test_http2_answered_as_http11(self, handler: StaticFileHandler):
        response = handler.handle(get("/index.html", HTTPVersion.HTTP_2_0))
        assert response.status_line == "HTTP/1.1 200 OK"

    def test_file_through_internal_symlink(self, handler: StaticFileHandler):
        response = handler.handle(get("/inner/readme.md"))
        assert response.body == b"# Readme\n"


class TestDirectories:

    def test_root_listing(self, handler: StaticFileHandler):
        response = handler.handle(get("/"))

        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/html"
        assert b'href="/index.html"' in response.body
        assert response.content_length == len(response.body)

    def test_directory_is_listed_not_index(self, handler: StaticFileHandler):
        """index.html is not served implicitly for a directory."""
        response = handler.handle(get("/"))
        assert response.body != b"<h1>hi</h1>"

    def test_empty_directory(self, handler: StaticFileHandler):
        response = handler.handle(get("/empty/"))

        assert response.status == HTTPStatus.OK
        assert response.body.count(b"<li>") == 1
        assert b'href="/"' in response.body


class TestMissing:

    def test_not_found(self, handler: StaticFileHandler):
        response = handler.handle(get("/nope.txt"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.content_type == "text/html"
        assert response.body == NOT_FOUND_BODY.encode()

    def test_missing_path_logged(self, handler: StaticFileHandler, caplog):
        with caplog.at_level(logging.WARNING, logger="staticserver.handlers.static"):
            handler.handle(get("/nope.txt"))

        records = [r for r in caplog.records if r.name == "staticserver.handlers.static"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].getMessage().startswith("Path does not exist: ")
        assert "nope.txt" in records[0].getMessage()

    def test_found_path_not_logged(self, handler: StaticFileHandler, caplog):
        with caplog.at_level(logging.WARNING, logger="staticserver.handlers.static"):
            handler.handle(get("/index.html"))

        assert not [r for r in caplog.records if r.name == "staticserver.handlers.static"]


class TestErrors:

    def test_traversal_raises(self, handler: StaticFileHandler):
        with pytest.raises(AccessDenied):
            handler.handle(get("/../outside/secret.txt"))

    def test_symlink_escape_raises(self, handler: StaticFileHandler):
        with pytest.raises(AccessDenied):
            handler.handle(get("/escape/secret.txt"))

    def test_read_error_propagates(self, handler: StaticFileHandler, monkeypatch):
        def broken_read(self):
            raise PermissionError("denied by test")

        monkeypatch.setattr(Path, "read_bytes", broken_read)

        with pytest.raises(OSError):
            handler.handle(get("/index.html"))

    def test_root_must_exist(self, tmp_path: Path):
        with pytest.raises(ValueError):
            StaticFileHandler(tmp_path / "missing")
