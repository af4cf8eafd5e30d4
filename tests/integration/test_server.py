"""
End-to-end tests: a real server on a free port, spoken to over sockets.
"""

import logging
import socket
import threading
import time
from pathlib import Path

import pytest

from staticserver import StaticFileServer, ServerConfig
from staticserver.http import NOT_FOUND_BODY


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestScenarios:
    """The five reference scenarios, over the wire."""

    def test_index_html(self, server_runner, parse_response):
        status, headers, body = parse_response(server_runner.get("/index.html"))

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-length"] == "11"
        assert headers["content-type"] == "text/html"
        assert body == b"<h1>hi</h1>"

    @pytest.mark.parametrize("path", [
        "/../../etc/passwd",
        "/%2e%2e/%2e%2e/etc/passwd",
        "/..%2F..%2Fetc%2Fpasswd",
        "/../outside/secret.txt",
        "/escape/secret.txt",
        "/../outside/secret.txt%00",
    ])
    def test_traversal_is_forbidden(self, server_runner, parse_response, path: str):
        raw = server_runner.get(path)
        status, headers, body = parse_response(raw)

        assert status == "HTTP/1.1 403 Forbidden"
        assert headers["content-type"] == "text/html"
        assert b"top secret" not in raw
        assert b"root:" not in raw
        assert int(headers["content-length"]) == len(body)

    def test_empty_directory(self, server_runner, parse_response):
        status, headers, body = parse_response(server_runner.get("/empty/"))

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "text/html"
        assert body.count(b"<li>") == 1
        assert b'href="/"' in body

    def test_missing_path(self, server_runner, parse_response, caplog):
        with caplog.at_level(logging.WARNING, logger="staticserver.handlers.static"):
            status, headers, body = parse_response(server_runner.get("/does-not-exist"))

            assert wait_for(lambda: any(
                r.getMessage().startswith("Path does not exist:") for r in caplog.records
            ))

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["content-type"] == "text/html"
        assert body == NOT_FOUND_BODY.encode()

    def test_script_filename_escaped(self, server_runner, parse_response):
        status, _, body = parse_response(server_runner.get("/"))

        assert status == "HTTP/1.1 200 OK"
        assert b"<script>" not in body
        assert b"&lt;script&gt;.txt" in body


class TestResponses:

    def test_standard_headers(self, server_runner, parse_response, config: ServerConfig):
        _, headers, _ = parse_response(server_runner.get("/index.html"))

        assert headers["accept-ranges"] == "none"
        assert headers["connection"] == "close"
        assert headers["server"] == config.server_name
        assert headers["date"].endswith("GMT")

    def test_binary_file_byte_identical(self, server_runner, parse_response, served_root: Path):
        data = bytes(range(256)) * 256
        (served_root / "big.bin").write_bytes(data)

        _, headers, body = parse_response(server_runner.get("/big.bin"))

        assert int(headers["content-length"]) == len(data)
        assert body == data

    def test_sniffed_content_type(self, server_runner, parse_response):
        _, headers, _ = parse_response(server_runner.get("/image.png"))
        assert headers["content-type"] == "image/png"

    def test_listing_length_matches(self, server_runner, parse_response, served_root: Path):
        _, headers, body = parse_response(server_runner.get("/"))

        assert int(headers["content-length"]) == len(body)
        assert body.count(b"<li>") == len(list(served_root.iterdir())) + 1

    def test_http10_echoed(self, server_runner, parse_response):
        status, _, _ = parse_response(server_runner.get("/index.html", version="HTTP/1.0"))
        assert status == "HTTP/1.0 200 OK"

    def test_http2_answered_as_http11(self, server_runner, parse_response):
        status, _, _ = parse_response(server_runner.get("/index.html", version="HTTP/2.0"))
        assert status == "HTTP/1.1 200 OK"

    def test_percent_encoded_name(self, server_runner, parse_response):
        _, _, body = parse_response(server_runner.get("/a%20b.txt"))
        assert body == b"spaced out"


class TestBadRequests:

    def test_malformed_request_line(self, server_runner, parse_response):
        status, headers, body = parse_response(server_runner.request(b"garbage\r\n\r\n"))

        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["content-type"] == "text/html"
        assert b"garbage" not in body

    def test_unsupported_version(self, server_runner, parse_response):
        status, _, _ = parse_response(server_runner.request(b"GET / HTTP/3.0\r\n\r\n"))
        assert status == "HTTP/1.1 505 HTTP Version Not Supported"

    def test_oversized_request(self, config: ServerConfig, make_runner, parse_response):
        config.max_request_size = 64
        runner = make_runner(config)

        status, _, _ = parse_response(runner.get("/" + "a" * 100))

        assert status == "HTTP/1.1 413 Payload Too Large"

    def test_client_sends_nothing(self, server_runner):
        with socket.create_connection(server_runner.address, timeout=5.0) as sock:
            sock.shutdown(socket.SHUT_WR)
            assert sock.recv(1024) == b""

    def test_read_error_is_500(self, server_runner, parse_response, monkeypatch, caplog):
        def broken_read(self):
            raise OSError("disk on fire")

        monkeypatch.setattr(Path, "read_bytes", broken_read)

        with caplog.at_level(logging.ERROR, logger="staticserver.server"):
            raw = server_runner.get("/index.html")

            assert wait_for(lambda: any(
                r.name == "staticserver.server"
                and r.getMessage().startswith("Failed to handle client:")
                for r in caplog.records
            ))

        status, _, body = parse_response(raw)
        assert status == "HTTP/1.1 500 Internal Server Error"
        assert b"disk on fire" not in body


class TestConcurrency:

    def test_counter_counts_handled_connections(self, server_runner):
        for _ in range(3):
            server_runner.get("/index.html")

        assert wait_for(lambda: server_runner.server.connections_handled == 3)

    def test_parallel_clients(self, server_runner, parse_response):
        from concurrent.futures import ThreadPoolExecutor

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(
                lambda _: parse_response(server_runner.get("/index.html")),
                range(20),
            ))

        assert all(status == "HTTP/1.1 200 OK" for status, _, _ in results)
        assert all(body == b"<h1>hi</h1>" for _, _, body in results)

    def test_full_queue_gets_503(self, config: ServerConfig, make_runner, parse_response):
        config.workers = 1
        config.queue_size = 1
        runner = make_runner(config)

        holder = socket.create_connection(runner.address, timeout=5.0)
        waiting = None
        try:
            # The only worker blocks reading from a silent client
            time.sleep(0.3)
            # Queued behind it
            waiting = socket.create_connection(runner.address, timeout=5.0)
            time.sleep(0.3)

            status, _, _ = parse_response(runner.get("/index.html"))
            assert status == "HTTP/1.1 503 Service Unavailable"
        finally:
            holder.close()
            if waiting is not None:
                waiting.close()

    def test_chatty_rejected_client_does_not_stall_accept(
        self, config: ServerConfig, make_runner, parse_response
    ):
        config.workers = 1
        config.queue_size = 1
        runner = make_runner(config)

        holder = socket.create_connection(runner.address, timeout=5.0)
        time.sleep(0.3)
        waiting = socket.create_connection(runner.address, timeout=5.0)
        time.sleep(0.3)

        # Rejected with 503, then keeps sending a byte every 50ms
        chatty = socket.create_connection(runner.address, timeout=5.0)
        stop = threading.Event()

        def trickle():
            while not stop.is_set():
                try:
                    chatty.send(b"x")
                except OSError:
                    return
                time.sleep(0.05)

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()

        try:
            time.sleep(0.3)

            started = time.monotonic()
            status, _, _ = parse_response(runner.get("/index.html"))
            assert status == "HTTP/1.1 503 Service Unavailable"
            assert time.monotonic() - started < 2.0

            holder.close()
            waiting.close()
            time.sleep(0.5)

            status, _, body = parse_response(runner.get("/index.html"))
            assert status == "HTTP/1.1 200 OK"
            assert body == b"<h1>hi</h1>"
        finally:
            stop.set()
            sender.join(timeout=2.0)
            chatty.close()
            holder.close()
            waiting.close()


class TestLifecycle:

    def test_bound_address_reported(self, config: ServerConfig):
        server = StaticFileServer(config)
        host, port = server.bind()

        try:
            assert host == "127.0.0.1"
            assert port != 0
        finally:
            server._socket_server._cleanup()

    def test_explicit_port(self, config: ServerConfig, free_port: int):
        config.port = free_port
        server = StaticFileServer(config)

        try:
            assert server.bind() == ("127.0.0.1", free_port)
        finally:
            server._socket_server._cleanup()

    def test_bind_conflict_is_fatal(self, config: ServerConfig):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen(1)
            config.port = taken.getsockname()[1]

            with pytest.raises(OSError):
                StaticFileServer(config).bind()

    def test_shutdown_stops_serving(self, config: ServerConfig, make_runner):
        runner = make_runner(config)
        address = runner.address

        runner.stop()

        assert not runner._thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(address, timeout=1.0).close()

    def test_root_read_once(self, config: ServerConfig, served_root: Path, tmp_path: Path, monkeypatch):
        server = StaticFileServer(config)
        monkeypatch.chdir(tmp_path)

        assert server.root_dir == served_root.resolve()
