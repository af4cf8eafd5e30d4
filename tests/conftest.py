"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticFileServer, ServerConfig


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + bytes(range(64))


@pytest.fixture
def outside_dir(tmp_path: Path) -> Path:
    """A directory next to the served root that must never be reachable."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_bytes(b"top secret")
    return outside


@pytest.fixture
def served_root(tmp_path: Path, outside_dir: Path) -> Path:
    """
    A small tree to serve:

        www/
        ├── index.html        <h1>hi</h1>
        ├── image.png         PNG signature, no useful extension needed
        ├── <script>.txt      name that must be escaped in listings
        ├── a b.txt           name that must be percent-encoded in hrefs
        ├── empty/            no children
        ├── docs/
        │   └── readme.md
        ├── escape -> ../outside          (symlink out of the root)
        └── inner -> docs                 (symlink inside the root)
    """
    root = tmp_path / "www"
    root.mkdir()

    (root / "index.html").write_bytes(b"<h1>hi</h1>")
    (root / "image.png").write_bytes(PNG_BYTES)
    (root / "<script>.txt").write_bytes(b"not a script")
    (root / "a b.txt").write_bytes(b"spaced out")
    (root / "empty").mkdir()
    (root / "docs").mkdir()
    (root / "docs" / "readme.md").write_bytes(b"# Readme\n")

    (root / "escape").symlink_to(outside_dir, target_is_directory=True)
    (root / "inner").symlink_to(root / "docs", target_is_directory=True)

    return root


@pytest.fixture
def config(served_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(served_root),
        workers=2,
        queue_size=8,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerRunner:
    """Runs a StaticFileServer in a background thread."""

    def __init__(self, server: StaticFileServer):
        self.server = server
        self.address: tuple[str, int] = ("127.0.0.1", 0)
        self._thread: threading.Thread = None

    def start(self):
        """Bind, start serving in a background thread, wait until ready."""
        self.address = self.server.bind()

        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True
        )
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes and read the whole response until the server closes."""
        with socket.create_connection(self.address, timeout=timeout) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, path: str, version: str = "HTTP/1.1") -> bytes:
        return self.request(
            f"GET {path} {version}\r\nHost: localhost\r\n\r\n".encode("latin-1")
        )


def split_response(raw: bytes) -> tuple[str, dict[str, str], bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")

    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    return lines[0], headers, body


@pytest.fixture
def server_runner(config: ServerConfig) -> Generator[ServerRunner, None, None]:
    """A running server over served_root on a free port."""
    runner = ServerRunner(StaticFileServer(config))
    runner.start()

    yield runner

    runner.stop()


@pytest.fixture
def parse_response():
    """The split_response helper, for tests that read raw responses."""
    return split_response


@pytest.fixture
def make_runner():
    """Build and start servers with custom config; all are stopped afterwards."""
    runners = []

    def factory(config: ServerConfig) -> ServerRunner:
        runner = ServerRunner(StaticFileServer(config))
        runner.start()
        runners.append(runner)
        return runner

    yield factory

    for runner in runners:
        runner.stop()
