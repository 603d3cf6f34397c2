"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from PIL import Image

from webserver import WebServer, ServerConfig, Worker
from webserver.core import Connection


@dataclass
class RawResponse:
    """A response as read off the wire, split at the blank line."""

    raw: bytes
    status_line: str = ""
    header_lines: list = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def parse(cls, raw: bytes) -> "RawResponse":
        head, sep, body = raw.partition(b"\n\n")
        assert sep, f"No header terminator in response: {raw!r}"

        lines = head.decode("iso-8859-1").split("\n")
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            headers[name] = value

        return cls(
            raw=raw,
            status_line=lines[0],
            header_lines=lines[1:],
            headers=headers,
            body=body,
        )


def read_all(sock: socket.socket) -> bytes:
    """Read from sock until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """
    Served root with one file of every kind.

        www/index.html     "hello"
        www/page.html      three lines, LF and CRLF terminated
        www/logo.png       12x8 RGBA
        www/photo.jpeg     20x10 RGB
        www/anim.gif       16x16 palette
        www/bad.png        not an image
        www/notes.txt      plain text
        www/README         no extension
        secret.html        OUTSIDE the root
    """
    root = tmp_path / "www"
    root.mkdir()

    (root / "index.html").write_bytes(b"hello")
    (root / "page.html").write_bytes(b"<html>\n<p>hi</p>\r\n</html>\n")

    Image.new("RGBA", (12, 8), (255, 0, 0, 128)).save(root / "logo.png", "PNG")
    Image.new("RGB", (20, 10), (0, 128, 255)).save(root / "photo.jpeg", "JPEG")
    Image.new("P", (16, 16), 3).save(root / "anim.gif", "GIF")

    (root / "bad.png").write_bytes(b"definitely not a png")
    (root / "notes.txt").write_bytes(b"some notes\n")
    (root / "README").write_bytes(b"readme\n")

    (tmp_path / "secret.html").write_bytes(b"top secret")

    return root


@pytest.fixture
def config(content_root: Path) -> ServerConfig:
    """Test server configuration serving content_root."""
    return ServerConfig(
        host="127.0.0.1",
        port=8080,
        content_root=str(content_root),
        read_timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """A connected (server side, client side) socket pair."""
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    yield server_side, client_side
    server_side.close()
    client_side.close()


@pytest.fixture
def make_connection(socket_pair) -> Callable[..., Tuple[Connection, socket.socket]]:
    """
    Build a Connection whose client already sent `data`.

    With end_stream=True the client also shuts down its write side, so
    reads past `data` hit end of stream instead of blocking.
    """
    server_side, client_side = socket_pair

    def _make(data: bytes = b"", end_stream: bool = True, **kwargs):
        if data:
            client_side.sendall(data)
        if end_stream:
            client_side.shutdown(socket.SHUT_WR)
        kwargs.setdefault("timeout", 5.0)
        conn = Connection(socket=server_side, address=("127.0.0.1", 50000), **kwargs)
        return conn, client_side

    return _make


@pytest.fixture
def exchange(config: ServerConfig, socket_pair) -> Callable[..., RawResponse]:
    """
    Run one Worker against a request and return the parsed response.

    The worker runs on its own thread, like it does under the server,
    while the test thread reads the response until the worker closes.
    """
    server_side, client_side = socket_pair

    def _exchange(request: bytes, end_stream: bool = False, cfg: ServerConfig = None) -> RawResponse:
        conn = Connection(
            socket=server_side,
            address=("127.0.0.1", 50000),
            timeout=5.0,
        )
        worker = Worker(conn, cfg or config)
        thread = threading.Thread(target=worker.run, daemon=True)
        thread.start()

        client_side.sendall(request)
        if end_stream:
            client_side.shutdown(socket.SHUT_WR)

        raw = read_all(client_side)
        thread.join(timeout=5.0)
        assert not thread.is_alive(), "Worker did not finish"
        return RawResponse.parse(raw)

    return _exchange


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class

    def __init__(self, server: WebServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.config.port

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.socket_server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def fetch(self, request: bytes) -> RawResponse:
        """Send a raw request on a new connection and read the response."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(request)
            return RawResponse.parse(read_all(s))


@pytest.fixture
def test_server(config: ServerConfig, free_port: int) -> Generator[TestServer, None, None]:
    """Create and start a test server serving content_root."""
    config.port = free_port
    test_srv = TestServer(WebServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
