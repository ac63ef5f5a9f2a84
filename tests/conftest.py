"""
pytest configuration and fixtures.
"""

import http.client
import io
import socket
import threading
from typing import Callable, Dict, Generator, List, Optional, Tuple

import pytest

from helloweb import Dispatcher, LogSink, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /foo?verbose=1&tag=a&tag=b HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"name=gopher&lang=python"
    return (
        b"POST /foo HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration on a port the OS picks."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=8,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def occupied_port() -> Generator[int, None, None]:
    """A port held by a listening socket for the duration of the test."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        yield s.getsockname()[1]


@pytest.fixture
def log_stream() -> io.StringIO:
    """In-memory stream for a LogSink."""
    return io.StringIO()


@pytest.fixture
def sink(log_stream: io.StringIO) -> LogSink:
    return LogSink(stream=log_stream, prefix="web ")


class ServerThread:
    """Runs Dispatcher.serve() in a background thread."""

    def __init__(self, dispatcher: Dispatcher, address=None):
        self.dispatcher = dispatcher
        self.address = address
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "ServerThread":
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        if not self.dispatcher.wait_until_serving(timeout=5.0):
            raise RuntimeError(f"Server failed to start: {self.error!r}")
        return self

    def _run(self):
        try:
            self.dispatcher.serve(self.address)
        except BaseException as e:
            self.error = e

    @property
    def port(self) -> int:
        return self.dispatcher.address[1]

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> Tuple[int, bytes, Dict[str, str]]:
        """One request on a fresh connection. Returns (status, body, headers)."""
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5.0)
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, response.read(), dict(response.getheaders())
        finally:
            conn.close()

    def stop(self):
        self.dispatcher.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def serve() -> Generator[Callable[..., ServerThread], None, None]:
    """Start dispatchers in background threads; all are stopped at teardown."""
    started: List[ServerThread] = []

    def _serve(dispatcher: Dispatcher, address=None) -> ServerThread:
        server = ServerThread(dispatcher, address)
        started.append(server)
        return server.start()

    yield _serve

    for server in started:
        server.stop()
