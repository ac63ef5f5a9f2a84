"""
End-to-end tests: real sockets, real HTTP clients.
"""

import http.client
import io
import re
import socket
from concurrent.futures import ThreadPoolExecutor

import pytest

from helloweb import BindError, Dispatcher, LogSink, ServerConfig, ServerState
from helloweb.core import SocketServer
from helloweb.variants import global_logger, hello, injected


WEB_LINE = re.compile(r"^web \d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} request to foo$")
HELLO_LINE = re.compile(r"^\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2} Request to /$")


def read_until_closed(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestFooRoute:

    @pytest.mark.parametrize("build", [injected.build, global_logger.build])
    def test_get_foo(self, build, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(build(config, log_stream))

        status, body, headers = server.request("GET", "/foo")

        assert status == 200
        assert body == b""
        assert headers["Content-Length"] == "0"
        lines = log_stream.getvalue().splitlines()
        assert len(lines) == 1
        assert WEB_LINE.match(lines[0])

    def test_unknown_path(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        status, body, _ = server.request("GET", "/bar")

        assert status == 404
        assert body == b"404 page not found\n"
        assert log_stream.getvalue() == ""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "OPTIONS"])
    def test_any_method(self, method, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        status, body, _ = server.request(method, "/foo", body=b"ignored")

        assert status == 200
        assert body == b""
        assert len(log_stream.getvalue().splitlines()) == 1

    def test_head(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        status, body, _ = server.request("HEAD", "/foo")

        assert status == 200
        assert body == b""
        assert len(log_stream.getvalue().splitlines()) == 1

    def test_query_string_ignored_for_routing(self, config, log_stream, serve):
        server = serve(injected.build(config, log_stream))

        status, _, _ = server.request("GET", "/foo?verbose=1")

        assert status == 200
        assert len(log_stream.getvalue().splitlines()) == 1

    def test_keep_alive_connection(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5.0)
        try:
            for _ in range(3):
                conn.request("GET", "/foo")
                response = conn.getresponse()
                assert response.status == 200
                assert response.getheader("Connection") == "keep-alive"
                response.read()
        finally:
            conn.close()

        assert len(log_stream.getvalue().splitlines()) == 3

    def test_connection_close_honoured(self, config, log_stream, serve):
        server = serve(injected.build(config, log_stream))

        _, _, headers = server.request("GET", "/foo", headers={"Connection": "close"})

        assert headers["Connection"] == "close"


class TestConcurrency:

    def test_hundred_simultaneous_requests(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        def fetch(_):
            return server.request("GET", "/foo", headers={"Connection": "close"})[0]

        with ThreadPoolExecutor(max_workers=100) as executor:
            statuses = list(executor.map(fetch, range(100)))

        assert statuses == [200] * 100
        lines = log_stream.getvalue().splitlines()
        assert len(lines) == 100
        assert all(WEB_LINE.match(line) for line in lines)


class TestHelloStep:

    def test_root_logs_request(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(hello.build(config, log_stream))

        status, body, _ = server.request("GET", "/")

        assert status == 200
        assert body == b""
        assert HELLO_LINE.match(log_stream.getvalue().rstrip("\n"))

    def test_no_subtree_match(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(hello.build(config, log_stream))

        assert server.request("GET", "/anything")[0] == 404
        assert server.request("GET", "//foo")[0] == 404
        assert log_stream.getvalue() == ""


class TestErrors:

    def test_malformed_request(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        with socket.create_connection(("127.0.0.1", server.port), timeout=5.0) as sock:
            sock.sendall(b"get /foo HTTP/1.1\r\nHost: x\r\n\r\n")
            data = read_until_closed(sock)

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b"Connection: close\r\n" in data
        assert log_stream.getvalue() == ""

    def test_unsupported_version(self, config: ServerConfig, log_stream: io.StringIO, serve):
        server = serve(injected.build(config, log_stream))

        with socket.create_connection(("127.0.0.1", server.port), timeout=5.0) as sock:
            sock.sendall(b"GET /foo HTTP/3.0\r\nHost: x\r\n\r\n")
            data = read_until_closed(sock)

        assert data.startswith(b"HTTP/1.1 505 HTTP Version Not Supported\r\n")

    def test_handler_exception(self, config: ServerConfig, sink: LogSink, serve):
        dispatcher = Dispatcher(sink, config)

        @dispatcher.route("/boom")
        def boom(request, writer):
            raise RuntimeError("kaboom")

        server = serve(dispatcher)

        assert server.request("GET", "/boom")[0] == 500
        # The server keeps serving after a handler failure
        assert server.request("GET", "/boom")[0] == 500

    def test_bind_failure(self, config: ServerConfig, sink: LogSink, occupied_port: int):
        dispatcher = Dispatcher(sink, config)

        with pytest.raises(BindError):
            dispatcher.serve(("127.0.0.1", occupied_port))

        assert isinstance(BindError(), OSError)
        assert dispatcher.state is ServerState.UNBOUND

    def test_listening_socket_failure(self, config: ServerConfig, sink: LogSink, monkeypatch):
        accept_loop = SocketServer._accept_loop

        def accept_on_closed_socket(self, connection_handler):
            self._socket.close()
            return accept_loop(self, connection_handler)

        monkeypatch.setattr(SocketServer, "_accept_loop", accept_on_closed_socket)
        dispatcher = Dispatcher(sink, config)

        with pytest.raises(OSError) as exc_info:
            dispatcher.serve(("127.0.0.1", 0))

        assert not isinstance(exc_info.value, BindError)
        assert dispatcher.state is ServerState.STOPPED
        assert dispatcher.wait_until_stopped(timeout=0)


class TestLifecycle:

    def test_states(self, config: ServerConfig, serve):
        dispatcher = injected.build(config, io.StringIO())
        server = serve(dispatcher)

        assert dispatcher.state is ServerState.SERVING
        assert dispatcher.address == ("127.0.0.1", server.port)

        server.stop()

        assert dispatcher.wait_until_stopped(timeout=5.0)
        assert dispatcher.state is ServerState.STOPPED
        assert server.error is None

    def test_serve_twice_rejected(self, config: ServerConfig, serve):
        dispatcher = injected.build(config, io.StringIO())
        serve(dispatcher)

        with pytest.raises(RuntimeError):
            dispatcher.serve()

    def test_register_while_serving_rejected(self, config: ServerConfig, serve):
        dispatcher = injected.build(config, io.StringIO())
        serve(dispatcher)

        with pytest.raises(RuntimeError):
            dispatcher.register_route("/late", lambda request, writer: None)

    def test_restart_is_idempotent(self, config: ServerConfig, serve):
        descriptions = []

        for _ in range(2):
            stream = io.StringIO()
            dispatcher = injected.build(config, stream)
            server = serve(dispatcher)
            assert server.request("GET", "/foo")[0] == 200
            server.stop()

            descriptions.append((dispatcher.routes.paths(), dispatcher.sink.describe()))
            assert WEB_LINE.match(stream.getvalue().rstrip("\n"))

        assert descriptions[0] == descriptions[1]

    def test_serve_on_address_string(self, config: ServerConfig, serve):
        dispatcher = injected.build(config, io.StringIO())
        server = serve(dispatcher, "127.0.0.1:0")

        assert dispatcher.address[0] == "127.0.0.1"
        assert server.request("GET", "/foo")[0] == 200
