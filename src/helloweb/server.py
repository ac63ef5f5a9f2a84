"""
=============================================================================
DISPATCHER
=============================================================================

The Dispatcher ties the pieces together: a route table, the request log
sink the handlers share, and the serve loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       DISPATCHER                                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐         │
    │    │ SocketServer │    │  ThreadPool  │    │  RouteTable  │         │
    │    │  bind/accept │    │   workers    │    │ path→handler │         │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘         │
    │           │                   │                   │                  │
    │           ▼                   ▼                   ▼                  │
    │    ┌──────────────┐    ┌──────────────────────────────────┐         │
    │    │  Connection  │───►│ dispatch(request) → HTTPResponse │         │
    │    └──────────────┘    └──────────────────┬───────────────┘         │
    │                                           │                          │
    │                                           ▼                          │
    │                                    ┌──────────────┐                  │
    │                                    │   LogSink    │ ──► stdout       │
    │                                    │  (shared)    │                  │
    │                                    └──────────────┘                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The sink is handed to the Dispatcher when it is built. Nothing in this
module reaches for a global logger on behalf of a handler.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection
    2. the connection is queued on the ThreadPool
    3. a worker reads and parses one request
    4. dispatch(): exact path lookup
          found     → handler(request, writer); the writer becomes the response
          not found → 404 "404 page not found"
          raised    → 500, traceback on the helloweb.server logger
    5. the response is sent (no body for HEAD)
    6. keep-alive → back to 3, otherwise close

=============================================================================
STATES
=============================================================================

    UNBOUND ──serve()──► SERVING ──shutdown()──► STOPPED

Routes can only be registered while UNBOUND. serve() can only be called
once. A failed bind raises BindError and leaves the dispatcher UNBOUND.

=============================================================================
"""

import dataclasses
import logging
import threading
from enum import Enum
from http import HTTPStatus
from typing import Callable, Optional, Tuple

from .config import Address, ServerConfig, parse_address
from .core import BindError, Connection, SocketServer, ThreadPool
from .http import (
    Handler,
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    RequestParser,
    ResponseWriter,
    RouteTable,
    bad_request,
    internal_error,
    not_found,
)
from .http.response import text_response
from .logsink import LogSink


logger = logging.getLogger(__name__)


class ServerState(Enum):
    UNBOUND = "unbound"
    SERVING = "serving"
    STOPPED = "stopped"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the server's own diagnostics (stderr, helloweb.* loggers).

    These are separate from the request log sink: a LogSink never
    propagates to the root logger, so its lines are not duplicated here.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("helloweb").setLevel(numeric_level)


class Dispatcher:
    """
    Routes requests to handlers that share one LogSink.

    Usage:
        sink = LogSink(prefix="web ")
        dispatcher = Dispatcher(sink)

        @dispatcher.route("/foo")
        def foo(request, writer):
            sink.log("request to foo")

        dispatcher.serve(":8080")   # blocks
    """

    def __init__(
        self,
        sink: LogSink,
        config: Optional[ServerConfig] = None,
        routes: Optional[RouteTable] = None,
    ):
        """
        Args:
            sink: The request log sink every handler of this dispatcher uses.
            config: Server configuration; defaults listen on 0.0.0.0:8080.
            routes: An existing route table to serve. A fresh one otherwise.
        """
        if sink is None:
            raise ValueError("Dispatcher requires a LogSink")

        self.config = config or ServerConfig()
        self.config.validate()

        self._sink = sink
        self._routes = routes if routes is not None else RouteTable()
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._state = ServerState.UNBOUND
        self._state_lock = threading.Lock()
        self._serving = threading.Event()
        self._stopped = threading.Event()

        self._socket_server: Optional[SocketServer] = None
        self._thread_pool: Optional[ThreadPool] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def sink(self) -> LogSink:
        return self._sink

    @property
    def routes(self) -> RouteTable:
        return self._routes

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while serving, None otherwise."""
        if self._state is ServerState.SERVING and self._socket_server is not None:
            return self._socket_server.address
        return None

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register_route(self, path: str, handler: Handler) -> None:
        """
        Associate path with handler.

        A later registration for the same path replaces the earlier one.

        Raises:
            ValueError: If path is empty.
            RuntimeError: If the dispatcher has already started serving.
        """
        if self._state is not ServerState.UNBOUND:
            raise RuntimeError(
                f"Cannot register {path!r}: dispatcher is {self._state.value}"
            )
        self._routes.add(path, handler)
        logger.debug(f"Registered route {path} -> {getattr(handler, '__qualname__', handler)}")

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of register_route()."""
        def decorator(handler: Handler) -> Handler:
            self.register_route(path, handler)
            return handler
        return decorator

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run the handler registered for request.path.

        Runs on the calling thread. Never raises for a handler failure: the
        client gets a 500 and the traceback goes to the diagnostics log.
        """
        handler = self._routes.lookup(request.path)
        if handler is None:
            return not_found()

        writer = ResponseWriter()
        try:
            handler(request, writer)
        except Exception as e:
            logger.exception(f"Handler for {request.method} {request.path} failed: {e}")
            return internal_error()

        return writer.to_response()

    # =========================================================================
    # SERVING
    # =========================================================================

    def serve(self, address: Optional[Address] = None) -> None:
        """
        Bind address and serve requests until shutdown() is called.

        Args:
            address: ":8080", "host:port", a (host, port) tuple, or None for
                     the configured host and port.

        Raises:
            BindError: The address could not be bound.
            OSError: The listening socket failed while serving. The
                dispatcher is STOPPED by the time this propagates.
            RuntimeError: serve() was already called on this dispatcher.
        """
        with self._state_lock:
            if self._state is not ServerState.UNBOUND:
                raise RuntimeError(f"Dispatcher is {self._state.value}, cannot serve")

            config = self.config
            if address is not None:
                host, port = parse_address(address)
                config = dataclasses.replace(config, host=host, port=port)

            configure_logging(config.log_level)

            socket_server = SocketServer(config)
            socket_server.bind()

            self._socket_server = socket_server
            self._thread_pool = ThreadPool(
                min_workers=config.min_workers,
                max_workers=config.max_workers,
                queue_size=config.queue_size,
            )
            self._routes.freeze()
            self._state = ServerState.SERVING

        self._thread_pool.start()
        self._serving.set()
        logger.info(f"Serving {len(self._routes)} route(s): {', '.join(self._routes.paths())}")

        try:
            socket_server.serve_forever(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
            raise
        finally:
            self._finish()

    def shutdown(self) -> None:
        """
        Stop serving. Callable from any thread; returns immediately.

        The serve() call returns once the accept loop notices (within about
        a second) and in-flight connections are done.
        """
        with self._state_lock:
            if self._state is ServerState.UNBOUND:
                self._state = ServerState.STOPPED
                self._stopped.set()
                return
            if self._socket_server is not None:
                self._socket_server.shutdown()

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is bound and accepting."""
        return self._serving.wait(timeout)

    def wait_until_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until serve() has returned."""
        return self._stopped.wait(timeout)

    def _finish(self):
        logger.info("Shutting down dispatcher...")
        if self._thread_pool is not None:
            self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        with self._state_lock:
            self._state = ServerState.STOPPED
        self._sink.flush()
        self._stopped.set()
        logger.info("Dispatcher stopped")

    # =========================================================================
    # CONNECTION HANDLING (worker threads)
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by the accept loop; queues the connection for a worker."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                queue_timeout=self.config.timeout,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            response = text_response(HTTPStatus.SERVICE_UNAVAILABLE, "503 Service Unavailable\n")
            response.headers["Connection"] = "close"
            conn.send_response(response.to_bytes(self.config.server_name))
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection.

            read → parse → dispatch → send → (keep-alive ? repeat : close)
        """
        with conn:
            while self._state is ServerState.SERVING:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    request = self._parser.parse(raw_request, conn.address)

                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Rejected request: {e}")
                    conn.send_response(
                        bad_request(e.status_code).to_bytes(self.config.server_name)
                    )
                    break

                except TimeoutError:
                    conn.send_response(
                        bad_request(HTTPStatus.REQUEST_TIMEOUT).to_bytes(self.config.server_name)
                    )
                    break

                response = self.dispatch(request)
                logger.debug(
                    f"[{conn.id}] {request.method} {request.path} -> {response.status.value}"
                )

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                payload = response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                )
                if not conn.send_response(payload):
                    break
                if not keep_alive:
                    break

                conn.set_keep_alive()


__all__ = ["Dispatcher", "ServerState", "BindError", "configure_logging"]
