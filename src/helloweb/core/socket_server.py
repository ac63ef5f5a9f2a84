"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket. It binds, listens and accepts; everything after
accept() belongs to whoever was passed in as the connection handler.

SOCKET LIFECYCLE (server side):
───────────────────────────────

    1. socket()    create the descriptor
    2. bind()      reserve HOST:PORT          ← fails if the port is taken
    3. listen()    start the kernel accept queue (backlog)
    4. accept()    one new socket per client, in a loop
    5. close()     release the listening descriptor

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── bound once, 0.0.0.0:8080
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client 1  │         │ Client 2  │         │ Client 3  │
    └───────────┘         └───────────┘         └───────────┘

bind() and the accept loop are separate calls. A caller learns about a
taken port from bind() itself, before anything starts looping.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   rebind right after a restart, while old connections sit in
               TIME_WAIT. It does NOT let two live servers share a port.

TCP_NODELAY    disable Nagle's algorithm; responses go out immediately.

SO_REUSEPORT is deliberately not set: with it, a second server on the same
port would bind successfully and silently split the traffic.

=============================================================================
STOPPING
=============================================================================

accept() runs with a 1 second timeout. Each timeout is a chance to look at
the running flag, so shutdown() called from any thread takes effect within
a second:

    while running:
        try:
            accept()          ← at most 1 s
        except timeout:
            continue          ← re-check running

=============================================================================
"""

import socket
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class BindError(OSError):
    """The listening socket could not be bound (port taken, no permission)."""


class SocketServer:
    """
    Low-level TCP socket server.

        bind()            create socket, set options, bind, listen
        serve_forever()   accept loop; calls connection_handler(conn)
        shutdown()        ask the loop to stop (any thread)

    Usage:
        server = SocketServer(config)
        server.bind()                          # raises BindError
        server.serve_forever(handle_connection)  # blocks
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._looping = False
        self._shutdown_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when port 0 asked the kernel to pick
        a free port.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)

        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Create the socket, bind it and start listening.

        Returns:
            The bound (host, port).

        Raises:
            BindError: If the address cannot be bound.
        """
        if self._socket is not None:
            raise RuntimeError("Socket server is already bound")

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise BindError(
                e.errno, f"cannot listen on {self.config.host}:{self.config.port}: {e.strerror or e}"
            ) from e

        self._socket = sock
        self._running = True
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        return (host, port)

    def serve_forever(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Blocks. Each accepted socket is wrapped in a Connection and handed to
        connection_handler; the handler must not block for long (the
        dispatcher submits it to its thread pool).

        Raises:
            OSError: accept() failed while the server was still running.
                The listening socket is closed before this propagates.
        """
        if self._socket is None:
            raise RuntimeError("serve_forever() called before bind()")

        self._looping = True

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                logger.error(f"Accept error: {e}")
                raise

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def close(self):
        """Release a socket that was bound but never served."""
        if not self._looping and self._socket is not None:
            self._cleanup()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited and the socket is closed."""
        return self._shutdown_event.wait(timeout)
