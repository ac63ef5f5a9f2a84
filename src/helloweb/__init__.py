"""
=============================================================================
HELLOWEB - A Hello World Web Server, Refactored Three Times
=============================================================================

A small HTTP/1.1 server built on raw sockets, used to walk through three
versions of the same program. Each version registers one route and writes
one log line per request; they differ only in how the logger and the route
table are wired together.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STEP      MODULE                      LOGGER                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │  hello     variants/hello.py           default (stderr, no prefix)  │
    │  global    variants/global_logger.py   module global, "web " prefix │
    │  injected  variants/injected.py        owned by WebApp, injected    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    helloweb/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m helloweb)
    ├── server.py            # Dispatcher
    ├── config.py            # ServerConfig dataclass, address parsing
    ├── logsink.py           # LogSink: prefix + timestamp line logger
    ├── core/
    │   ├── socket_server.py # bind / accept loop
    │   ├── connection.py    # one client connection
    │   └── thread_pool.py   # worker threads
    ├── http/
    │   ├── request.py       # request parsing
    │   ├── response.py      # ResponseWriter, HTTPResponse
    │   └── router.py        # exact-path RouteTable
    └── variants/            # the three tutorial steps

=============================================================================
QUICK START
=============================================================================

    from helloweb import Dispatcher, LogSink

    sink = LogSink(prefix="web ")
    dispatcher = Dispatcher(sink)

    @dispatcher.route("/foo")
    def foo(request, writer):
        sink.log("request to foo")

    dispatcher.serve(":8080")

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, parse_address
from .logsink import LogSink, default_sink
from .server import BindError, Dispatcher, ServerState
from .http import HTTPRequest, HTTPResponse, ResponseWriter, RouteTable

__all__ = [
    "__version__",
    "ServerConfig",
    "parse_address",
    "LogSink",
    "default_sink",
    "Dispatcher",
    "ServerState",
    "BindError",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseWriter",
    "RouteTable",
]
