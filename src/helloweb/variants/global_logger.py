"""
Step 2: a module-level logger and a routes() function.

The logger is module state, assigned when the server is built, and foo()
reads it directly. build() still hands the same sink to the Dispatcher, so
the dispatcher and its handlers observe one sink.
"""

from typing import Optional, TextIO

from ..config import ServerConfig
from ..http import HTTPRequest, ResponseWriter, RouteTable
from ..logsink import LogSink
from ..server import Dispatcher


logger: Optional[LogSink] = None


def build(config: Optional[ServerConfig] = None, stream: Optional[TextIO] = None) -> Dispatcher:
    global logger

    config = config or ServerConfig()
    logger = LogSink(
        stream=stream,
        prefix=config.log_prefix,
        timestamps=config.log_timestamps,
        name="helloweb.global",
    )

    return Dispatcher(logger, config, routes=routes())


def routes() -> RouteTable:
    table = RouteTable()
    table.add("/foo", foo)
    return table


def foo(request: HTTPRequest, writer: ResponseWriter) -> None:
    logger.log("request to foo")
