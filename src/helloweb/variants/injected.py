"""
Step 3: dependency injection.

WebApp owns its sink and its dispatcher. The handler is a bound method, so
it reaches the sink through self instead of module state, and two WebApps
in one process never share a logger.

    app = WebApp(LogSink(prefix="web "))
    app.dispatcher.serve(":8080")

    stdout: web 2026/10/19 14:03:07 request to foo
"""

from typing import Optional, TextIO

from ..config import ServerConfig
from ..http import HTTPRequest, ResponseWriter
from ..logsink import LogSink
from ..server import Dispatcher


class WebApp:
    """A tutorial web application with an injected log sink."""

    def __init__(self, logger: LogSink, config: Optional[ServerConfig] = None):
        self.logger = logger
        self.dispatcher = Dispatcher(logger, config)
        self.routes()

    def routes(self) -> None:
        self.dispatcher.register_route("/foo", self.foo)

    def foo(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        self.logger.log("request to foo")


def build(config: Optional[ServerConfig] = None, stream: Optional[TextIO] = None) -> Dispatcher:
    config = config or ServerConfig()
    sink = LogSink(
        stream=stream,
        prefix=config.log_prefix,
        timestamps=config.log_timestamps,
    )
    return WebApp(sink, config).dispatcher
