"""
Step 1: the smallest server.

One anonymous handler on "/", logging through the process default sink
(stderr, timestamp, no prefix):

    2026/10/19 14:03:07 Request to /

"/" is an exact route like any other: "/anything" gets a 404, not this
handler. The catch-all behaviour of the tutorial's "/" was deliberately
not kept.
"""

from typing import Optional, TextIO

from ..config import ServerConfig
from ..logsink import LogSink, default_sink
from ..server import Dispatcher


def build(config: Optional[ServerConfig] = None, stream: Optional[TextIO] = None) -> Dispatcher:
    """
    Build the step 1 dispatcher.

    Args:
        config: Server configuration. Its log prefix is not used here.
        stream: Write log lines here instead of the default sink (tests).
    """
    sink = default_sink() if stream is None else LogSink(stream=stream)
    dispatcher = Dispatcher(sink, config)

    dispatcher.register_route("/", lambda request, writer: sink.log("Request to /"))

    return dispatcher
