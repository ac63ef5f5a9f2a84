"""
=============================================================================
REQUEST LOG SINK
=============================================================================

The one thing every tutorial handler does is write a line like:

    web 2026/10/19 14:03:07 request to foo
    ─┬─ ─────────┬───────── ──────┬───────
     │           │                │
   Prefix    Timestamp         Message

A LogSink is that destination: a stream (stdout by default), a fixed prefix
and an optional timestamp. Handlers share one sink; they never configure
logging themselves.

=============================================================================
WHY NOT logging.getLogger()?
=============================================================================

getLogger() returns a process-wide object from the logging registry. Two
servers asking for the same name would share handlers, and a test that adds
a handler would leak it into the next test.

Each LogSink builds its own logging.Logger instead. It is never registered,
never propagates to the root logger, and owns exactly one StreamHandler:

    ┌──────────────┐      ┌──────────────────┐      ┌───────────────┐
    │   handler    │─────►│  LogSink.log()   │─────►│ StreamHandler │──► stdout
    │ (any thread) │      │  private Logger  │      │ (holds a lock)│
    └──────────────┘      └──────────────────┘      └───────────────┘

StreamHandler.emit() runs under the handler's lock, so lines written from
concurrent worker threads never interleave.

=============================================================================
"""

import logging
import sys
import threading
from typing import Optional, TextIO


# 2009/11/10 23:00:00
TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


class LogSink:
    """
    Shared line-oriented log destination.

    Usage:
        sink = LogSink(prefix="web ")
        sink.log("request to foo")
        # stdout: web 2026/10/19 14:03:07 request to foo
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        prefix: str = "",
        timestamps: bool = True,
        name: str = "helloweb.sink",
    ):
        """
        Args:
            stream: Where lines go. None means sys.stdout at construction time.
            prefix: Fixed tag written first on every line (e.g. "web ").
            timestamps: Write the date and time after the prefix.
            name: Logger name, shown only when debugging the sink itself.
        """
        self.stream = stream if stream is not None else sys.stdout
        self.prefix = prefix
        self.timestamps = timestamps

        # %-escape the prefix: it is pasted into a logging format string
        fmt = prefix.replace("%", "%%")
        if timestamps:
            fmt += "%(asctime)s "
        fmt += "%(message)s"

        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(logging.Formatter(fmt, datefmt=TIMESTAMP_FORMAT))

        self._logger = logging.Logger(name, level=logging.INFO)
        self._logger.propagate = False
        self._logger.addHandler(handler)
        self._handler = handler

    def log(self, message: str) -> None:
        """
        Write exactly one line.

        Trailing newlines are dropped; line breaks inside message become
        single spaces.
        """
        self._logger.info(" ".join(message.rstrip("\r\n").splitlines()))

    def flush(self) -> None:
        self._handler.flush()

    def describe(self) -> dict:
        """Configuration snapshot, used to compare sinks across restarts."""
        return {
            "stream": getattr(self.stream, "name", type(self.stream).__name__),
            "prefix": self.prefix,
            "timestamps": self.timestamps,
        }

    def __repr__(self) -> str:
        return f"LogSink(prefix={self.prefix!r}, timestamps={self.timestamps})"


# ═══════════════════════════════════════════════════════════════════════════
# PROCESS DEFAULT SINK
# ═══════════════════════════════════════════════════════════════════════════
# The first tutorial step uses "the standard logger": stderr, timestamps, no
# prefix. It is created once, on first use.
# ═══════════════════════════════════════════════════════════════════════════

_default_sink: Optional[LogSink] = None
_default_lock = threading.Lock()


def default_sink() -> LogSink:
    """Return the process-wide standard sink, creating it on first call."""
    global _default_sink
    with _default_lock:
        if _default_sink is None:
            _default_sink = LogSink(stream=sys.stderr, name="helloweb.default")
        return _default_sink
