"""
=============================================================================
HTTP RESPONSES
=============================================================================

Two objects live here:

    ResponseWriter   what a handler receives; it may set headers, a status
                     and write body bytes, or do nothing at all
    HTTPResponse     what goes on the wire; built from the writer once the
                     handler returns

=============================================================================
THE IMPLICIT RESPONSE
=============================================================================

The tutorial handlers never write a response. They log a line and return.
That still has to mean something precise on the wire, so it is pinned down
here:

    ┌─────────────────────────────┬───────────────────────────────────────┐
    │ Handler did...              │ Client receives                       │
    ├─────────────────────────────┼───────────────────────────────────────┤
    │ nothing                     │ 200 OK, Content-Length: 0             │
    │ write(b"hi")                │ 200 OK, body "hi"                     │
    │ write_header(201)           │ 201 Created, empty body               │
    │ write_header(204); write()  │ 204, body dropped (204 has no body)   │
    └─────────────────────────────┴───────────────────────────────────────┘

The first write() without a prior write_header() commits 200 OK. After the
status is committed, further write_header() calls are ignored with a
warning, the same way a real socket could not take the status line back.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Dict, Optional, Union
import logging


logger = logging.getLogger(__name__)

# Statuses that never carry a body (RFC 7230 section 3.3.3)
BODYLESS_STATUSES = {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}


@dataclass
class HTTPResponse:
    """
    A response ready to be serialised.

        HTTPResponse(status=200, headers={...}, body=b"")
                │
                │ to_bytes()
                ▼
        b"HTTP/1.1 200 OK\\r\\nContent-Length: 0\\r\\nDate: ...\\r\\n\\r\\n"
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status.value} {self.status.phrase}"

    def to_bytes(self, server_name: Optional[str] = None, include_body: bool = True) -> bytes:
        """
        Serialise the response.

        Args:
            server_name: Value for the Server header (omitted when None).
            include_body: False for HEAD requests. Content-Length still
                          describes the body a GET would have received.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if server_name and "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return head + self.body if include_body else head


class ResponseWriter:
    """
    The response-writing capability handed to every handler.

    Usage inside a handler:
        def foo(request, writer):
            writer.headers["Content-Type"] = "text/plain; charset=utf-8"
            writer.write("hello\\n")
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self._status: Optional[HTTPStatus] = None
        self._body = bytearray()

    @property
    def status(self) -> HTTPStatus:
        """Committed status, or 200 if the handler never chose one."""
        return self._status if self._status is not None else HTTPStatus.OK

    @property
    def wrote_header(self) -> bool:
        return self._status is not None

    def write_header(self, status: Union[HTTPStatus, int]) -> None:
        """Commit the response status. Only the first call counts."""
        if self._status is not None:
            logger.warning(
                f"Superfluous write_header({int(status)}), status already {self._status.value}"
            )
            return
        self._status = HTTPStatus(status)

    def write(self, data: Union[str, bytes]) -> int:
        """
        Append to the response body, committing 200 OK if no status was set.

        Returns:
            Number of bytes appended.
        """
        if self._status is None:
            self.write_header(HTTPStatus.OK)

        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body += data
        return len(data)

    def to_response(self) -> HTTPResponse:
        """Freeze what the handler did into an HTTPResponse."""
        status = self.status
        headers = dict(self.headers)
        body = bytes(self._body)

        if status in BODYLESS_STATUSES:
            body = b""
        elif body and "Content-Type" not in headers:
            headers["Content-Type"] = "text/plain; charset=utf-8"

        return HTTPResponse(status=status, headers=headers, body=body)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date.

    Example: Mon, 19 Oct 2026 14:03:07 GMT
    """
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def text_response(status: HTTPStatus, text: str) -> HTTPResponse:
    """Plain text response with an explicit status."""
    return HTTPResponse(
        status=status,
        headers={
            "Content-Type": "text/plain; charset=utf-8",
            "X-Content-Type-Options": "nosniff",
        },
        body=text.encode("utf-8"),
    )


def not_found() -> HTTPResponse:
    """The generic answer for a path with no registered handler."""
    return text_response(HTTPStatus.NOT_FOUND, "404 page not found\n")


def bad_request(status: Union[HTTPStatus, int] = HTTPStatus.BAD_REQUEST) -> HTTPResponse:
    """Answer for a request the parser rejected."""
    status = HTTPStatus(status)
    response = text_response(status, f"{status.value} {status.phrase}\n")
    response.headers["Connection"] = "close"
    return response


def internal_error() -> HTTPResponse:
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, "500 Internal Server Error\n")
