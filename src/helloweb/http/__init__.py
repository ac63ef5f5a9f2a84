"""
HTTP protocol layer: request parsing, response writing and the route table.

    request.py    HTTPRequest, RequestParser, HTTPParseError
    response.py   HTTPResponse, ResponseWriter, canned error responses
    router.py     RouteTable and the Handler signature
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseWriter,
    format_http_date,
    not_found,
    bad_request,
    internal_error,
)
from .router import RouteTable, Handler

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseWriter",
    "format_http_date",
    "not_found",
    "bad_request",
    "internal_error",
    "RouteTable",
    "Handler",
]
