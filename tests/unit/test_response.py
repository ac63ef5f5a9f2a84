"""
Unit tests for HTTP responses and the ResponseWriter.
"""

import logging
from datetime import datetime, timezone
from http import HTTPStatus

from helloweb.http.response import (
    HTTPResponse,
    ResponseWriter,
    not_found,
    bad_request,
    internal_error,
    format_http_date,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_empty_body_has_zero_length(self):
        result = HTTPResponse().to_bytes()

        assert b"Content-Length: 0\r\n" in result
        assert result.endswith(b"\r\n\r\n")

    def test_server_header_only_when_named(self):
        assert b"Server:" not in HTTPResponse().to_bytes()
        assert b"Server: helloweb/1.0\r\n" in HTTPResponse().to_bytes("helloweb/1.0")

    def test_head_omits_body_but_keeps_length(self):
        result = HTTPResponse(body=b"hello").to_bytes(include_body=False)

        assert b"Content-Length: 5\r\n" in result
        assert result.endswith(b"\r\n\r\n")
        assert b"hello" not in result


class TestResponseWriter:
    """Tests for what a handler can do with its writer."""

    def test_untouched_writer_is_200_empty(self):
        response = ResponseWriter().to_response()

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert "Content-Type" not in response.headers

    def test_write_commits_200(self):
        writer = ResponseWriter()

        assert writer.wrote_header is False
        assert writer.write("hi") == 2
        assert writer.wrote_header is True

        response = writer.to_response()
        assert response.status == HTTPStatus.OK
        assert response.body == b"hi"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_write_bytes_appends(self):
        writer = ResponseWriter()
        writer.write(b"a")
        writer.write(b"bc")

        assert writer.to_response().body == b"abc"

    def test_explicit_status(self):
        writer = ResponseWriter()
        writer.write_header(HTTPStatus.CREATED)

        response = writer.to_response()
        assert response.status == HTTPStatus.CREATED
        assert response.body == b""

    def test_write_header_accepts_int(self):
        writer = ResponseWriter()
        writer.write_header(202)

        assert writer.status == HTTPStatus.ACCEPTED

    def test_second_write_header_ignored(self, caplog):
        writer = ResponseWriter()
        writer.write_header(HTTPStatus.CREATED)

        with caplog.at_level(logging.WARNING, logger="helloweb.http.response"):
            writer.write_header(HTTPStatus.NOT_FOUND)

        assert writer.status == HTTPStatus.CREATED
        assert "Superfluous write_header(404)" in caplog.text

    def test_write_after_status_keeps_status(self):
        writer = ResponseWriter()
        writer.write_header(HTTPStatus.ACCEPTED)
        writer.write("queued")

        assert writer.to_response().status == HTTPStatus.ACCEPTED

    def test_no_content_drops_body(self):
        writer = ResponseWriter()
        writer.write_header(HTTPStatus.NO_CONTENT)
        writer.write("ignored")

        assert writer.to_response().body == b""

    def test_custom_headers_kept(self):
        writer = ResponseWriter()
        writer.headers["Content-Type"] = "application/json"
        writer.write("{}")

        assert writer.to_response().headers["Content-Type"] == "application/json"


class TestCannedResponses:

    def test_not_found(self):
        response = not_found()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found\n"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_bad_request(self):
        response = bad_request()

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b"400 Bad Request\n"
        assert response.headers["Connection"] == "close"

    def test_bad_request_other_status(self):
        response = bad_request(505)

        assert response.status == HTTPStatus.HTTP_VERSION_NOT_SUPPORTED
        assert response.body == b"505 HTTP Version Not Supported\n"

    def test_internal_error(self):
        response = internal_error()

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b"500 Internal Server Error\n"


class TestFormatHTTPDate:

    def test_format(self):
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
