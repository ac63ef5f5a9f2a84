"""
Unit tests for the route table.
"""

import pytest

from helloweb.http.router import RouteTable
from helloweb.http.request import HTTPRequest
from helloweb.http.response import ResponseWriter


def dummy_handler(request: HTTPRequest, writer: ResponseWriter) -> None:
    """Dummy handler for testing."""
    writer.write(request.path)


def other_handler(request: HTTPRequest, writer: ResponseWriter) -> None:
    pass


class TestRouteTable:
    """Tests for RouteTable class."""

    def test_add_and_lookup(self):
        table = RouteTable()
        table.add("/foo", dummy_handler)

        assert table.lookup("/foo") is dummy_handler
        assert len(table) == 1
        assert "/foo" in table

    def test_lookup_is_exact(self):
        """No prefix, trailing-slash or case folding."""
        table = RouteTable()
        table.add("/foo", dummy_handler)
        table.add("/", other_handler)

        assert table.lookup("/foo/") is None
        assert table.lookup("/foo/bar") is None
        assert table.lookup("/fo") is None
        assert table.lookup("/FOO") is None
        assert table.lookup("/bar") is None
        assert table.lookup("/") is other_handler

    def test_last_registration_wins(self):
        table = RouteTable()
        table.add("/foo", dummy_handler)
        table.add("/foo", other_handler)

        assert table.lookup("/foo") is other_handler
        assert len(table) == 1

    def test_empty_path_rejected(self):
        table = RouteTable()

        with pytest.raises(ValueError):
            table.add("", dummy_handler)
        assert len(table) == 0

    def test_non_callable_rejected(self):
        table = RouteTable()

        with pytest.raises(ValueError):
            table.add("/foo", "not a handler")

    def test_route_decorator(self):
        table = RouteTable()

        @table.route("/foo")
        def foo(request, writer):
            pass

        assert table.lookup("/foo") is foo
        # The decorator hands the function back unchanged
        assert callable(foo)

    def test_paths_sorted(self):
        table = RouteTable()
        table.add("/foo", dummy_handler)
        table.add("/", other_handler)
        table.add("/bar", dummy_handler)

        assert table.paths() == ["/", "/bar", "/foo"]
        assert list(table) == ["/", "/bar", "/foo"]

    def test_freeze(self):
        table = RouteTable()
        table.add("/foo", dummy_handler)
        table.freeze()

        assert table.frozen is True
        with pytest.raises(RuntimeError):
            table.add("/bar", dummy_handler)

        # Lookups keep working
        assert table.lookup("/foo") is dummy_handler
        assert "/bar" not in table
