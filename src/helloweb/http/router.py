"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps an exact request path to the handler registered for it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /foo                                                           │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTE TABLE                                                 │   │
    │   │                                                              │   │
    │   │    "/foo"  → foo            ← MATCH                         │   │
    │   │    "/"     → hello                                           │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   foo(request, writer)                                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

1. EXACT MATCH ONLY

   Registered: /foo
   Matches:    /foo
   No match:   /foo/, /foo/bar, /fo, /FOO

   There are no patterns, wildcards or prefix (subtree) matches. "/" is
   just the path "/", it does not catch everything below it.

2. NO METHOD FILTERING

   GET /foo, POST /foo and DELETE /foo all reach the same handler.

3. LAST REGISTRATION WINS

   table.add("/foo", first)
   table.add("/foo", second)    # silently replaces first

   A dict lookup makes matching O(1) in the number of routes.

4. FROZEN WHILE SERVING

   The dispatcher freezes its table before it binds. Registering after
   that raises RuntimeError, so worker threads only ever read the dict.

=============================================================================
"""

from typing import Callable, Dict, Iterator, List, Optional

from .request import HTTPRequest
from .response import ResponseWriter


# Handler: called with the request and the writer for its response.
# The return value is ignored.
Handler = Callable[[HTTPRequest, ResponseWriter], None]


class RouteTable:
    """
    Exact-path route table.

    Usage:
        table = RouteTable()

        @table.route("/foo")
        def foo(request, writer):
            ...

        table.lookup("/foo")   # → foo
        table.lookup("/bar")   # → None
    """

    def __init__(self):
        self._routes: Dict[str, Handler] = {}
        self._frozen = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add(self, path: str, handler: Handler) -> None:
        """
        Register handler for path.

        Raises:
            ValueError: If path is empty or handler is not callable.
            RuntimeError: If the table is frozen.
        """
        if not path:
            raise ValueError("Route path must be non-empty")
        if not callable(handler):
            raise ValueError(f"Handler for {path!r} is not callable: {handler!r}")
        if self._frozen:
            raise RuntimeError(f"Cannot register {path!r}: route table is frozen")

        self._routes[path] = handler

    def route(self, path: str) -> Callable[[Handler], Handler]:
        """Decorator form of add(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add(path, handler)
            return handler
        return decorator

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def lookup(self, path: str) -> Optional[Handler]:
        """Handler registered for exactly this path, or None."""
        return self._routes.get(path)

    def paths(self) -> List[str]:
        """Registered paths, sorted (useful for comparison and banners)."""
        return sorted(self._routes)

    def __contains__(self, path: str) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())
