"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the Dispatcher.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER                                                       │
    │  • binds HOST:PORT, raises BindError when it cannot                  │
    │  • runs the accept() loop on the thread that called serve()          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ each accepted socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL                                                         │
    │  • bounded queue of connections, min..max worker threads             │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ a worker takes the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                          │
    │  • buffered reads cut the byte stream into requests                  │
    │  • keep-alive: several requests per TCP connection                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer, BindError
from .thread_pool import ThreadPool, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "BindError",
    "ThreadPool",
    "Worker",
    "WorkerState",
]
