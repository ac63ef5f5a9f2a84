"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable the server has lives in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m helloweb --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HELLOWEB_PORT=3000 python -m helloweb                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ADDRESSES
=============================================================================

The tutorial servers listen on ":8080". An empty host means "every
interface", so the address parser turns it into 0.0.0.0:

    ":8080"           → ("0.0.0.0", 8080)
    "127.0.0.1:9000"  → ("127.0.0.1", 9000)
    "localhost:0"     → ("localhost", 0)     # OS picks a free port

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Tuple, Union


ALL_INTERFACES = "0.0.0.0"

Address = Union[str, Tuple[str, int]]


def parse_address(address: Address) -> Tuple[str, int]:
    """
    Split a listen address into (host, port).

    Args:
        address: "host:port", ":port" or an already split (host, port) tuple.

    Returns:
        Tuple of (host, port). An empty host becomes 0.0.0.0.

    Raises:
        ValueError: If the port is missing or not a number.
    """
    if isinstance(address, tuple):
        host, port = address
        return (host or ALL_INTERFACES, int(port))

    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"Invalid address {address!r}: expected host:port")

    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid port in address {address!r}") from None

    # IPv6 literals arrive bracketed: "[::1]:8080"
    host = host.strip("[]")
    return (host or ALL_INTERFACES, port)


@dataclass
class ServerConfig:
    """
    Configuration for the tutorial server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    LOGGING
    - log_level (server diagnostics on stderr)
    - log_prefix, log_timestamps (the request log sink on stdout)

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = ALL_INTERFACES
    """Interface to bind. The default matches ":8080" (all interfaces)."""

    port: int = 8080
    """Port to listen on. 0 lets the OS choose one (used by tests)."""

    backlog: int = 128
    """Accept queue length handed to listen()."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: float = 30.0
    """Socket timeout for reading the first request on a connection.

    Always finite: it also bounds how long shutdown waits for in-flight
    connections.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Serve more than one request per connection when the client asks."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """Largest request (headers + body) accepted."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 256
    """Connections waiting for a worker before accept() blocks."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Level for the server's own diagnostics (helloweb.* loggers)."""

    log_prefix: str = "web "
    """Fixed tag written at the start of every request log line."""

    log_timestamps: bool = True
    """Write "YYYY/MM/DD HH:MM:SS" after the prefix."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "helloweb/1.0"

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) pair this config binds to."""
        return (self.host, self.port)

    @classmethod
    def from_address(cls, address: Address, **overrides) -> "ServerConfig":
        """
        Create a configuration listening on a "host:port" address.

        Example:
            config = ServerConfig.from_address(":8080")
        """
        host, port = parse_address(address)
        return cls(host=host, port=port, **overrides)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HELLOWEB_HOST        Bind host (default: 0.0.0.0)
        HELLOWEB_PORT        Bind port (default: 8080)
        HELLOWEB_WORKERS     Max worker threads (default: 16)
        HELLOWEB_LOG_LEVEL   Diagnostics level (default: INFO)
        HELLOWEB_LOG_PREFIX  Request log prefix (default: "web ")

        =====================================================================
        """
        defaults = cls()
        workers = int(os.getenv("HELLOWEB_WORKERS", str(defaults.max_workers)))
        return cls(
            host=os.getenv("HELLOWEB_HOST", defaults.host),
            port=int(os.getenv("HELLOWEB_PORT", str(defaults.port))),
            min_workers=min(defaults.min_workers, workers),
            max_workers=workers,
            log_level=os.getenv("HELLOWEB_LOG_LEVEL", defaults.log_level),
            log_prefix=os.getenv("HELLOWEB_LOG_PREFIX", defaults.log_prefix),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called when a Dispatcher is constructed so a bad value fails at
        startup, not on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is None or self.timeout <= 0:
            raise ValueError("timeout must be a number of seconds > 0")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")
