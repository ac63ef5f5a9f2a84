"""
=============================================================================
HELLOWEB CLI ENTRY POINT
=============================================================================

    # The last tutorial step on :8080
    python -m helloweb

    # An earlier step
    python -m helloweb --variant hello
    python -m helloweb --variant global

    # Somewhere else
    python -m helloweb --host 127.0.0.1 --port 3000

Precedence: command-line flags, then HELLOWEB_* environment variables, then
the ServerConfig defaults.

Request log lines go to stdout (stderr for the hello step). The banner and
the server's own diagnostics go to stderr, so stdout carries nothing but
request lines.

Exit status 1 means the address could not be bound, or the listening socket
failed while serving.

=============================================================================
"""

import argparse
import dataclasses
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import BindError, Dispatcher
from .variants import DEFAULT_VARIANT, VARIANTS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helloweb",
        description="Hello World web server, one tutorial step at a time",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m helloweb                        # step 3 on 0.0.0.0:8080
  python -m helloweb --variant hello        # step 1, logs "Request to /"
  python -m helloweb --port 3000            # custom port
        """
    )

    parser.add_argument(
        "--variant",
        choices=sorted(VARIANTS),
        default=DEFAULT_VARIANT,
        help=f"Tutorial step to run (default: {DEFAULT_VARIANT})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads to start with; up to twice as many under load"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Level of the server's own diagnostics (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"helloweb {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-based config with any given flags applied on top."""
    config = ServerConfig.from_env()

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.workers is not None:
        overrides["min_workers"] = args.workers
        overrides["max_workers"] = args.workers * 2
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def print_startup_banner(variant: str, dispatcher: Dispatcher) -> None:
    config = dispatcher.config
    print(
        f"helloweb {__version__}: step {variant!r} on http://{config.host}:{config.port} "
        f"routes={dispatcher.routes.paths()} workers={config.min_workers}-{config.max_workers}",
        file=sys.stderr,
    )
    print("Press Ctrl+C to stop", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    dispatcher = VARIANTS[args.variant](config, None)
    print_startup_banner(args.variant, dispatcher)

    try:
        dispatcher.serve()
    except BindError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error: listening socket failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
