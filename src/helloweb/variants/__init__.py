"""
The three tutorial steps, each a build(config, stream) -> Dispatcher.

    hello      one handler on "/", default stderr logger
    global     module-level logger, routes() builds the table
    injected   WebApp owns the logger, handlers are bound methods
"""

from typing import Callable, Dict, Optional, TextIO

from ..config import ServerConfig
from ..server import Dispatcher
from . import global_logger, hello, injected

Builder = Callable[[Optional[ServerConfig], Optional[TextIO]], Dispatcher]

VARIANTS: Dict[str, Builder] = {
    "hello": hello.build,
    "global": global_logger.build,
    "injected": injected.build,
}

DEFAULT_VARIANT = "injected"

__all__ = ["VARIANTS", "DEFAULT_VARIANT", "Builder", "hello", "global_logger", "injected"]
