"""Lazy evaluation support for logging.

Expensive debug messages (dumping a subtree, formatting closure rows) are
only built if the log level is actually enabled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callable messages and args on demand.

    Example:
        logger = LazyLoggerAdapter(logging.getLogger(__name__))
        logger.debug(lambda: f"Moved {len(subtree)} nodes")
    """

    def log(
        self,
        level: int,
        msg: Any,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Log message with lazy evaluation support.

        Args:
            level: Numeric log level (e.g., logging.DEBUG).
            msg: Log message or callable returning message.
            *args: Format arguments (may include callables).
            **kwargs: Additional kwargs for logging.
        """
        # Check if logging is enabled for this level before doing any work
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()

        if args:
            evaluated_args = tuple(arg() if callable(arg) else arg for arg in args)
        else:
            evaluated_args = args

        super().log(level, msg, *evaluated_args, **kwargs)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get logger with lazy evaluation support.

    Args:
        name: Logger name (usually __name__).
        **context: Optional context bound to every record.

    Returns:
        Logger adapter with lazy evaluation support.
    """
    base_logger = logging.getLogger(name)
    return LazyLoggerAdapter(base_logger, context or {})